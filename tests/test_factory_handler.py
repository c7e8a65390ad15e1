from decimal import Decimal

import pytest

from indexer.exceptions import EventProcessingError, UnsupportedFeeTierError
from indexer.models.entities import Bundle, Factory, Pool, Token

from builders import (
    CHAIN_ID,
    FACTORY,
    NO_DECIMALS,
    POOL,
    RAND,
    RAND_POOL,
    SKIPPED_POOL,
    USDC,
    WETH,
    pool_created,
)


@pytest.mark.asyncio
async def test_first_pool_creates_factory_and_bundle(processor, store):
    written = await processor.process(pool_created(POOL, WETH, USDC, fee=3000))

    assert written

    factory = await store.get(Factory, FACTORY)
    assert factory.pool_count == 1
    assert factory.tx_count == 0
    assert factory.total_value_locked_usd == Decimal(0)

    bundle = await store.get(Bundle, str(CHAIN_ID))
    assert bundle.eth_price_usd == Decimal(0)

    pool = await store.get(Pool, POOL)
    assert pool.token0_id == WETH
    assert pool.token1_id == USDC
    assert pool.fee_tier == 3000
    assert pool.liquidity == 0
    assert pool.sqrt_price == 0
    assert pool.tick is None
    assert not pool.is_initialized
    assert pool.tx_count == 0
    assert pool.volume_usd == Decimal(0)
    assert pool.total_value_locked_usd == Decimal(0)
    assert pool.created_at_block_number == 1


@pytest.mark.asyncio
async def test_tokens_created_with_metadata(processor, store):
    await processor.process(pool_created(POOL, WETH, USDC))

    weth = await store.get(Token, WETH)
    usdc = await store.get(Token, USDC)

    assert weth.symbol == "WETH"
    assert weth.decimals == 18
    assert usdc.decimals == 6
    assert weth.pool_count == usdc.pool_count == 1
    assert weth.derived_eth == Decimal(0)
    assert weth.tx_count == 0


@pytest.mark.asyncio
async def test_whitelist_pools_follow_counterpart(processor, store):
    await processor.process(pool_created(POOL, WETH, USDC))
    await processor.process(pool_created(RAND_POOL, RAND, WETH, block_number=2))

    weth = await store.get(Token, WETH)
    usdc = await store.get(Token, USDC)
    rand = await store.get(Token, RAND)

    # RAND is not whitelisted, so WETH cannot be priced through RAND_POOL
    assert weth.whitelist_pools == (POOL,)
    assert usdc.whitelist_pools == (POOL,)
    assert rand.whitelist_pools == (RAND_POOL,)


@pytest.mark.asyncio
async def test_second_pool_reuses_factory_and_tokens(processor, store, resolver):
    await processor.process(pool_created(POOL, WETH, USDC))
    await store.set((await store.get(Bundle, str(CHAIN_ID))).replace(eth_price_usd=Decimal(2000)))

    await processor.process(pool_created(RAND_POOL, RAND, WETH, block_number=2))

    factory = await store.get(Factory, FACTORY)
    assert factory.pool_count == 2
    assert (await store.get(Token, WETH)).pool_count == 2
    # Bundle is only created once
    assert (await store.get(Bundle, str(CHAIN_ID))).eth_price_usd == Decimal(2000)
    # Metadata is fetched once per token
    assert resolver.lookups[WETH] == 1


@pytest.mark.asyncio
async def test_unresolved_decimals_abort_without_writes(processor, store):
    written = await processor.process(pool_created(POOL, WETH, NO_DECIMALS))

    assert written == []
    assert len(store) == 0


@pytest.mark.asyncio
async def test_zero_decimals_are_valid(processor, store, resolver):
    resolver.decimals[NO_DECIMALS] = 0

    await processor.process(pool_created(POOL, WETH, NO_DECIMALS))

    assert (await store.get(Token, NO_DECIMALS)).decimals == 0


@pytest.mark.asyncio
async def test_unknown_fee_tier_is_fatal(processor, store):
    with pytest.raises(EventProcessingError) as exc_info:
        await processor.process(pool_created(POOL, WETH, USDC, fee=1234))

    assert isinstance(exc_info.value.cause, UnsupportedFeeTierError)
    assert len(store) == 0


@pytest.mark.asyncio
async def test_denylisted_pool_is_skipped(processor, store):
    written = await processor.process(pool_created(SKIPPED_POOL, WETH, USDC))

    assert written == []
    assert len(store) == 0
