"""
Pool event transitions: Initialize, Mint, Burn, Collect and Swap.

Each transition loads the snapshots it needs through the handler context's
staged store, builds the next snapshots with `replace()`, writes them back
and refreshes the time buckets. Snapshots that must exist for the event to
make sense raise MissingEntityError.
"""
import asyncio
import logging
from decimal import Decimal
from typing import Optional, Tuple, Type, TypeVar

from indexer.exceptions import MissingEntityError
from indexer.handlers.context import HandlerContext
from indexer.models.entities import (
    Bundle,
    Burn,
    Collect,
    Entity,
    Factory,
    Mint,
    Pool,
    Swap,
    Tick,
    Token,
)
from indexer.models.events import (
    BurnEvent,
    CollectEvent,
    Event,
    InitializeEvent,
    MintEvent,
    SwapEvent,
)
from indexer.services.intervals import (
    SwapVolume,
    update_interval_data,
    update_pool_day_data,
    update_pool_hour_data,
)
from indexer.services.pricing import (
    find_native_per_token,
    get_native_price_in_usd,
    get_tracked_amount_usd,
)
from indexer.services.transaction import get_and_set_transaction
from indexer.utils.math import ZERO_BD, UniswapV3Math, convert_token_to_decimal, safe_div
from indexer.utils.tick import create_tick, tick_id

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Entity)

FEE_DENOMINATOR = Decimal(1_000_000)


def _require(entity: Optional[E], entity_type: Type[E], entity_id: str, chain_id: int) -> E:
    if entity is None:
        raise MissingEntityError(entity_type.entity_type, entity_id, chain_id)
    return entity


def _skip_pool(event: Event, context: HandlerContext) -> bool:
    if context.chain.should_index_pool(event.src_address):
        return False
    logger.debug(f"Skipping {type(event).__name__} on pool {event.src_address}")
    return True


async def _load_tokens(context: HandlerContext, pool: Pool) -> Tuple[Token, Token]:
    chain_id = context.chain.chain_id
    token0, token1 = await asyncio.gather(
        context.store.get(Token, pool.token0_id),
        context.store.get(Token, pool.token1_id),
    )
    return (
        _require(token0, Token, pool.token0_id, chain_id),
        _require(token1, Token, pool.token1_id, chain_id),
    )


async def _load_pool_state(
    event: Event, context: HandlerContext
) -> Tuple[Bundle, Pool, Factory, Token, Token]:
    """Bundle, pool, factory and both tokens, all required."""
    chain_id = context.chain.chain_id
    bundle, pool, factory = await asyncio.gather(
        context.get_bundle(),
        context.store.get(Pool, event.src_address),
        context.store.get(Factory, context.factory_id),
    )
    bundle = _require(bundle, Bundle, context.bundle_id, chain_id)
    pool = _require(pool, Pool, event.src_address, chain_id)
    factory = _require(factory, Factory, context.factory_id, chain_id)

    token0, token1 = await _load_tokens(context, pool)
    return bundle, pool, factory, token0, token1


async def _refresh_prices(
    context: HandlerContext, bundle: Bundle, token0: Token, token1: Token
) -> Tuple[Bundle, Token, Token]:
    """
    Re-derive the native USD price and both tokens' native prices.

    Must run after the event's pool has been staged: the reference pool may be
    that very pool, and the pricing graph reads pools through the store.
    """
    chain = context.chain
    reference_pool = await context.store.get(Pool, chain.stablecoin_wrapped_native_pool_address)
    eth_price_usd = get_native_price_in_usd(chain.stablecoin_is_token0, reference_pool)
    if eth_price_usd != bundle.eth_price_usd:
        logger.info(f"ETH price on chain {chain.chain_id} is now {eth_price_usd} USD")

    bundle = bundle.replace(eth_price_usd=eth_price_usd)
    await context.store.set(bundle)

    token0_derived_eth, token1_derived_eth = await asyncio.gather(
        find_native_per_token(
            context.store,
            token0,
            chain.wrapped_native_address,
            chain.stablecoin_addresses,
            chain.minimum_native_locked,
            bundle,
        ),
        find_native_per_token(
            context.store,
            token1,
            chain.wrapped_native_address,
            chain.stablecoin_addresses,
            chain.minimum_native_locked,
            bundle,
        ),
    )
    return (
        bundle,
        token0.replace(derived_eth=token0_derived_eth),
        token1.replace(derived_eth=token1_derived_eth),
    )


def _refresh_locked_value(
    factory: Factory, pool: Pool, token0: Token, token1: Token, bundle: Bundle
) -> Tuple[Factory, Pool, Token, Token]:
    """
    Recompute native/USD TVL from token amounts already updated for the event.

    `pool.total_value_locked_eth` must still hold the value from before the
    event: the factory swaps that contribution out for the new one.
    """
    previous_pool_tvl_eth = pool.total_value_locked_eth
    pool_tvl_eth = (
        pool.total_value_locked_token0 * token0.derived_eth
        + pool.total_value_locked_token1 * token1.derived_eth
    )
    pool = pool.replace(
        total_value_locked_eth=pool_tvl_eth,
        total_value_locked_usd=pool_tvl_eth * bundle.eth_price_usd,
    )

    factory_tvl_eth = factory.total_value_locked_eth - previous_pool_tvl_eth + pool_tvl_eth
    factory = factory.replace(
        total_value_locked_eth=factory_tvl_eth,
        total_value_locked_usd=factory_tvl_eth * bundle.eth_price_usd,
    )

    token0 = token0.replace(
        total_value_locked_usd=token0.total_value_locked * token0.derived_eth * bundle.eth_price_usd
    )
    token1 = token1.replace(
        total_value_locked_usd=token1.total_value_locked * token1.derived_eth * bundle.eth_price_usd
    )
    return factory, pool, token0, token1


def _warn_negative_locked_value(pool: Pool, token0: Token, token1: Token) -> None:
    # Decrements are not clamped; surface anything that goes below zero
    if pool.total_value_locked_token0 < ZERO_BD or pool.total_value_locked_token1 < ZERO_BD:
        logger.warning(
            f"Pool {pool.id} has negative TVL: {pool.total_value_locked_token0} token0, "
            f"{pool.total_value_locked_token1} token1"
        )
    for token in (token0, token1):
        if token.total_value_locked < ZERO_BD:
            logger.warning(f"Token {token.id} has negative TVL: {token.total_value_locked}")


def _amount_usd(amount0: Decimal, token0: Token, amount1: Decimal, token1: Token, bundle: Bundle) -> Decimal:
    return (
        amount0 * token0.derived_eth * bundle.eth_price_usd
        + amount1 * token1.derived_eth * bundle.eth_price_usd
    )


def _record_id(transaction_id: str, log_index: int) -> str:
    return f"{transaction_id}-{log_index}"


async def handle_initialize(event: InitializeEvent, context: HandlerContext) -> bool:
    """
    Set the pool's first price and re-derive native prices from it.
    """
    if _skip_pool(event, context):
        return False

    chain_id = context.chain.chain_id
    bundle, pool = await asyncio.gather(
        context.get_bundle(), context.store.get(Pool, event.src_address)
    )
    bundle = _require(bundle, Bundle, context.bundle_id, chain_id)
    pool = _require(pool, Pool, event.src_address, chain_id)
    token0, token1 = await _load_tokens(context, pool)

    token0_price, token1_price = UniswapV3Math.sqrt_price_x96_to_token_prices(
        event.params.sqrt_price_x96, token0, token1
    )
    pool = pool.replace(
        sqrt_price=event.params.sqrt_price_x96,
        tick=event.params.tick,
        token0_price=token0_price,
        token1_price=token1_price,
    )
    await context.store.set(pool)

    bundle, token0, token1 = await _refresh_prices(context, bundle, token0, token1)

    await context.store.set(token0)
    await context.store.set(token1)

    await asyncio.gather(
        update_pool_day_data(context.store, pool, event.block_timestamp),
        update_pool_hour_data(context.store, pool, event.block_timestamp),
    )
    return True


async def handle_mint(event: MintEvent, context: HandlerContext) -> bool:
    """
    Add liquidity to a pool over [tick_lower, tick_upper).
    """
    if _skip_pool(event, context):
        return False

    params = event.params
    bundle, pool, factory, token0, token1 = await _load_pool_state(event, context)
    lower_tick, upper_tick = await asyncio.gather(
        context.store.get(Tick, tick_id(pool.id, params.tick_lower)),
        context.store.get(Tick, tick_id(pool.id, params.tick_upper)),
    )

    transaction = await get_and_set_transaction(
        context.store, event.transaction_hash, event.block_number, event.block_timestamp
    )

    amount0 = convert_token_to_decimal(params.amount0, token0.decimals)
    amount1 = convert_token_to_decimal(params.amount1, token1.decimals)
    amount_usd = _amount_usd(amount0, token0, amount1, token1, bundle)

    factory = factory.replace(tx_count=factory.tx_count + 1)
    token0 = token0.replace(
        tx_count=token0.tx_count + 1,
        total_value_locked=token0.total_value_locked + amount0,
    )
    token1 = token1.replace(
        tx_count=token1.tx_count + 1,
        total_value_locked=token1.total_value_locked + amount1,
    )

    # Only liquidity around the current price is active
    liquidity = pool.liquidity
    if pool.tick_in_range(params.tick_lower, params.tick_upper):
        liquidity += params.amount

    pool = pool.replace(
        tx_count=pool.tx_count + 1,
        liquidity=liquidity,
        total_value_locked_token0=pool.total_value_locked_token0 + amount0,
        total_value_locked_token1=pool.total_value_locked_token1 + amount1,
    )
    factory, pool, token0, token1 = _refresh_locked_value(factory, pool, token0, token1, bundle)

    if lower_tick is None:
        lower_tick = create_tick(params.tick_lower, pool.id, event.block_timestamp, event.block_number)
    if upper_tick is None:
        upper_tick = create_tick(params.tick_upper, pool.id, event.block_timestamp, event.block_number)

    lower_tick = lower_tick.replace(
        liquidity_gross=lower_tick.liquidity_gross + params.amount,
        liquidity_net=lower_tick.liquidity_net + params.amount,
    )
    upper_tick = upper_tick.replace(
        liquidity_gross=upper_tick.liquidity_gross + params.amount,
        liquidity_net=upper_tick.liquidity_net - params.amount,
    )

    mint = Mint(
        id=_record_id(transaction.id, event.log_index),
        transaction_id=transaction.id,
        timestamp=transaction.timestamp,
        pool_id=pool.id,
        token0_id=pool.token0_id,
        token1_id=pool.token1_id,
        owner=params.owner,
        sender=params.sender,
        origin=event.transaction_from,
        amount=params.amount,
        amount0=amount0,
        amount1=amount1,
        amount_usd=amount_usd,
        tick_lower=params.tick_lower,
        tick_upper=params.tick_upper,
        log_index=event.log_index,
    )

    for entity in (lower_tick, upper_tick, token0, token1, pool, factory, mint):
        await context.store.set(entity)

    await update_interval_data(
        context.store, event.chain_id, factory, pool, token0, token1, bundle, event.block_timestamp
    )
    return True


async def handle_burn(event: BurnEvent, context: HandlerContext) -> bool:
    """
    Remove liquidity from a pool over [tick_lower, tick_upper).

    Tick bookkeeping is applied only when both boundary ticks already exist;
    otherwise only the amount, TVL and tx count effects apply.
    """
    if _skip_pool(event, context):
        return False

    params = event.params
    bundle, pool, factory, token0, token1 = await _load_pool_state(event, context)
    lower_tick, upper_tick = await asyncio.gather(
        context.store.get(Tick, tick_id(pool.id, params.tick_lower)),
        context.store.get(Tick, tick_id(pool.id, params.tick_upper)),
    )

    transaction = await get_and_set_transaction(
        context.store, event.transaction_hash, event.block_number, event.block_timestamp
    )

    amount0 = convert_token_to_decimal(params.amount0, token0.decimals)
    amount1 = convert_token_to_decimal(params.amount1, token1.decimals)
    amount_usd = _amount_usd(amount0, token0, amount1, token1, bundle)

    factory = factory.replace(tx_count=factory.tx_count + 1)
    token0 = token0.replace(
        tx_count=token0.tx_count + 1,
        total_value_locked=token0.total_value_locked - amount0,
    )
    token1 = token1.replace(
        tx_count=token1.tx_count + 1,
        total_value_locked=token1.total_value_locked - amount1,
    )

    liquidity = pool.liquidity
    if pool.tick_in_range(params.tick_lower, params.tick_upper):
        liquidity -= params.amount

    pool = pool.replace(
        tx_count=pool.tx_count + 1,
        liquidity=liquidity,
        total_value_locked_token0=pool.total_value_locked_token0 - amount0,
        total_value_locked_token1=pool.total_value_locked_token1 - amount1,
    )
    factory, pool, token0, token1 = _refresh_locked_value(factory, pool, token0, token1, bundle)
    _warn_negative_locked_value(pool, token0, token1)

    if lower_tick is not None and upper_tick is not None:
        lower_tick = lower_tick.replace(
            liquidity_gross=lower_tick.liquidity_gross - params.amount,
            liquidity_net=lower_tick.liquidity_net - params.amount,
        )
        upper_tick = upper_tick.replace(
            liquidity_gross=upper_tick.liquidity_gross - params.amount,
            liquidity_net=upper_tick.liquidity_net + params.amount,
        )
        await context.store.set(lower_tick)
        await context.store.set(upper_tick)
    else:
        logger.debug(
            f"Burn on pool {pool.id} references missing ticks "
            f"[{params.tick_lower}, {params.tick_upper}), skipping tick bookkeeping"
        )

    burn = Burn(
        id=_record_id(transaction.id, event.log_index),
        transaction_id=transaction.id,
        timestamp=transaction.timestamp,
        pool_id=pool.id,
        token0_id=pool.token0_id,
        token1_id=pool.token1_id,
        owner=params.owner,
        origin=event.transaction_from,
        amount=params.amount,
        amount0=amount0,
        amount1=amount1,
        amount_usd=amount_usd,
        tick_lower=params.tick_lower,
        tick_upper=params.tick_upper,
        log_index=event.log_index,
    )

    for entity in (token0, token1, pool, factory, burn):
        await context.store.set(entity)

    await update_interval_data(
        context.store, event.chain_id, factory, pool, token0, token1, bundle, event.block_timestamp
    )
    return True


async def handle_collect(event: CollectEvent, context: HandlerContext) -> bool:
    """
    Withdraw owed tokens (fees and burned principal) from a pool.
    """
    if _skip_pool(event, context):
        return False

    params = event.params
    bundle, pool, factory, token0, token1 = await _load_pool_state(event, context)

    transaction = await get_and_set_transaction(
        context.store, event.transaction_hash, event.block_number, event.block_timestamp
    )

    collected_amount0 = convert_token_to_decimal(params.amount0, token0.decimals)
    collected_amount1 = convert_token_to_decimal(params.amount1, token1.decimals)
    tracked_collected_amount_usd = get_tracked_amount_usd(
        collected_amount0,
        token0,
        collected_amount1,
        token1,
        context.chain.whitelist_tokens,
        bundle,
    )

    factory = factory.replace(tx_count=factory.tx_count + 1)
    token0 = token0.replace(
        tx_count=token0.tx_count + 1,
        total_value_locked=token0.total_value_locked - collected_amount0,
    )
    token1 = token1.replace(
        tx_count=token1.tx_count + 1,
        total_value_locked=token1.total_value_locked - collected_amount1,
    )
    pool = pool.replace(
        tx_count=pool.tx_count + 1,
        total_value_locked_token0=pool.total_value_locked_token0 - collected_amount0,
        total_value_locked_token1=pool.total_value_locked_token1 - collected_amount1,
        collected_fees_token0=pool.collected_fees_token0 + collected_amount0,
        collected_fees_token1=pool.collected_fees_token1 + collected_amount1,
        collected_fees_usd=pool.collected_fees_usd + tracked_collected_amount_usd,
    )
    factory, pool, token0, token1 = _refresh_locked_value(factory, pool, token0, token1, bundle)
    _warn_negative_locked_value(pool, token0, token1)

    collect = Collect(
        id=_record_id(transaction.id, event.log_index),
        transaction_id=transaction.id,
        timestamp=event.block_timestamp,
        pool_id=pool.id,
        owner=params.owner,
        amount0=collected_amount0,
        amount1=collected_amount1,
        amount_usd=tracked_collected_amount_usd,
        tick_lower=params.tick_lower,
        tick_upper=params.tick_upper,
        log_index=event.log_index,
    )

    for entity in (token0, token1, pool, factory, collect):
        await context.store.set(entity)

    await update_interval_data(
        context.store, event.chain_id, factory, pool, token0, token1, bundle, event.block_timestamp
    )
    return True


async def handle_swap(event: SwapEvent, context: HandlerContext) -> bool:
    """
    Apply a swap: volumes and fees, the pool's new price and liquidity, and
    the native prices that depend on it.
    """
    if _skip_pool(event, context):
        return False

    params = event.params
    bundle, pool, factory, token0, token1 = await _load_pool_state(event, context)

    amount0 = convert_token_to_decimal(params.amount0, token0.decimals)
    amount1 = convert_token_to_decimal(params.amount1, token1.decimals)
    amount0_abs = abs(amount0)
    amount1_abs = abs(amount1)

    amount0_usd = amount0_abs * token0.derived_eth * bundle.eth_price_usd
    amount1_usd = amount1_abs * token1.derived_eth * bundle.eth_price_usd

    # Both legs of a swap carry the same value, so count half of the pair
    amount_total_usd_tracked = (
        get_tracked_amount_usd(
            amount0_abs, token0, amount1_abs, token1, context.chain.whitelist_tokens, bundle
        )
        / 2
    )
    amount_total_eth_tracked = safe_div(amount_total_usd_tracked, bundle.eth_price_usd)
    amount_total_usd_untracked = (amount0_usd + amount1_usd) / 2

    fee_tier = Decimal(pool.fee_tier)
    fees_eth = amount_total_eth_tracked * fee_tier / FEE_DENOMINATOR
    fees_usd = amount_total_usd_tracked * fee_tier / FEE_DENOMINATOR

    factory = factory.replace(
        tx_count=factory.tx_count + 1,
        total_volume_eth=factory.total_volume_eth + amount_total_eth_tracked,
        total_volume_usd=factory.total_volume_usd + amount_total_usd_tracked,
        untracked_volume_usd=factory.untracked_volume_usd + amount_total_usd_untracked,
        total_fees_eth=factory.total_fees_eth + fees_eth,
        total_fees_usd=factory.total_fees_usd + fees_usd,
    )

    token0_price, token1_price = UniswapV3Math.sqrt_price_x96_to_token_prices(
        params.sqrt_price_x96, token0, token1
    )
    # Liquidity, tick and price come straight from the pool contract
    pool = pool.replace(
        tx_count=pool.tx_count + 1,
        volume_token0=pool.volume_token0 + amount0_abs,
        volume_token1=pool.volume_token1 + amount1_abs,
        volume_usd=pool.volume_usd + amount_total_usd_tracked,
        untracked_volume_usd=pool.untracked_volume_usd + amount_total_usd_untracked,
        fees_usd=pool.fees_usd + fees_usd,
        liquidity=params.liquidity,
        tick=params.tick,
        sqrt_price=params.sqrt_price_x96,
        token0_price=token0_price,
        token1_price=token1_price,
        total_value_locked_token0=pool.total_value_locked_token0 + amount0,
        total_value_locked_token1=pool.total_value_locked_token1 + amount1,
    )

    token0 = token0.replace(
        volume=token0.volume + amount0_abs,
        total_value_locked=token0.total_value_locked + amount0,
        volume_usd=token0.volume_usd + amount_total_usd_tracked,
        untracked_volume_usd=token0.untracked_volume_usd + amount_total_usd_untracked,
        fees_usd=token0.fees_usd + fees_usd,
        tx_count=token0.tx_count + 1,
    )
    token1 = token1.replace(
        volume=token1.volume + amount1_abs,
        total_value_locked=token1.total_value_locked + amount1,
        volume_usd=token1.volume_usd + amount_total_usd_tracked,
        untracked_volume_usd=token1.untracked_volume_usd + amount_total_usd_untracked,
        fees_usd=token1.fees_usd + fees_usd,
        tx_count=token1.tx_count + 1,
    )

    await context.store.set(pool)

    (bundle, token0, token1), transaction = await asyncio.gather(
        _refresh_prices(context, bundle, token0, token1),
        get_and_set_transaction(
            context.store, event.transaction_hash, event.block_number, event.block_timestamp
        ),
    )

    factory, pool, token0, token1 = _refresh_locked_value(factory, pool, token0, token1, bundle)

    swap = Swap(
        id=_record_id(transaction.id, event.log_index),
        transaction_id=transaction.id,
        timestamp=transaction.timestamp,
        pool_id=pool.id,
        token0_id=pool.token0_id,
        token1_id=pool.token1_id,
        sender=params.sender,
        recipient=params.recipient,
        origin=event.transaction_from,
        amount0=amount0,
        amount1=amount1,
        amount_usd=amount_total_usd_tracked,
        sqrt_price_x96=params.sqrt_price_x96,
        tick=params.tick,
        log_index=event.log_index,
    )

    for entity in (token0, token1, pool, factory, swap):
        await context.store.set(entity)

    volume = SwapVolume(
        amount0_abs=amount0_abs,
        amount1_abs=amount1_abs,
        amount_eth_tracked=amount_total_eth_tracked,
        amount_usd_tracked=amount_total_usd_tracked,
        amount_usd_untracked=amount_total_usd_untracked,
        fees_eth=fees_eth,
        fees_usd=fees_usd,
    )
    await update_interval_data(
        context.store,
        event.chain_id,
        factory,
        pool,
        token0,
        token1,
        bundle,
        event.block_timestamp,
        volume,
    )
    return True
