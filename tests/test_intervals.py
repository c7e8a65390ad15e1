from decimal import Decimal

import pytest

from indexer.models.entities import (
    Bundle,
    Factory,
    Pool,
    PoolDayData,
    PoolHourData,
    Token,
    TokenDayData,
    TokenHourData,
    UniswapDayData,
)
from indexer.repositories.store import InMemoryEntityStore
from indexer.services.intervals import (
    SwapVolume,
    bucket_id,
    get_day_id,
    get_day_start_timestamp,
    get_hour_index,
    get_hour_start_unix,
    update_interval_data,
    update_pool_day_data,
    update_pool_hour_data,
    update_token_day_data,
    update_uniswap_day_data,
)

from builders import CHAIN_ID, FACTORY, POOL, USDC, WETH

DAY = 19675
TIMESTAMP = DAY * 86400 + 3 * 3600 + 15


def make_pool(price, **fields):
    return Pool(
        id=POOL,
        token0_id=WETH,
        token1_id=USDC,
        fee_tier=3000,
        created_at_timestamp=0,
        created_at_block_number=0,
        tick=0,
        token0_price=Decimal(price),
        token1_price=1 / Decimal(price),
        **fields,
    )


def make_volume(usd):
    return SwapVolume(
        amount0_abs=Decimal(1),
        amount1_abs=Decimal(2),
        amount_eth_tracked=Decimal(usd) / 2000,
        amount_usd_tracked=Decimal(usd),
        amount_usd_untracked=Decimal(usd) + 1,
        fees_eth=Decimal("0.001"),
        fees_usd=Decimal(2),
    )


def test_bucket_indices():
    assert get_day_id(TIMESTAMP) == DAY
    assert get_day_start_timestamp(DAY) == DAY * 86400
    assert get_hour_index(TIMESTAMP) == DAY * 24 + 3
    assert get_hour_start_unix(get_hour_index(TIMESTAMP)) == DAY * 86400 + 3 * 3600
    assert bucket_id(POOL, DAY) == f"{POOL}-{DAY}"


@pytest.mark.asyncio
async def test_pool_day_data_seeded_from_current_price():
    store = InMemoryEntityStore()
    pool = make_pool(5, liquidity=100, total_value_locked_usd=Decimal(1000))

    day_data = await update_pool_day_data(store, pool, TIMESTAMP)

    assert day_data.id == f"{POOL}-{DAY}"
    assert day_data.date == DAY * 86400
    assert day_data.open == day_data.high == day_data.low == day_data.close == Decimal(5)
    assert day_data.liquidity == 100
    assert day_data.tvl_usd == Decimal(1000)
    assert day_data.tx_count == 1
    assert await store.get(PoolDayData, day_data.id) == day_data


@pytest.mark.asyncio
async def test_pool_bucket_ohlc_within_window():
    store = InMemoryEntityStore()
    for price in (5, 8, 3, 6):
        day_data = await update_pool_day_data(store, make_pool(price), TIMESTAMP)

    assert day_data.open == Decimal(5)
    assert day_data.high == Decimal(8)
    assert day_data.low == Decimal(3)
    assert day_data.close == Decimal(6)
    assert day_data.tx_count == 4


@pytest.mark.asyncio
async def test_pool_bucket_high_low_monotonic():
    store = InMemoryEntityStore()
    highs, lows = [], []
    for price in (5, 4, 9, 7, 1, 2, 10):
        hour_data = await update_pool_hour_data(store, make_pool(price), TIMESTAMP)
        highs.append(hour_data.high)
        lows.append(hour_data.low)
        assert hour_data.close == Decimal(price)

    assert highs == sorted(highs)
    assert lows == sorted(lows, reverse=True)


@pytest.mark.asyncio
async def test_new_window_starts_new_bucket():
    store = InMemoryEntityStore()
    first = await update_pool_hour_data(store, make_pool(5), TIMESTAMP)
    second = await update_pool_hour_data(store, make_pool(9), TIMESTAMP + 3600)

    assert first.id != second.id
    assert second.period_start_unix == first.period_start_unix + 3600
    assert second.open == Decimal(9)
    assert len(store.all(PoolHourData)) == 2


@pytest.mark.asyncio
async def test_volume_accumulates():
    store = InMemoryEntityStore()
    pool = make_pool(5)
    await update_pool_day_data(store, pool, TIMESTAMP, make_volume(100))
    day_data = await update_pool_day_data(store, pool, TIMESTAMP, make_volume(50))

    assert day_data.volume_usd == Decimal(150)
    assert day_data.volume_token0 == Decimal(2)
    assert day_data.volume_token1 == Decimal(4)
    assert day_data.fees_usd == Decimal(4)


@pytest.mark.asyncio
async def test_uniswap_day_data_mirrors_factory():
    store = InMemoryEntityStore()
    factory = Factory(id=FACTORY, tx_count=10, total_value_locked_usd=Decimal(500))
    await update_uniswap_day_data(store, CHAIN_ID, factory, TIMESTAMP, make_volume(100))

    factory = factory.replace(tx_count=12, total_value_locked_usd=Decimal(700))
    day_data = await update_uniswap_day_data(store, CHAIN_ID, factory, TIMESTAMP)

    assert day_data.id == f"{CHAIN_ID}-{DAY}"
    assert day_data.chain_id == CHAIN_ID
    # Cumulative fields are copied, not summed
    assert day_data.tx_count == 12
    assert day_data.tvl_usd == Decimal(700)
    assert day_data.volume_usd == Decimal(100)
    assert day_data.volume_usd_untracked == Decimal(101)
    assert day_data.volume_eth == Decimal("0.05")


@pytest.mark.asyncio
async def test_token_day_data_prices_in_usd():
    store = InMemoryEntityStore()
    bundle = Bundle(id="1", eth_price_usd=Decimal(2000))
    token = Token(
        id=WETH,
        symbol="WETH",
        name="Wrapped Ether",
        decimals=18,
        derived_eth=Decimal(1),
        total_value_locked=Decimal(3),
        total_value_locked_usd=Decimal(6000),
    )

    await update_token_day_data(store, token, bundle, TIMESTAMP, make_volume(100), Decimal(1))
    bundle = bundle.replace(eth_price_usd=Decimal(2100))
    day_data = await update_token_day_data(store, token, bundle, TIMESTAMP, make_volume(100), Decimal(1))

    assert day_data.open == Decimal(2000)
    assert day_data.high == day_data.close == day_data.price_usd == Decimal(2100)
    assert day_data.low == Decimal(2000)
    assert day_data.volume == Decimal(2)
    assert day_data.volume_usd == Decimal(200)
    assert day_data.untracked_volume_usd == Decimal(202)
    assert day_data.total_value_locked_usd == Decimal(6000)


@pytest.mark.asyncio
async def test_update_interval_data_touches_every_bucket():
    store = InMemoryEntityStore()
    bundle = Bundle(id="1", eth_price_usd=Decimal(2000))
    token0 = Token(id=WETH, symbol="WETH", name="WETH", decimals=18, derived_eth=Decimal(1))
    token1 = Token(id=USDC, symbol="USDC", name="USDC", decimals=6, derived_eth=Decimal("0.0005"))

    await update_interval_data(
        store,
        CHAIN_ID,
        Factory(id=FACTORY),
        make_pool(5),
        token0,
        token1,
        bundle,
        TIMESTAMP,
        make_volume(10),
    )

    assert len(store.all(UniswapDayData)) == 1
    assert len(store.all(PoolDayData)) == 1
    assert len(store.all(PoolHourData)) == 1
    assert len(store.all(TokenDayData)) == 2
    assert len(store.all(TokenHourData)) == 2

    token1_hour = await store.get(TokenHourData, bucket_id(USDC, get_hour_index(TIMESTAMP)))
    assert token1_hour.volume == Decimal(2)
    assert token1_hour.price_usd == Decimal(1)
