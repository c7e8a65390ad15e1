"""
Daily and hourly rollups for the protocol, each pool and each token.

Buckets are created on first touch in their window, seeded with the subject's
current price as open/high/low/close. Later touches in the same window widen
high/low, overwrite close and add volume deltas on top of the running sums.
"""
import asyncio
from decimal import Decimal
from typing import Optional, Tuple, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict

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
from indexer.repositories.store import EntityStore
from indexer.utils.math import ZERO_BD


DAY_SECONDS = 86400
HOUR_SECONDS = 3600

PoolBucket = TypeVar("PoolBucket", PoolDayData, PoolHourData)
TokenBucket = TypeVar("TokenBucket", TokenDayData, TokenHourData)


class SwapVolume(BaseModel):
    """Volume and fee deltas produced by one swap."""

    model_config = ConfigDict(frozen=True)

    amount0_abs: Decimal
    amount1_abs: Decimal
    amount_eth_tracked: Decimal
    amount_usd_tracked: Decimal
    amount_usd_untracked: Decimal
    fees_eth: Decimal
    fees_usd: Decimal


def get_day_id(timestamp: int) -> int:
    return timestamp // DAY_SECONDS


def get_day_start_timestamp(day_id: int) -> int:
    return day_id * DAY_SECONDS


def get_hour_index(timestamp: int) -> int:
    # unique hour within unix history
    return timestamp // HOUR_SECONDS


def get_hour_start_unix(hour_index: int) -> int:
    return hour_index * HOUR_SECONDS


def bucket_id(subject_id: str, index: int) -> str:
    return f"{subject_id}-{index}"


def _ohlc(bucket: Union[PoolDayData, PoolHourData, TokenDayData, TokenHourData], price: Decimal) -> dict:
    return {
        "high": max(bucket.high, price),
        "low": min(bucket.low, price),
        "close": price,
    }


async def update_uniswap_day_data(
    store: EntityStore,
    chain_id: int,
    factory: Factory,
    timestamp: int,
    volume: Optional[SwapVolume] = None,
) -> UniswapDayData:
    """
    Tracks a chain's aggregate data over daily windows.

    TVL and tx count mirror the chain's factory; only volume and fees
    accumulate per event.
    """
    day_id = get_day_id(timestamp)
    day_key = bucket_id(str(chain_id), day_id)
    uniswap_day_data = await store.get(UniswapDayData, day_key)

    if uniswap_day_data is None:
        uniswap_day_data = UniswapDayData(
            id=day_key,
            chain_id=chain_id,
            date=get_day_start_timestamp(day_id),
            tvl_usd=factory.total_value_locked_usd,
            tx_count=factory.tx_count,
        )

    changes = {
        "tvl_usd": factory.total_value_locked_usd,
        "tx_count": factory.tx_count,
    }
    if volume is not None:
        changes.update(
            volume_eth=uniswap_day_data.volume_eth + volume.amount_eth_tracked,
            volume_usd=uniswap_day_data.volume_usd + volume.amount_usd_tracked,
            volume_usd_untracked=uniswap_day_data.volume_usd_untracked + volume.amount_usd_untracked,
            fees_usd=uniswap_day_data.fees_usd + volume.fees_usd,
        )

    uniswap_day_data = uniswap_day_data.replace(**changes)
    await store.set(uniswap_day_data)
    return uniswap_day_data


def _new_pool_bucket(bucket_type: Type[PoolBucket], bucket_key: str, start: int, pool: Pool) -> PoolBucket:
    window = {"date": start} if bucket_type is PoolDayData else {"period_start_unix": start}
    return bucket_type(
        id=bucket_key,
        pool_id=pool.id,
        open=pool.token0_price,
        high=pool.token0_price,
        low=pool.token0_price,
        close=pool.token0_price,
        liquidity=pool.liquidity,
        sqrt_price=pool.sqrt_price,
        token0_price=pool.token0_price,
        token1_price=pool.token1_price,
        tick=pool.tick,
        tvl_usd=pool.total_value_locked_usd,
        **window,
    )


def _roll_pool_bucket(bucket: PoolBucket, pool: Pool, volume: Optional[SwapVolume]) -> PoolBucket:
    changes = _ohlc(bucket, pool.token0_price)
    changes.update(
        liquidity=pool.liquidity,
        sqrt_price=pool.sqrt_price,
        token0_price=pool.token0_price,
        token1_price=pool.token1_price,
        tick=pool.tick,
        tvl_usd=pool.total_value_locked_usd,
        tx_count=bucket.tx_count + 1,
    )
    if volume is not None:
        changes.update(
            volume_usd=bucket.volume_usd + volume.amount_usd_tracked,
            volume_token0=bucket.volume_token0 + volume.amount0_abs,
            volume_token1=bucket.volume_token1 + volume.amount1_abs,
            fees_usd=bucket.fees_usd + volume.fees_usd,
        )
    return bucket.replace(**changes)


async def update_pool_day_data(
    store: EntityStore, pool: Pool, timestamp: int, volume: Optional[SwapVolume] = None
) -> PoolDayData:
    day_id = get_day_id(timestamp)
    day_pool_id = bucket_id(pool.id, day_id)

    pool_day_data = await store.get(PoolDayData, day_pool_id)
    if pool_day_data is None:
        pool_day_data = _new_pool_bucket(
            PoolDayData, day_pool_id, get_day_start_timestamp(day_id), pool
        )

    pool_day_data = _roll_pool_bucket(pool_day_data, pool, volume)
    await store.set(pool_day_data)
    return pool_day_data


async def update_pool_hour_data(
    store: EntityStore, pool: Pool, timestamp: int, volume: Optional[SwapVolume] = None
) -> PoolHourData:
    hour_index = get_hour_index(timestamp)
    hour_pool_id = bucket_id(pool.id, hour_index)

    pool_hour_data = await store.get(PoolHourData, hour_pool_id)
    if pool_hour_data is None:
        pool_hour_data = _new_pool_bucket(
            PoolHourData, hour_pool_id, get_hour_start_unix(hour_index), pool
        )

    pool_hour_data = _roll_pool_bucket(pool_hour_data, pool, volume)
    await store.set(pool_hour_data)
    return pool_hour_data


def _new_token_bucket(
    bucket_type: Type[TokenBucket], bucket_key: str, start: int, token: Token, token_price: Decimal
) -> TokenBucket:
    window = {"date": start} if bucket_type is TokenDayData else {"period_start_unix": start}
    return bucket_type(
        id=bucket_key,
        token_id=token.id,
        open=token_price,
        high=token_price,
        low=token_price,
        close=token_price,
        price_usd=token_price,
        total_value_locked=token.total_value_locked,
        total_value_locked_usd=token.total_value_locked_usd,
        **window,
    )


def _roll_token_bucket(
    bucket: TokenBucket,
    token: Token,
    token_price: Decimal,
    volume: Optional[SwapVolume],
    token_amount: Decimal,
) -> TokenBucket:
    changes = _ohlc(bucket, token_price)
    changes.update(
        price_usd=token_price,
        total_value_locked=token.total_value_locked,
        total_value_locked_usd=token.total_value_locked_usd,
    )
    if volume is not None:
        changes.update(
            volume=bucket.volume + token_amount,
            volume_usd=bucket.volume_usd + volume.amount_usd_tracked,
            untracked_volume_usd=bucket.untracked_volume_usd + volume.amount_usd_untracked,
            fees_usd=bucket.fees_usd + volume.fees_usd,
        )
    return bucket.replace(**changes)


async def update_token_day_data(
    store: EntityStore,
    token: Token,
    bundle: Bundle,
    timestamp: int,
    volume: Optional[SwapVolume] = None,
    token_amount: Decimal = ZERO_BD,
) -> TokenDayData:
    day_id = get_day_id(timestamp)
    token_day_id = bucket_id(token.id, day_id)
    token_price = token.derived_eth * bundle.eth_price_usd

    token_day_data = await store.get(TokenDayData, token_day_id)
    if token_day_data is None:
        token_day_data = _new_token_bucket(
            TokenDayData, token_day_id, get_day_start_timestamp(day_id), token, token_price
        )

    token_day_data = _roll_token_bucket(token_day_data, token, token_price, volume, token_amount)
    await store.set(token_day_data)
    return token_day_data


async def update_token_hour_data(
    store: EntityStore,
    token: Token,
    bundle: Bundle,
    timestamp: int,
    volume: Optional[SwapVolume] = None,
    token_amount: Decimal = ZERO_BD,
) -> TokenHourData:
    hour_index = get_hour_index(timestamp)
    token_hour_id = bucket_id(token.id, hour_index)
    token_price = token.derived_eth * bundle.eth_price_usd

    token_hour_data = await store.get(TokenHourData, token_hour_id)
    if token_hour_data is None:
        token_hour_data = _new_token_bucket(
            TokenHourData, token_hour_id, get_hour_start_unix(hour_index), token, token_price
        )

    token_hour_data = _roll_token_bucket(token_hour_data, token, token_price, volume, token_amount)
    await store.set(token_hour_data)
    return token_hour_data


async def update_interval_data(
    store: EntityStore,
    chain_id: int,
    factory: Factory,
    pool: Pool,
    token0: Token,
    token1: Token,
    bundle: Bundle,
    timestamp: int,
    volume: Optional[SwapVolume] = None,
) -> Tuple[
    UniswapDayData, PoolDayData, PoolHourData, TokenDayData, TokenDayData, TokenHourData, TokenHourData
]:
    """
    Refresh every bucket touched by a pool event.

    Each bucket has its own key, so the seven updates are independent.
    """
    amount0 = volume.amount0_abs if volume is not None else ZERO_BD
    amount1 = volume.amount1_abs if volume is not None else ZERO_BD
    return await asyncio.gather(
        update_uniswap_day_data(store, chain_id, factory, timestamp, volume),
        update_pool_day_data(store, pool, timestamp, volume),
        update_pool_hour_data(store, pool, timestamp, volume),
        update_token_day_data(store, token0, bundle, timestamp, volume, amount0),
        update_token_day_data(store, token1, bundle, timestamp, volume, amount1),
        update_token_hour_data(store, token0, bundle, timestamp, volume, amount0),
        update_token_hour_data(store, token1, bundle, timestamp, volume, amount1),
    )
