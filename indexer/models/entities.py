"""
Entity snapshots derived from pool events.

Every entity is an immutable pydantic model. Transitions never mutate a
snapshot; they build the next one with `replace()` and write the whole
snapshot back through the entity store.
"""
from decimal import Decimal
from typing import ClassVar, Dict, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict

ZERO = Decimal(0)
ONE = Decimal(1)
ADDRESS_ZERO = "0x0000000000000000000000000000000000000000"


class Entity(BaseModel):
    """Base class for all stored snapshots."""

    model_config = ConfigDict(frozen=True)

    entity_type: ClassVar[str] = "Entity"

    id: str

    def replace(self, **changes):
        """Return a validated copy of this snapshot with `changes` applied."""
        return self.model_validate({**self.model_dump(), **changes})


class Factory(Entity):
    """Protocol-wide aggregate, one per chain."""

    entity_type: ClassVar[str] = "Factory"

    pool_count: int = 0
    tx_count: int = 0
    total_volume_usd: Decimal = ZERO
    total_volume_eth: Decimal = ZERO
    total_fees_usd: Decimal = ZERO
    total_fees_eth: Decimal = ZERO
    untracked_volume_usd: Decimal = ZERO
    total_value_locked_usd: Decimal = ZERO
    total_value_locked_eth: Decimal = ZERO
    total_value_locked_usd_untracked: Decimal = ZERO
    total_value_locked_eth_untracked: Decimal = ZERO
    owner: str = ADDRESS_ZERO


class Bundle(Entity):
    """Native asset USD price, keyed by chain id."""

    entity_type: ClassVar[str] = "Bundle"

    eth_price_usd: Decimal = ZERO


class Token(Entity):
    entity_type: ClassVar[str] = "Token"

    symbol: str
    name: str
    decimals: int
    total_supply: int = 0
    volume: Decimal = ZERO
    volume_usd: Decimal = ZERO
    untracked_volume_usd: Decimal = ZERO
    fees_usd: Decimal = ZERO
    tx_count: int = 0
    pool_count: int = 0
    total_value_locked: Decimal = ZERO
    total_value_locked_usd: Decimal = ZERO
    total_value_locked_usd_untracked: Decimal = ZERO
    derived_eth: Decimal = ZERO
    whitelist_pools: Tuple[str, ...] = ()


class Pool(Entity):
    entity_type: ClassVar[str] = "Pool"

    token0_id: str
    token1_id: str
    fee_tier: int
    created_at_timestamp: int
    created_at_block_number: int
    liquidity_provider_count: int = 0
    tx_count: int = 0
    liquidity: int = 0
    sqrt_price: int = 0
    token0_price: Decimal = ZERO
    token1_price: Decimal = ZERO
    # None until the pool is initialized
    tick: Optional[int] = None
    observation_index: int = 0
    volume_token0: Decimal = ZERO
    volume_token1: Decimal = ZERO
    volume_usd: Decimal = ZERO
    untracked_volume_usd: Decimal = ZERO
    fees_usd: Decimal = ZERO
    collected_fees_token0: Decimal = ZERO
    collected_fees_token1: Decimal = ZERO
    collected_fees_usd: Decimal = ZERO
    total_value_locked_token0: Decimal = ZERO
    total_value_locked_token1: Decimal = ZERO
    total_value_locked_eth: Decimal = ZERO
    total_value_locked_usd: Decimal = ZERO
    total_value_locked_usd_untracked: Decimal = ZERO

    @property
    def is_initialized(self) -> bool:
        return self.tick is not None

    def tick_in_range(self, tick_lower: int, tick_upper: int) -> bool:
        """Whether the current tick lies in [tick_lower, tick_upper)."""
        return self.tick is not None and tick_lower <= self.tick < tick_upper


class Tick(Entity):
    """Liquidity bookkeeping at one tick boundary, keyed `pool#tickIdx`."""

    entity_type: ClassVar[str] = "Tick"

    pool_id: str
    tick_idx: int
    liquidity_gross: int = 0
    liquidity_net: int = 0
    price0: Decimal = ONE
    price1: Decimal = ONE
    created_at_timestamp: int
    created_at_block_number: int


class Transaction(Entity):
    entity_type: ClassVar[str] = "Transaction"

    block_number: int
    timestamp: int
    # Gas accounting needs receipts, which the event stream does not carry
    gas_used: int = 0
    gas_price: int = 0


class Mint(Entity):
    entity_type: ClassVar[str] = "Mint"

    transaction_id: str
    timestamp: int
    pool_id: str
    token0_id: str
    token1_id: str
    owner: str
    sender: Optional[str] = None
    origin: str
    amount: int
    amount0: Decimal
    amount1: Decimal
    amount_usd: Decimal
    tick_lower: int
    tick_upper: int
    log_index: int


class Burn(Entity):
    entity_type: ClassVar[str] = "Burn"

    transaction_id: str
    timestamp: int
    pool_id: str
    token0_id: str
    token1_id: str
    owner: str
    origin: str
    amount: int
    amount0: Decimal
    amount1: Decimal
    amount_usd: Decimal
    tick_lower: int
    tick_upper: int
    log_index: int


class Collect(Entity):
    entity_type: ClassVar[str] = "Collect"

    transaction_id: str
    timestamp: int
    pool_id: str
    owner: str
    amount0: Decimal
    amount1: Decimal
    amount_usd: Decimal
    tick_lower: int
    tick_upper: int
    log_index: int


class Swap(Entity):
    entity_type: ClassVar[str] = "Swap"

    transaction_id: str
    timestamp: int
    pool_id: str
    token0_id: str
    token1_id: str
    sender: str
    recipient: str
    origin: str
    amount0: Decimal
    amount1: Decimal
    amount_usd: Decimal
    sqrt_price_x96: int
    tick: int
    log_index: int


class UniswapDayData(Entity):
    """Protocol-wide daily bucket for one chain, keyed by `chainId-dayId`."""

    entity_type: ClassVar[str] = "UniswapDayData"

    chain_id: int
    date: int
    volume_eth: Decimal = ZERO
    volume_usd: Decimal = ZERO
    volume_usd_untracked: Decimal = ZERO
    fees_usd: Decimal = ZERO
    tx_count: int = 0
    tvl_usd: Decimal = ZERO


class _PoolBucket(Entity):
    pool_id: str
    liquidity: int
    sqrt_price: int
    token0_price: Decimal
    token1_price: Decimal
    tick: Optional[int] = None
    tvl_usd: Decimal
    volume_token0: Decimal = ZERO
    volume_token1: Decimal = ZERO
    volume_usd: Decimal = ZERO
    fees_usd: Decimal = ZERO
    tx_count: int = 0
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal


class PoolDayData(_PoolBucket):
    entity_type: ClassVar[str] = "PoolDayData"

    date: int


class PoolHourData(_PoolBucket):
    entity_type: ClassVar[str] = "PoolHourData"

    period_start_unix: int


class _TokenBucket(Entity):
    token_id: str
    volume: Decimal = ZERO
    volume_usd: Decimal = ZERO
    untracked_volume_usd: Decimal = ZERO
    total_value_locked: Decimal
    total_value_locked_usd: Decimal
    price_usd: Decimal
    fees_usd: Decimal = ZERO
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal


class TokenDayData(_TokenBucket):
    entity_type: ClassVar[str] = "TokenDayData"

    date: int


class TokenHourData(_TokenBucket):
    entity_type: ClassVar[str] = "TokenHourData"

    period_start_unix: int


ENTITY_TYPES: Dict[str, Type[Entity]] = {
    cls.entity_type: cls
    for cls in (
        Factory,
        Bundle,
        Token,
        Pool,
        Tick,
        Transaction,
        Mint,
        Burn,
        Collect,
        Swap,
        UniswapDayData,
        PoolDayData,
        PoolHourData,
        TokenDayData,
        TokenHourData,
    )
}
