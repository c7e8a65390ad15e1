"""
Entity snapshots, event inputs and chain configuration models.

The Tortoise table lives in indexer.models.snapshots and is imported only by
the persistent store.
"""
from indexer.models.config import ChainConfig, ChainConfigTable, TokenOverride
from indexer.models.entities import (
    Bundle,
    Burn,
    Collect,
    Entity,
    Factory,
    Mint,
    Pool,
    PoolDayData,
    PoolHourData,
    Swap,
    Tick,
    Token,
    TokenDayData,
    TokenHourData,
    Transaction,
    UniswapDayData,
)
from indexer.models.events import (
    BurnEvent,
    CollectEvent,
    Event,
    InitializeEvent,
    MintEvent,
    PoolCreatedEvent,
    SwapEvent,
    parse_event,
)

__all__ = [
    # Configuration
    "ChainConfig",
    "ChainConfigTable",
    "TokenOverride",
    # Entities
    "Entity",
    "Factory",
    "Bundle",
    "Token",
    "Pool",
    "Tick",
    "Transaction",
    "Mint",
    "Burn",
    "Collect",
    "Swap",
    "UniswapDayData",
    "PoolDayData",
    "PoolHourData",
    "TokenDayData",
    "TokenHourData",
    # Events
    "Event",
    "PoolCreatedEvent",
    "InitializeEvent",
    "MintEvent",
    "BurnEvent",
    "CollectEvent",
    "SwapEvent",
    "parse_event",
]
