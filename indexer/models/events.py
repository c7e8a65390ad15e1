"""
Decoded pool and factory events as delivered by the event stream.
"""
from typing import Any, Dict, Optional, Type

from pydantic import BaseModel, Field, field_validator

from indexer.models.config import normalize_address


class EventParams(BaseModel):
    """Base class for event-specific parameters."""


class PoolCreatedParams(EventParams):
    pool: str
    token0: str
    token1: str
    fee: int = Field(..., description="Fee tier in hundredths of a bip")
    tick_spacing: Optional[int] = None

    @field_validator("pool", "token0", "token1")
    @classmethod
    def lower_address(cls, value: str) -> str:
        return normalize_address(value)


class InitializeParams(EventParams):
    sqrt_price_x96: int
    tick: int


class MintParams(EventParams):
    owner: str
    sender: Optional[str] = None
    amount: int = Field(..., ge=0, description="Liquidity added")
    amount0: int
    amount1: int
    tick_lower: int
    tick_upper: int


class BurnParams(EventParams):
    owner: str
    amount: int = Field(..., ge=0, description="Liquidity removed")
    amount0: int
    amount1: int
    tick_lower: int
    tick_upper: int


class CollectParams(EventParams):
    owner: str
    recipient: Optional[str] = None
    amount0: int
    amount1: int
    tick_lower: int
    tick_upper: int


class SwapParams(EventParams):
    sender: str
    recipient: str
    amount0: int
    amount1: int
    sqrt_price_x96: int
    liquidity: int
    tick: int


class Event(BaseModel):
    """Envelope shared by every event."""

    chain_id: int
    src_address: str
    block_number: int
    block_timestamp: int
    transaction_hash: str
    transaction_from: str
    log_index: int

    @field_validator("src_address", "transaction_from")
    @classmethod
    def lower_address(cls, value: str) -> str:
        return normalize_address(value)

    @property
    def order_key(self):
        """Position in the chain's event order."""
        return self.block_number, self.log_index


class PoolCreatedEvent(Event):
    params: PoolCreatedParams


class InitializeEvent(Event):
    params: InitializeParams


class MintEvent(Event):
    params: MintParams


class BurnEvent(Event):
    params: BurnParams


class CollectEvent(Event):
    params: CollectParams


class SwapEvent(Event):
    params: SwapParams


EVENT_TYPES: Dict[str, Type[Event]] = {
    "PoolCreated": PoolCreatedEvent,
    "Initialize": InitializeEvent,
    "Mint": MintEvent,
    "Burn": BurnEvent,
    "Collect": CollectEvent,
    "Swap": SwapEvent,
}


def parse_event(data: Dict[str, Any]) -> Event:
    """
    Build an event model from a decoded log dictionary.

    Args:
        data: Dictionary with an `event` key naming the kind plus the
            envelope and `params` fields

    Returns:
        The matching Event subclass instance
    """
    data = dict(data)
    kind = data.pop("event", None)
    if kind not in EVENT_TYPES:
        raise ValueError(f"Unknown event kind {kind!r}")
    return EVENT_TYPES[kind].model_validate(data)
