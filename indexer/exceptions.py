"""
Error taxonomy for the indexer.

Only structural failures are raised out of a transition. Soft failures
(metadata lookups, zero prices) are absorbed where they occur.
"""
from typing import Optional


class IndexerError(Exception):
    """Base class for all indexer errors."""


class MissingEntityError(IndexerError, LookupError):
    """A snapshot the event stream implies must exist was not found."""

    def __init__(self, entity_type: str, entity_id: str, chain_id: Optional[int] = None):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.chain_id = chain_id
        message = f"Missing data: {entity_type} {entity_id} not found"
        if chain_id is not None:
            message += f" for chain {chain_id}"
        super().__init__(message)


class UnsupportedFeeTierError(IndexerError, ValueError):
    """Fee tier without a known tick spacing."""

    def __init__(self, fee_tier: int):
        self.fee_tier = fee_tier
        super().__init__(f"Unexpected fee tier {fee_tier}")


class UnknownChainError(IndexerError, KeyError):
    """No configuration registered for a chain id."""

    def __init__(self, chain_id: int):
        self.chain_id = chain_id
        super().__init__(f"No chain configuration for chain id {chain_id}")

    def __str__(self) -> str:
        return self.args[0]


class EventProcessingError(IndexerError):
    """Raised by the processor when a transition fails; nothing was committed."""

    def __init__(self, event, cause: BaseException):
        self.event = event
        self.cause = cause
        super().__init__(
            f"Failed to apply {type(event).__name__} on chain {event.chain_id} "
            f"(block {event.block_number}, log {event.log_index}): {cause}"
        )
