"""
Async event processor.

Applies decoded events to an entity store:
- one transition per event kind
- each event applied all-or-nothing through a StagedEntityStore
- events of one chain strictly in (block, log index) order
- different chains concurrently
"""
import asyncio
import logging
from collections import defaultdict
from decimal import localcontext
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Type

from indexer.exceptions import EventProcessingError
from indexer.handlers import (
    HandlerContext,
    handle_burn,
    handle_collect,
    handle_initialize,
    handle_mint,
    handle_pool_created,
    handle_swap,
)
from indexer.models.config import ChainConfigTable
from indexer.models.entities import Entity
from indexer.models.events import (
    BurnEvent,
    CollectEvent,
    Event,
    InitializeEvent,
    MintEvent,
    PoolCreatedEvent,
    SwapEvent,
)
from indexer.repositories.store import EntityStore, StagedEntityStore
from indexer.services.token import TokenMetadataResolver
from indexer.utils.math import DECIMAL_CONTEXT

logger = logging.getLogger(__name__)

Handler = Callable[[Event, HandlerContext], Awaitable[bool]]


class EventProcessor:
    """
    Dispatches events to their transitions and commits the results.
    """

    HANDLERS: Dict[Type[Event], Handler] = {
        PoolCreatedEvent: handle_pool_created,
        InitializeEvent: handle_initialize,
        MintEvent: handle_mint,
        BurnEvent: handle_burn,
        CollectEvent: handle_collect,
        SwapEvent: handle_swap,
    }

    def __init__(
        self,
        store: EntityStore,
        chains: ChainConfigTable,
        metadata_resolver: Optional[TokenMetadataResolver] = None,
    ):
        """
        Initialize the processor.

        Args:
            store: Store every committed snapshot is written to
            chains: Read-only per-chain configuration
            metadata_resolver: Resolver for tokens first seen in PoolCreated
        """
        self.store = store
        self.chains = chains
        self.metadata_resolver = metadata_resolver

    async def process(self, event: Event) -> List[Entity]:
        """
        Apply a single event.

        Returns:
            Snapshots committed for the event (empty if it was skipped)

        Raises:
            EventProcessingError: The transition failed and nothing was written
        """
        staged = StagedEntityStore(self.store)
        try:
            handler = self.HANDLERS[type(event)]
            context = HandlerContext(
                store=staged,
                chain=self.chains.get(event.chain_id),
                metadata_resolver=self.metadata_resolver,
            )
            with localcontext(DECIMAL_CONTEXT):
                applied = await handler(event, context)
        except Exception as e:
            staged.discard()
            logger.error(
                f"Error applying {type(event).__name__} at block {event.block_number} "
                f"log {event.log_index} on chain {event.chain_id}: {e}",
                exc_info=True,
            )
            raise EventProcessingError(event, e) from e

        if not applied:
            staged.discard()
            return []

        return await staged.commit()

    async def process_chain(self, events: Iterable[Event]) -> int:
        """
        Apply one chain's events in (block, log index) order.

        Returns:
            Number of events applied
        """
        applied = 0
        for event in sorted(events, key=lambda e: e.order_key):
            if await self.process(event):
                applied += 1
        return applied

    async def run(self, events: Iterable[Event]) -> Dict[int, int]:
        """
        Apply events from any number of chains, chains concurrently.

        A failure on one chain halts the others; every chain has stopped by
        the time the error is raised.

        Returns:
            Chain id to number of events applied
        """
        by_chain: Dict[int, List[Event]] = defaultdict(list)
        for event in events:
            by_chain[event.chain_id].append(event)

        chain_ids = sorted(by_chain)
        tasks = [
            asyncio.ensure_future(self.process_chain(by_chain[chain_id]))
            for chain_id in chain_ids
        ]
        try:
            results = await asyncio.gather(*tasks)
        except Exception:
            logger.error("Halting all chains after a fatal event failure")
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        summary = dict(zip(chain_ids, results))
        for chain_id, applied in summary.items():
            logger.info(
                f"Chain {chain_id}: applied {applied} of {len(by_chain[chain_id])} events"
            )
        return summary
