"""
Context handed to every event transition.
"""
from typing import Optional

from indexer.models.config import ChainConfig
from indexer.models.entities import Bundle
from indexer.repositories.store import StagedEntityStore
from indexer.services.token import TokenMetadataResolver


class HandlerContext:
    """
    Store and read-only configuration for one event.

    `store` buffers every write of the transition; the processor commits it
    only after the transition returns.
    """

    def __init__(
        self,
        store: StagedEntityStore,
        chain: ChainConfig,
        metadata_resolver: Optional[TokenMetadataResolver] = None,
    ):
        self.store = store
        self.chain = chain
        self.metadata_resolver = metadata_resolver

    @property
    def bundle_id(self) -> str:
        return str(self.chain.chain_id)

    @property
    def factory_id(self) -> str:
        return self.chain.factory_address

    async def get_bundle(self) -> Optional[Bundle]:
        return await self.store.get(Bundle, self.bundle_id)
