"""
Entity store interface and in-process implementations.

The transitions only ever talk to an EntityStore: `get` a snapshot by type and
id, `set` a full replacement snapshot. A StagedEntityStore sits between a
transition and the real store so that an event is applied entirely or not at
all.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Tuple, Type, TypeVar

from indexer.models.entities import Entity

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Entity)

EntityKey = Tuple[str, str]


def entity_key(entity_type: Type[Entity], entity_id: str) -> EntityKey:
    return entity_type.entity_type, entity_id


class EntityStore(ABC):
    """
    Abstract base class for entity stores.

    No transactions or optimistic locking are assumed: consistency comes from
    applying each chain's events one at a time.
    """

    @abstractmethod
    async def get(self, entity_type: Type[E], entity_id: str) -> Optional[E]:
        """Load the latest snapshot, or None if absent."""
        pass

    @abstractmethod
    async def set(self, entity: Entity) -> None:
        """Replace the stored snapshot with `entity`."""
        pass

    async def get_many(self, entity_type: Type[E], entity_ids: Iterable[str]) -> List[Optional[E]]:
        """Load several snapshots of one type concurrently."""
        return list(
            await asyncio.gather(*(self.get(entity_type, entity_id) for entity_id in entity_ids))
        )

    async def set_many(self, entities: Iterable[Entity]) -> None:
        """Write several snapshots in order."""
        for entity in entities:
            await self.set(entity)


class InMemoryEntityStore(EntityStore):
    """Dictionary-backed store for tests and dry runs."""

    def __init__(self):
        self._entities: Dict[EntityKey, Entity] = {}

    async def get(self, entity_type: Type[E], entity_id: str) -> Optional[E]:
        return self._entities.get(entity_key(entity_type, entity_id))

    async def set(self, entity: Entity) -> None:
        self._entities[entity_key(type(entity), entity.id)] = entity

    def all(self, entity_type: Type[E]) -> List[E]:
        """All snapshots of one type, in first-write order."""
        return [
            entity
            for (type_name, _), entity in self._entities.items()
            if type_name == entity_type.entity_type
        ]

    def __len__(self) -> int:
        return len(self._entities)


class StagedEntityStore(EntityStore):
    """
    Per-event unit of work.

    Reads fall through to the backing store unless the snapshot was already
    written during this event; writes are buffered until `commit()`.
    """

    def __init__(self, backing: EntityStore):
        self.backing = backing
        self._pending: Dict[EntityKey, Entity] = {}

    async def get(self, entity_type: Type[E], entity_id: str) -> Optional[E]:
        key = entity_key(entity_type, entity_id)
        if key in self._pending:
            return self._pending[key]
        return await self.backing.get(entity_type, entity_id)

    async def set(self, entity: Entity) -> None:
        key = entity_key(type(entity), entity.id)
        # Keep the buffer in last-write order
        self._pending.pop(key, None)
        self._pending[key] = entity

    @property
    def pending(self) -> List[Entity]:
        return list(self._pending.values())

    async def commit(self) -> List[Entity]:
        """
        Flush buffered snapshots to the backing store.

        Returns:
            The snapshots written, in write order
        """
        written = self.pending
        if written:
            await self.backing.set_many(written)
            logger.debug(f"Committed {len(written)} snapshots")
        self._pending.clear()
        return written

    def discard(self) -> None:
        self._pending.clear()
