"""
Persistent entity store backed by Tortoise ORM.

Uses Tortoise ORM for async database operations.
Includes retry logic for transient failures.
"""
import asyncio
import logging
from functools import wraps
from typing import Iterable, List, Optional, Type

from tortoise.exceptions import DBConnectionError, OperationalError
from tortoise.transactions import in_transaction

from indexer.models.entities import ENTITY_TYPES, Entity
from indexer.models.snapshots import EntitySnapshot
from indexer.repositories.store import E, EntityStore
from indexer.utils.env import DB_MAX_RETRIES

logger = logging.getLogger(__name__)

# Retry configuration
MAX_RETRIES = DB_MAX_RETRIES
RETRY_DELAY_BASE = 1.0  # Base delay in seconds (exponential backoff)
RETRYABLE_ERRORS = (
    DBConnectionError,
    OperationalError,
    ConnectionError,
    TimeoutError,
)


def retry_on_db_error(func):
    """
    Decorator that retries async database operations on transient failures.
    Uses exponential backoff.
    """

    @wraps(func)
    async def wrapper(*args, **kwargs):
        last_exception = None
        for attempt in range(MAX_RETRIES):
            try:
                return await func(*args, **kwargs)
            except RETRYABLE_ERRORS as e:
                last_exception = e
                delay = RETRY_DELAY_BASE * (2**attempt)
                logger.warning(
                    f"Database operation failed (attempt {attempt + 1}/{MAX_RETRIES}): {e}. "
                    f"Retrying in {delay:.1f}s..."
                )
                await asyncio.sleep(delay)
        # All retries exhausted
        logger.error(f"Database operation failed after {MAX_RETRIES} attempts")
        raise last_exception

    return wrapper


class TortoiseEntityStore(EntityStore):
    """
    Tortoise ORM implementation of the EntityStore interface.

    Snapshots are stored as JSON documents (Decimals serialized as strings)
    in the `entity_snapshots` table.

    Note: Tortoise ORM must be initialized before using this class.
    Call indexer.models.snapshots.init_db() first.
    """

    @retry_on_db_error
    async def get(self, entity_type: Type[E], entity_id: str) -> Optional[E]:
        row = await EntitySnapshot.get_or_none(
            entity_type=entity_type.entity_type, entity_id=entity_id
        )
        if row is None:
            return None
        return entity_type.model_validate(row.data)

    @retry_on_db_error
    async def set(self, entity: Entity) -> None:
        await EntitySnapshot.update_or_create(
            entity_type=entity.entity_type,
            entity_id=entity.id,
            defaults={"data": entity.model_dump(mode="json")},
        )

    @retry_on_db_error
    async def set_many(self, entities: Iterable[Entity]) -> None:
        """Write all snapshots of one event in a single database transaction."""
        entities = list(entities)
        async with in_transaction() as connection:
            for entity in entities:
                await EntitySnapshot.update_or_create(
                    entity_type=entity.entity_type,
                    entity_id=entity.id,
                    defaults={"data": entity.model_dump(mode="json")},
                    using_db=connection,
                )

    @retry_on_db_error
    async def all(self, entity_type: Type[E]) -> List[E]:
        rows = await EntitySnapshot.filter(entity_type=entity_type.entity_type).order_by("id")
        return [entity_type.model_validate(row.data) for row in rows]

    @retry_on_db_error
    async def count(self, entity_type_name: Optional[str] = None) -> int:
        query = EntitySnapshot.all()
        if entity_type_name is not None:
            if entity_type_name not in ENTITY_TYPES:
                raise ValueError(f"Unknown entity type {entity_type_name}")
            query = query.filter(entity_type=entity_type_name)
        return await query.count()

    async def test_connection(self) -> bool:
        """
        Test if the database connection is working.

        Returns:
            True if connection successful, False otherwise
        """
        try:
            await EntitySnapshot.all().count()
            return True
        except Exception as e:
            logger.error(f"Database connection test failed: {e}")
            return False
