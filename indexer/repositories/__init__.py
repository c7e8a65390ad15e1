from indexer.repositories.store import EntityStore, InMemoryEntityStore, StagedEntityStore

__all__ = [
    "EntityStore",
    "InMemoryEntityStore",
    "StagedEntityStore",
]
