"""Storage package."""

from observation_store.storage.database import (
    Base,
    ChunkORM,
    ObservationORM,
    create_engine,
    create_session_factory,
    migrate,
)
from observation_store.storage.repositories import (
    ChunkRepository,
    ObservationRepository,
)
from observation_store.storage.store import ObservationStore

__all__ = [
    "Base",
    "ChunkORM",
    "ChunkRepository",
    "ObservationORM",
    "ObservationRepository",
    "ObservationStore",
    "create_engine",
    "create_session_factory",
    "migrate",
]
