"""
Shared fixtures: in-memory SQLite store, service and sample content.
"""

import pytest
from sqlalchemy.pool import StaticPool

from observation_store.ingestion import ByteChunker, ObservationService
from observation_store.storage import ObservationStore

MEMORY_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def store():
    """
    Migrated in-memory store, one per test.

    StaticPool keeps the single in-memory database alive across sessions.
    """
    store = await ObservationStore.connect(
        MEMORY_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await store.migrate()
    yield store
    await store.close()


@pytest.fixture
def service(store: ObservationStore) -> ObservationService:
    return ObservationService(store, chunker=ByteChunker(chunk_size=1000))


@pytest.fixture
def file_database_url(tmp_path) -> str:
    """URL of a SQLite file database under the test's temp dir."""
    return f"sqlite+aiosqlite:///{tmp_path / 'observations.db'}"
