"""Async persistence facade: connection pool, schema and transactional operations."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from observation_store.errors import StoreError
from observation_store.models.chunk import Chunk
from observation_store.models.ids import ObservationId
from observation_store.models.observation import Observation
from observation_store.observability import STORAGE_LATENCY
from observation_store.storage.database import create_engine, create_session_factory, migrate
from observation_store.storage.repositories import ChunkRepository, ObservationRepository

logger = structlog.get_logger()


class ObservationStore:
    """
    Storage for observations and their chunks.

    Every public method runs in its own transaction on a pooled connection.
    There is no in-process locking: deduplication relies on the unique
    content_hash constraint, and concurrent re-chunking of one observation
    must be serialized by the caller.
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._session_factory = create_session_factory(engine)

    @classmethod
    async def connect(cls, database_url: str | None = None, **engine_kwargs) -> ObservationStore:
        """Create the engine and check that the database answers."""
        engine = create_engine(database_url, **engine_kwargs)
        store = cls(engine)
        try:
            async with store._transaction("connect") as session:
                await session.execute(text("SELECT 1"))
        except StoreError:
            await engine.dispose()
            raise
        logger.info("store_connected", dialect=engine.dialect.name)
        return store

    async def migrate(self) -> None:
        """Create the schema. Call once at startup."""
        await migrate(self.engine)
        logger.info("schema_migrated")

    async def close(self) -> None:
        await self.engine.dispose()

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[AsyncSession]:
        """Session wrapped in one transaction; driver errors become StoreError."""
        with STORAGE_LATENCY.labels(operation=operation).time():
            try:
                async with self._session_factory() as session:
                    async with session.begin():
                        yield session
            except SQLAlchemyError as exc:
                logger.error("storage_error", operation=operation, error=str(exc))
                raise StoreError(f"{operation} failed: {exc}") from exc

    async def upsert_observation(self, observation: Observation) -> tuple[ObservationId, bool]:
        """Store an observation unless its content is already stored."""
        async with self._transaction("upsert_observation") as session:
            return await ObservationRepository(session).upsert(observation)

    async def get_observation(self, observation_id: ObservationId) -> Observation | None:
        async with self._transaction("get_observation") as session:
            return await ObservationRepository(session).get(observation_id)

    async def upsert_chunks(self, chunks: list[Chunk]) -> int:
        """
        Atomically insert or overwrite a batch of chunks.

        Either every row of the batch becomes visible or none does. An
        OutOfRangeError for any chunk rolls back the whole batch.
        """
        async with self._transaction("upsert_chunks") as session:
            return await ChunkRepository(session).upsert_many(chunks)

    async def list_chunks(self, observation_id: ObservationId) -> list[Chunk]:
        """Chunks of an observation in ascending index order."""
        async with self._transaction("list_chunks") as session:
            return await ChunkRepository(session).get_by_observation(observation_id)

    async def count_chunks(self, observation_id: ObservationId) -> int:
        async with self._transaction("count_chunks") as session:
            return await ChunkRepository(session).count_by_observation(observation_id)
