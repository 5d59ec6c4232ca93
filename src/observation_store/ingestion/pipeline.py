"""Ingestion and chunking orchestration over the store."""

import structlog

from observation_store.errors import InvalidChunkSizeError, ValidationError
from observation_store.ingestion.chunker import ByteChunker, get_chunker
from observation_store.models.chunk import Chunk
from observation_store.models.ids import ObservationId
from observation_store.models.observation import (
    Observation,
    ObservationSpec,
    SourceKind,
    build_observation,
)
from observation_store.observability import (
    CHUNKS_UPSERTED,
    OBSERVATIONS_INGESTED,
    VALIDATION_ERRORS,
)
from observation_store.storage import ObservationStore

logger = structlog.get_logger()


class ObservationService:
    """
    Operations exposed to collaborators (CLI, HTTP API).

    Flow:
    1. Build and validate an observation (no I/O on failure)
    2. Dedup upsert by content hash
    3. Re-chunk a stored observation and replace its chunk rows
    """

    def __init__(self, store: ObservationStore, chunker: ByteChunker | None = None):
        self.store = store
        self.chunker = chunker or get_chunker()

    async def ingest(self, spec: ObservationSpec) -> tuple[ObservationId, bool]:
        """
        Validate and store an observation.

        Returns:
            (observation id, True if newly inserted, False if the content existed)
        """
        try:
            observation = build_observation(spec)
        except ValidationError as e:
            VALIDATION_ERRORS.labels(kind=type(e).__name__).inc()
            logger.warning("observation_rejected", error=str(e))
            raise

        observation_id, inserted = await self.store.upsert_observation(observation)

        OBSERVATIONS_INGESTED.labels(result="inserted" if inserted else "existing").inc()
        logger.info(
            "observation_ingested",
            observation_id=str(observation_id),
            inserted=inserted,
            content_hash=observation.content_hash.to_hex(),
            source_kind=observation.source_kind.value,
        )
        return observation_id, inserted

    async def ingest_text(
        self,
        content: str,
        title: str | None = None,
        source_url: str | None = None,
    ) -> tuple[ObservationId, bool]:
        """Ingest plain text as a ``text`` observation."""
        spec = ObservationSpec(
            content=content,
            title=title,
            source_url=source_url,
            source_kind=SourceKind.TEXT,
        )
        return await self.ingest(spec)

    async def get_observation(self, observation_id: ObservationId) -> Observation | None:
        return await self.store.get_observation(observation_id)

    async def chunk_observation(
        self, observation_id: ObservationId, chunk_size: int | None = None
    ) -> int | None:
        """
        Re-chunk a stored observation and replace its chunk rows.

        Returns:
            Number of chunks written, or None if the observation does not exist
        """
        size = self.chunker.chunk_size if chunk_size is None else chunk_size
        if size <= 0:
            VALIDATION_ERRORS.labels(kind=InvalidChunkSizeError.__name__).inc()
            raise InvalidChunkSizeError(size)

        observation = await self.store.get_observation(observation_id)
        if observation is None:
            logger.info("observation_not_found", observation_id=str(observation_id))
            return None

        chunks = self.chunker.chunk(observation, size)
        affected = await self.store.upsert_chunks(chunks)
        CHUNKS_UPSERTED.inc(affected)

        logger.info(
            "chunks_upserted",
            observation_id=str(observation_id),
            chunk_count=len(chunks),
            chunk_size=size,
            rows_affected=affected,
        )
        return len(chunks)

    async def list_chunks(self, observation_id: ObservationId) -> list[Chunk]:
        return await self.store.list_chunks(observation_id)
