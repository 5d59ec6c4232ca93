"""API Pydantic schemas for request/response validation."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from observation_store.models.chunk import Chunk
from observation_store.models.ids import ChunkId, ObservationId
from observation_store.models.observation import Observation, SourceKind


# ===== Observations =====

class IngestTextRequestSchema(BaseModel):
    """Ingest text request schema."""

    content: str
    title: str | None = None
    source_url: str | None = None


class IngestResponseSchema(BaseModel):
    """Ingest response schema."""

    id: ObservationId
    inserted: bool


class ObservationSchema(BaseModel):
    """A stored observation."""

    id: ObservationId
    content_hash: str
    content: str
    title: str | None = None
    source_url: str | None = None
    source_kind: SourceKind
    created_at: datetime
    published_at: datetime | None = None

    @classmethod
    def from_model(cls, obs: Observation) -> "ObservationSchema":
        return cls(
            id=obs.id,
            content_hash=obs.content_hash.to_hex(),
            content=obs.content,
            title=obs.title,
            source_url=obs.source_url,
            source_kind=obs.source_kind,
            created_at=obs.created_at,
            published_at=obs.published_at,
        )


# ===== Chunks =====

class ChunkRequestSchema(BaseModel):
    """Chunk an observation."""

    chunk_size: int | None = Field(default=None, ge=1)


class ChunkResponseSchema(BaseModel):
    chunk_count: int


class ChunkSchema(BaseModel):
    """A single chunk."""

    id: ChunkId
    observation_id: ObservationId
    index: int
    text: str
    start_offset: int
    end_offset: int
    token_estimate: int

    @classmethod
    def from_model(cls, chunk: Chunk) -> "ChunkSchema":
        return cls(
            id=chunk.id,
            observation_id=chunk.observation_id,
            index=chunk.index,
            text=chunk.text,
            start_offset=chunk.start_offset,
            end_offset=chunk.end_offset,
            token_estimate=chunk.token_estimate,
        )


# ===== Health =====

class HealthResponseSchema(BaseModel):
    """Health check response."""

    status: Literal["healthy", "degraded"]
    database: Literal["ok", "unavailable"]
