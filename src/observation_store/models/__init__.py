"""Models package."""

from observation_store.models.chunk import (
    DEFAULT_TOKEN_ESTIMATE,
    Chunk,
    ChunkStatus,
    Embedded,
    Raw,
)
from observation_store.models.ids import (
    ChunkId,
    ContentHash,
    EntityId,
    ObservationId,
    compute_content_hash,
)
from observation_store.models.observation import (
    Observation,
    ObservationSpec,
    SourceKind,
    build_observation,
)

__all__ = [
    "DEFAULT_TOKEN_ESTIMATE",
    "Chunk",
    "ChunkId",
    "ChunkStatus",
    "ContentHash",
    "Embedded",
    "EntityId",
    "Observation",
    "ObservationId",
    "ObservationSpec",
    "Raw",
    "SourceKind",
    "build_observation",
    "compute_content_hash",
]
