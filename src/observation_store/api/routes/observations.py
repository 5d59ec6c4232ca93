"""Observation and chunk API routes."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Response, status

from observation_store.api.schemas import (
    ChunkRequestSchema,
    ChunkResponseSchema,
    ChunkSchema,
    IngestResponseSchema,
    IngestTextRequestSchema,
    ObservationSchema,
)
from observation_store.errors import ValidationError
from observation_store.ingestion import ObservationService
from observation_store.models.ids import ObservationId

router = APIRouter(prefix="/observations", tags=["observations"])


# Dependency injection placeholder - will be set by app factory
_service: ObservationService | None = None


def get_observation_service() -> ObservationService:
    """Dependency to get the observation service."""
    if _service is None:
        raise HTTPException(status_code=503, detail="Observation service not initialized")
    return _service


def set_observation_service(service: ObservationService | None):
    """Set the observation service instance."""
    global _service
    _service = service


@router.post("", response_model=IngestResponseSchema)
async def ingest_text(
    request: IngestTextRequestSchema,
    response: Response,
    service: ObservationService = Depends(get_observation_service),
):
    """
    Ingest a text observation.

    Returns 201 when stored, 200 when identical content already existed.
    """
    try:
        observation_id, inserted = await service.ingest_text(
            request.content,
            title=request.title,
            source_url=request.source_url,
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    response.status_code = status.HTTP_201_CREATED if inserted else status.HTTP_200_OK
    return IngestResponseSchema(id=observation_id, inserted=inserted)


@router.get("/{observation_id}", response_model=ObservationSchema)
async def get_observation(
    observation_id: uuid.UUID,
    service: ObservationService = Depends(get_observation_service),
):
    obs = await service.get_observation(ObservationId.from_uuid(observation_id))
    if obs is None:
        raise HTTPException(status_code=404, detail="Observation not found")
    return ObservationSchema.from_model(obs)


@router.post("/{observation_id}/chunks", response_model=ChunkResponseSchema)
async def chunk_observation(
    observation_id: uuid.UUID,
    request: ChunkRequestSchema,
    service: ObservationService = Depends(get_observation_service),
):
    """Re-chunk an observation, replacing any previous chunk rows."""
    try:
        count = await service.chunk_observation(
            ObservationId.from_uuid(observation_id), request.chunk_size
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    if count is None:
        raise HTTPException(status_code=404, detail="Observation not found")
    return ChunkResponseSchema(chunk_count=count)


@router.get("/{observation_id}/chunks", response_model=list[ChunkSchema])
async def list_chunks(
    observation_id: uuid.UUID,
    service: ObservationService = Depends(get_observation_service),
):
    """Chunks in ascending index order."""
    chunks = await service.list_chunks(ObservationId.from_uuid(observation_id))
    return [ChunkSchema.from_model(c) for c in chunks]
