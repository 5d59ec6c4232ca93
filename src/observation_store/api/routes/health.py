"""Health and metrics API routes."""

import structlog
from fastapi import APIRouter, Depends, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from observation_store.api.routes.observations import get_observation_service
from observation_store.api.schemas import HealthResponseSchema
from observation_store.ingestion import ObservationService
from observation_store.observability import get_metrics

logger = structlog.get_logger()

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponseSchema)
async def health_check(service: ObservationService = Depends(get_observation_service)):
    """Health check endpoint. Pings the database."""
    try:
        async with service.store.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        database = "ok"
    except (SQLAlchemyError, OSError) as e:
        logger.warning("health_check_failed", error=str(e))
        database = "unavailable"

    return HealthResponseSchema(
        status="healthy" if database == "ok" else "degraded",
        database=database,
    )


@router.get("/metrics")
async def metrics():
    """Get Prometheus metrics."""
    data, content_type = get_metrics()
    return Response(content=data, media_type=content_type)
