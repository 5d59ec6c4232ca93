"""Observability package."""

from observation_store.observability.log_config import configure_logging
from observation_store.observability.metrics import (
    CHUNKS_UPSERTED,
    OBSERVATIONS_INGESTED,
    STORAGE_LATENCY,
    VALIDATION_ERRORS,
    get_metrics,
)

__all__ = [
    "CHUNKS_UPSERTED",
    "OBSERVATIONS_INGESTED",
    "STORAGE_LATENCY",
    "VALIDATION_ERRORS",
    "configure_logging",
    "get_metrics",
]
