"""Routes package."""

from observation_store.api.routes.health import router as health_router
from observation_store.api.routes.observations import router as observations_router

__all__ = [
    "health_router",
    "observations_router",
]
