"""FastAPI application factory."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from observation_store.api.routes import health_router, observations_router
from observation_store.api.routes.observations import set_observation_service
from observation_store.config import get_settings
from observation_store.ingestion import ObservationService
from observation_store.observability import configure_logging
from observation_store.storage import ObservationStore


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    configure_logging()
    store = await ObservationStore.connect(get_settings().database_url)
    await store.migrate()
    set_observation_service(ObservationService(store))

    yield

    # Shutdown
    set_observation_service(None)
    await store.close()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="observation-store",
        description="Content-addressed document ingestion and byte-offset chunking",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Register routes
    app.include_router(observations_router)
    app.include_router(health_router)

    @app.get("/")
    async def root():
        return {
            "name": "observation-store",
            "version": "0.1.0",
            "docs": "/docs",
        }

    return app


# Create app instance for uvicorn
app = create_app()
