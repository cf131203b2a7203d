"""
FastAPI application entry point.

The application owns a QueueRegistry stored on ``app.state.queues``.
Queues run on the server's event loop, so jobs submitted over HTTP
execute in the same process.
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from flywheel_queue import __version__
from flywheel_queue.api.routes import health_router, queues_router
from flywheel_queue.config import Settings, get_settings
from flywheel_queue.observability.logging import setup_logging
from flywheel_queue.observability.metrics import setup_metrics
from flywheel_queue.observability.tracing import instrument_fastapi, setup_tracing
from flywheel_queue.worker.handlers import DIAGNOSTICS_QUEUE_NAME, register_builtin_handlers
from flywheel_queue.worker.registry import QueueRegistry

logger = logging.getLogger(__name__)


def create_default_registry(settings: Settings | None = None) -> QueueRegistry:
    """Create a registry holding the diagnostics queue."""
    registry = QueueRegistry(settings)
    register_builtin_handlers(registry.create(DIAGNOSTICS_QUEUE_NAME))
    return registry


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events. Unfinished jobs are abandoned
    on shutdown.
    """
    settings: Settings = app.state.settings

    # Startup
    setup_logging(settings)
    setup_metrics()
    setup_tracing(settings)

    logger.info(
        "Application started",
        extra={"queues": [queue.name for queue in app.state.queues]},
    )

    yield

    # Shutdown
    await app.state.queues.shutdown()
    logger.info("Application shutdown")


def create_app(
    registry: QueueRegistry | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        registry: Queues to expose. Defaults to a registry with the
            diagnostics queue only; the host application builds its own
            registry with the boosts queue and its collaborators.
        settings: Application settings.

    Returns:
        FastAPI: The configured application instance.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="FlyWheel Job Queue API",
        description="In-process job queues with retry and status polling",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings
    app.state.queues = registry if registry is not None else create_default_registry(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(queues_router)

    instrument_fastapi(app)

    return app


def run() -> None:
    """Run the API server."""
    settings = get_settings()
    app = create_app(settings=settings)

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
