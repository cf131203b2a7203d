"""
Health check routes.
"""

from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import Response

from flywheel_queue import __version__
from flywheel_queue.api.dependencies import Registry
from flywheel_queue.observability.metrics import get_metrics
from flywheel_queue.types.api import HealthResponse

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check the health of the API and its queues.",
)
async def health_check(registry: Registry) -> HealthResponse:
    """
    Perform a health check.

    The service is degraded once any queue has been shut down.
    """
    healthy = all(not queue.closed for queue in registry)

    return HealthResponse(
        status="healthy" if healthy else "degraded",
        version=__version__,
        queues=len(registry),
        timestamp=datetime.now(timezone.utc),
    )


@router.get(
    "/live",
    summary="Liveness check",
    description="Check if the service is alive.",
)
async def liveness_check() -> dict:
    """Kubernetes liveness probe endpoint."""
    return {"alive": True}


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Expose Prometheus metrics.",
)
async def metrics() -> Response:
    """Expose Prometheus metrics."""
    metrics_collector = get_metrics()
    return Response(
        content=metrics_collector.get_metrics(),
        media_type=metrics_collector.get_content_type(),
    )
