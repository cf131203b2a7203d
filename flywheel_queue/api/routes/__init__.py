"""
API routes module.
"""

from flywheel_queue.api.routes.health import router as health_router
from flywheel_queue.api.routes.queues import router as queues_router

__all__ = ["health_router", "queues_router"]
