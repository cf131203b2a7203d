"""
FastAPI dependencies resolving queues from application state.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from flywheel_queue.errors import UnknownQueueError
from flywheel_queue.worker.queue import JobQueue
from flywheel_queue.worker.registry import QueueRegistry


def get_registry(request: Request) -> QueueRegistry:
    """Get the queue registry the application was created with."""
    return request.app.state.queues


Registry = Annotated[QueueRegistry, Depends(get_registry)]


def get_queue(queue_name: str, registry: Registry) -> JobQueue:
    """
    Resolve the ``queue_name`` path parameter to a queue.

    Raises:
        HTTPException: 404 if the queue is not registered.
    """
    try:
        return registry.get(queue_name)
    except UnknownQueueError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=e.message,
        ) from e


Queue = Annotated[JobQueue, Depends(get_queue)]
