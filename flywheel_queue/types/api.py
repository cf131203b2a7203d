"""
API request and response type definitions.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from flywheel_queue.constants import DEFAULT_PRIORITY
from flywheel_queue.types.job import QueueStats


class SubmitJobRequest(BaseModel):
    """Request body for submitting a job to a queue."""

    type: str = Field(..., min_length=1, description="Registered job type")
    payload: Any = Field(default=None, description="Opaque job payload")
    priority: int = Field(default=DEFAULT_PRIORITY, description="Higher runs first")


class QueueListResponse(BaseModel):
    """Stats for every registered queue."""

    queues: list[QueueStats]


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    queues: int
    timestamp: datetime
