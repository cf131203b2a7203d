"""
Type definitions for the job queue.
Contains input/output type definitions grouped by module.
"""

from flywheel_queue.types.api import (
    HealthResponse,
    QueueListResponse,
    SubmitJobRequest,
)
from flywheel_queue.types.job import (
    Job,
    JobHandler,
    JobSnapshot,
    QueueStats,
)

__all__ = [
    # API types
    "SubmitJobRequest",
    "QueueListResponse",
    "HealthResponse",
    # Job types
    "Job",
    "JobHandler",
    "JobSnapshot",
    "QueueStats",
]
