"""
Job-related type definitions.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from pydantic import BaseModel, ConfigDict

from flywheel_queue.constants import TERMINAL_STATUSES, JobStatus


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Job:
    """
    Unit of work owned by a JobQueue.

    The queue mutates this object through its lifecycle; callers only
    ever see it through a JobSnapshot, or as the second argument of a
    handler call.
    """

    id: str
    type: str
    payload: Any
    priority: int
    max_retries: int
    attempts: int = 0
    status: JobStatus = JobStatus.QUEUED
    created_at: datetime = field(default_factory=utcnow)
    started_at: datetime | None = None
    finished_at: datetime | None = None
    error: str | None = None
    result: Any = None

    @property
    def is_terminal(self) -> bool:
        """Check if the job reached completed or failed."""
        return self.status in TERMINAL_STATUSES

    @property
    def max_attempts(self) -> int:
        """First execution plus the retry budget."""
        return self.max_retries + 1

    @property
    def is_last_attempt(self) -> bool:
        """Check if the current attempt is the last one allowed."""
        return self.attempts >= self.max_attempts

    def snapshot(self) -> "JobSnapshot":
        """Create a read-only copy of the current job state."""
        return JobSnapshot(
            id=self.id,
            type=self.type,
            payload=self.payload,
            priority=self.priority,
            attempts=self.attempts,
            max_retries=self.max_retries,
            status=self.status,
            created_at=self.created_at,
            started_at=self.started_at,
            finished_at=self.finished_at,
            error=self.error,
            result=self.result if self.status == JobStatus.COMPLETED else None,
        )


# Handlers receive (payload, job) and return any value as the job result
JobHandler = Callable[[Any, Job], Awaitable[Any]]


class JobSnapshot(BaseModel):
    """
    Read view of a job returned by status lookups.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    type: str
    payload: Any
    priority: int
    attempts: int
    max_retries: int
    status: JobStatus
    created_at: datetime
    started_at: datetime | None = None
    finished_at: datetime | None = None
    error: str | None = None
    result: Any = None


class QueueStats(BaseModel):
    """Point-in-time queue counters."""

    model_config = ConfigDict(frozen=True)

    name: str
    queued: int
    active: int
    processed: int
    failed: int
