"""
Queue exceptions.

Every exception carries a stable integer code so the API layer can map
failures to HTTP responses without string-matching.
"""

from enum import IntEnum
from typing import Any, Mapping


class ErrorCode(IntEnum):
    """Stable error codes for queue-layer exceptions."""

    QUEUE_GENERIC = 1000
    NO_HANDLER = 1001
    QUEUE_FULL = 1002
    QUEUE_CLOSED = 1003
    UNKNOWN_QUEUE = 1004


class QueueError(Exception):
    """
    Base class for queue exceptions.

    Args:
        message: Human-readable description.
        code: Stable code for programmatic handling.
        context: Optional structured fields, safe to log.
    """

    code: ErrorCode = ErrorCode.QUEUE_GENERIC

    def __init__(
        self,
        message: str,
        *,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = dict(context) if context else {}

    def to_dict(self) -> dict[str, Any]:
        """Structured view suitable for logs or JSON error bodies."""
        out: dict[str, Any] = {"code": int(self.code), "message": self.message}
        if self.context:
            out["context"] = self.context
        return out


class NoHandlerError(QueueError):
    """Raised at execution time when a job type has no registered handler."""

    code = ErrorCode.NO_HANDLER

    def __init__(self, job_type: str) -> None:
        super().__init__(
            f"No handler registered for job type: {job_type}",
            context={"job_type": job_type},
        )
        self.job_type = job_type


class QueueFullError(QueueError):
    """Raised by submit when the pending list has reached its limit."""

    code = ErrorCode.QUEUE_FULL

    def __init__(self, queue_name: str, max_pending: int) -> None:
        super().__init__(
            f"Queue '{queue_name}' is full ({max_pending} pending jobs)",
            context={"queue": queue_name, "max_pending": max_pending},
        )


class QueueClosedError(QueueError):
    """Raised by submit after the queue has been shut down."""

    code = ErrorCode.QUEUE_CLOSED

    def __init__(self, queue_name: str) -> None:
        super().__init__(
            f"Queue '{queue_name}' is shut down",
            context={"queue": queue_name},
        )


class UnknownQueueError(QueueError):
    """Raised when a queue name is not present in the registry."""

    code = ErrorCode.UNKNOWN_QUEUE

    def __init__(self, queue_name: str) -> None:
        super().__init__(
            f"Unknown queue: {queue_name}",
            context={"queue": queue_name},
        )
