"""
Built-in diagnostic job handlers.

These back the ``diagnostics`` queue exposed by the API so the retry,
backoff and failure paths can be exercised without external services.
Payloads are dicts; missing keys fall back to defaults.
"""

import asyncio
import logging
from typing import Any

from flywheel_queue.types.job import Job
from flywheel_queue.worker.queue import JobQueue

logger = logging.getLogger(__name__)

DIAGNOSTICS_QUEUE_NAME = "diagnostics"


def _options(payload: Any) -> dict[str, Any]:
    return payload if isinstance(payload, dict) else {}


async def handle_echo(payload: Any, job: Job) -> Any:
    """Return the payload wrapped under ``echo``."""
    logger.info("Echo job executing", extra={"job_id": job.id, "attempt": job.attempts})
    return {"echo": payload}


async def handle_sleep(payload: Any, job: Job) -> dict[str, Any]:
    """
    Sleep for ``duration_seconds`` (default 1) and report it.
    """
    duration = _options(payload).get("duration_seconds", 1)
    await asyncio.sleep(duration)
    return {"slept_for": duration}


async def handle_fail(payload: Any, job: Job) -> None:
    """Always raise, for exercising the retry budget."""
    raise RuntimeError(f"Intentional failure on attempt {job.attempts}")


async def handle_flaky(payload: Any, job: Job) -> dict[str, Any]:
    """
    Fail until attempt ``succeed_on`` (default 2), then succeed.
    """
    succeed_on = _options(payload).get("succeed_on", 2)
    if job.attempts < succeed_on:
        raise RuntimeError(f"Flaky failure on attempt {job.attempts}")
    return {"succeeded_on": job.attempts}


BUILTIN_HANDLERS = {
    "echo": handle_echo,
    "sleep": handle_sleep,
    "fail": handle_fail,
    "flaky": handle_flaky,
}


def register_builtin_handlers(queue: JobQueue) -> JobQueue:
    """Register every built-in handler on the given queue."""
    for job_type, handler in BUILTIN_HANDLERS.items():
        queue.register_handler(job_type, handler)
    return queue
