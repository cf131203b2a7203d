"""
Pytest configuration and shared fixtures.
"""

import asyncio
from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
import pytest_asyncio
from prometheus_client import CollectorRegistry

from flywheel_queue.config import Settings
from flywheel_queue.observability.metrics import MetricsCollector
from flywheel_queue.types.job import Job
from flywheel_queue.worker.queue import JobQueue


@pytest.fixture
def metrics() -> MetricsCollector:
    """Metrics collector on an isolated registry."""
    return MetricsCollector(registry=CollectorRegistry())


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings with fast retries."""
    return Settings(
        queue_concurrency=2,
        queue_retries=2,
        queue_retry_delay_ms=10,
        log_level="DEBUG",
        log_format="console",
    )


@pytest_asyncio.fixture
async def make_queue(
    metrics: MetricsCollector,
) -> AsyncGenerator[Callable[..., JobQueue]]:
    """
    Factory for queues that are shut down after the test.

    Defaults to a 10ms retry delay so retry paths finish quickly.
    """
    queues: list[JobQueue] = []

    def factory(name: str = "test", **options: Any) -> JobQueue:
        options.setdefault("retry_delay_ms", 10)
        queue = JobQueue(name, metrics=metrics, **options)
        queues.append(queue)
        return queue

    yield factory

    for queue in queues:
        await queue.shutdown()


class Gate:
    """Handler that blocks until released, recording job ids as they start."""

    def __init__(self) -> None:
        self.started: list[str] = []
        self._event = asyncio.Event()

    async def __call__(self, payload: Any, job: Job) -> Any:
        self.started.append(job.id)
        await self._event.wait()
        return payload

    def release(self) -> None:
        self._event.set()


@pytest.fixture
def gate() -> Gate:
    return Gate()


@pytest.fixture
def settle() -> Callable[..., Any]:
    """Wait for a queue to go idle, failing the test on timeout."""

    async def wait(queue: JobQueue, timeout: float = 5.0) -> None:
        await asyncio.wait_for(queue.join(), timeout)

    return wait
