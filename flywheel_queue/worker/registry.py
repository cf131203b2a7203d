"""
Named queue registry.

The registry is the composition root's handle on every queue in the
process. It is created at startup, passed to whatever needs queue
access (the API stores it on ``app.state``), and shut down on exit.
"""

import asyncio
import logging
from collections.abc import Iterator
from typing import Any

from flywheel_queue.config import Settings, get_settings
from flywheel_queue.errors import UnknownQueueError
from flywheel_queue.types.job import QueueStats
from flywheel_queue.worker.queue import JobQueue

logger = logging.getLogger(__name__)


class QueueRegistry:
    """Holds the process's JobQueue instances by name."""

    def __init__(self, settings: Settings | None = None):
        self._settings = settings or get_settings()
        self._queues: dict[str, JobQueue] = {}

    def add(self, queue: JobQueue) -> JobQueue:
        """
        Register an existing queue.

        Raises:
            ValueError: If a queue with the same name is already registered.
        """
        if queue.name in self._queues:
            raise ValueError(f"Queue already registered: {queue.name}")
        self._queues[queue.name] = queue
        logger.info("Queue registered", extra={"queue": queue.name})
        return queue

    def create(self, name: str, **overrides: Any) -> JobQueue:
        """Create a queue from the registry settings and register it."""
        return self.add(JobQueue.from_settings(name, self._settings, **overrides))

    def get(self, name: str) -> JobQueue:
        """
        Get a queue by name.

        Raises:
            UnknownQueueError: If no queue has that name.
        """
        queue = self._queues.get(name)
        if queue is None:
            raise UnknownQueueError(name)
        return queue

    def stats(self) -> list[QueueStats]:
        """Get stats for every registered queue."""
        return [queue.get_stats() for queue in self._queues.values()]

    async def shutdown(self) -> None:
        """Shut down all queues."""
        await asyncio.gather(*(queue.shutdown() for queue in self._queues.values()))

    def __contains__(self, name: object) -> bool:
        return name in self._queues

    def __iter__(self) -> Iterator[JobQueue]:
        return iter(self._queues.values())

    def __len__(self) -> int:
        return len(self._queues)
