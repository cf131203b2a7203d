"""
Worker module.
Contains the in-process job queue, the queue registry and built-in handlers.
"""

from flywheel_queue.worker.queue import JobQueue
from flywheel_queue.worker.registry import QueueRegistry

__all__ = ["JobQueue", "QueueRegistry"]
