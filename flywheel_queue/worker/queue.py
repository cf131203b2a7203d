"""
In-process job queue with priority ordering, bounded concurrency
and linear retry backoff.

A JobQueue lives on the event loop of the process that owns it. Jobs
are lost on restart; there is no persistence and no cross-process
coordination. All state is mutated from the loop thread only, so no
locking is needed.
"""

import asyncio
import contextvars
import logging
import time
from typing import Any, Callable
from uuid import uuid4

from flywheel_queue.config import Settings, get_settings
from flywheel_queue.constants import (
    DEFAULT_CONCURRENCY,
    DEFAULT_HISTORY_SIZE,
    DEFAULT_PRIORITY,
    DEFAULT_RETRIES,
    DEFAULT_RETRY_DELAY_MS,
    SPAN_EXECUTE_JOB,
    JobStatus,
    RetryPlacement,
)
from flywheel_queue.errors import NoHandlerError, QueueClosedError, QueueFullError
from flywheel_queue.observability.logging import bind_job_context
from flywheel_queue.observability.metrics import MetricsCollector, get_metrics
from flywheel_queue.observability.tracing import get_tracer
from flywheel_queue.types.job import Job, JobHandler, JobSnapshot, QueueStats, utcnow

logger = logging.getLogger(__name__)


def _error_message(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class JobQueue:
    """
    Priority job queue executing async handlers on the running event loop.

    Features:
    - Higher priority runs first, equal priorities run in submission order
    - At most ``concurrency`` handlers in flight
    - Failed jobs retried after ``retry_delay_ms * attempts`` (linear backoff)
    - Bounded history of recent jobs for status polling
    - Optional ``max_pending`` limit rejecting submissions when full

    Example:
        queue = JobQueue("boosts", concurrency=2, retries=3)
        queue.register_handler("publish", publish)
        job = queue.submit("publish", {"session_id": "cs_1"}, priority=5)
        ...
        snapshot = queue.get_status(job.id)
    """

    def __init__(
        self,
        name: str,
        *,
        concurrency: int = DEFAULT_CONCURRENCY,
        retries: int = DEFAULT_RETRIES,
        retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS,
        history_size: int = DEFAULT_HISTORY_SIZE,
        max_pending: int | None = None,
        retry_placement: RetryPlacement = RetryPlacement.PRIORITY,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize the queue.

        Args:
            name: Label used for job ids, logs and metrics.
            concurrency: Maximum number of simultaneously active jobs.
            retries: Retry attempts allowed after the first failure.
            retry_delay_ms: Base backoff unit; retry N waits N times this.
            history_size: Number of most recent jobs kept for lookups.
            max_pending: Pending list limit, or None for unbounded.
            retry_placement: Where retrying jobs re-enter the pending list.
            metrics: Metrics collector. Defaults to the process collector.

        Raises:
            ValueError: If a numeric option is out of range.
        """
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        if retries < 0:
            raise ValueError("retries must not be negative")
        if retry_delay_ms < 0:
            raise ValueError("retry_delay_ms must not be negative")
        if history_size < 1:
            raise ValueError("history_size must be at least 1")
        if max_pending is not None and max_pending < 1:
            raise ValueError("max_pending must be at least 1")

        self.name = name
        self.concurrency = concurrency
        self.max_retries = retries
        self.retry_delay_ms = retry_delay_ms
        self.history_size = history_size
        self.max_pending = max_pending
        self.retry_placement = RetryPlacement(retry_placement)

        self._pending: list[Job] = []
        self._active = 0
        self._processed = 0
        self._failed = 0
        self._handlers: dict[str, JobHandler] = {}
        # dicts keep insertion order, the first key is the oldest tracked job
        self._history: dict[str, Job] = {}

        self._tasks: set[asyncio.Task] = set()
        self._retry_timers: dict[str, asyncio.TimerHandle] = {}
        self._idle = asyncio.Event()
        self._idle.set()
        self._closed = False
        self._tick_handle: asyncio.Handle | None = None

        self._metrics = metrics or get_metrics()
        self._tracer = get_tracer()

    @classmethod
    def from_settings(
        cls,
        name: str,
        settings: Settings | None = None,
        **overrides: Any,
    ) -> "JobQueue":
        """
        Build a queue from application settings.

        Args:
            name: Queue name.
            settings: Settings to read defaults from.
            **overrides: Constructor arguments taking precedence over settings.
        """
        settings = settings or get_settings()
        options: dict[str, Any] = {
            "concurrency": settings.queue_concurrency,
            "retries": settings.queue_retries,
            "retry_delay_ms": settings.queue_retry_delay_ms,
            "history_size": settings.queue_history_size,
            "max_pending": settings.queue_max_pending,
            "retry_placement": settings.queue_retry_placement,
        }
        options.update(overrides)
        return cls(name, **options)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def register_handler(self, job_type: str, handler: JobHandler) -> None:
        """
        Register the async handler for a job type.

        The handler is awaited as ``handler(payload, job)`` and its return
        value becomes the job result. A later registration for the same
        type replaces the earlier one.
        """
        if job_type in self._handlers:
            logger.info(
                "Replacing handler",
                extra={"queue": self.name, "job_type": job_type},
            )
        self._handlers[job_type] = handler
        logger.debug(
            "Registered handler",
            extra={"queue": self.name, "job_type": job_type},
        )

    def handler(self, job_type: str) -> Callable[[JobHandler], JobHandler]:
        """
        Decorator form of register_handler.

        Example:
            @queue.handler("publish")
            async def publish(payload, job):
                ...
        """
        def decorator(func: JobHandler) -> JobHandler:
            self.register_handler(job_type, func)
            return func
        return decorator

    def list_handlers(self) -> list[str]:
        """List all registered job types."""
        return list(self._handlers.keys())

    # ------------------------------------------------------------------
    # Submission and lookups
    # ------------------------------------------------------------------

    def submit(
        self,
        job_type: str,
        payload: Any = None,
        *,
        priority: int = DEFAULT_PRIORITY,
    ) -> Job:
        """
        Submit a job and return it without waiting for execution.

        Must be called while the owning event loop is running. A job type
        without a registered handler is accepted here and fails when it
        is executed.

        Raises:
            QueueClosedError: If the queue has been shut down.
            QueueFullError: If ``max_pending`` jobs are already waiting.
            RuntimeError: If no event loop is running.
        """
        asyncio.get_running_loop()
        if self._closed:
            raise QueueClosedError(self.name)
        if self.max_pending is not None and len(self._pending) >= self.max_pending:
            logger.warning(
                "Queue full, rejecting job",
                extra={"queue": self.name, "job_type": job_type},
            )
            raise QueueFullError(self.name, self.max_pending)

        job = Job(
            id=self._new_job_id(),
            type=job_type,
            payload=payload,
            priority=priority,
            max_retries=self.max_retries,
        )

        self._pending.append(job)
        self._sort_pending()
        self._track(job)
        self._metrics.record_job_submitted(self.name, job_type)

        logger.info(
            "Job queued",
            extra={
                "queue": self.name,
                "job_id": job.id,
                "job_type": job_type,
                "priority": priority,
            },
        )

        self._schedule_tick()
        return job

    def get_status(self, job_id: str) -> JobSnapshot | None:
        """
        Look up a job by id.

        Returns:
            A snapshot of the job, or None if the id was never seen or
            has been evicted from history.
        """
        job = next((j for j in self._pending if j.id == job_id), None)
        if job is None:
            job = self._history.get(job_id)
        return job.snapshot() if job is not None else None

    def get_stats(self) -> QueueStats:
        """Get current queue counters."""
        return QueueStats(
            name=self.name,
            queued=len(self._pending),
            active=self._active,
            processed=self._processed,
            failed=self._failed,
        )

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def join(self) -> None:
        """
        Wait until nothing is pending, active, or waiting to retry.

        Returns immediately after shutdown.
        """
        await self._idle.wait()

    async def shutdown(self) -> None:
        """
        Stop the queue, abandoning unfinished work.

        Outstanding retry timers are cancelled, in-flight handlers are
        cancelled and awaited, and pending jobs are left as they are.
        Later submissions raise QueueClosedError.
        """
        if self._closed:
            return
        self._closed = True
        if self._tick_handle is not None:
            self._tick_handle.cancel()
            self._tick_handle = None

        for timer in self._retry_timers.values():
            timer.cancel()
        abandoned_retries = len(self._retry_timers)
        self._retry_timers.clear()

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        logger.info(
            "Queue shut down",
            extra={
                "queue": self.name,
                "abandoned_pending": len(self._pending),
                "abandoned_active": len(tasks),
                "abandoned_retries": abandoned_retries,
            },
        )
        self._idle.set()

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def _new_job_id(self) -> str:
        return f"{self.name}_{int(time.time() * 1000)}_{uuid4().hex[:8]}"

    def _sort_pending(self) -> None:
        # list.sort is stable, equal priorities keep submission order
        self._pending.sort(key=lambda j: j.priority, reverse=True)

    def _track(self, job: Job) -> None:
        self._history[job.id] = job
        while len(self._history) > self.history_size:
            oldest = next(iter(self._history))
            del self._history[oldest]

    def _schedule_tick(self) -> None:
        """
        Run one scheduling pass on the next loop iteration.

        Submissions made in the same synchronous block share a single
        pass, so they compete by priority for the free slots.
        """
        if self._tick_handle is None:
            self._tick_handle = asyncio.get_running_loop().call_soon(self._tick)
        self._update_idle()

    def _tick(self) -> None:
        """Start pending jobs until the concurrency limit is reached."""
        self._tick_handle = None
        while (
            not self._closed
            and self._active < self.concurrency
            and self._pending
        ):
            job = self._pending.pop(0)
            self._active += 1
            self._start(job)

        self._metrics.update_queue_state(self.name, len(self._pending), self._active)
        self._update_idle()

    def _update_idle(self) -> None:
        if self._closed or (
            not self._pending and self._active == 0 and not self._retry_timers
        ):
            self._idle.set()
        else:
            self._idle.clear()

    def _start(self, job: Job) -> None:
        job.attempts += 1
        job.status = JobStatus.ACTIVE
        job.started_at = utcnow()

        # Fresh context: no log bindings or trace span inherited from the
        # job whose completion triggered this dispatch
        task = asyncio.get_running_loop().create_task(
            self._execute(job),
            name=f"{self.name}:{job.id}",
            context=contextvars.Context(),
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _execute(self, job: Job) -> None:
        """
        Execute a single job.

        Handles the full lifecycle:
        1. Look up the handler, failing permanently if none is registered
        2. Await the handler
        3. Mark as COMPLETED, or schedule a retry, or mark as FAILED
        """
        start_time = time.monotonic()

        try:
            handler = self._handlers.get(job.type)
            if handler is None:
                error = NoHandlerError(job.type)
                logger.error(
                    "No handler for job type",
                    extra={"queue": self.name, "job_id": job.id, "job_type": job.type},
                )
                self._fail(job, error.message, start_time)
                return

            bind_job_context(self.name, job.id, job.attempts)
            logger.info(
                "Processing job",
                extra={
                    "queue": self.name,
                    "job_id": job.id,
                    "attempt": f"{job.attempts}/{job.max_attempts}",
                },
            )

            try:
                with self._tracer.start_as_current_span(SPAN_EXECUTE_JOB) as span:
                    span.set_attribute("queue", self.name)
                    span.set_attribute("job_id", job.id)
                    span.set_attribute("job_type", job.type)
                    span.set_attribute("attempt", job.attempts)

                    result = await handler(job.payload, job)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self._handle_failure(job, e, start_time)
            else:
                self._complete(job, result, start_time)

        finally:
            self._active -= 1
            self._tick()

    def _complete(self, job: Job, result: Any, start_time: float) -> None:
        duration = time.monotonic() - start_time

        job.status = JobStatus.COMPLETED
        job.result = result
        job.finished_at = utcnow()
        self._processed += 1

        self._metrics.record_job_completed(self.name, JobStatus.COMPLETED, duration)
        logger.info(
            "Job completed",
            extra={
                "queue": self.name,
                "job_id": job.id,
                "duration": f"{duration:.2f}s",
            },
        )

    def _handle_failure(self, job: Job, exc: Exception, start_time: float) -> None:
        job.error = _error_message(exc)

        logger.warning(
            "Job failed",
            extra={
                "queue": self.name,
                "job_id": job.id,
                "error": job.error,
                "attempt": job.attempts,
            },
        )

        if job.attempts > job.max_retries:
            self._fail(job, job.error, start_time)
            return

        # Linear in the attempt number
        delay_ms = self.retry_delay_ms * job.attempts
        job.status = JobStatus.RETRYING
        self._retry_timers[job.id] = asyncio.get_running_loop().call_later(
            delay_ms / 1000,
            self._requeue,
            job,
        )
        self._metrics.record_job_retried(self.name)

        logger.info(
            "Retrying job",
            extra={"queue": self.name, "job_id": job.id, "delay_ms": delay_ms},
        )

    def _fail(self, job: Job, error: str, start_time: float) -> None:
        duration = time.monotonic() - start_time

        job.status = JobStatus.FAILED
        job.error = error
        job.finished_at = utcnow()
        self._failed += 1

        self._metrics.record_job_completed(self.name, JobStatus.FAILED, duration)
        logger.error(
            "Job permanently failed",
            extra={
                "queue": self.name,
                "job_id": job.id,
                "attempts": job.attempts,
                "error": error,
            },
        )

    def _requeue(self, job: Job) -> None:
        """Return a retrying job to the pending list once its delay elapsed."""
        self._retry_timers.pop(job.id, None)
        if self._closed:
            return

        job.status = JobStatus.QUEUED
        if self.retry_placement == RetryPlacement.FRONT:
            self._pending.insert(0, job)
        else:
            self._pending.append(job)
            self._sort_pending()

        self._tick()
