"""
Prometheus metrics collection.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from flywheel_queue.constants import (
    METRIC_JOB_DURATION,
    METRIC_JOBS_COMPLETED,
    METRIC_JOBS_RETRIED,
    METRIC_JOBS_SUBMITTED,
    METRIC_QUEUE_ACTIVE,
    METRIC_QUEUE_DEPTH,
)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for job queues.

    Collects metrics for:
    - Queue depth and active jobs
    - Job submissions, completions and retries
    - Job execution duration
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.queue_depth = Gauge(
            METRIC_QUEUE_DEPTH,
            "Number of jobs waiting in the pending list",
            ["queue"],
            registry=self._registry,
        )

        self.queue_active = Gauge(
            METRIC_QUEUE_ACTIVE,
            "Number of jobs currently executing",
            ["queue"],
            registry=self._registry,
        )

        self.jobs_submitted = Counter(
            METRIC_JOBS_SUBMITTED,
            "Total number of jobs submitted",
            ["queue", "job_type"],
            registry=self._registry,
        )

        # status is completed or failed
        self.jobs_completed = Counter(
            METRIC_JOBS_COMPLETED,
            "Total number of jobs that reached a terminal state",
            ["queue", "status"],
            registry=self._registry,
        )

        self.jobs_retried = Counter(
            METRIC_JOBS_RETRIED,
            "Total number of retries scheduled",
            ["queue"],
            registry=self._registry,
        )

        self.job_duration = Histogram(
            METRIC_JOB_DURATION,
            "Handler execution duration in seconds",
            ["queue", "status"],
            buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
            registry=self._registry,
        )

    def record_job_submitted(self, queue: str, job_type: str) -> None:
        """Record a job submission."""
        self.jobs_submitted.labels(queue=queue, job_type=job_type).inc()

    def record_job_completed(
        self,
        queue: str,
        status: str,
        duration_seconds: float,
    ) -> None:
        """Record a job reaching a terminal state."""
        self.jobs_completed.labels(queue=queue, status=status).inc()
        self.job_duration.labels(queue=queue, status=status).observe(
            duration_seconds
        )

    def record_job_retried(self, queue: str) -> None:
        """Record a scheduled retry."""
        self.jobs_retried.labels(queue=queue).inc()

    def update_queue_state(self, queue: str, depth: int, active: int) -> None:
        """Update depth and active gauges for a queue."""
        self.queue_depth.labels(queue=queue).set(depth)
        self.queue_active.labels(queue=queue).set(active)

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self._registry)

    def get_content_type(self) -> str:
        """Get the content type for metrics response."""
        return CONTENT_TYPE_LATEST


def setup_metrics() -> MetricsCollector:
    """
    Set up and return the metrics collector.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def get_metrics() -> MetricsCollector:
    """
    Get the metrics collector instance, creating it on first use.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    if _metrics is None:
        return setup_metrics()
    return _metrics
