"""
Application constants.
Centralized location for all constant values used across the application.
"""

from enum import StrEnum


class JobStatus(StrEnum):
    """
    Job lifecycle states.

    State transitions:
    - QUEUED -> ACTIVE (picked by the scheduler)
    - ACTIVE -> COMPLETED (handler succeeded)
    - ACTIVE -> RETRYING (handler raised, retry budget left)
    - RETRYING -> QUEUED (backoff delay elapsed)
    - ACTIVE -> FAILED (retry budget exhausted, or no handler registered)
    """

    QUEUED = "queued"
    ACTIVE = "active"
    RETRYING = "retrying"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})


class RetryPlacement(StrEnum):
    """Where a retrying job re-enters the pending list."""

    PRIORITY = "priority"
    FRONT = "front"


# Default values
DEFAULT_CONCURRENCY = 2
DEFAULT_RETRIES = 3
DEFAULT_RETRY_DELAY_MS = 5000
DEFAULT_HISTORY_SIZE = 100
DEFAULT_PRIORITY = 0

# Boost queue
BOOST_QUEUE_NAME = "boosts"
BOOST_JOB_TYPE = "publish"
BOOST_SEARCH_LIMIT = 3
BOOST_DEFAULT_SOURCE = "paid"
BLOG_LINK_PLACEHOLDER = "[BLOG_LINK]"
PRODUCT_LINK_PLACEHOLDER = "[PRODUCT_LINK]"

# API constants
API_V1_PREFIX = "/v1"

# Metrics names
METRIC_QUEUE_DEPTH = "job_queue_depth"
METRIC_QUEUE_ACTIVE = "job_queue_active"
METRIC_JOBS_SUBMITTED = "jobs_submitted_total"
METRIC_JOBS_COMPLETED = "jobs_completed_total"
METRIC_JOBS_RETRIED = "jobs_retried_total"
METRIC_JOB_DURATION = "job_duration_seconds"

# Trace span names
SPAN_EXECUTE_JOB = "execute_job"
