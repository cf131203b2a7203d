"""
Queue routes: stats, job submission and status polling.
"""

import logging

from fastapi import APIRouter, HTTPException, status

from flywheel_queue.api.dependencies import Queue, Registry
from flywheel_queue.constants import API_V1_PREFIX
from flywheel_queue.errors import QueueClosedError, QueueFullError
from flywheel_queue.types.api import QueueListResponse, SubmitJobRequest
from flywheel_queue.types.job import JobSnapshot, QueueStats

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{API_V1_PREFIX}/queues", tags=["Queues"])


@router.get(
    "",
    response_model=QueueListResponse,
    summary="List queues",
    description="Get stats for every queue in the process.",
)
async def list_queues(registry: Registry) -> QueueListResponse:
    return QueueListResponse(queues=registry.stats())


@router.get(
    "/{queue_name}/stats",
    response_model=QueueStats,
    summary="Queue stats",
)
async def get_queue_stats(queue: Queue) -> QueueStats:
    """
    Get queue counters.

    ``queued`` and ``active`` are current values; ``processed`` and
    ``failed`` are lifetime totals.
    """
    return queue.get_stats()


@router.post(
    "/{queue_name}/jobs",
    response_model=JobSnapshot,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Submit a job",
    description="Submit a job to the queue. Execution happens in the background.",
)
async def submit_job(request: SubmitJobRequest, queue: Queue) -> JobSnapshot:
    """
    Submit a job.

    An unregistered job type is accepted and fails when executed, so
    callers must poll the job to learn the outcome.

    Raises:
        HTTPException: 429 if the queue is full, 503 if it is shut down.
    """
    try:
        job = queue.submit(request.type, request.payload, priority=request.priority)
    except QueueFullError as e:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=e.message,
        ) from e
    except QueueClosedError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=e.message,
        ) from e

    return job.snapshot()


@router.get(
    "/{queue_name}/jobs/{job_id}",
    response_model=JobSnapshot,
    summary="Get job status",
    description="Look up a queued or recently finished job.",
)
async def get_job(job_id: str, queue: Queue) -> JobSnapshot:
    snapshot = queue.get_status(job_id)
    if snapshot is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Job not found: {job_id}",
        )
    return snapshot
