"""
Job API endpoints.

Routes:
- POST /jobs - Submit an image transformation job
- GET /jobs - List the caller's jobs
- GET /jobs/stats - Job totals for administrators
- GET /jobs/{job_id} - Poll job status

Dependencies: backend.application.services, backend.api.deps, backend.models
System role: Job submission and status HTTP API
"""

import logging

from fastapi import APIRouter, Depends, Query, Response

from backend.api.deps.dependencies import (
    ServiceContainer,
    get_client_ip,
    get_job_service,
    get_principal,
    get_services,
)
from backend.application.services.job_service import JobService
from backend.core.exceptions import AuthenticationRequired, ServiceUnavailable
from backend.models.common import ErrorResponse
from backend.models.job import (
    CreateJobRequest,
    JobListResponse,
    JobStats,
    JobStatusResponse,
    JobSubmittedResponse,
)
from backend.models.principal import Principal

from .job_error_handling import handle_job_errors
from .job_responses import (
    map_job_to_response,
    map_job_to_submitted,
    map_jobs_to_list_response,
)
from .job_validators import parse_status_filter, validate_job_request

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["jobs"])


ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    429: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


@router.post("", response_model=JobSubmittedResponse, status_code=201, responses=ERROR_RESPONSES)
@handle_job_errors
async def submit_job(
    request: CreateJobRequest,
    response: Response,
    principal: Principal = Depends(get_principal),
    client_ip: str = Depends(get_client_ip),
    services: ServiceContainer = Depends(get_services),
    job_service: JobService = Depends(get_job_service),
) -> JobSubmittedResponse:
    """
    Submit an image for processing.

    Checks the rate limit, validates the request, enforces the active-job
    limit, stores the job as queued and hands it to the background
    dispatcher. Returns as soon as the job is stored.

    Args:
        request: CreateJobRequest with inputReference, jobType, settings
        response: Response used to set the X-Job-ID header
        principal: Caller identity from gateway headers
        client_ip: Caller address for IP rate limiting
        services: Lifecycle-scoped services
        job_service: Injected JobService

    Returns:
        JobSubmittedResponse: {jobId, status: "queued"}

    Raises:
        HTTPException(400): Invalid request
        HTTPException(401): No authenticated user and guests disabled
        HTTPException(403): Active job limit reached
        HTTPException(429): Rate or burst limit exceeded
        HTTPException(503): Job store unavailable or service shutting down
    """
    settings = services.settings

    services.rate_limit_gate.enforce(principal.user_id, client_ip)

    if services.dispatcher.closed:
        raise ServiceUnavailable("Service is shutting down, try again shortly")

    normalized = validate_job_request(
        request,
        principal,
        allow_anonymous=settings.auth.allow_anonymous,
    )

    await job_service.ensure_within_usage_limit(principal, settings.rate_limit.max_active_jobs)

    logger.info(
        "Submitting job",
        extra={
            "owner_id": normalized.owner_id,
            "job_type": normalized.job_type.value,
            "client_ip": client_ip,
        },
    )

    job = await job_service.create_job(normalized)
    handle = services.dispatcher.submit(job.id)

    logger.info(
        "Job queued",
        extra={"job_id": job.id, "owner_id": job.owner_id, "dispatched": handle.accepted},
    )

    response.headers["X-Job-ID"] = job.id
    return map_job_to_submitted(job)


@router.get("", response_model=JobListResponse, responses=ERROR_RESPONSES)
@handle_job_errors
async def list_jobs(
    status: str | None = Query(None, description="Only jobs in this status"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(get_principal),
    job_service: JobService = Depends(get_job_service),
) -> JobListResponse:
    """
    List the caller's jobs, newest first.

    Args:
        status: Optional status filter
        limit: Page size (1-100)
        offset: Number of jobs to skip
        principal: Caller identity
        job_service: Injected JobService

    Returns:
        JobListResponse: Page of job projections

    Raises:
        HTTPException(400): Unknown status filter
        HTTPException(401): No authenticated user
    """
    if not principal.is_authenticated:
        raise AuthenticationRequired()

    status_filter = parse_status_filter(status)
    jobs, total = await job_service.list_jobs(principal, status=status_filter, limit=limit, offset=offset)

    logger.info(
        "Listed jobs",
        extra={"owner_id": principal.owner_id, "returned": len(jobs), "total": total},
    )
    return map_jobs_to_list_response(jobs, total, limit, offset)


@router.get("/stats", response_model=JobStats, responses=ERROR_RESPONSES)
@handle_job_errors
async def get_job_stats(
    principal: Principal = Depends(get_principal),
    job_service: JobService = Depends(get_job_service),
) -> JobStats:
    """
    Job totals by status and type across all owners.

    Raises:
        HTTPException(401): No authenticated user
        HTTPException(403): Caller is not an administrator
    """
    stats = await job_service.get_job_stats(principal)
    logger.info("Job stats requested", extra={"admin_id": principal.owner_id, "total": stats.total})
    return stats


@router.get("/{job_id}", response_model=JobStatusResponse, responses=ERROR_RESPONSES)
@handle_job_errors
async def get_job_status(
    job_id: str,
    principal: Principal = Depends(get_principal),
    job_service: JobService = Depends(get_job_service),
) -> JobStatusResponse:
    """
    Get job status and progress for frontend polling.

    Frontend should poll this endpoint every 1-2 seconds while the job is
    queued or processing.

    Args:
        job_id: Job id
        principal: Caller identity; guests read as the anonymous owner
        job_service: Injected JobService

    Returns:
        JobStatusResponse: Job projection with result only when completed
        and error only when failed

    Raises:
        HTTPException(404): Job not found
        HTTPException(403): Caller is neither owner nor admin

    Example Response:
        {
            "id": "3f0c6a5e-5a43-4c4b-9d1e-2b1f0d8f6c11",
            "ownerId": "user_123",
            "jobType": "person",
            "inputReference": "https://example.com/a.jpg",
            "status": "completed",
            "progress": 100,
            "createdAt": "2025-01-01T12:00:00Z",
            "startedAt": "2025-01-01T12:00:01Z",
            "completedAt": "2025-01-01T12:00:40Z",
            "result": ["https://cdn.example.com/results/user_123/3f0c.../1.jpg"]
        }
    """
    job = await job_service.get_job(job_id, principal)
    return map_job_to_response(job)
