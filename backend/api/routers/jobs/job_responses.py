"""
Job response mapping utilities.

Transforms ORM job rows into API response models.

Dependencies: backend.models.job
System role: Job response transformation
"""

from typing import Sequence

from backend.boundary.db.models.job_model import JobModel
from backend.models.job import JobListResponse, JobStatusResponse, JobSubmittedResponse


def map_job_to_submitted(job: JobModel) -> JobSubmittedResponse:
    """Build the 201 body for an accepted submission."""
    return JobSubmittedResponse(job_id=job.id, status=job.status)


def map_job_to_response(job: JobModel) -> JobStatusResponse:
    """
    Transform a job row into the polling projection.

    Args:
        job: JobModel row

    Returns:
        JobStatusResponse: result only if completed, error only if failed
    """
    return JobStatusResponse.from_job(job)


def map_jobs_to_list_response(
    jobs: Sequence[JobModel],
    total: int,
    limit: int,
    offset: int,
) -> JobListResponse:
    return JobListResponse(
        items=[map_job_to_response(job) for job in jobs],
        total=total,
        limit=limit,
        offset=offset,
        has_more=offset + len(jobs) < total,
    )
