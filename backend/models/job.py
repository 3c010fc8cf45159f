"""
Job domain models and schemas.

Request/response schemas for job submission and status polling.
Wire format is camelCase; Python attributes are snake_case.

Dependencies: pydantic
System role: Job API contracts
"""

from dataclasses import dataclass
from datetime import datetime
import enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializerFunctionWrapHandler,
    StrictBool,
    StrictInt,
    model_serializer,
)
from pydantic.alias_generators import to_camel

from backend.boundary.db.models.job_model import JobModel, JobStatus, JobType


class Quality(str, enum.Enum):
    """Processing quality tiers."""

    DRAFT = "draft"
    STANDARD = "standard"
    PREMIUM = "premium"


class OutputFormat(str, enum.Enum):
    """Image formats a job can produce."""

    JPG = "jpg"
    PNG = "png"
    WEBP = "webp"


class CamelModel(BaseModel):
    """Base schema with camelCase aliases accepted and emitted."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class JobSettings(CamelModel):
    """Optional processing settings supplied with a submission."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
    )

    quality: Quality = Field(default=Quality.STANDARD, description="Processing quality tier")
    output_format: OutputFormat = Field(default=OutputFormat.JPG, description="Output image format")
    num_outputs: StrictInt = Field(default=1, ge=1, le=4, description="Number of images to generate")
    upscale: StrictBool = Field(default=True, description="Upscale generated images")
    face_enhancement: StrictBool = Field(default=True, description="Restore faces before generation")
    background_removal: StrictBool = Field(default=True, description="Remove the source background")


class CreateJobRequest(CamelModel):
    """
    Request schema for submitting a job.

    Fields are untyped on purpose: the request validator reports missing or
    malformed values with domain error codes instead of schema errors.
    """

    input_reference: Any = Field(default=None, description="Source image URL")
    job_type: Any = Field(default=None, description="Requested transformation style")
    settings: Any = Field(default=None, description="Optional processing settings")


@dataclass(frozen=True)
class NormalizedJobRequest:
    """Validated submission ready to be stored."""

    owner_id: str
    input_reference: str
    job_type: JobType
    settings: JobSettings


class JobSubmittedResponse(CamelModel):
    """Response schema for an accepted submission."""

    job_id: str
    status: JobStatus = JobStatus.QUEUED


class JobStatusResponse(CamelModel):
    """
    Job projection returned to pollers.

    ``result`` is only emitted for completed jobs and ``error`` only for
    failed ones; both keys are omitted otherwise.
    """

    id: str
    owner_id: str
    job_type: JobType
    input_reference: str
    status: JobStatus
    progress: int
    created_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    result: list[str] | None = None
    error: str | None = None

    @model_serializer(mode="wrap")
    def _drop_absent_outcome(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = handler(self)
        for key in ("result", "error"):
            if data.get(key) is None:
                data.pop(key, None)
        return data

    @classmethod
    def from_job(cls, job: JobModel) -> "JobStatusResponse":
        status = JobStatus(job.status)
        return cls(
            id=job.id,
            owner_id=job.owner_id,
            job_type=job.job_type,
            input_reference=job.input_reference,
            status=status,
            progress=job.progress,
            created_at=job.created_at,
            started_at=job.started_at,
            completed_at=job.completed_at,
            result=list(job.result) if status == JobStatus.COMPLETED and job.result else None,
            error=job.error if status == JobStatus.FAILED else None,
        )


class JobListResponse(CamelModel):
    """Paginated list of the caller's jobs."""

    items: list[JobStatusResponse]
    total: int
    limit: int
    offset: int
    has_more: bool = False


class JobStats(CamelModel):
    """Job totals across all owners, for administrators."""

    total: int = 0
    queued: int = 0
    processing: int = 0
    completed: int = 0
    failed: int = 0
    success_rate: float = Field(
        default=0.0,
        description="Completed share of finished jobs, 0.0 when none have finished",
    )
    by_type: dict[str, int] = Field(default_factory=dict)

    @classmethod
    def from_counts(
        cls,
        by_status: dict[JobStatus, int],
        by_type: dict[JobType, int],
    ) -> "JobStats":
        completed = by_status.get(JobStatus.COMPLETED, 0)
        failed = by_status.get(JobStatus.FAILED, 0)
        finished = completed + failed
        return cls(
            total=sum(by_status.values()),
            queued=by_status.get(JobStatus.QUEUED, 0),
            processing=by_status.get(JobStatus.PROCESSING, 0),
            completed=completed,
            failed=failed,
            success_rate=round(completed / finished, 4) if finished else 0.0,
            by_type={job_type.value: count for job_type, count in by_type.items()},
        )
