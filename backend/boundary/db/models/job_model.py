"""
Job ORM model.

Tracks image transformation jobs from submission to a terminal state.
Provides status, progress, and result reporting for client polling.

Dependencies: sqlalchemy, backend.boundary.db.base
System role: Durable record of every submitted job
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, Enum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from backend.boundary.db.base import Base, TimestampMixin


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class JobType(str, enum.Enum):
    """
    Transformation styles a job can request.

    PERSON / PERSON_PET: portrait styles (solo, with a pet)
    OBJECT / LANDSCAPE: product and scenery styles
    CUSTOM: generic enhancement with the default prompt
    SOLO_ME / ME_AND_PET: legacy names kept for older clients
    """

    PERSON = "person"
    PERSON_PET = "person-pet"
    OBJECT = "object"
    LANDSCAPE = "landscape"
    CUSTOM = "custom"
    SOLO_ME = "soloMe"
    ME_AND_PET = "meAndPet"


class JobStatus(str, enum.Enum):
    """
    Job execution states.

    QUEUED: Record created, awaiting background pickup
    PROCESSING: Worker running the inference pipeline
    COMPLETED: Succeeded; result holds output locators
    FAILED: Failed; error holds a human-readable message
    """

    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class JobModel(Base, TimestampMixin):
    """
    Job ORM model.

    One row per accepted submission. Rows only move forward through
    queued -> processing -> completed|failed; status writes are issued as
    conditional updates by JobCRUD so concurrent workers cannot both win.

    Attributes:
        id: Opaque string id (uuid4 text, generated on insert)
        owner_id: Principal who submitted the job (indexed for listing)
        input_reference: Source image URL
        job_type: Requested transformation style
        settings: Processing options (quality, output format, flags)
        status: Current execution state
        progress: Percentage complete (0-100); advisory while processing
        result: List of output locators, set only on completion
        error: Failure message, set only on failure
        started_at: Set once by the transition to processing
        completed_at: Set once by the terminal transition
        created_at: Submission timestamp (UTC)
        updated_at: Last modification timestamp (UTC)
    """

    __tablename__ = "jobs"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    owner_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )

    input_reference: Mapped[str] = mapped_column(
        String(2048),
        nullable=False,
    )

    job_type: Mapped[JobType] = mapped_column(
        Enum(JobType, native_enum=False, values_callable=_enum_values),
        nullable=False,
    )

    settings: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )

    status: Mapped[JobStatus] = mapped_column(
        Enum(JobStatus, native_enum=False, values_callable=_enum_values),
        nullable=False,
        default=JobStatus.QUEUED,
        index=True,
    )

    progress: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        doc="Progress percentage (0-100)",
    )

    result: Mapped[list | None] = mapped_column(
        JSON,
        nullable=True,
        doc="Output locators once completed",
    )

    error: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        doc="Failure message once failed",
    )

    started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
