"""
Job CRUD operations.

Provides persistence for JobModel with job-specific queries for owner
listings, active-job counting, and race-safe status transitions.

Dependencies: sqlalchemy, backend.boundary.db.models.job_model
System role: Job persistence operations for the processing flow
"""

from typing import Any, Collection, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from backend.boundary.db.CRUD.base_crud import BaseCRUD
from backend.boundary.db.models.job_model import JobModel, JobStatus, JobType


class JobCRUD(BaseCRUD[JobModel]):
    """
    CRUD operations for JobModel.

    Status writes are conditional: the UPDATE only matches while the row is
    still in one of the allowed predecessor states, and callers learn whether
    they won from the affected row count.
    """

    def __init__(self) -> None:
        """Initialize JobCRUD with JobModel."""
        super().__init__(JobModel)

    async def transition_status(
        self,
        session: AsyncSession,
        id: str,
        status: JobStatus,
        allowed_from: Collection[JobStatus],
        **values: Any,
    ) -> bool:
        """
        Move a job to a new status if it is still in an allowed state.

        Args:
            session: Async database session
            id: Job id
            status: Target status
            allowed_from: Statuses the row may currently hold
            **values: Additional columns written in the same statement

        Returns:
            True if the row was updated, False if it is missing or no longer
            in an allowed state
        """
        stmt = (
            update(JobModel)
            .where(JobModel.id == id, JobModel.status.in_(list(allowed_from)))
            .values(status=status, **values)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount > 0

    async def update_progress(
        self,
        session: AsyncSession,
        id: str,
        progress: int,
    ) -> bool:
        """
        Update progress percentage of a job that is still processing.

        Args:
            session: Async database session
            id: Job id
            progress: Progress percentage

        Returns:
            True if the row was updated, False otherwise
        """
        stmt = (
            update(JobModel)
            .where(JobModel.id == id, JobModel.status == JobStatus.PROCESSING)
            .values(progress=progress)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount > 0

    async def list_by_owner(
        self,
        session: AsyncSession,
        owner_id: str,
        status: JobStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Sequence[JobModel]:
        """
        Retrieve an owner's jobs, newest first.

        Args:
            session: Async database session
            owner_id: Owner to filter by
            status: Optional status filter
            limit: Maximum number of jobs to return
            offset: Number of jobs to skip

        Returns:
            Sequence of JobModels
        """
        stmt = select(JobModel).where(JobModel.owner_id == owner_id)
        if status is not None:
            stmt = stmt.where(JobModel.status == status)
        stmt = (
            stmt.order_by(JobModel.created_at.desc(), JobModel.id)
            .offset(offset)
            .limit(limit)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def count_by_owner(
        self,
        session: AsyncSession,
        owner_id: str,
        statuses: Collection[JobStatus] | None = None,
    ) -> int:
        """
        Count an owner's jobs, optionally restricted to some statuses.

        Args:
            session: Async database session
            owner_id: Owner to filter by
            statuses: Optional statuses to count

        Returns:
            Number of matching jobs
        """
        stmt = select(func.count()).select_from(JobModel).where(JobModel.owner_id == owner_id)
        if statuses:
            stmt = stmt.where(JobModel.status.in_(list(statuses)))
        result = await session.execute(stmt)
        return int(result.scalar_one())

    async def count_by_status(self, session: AsyncSession) -> dict[JobStatus, int]:
        """
        Count all jobs grouped by status.

        Returns:
            Mapping of status to job count; statuses with no jobs are absent
        """
        stmt = select(JobModel.status, func.count()).group_by(JobModel.status)
        result = await session.execute(stmt)
        return {JobStatus(status): int(count) for status, count in result.all()}

    async def count_by_type(self, session: AsyncSession) -> dict[JobType, int]:
        """Count all jobs grouped by job type."""
        stmt = select(JobModel.job_type, func.count()).group_by(JobModel.job_type)
        result = await session.execute(stmt)
        return {JobType(job_type): int(count) for job_type, count in result.all()}


job_crud = JobCRUD()
