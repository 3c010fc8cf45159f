"""
Job service orchestrator.

Coordinates the job record lifecycle: creation, ownership-checked reads,
listings, usage limits and race-safe status transitions. Wraps JobCRUD and
turns database failures into StorageError after one local retry.

Dependencies: backend.boundary.db.CRUD, backend.core, sqlalchemy, tenacity
System role: Job store used by the API layer and the background processor
"""

import logging
from typing import Awaitable, Callable, Sequence, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from backend.boundary.db.base import utcnow
from backend.boundary.db.CRUD.job_crud import job_crud
from backend.boundary.db.models.job_model import JobModel, JobStatus, JobType
from backend.core.exceptions import (
    AccessDenied,
    AdminRequired,
    AuthenticationRequired,
    InvalidTransition,
    JobNotFoundError,
    StorageError,
    UsageLimitExceeded,
)
from backend.core.job_state import (
    ACTIVE_STATUSES,
    allowed_predecessors,
    clamp_progress,
    transition_values,
)
from backend.models.job import JobStats, NormalizedJobRequest
from backend.models.principal import Principal

logger = logging.getLogger(__name__)

T = TypeVar("T")

STORE_ATTEMPTS = 2


class JobService:
    """
    Job service orchestrator.

    One instance per database session. Every store operation commits its own
    unit of work so a poller always sees the latest persisted state.
    """

    def __init__(self, db: AsyncSession, retry_wait_seconds: float = 0.05) -> None:
        """
        Initialize job service.

        Args:
            db: AsyncSession for database operations
            retry_wait_seconds: Pause before the single retry of a failed store call
        """
        self.db = db
        self._retry_wait = retry_wait_seconds

    async def _execute(self, operation: str, func: Callable[[], Awaitable[T]]) -> T:
        """Run a store call, retrying once on database errors."""
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(SQLAlchemyError),
                stop=stop_after_attempt(STORE_ATTEMPTS),
                wait=wait_fixed(self._retry_wait),
                before_sleep=lambda retry_state: logger.warning(
                    f"Job store {operation} failed, retrying",
                    extra={
                        "operation": operation,
                        "attempt": retry_state.attempt_number,
                    },
                ),
                reraise=True,
            ):
                with attempt:
                    try:
                        return await func()
                    except SQLAlchemyError:
                        await self.db.rollback()
                        raise
        except SQLAlchemyError as e:
            logger.error(
                f"Job store {operation} failed",
                extra={"operation": operation, "error_type": type(e).__name__, "error_msg": str(e)},
            )
            raise StorageError(f"Job store unavailable during {operation}", operation=operation) from e
        raise StorageError(f"Job store {operation} did not run", operation=operation)

    async def create_job(self, request: NormalizedJobRequest) -> JobModel:
        """
        Create a queued job for a validated request.

        Args:
            request: Normalized submission

        Returns:
            JobModel: Persisted job in queued state with a fresh id

        Raises:
            StorageError: If the record cannot be persisted
        """

        async def _create() -> JobModel:
            job = await job_crud.create(
                self.db,
                owner_id=request.owner_id,
                input_reference=request.input_reference,
                job_type=request.job_type,
                settings=request.settings.model_dump(mode="json"),
                status=JobStatus.QUEUED,
                progress=0,
            )
            await self.db.commit()
            return job

        job = await self._execute("create", _create)
        logger.info(
            "Job created",
            extra={"job_id": job.id, "owner_id": job.owner_id, "job_type": job.job_type.value},
        )
        return job

    async def get_job_record(self, job_id: str) -> JobModel:
        """
        Fetch a job without an ownership check (background use only).

        Raises:
            JobNotFoundError: If the job does not exist
            StorageError: If the store cannot be read
        """
        job = await self._execute("get", lambda: job_crud.get_by_id(self.db, job_id))
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    async def get_job(self, job_id: str, principal: Principal) -> JobModel:
        """
        Fetch a job on behalf of a principal.

        Existence is checked before ownership, so a missing job reads as
        not found for every caller.

        Args:
            job_id: Job id
            principal: Requesting principal

        Returns:
            JobModel: Current persisted job

        Raises:
            JobNotFoundError: If the job does not exist
            AccessDenied: If the principal is neither owner nor admin
            StorageError: If the store cannot be read
        """
        job = await self.get_job_record(job_id)
        if not principal.can_access(job.owner_id):
            raise AccessDenied(job_id, principal.owner_id)
        return job

    async def list_jobs(
        self,
        principal: Principal,
        status: JobStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[Sequence[JobModel], int]:
        """
        List the principal's own jobs, newest first.

        Returns:
            tuple: (page of jobs, total matching jobs)
        """
        owner_id = principal.owner_id

        async def _list() -> tuple[Sequence[JobModel], int]:
            items = await job_crud.list_by_owner(
                self.db, owner_id, status=status, limit=limit, offset=offset
            )
            total = await job_crud.count_by_owner(
                self.db, owner_id, statuses=[status] if status else None
            )
            return items, total

        return await self._execute("list", _list)

    async def count_active_jobs(self, owner_id: str) -> int:
        """Count an owner's queued and processing jobs."""
        return await self._execute(
            "count_active",
            lambda: job_crud.count_by_owner(self.db, owner_id, statuses=ACTIVE_STATUSES),
        )

    async def ensure_within_usage_limit(self, principal: Principal, max_active_jobs: int) -> None:
        """
        Reject a submission when the owner already has too many active jobs.

        Administrators are exempt.

        Raises:
            UsageLimitExceeded: If the owner is at the limit
        """
        if principal.is_admin:
            return
        active = await self.count_active_jobs(principal.owner_id)
        if active >= max_active_jobs:
            logger.warning(
                "Usage limit reached",
                extra={"owner_id": principal.owner_id, "active_jobs": active, "limit": max_active_jobs},
            )
            raise UsageLimitExceeded(principal.owner_id, active, max_active_jobs)

    async def transition(
        self,
        job_id: str,
        new_status: JobStatus,
        *,
        result: list[str] | None = None,
        error: str | None = None,
    ) -> JobModel | None:
        """
        Move a job to a new status.

        The change is a single conditional UPDATE that only matches while the
        job is in an allowed predecessor state, so of two racing callers
        exactly one wins and the other sees InvalidTransition. A rejected
        transition leaves the stored record untouched.

        Args:
            job_id: Job id
            new_status: Target status
            result: Output locators (completed only)
            error: Failure message (failed only)

        Returns:
            JobModel | None: Job as stored after the transition, or None when
            the change was committed but the row could not be read back

        Raises:
            JobNotFoundError: If the job does not exist
            InvalidTransition: If the job is not in an allowed predecessor state
            ValidationError: If the payload does not fit the target status
            StorageError: If the store cannot be written
        """
        values = transition_values(new_status, result=result, error=error, now=utcnow())

        async def _transition() -> bool:
            updated = await job_crud.transition_status(
                self.db,
                job_id,
                new_status,
                allowed_predecessors(new_status),
                **values,
            )
            await self.db.commit()
            return updated

        updated = await self._execute("transition", _transition)
        if updated:
            logger.info(
                f"Job moved to {new_status.value}",
                extra={"job_id": job_id, "status": new_status.value},
            )
            try:
                return await self.get_job_record(job_id)
            except StorageError:
                logger.warning(
                    "Job transition committed but re-read failed",
                    extra={"job_id": job_id, "status": new_status.value},
                )
                return None

        job = await self.get_job_record(job_id)
        current = JobStatus(job.status)
        logger.warning(
            "Rejected job transition",
            extra={"job_id": job_id, "current": current.value, "requested": new_status.value},
        )
        raise InvalidTransition(job_id, current.value, new_status.value)

    async def update_progress(self, job_id: str, progress: int) -> bool:
        """
        Record advisory progress for a processing job.

        Args:
            job_id: Job id
            progress: Percentage, clamped to [0, 99]

        Returns:
            bool: False when the job is not processing (update ignored)
        """
        pct = clamp_progress(progress)

        async def _update() -> bool:
            updated = await job_crud.update_progress(self.db, job_id, pct)
            await self.db.commit()
            return updated

        return await self._execute("update_progress", _update)

    async def get_job_stats(self, principal: Principal) -> JobStats:
        """
        Aggregate job counts across all owners.

        Args:
            principal: Requesting principal; must be an administrator

        Returns:
            JobStats: Totals per status and per job type

        Raises:
            AuthenticationRequired: If the caller is not authenticated
            AdminRequired: If the caller is not an administrator
            StorageError: If the store cannot be read
        """
        if not principal.is_authenticated:
            raise AuthenticationRequired()
        if not principal.is_admin:
            raise AdminRequired(principal.owner_id)

        async def _stats() -> tuple[dict[JobStatus, int], dict[JobType, int]]:
            by_status = await job_crud.count_by_status(self.db)
            by_type = await job_crud.count_by_type(self.db)
            return by_status, by_type

        by_status, by_type = await self._execute("stats", _stats)
        return JobStats.from_counts(by_status, by_type)
