"""
Test suite for JobService against an in-memory database.

Covers job creation, ownership-checked reads, race-safe transitions,
progress updates, usage limits and store-failure handling.

System role: Verification of the job store
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from backend.application.services.job_service import STORE_ATTEMPTS, JobService
from backend.boundary.db.CRUD.job_crud import job_crud
from backend.boundary.db.models.job_model import JobStatus, JobType
from backend.core.exceptions import (
    AccessDenied,
    InvalidTransition,
    JobNotFoundError,
    StorageError,
    UsageLimitExceeded,
    ValidationError,
)
from backend.models.principal import Principal

OWNER = Principal(user_id="u1")
STRANGER = Principal(user_id="u2")
ADMIN = Principal(user_id="ops", is_admin=True)


@pytest.fixture
def job_service(test_async_db) -> JobService:
    return JobService(test_async_db, retry_wait_seconds=0)


class TestCreateJob:
    """Test suite for JobService.create_job()."""

    async def test_creates_queued_job(self, job_service, job_request_factory) -> None:
        # Act
        job = await job_service.create_job(job_request_factory(job_type=JobType.OBJECT, quality="premium"))

        # Assert
        assert job.id
        assert job.owner_id == "u1"
        assert job.status == JobStatus.QUEUED
        assert job.progress == 0
        assert job.job_type == JobType.OBJECT
        assert job.settings["quality"] == "premium"
        assert job.result is None
        assert job.error is None
        assert job.started_at is None
        assert job.completed_at is None
        assert job.created_at is not None

    async def test_ids_are_unique(self, job_service, job_request_factory) -> None:
        first = await job_service.create_job(job_request_factory())
        second = await job_service.create_job(job_request_factory())

        assert first.id != second.id


class TestGetJob:
    """Test suite for JobService.get_job()."""

    async def test_owner_can_read(self, job_service, job_request_factory) -> None:
        job = await job_service.create_job(job_request_factory())

        fetched = await job_service.get_job(job.id, OWNER)

        assert fetched.id == job.id

    async def test_stranger_is_denied(self, job_service, job_request_factory) -> None:
        job = await job_service.create_job(job_request_factory())

        with pytest.raises(AccessDenied):
            await job_service.get_job(job.id, STRANGER)

    async def test_admin_can_read_any_job(self, job_service, job_request_factory) -> None:
        job = await job_service.create_job(job_request_factory())

        fetched = await job_service.get_job(job.id, ADMIN)

        assert fetched.owner_id == "u1"

    async def test_missing_job_is_not_found_for_everyone(self, job_service) -> None:
        for principal in (OWNER, STRANGER, ADMIN):
            with pytest.raises(JobNotFoundError):
                await job_service.get_job("no-such-job", principal)


class TestTransition:
    """Test suite for JobService.transition()."""

    async def test_happy_path_sets_timestamps_and_result(self, job_service, job_request_factory) -> None:
        job = await job_service.create_job(job_request_factory())

        processing = await job_service.transition(job.id, JobStatus.PROCESSING)
        assert processing.status == JobStatus.PROCESSING
        assert processing.started_at is not None
        assert processing.completed_at is None

        completed = await job_service.transition(job.id, JobStatus.COMPLETED, result=["https://x/1.jpg"])
        assert completed.status == JobStatus.COMPLETED
        assert completed.progress == 100
        assert completed.result == ["https://x/1.jpg"]
        assert completed.error is None
        assert completed.completed_at >= completed.started_at >= completed.created_at

    async def test_failure_records_message(self, job_service, job_request_factory) -> None:
        job = await job_service.create_job(job_request_factory())
        await job_service.transition(job.id, JobStatus.PROCESSING)

        failed = await job_service.transition(job.id, JobStatus.FAILED, error="model crashed")

        assert failed.status == JobStatus.FAILED
        assert failed.error == "model crashed"
        assert failed.result is None
        assert failed.completed_at is not None

    async def test_queued_cannot_complete_directly(self, job_service, job_request_factory) -> None:
        job = await job_service.create_job(job_request_factory())

        with pytest.raises(InvalidTransition) as exc_info:
            await job_service.transition(job.id, JobStatus.COMPLETED, result=["https://x/1.jpg"])

        assert exc_info.value.current == "queued"
        unchanged = await job_service.get_job_record(job.id)
        assert unchanged.status == JobStatus.QUEUED
        assert unchanged.result is None

    async def test_terminal_job_is_immutable(self, job_service, job_request_factory) -> None:
        job = await job_service.create_job(job_request_factory())
        await job_service.transition(job.id, JobStatus.PROCESSING)
        await job_service.transition(job.id, JobStatus.COMPLETED, result=["https://x/1.jpg"])

        for status, kwargs in (
            (JobStatus.FAILED, {"error": "late failure"}),
            (JobStatus.PROCESSING, {}),
            (JobStatus.QUEUED, {}),
        ):
            with pytest.raises(InvalidTransition):
                await job_service.transition(job.id, status, **kwargs)

        stored = await job_service.get_job_record(job.id)
        assert stored.status == JobStatus.COMPLETED
        assert stored.error is None

    async def test_only_one_worker_claims_a_job(self, test_async_db, session_factory, job_request_factory) -> None:
        first = JobService(test_async_db, retry_wait_seconds=0)
        job = await first.create_job(job_request_factory())

        async with session_factory() as other_db:
            second = JobService(other_db, retry_wait_seconds=0)

            await first.transition(job.id, JobStatus.PROCESSING)
            with pytest.raises(InvalidTransition) as exc_info:
                await second.transition(job.id, JobStatus.PROCESSING)

        assert exc_info.value.current == "processing"

    async def test_racing_completions_have_one_winner(
        self, test_async_db, session_factory, job_request_factory
    ) -> None:
        service = JobService(test_async_db, retry_wait_seconds=0)
        job = await service.create_job(job_request_factory())
        await service.transition(job.id, JobStatus.PROCESSING)

        async with session_factory() as db_a, session_factory() as db_b:
            outcomes = await asyncio.gather(
                JobService(db_a).transition(job.id, JobStatus.COMPLETED, result=["https://x/a.jpg"]),
                JobService(db_b).transition(job.id, JobStatus.FAILED, error="worker b failed"),
                return_exceptions=True,
            )

        winners = [outcome for outcome in outcomes if not isinstance(outcome, Exception)]
        losers = [outcome for outcome in outcomes if isinstance(outcome, InvalidTransition)]
        assert len(winners) == 1
        assert len(losers) == 1

        stored = await service.get_job_record(job.id)
        assert stored.status == winners[0].status
        assert stored.result == winners[0].result
        assert stored.error == winners[0].error
        assert not (stored.result and stored.error)

    async def test_missing_job_is_not_found(self, job_service) -> None:
        with pytest.raises(JobNotFoundError):
            await job_service.transition("no-such-job", JobStatus.PROCESSING)

    async def test_payload_must_match_status(self, job_service, job_request_factory) -> None:
        job = await job_service.create_job(job_request_factory())
        await job_service.transition(job.id, JobStatus.PROCESSING)

        with pytest.raises(ValidationError):
            await job_service.transition(job.id, JobStatus.COMPLETED)

        stored = await job_service.get_job_record(job.id)
        assert stored.status == JobStatus.PROCESSING


class TestUpdateProgress:
    """Test suite for JobService.update_progress()."""

    async def test_progress_is_clamped_below_completion(self, job_service, job_request_factory) -> None:
        job = await job_service.create_job(job_request_factory())
        await job_service.transition(job.id, JobStatus.PROCESSING)

        assert await job_service.update_progress(job.id, 150)

        stored = await job_service.get_job_record(job.id)
        assert stored.progress == 99

    async def test_progress_ignored_unless_processing(self, job_service, job_request_factory) -> None:
        job = await job_service.create_job(job_request_factory())

        assert not await job_service.update_progress(job.id, 50)

        stored = await job_service.get_job_record(job.id)
        assert stored.progress == 0

    async def test_progress_ignored_after_completion(self, job_service, job_request_factory) -> None:
        job = await job_service.create_job(job_request_factory())
        await job_service.transition(job.id, JobStatus.PROCESSING)
        await job_service.transition(job.id, JobStatus.COMPLETED, result=["https://x/1.jpg"])

        assert not await job_service.update_progress(job.id, 40)

        stored = await job_service.get_job_record(job.id)
        assert stored.progress == 100


class TestListJobs:
    """Test suite for JobService.list_jobs()."""

    async def test_lists_only_own_jobs_with_total(self, job_service, job_request_factory) -> None:
        for _ in range(3):
            await job_service.create_job(job_request_factory(owner_id="u1"))
        await job_service.create_job(job_request_factory(owner_id="u2"))

        items, total = await job_service.list_jobs(OWNER, limit=2)

        assert total == 3
        assert len(items) == 2
        assert all(item.owner_id == "u1" for item in items)

    async def test_status_filter(self, job_service, job_request_factory) -> None:
        job = await job_service.create_job(job_request_factory())
        await job_service.create_job(job_request_factory())
        await job_service.transition(job.id, JobStatus.PROCESSING)

        items, total = await job_service.list_jobs(OWNER, status=JobStatus.PROCESSING)

        assert total == 1
        assert [item.id for item in items] == [job.id]


class TestUsageLimit:
    """Test suite for JobService.ensure_within_usage_limit()."""

    async def test_limit_counts_active_jobs_only(self, job_service, job_request_factory) -> None:
        done = await job_service.create_job(job_request_factory())
        await job_service.transition(done.id, JobStatus.PROCESSING)
        await job_service.transition(done.id, JobStatus.FAILED, error="x")
        await job_service.create_job(job_request_factory())

        await job_service.ensure_within_usage_limit(OWNER, max_active_jobs=2)

        assert await job_service.count_active_jobs("u1") == 1

    async def test_limit_reached(self, job_service, job_request_factory) -> None:
        for _ in range(2):
            await job_service.create_job(job_request_factory())

        with pytest.raises(UsageLimitExceeded) as exc_info:
            await job_service.ensure_within_usage_limit(OWNER, max_active_jobs=2)

        assert exc_info.value.code == "LIMIT_EXCEEDED"

    async def test_admins_are_exempt(self, job_service, job_request_factory) -> None:
        for _ in range(2):
            await job_service.create_job(job_request_factory(owner_id="ops"))

        await job_service.ensure_within_usage_limit(ADMIN, max_active_jobs=2)


class TestStoreFailures:
    """Test suite for database error handling."""

    async def test_read_failure_retries_once_then_raises_storage_error(self, job_service) -> None:
        error = OperationalError("SELECT", {}, Exception("database is locked"))

        with patch(
            "backend.application.services.job_service.job_crud.get_by_id",
            new=AsyncMock(side_effect=error),
        ) as mock_get:
            with pytest.raises(StorageError) as exc_info:
                await job_service.get_job_record("job-1")

        assert mock_get.await_count == STORE_ATTEMPTS
        assert exc_info.value.details["operation"] == "get"

    async def test_transient_failure_recovers_on_retry(self, job_service, job_request_factory) -> None:
        job = await job_service.create_job(job_request_factory())
        job_id = job.id
        real_get = job_crud.get_by_id
        error = OperationalError("SELECT", {}, Exception("database is locked"))
        attempts = []

        async def flaky_get(session, id):
            attempts.append(id)
            if len(attempts) == 1:
                raise error
            return await real_get(session, id)

        with patch(
            "backend.application.services.job_service.job_crud.get_by_id",
            new=AsyncMock(side_effect=flaky_get),
        ) as mock_get:
            fetched = await job_service.get_job_record(job_id)

        assert fetched.id == job_id
        assert fetched.status == JobStatus.QUEUED
        assert mock_get.await_count == 2

    async def test_committed_transition_survives_failed_reread(
        self, job_service, job_request_factory
    ) -> None:
        job = await job_service.create_job(job_request_factory())
        job_id = job.id
        error = OperationalError("SELECT", {}, Exception("database is locked"))

        with patch(
            "backend.application.services.job_service.job_crud.get_by_id",
            new=AsyncMock(side_effect=error),
        ):
            outcome = await job_service.transition(job_id, JobStatus.PROCESSING)

        assert outcome is None
        stored = await job_service.get_job_record(job_id)
        assert stored.status == JobStatus.PROCESSING
        assert stored.started_at is not None
