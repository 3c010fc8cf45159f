"""
Background job processor.

Drives one job from queued to a terminal state: claims it by moving it to
processing, runs the image pipeline, persists the outputs and records the
outcome. Runs detached from the request that submitted the job, so it opens
its own database session.

Dependencies: backend.application.services.job_service, backend.core, backend.boundary
System role: Unit of work executed by the job dispatcher
"""

import asyncio
import logging
import time

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.application.services.job_service import JobService
from backend.boundary.db.connection import get_async_session_factory
from backend.boundary.db.models.job_model import JobStatus, JobType
from backend.boundary.storage.result_store import ResultStore
from backend.core.exceptions import (
    InvalidTransition,
    JobNotFoundError,
    PhotoStudioException,
    StorageError,
)
from backend.core.image_pipeline import ImagePipeline
from backend.models.job import JobSettings

logger = logging.getLogger(__name__)

INTERRUPTED_MESSAGE = "Processing was interrupted before it finished"


def failure_message(exc: BaseException) -> str:
    """Human-readable reason recorded on a failed job."""
    if isinstance(exc, PhotoStudioException):
        return exc.message
    return str(exc) or type(exc).__name__


class JobProcessor:
    """
    Processes jobs by id.

    Safe to invoke more than once for the same job: only the caller whose
    queued -> processing transition wins does any work, and each job gets
    exactly one terminal transition.
    """

    def __init__(
        self,
        pipeline: ImagePipeline,
        result_store: ResultStore,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> None:
        """
        Initialize processor.

        Args:
            pipeline: Image pipeline that calls the inference service
            result_store: Destination for output images
            session_factory: Session factory for background sessions
                (defaults to the application factory, resolved lazily)
        """
        self.pipeline = pipeline
        self.result_store = result_store
        self._session_factory = session_factory

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._session_factory = get_async_session_factory()
        return self._session_factory

    async def process(self, job_id: str) -> JobStatus | None:
        """
        Process a job to completion or failure.

        Args:
            job_id: Job id

        Returns:
            JobStatus | None: Terminal status recorded by this call, or None
            if the job was missing or already claimed by another worker

        Raises:
            asyncio.CancelledError: After recording the job as failed
        """
        start_time = time.time()
        logger.info("Starting background job processing", extra={"job_id": job_id})

        async with self.session_factory() as db:
            jobs = JobService(db)

            try:
                claimed = await jobs.transition(job_id, JobStatus.PROCESSING)
            except (InvalidTransition, JobNotFoundError) as e:
                logger.warning(
                    "Job not claimable, skipping",
                    extra={"job_id": job_id, "error_type": type(e).__name__, "error_msg": e.message},
                )
                return None
            except StorageError as e:
                # The claim may have committed before the error; fail the job
                # rather than leave it processing. A claim that never landed
                # rejects this as an invalid transition.
                logger.error(
                    "Job claim failed",
                    extra={"job_id": job_id, "error_msg": e.message},
                )
                recorded = await self._record_failure(jobs, job_id, failure_message(e))
                return JobStatus.FAILED if recorded else None

            async def report_progress(progress: int) -> None:
                try:
                    await jobs.update_progress(job_id, progress)
                except StorageError as e:
                    logger.warning(
                        "Progress update failed",
                        extra={"job_id": job_id, "progress": progress, "error_msg": e.message},
                    )

            try:
                job = claimed or await jobs.get_job_record(job_id)
                # A retried store call rolls the session back and expires
                # loaded rows; keep plain values from here on.
                owner_id = job.owner_id
                input_reference = job.input_reference
                job_type = JobType(job.job_type)
                options = JobSettings.model_validate(job.settings or {})

                await report_progress(10)
                outputs = await self.pipeline.run(
                    input_reference,
                    job_type,
                    options,
                    on_progress=report_progress,
                )
                locators = await self.result_store.persist(
                    job_id,
                    owner_id,
                    outputs,
                    options.output_format.value,
                )
                await jobs.transition(job_id, JobStatus.COMPLETED, result=locators)
            except asyncio.CancelledError:
                await self._record_failure(jobs, job_id, INTERRUPTED_MESSAGE)
                raise
            except InvalidTransition as e:
                logger.warning(
                    "Job reached a terminal state elsewhere",
                    extra={"job_id": job_id, "current": e.current},
                )
                return None
            except Exception as e:
                logger.exception(
                    "Job processing failed",
                    extra={
                        "job_id": job_id,
                        "error_type": type(e).__name__,
                        "error_msg": str(e),
                        "process_time_ms": round((time.time() - start_time) * 1000, 2),
                    },
                )
                recorded = await self._record_failure(jobs, job_id, failure_message(e))
                return JobStatus.FAILED if recorded else None

        logger.info(
            "Job processing completed",
            extra={
                "job_id": job_id,
                "outputs": len(locators),
                "process_time_ms": round((time.time() - start_time) * 1000, 2),
            },
        )
        return JobStatus.COMPLETED

    async def _record_failure(self, jobs: JobService, job_id: str, message: str) -> bool:
        """Move a processing job to failed; returns whether this call did it."""
        try:
            await jobs.transition(job_id, JobStatus.FAILED, error=message)
        except InvalidTransition as e:
            logger.warning(
                "Job already terminal, failure not recorded",
                extra={"job_id": job_id, "current": e.current},
            )
            return False
        except JobNotFoundError:
            logger.warning("Job vanished, failure not recorded", extra={"job_id": job_id})
            return False
        except StorageError:
            logger.exception(
                "Could not record job failure",
                extra={"job_id": job_id, "error_msg": message},
            )
            return False
        return True
