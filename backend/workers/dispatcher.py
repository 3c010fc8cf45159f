"""
In-process job dispatcher.

Turns "process this job" into a tracked asyncio task with bounded
concurrency. Created once at application startup, drained on shutdown.

Dependencies: asyncio
System role: Worker pool between the submission endpoint and the processor
"""

import asyncio
from dataclasses import dataclass
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

JobHandler = Callable[[str], Awaitable[Any]]


@dataclass(frozen=True)
class DispatchHandle:
    """
    Receipt for a submission.

    Attributes:
        job_id: Job that was submitted
        accepted: False when the job was already in flight
    """

    job_id: str
    accepted: bool


class JobDispatcher:
    """
    Schedules job handlers as background tasks.

    At most ``max_concurrency`` handlers run at once; extra submissions wait
    on a semaphore. A job id that is already scheduled or running is not
    scheduled again.
    """

    def __init__(self, handler: JobHandler, max_concurrency: int = 4) -> None:
        """
        Initialize dispatcher.

        Args:
            handler: Coroutine function processing one job id
            max_concurrency: Handlers allowed to run at the same time
        """
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._handler = handler
        self._max_concurrency = max_concurrency
        self._semaphore: asyncio.Semaphore | None = None
        self._tasks: dict[str, asyncio.Task] = {}
        self._closed = False

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    @property
    def closed(self) -> bool:
        return self._closed

    def is_pending(self, job_id: str) -> bool:
        return job_id in self._tasks

    def submit(self, job_id: str) -> DispatchHandle:
        """
        Schedule a job and return immediately.

        Must be called from a running event loop.

        Args:
            job_id: Job id to process

        Returns:
            DispatchHandle: accepted=False for duplicates of an in-flight job

        Raises:
            RuntimeError: If the dispatcher has been shut down
        """
        if self._closed:
            raise RuntimeError("Dispatcher is shut down")
        if job_id in self._tasks:
            logger.info("Job already in flight, not rescheduled", extra={"job_id": job_id})
            return DispatchHandle(job_id=job_id, accepted=False)

        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self._max_concurrency)

        task = asyncio.create_task(self._run(job_id), name=f"job-{job_id}")
        self._tasks[job_id] = task
        task.add_done_callback(lambda t, jid=job_id: self._on_done(jid, t))
        logger.debug("Job dispatched", extra={"job_id": job_id, "in_flight": self.in_flight})
        return DispatchHandle(job_id=job_id, accepted=True)

    async def _run(self, job_id: str) -> Any:
        async with self._semaphore:
            return await self._handler(job_id)

    def _on_done(self, job_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(job_id) is task:
            del self._tasks[job_id]
        if task.cancelled():
            logger.warning("Job task cancelled", extra={"job_id": job_id})
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Job task raised",
                exc_info=exc,
                extra={"job_id": job_id, "error_type": type(exc).__name__},
            )

    async def join(self) -> None:
        """Wait until every scheduled job has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    async def shutdown(self, timeout: float = 30.0) -> None:
        """
        Stop accepting work and drain in-flight jobs.

        Jobs still running after ``timeout`` seconds are cancelled; the
        processor records them as failed.

        Args:
            timeout: Grace period for in-flight jobs
        """
        self._closed = True
        pending = list(self._tasks.values())
        if not pending:
            return

        logger.info("Draining job dispatcher", extra={"in_flight": len(pending)})
        _, still_running = await asyncio.wait(pending, timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            logger.warning("Cancelled unfinished jobs", extra={"cancelled": len(still_running)})
            await asyncio.gather(*still_running, return_exceptions=True)
