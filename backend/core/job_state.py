"""
Job lifecycle rules.

Defines which status changes are legal and what each terminal state must
carry. The job store enforces these rules inside a single conditional
UPDATE; this module only describes them.

Dependencies: backend.boundary.db.models.job_model
System role: Single source of truth for the job state machine
"""

from typing import Any

from backend.boundary.db.models.job_model import JobStatus
from backend.core.exceptions import ValidationError

# Target status -> statuses a job may hold immediately before it.
ALLOWED_PREDECESSORS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PROCESSING: frozenset({JobStatus.QUEUED}),
    JobStatus.COMPLETED: frozenset({JobStatus.PROCESSING}),
    JobStatus.FAILED: frozenset({JobStatus.PROCESSING}),
}

TERMINAL_STATUSES: frozenset[JobStatus] = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})
ACTIVE_STATUSES: frozenset[JobStatus] = frozenset({JobStatus.QUEUED, JobStatus.PROCESSING})

MAX_IN_PROGRESS = 99
COMPLETED_PROGRESS = 100


def allowed_predecessors(status: JobStatus) -> frozenset[JobStatus]:
    """Statuses from which ``status`` can be reached (empty for queued)."""
    return ALLOWED_PREDECESSORS.get(status, frozenset())


def can_transition(current: JobStatus, requested: JobStatus) -> bool:
    """Whether a job in ``current`` may move to ``requested``."""
    return current in allowed_predecessors(requested)


def is_terminal(status: JobStatus) -> bool:
    return status in TERMINAL_STATUSES


def clamp_progress(progress: int) -> int:
    """Clamp an in-flight progress value into [0, 99]."""
    return max(0, min(MAX_IN_PROGRESS, int(progress)))


def transition_values(
    status: JobStatus,
    *,
    result: list[str] | None = None,
    error: str | None = None,
    now: Any,
) -> dict[str, Any]:
    """
    Build the column values written alongside a status change.

    Args:
        status: Target status
        result: Output locators (required for completed)
        error: Failure message (required for failed)
        now: Timestamp used for started_at / completed_at

    Returns:
        dict: Column values for the conditional UPDATE

    Raises:
        ValidationError: If the payload does not match the target status
    """
    if status == JobStatus.QUEUED:
        # No predecessor allows it; the conditional update will match nothing.
        return {}

    if status == JobStatus.PROCESSING:
        if result is not None or error is not None:
            raise ValidationError("Processing transition takes no payload", field="status")
        return {"started_at": now, "progress": 0}

    if status == JobStatus.COMPLETED:
        if not result:
            raise ValidationError("Completed jobs require at least one result", field="result")
        if error is not None:
            raise ValidationError("Completed jobs cannot carry an error", field="error")
        return {
            "result": list(result),
            "progress": COMPLETED_PROGRESS,
            "completed_at": now,
        }

    if not error:
        raise ValidationError("Failed jobs require an error message", field="error")
    if result is not None:
        raise ValidationError("Failed jobs cannot carry results", field="result")
    return {"error": error, "completed_at": now}
