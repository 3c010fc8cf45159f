"""
Exception hierarchy for the Photo Studio job service.

Provides layered exception structure for domain-specific errors.
Every exception carries the API error code and HTTP status it maps to,
plus a details dict for observability and debugging.

Dependencies: None (pure domain layer)
System role: Centralized exception handling across the application
"""

from typing import Any


class PhotoStudioException(Exception):
    """Base exception for all Photo Studio application errors."""

    code: str = "INTERNAL_ERROR"
    status_code: int = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize base exception with message and optional context.

        Args:
            message: Human-readable error message
            details: Optional dictionary of additional context for debugging
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation including details."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ValidationError(PhotoStudioException):
    """Raised when input validation fails."""

    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(
        self,
        message: str,
        field: str | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize validation error.

        Args:
            message: Error message
            field: Field name that failed validation
            code: Specific error code (INVALID_IMAGE_URL, ...)
            details: Additional context
        """
        details = details or {}
        if field:
            details["field"] = field
        if code:
            self.code = code
        self.field = field
        super().__init__(message, details)


class AuthenticationRequired(ValidationError):
    """Raised when no owner can be resolved for a submission."""

    code = "UNAUTHORIZED"
    status_code = 401

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message, field="ownerId")


class AccessDenied(PhotoStudioException):
    """Raised when a principal may not see a job."""

    code = "ACCESS_DENIED"
    status_code = 403

    def __init__(self, job_id: str, principal_id: str) -> None:
        """
        Initialize access denied error.

        Args:
            job_id: Job that was requested
            principal_id: Principal that requested it
        """
        super().__init__(
            "You do not have access to this job",
            {"job_id": job_id, "principal_id": principal_id},
        )


class AdminRequired(PhotoStudioException):
    """Raised when a non-administrator calls an admin-only operation."""

    code = "FORBIDDEN"
    status_code = 403

    def __init__(self, principal_id: str) -> None:
        super().__init__("Administrator access required", {"principal_id": principal_id})


class UsageLimitExceeded(PhotoStudioException):
    """Raised when an owner already has the maximum number of active jobs."""

    code = "LIMIT_EXCEEDED"
    status_code = 403

    def __init__(self, owner_id: str, active_jobs: int, limit: int) -> None:
        super().__init__(
            f"Active job limit reached ({active_jobs}/{limit})",
            {"owner_id": owner_id, "active_jobs": active_jobs, "limit": limit},
        )


class NotFoundError(PhotoStudioException):
    """Raised when a requested record does not exist."""

    code = "NOT_FOUND"
    status_code = 404


class JobNotFoundError(NotFoundError):
    """Raised when a job cannot be found."""

    code = "JOB_NOT_FOUND"

    def __init__(self, job_id: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize job not found error.

        Args:
            job_id: ID of the missing job
            details: Additional context
        """
        details = details or {}
        details["job_id"] = job_id
        self.job_id = job_id
        super().__init__(f"Job not found: {job_id}", details)


class InvalidTransition(PhotoStudioException):
    """Raised when a status change is not allowed from the job's current state."""

    code = "INVALID_TRANSITION"
    status_code = 409

    def __init__(self, job_id: str, current: str, requested: str) -> None:
        """
        Initialize invalid transition error.

        Args:
            job_id: Job that was targeted
            current: Status the job holds
            requested: Status that was requested
        """
        self.job_id = job_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot move job from {current} to {requested}",
            {"job_id": job_id, "current": current, "requested": requested},
        )


class RateLimitExceeded(PhotoStudioException):
    """Raised when the long sliding window is exhausted."""

    code = "RATE_LIMIT_EXCEEDED"
    status_code = 429

    def __init__(
        self,
        retry_after: float,
        key: str | None = None,
        message: str = "Rate limit exceeded",
    ) -> None:
        """
        Initialize rate limit error.

        Args:
            retry_after: Seconds until the offending window frees a slot
            key: Limiter key that was over its limit
            message: Error message
        """
        self.retry_after = retry_after
        self.key = key
        details: dict[str, Any] = {"retryAfterSeconds": retry_after}
        if key:
            details["key"] = key
        super().__init__(message, details)


class BurstLimitExceeded(RateLimitExceeded):
    """Raised when the short burst window is exhausted."""

    code = "BURST_LIMIT_EXCEEDED"

    def __init__(self, retry_after: float, key: str | None = None) -> None:
        super().__init__(retry_after, key, message="Too many requests in a short period")


class StorageError(PhotoStudioException):
    """Raised when the job store cannot be reached or a write fails."""

    code = "STORAGE_ERROR"
    status_code = 503

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize storage error.

        Args:
            message: Error message
            operation: Store operation that failed (create, get, transition)
            details: Additional context
        """
        details = details or {}
        if operation:
            details["operation"] = operation
        super().__init__(message, details)


class ServiceUnavailable(PhotoStudioException):
    """Raised when the service is shutting down and cannot accept new jobs."""

    code = "SERVICE_UNAVAILABLE"
    status_code = 503


class ProcessingFailure(PhotoStudioException):
    """Base exception for failures while processing a job in the background."""

    code = "PROCESSING_FAILED"

    def __init__(
        self,
        message: str,
        job_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if job_id:
            details["job_id"] = job_id
        super().__init__(message, details)


class InferenceError(ProcessingFailure):
    """Raised when the inference service fails, times out, or returns nothing."""

    code = "INFERENCE_FAILED"


class ResultPersistenceError(ProcessingFailure):
    """Raised when processed images cannot be copied to result storage."""

    code = "RESULT_PERSISTENCE_FAILED"
