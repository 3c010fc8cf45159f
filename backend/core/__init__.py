"""
Core business logic module.

Contains domain business logic, exception hierarchy, and core components:
job state rules, the submission rate limiter, and the image pipeline.
"""

from backend.core.exceptions import (
    AccessDenied,
    AuthenticationRequired,
    BurstLimitExceeded,
    InferenceError,
    InvalidTransition,
    JobNotFoundError,
    NotFoundError,
    PhotoStudioException,
    ProcessingFailure,
    RateLimitExceeded,
    ResultPersistenceError,
    StorageError,
    UsageLimitExceeded,
    ValidationError,
)

__all__ = [
    "PhotoStudioException",
    "ValidationError",
    "AuthenticationRequired",
    "AccessDenied",
    "UsageLimitExceeded",
    "NotFoundError",
    "JobNotFoundError",
    "InvalidTransition",
    "RateLimitExceeded",
    "BurstLimitExceeded",
    "StorageError",
    "ProcessingFailure",
    "InferenceError",
    "ResultPersistenceError",
]
