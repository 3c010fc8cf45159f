"""
Job error handling utilities.

Provides a decorator for consistent error handling across job endpoints:
domain exceptions become HTTPExceptions carrying the API error body.
"""

import functools
import logging
import math
from typing import Any, Callable, TypeVar

from fastapi import HTTPException, status

from backend.core.exceptions import (
    PhotoStudioException,
    RateLimitExceeded,
    StorageError,
    ValidationError,
)
from backend.models.common import ErrorResponse

logger = logging.getLogger(__name__)

# Type for the decorated function
F = TypeVar("F", bound=Callable[..., Any])


def error_body(message: str, code: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    """Build the API error body."""
    return ErrorResponse(error=message, code=code, details=details or None).model_dump()


def to_http_exception(exc: PhotoStudioException) -> HTTPException:
    """Map a domain exception to an HTTPException with the API error body."""
    headers = None
    if isinstance(exc, RateLimitExceeded):
        headers = {"Retry-After": str(max(1, math.ceil(exc.retry_after)))}
    return HTTPException(
        status_code=exc.status_code,
        detail=error_body(exc.message, exc.code, exc.details),
        headers=headers,
    )


def handle_job_errors(func: F) -> F:
    """
    Decorator to handle job-related errors and transform them into HTTPExceptions.

    This centralizes:
    - Logging of errors with context
    - Mapping domain exceptions to HTTP status codes and error codes
    - Ensuring uniform error response formats
    """

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return await func(*args, **kwargs)

        except HTTPException:
            raise

        except ValidationError as e:
            logger.warning(
                "Invalid job request",
                extra={"code": e.code, "field": e.field, "error": e.message},
            )
            raise to_http_exception(e)

        except StorageError as e:
            logger.error(
                "Job store unavailable",
                extra={"code": e.code, "error": str(e)},
            )
            raise to_http_exception(e)

        except PhotoStudioException as e:
            logger.warning(
                "Job request rejected",
                extra={"code": e.code, "status_code": e.status_code, "error": str(e)},
            )
            raise to_http_exception(e)

        except Exception as e:
            logger.exception(
                "Unexpected failure in job operation",
                extra={"error": str(e)},
            )
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=error_body("An internal error occurred", "INTERNAL_ERROR"),
            )

    return wrapper  # type: ignore
