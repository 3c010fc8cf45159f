"""Service orchestrators."""

from .job_processor import JobProcessor
from .job_service import JobService

__all__ = [
    "JobProcessor",
    "JobService",
]
