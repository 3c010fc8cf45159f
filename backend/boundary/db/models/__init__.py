"""
Database models package.

Exports:
  - JobModel, JobStatus, JobType: Job ORM model and related enums

Dependencies: sqlalchemy, backend.boundary.db.base
System role: Database model definitions for domain entities
"""

from backend.boundary.db.models.job_model import JobModel, JobStatus, JobType

__all__ = [
    "JobModel",
    "JobStatus",
    "JobType",
]
