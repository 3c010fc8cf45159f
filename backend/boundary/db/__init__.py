"""
Database boundary layer: ORM models, CRUD operations, and connection management.

Exports:
  - Base, TimestampMixin: Model building blocks
  - get_async_engine(), get_async_session_factory(), get_async_db(): Async connection management
  - init_models(), dispose_engine(): Schema creation and teardown
  - JobModel, JobStatus, JobType: Job entity and enums
  - job_crud: CRUD operation singleton

Dependencies: sqlalchemy, backend.configs
System role: Database adapter providing persistent storage for jobs
"""

from backend.boundary.db.base import Base, TimestampMixin
from backend.boundary.db.connection import (
    dispose_engine,
    get_async_db,
    get_async_engine,
    get_async_session_factory,
    init_models,
)
from backend.boundary.db.models.job_model import JobModel, JobStatus, JobType
from backend.boundary.db.CRUD import BaseCRUD, JobCRUD, job_crud

__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    # Connection
    "get_async_db",
    "get_async_engine",
    "get_async_session_factory",
    "init_models",
    "dispose_engine",
    # Models
    "JobModel",
    "JobStatus",
    "JobType",
    # CRUD
    "BaseCRUD",
    "JobCRUD",
    "job_crud",
]
