"""
CRUD operations for database models.

Exports base CRUD class and model-specific CRUD implementations
with pre-instantiated singletons for direct use.

Usage:
    from backend.boundary.db.CRUD import job_crud

    job = await job_crud.get_by_id(db, job_id)
"""

from backend.boundary.db.CRUD.base_crud import BaseCRUD
from backend.boundary.db.CRUD.job_crud import JobCRUD, job_crud

__all__ = [
    "BaseCRUD",
    "JobCRUD",
    "job_crud",
]
