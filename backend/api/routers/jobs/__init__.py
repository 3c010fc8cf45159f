"""
Jobs router package.

Exports the router for job submission and status endpoints.
"""

from .jobs_router import router

__all__ = ["router"]
