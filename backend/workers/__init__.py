"""
Background workers module.

In-process task dispatch for job processing.

Dependencies: asyncio
System role: Background task processing
"""

from backend.workers.dispatcher import DispatchHandle, JobDispatcher

__all__ = ["DispatchHandle", "JobDispatcher"]
