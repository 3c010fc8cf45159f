"""
Common response models and utilities.

Generic response wrappers and error schemas.

Dependencies: pydantic
System role: Common API response structures
"""

from typing import Any

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Error response schema returned for every non-2xx API response."""

    error: str = Field(description="Error message")
    code: str = Field(description="Machine-readable error code")
    details: dict[str, Any] | None = Field(default=None, description="Additional error context")
