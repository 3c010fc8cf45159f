"""
Rate limit and usage limit configuration.

Sliding-window limits applied to job submissions, plus the cap on jobs an
owner may have in flight at once.

Dependencies: pydantic_settings
System role: Admission control configuration
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RateLimitSettings(BaseSettings):
    """Settings for the submission gate."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
        extra="ignore",
    )

    requests: int = Field(default=500, description="Submissions allowed per long window")
    window_seconds: float = Field(default=3600.0, description="Long window length")
    burst_requests: int = Field(default=10, description="Submissions allowed per burst window")
    burst_window_seconds: float = Field(default=60.0, description="Burst window length")
    max_active_jobs: int = Field(
        default=5,
        description="Queued + processing jobs allowed per owner",
    )
