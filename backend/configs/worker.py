"""
Background worker configuration.

Dependencies: pydantic_settings
System role: In-process job dispatcher configuration
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class WorkerSettings(BaseSettings):
    """Settings for the in-process job dispatcher."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="WORKER_",
        case_sensitive=False,
        extra="ignore",
    )

    max_concurrency: int = Field(default=4, description="Jobs processed at the same time")
    shutdown_grace_seconds: float = Field(
        default=30.0,
        description="Time in-flight jobs get to finish on shutdown before cancellation",
    )
