"""
Result storage bucket configuration.

Settings for the object storage bucket that receives processed images.
When no bucket is configured, inference output URLs are returned as-is.

Dependencies: pydantic_settings
System role: Processed image storage configuration
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ResultStorageSettings(BaseSettings):
    """Settings for processed image uploads."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="RESULT_STORAGE_",
        case_sensitive=False,
        extra="ignore",
    )

    bucket: str | None = Field(
        default=None,
        description="Bucket for processed images; unset keeps inference URLs",
    )
    region: str = Field(
        default="us-east-1",
        description="Region of the results bucket",
    )
    endpoint_url: str | None = Field(
        default=None,
        description="Custom S3-compatible endpoint (R2, MinIO, Supabase storage)",
    )
    public_base_url: str | None = Field(
        default=None,
        description="Public/CDN base URL prepended to object keys",
    )
    key_prefix: str = Field(
        default="results",
        description="Key prefix for uploaded results",
    )
    download_timeout_seconds: float = Field(
        default=60.0,
        description="Timeout for fetching inference outputs before upload",
    )
