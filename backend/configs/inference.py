"""
Inference service configuration.

Replicate credentials, model versions for each pipeline step, and polling
behaviour for prediction status.

Dependencies: pydantic_settings
System role: External AI inference configuration
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class InferenceSettings(BaseSettings):
    """Settings for the Replicate predictions API."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="REPLICATE_",
        case_sensitive=False,
        extra="ignore",
    )

    api_token: str | None = Field(
        default=None,
        description="Replicate API token (REPLICATE_API_TOKEN)",
    )
    base_url: str = Field(
        default="https://api.replicate.com/v1",
        description="Replicate API base URL",
    )
    background_removal_version: str = Field(
        default="fb8af171cfa1616ddcf1242c093f9c46bcada5ad4cf6f2fbe8b81b330ec5c003",
        description="rembg model version",
    )
    face_enhancement_version: str = Field(
        default="9283608cc6b7be6b65a8e44983db012355fde4132009bf99d976b2f0896856a3",
        description="GFPGAN model version",
    )
    generation_version: str = Field(
        default="39ed52f2a78e934b3ba6e2a89f5b1c712de7dfea535525255b1aa35c5565e08b",
        description="SDXL model version used for styled generation",
    )
    upscale_version: str = Field(
        default="42fed1c4974146d4d2414e2be2c5277c7fcf05fcc3a73abf41610695738c1d7b",
        description="Real-ESRGAN model version",
    )
    poll_interval_seconds: float = Field(
        default=1.0,
        description="Delay between prediction status polls",
    )
    timeout_seconds: float = Field(
        default=300.0,
        description="Maximum time a single prediction may take before it is treated as failed",
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        description="HTTP timeout for individual API requests",
    )
