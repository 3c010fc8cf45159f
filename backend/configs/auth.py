"""
Principal resolution settings.

The auth provider sits in front of this service and forwards the caller's
identity in trusted headers.

Dependencies: pydantic_settings
System role: Auth pass-through configuration
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AuthSettings(BaseSettings):
    """Settings for identity headers and guest access."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="AUTH_",
        case_sensitive=False,
        extra="ignore",
    )

    allow_anonymous: bool = Field(
        default=False,
        description="Accept submissions without an authenticated user",
    )
    admin_user_ids: list[str] = Field(
        default_factory=list,
        description="User ids treated as administrators (JSON list)",
    )
    user_id_header: str = Field(default="X-User-Id", description="Header carrying the user id")
    role_header: str = Field(default="X-User-Role", description="Header carrying the user role")
    admin_role: str = Field(default="admin", description="Role value that grants admin access")
