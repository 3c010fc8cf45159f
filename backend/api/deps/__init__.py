"""API-specific dependencies."""

# Re-export common dependencies
from .dependencies import (
    ServiceContainer,
    build_service_container,
    get_client_ip,
    get_job_service,
    get_principal,
    get_services,
    get_settings_dependency,
)

__all__ = [
    "ServiceContainer",
    "build_service_container",
    "get_client_ip",
    "get_job_service",
    "get_principal",
    "get_services",
    "get_settings_dependency",
]
