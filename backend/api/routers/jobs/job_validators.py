"""
Job submission validation.

Business rules for incoming job requests that the schema leaves open:
owner resolution, source URL shape, style allow-list and settings limits.
Pure functions with no side effects.

Dependencies: pydantic, backend.models.job, backend.core.exceptions
System role: Request validator for job submissions
"""

import json
from typing import Any
from urllib.parse import urlsplit

from pydantic import ValidationError as PydanticValidationError

from backend.boundary.db.models.job_model import JobStatus, JobType
from backend.core.exceptions import AuthenticationRequired, ValidationError
from backend.models.job import CreateJobRequest, JobSettings, NormalizedJobRequest
from backend.models.principal import Principal

MAX_URL_LENGTH = 2048
MAX_SETTINGS_SIZE = 10000
ALLOWED_SCHEMES = ("http", "https")
VALID_JOB_TYPES = frozenset(job_type.value for job_type in JobType)


def resolve_owner(principal: Principal, allow_anonymous: bool) -> str:
    """
    Resolve the owner id for a submission.

    Raises:
        AuthenticationRequired: No user and guest submissions disabled
    """
    if principal.is_authenticated:
        return principal.owner_id
    if allow_anonymous:
        return principal.owner_id
    raise AuthenticationRequired()


def validate_input_reference(value: Any) -> str:
    """
    Validate the source image URL.

    Returns:
        str: URL with surrounding whitespace removed

    Raises:
        ValidationError: MISSING_REQUIRED_FIELD or INVALID_IMAGE_URL
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(
            "inputReference is required",
            field="inputReference",
            code="MISSING_REQUIRED_FIELD",
        )
    if not isinstance(value, str):
        raise ValidationError(
            "inputReference must be a URL string",
            field="inputReference",
            code="INVALID_IMAGE_URL",
        )

    url = value.strip()
    if len(url) > MAX_URL_LENGTH:
        raise ValidationError(
            f"inputReference cannot exceed {MAX_URL_LENGTH} characters",
            field="inputReference",
            code="INVALID_IMAGE_URL",
        )

    try:
        parts = urlsplit(url)
        hostname = parts.hostname
    except ValueError:
        hostname = None
        parts = None
    if parts is None or parts.scheme.lower() not in ALLOWED_SCHEMES or not hostname:
        raise ValidationError(
            "inputReference must be an absolute http(s) URL",
            field="inputReference",
            code="INVALID_IMAGE_URL",
        )
    return url


def validate_job_type(value: Any) -> JobType:
    """
    Check the requested style against the allow-list.

    Raises:
        ValidationError: MISSING_REQUIRED_FIELD or INVALID_IMAGE_TYPE
    """
    if value is None or value == "":
        raise ValidationError("jobType is required", field="jobType", code="MISSING_REQUIRED_FIELD")
    if not isinstance(value, str) or value not in VALID_JOB_TYPES:
        raise ValidationError(
            "Invalid image type",
            field="jobType",
            code="INVALID_IMAGE_TYPE",
            details={"allowed": sorted(VALID_JOB_TYPES)},
        )
    return JobType(value)


def validate_settings(value: Any) -> JobSettings:
    """
    Parse optional processing settings, applying defaults.

    Raises:
        ValidationError: INVALID_SETTINGS
    """
    if value is None:
        return JobSettings()
    if not isinstance(value, dict):
        raise ValidationError("settings must be an object", field="settings", code="INVALID_SETTINGS")
    if len(json.dumps(value, default=str)) > MAX_SETTINGS_SIZE:
        raise ValidationError("settings payload too large", field="settings", code="INVALID_SETTINGS")

    try:
        return JobSettings.model_validate(value)
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid settings",
            field="settings",
            code="INVALID_SETTINGS",
            details={
                "errors": [
                    {"loc": ".".join(str(part) for part in err["loc"]), "msg": err["msg"]}
                    for err in e.errors()
                ]
            },
        ) from e


def validate_job_request(
    request: CreateJobRequest,
    principal: Principal,
    allow_anonymous: bool = False,
) -> NormalizedJobRequest:
    """
    Validate a submission and normalize it for storage.

    Owner resolution runs first, then the fields in body order.

    Args:
        request: Raw submission body
        principal: Caller identity
        allow_anonymous: Whether guest submissions are accepted

    Returns:
        NormalizedJobRequest: Immutable validated request

    Raises:
        AuthenticationRequired: No owner could be resolved
        ValidationError: Any field is missing or malformed
    """
    owner_id = resolve_owner(principal, allow_anonymous)
    return NormalizedJobRequest(
        owner_id=owner_id,
        input_reference=validate_input_reference(request.input_reference),
        job_type=validate_job_type(request.job_type),
        settings=validate_settings(request.settings),
    )


def parse_status_filter(value: str | None) -> JobStatus | None:
    """
    Parse the optional ``status`` query parameter of the listing endpoint.

    Raises:
        ValidationError: INVALID_STATUS_FILTER
    """
    if value is None or value == "":
        return None
    try:
        return JobStatus(value)
    except ValueError:
        raise ValidationError(
            f"Unknown job status: {value}",
            field="status",
            code="INVALID_STATUS_FILTER",
            details={"allowed": [status.value for status in JobStatus]},
        ) from None
