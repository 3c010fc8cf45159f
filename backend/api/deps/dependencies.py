"""
Dependency injection container.

Builds the lifecycle-scoped services once at startup and exposes them to
route handlers through FastAPI dependencies.

Dependencies: backend.configs, backend.application, backend.boundary, backend.core
System role: DI container for service injection
"""

from dataclasses import dataclass
import logging
from typing import Any

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.application.services.job_processor import JobProcessor
from backend.application.services.job_service import JobService
from backend.boundary.aws.s3_client import S3ResultClient
from backend.boundary.db import get_async_db
from backend.boundary.inference.replicate_client import ReplicateClient
from backend.boundary.storage.result_store import (
    PassthroughResultStore,
    ResultStore,
    S3ResultStore,
)
from backend.configs import Settings
from backend.core.image_pipeline import ImagePipeline, InferenceClient
from backend.core.rate_limiter import RateLimitGate, SlidingWindowRateLimiter
from backend.models.principal import ANONYMOUS_OWNER_ID, Principal
from backend.workers.dispatcher import JobDispatcher

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Services that live for the whole application lifetime."""

    settings: Settings
    rate_limit_gate: RateLimitGate
    inference_client: InferenceClient
    result_store: ResultStore
    pipeline: ImagePipeline
    processor: JobProcessor
    dispatcher: JobDispatcher

    async def aclose(self) -> None:
        """Drain background jobs and release client resources."""
        await self.dispatcher.shutdown(self.settings.worker.shutdown_grace_seconds)
        for resource in (self.inference_client, self.result_store):
            close = getattr(resource, "close", None)
            if callable(close):
                close()


def build_result_store(settings: Settings) -> ResultStore:
    """
    Pick the result store for the configured bucket.

    Returns:
        ResultStore: S3ResultStore when a bucket is set, else passthrough
    """
    storage = settings.result_storage
    if not storage.bucket:
        logger.info("No result bucket configured, keeping inference URLs")
        return PassthroughResultStore()

    client = S3ResultClient(
        bucket=storage.bucket,
        region=storage.region,
        endpoint_url=storage.endpoint_url,
        public_base_url=storage.public_base_url,
    )
    return S3ResultStore(
        client,
        key_prefix=storage.key_prefix,
        download_timeout_seconds=storage.download_timeout_seconds,
    )


def build_rate_limit_gate(settings: Settings, **limiter_kwargs: Any) -> RateLimitGate:
    config = settings.rate_limit
    limiter = SlidingWindowRateLimiter(
        limit=config.requests,
        window_seconds=config.window_seconds,
        burst_limit=config.burst_requests,
        burst_window_seconds=config.burst_window_seconds,
        **limiter_kwargs,
    )
    return RateLimitGate(limiter)


def build_service_container(
    settings: Settings,
    *,
    inference_client: InferenceClient | None = None,
    result_store: ResultStore | None = None,
    rate_limit_gate: RateLimitGate | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> ServiceContainer:
    """
    Wire the application services.

    Collaborators can be passed in to replace the external ones (tests,
    alternative providers); anything omitted is built from settings.

    Args:
        settings: Application settings
        inference_client: Inference client (defaults to ReplicateClient)
        result_store: Result store (defaults from result storage settings)
        rate_limit_gate: Submission gate (defaults from rate limit settings)
        session_factory: Session factory for background processing

    Returns:
        ServiceContainer: Ready-to-use services
    """
    inference_client = inference_client or ReplicateClient(settings.inference)
    result_store = result_store or build_result_store(settings)
    pipeline = ImagePipeline(inference_client, settings.inference)
    processor = JobProcessor(pipeline, result_store, session_factory=session_factory)
    dispatcher = JobDispatcher(processor.process, max_concurrency=settings.worker.max_concurrency)

    return ServiceContainer(
        settings=settings,
        rate_limit_gate=rate_limit_gate or build_rate_limit_gate(settings),
        inference_client=inference_client,
        result_store=result_store,
        pipeline=pipeline,
        processor=processor,
        dispatcher=dispatcher,
    )


def get_services(request: Request) -> ServiceContainer:
    """Get the service container attached to the running app."""
    return request.app.state.services


def get_settings_dependency(services: ServiceContainer = Depends(get_services)) -> Settings:
    """Get settings the app was started with."""
    return services.settings


def get_job_service(db: AsyncSession = Depends(get_async_db)) -> JobService:
    """
    Get JobService instance with injected dependencies.

    Args:
        db: AsyncSession from dependency injection

    Returns:
        JobService: Configured job service
    """
    return JobService(db=db)


def get_principal(
    request: Request,
    settings: Settings = Depends(get_settings_dependency),
) -> Principal:
    """
    Resolve the caller from the identity headers set by the auth gateway.

    Returns:
        Principal: Authenticated principal, or the anonymous principal when
        no user id is present

    Raises:
        HTTPException(401): The user id collides with the guest owner id
    """
    auth = settings.auth
    user_id = (request.headers.get(auth.user_id_header) or "").strip()
    if not user_id:
        return Principal.anonymous()
    if user_id == ANONYMOUS_OWNER_ID:
        logger.warning("Rejected reserved user id", extra={"user_id": user_id})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"User id '{ANONYMOUS_OWNER_ID}' is reserved",
        )

    role = (request.headers.get(auth.role_header) or "").strip().lower()
    is_admin = role == auth.admin_role.lower() or user_id in auth.admin_user_ids
    return Principal(user_id=user_id, is_admin=is_admin)


def get_client_ip(request: Request) -> str:
    """Extract best-effort client IP from proxy headers or request client."""
    forwarded_for = request.headers.get("x-forwarded-for", "").strip()
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return "unknown"
