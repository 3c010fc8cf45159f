"""
Shared test fixtures and configuration for entire test suite.

Provides: in-memory database sessions, fake inference client, recording
dispatcher, and an API client wired with test services
Dependencies: pytest, sqlalchemy, fastapi
System role: Test infrastructure and fixture management
"""

import os

# Settings are read once per process; point them at throwaway resources
# before any backend module is imported.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["AUTH_ALLOW_ANONYMOUS"] = "false"
os.environ.pop("RESULT_STORAGE_BUCKET", None)
os.environ.pop("REPLICATE_API_TOKEN", None)

from typing import Any

import pytest

from backend.core.exceptions import InferenceError


class FakeInferenceClient:
    """In-process stand-in for the Replicate client."""

    def __init__(self, fail_on: str | None = None, empty_on: str | None = None) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.fail_on = fail_on
        self.empty_on = empty_on
        self.closed = False

    async def run_model(self, version: str, model_input: dict[str, Any]) -> list[str]:
        self.calls.append((version, model_input))
        if self.fail_on and version == self.fail_on:
            raise InferenceError("model crashed")
        if self.empty_on and version == self.empty_on:
            return []
        if "num_outputs" in model_input:
            return [
                f"https://replicate.delivery/gen/{index}.png"
                for index in range(model_input["num_outputs"])
            ]
        source = model_input.get("image") or model_input.get("img")
        return [f"{source}?step={len(self.calls)}"]

    def close(self) -> None:
        self.closed = True

    def versions_called(self) -> list[str]:
        return [version for version, _ in self.calls]


class RecordingDispatcher:
    """Dispatcher that only records submissions; tests run the processor."""

    def __init__(self) -> None:
        self.submitted: list[str] = []
        self.shut_down = False

    @property
    def closed(self) -> bool:
        return self.shut_down

    @property
    def in_flight(self) -> int:
        return 0

    def submit(self, job_id: str):
        from backend.workers.dispatcher import DispatchHandle

        self.submitted.append(job_id)
        return DispatchHandle(job_id=job_id, accepted=True)

    async def shutdown(self, timeout: float = 30.0) -> None:
        self.shut_down = True


@pytest.fixture
def fake_inference() -> FakeInferenceClient:
    """Provide a fake inference client."""
    return FakeInferenceClient()


@pytest.fixture
def inference_settings():
    """Provide inference settings with a dummy token."""
    from backend.configs.inference import InferenceSettings

    return InferenceSettings(api_token="test-token", poll_interval_seconds=0.0)


@pytest.fixture
async def session_factory():
    """
    Create in-memory SQLite async database for testing.

    Yields:
        async_sessionmaker: Session factory bound to a fresh database
    """
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
    from sqlalchemy.pool import StaticPool

    from backend.boundary.db.base import Base
    from backend.boundary.db import models  # noqa: F401

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_async_db(session_factory):
    """
    Provide a session on the in-memory database.

    Yields:
        AsyncSession: Test database session
    """
    async with session_factory() as session:
        yield session


@pytest.fixture
def job_request_factory():
    """Build NormalizedJobRequest objects with sensible defaults."""
    from backend.boundary.db.models.job_model import JobType
    from backend.models.job import JobSettings, NormalizedJobRequest

    def _build(owner_id: str = "u1", job_type: JobType = JobType.PERSON, **settings: Any):
        return NormalizedJobRequest(
            owner_id=owner_id,
            input_reference="https://example.com/a.jpg",
            job_type=job_type,
            settings=JobSettings(**settings),
        )

    return _build


@pytest.fixture
def make_services(fake_inference):
    """
    Build a service container for API tests.

    The dispatcher is replaced by RecordingDispatcher so background work
    only runs when a test asks for it.
    """
    from backend.api.deps.dependencies import build_service_container
    from backend.boundary.storage.result_store import PassthroughResultStore
    from backend.configs import get_settings

    def _make(settings=None, **overrides: Any):
        container = build_service_container(
            settings or get_settings(),
            inference_client=overrides.pop("inference_client", fake_inference),
            result_store=overrides.pop("result_store", PassthroughResultStore()),
            **overrides,
        )
        container.dispatcher = RecordingDispatcher()
        return container

    return _make


@pytest.fixture
def make_client(make_services):
    """Start the app with test services; yields a factory of TestClients."""
    from fastapi.testclient import TestClient

    from backend.api.main import create_app

    clients = []

    def _make(services=None):
        services = services or make_services()
        test_client = TestClient(create_app(services=services))
        test_client.__enter__()
        clients.append(test_client)
        return test_client

    yield _make

    for test_client in clients:
        test_client.__exit__(None, None, None)


@pytest.fixture
def client(make_client):
    """API client with default test services."""
    return make_client()
