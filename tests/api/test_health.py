from unittest.mock import AsyncMock

from sqlalchemy.exc import OperationalError

from backend.boundary.db import get_async_db


def test_health_check(client):
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "message": "Server Healthy"}


def test_health_check_db(client):
    response = client.get("/api/v1/health/db")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "message": "Database connection OK"}


def test_health_check_db_unreachable(client):
    async def broken_db():
        session = AsyncMock()
        session.execute.side_effect = OperationalError("SELECT 1", {}, Exception("connection refused"))
        yield session

    client.app.dependency_overrides[get_async_db] = broken_db
    try:
        response = client.get("/api/v1/health/db")
    finally:
        client.app.dependency_overrides.clear()

    assert response.status_code == 503
    assert response.json() == {"status": "unhealthy", "message": "Database unreachable"}


def test_unknown_route_uses_error_body(client):
    response = client.get("/api/v1/nope")
    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"
