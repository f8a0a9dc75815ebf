"""Tests for the health check endpoint."""
from unittest.mock import patch

from httpx import AsyncClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession


async def test_health(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {
        "status": "healthy",
        "database": "healthy",
        "tables": {"users": True, "bookmarks": True, "tags": True},
    }


async def test_health__unreachable_database_is_degraded(
    client: AsyncClient,
    db_session: AsyncSession,
) -> None:
    error = OperationalError("SELECT", {}, Exception("connection refused"))
    with patch.object(db_session, "execute", side_effect=error):
        response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "degraded",
        "database": "unhealthy",
        "tables": {"users": False, "bookmarks": False, "tags": False},
    }
