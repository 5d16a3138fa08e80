from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import AsyncMock

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from leave_engine.db import get_session
from leave_engine.main import app

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


async def test_health_reports_database_up(async_client: AsyncClient) -> None:
    response = await async_client.get("/health")
    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "database": "up",
        "version": "0.1.0",
        "environment": "development",
    }


async def test_health_needs_no_auth_headers(async_client: AsyncClient) -> None:
    response = await async_client.get("/health")
    assert response.status_code == 200


async def test_health_degraded_when_database_is_down() -> None:
    mock_session = AsyncMock(spec=AsyncSession)
    mock_session.execute.side_effect = ConnectionError("DB unreachable")

    async def _broken_session() -> AsyncIterator[AsyncSession]:
        yield mock_session

    app.dependency_overrides[get_session] = _broken_session
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/health")
        data = response.json()
        assert response.status_code == 200
        assert data["status"] == "degraded"
        assert data["database"] == "down"
    finally:
        app.dependency_overrides.clear()


async def test_missing_auth_headers_are_rejected(async_client: AsyncClient) -> None:
    response = await async_client.get("/companies/00000000-0000-0000-0000-000000000001/leave-types")
    assert response.status_code == 422
    assert response.json()["error"] == "ValidationError"
