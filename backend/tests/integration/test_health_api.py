"""
Integration tests for health check endpoints.
"""

import pytest
from fastapi import status


@pytest.mark.asyncio
async def test_health(async_client):
    response = await async_client.get("/api/v1/health")

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "healthy"
    assert "X-Request-ID" in response.headers


@pytest.mark.asyncio
async def test_scheduler_health_reports_dispatcher(async_client):
    response = await async_client.get("/api/v1/health/scheduler")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["publications"] == {"pending": 0, "running": 0, "completed": 0, "failed": 0}
    assert "running" in data["scanner"]


@pytest.mark.asyncio
async def test_root(async_client):
    response = await async_client.get("/")

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["health"] == "/api/v1/health"
