"""
Tests for health check endpoints.
"""
import pytest
from httpx import AsyncClient
from fastapi import status

from mongodb_operator.main import app


@pytest.mark.asyncio
async def test_health_check(test_client: AsyncClient):
    """Test basic health check endpoint."""
    response = await test_client.get("/health/")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["status"] == "healthy"
    assert "version" in data
    assert "timestamp" in data


@pytest.mark.asyncio
async def test_liveness_probe(test_client: AsyncClient):
    """Test Kubernetes liveness probe."""
    response = await test_client.get("/health/live")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["status"] == "alive"
    assert "timestamp" in data


@pytest.mark.asyncio
async def test_readiness_probe(test_client: AsyncClient):
    """Test Kubernetes readiness probe with a configured store."""
    response = await test_client.get("/health/ready")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["status"] == "ready"
    assert data["kubernetes"] == "configured"


@pytest.mark.asyncio
async def test_readiness_probe_without_client(test_client: AsyncClient):
    """Readiness fails while no Kubernetes client is configured."""
    app.state.store = None
    response = await test_client.get("/health/ready")
    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert response.json()["status"] == "not_ready"
