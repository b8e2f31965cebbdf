"""Tests for the health check and metrics endpoints."""

import pytest
from fastapi.testclient import TestClient

from tests.mocks.websocket_mocks import create_open_connection


@pytest.fixture
def client(app):
    """
    Create a test client for the FastAPI application.

    Args:
        app: FastAPI application fixture.

    Returns:
        TestClient: FastAPI test client instance.
    """
    return TestClient(app)


def test_health_endpoint_no_connections(client):
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["websocket"] == {"status": "healthy", "active_connections": 0}


@pytest.mark.asyncio
async def test_health_reports_registry_size(app):
    """Active connections reflect the live registry."""
    from httpx import ASGITransport, AsyncClient

    manager = app.state.connection_manager
    for cid in ("1", "2"):
        await manager.register(create_open_connection(cid))

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://testserver"
    ) as http:
        response = await http.get("/health")

    assert response.json()["websocket"]["active_connections"] == 2


def test_health_echoes_correlation_id(client):
    response = client.get("/health", headers={"X-Correlation-ID": "abcdef123456"})

    assert response.headers["X-Correlation-ID"] == "abcdef12"


def test_health_generates_correlation_id(client):
    response = client.get("/health")

    assert len(response.headers["X-Correlation-ID"]) == 8


def test_metrics_endpoint(client):
    response = client.get("/metrics")

    assert response.status_code == 200
    assert "text/plain" in response.headers["content-type"]
    assert "ws_connections_active" in response.text
    assert "ws_broadcast_failures_total" in response.text
