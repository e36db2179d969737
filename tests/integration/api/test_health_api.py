"""Integration tests for health and root endpoints."""

import pytest


@pytest.mark.asyncio
async def test_health_check(client):
    response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "Folio"
    assert data["version"] == "0.1.0"


@pytest.mark.asyncio
async def test_api_root(client):
    response = await client.get("/api/v1")

    assert response.status_code == 200
    assert response.json()["api_version"] == "v1"


@pytest.mark.asyncio
async def test_correlation_id_is_echoed(client):
    response = await client.get("/health", headers={"X-Correlation-ID": "cid_test"})
    assert response.headers["X-Correlation-ID"] == "cid_test"
