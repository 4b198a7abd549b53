"""
Tests for application-wide behaviour: health, correlation ids and the error envelope.
"""

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


class TestHealth:
    async def test_health_returns_healthy(self, client: AsyncClient):
        response = await client.get("/api/v1/health")
        assert response.status_code == 200
        assert response.json()["message"] == "Healthy"

    async def test_correlation_id_is_echoed(self, client: AsyncClient):
        response = await client.get("/api/v1/health", headers={"X-Correlation-ID": "abc-123"})
        assert response.headers["X-Correlation-ID"] == "abc-123"

    async def test_correlation_id_is_generated(self, client: AsyncClient):
        response = await client.get("/api/v1/health")
        assert response.headers.get("X-Correlation-ID")

    async def test_websocket_info_lists_admin_feed(self, client: AsyncClient):
        response = await client.get("/api/v1/websocket-info")
        assert response.status_code == 200
        paths = [e["path"] for e in response.json()["endpoints"]]
        assert paths == ["/ws/admin"]


class TestErrorEnvelope:
    async def test_unknown_route_uses_envelope(self, client: AsyncClient):
        response = await client.get("/api/v1/does-not-exist", headers={"X-Correlation-ID": "cid-1"})
        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["status"] == 404
        assert body["error"]["type"] == "http_error"
        assert body["correlation_id"] == "cid-1"
        assert body["path"] == "/api/v1/does-not-exist"
        assert body["method"] == "GET"

    async def test_validation_error_envelope(self, client: AsyncClient):
        response = await client.post("/api/v1/guests", json={"fullName": "X"})
        assert response.status_code == 422
        body = response.json()
        assert body["error"]["type"] == "validation_error"
        assert isinstance(body["error"]["details"], list)

    async def test_domain_not_found_envelope(self, admin_client: AsyncClient):
        response = await admin_client.get("/api/v1/guests/999")
        assert response.status_code == 404
        body = response.json()
        assert body["error"]["type"] == "not_found"
        assert body["error"]["message"] == "Guest not found"
