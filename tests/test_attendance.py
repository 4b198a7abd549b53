"""
Tests for entrance check-in by pass scan.
"""

import json

import pytest
from httpx import AsyncClient

from conftest import ADMIN_EMAIL, register_contestant, register_guest

pytestmark = pytest.mark.asyncio


class TestScan:
    async def test_first_scan_checks_in_then_duplicate(self, admin_client: AsyncClient):
        guest = (await register_guest(admin_client))["guest"]
        payload = json.dumps({"type": "guest", "id": guest["guest_id"]})

        first = await admin_client.post("/api/v1/attendance/scan", json={"payload": payload})
        assert first.status_code == 200
        body = first.json()
        assert body["message"] == "Checked in"
        assert body["attendance"]["status"] == "checked_in"
        assert body["attendance"]["scanned_by"] == ADMIN_EMAIL
        assert body["holder"]["name"] == "Maria Guest"

        second = await admin_client.post("/api/v1/attendance/scan", json={"payload": payload})
        assert second.json()["attendance"]["status"] == "duplicate"
        assert second.json()["message"] == "Pass already checked in"

        logs = await admin_client.get("/api/v1/attendance")
        data = logs.json()["data"]
        assert logs.json()["pagination"]["total"] == 2
        assert {row["status"] for row in data} == {"checked_in", "duplicate"}
        assert all(row["owner_type"] == "guest" for row in data)

    async def test_scans_group_pass(self, admin_client: AsyncClient):
        data = await register_contestant(admin_client, count=2, title="Anchors")
        payload = json.dumps({"type": "contestant_group", "id": data["groupId"]})
        response = await admin_client.post("/api/v1/attendance/scan", json={"payload": payload})
        holder = response.json()["holder"]
        assert holder["type"] == "group"
        assert holder["memberCount"] == 2

    async def test_bare_id_with_type_hint(self, admin_client: AsyncClient):
        data = await register_contestant(admin_client, count=1)
        response = await admin_client.post(
            "/api/v1/attendance/scan", json={"payload": str(data["singleId"]), "type": "single"}
        )
        assert response.json()["holder"]["type"] == "single"

    async def test_holder_without_pass(self, admin_client: AsyncClient):
        guest = (await register_guest(admin_client, issue_pass=False))["guest"]
        payload = json.dumps({"type": "guest", "id": guest["guest_id"]})
        response = await admin_client.post("/api/v1/attendance/scan", json={"payload": payload})
        assert response.status_code == 404
        assert response.json()["error"]["message"] == "No QR pass has been issued for this holder"

    async def test_unrecognised_payload(self, admin_client: AsyncClient):
        response = await admin_client.post("/api/v1/attendance/scan", json={"payload": "hello"})
        assert response.status_code == 400

    async def test_scan_requires_admin(self, client: AsyncClient):
        response = await client.post("/api/v1/attendance/scan", json={"payload": "{}"})
        assert response.status_code == 401
