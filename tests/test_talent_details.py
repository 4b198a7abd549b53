"""
Tests for the talent details table (performances joined with students).
"""

import pytest
from httpx import AsyncClient

from conftest import register_contestant

pytestmark = pytest.mark.asyncio


async def seed_talents(client: AsyncClient):
    await register_contestant(client, count=1, title="Sea Ballad")
    await register_contestant(client, count=2, title="Anchors Away")


class TestListTalents:
    async def test_requires_admin(self, client: AsyncClient):
        response = await client.get("/api/v1/talent-details")
        assert response.status_code == 401

    async def test_lists_with_pagination(self, admin_client: AsyncClient):
        await seed_talents(admin_client)
        response = await admin_client.get("/api/v1/talent-details", params={"limit": 2})
        body = response.json()
        assert body["pagination"]["total"] == 3
        assert body["pagination"]["totalPages"] == 2
        assert len(body["data"]) == 2
        assert body["data"][0]["student"]["school"] == "Maritime Academy"

    async def test_search_matches_title(self, admin_client: AsyncClient):
        await seed_talents(admin_client)
        response = await admin_client.get("/api/v1/talent-details", params={"search": "anchors"})
        data = response.json()["data"]
        assert len(data) == 2
        assert {row["title"] for row in data} == {"Anchors Away"}

    async def test_sort_by_title_ascending(self, admin_client: AsyncClient):
        await seed_talents(admin_client)
        response = await admin_client.get(
            "/api/v1/talent-details", params={"sort": "performance_title", "order": "asc"}
        )
        titles = [row["title"] for row in response.json()["data"]]
        assert titles == ["Anchors Away", "Anchors Away", "Sea Ballad"]

    async def test_filter_by_type(self, admin_client: AsyncClient):
        await seed_talents(admin_client)
        response = await admin_client.get("/api/v1/talent-details", params={"performance_type": "Dancing"})
        assert response.json()["data"] == []

    async def test_rejects_bad_order(self, admin_client: AsyncClient):
        response = await admin_client.get("/api/v1/talent-details", params={"order": "sideways"})
        assert response.status_code == 422


class TestTalentCrud:
    async def test_create_get_update_delete(self, admin_client: AsyncClient):
        await register_contestant(admin_client, count=1)
        listing = (await admin_client.get("/api/v1/talent-details")).json()["data"]
        student_id = listing[0]["student"]["student_id"]

        response = await admin_client.post(
            "/api/v1/talent-details",
            json={"student_id": student_id, "performance_type": "Dancing", "title": "Encore", "duration": "3 min"},
        )
        assert response.status_code == 201
        created = response.json()
        assert created["message"] == "Talent created successfully"
        pid = created["data"]["performance_id"]
        assert created["data"]["performance_created_at"] is not None

        response = await admin_client.put(f"/api/v1/talent-details/{pid}", json={"title": "Encore II"})
        assert response.json()["data"]["title"] == "Encore II"
        assert response.json()["data"]["performance_type"] == "Dancing"

        response = await admin_client.get(f"/api/v1/talent-details/{pid}")
        assert response.json()["data"]["duration"] == "3 min"

        response = await admin_client.delete(f"/api/v1/talent-details/{pid}")
        assert response.json()["message"] == "Talent deleted successfully"
        response = await admin_client.get(f"/api/v1/talent-details/{pid}")
        assert response.status_code == 404

    async def test_create_for_missing_student(self, admin_client: AsyncClient):
        response = await admin_client.post(
            "/api/v1/talent-details",
            json={"student_id": 999, "performance_type": "Singing", "title": "Ghost"},
        )
        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Student not found"

    async def test_update_missing_performance(self, admin_client: AsyncClient):
        response = await admin_client.put("/api/v1/talent-details/999", json={"title": "X"})
        assert response.status_code == 404
