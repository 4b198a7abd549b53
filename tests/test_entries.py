"""
Tests for the single and group performance admin routes.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from conftest import register_contestant
from talent_quest.db.models.compliance import Consent, HealthFitness
from talent_quest.db.models.passes import QrCode
from talent_quest.db.models.performances import Group, GroupMember, Performance, Single
from talent_quest.db.models.registrants import Student

pytestmark = pytest.mark.asyncio


async def count_rows(db, model) -> int:
    async with db() as s:
        return (await s.execute(select(func.count()).select_from(model))).scalar_one()


class TestSingles:
    async def test_list_singles(self, admin_client: AsyncClient):
        await register_contestant(admin_client, count=1, title="Sea Ballad")
        response = await admin_client.get("/api/v1/single-performances")
        [item] = response.json()["data"]
        assert item["performance_title"] == "Sea Ballad"
        assert item["student_name"] == "Performer 0 Dela Cruz"
        assert item["student_school"] == "Maritime Academy"
        assert item["performance_type"] == "Singing"
        assert item["duration"] == "4 minutes"
        assert item["id"] == item["single_id"]

    async def test_detail_includes_records(self, admin_client: AsyncClient):
        data = await register_contestant(admin_client, count=1)
        response = await admin_client.get(f"/api/v1/single-performances/{data['singleId']}")
        detail = response.json()["data"]
        assert detail["student"]["email"] == "performer0@example.com"
        assert detail["performance"]["title"] == "Ocean Song"
        assert detail["health"]["is_physically_fit"] is True
        assert detail["consents"]["agree_to_rules"] is True
        assert detail["endorsement"]["school_official_name"] == "Dr. Santos"
        assert detail["requirements"] is None

    async def test_rename_requires_id(self, admin_client: AsyncClient):
        response = await admin_client.put("/api/v1/single-performances", json={"performance_title": "X"})
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "single_id is required"

    async def test_rename(self, admin_client: AsyncClient):
        data = await register_contestant(admin_client, count=1)
        response = await admin_client.put(
            "/api/v1/single-performances",
            json={"single_id": data["singleId"], "performance_title": "Renamed"},
        )
        assert response.status_code == 200
        assert response.json()["data"]["performance_title"] == "Renamed"

    async def test_update_sections(self, admin_client: AsyncClient):
        data = await register_contestant(admin_client, count=1)
        response = await admin_client.put(
            f"/api/v1/single-performances/{data['singleId']}",
            json={
                "single": {"performance_description": "Acoustic"},
                "student": {"school": "Naval College"},
                "performance": {"performance_type": "Other", "duration": "5 minutes"},
            },
        )
        detail = response.json()["data"]
        assert detail["single"]["performance_description"] == "Acoustic"
        assert detail["single"]["performance_title"] == "Ocean Song"
        assert detail["student"]["school"] == "Naval College"
        assert detail["performance"]["performance_type"] == "Other"
        assert detail["performance"]["duration"] == "5 minutes"

    async def test_delete_cascades_rows_and_files(self, admin_client: AsyncClient, db, storage):
        files = {"performers[0].schoolCertification": ("cert.pdf", b"pdf", "application/pdf")}
        data = await register_contestant(admin_client, count=1, files=files)

        response = await admin_client.delete(f"/api/v1/single-performances/{data['singleId']}")
        assert response.status_code == 200
        assert response.json()["data"] == {"filesRemoved": 3}

        for model in (Single, Student, Performance, HealthFitness, Consent, QrCode):
            assert await count_rows(db, model) == 0
        assert [p for p in storage.root.rglob("*") if p.is_file()] == []

    async def test_delete_by_query(self, admin_client: AsyncClient):
        data = await register_contestant(admin_client, count=1)
        response = await admin_client.delete("/api/v1/single-performances", params={"single_id": data["singleId"]})
        assert response.json()["message"] == "Single performance deleted successfully"

        response = await admin_client.delete("/api/v1/single-performances")
        assert response.status_code == 400

    async def test_missing_single(self, admin_client: AsyncClient):
        response = await admin_client.get("/api/v1/single-performances/404")
        assert response.status_code == 404


class TestGroups:
    async def test_list_groups_with_members(self, admin_client: AsyncClient):
        await register_contestant(admin_client, count=3, title="Anchors")
        response = await admin_client.get("/api/v1/group-performances")
        [group] = response.json()["groups"]
        assert group["group_name"] == "Anchors Group"
        students = group["students"]
        assert len(students) == 3
        assert [s["is_leader"] for s in students].count(True) == 1
        assert group["leader_id"] == next(s["student_id"] for s in students if s["is_leader"])
        assert all(s["performance"]["num_performers"] == 3 for s in students)
        assert all(s["consents"] is not None for s in students)

    async def test_update_group_maps_aliases(self, admin_client: AsyncClient):
        data = await register_contestant(admin_client, count=2)
        response = await admin_client.put(
            "/api/v1/group-performances",
            json={"group_id": data["groupId"], "group_name": "Deckhands", "performance_type": "Dance",
                  "description": "Hornpipe"},
        )
        group = response.json()["data"]
        assert group["group_name"] == "Deckhands"
        assert group["performance_type"] == "Dancing"
        assert group["performance_title"] == "Hornpipe"

    async def test_update_group_rejects_unknown_type(self, admin_client: AsyncClient):
        data = await register_contestant(admin_client, count=2)
        response = await admin_client.put(
            "/api/v1/group-performances", json={"group_id": data["groupId"], "performance_type": "Juggling"}
        )
        assert response.status_code == 400

    async def test_update_group_requires_id(self, admin_client: AsyncClient):
        response = await admin_client.put("/api/v1/group-performances", json={"group_name": "X"})
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Group ID is required"

    async def test_update_member(self, admin_client: AsyncClient, db):
        await register_contestant(admin_client, count=2)
        async with db() as s:
            member = (await s.execute(select(GroupMember).where(GroupMember.is_leader.is_(False)))).scalar_one()
        response = await admin_client.put(
            "/api/v1/group-performances/member",
            json={"member_id": member.student_id, "full_name": "New Name", "role": "Drummer"},
        )
        updated = response.json()["data"]
        assert updated["full_name"] == "New Name"
        assert updated["course_year"] == "Drummer"
        assert updated["email"] == "performer1@example.com"

    async def test_update_member_errors(self, admin_client: AsyncClient):
        response = await admin_client.put("/api/v1/group-performances/member", json={"full_name": "No Id"})
        assert response.status_code == 400
        response = await admin_client.put("/api/v1/group-performances/member", json={"member_id": 999})
        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Member not found"

    async def test_delete_group_keeps_students(self, admin_client: AsyncClient, db, storage):
        data = await register_contestant(admin_client, count=2)
        response = await admin_client.delete("/api/v1/group-performances", params={"group_id": data["groupId"]})
        assert response.json()["message"] == "Group deleted successfully"

        assert await count_rows(db, Group) == 0
        assert await count_rows(db, GroupMember) == 0
        assert await count_rows(db, QrCode) == 0
        assert await count_rows(db, Student) == 2
        assert list((storage.root / "qr-codes").rglob("*.png")) == []

    async def test_delete_group_requires_id(self, admin_client: AsyncClient):
        response = await admin_client.delete("/api/v1/group-performances")
        assert response.status_code == 400
