"""
Tests for QR pass management: listing holders, (re)generation and guest lookups.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from conftest import register_contestant, register_guest
from talent_quest.db.models.passes import QrCode
from talent_quest.repositories.passes import QrCodeRepository

pytestmark = pytest.mark.asyncio


class TestPassHolders:
    async def test_lists_all_holder_kinds_sorted_by_name(self, admin_client: AsyncClient):
        await register_guest(admin_client, fullName="Zoe Guest", email="zoe@example.com")
        await register_contestant(admin_client, count=1, title="Solo Act")
        await register_contestant(admin_client, count=2, title="Anchors")

        response = await admin_client.get("/api/v1/qr-code-management")
        body = response.json()
        assert body["total"] == 3
        assert body["pageSize"] == 10
        names = [h["name"] for h in body["items"]]
        assert names == ["Anchors Group", "Performer 0 Dela Cruz", "Zoe Guest"]
        group = body["items"][0]
        assert group["type"] == "group"
        assert group["memberCount"] == 2
        assert group["email"] == "performer0@example.com"
        assert all(h["qr"] for h in body["items"])

    async def test_filters_and_pages(self, admin_client: AsyncClient):
        await register_guest(admin_client, issue_pass=False, fullName="Ana Guest", email="ana@example.com")
        await register_guest(admin_client, issue_pass=False, fullName="Ben Guest", email="ben@example.com")

        response = await admin_client.get("/api/v1/qr-code-management", params={"q": "BEN"})
        assert [h["name"] for h in response.json()["items"]] == ["Ben Guest"]

        response = await admin_client.get("/api/v1/qr-code-management", params={"page": 2, "pageSize": 1})
        body = response.json()
        assert body["total"] == 2
        assert [h["name"] for h in body["items"]] == ["Ben Guest"]


class TestGeneratePasses:
    async def test_requires_items(self, admin_client: AsyncClient):
        response = await admin_client.post("/api/v1/qr-code-management/generate", json={})
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "No items provided"

    async def test_regenerates_guest_pass_and_replaces_row(self, admin_client: AsyncClient, db, storage):
        guest = (await register_guest(admin_client))["guest"]
        gid = guest["guest_id"]

        response = await admin_client.post(
            "/api/v1/qr-code-management/generate",
            json={"items": [{"id": gid, "type": "guest", "name": "Maria G"}]},
        )
        result = response.json()["results"][0]
        assert result["error"] is None
        assert result["url"].endswith(f"/qr-codes/guests/{gid}_maria_g.png")
        assert not (storage.root / "qr-codes" / "guests" / f"{gid}_maria_guest.png").exists()

        async with db() as s:
            rows = (await s.execute(select(QrCode))).scalars().all()
            assert [r.qr_code_url for r in rows] == [result["url"]]

    async def test_legacy_user_ids_are_guests(self, admin_client: AsyncClient):
        guest = (await register_guest(admin_client, issue_pass=False))["guest"]
        response = await admin_client.post(
            "/api/v1/qr-code-management/generate", json={"userIds": [guest["guest_id"]]}
        )
        result = response.json()["results"][0]
        assert result["type"] == "guest"
        assert result["url"]

    async def test_reports_missing_items_without_failing_batch(self, admin_client: AsyncClient):
        guest = (await register_guest(admin_client, issue_pass=False))["guest"]
        response = await admin_client.post(
            "/api/v1/qr-code-management/generate",
            json={"items": [{"id": 999, "type": "single"}, {"id": guest["guest_id"], "type": "guest"}]},
        )
        assert response.status_code == 200
        missing, ok = response.json()["results"]
        assert missing["error"] == "Single performance not found"
        assert missing["url"] is None
        assert ok["url"]

    async def test_reports_database_failure_per_item(self, admin_client: AsyncClient, db, storage, monkeypatch):
        single_id = (await register_contestant(admin_client, count=1))["singleId"]
        guest_id = (await register_guest(admin_client, issue_pass=False))["guest"]["guest_id"]
        original_create = QrCodeRepository.create

        async def create(self, owner, owner_id, url):
            if owner == "single":
                raise SQLAlchemyError("INSERT INTO qr_codes failed")
            return await original_create(self, owner, owner_id, url)

        monkeypatch.setattr(QrCodeRepository, "create", create)
        response = await admin_client.post(
            "/api/v1/qr-code-management/generate",
            json={"items": [{"id": single_id, "type": "single"}, {"id": guest_id, "type": "guest", "manual": True}]},
        )
        assert response.status_code == 200
        failed, ok = response.json()["results"]
        assert failed["error"] == "Could not save QR code"
        assert failed["url"] is None
        assert ok["url"]

        async with db() as s:
            rows = (await s.execute(select(QrCode))).scalars().all()
            assert sorted((r.single_id is not None, r.guest_id is not None) for r in rows) == [
                (False, True),
                (True, False),
            ]
        assert (storage.root / "qr-codes" / "singles" / f"{single_id}_Performer_0_Dela_Cruz.png").exists()

    async def test_group_pass_is_copied_for_each_member(self, admin_client: AsyncClient, storage):
        data = await register_contestant(admin_client, count=2, title="Anchors")
        gid = data["groupId"]
        response = await admin_client.post(
            "/api/v1/qr-code-management/generate", json={"items": [{"id": gid, "type": "group"}]}
        )
        url = response.json()["results"][0]["url"]
        assert f"/group/anchors_group/members/performer_0_dela_cruz/{gid}_performer_0_dela_cruz.png" in url
        members_dir = storage.root / "qr-codes" / "group" / "anchors_group" / "members"
        assert sorted(p.name for p in members_dir.iterdir()) == ["performer_0_dela_cruz", "performer_1_dela_cruz"]

    async def test_single_pass_path(self, admin_client: AsyncClient):
        data = await register_contestant(admin_client, count=1, title="Solo Act")
        sid = data["singleId"]
        response = await admin_client.post(
            "/api/v1/qr-code-management/generate", json={"items": [{"id": sid, "type": "single"}]}
        )
        url = response.json()["results"][0]["url"]
        assert url.endswith(f"/single/solo_act/performer_0_dela_cruz/{sid}_performer_0_dela_cruz.png")


class TestGuestPassLookup:
    async def test_guest_pass(self, admin_client: AsyncClient):
        guest = (await register_guest(admin_client))["guest"]
        response = await admin_client.get(f"/api/v1/qr-code-management/user/{guest['guest_id']}")
        user = response.json()["user"]
        assert user["qr"] == guest["qr_code_url"]
        assert user["qrCreatedAt"] is not None

    async def test_missing_guest(self, admin_client: AsyncClient):
        response = await admin_client.get("/api/v1/qr-code-management/user/77")
        assert response.status_code == 404
        assert response.json()["error"]["message"] == "User not found"

    async def test_users_status(self, admin_client: AsyncClient):
        await register_guest(admin_client)
        await register_guest(admin_client, issue_pass=False, email="second@example.com")
        response = await admin_client.get("/api/v1/qr-code-management/users-status")
        assert response.json() == {"total": 2, "withQR": 1, "withoutQR": 1}
