"""
Tests for contestant registration: single acts, groups, validation and rollback.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from conftest import SIGNATURE_PNG, contestant_form, performer_fields, register_contestant
from talent_quest.db.models.compliance import Consent, Endorsement, HealthFitness, Requirement
from talent_quest.db.models.passes import QrCode
from talent_quest.db.models.performances import Group, GroupMember, Performance, Single
from talent_quest.db.models.registrants import Student
from talent_quest.repositories.passes import QrCodeRepository
from talent_quest.services.qr import QrPassService
from talent_quest.services.storage import StorageError

pytestmark = pytest.mark.asyncio


async def count_rows(db, model) -> int:
    async with db() as s:
        return (await s.execute(select(func.count()).select_from(model))).scalar_one()


def stored_files(storage, bucket):
    root = storage.root / bucket
    if not root.exists():
        return []
    return sorted(str(p.relative_to(root)) for p in root.rglob("*") if p.is_file())


class TestSingleRegistration:
    async def test_describe_endpoint(self, client: AsyncClient):
        response = await client.get("/api/v1/contestant")
        assert response.json() == {"success": True, "message": "Contestant registration API endpoint"}

    async def test_registers_single_with_documents(self, client: AsyncClient, db, storage, mailer):
        files = {"performers[0].schoolCertification": ("cert.pdf", b"%PDF-1.4 test", "application/pdf")}
        data = await register_contestant(client, count=1, title="Sea Ballad", files=files)

        assert data["isGroup"] is False
        assert data["groupId"] is None
        single_id = data["singleId"]
        assert data["qrCodeUrl"].startswith("http://testserver/storage/qr-codes/singles/")
        assert data["emailSent"] is True

        async with db() as s:
            single = await s.get(Single, single_id)
            student = await s.get(Student, single.student_id)
            assert single.performance_title == "Sea Ballad"
            assert student.full_name == "Performer 0 Dela Cruz"
            performance = (await s.execute(select(Performance))).scalar_one()
            assert performance.student_id == student.student_id
            assert performance.performance_type == "Singing"
            assert performance.num_performers == 1
            requirement = (await s.execute(select(Requirement))).scalar_one()
            assert requirement.certification_url.endswith(".pdf")
            assert requirement.school_id_url is None
            health = (await s.execute(select(HealthFitness))).scalar_one()
            assert health.student_signature_url.endswith(".png")
            assert health.parent_guardian_signature_url is None
            assert await s.get(QrCode, 1) is not None

        assert await count_rows(db, Consent) == 1
        assert await count_rows(db, Endorsement) == 1

        files = stored_files(storage, "attachment")
        folder = f"single_{single_id}_Performer_0_Dela_Cruz"
        assert len(files) == 2
        assert all(f.startswith(folder + "/") for f in files)
        assert any("/certification_" in f for f in files)
        signature = next(f for f in files if "/student_signature_" in f)
        assert (storage.root / "attachment" / signature).read_bytes() == SIGNATURE_PNG

        assert len(mailer.sent) == 1
        email = mailer.sent[0]
        assert email.to == "performer0@example.com"
        assert email.headers["X-MTQ-User-Type"] == "contestant_single"
        assert len(email.attachments) == 1
        assert email.attachments[0].filename == "Performer_0_Dela_Cruz_MTQ_2025_QR_Code.png"

    async def test_email_failure_does_not_fail_registration(self, client: AsyncClient, db, mailer):
        mailer.accept = False
        data = await register_contestant(client)
        assert data["emailSent"] is False
        assert await count_rows(db, Single) == 1


class TestGroupRegistration:
    async def test_registers_group_with_leader(self, client: AsyncClient, db, storage, mailer):
        data = await register_contestant(client, count=2, title="Wave Dance")

        assert data["isGroup"] is True
        assert data["singleId"] is None
        group_id = data["groupId"]
        assert "/groups/" in data["qrCodeUrl"]

        async with db() as s:
            group = await s.get(Group, group_id)
            assert group.group_name == "Wave Dance Group"
            assert group.performance_description == "Performer 0 Dela Cruz, Performer 1 Dela Cruz"
            members = (await s.execute(select(GroupMember).order_by(GroupMember.group_member_id))).scalars().all()
            assert [m.is_leader for m in members] == [True, False]
            assert group.leader_id == members[0].student_id
            performances = (await s.execute(select(Performance))).scalars().all()
            assert {p.num_performers for p in performances} == {2}

        assert await count_rows(db, Student) == 2
        assert await count_rows(db, QrCode) == 1

        files = stored_files(storage, "attachment")
        assert any(f.startswith(f"group_{group_id}/performer_1_Performer_0_Dela_Cruz/") for f in files)
        assert any(f.startswith(f"group_{group_id}/performer_2_Performer_1_Dela_Cruz/") for f in files)

        assert sorted(e.to for e in mailer.sent) == ["performer0@example.com", "performer1@example.com"]
        assert {e.headers["X-MTQ-User-Type"] for e in mailer.sent} == {"contestant_group"}
        assert data["emailSent"] is True


class TestRegistrationValidation:
    async def test_rejects_under_age_performer(self, client: AsyncClient, db):
        form = contestant_form()
        form["performers[0].age"] = "15"
        response = await client.post("/api/v1/contestant", data=form)
        assert response.status_code == 422
        assert await count_rows(db, Student) == 0

    async def test_rejects_performer_count_mismatch(self, client: AsyncClient):
        form = contestant_form(count=2)
        form["numberOfPerformers"] = "3"
        response = await client.post("/api/v1/contestant", data=form)
        assert response.status_code == 422
        assert response.json()["error"]["type"] == "validation_error"

    async def test_rejects_unaccepted_declaration(self, client: AsyncClient):
        form = contestant_form()
        form["performers[0].rulesAgreement"] = "false"
        response = await client.post("/api/v1/contestant", data=form)
        assert response.status_code == 422

    async def test_rejects_unknown_performance_type(self, client: AsyncClient):
        response = await client.post("/api/v1/contestant", data=contestant_form(performanceType="Juggling"))
        assert response.status_code == 422

    @pytest.mark.parametrize(
        "override",
        [
            {"age": "31"},
            {"contactNumber": "0912345"},
            {"contactNumber": "0912-345-ABCD"},
            {"email": "performer-at-example"},
            {"fullName": "A"},
            {"school": "M"},
        ],
    )
    async def test_rejects_invalid_performer(self, client: AsyncClient, db, override):
        form = contestant_form()
        form.update(performer_fields(0, **override))
        response = await client.post("/api/v1/contestant", data=form)
        assert response.status_code == 422
        assert await count_rows(db, Student) == 0

    async def test_accepts_oldest_allowed_age(self, client: AsyncClient):
        form = contestant_form()
        form["performers[0].age"] = "30"
        response = await client.post("/api/v1/contestant", data=form)
        assert response.status_code == 200

    async def test_rejects_more_than_ten_performers(self, client: AsyncClient, db):
        response = await client.post("/api/v1/contestant", data=contestant_form(count=11))
        assert response.status_code == 422
        assert await count_rows(db, Group) == 0

    async def test_rejects_undecodable_signature(self, client: AsyncClient, db, storage):
        form = contestant_form()
        form["performers[0].studentSignature"] = "not-a-data-url"
        response = await client.post("/api/v1/contestant", data=form)
        assert response.status_code == 400
        assert await count_rows(db, Single) == 0
        assert stored_files(storage, "attachment") == []


class TestRegistrationRollback:
    async def test_storage_failure_removes_rows_and_files(self, client: AsyncClient, db, storage, mailer, monkeypatch):
        async def fail(*args, **kwargs):
            raise StorageError("bucket offline")

        monkeypatch.setattr(QrPassService, "store_contestant_pass", fail)
        files = {"performers[0].schoolIdCopy": ("id.jpg", b"jpeg-bytes", "image/jpeg")}
        response = await client.post("/api/v1/contestant", data=contestant_form(count=2), files=files)

        assert response.status_code == 500
        assert response.json()["error"]["type"] == "registration_error"
        for model in (Group, GroupMember, Student, Performance, Consent, HealthFitness, QrCode):
            assert await count_rows(db, model) == 0
        assert stored_files(storage, "attachment") == []
        assert mailer.sent == []

    async def test_pass_row_failure_removes_pass_image(self, client: AsyncClient, db, storage, mailer, monkeypatch):
        async def fail(*args, **kwargs):
            raise SQLAlchemyError("INSERT INTO qr_codes failed for performer0@example.com")

        monkeypatch.setattr(QrCodeRepository, "create", fail)
        response = await client.post("/api/v1/contestant", data=contestant_form())

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["type"] == "registration_error"
        assert error["message"] == "Registration failed"
        assert await count_rows(db, Single) == 0
        assert await count_rows(db, Student) == 0
        assert stored_files(storage, "qr-codes") == []
        assert stored_files(storage, "attachment") == []
        assert mailer.sent == []
