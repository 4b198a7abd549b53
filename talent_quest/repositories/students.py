from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import delete, select

from talent_quest.db.models.compliance import Consent, Endorsement, HealthFitness, Requirement
from talent_quest.db.models.registrants import Student
from .base import BaseRepository

# Compliance tables keyed by student_id, with the columns holding stored file URLs
COMPLIANCE_FILE_COLUMNS = {
    Requirement: ("certification_url", "school_id_url"),
    HealthFitness: ("student_signature_url", "parent_guardian_signature_url"),
    Consent: ("student_signature_url", "parent_guardian_signature_url"),
    Endorsement: ("signature_url",),
}


class StudentRepository(BaseRepository):
    """Students and their compliance records (requirements, health, consents, endorsements)."""

    async def get(self, student_id: int) -> Optional[Student]:
        return await self.session.get(Student, student_id)

    async def get_many(self, student_ids: Iterable[int]) -> Dict[int, Student]:
        ids = list(set(student_ids))
        if not ids:
            return {}
        rows = await self.scalars(select(Student).where(Student.student_id.in_(ids)))
        return {s.student_id: s for s in rows}

    async def create(self, **values: Any) -> Student:
        student = Student(**values)
        await self.add(student)
        await self.flush()
        return student

    async def update(self, student: Student, values: Dict[str, Any]) -> Student:
        self.apply_values(student, values)
        await self.flush()
        return student

    async def delete(self, student_id: int) -> None:
        await self.execute(delete(Student).where(Student.student_id == student_id))

    # Compliance records
    async def add_requirement(self, **values: Any) -> Requirement:
        row = Requirement(**values)
        await self.add(row)
        return row

    async def add_health_declaration(self, **values: Any) -> HealthFitness:
        row = HealthFitness(**values)
        await self.add(row)
        return row

    async def add_consent(self, **values: Any) -> Consent:
        row = Consent(**values)
        await self.add(row)
        return row

    async def add_endorsement(self, **values: Any) -> Endorsement:
        row = Endorsement(**values)
        await self.add(row)
        return row

    async def compliance_for_students(self, student_ids: Iterable[int]) -> Dict[int, Dict[str, Any]]:
        """
        Return the latest requirements/health/consents/endorsement row per student.

        Keys of each entry: requirements, health, consents, endorsement (None when absent).
        """
        ids = list(set(student_ids))
        records: Dict[int, Dict[str, Any]] = {
            sid: {"requirements": None, "health": None, "consents": None, "endorsement": None} for sid in ids
        }
        if not ids:
            return records
        for model, key in (
            (Requirement, "requirements"),
            (HealthFitness, "health"),
            (Consent, "consents"),
            (Endorsement, "endorsement"),
        ):
            pk = model.__mapper__.primary_key[0]
            rows = await self.scalars(select(model).where(model.student_id.in_(ids)).order_by(pk))
            for row in rows:
                records[row.student_id][key] = row
        return records

    async def file_urls_for_students(self, student_ids: Iterable[int]) -> List[str]:
        """Every stored file URL referenced by the students' compliance records."""
        ids = list(set(student_ids))
        urls: List[str] = []
        if not ids:
            return urls
        for model, columns in COMPLIANCE_FILE_COLUMNS.items():
            rows = await self.scalars(select(model).where(model.student_id.in_(ids)))
            for row in rows:
                urls.extend(url for url in (getattr(row, c) for c in columns) if url)
        return urls

    async def delete_compliance(self, student_ids: Iterable[int]) -> None:
        ids = list(set(student_ids))
        if not ids:
            return
        for model in COMPLIANCE_FILE_COLUMNS:
            await self.execute(delete(model).where(model.student_id.in_(ids)))
