from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import delete, select

from talent_quest.db.models.performances import Single
from talent_quest.db.models.registrants import Student
from .base import BaseRepository


class SingleRepository(BaseRepository):
    """Solo entries."""

    async def get(self, single_id: int) -> Optional[Single]:
        return await self.session.get(Single, single_id)

    async def list_with_students(self) -> List[Tuple[Single, Optional[Student]]]:
        stmt = (
            select(Single, Student)
            .outerjoin(Student, Student.student_id == Single.student_id)
            .order_by(Single.single_id.desc())
        )
        result = await self.execute(stmt)
        return [(single, student) for single, student in result.all()]

    async def create(self, **values: Any) -> Single:
        single = Single(**values)
        await self.add(single)
        await self.flush()
        return single

    async def update(self, single: Single, values: Dict[str, Any]) -> Single:
        self.apply_values(single, values)
        await self.flush()
        return single

    async def delete(self, single_id: int) -> None:
        await self.execute(delete(Single).where(Single.single_id == single_id))
