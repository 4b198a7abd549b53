from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import delete, or_, select

from talent_quest.db.models.performances import Performance
from talent_quest.db.models.registrants import Student
from .base import BaseRepository

SORT_COLUMNS = {
    "student_name": Student.full_name,
    "school": Student.school,
    "performance_type": Performance.performance_type,
    "performance_title": Performance.title,
    "created_at": Performance.created_at,
}


class PerformanceRepository(BaseRepository):
    """Performances and their joined student rows."""

    def _joined(self):
        return select(Performance, Student).join(Student, Student.student_id == Performance.student_id)

    async def list_with_students(
        self,
        *,
        search: Optional[str] = None,
        performance_type: Optional[str] = None,
        school: Optional[str] = None,
        sort: str = "created_at",
        order: str = "desc",
        limit: int = 10,
        offset: int = 0,
    ) -> Tuple[List[Tuple[Performance, Student]], int]:
        stmt = self._joined()
        if search:
            pattern = f"%{search.strip()}%"
            stmt = stmt.where(
                or_(
                    Performance.title.ilike(pattern),
                    Student.full_name.ilike(pattern),
                    Student.school.ilike(pattern),
                )
            )
        if performance_type:
            stmt = stmt.where(Performance.performance_type == performance_type)
        if school:
            stmt = stmt.where(Student.school.ilike(f"%{school.strip()}%"))

        total = await self.count(stmt)
        column = SORT_COLUMNS.get(sort, Performance.created_at)
        direction = column.asc() if order == "asc" else column.desc()
        stmt = stmt.order_by(direction, Performance.performance_id.desc()).offset(offset).limit(limit)
        result = await self.execute(stmt)
        return [(p, s) for p, s in result.all()], total

    async def get_with_student(self, performance_id: int) -> Optional[Tuple[Performance, Student]]:
        result = await self.execute(self._joined().where(Performance.performance_id == performance_id))
        row = result.first()
        return (row[0], row[1]) if row else None

    async def get(self, performance_id: int) -> Optional[Performance]:
        return await self.session.get(Performance, performance_id)

    async def create(self, **values: Any) -> Performance:
        performance = Performance(**values)
        await self.add(performance)
        await self.flush()
        return performance

    async def update(self, performance: Performance, values: Dict[str, Any]) -> Performance:
        self.apply_values(performance, values)
        await self.flush()
        return performance

    async def delete(self, performance_id: int) -> None:
        await self.execute(delete(Performance).where(Performance.performance_id == performance_id))

    async def first_for_students(self, student_ids: Iterable[int]) -> Dict[int, Performance]:
        """Earliest performance row per student."""
        ids = list(set(student_ids))
        if not ids:
            return {}
        rows = await self.scalars(
            select(Performance).where(Performance.student_id.in_(ids)).order_by(Performance.performance_id)
        )
        found: Dict[int, Performance] = {}
        for row in rows:
            found.setdefault(row.student_id, row)
        return found

    async def delete_for_students(self, student_ids: Iterable[int]) -> None:
        ids = list(set(student_ids))
        if ids:
            await self.execute(delete(Performance).where(Performance.student_id.in_(ids)))

    async def all_with_students(self) -> List[Tuple[Performance, Student]]:
        result = await self.execute(self._joined().order_by(Performance.performance_id))
        return [(p, s) for p, s in result.all()]
