from __future__ import annotations

import logging
from typing import Optional

from talent_quest.core.errors import NotFoundError
from talent_quest.db.models.performances import Performance
from talent_quest.db.models.registrants import Student
from talent_quest.repositories.performances import PerformanceRepository
from talent_quest.repositories.students import StudentRepository
from talent_quest.schemas.common import PageMeta
from talent_quest.schemas.talent import (
    PerformanceCreate,
    PerformanceUpdate,
    PerformanceWithStudent,
    StudentRead,
    TalentListResponse,
)
from talent_quest.services.base import BaseService
from talent_quest.services.realtime import broadcast_manager

logger = logging.getLogger(__name__)


def to_talent(performance: Performance, student: Student) -> PerformanceWithStudent:
    return PerformanceWithStudent(
        performance_id=performance.performance_id,
        performance_type=performance.performance_type,
        title=performance.title,
        duration=performance.duration,
        num_performers=performance.num_performers,
        group_members=performance.group_members,
        performance_created_at=performance.created_at,
        student=StudentRead.model_validate(student),
    )


class TalentService(BaseService):
    """Performances joined with their students (the talent details table)."""

    def __init__(self, session) -> None:
        super().__init__(session)
        self.repo = PerformanceRepository(session)
        self.students = StudentRepository(session)

    # PUBLIC_INTERFACE
    async def list_talents(
        self,
        *,
        page: int,
        limit: int,
        search: Optional[str],
        performance_type: Optional[str],
        school: Optional[str],
        sort: str,
        order: str,
    ) -> TalentListResponse:
        rows, total = await self.repo.list_with_students(
            search=search,
            performance_type=performance_type,
            school=school,
            sort=sort,
            order=order,
            limit=limit,
            offset=(page - 1) * limit,
        )
        return TalentListResponse(
            data=[to_talent(p, s) for p, s in rows],
            pagination=PageMeta.build(page, limit, total),
        )

    # PUBLIC_INTERFACE
    async def get_talent(self, performance_id: int) -> PerformanceWithStudent:
        row = await self.repo.get_with_student(performance_id)
        if row is None:
            raise NotFoundError("Performance not found")
        return to_talent(*row)

    # PUBLIC_INTERFACE
    async def create_talent(self, payload: PerformanceCreate) -> PerformanceWithStudent:
        """
        Add a performance for an existing student.

        Raises:
            NotFoundError: the student does not exist.
        """
        student = await self.students.get(payload.student_id)
        if student is None:
            raise NotFoundError("Student not found")
        values = payload.model_dump()
        values["performance_type"] = payload.performance_type.value
        performance = await self.repo.create(**values)
        await self.session.commit()
        await self.session.refresh(performance)
        logger.info("Created performance %s for student %s", performance.performance_id, student.student_id)
        await broadcast_manager.publish("performance.created", {"performanceId": performance.performance_id})
        return to_talent(performance, student)

    # PUBLIC_INTERFACE
    async def update_talent(self, performance_id: int, payload: PerformanceUpdate) -> PerformanceWithStudent:
        performance = await self.repo.get(performance_id)
        if performance is None:
            raise NotFoundError("Performance not found")
        values = payload.model_dump(exclude_unset=True)
        if payload.performance_type is not None:
            values["performance_type"] = payload.performance_type.value
        await self.repo.update(performance, values)
        await self.session.commit()
        await broadcast_manager.publish("performance.updated", {"performanceId": performance_id})
        return await self.get_talent(performance_id)

    # PUBLIC_INTERFACE
    async def delete_talent(self, performance_id: int) -> None:
        if await self.repo.get(performance_id) is None:
            raise NotFoundError("Performance not found")
        await self.repo.delete(performance_id)
        await self.session.commit()
        logger.info("Deleted performance %s", performance_id)
        await broadcast_manager.publish("performance.deleted", {"performanceId": performance_id})
