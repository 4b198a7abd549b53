from __future__ import annotations

import logging
from typing import Any, Dict, List

from sqlalchemy.ext.asyncio import AsyncSession

from talent_quest.core.errors import BadRequestError, NotFoundError
from talent_quest.core.settings import AppSettings
from talent_quest.db.models.performances import Group
from talent_quest.repositories.groups import GroupRepository
from talent_quest.repositories.passes import QrCodeRepository
from talent_quest.repositories.performances import PerformanceRepository
from talent_quest.repositories.students import StudentRepository
from talent_quest.schemas.entries import (
    PERFORMANCE_TYPE_ALIASES,
    ConsentRead,
    EndorsementRead,
    GroupMemberUpdate,
    GroupRead,
    GroupStudent,
    GroupUpdate,
    HealthRead,
    PerformanceRead,
    RequirementRead,
)
from talent_quest.schemas.registration import PerformanceType
from talent_quest.schemas.talent import StudentRead
from talent_quest.services.base import BaseService
from talent_quest.services.realtime import broadcast_manager
from talent_quest.services.singles import remove_stored_files
from talent_quest.services.storage import LocalBucketStorage

logger = logging.getLogger(__name__)

_PERFORMANCE_TYPES = {t.value for t in PerformanceType}


# PUBLIC_INTERFACE
def normalize_performance_type(value: str) -> str:
    """
    Map admin UI labels (Dance, Drama, Musical) to stored performance types.

    Raises:
        BadRequestError: the value is not a known performance type.
    """
    mapped = PERFORMANCE_TYPE_ALIASES.get(value, value)
    if mapped not in _PERFORMANCE_TYPES:
        raise BadRequestError(f"Unknown performance type: {value}")
    return mapped


def _group_fields(group: Group) -> Dict[str, Any]:
    return {
        "group_id": group.group_id,
        "group_name": group.group_name,
        "leader_id": group.leader_id,
        "performance_type": group.performance_type,
        "performance_title": group.performance_title,
        "performance_description": group.performance_description,
        "created_at": group.created_at,
    }


class GroupService(BaseService):
    """Group entries with their merged member records."""

    def __init__(self, session: AsyncSession, storage: LocalBucketStorage, settings: AppSettings) -> None:
        super().__init__(session)
        self.storage = storage
        self.settings = settings
        self.repo = GroupRepository(session)
        self.students = StudentRepository(session)
        self.performances = PerformanceRepository(session)
        self.qr_repo = QrCodeRepository(session)

    # PUBLIC_INTERFACE
    async def list_groups(self) -> List[GroupRead]:
        """Groups newest first; each member carries is_leader, compliance records and performance."""
        groups = await self.repo.list_groups()
        members = await self.repo.members_by_group(g.group_id for g in groups)
        student_ids = [s.student_id for rows in members.values() for _, s in rows]
        records = await self.students.compliance_for_students(student_ids)
        acts = await self.performances.first_for_students(student_ids)

        result = []
        for group in groups:
            students = []
            for member, student in members.get(group.group_id, []):
                rec = records.get(student.student_id, {})
                act = acts.get(student.student_id)
                students.append(
                    GroupStudent(
                        **StudentRead.model_validate(student).model_dump(),
                        group_member_id=member.group_member_id,
                        is_leader=member.is_leader,
                        requirements=RequirementRead.model_validate(rec["requirements"]) if rec.get("requirements") else None,
                        health=HealthRead.model_validate(rec["health"]) if rec.get("health") else None,
                        consents=ConsentRead.model_validate(rec["consents"]) if rec.get("consents") else None,
                        endorsement=EndorsementRead.model_validate(rec["endorsement"]) if rec.get("endorsement") else None,
                        performance=PerformanceRead.model_validate(act) if act else None,
                    )
                )
            result.append(GroupRead(**_group_fields(group), students=students))
        return result

    # PUBLIC_INTERFACE
    async def update_group(self, payload: GroupUpdate) -> Dict[str, Any]:
        if not payload.group_id:
            raise BadRequestError("Group ID is required")
        group = await self.repo.get(payload.group_id)
        if group is None:
            raise NotFoundError("Group not found")
        values: Dict[str, Any] = {}
        if payload.group_name is not None:
            values["group_name"] = payload.group_name
        if payload.performance_type is not None:
            values["performance_type"] = normalize_performance_type(payload.performance_type)
        if payload.description is not None:
            values["performance_title"] = payload.description
        await self.repo.update(group, values)
        await self.session.commit()
        logger.info("Updated group %s fields=%s", group.group_id, sorted(values))
        await broadcast_manager.publish("group.updated", {"groupId": group.group_id})
        return _group_fields(group)

    # PUBLIC_INTERFACE
    async def delete_group(self, group_id: int) -> None:
        """Delete a group: its QR passes, then its members, then the group. Students are kept."""
        if await self.repo.get(group_id) is None:
            raise NotFoundError("Group not found")
        qr_urls = [r.qr_code_url for r in await self.qr_repo.list_for("group", group_id)]
        await remove_stored_files(self.storage, self.settings.QR_BUCKET, qr_urls, f"group {group_id}")
        await self.qr_repo.delete_for("group", group_id)
        await self.repo.delete_members(group_id)
        await self.repo.delete(group_id)
        await self.session.commit()
        logger.info("Deleted group %s", group_id)
        await broadcast_manager.publish("group.deleted", {"groupId": group_id})

    # PUBLIC_INTERFACE
    async def update_member(self, payload: GroupMemberUpdate) -> Dict[str, Any]:
        """Edit a member's student record; member_id is the student id, role is stored as course_year."""
        if not payload.member_id:
            raise BadRequestError("Member ID is required")
        student = await self.students.get(payload.member_id)
        if student is None:
            raise NotFoundError("Member not found")
        values = {
            "full_name": payload.full_name,
            "course_year": payload.role,
            "email": payload.email,
            "contact_number": payload.contact_number,
        }
        await self.students.update(student, values)
        await self.session.commit()
        await broadcast_manager.publish("group.member_updated", {"studentId": student.student_id})
        return StudentRead.model_validate(student).model_dump(mode="json")
