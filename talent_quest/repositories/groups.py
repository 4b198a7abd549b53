from __future__ import annotations

from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import delete, select

from talent_quest.db.models.performances import Group, GroupMember
from talent_quest.db.models.registrants import Student
from .base import BaseRepository


class GroupRepository(BaseRepository):
    """Groups and their memberships."""

    async def get(self, group_id: int) -> Optional[Group]:
        return await self.session.get(Group, group_id)

    async def list_groups(self) -> List[Group]:
        return list(await self.scalars(select(Group).order_by(Group.group_id.desc())))

    async def create(self, **values: Any) -> Group:
        group = Group(**values)
        await self.add(group)
        await self.flush()
        return group

    async def update(self, group: Group, values: Dict[str, Any]) -> Group:
        self.apply_values(group, values)
        await self.flush()
        return group

    async def add_member(self, group_id: int, student_id: int, is_leader: bool = False) -> GroupMember:
        member = GroupMember(group_id=group_id, student_id=student_id, is_leader=is_leader)
        await self.add(member)
        return member

    async def members_by_group(
        self, group_ids: Iterable[int]
    ) -> Dict[int, List[Tuple[GroupMember, Student]]]:
        """Member rows with their students, grouped by group id, in join order."""
        ids = list(set(group_ids))
        grouped: Dict[int, List[Tuple[GroupMember, Student]]] = defaultdict(list)
        if not ids:
            return grouped
        stmt = (
            select(GroupMember, Student)
            .join(Student, Student.student_id == GroupMember.student_id)
            .where(GroupMember.group_id.in_(ids))
            .order_by(GroupMember.group_member_id)
        )
        result = await self.execute(stmt)
        for member, student in result.all():
            grouped[member.group_id].append((member, student))
        return grouped

    async def members(self, group_id: int) -> List[Tuple[GroupMember, Student]]:
        return (await self.members_by_group([group_id])).get(group_id, [])

    async def delete_members(self, group_id: int) -> None:
        await self.execute(delete(GroupMember).where(GroupMember.group_id == group_id))

    async def delete(self, group_id: int) -> None:
        await self.execute(delete(Group).where(Group.group_id == group_id))
