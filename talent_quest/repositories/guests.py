from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import delete, func, or_, select

from talent_quest.db.models.registrants import Guest
from .base import BaseRepository


class GuestRepository(BaseRepository):
    """Guest registrations."""

    async def get(self, guest_id: int) -> Optional[Guest]:
        return await self.session.get(Guest, guest_id)

    async def all(self) -> List[Guest]:
        return list(await self.scalars(select(Guest).order_by(Guest.guest_id)))

    async def list_guests(
        self,
        *,
        q: Optional[str] = None,
        gender: Optional[str] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> Tuple[List[Guest], int]:
        stmt = select(Guest)
        if q:
            pattern = f"%{q.strip()}%"
            stmt = stmt.where(or_(Guest.full_name.ilike(pattern), Guest.email.ilike(pattern)))
        if gender:
            stmt = stmt.where(func.lower(Guest.gender) == gender.lower())
        total = await self.count(stmt)
        stmt = stmt.order_by(Guest.registration_date.desc(), Guest.guest_id.desc()).offset(offset).limit(limit)
        return list(await self.scalars(stmt)), total

    async def create(self, **values: Any) -> Guest:
        guest = Guest(**values)
        await self.add(guest)
        await self.flush()
        return guest

    async def update(self, guest: Guest, values: Dict[str, Any]) -> Guest:
        self.apply_values(guest, values)
        await self.flush()
        return guest

    async def delete(self, guest_id: int) -> None:
        await self.execute(delete(Guest).where(Guest.guest_id == guest_id))

    async def stats(self) -> Dict[str, int]:
        """Totals by gender and with an organization."""
        total = await self.count(select(Guest.guest_id))
        male = await self.count(select(Guest.guest_id).where(func.lower(Guest.gender) == "male"))
        female = await self.count(select(Guest.guest_id).where(func.lower(Guest.gender) == "female"))
        with_org = await self.count(
            select(Guest.guest_id).where(Guest.organization.is_not(None), Guest.organization != "")
        )
        return {"total": total, "male": male, "female": female, "with_organization": with_org}
