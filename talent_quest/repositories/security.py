from __future__ import annotations

from typing import List, Optional

from sqlalchemy import func, select

from talent_quest.db.models.security import User
from .base import BaseRepository


class SecurityRepository(BaseRepository):
    """Repository for staff accounts."""

    async def get_user_by_email(self, email: str) -> Optional[User]:
        stmt = select(User).where(func.lower(User.email) == email.strip().lower())
        return await self.scalar_one_or_none(stmt)

    async def get_user_by_id(self, user_id: int) -> Optional[User]:
        stmt = select(User).where(User.user_id == user_id)
        return await self.scalar_one_or_none(stmt)

    async def list_users(self, limit: int = 100, offset: int = 0) -> List[User]:
        stmt = select(User).order_by(User.created_at.desc(), User.user_id.desc()).offset(offset).limit(limit)
        return list(await self.scalars(stmt))

    async def create_user(
        self,
        *,
        email: str,
        password_hash: str,
        full_name: Optional[str] = None,
        role: str = "user",
    ) -> User:
        user = User(email=email.strip().lower(), password_hash=password_hash, full_name=full_name, role=role)
        await self.add(user)
        await self.commit()
        await self.session.refresh(user)
        return user

    async def set_password_hash(self, user: User, password_hash: str) -> User:
        user.password_hash = password_hash
        await self.commit()
        return user
