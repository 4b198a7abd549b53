from __future__ import annotations

from typing import Optional

from sqlalchemy import Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from talent_quest.db.base import Base, CreatedAtMixin


class User(CreatedAtMixin, Base):
    """Staff account able to sign in to the admin area."""
    __tablename__ = "users"

    user_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    full_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # admin | student | user
    role: Mapped[str] = mapped_column(Text, nullable=False, default="user", server_default="user")
