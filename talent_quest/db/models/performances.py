from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from talent_quest.db.base import Base, CreatedAtMixin


class Performance(CreatedAtMixin, Base):
    """Act details recorded per performing student."""
    __tablename__ = "performances"

    performance_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("students.student_id", ondelete="CASCADE"), nullable=False, index=True
    )
    performance_type: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    duration: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    num_performers: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    group_members: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class Single(CreatedAtMixin, Base):
    """Solo entry; points at its performer once the student row exists."""
    __tablename__ = "singles"

    single_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("students.student_id", ondelete="SET NULL"), nullable=True, index=True
    )
    performance_title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    performance_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class Group(CreatedAtMixin, Base):
    """Group entry of two or more performers."""
    __tablename__ = "groups"

    group_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    group_name: Mapped[str] = mapped_column(Text, nullable=False)
    leader_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("students.student_id", ondelete="SET NULL"), nullable=True
    )
    performance_type: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    performance_title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    performance_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class GroupMember(Base):
    """Membership of a student in a group."""
    __tablename__ = "group_members"

    group_member_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    group_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("groups.group_id", ondelete="CASCADE"), nullable=False, index=True
    )
    student_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("students.student_id", ondelete="CASCADE"), nullable=False, index=True
    )
    is_leader: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
