from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from talent_quest.db.base import Base, CreatedAtMixin


class QrCode(CreatedAtMixin, Base):
    """Issued QR pass; exactly one of group_id, single_id, guest_id is set."""
    __tablename__ = "qr_codes"

    qr_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    qr_code_url: Mapped[str] = mapped_column(Text, nullable=False)
    group_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("groups.group_id", ondelete="CASCADE"), nullable=True, index=True
    )
    single_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("singles.single_id", ondelete="CASCADE"), nullable=True, index=True
    )
    guest_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("guests.guest_id", ondelete="CASCADE"), nullable=True, index=True
    )


class AttendanceLog(Base):
    """Check-in record written when a pass is scanned at the entrance."""
    __tablename__ = "attendance_logs"

    attendance_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    qr_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("qr_codes.qr_id", ondelete="CASCADE"), nullable=False, index=True
    )
    scan_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    scanned_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # checked_in | duplicate
    status: Mapped[str] = mapped_column(Text, nullable=False, default="checked_in")
