from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from talent_quest.db.base import Base


def _student_fk() -> Mapped[int]:
    return mapped_column(
        Integer, ForeignKey("students.student_id", ondelete="CASCADE"), nullable=False, index=True
    )


class Requirement(Base):
    """Uploaded school certification and ID copy."""
    __tablename__ = "requirements"

    requirement_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = _student_fk()
    certification_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    school_id_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class HealthFitness(Base):
    """Health and fitness declaration with signatures."""
    __tablename__ = "health_fitness"

    declaration_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = _student_fk()
    is_physically_fit: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    medical_conditions: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    student_signature_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    parent_guardian_signature_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    declaration_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class Consent(Base):
    """Information, rules and publicity consents."""
    __tablename__ = "consents"

    consent_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = _student_fk()
    info_correct: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    agree_to_rules: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    consent_to_publicity: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    student_signature_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    parent_guardian_signature_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    consent_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class Endorsement(Base):
    """School official endorsing the contestant."""
    __tablename__ = "endorsements"

    endorsement_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = _student_fk()
    school_official_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    position: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    signature_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    endorsement_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
