from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from talent_quest.schemas.common import PageMeta
from talent_quest.schemas.registration import PerformanceType

TalentSort = Literal["student_name", "school", "performance_type", "performance_title", "created_at"]


class StudentRead(BaseModel):
    """Student read model."""
    student_id: int
    full_name: str
    age: Optional[int] = None
    gender: Optional[str] = None
    school: Optional[str] = None
    course_year: Optional[str] = None
    contact_number: Optional[str] = None
    email: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class StudentUpdate(BaseModel):
    """Partial student edit."""
    full_name: Optional[str] = Field(None, min_length=2, max_length=255)
    age: Optional[int] = Field(None, ge=1, le=120)
    gender: Optional[str] = Field(None, max_length=50)
    school: Optional[str] = Field(None, max_length=255)
    course_year: Optional[str] = Field(None, max_length=100)
    contact_number: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=255)


class PerformanceWithStudent(BaseModel):
    """Performance row joined with its student."""
    performance_id: int
    performance_type: str
    title: str
    duration: Optional[str] = None
    num_performers: int
    group_members: Optional[str] = None
    performance_created_at: datetime
    student: StudentRead


class PerformanceCreate(BaseModel):
    """Create a performance for an existing student."""
    student_id: int = Field(..., ge=1)
    performance_type: PerformanceType
    title: str = Field(..., min_length=1, max_length=255)
    duration: Optional[str] = Field(None, max_length=50)
    num_performers: int = Field(1, ge=1, le=50)
    group_members: Optional[str] = Field(None, max_length=1000)


class PerformanceUpdate(BaseModel):
    """Partial performance edit."""
    performance_type: Optional[PerformanceType] = None
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    duration: Optional[str] = Field(None, max_length=50)
    num_performers: Optional[int] = Field(None, ge=1, le=50)
    group_members: Optional[str] = Field(None, max_length=1000)


class TalentListResponse(BaseModel):
    success: bool = True
    data: List[PerformanceWithStudent]
    pagination: PageMeta


class TalentResponse(BaseModel):
    success: bool = True
    data: PerformanceWithStudent
    message: str
