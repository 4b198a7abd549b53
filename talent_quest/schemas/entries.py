from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from talent_quest.schemas.registration import PerformanceType
from talent_quest.schemas.talent import StudentRead, StudentUpdate

# Labels the admin UI uses for some performance types
PERFORMANCE_TYPE_ALIASES = {
    "Dance": PerformanceType.DANCING.value,
    "Drama": PerformanceType.THEATRICAL.value,
    "Musical": PerformanceType.MUSICAL_INSTRUMENT.value,
}


class RequirementRead(BaseModel):
    requirement_id: int
    certification_url: Optional[str] = None
    school_id_url: Optional[str] = None
    uploaded_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class HealthRead(BaseModel):
    declaration_id: int
    is_physically_fit: bool
    medical_conditions: Optional[str] = None
    student_signature_url: Optional[str] = None
    parent_guardian_signature_url: Optional[str] = None
    declaration_date: Optional[datetime] = None

    class Config:
        from_attributes = True


class ConsentRead(BaseModel):
    consent_id: int
    info_correct: bool
    agree_to_rules: bool
    consent_to_publicity: bool
    student_signature_url: Optional[str] = None
    parent_guardian_signature_url: Optional[str] = None
    consent_date: Optional[datetime] = None

    class Config:
        from_attributes = True


class EndorsementRead(BaseModel):
    endorsement_id: int
    school_official_name: Optional[str] = None
    position: Optional[str] = None
    signature_url: Optional[str] = None
    endorsement_date: Optional[datetime] = None

    class Config:
        from_attributes = True


class PerformanceRead(BaseModel):
    performance_id: int
    student_id: int
    performance_type: str
    title: str
    duration: Optional[str] = None
    num_performers: int
    group_members: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Singles


class SingleListItem(BaseModel):
    """Row of the singles admin table."""
    id: int
    single_id: int
    performance_title: str
    student_id: Optional[int] = None
    created_at: datetime
    student_name: str
    student_school: str
    performance_type: Optional[str] = None
    duration: Optional[str] = None


class SingleRead(BaseModel):
    single_id: int
    student_id: Optional[int] = None
    performance_title: Optional[str] = None
    performance_description: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SingleDetail(BaseModel):
    """A single entry with every linked record."""
    single: SingleRead
    student: Optional[StudentRead] = None
    performance: Optional[PerformanceRead] = None
    requirements: Optional[RequirementRead] = None
    health: Optional[HealthRead] = None
    consents: Optional[ConsentRead] = None
    endorsement: Optional[EndorsementRead] = None


class SingleTitleUpdate(BaseModel):
    single_id: Optional[int] = None
    performance_title: Optional[str] = Field(None, max_length=255)


class SingleSectionUpdate(BaseModel):
    performance_title: Optional[str] = Field(None, max_length=255)
    performance_description: Optional[str] = None


class SinglePerformanceUpdate(BaseModel):
    performance_type: Optional[PerformanceType] = None
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    duration: Optional[str] = Field(None, max_length=50)


class SingleDetailUpdate(BaseModel):
    """Partial update of a single entry; each section is optional."""
    single: Optional[SingleSectionUpdate] = None
    student: Optional[StudentUpdate] = None
    performance: Optional[SinglePerformanceUpdate] = None


# Groups


class GroupStudent(StudentRead):
    """Group member merged with its compliance records and performance."""
    group_member_id: int
    is_leader: bool
    requirements: Optional[RequirementRead] = None
    health: Optional[HealthRead] = None
    consents: Optional[ConsentRead] = None
    endorsement: Optional[EndorsementRead] = None
    performance: Optional[PerformanceRead] = None


class GroupRead(BaseModel):
    group_id: int
    group_name: str
    leader_id: Optional[int] = None
    performance_type: Optional[str] = None
    performance_title: Optional[str] = None
    performance_description: Optional[str] = None
    created_at: Optional[datetime] = None
    students: List[GroupStudent] = Field(default_factory=list)


class GroupListResponse(BaseModel):
    success: bool = True
    groups: List[GroupRead]


class GroupUpdate(BaseModel):
    """Admin group edit; description is stored as the performance title."""
    group_id: Optional[int] = None
    group_name: Optional[str] = Field(None, min_length=1, max_length=255)
    performance_type: Optional[str] = None
    description: Optional[str] = None


class GroupMemberUpdate(BaseModel):
    """Admin member edit; role is stored as the course/year."""
    member_id: Optional[int] = None
    full_name: Optional[str] = Field(None, min_length=2, max_length=255)
    role: Optional[str] = None
    email: Optional[str] = None
    contact_number: Optional[str] = None


class EntryResponse(BaseModel):
    """Generic success envelope carrying the updated record."""
    success: bool = True
    message: str
    data: Optional[Dict[str, Any]] = None
