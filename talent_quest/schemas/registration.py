from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

PHONE_PATTERN = r"^[0-9+\-\s()]+$"
MAX_PERFORMERS = 10


class PerformanceType(str, Enum):
    """Categories an act can be entered under."""
    SINGING = "Singing"
    DANCING = "Dancing"
    MUSICAL_INSTRUMENT = "Musical Instrument"
    SPOKEN_WORD = "Spoken Word/Poetry"
    THEATRICAL = "Theatrical/Drama"
    OTHER = "Other"


class PerformerForm(BaseModel):
    """
    One performer block of the contestant form.

    Checkbox fields arrive as 'true'/'false' strings; each declaration must be accepted.
    """
    full_name: str = Field(..., min_length=2, alias="fullName")
    age: int = Field(..., ge=16, le=30, description="Contestants must be 16-30 years old")
    gender: str = Field(..., min_length=1)
    school: str = Field(..., min_length=2)
    course_year: str = Field(..., min_length=1, alias="courseYear")
    contact_number: str = Field(..., min_length=10, pattern=PHONE_PATTERN, alias="contactNumber")
    email: EmailStr
    health_declaration: bool = Field(..., alias="healthDeclaration")
    medical_conditions: Optional[str] = Field(None, alias="medicalConditions")
    information_consent: bool = Field(..., alias="informationConsent")
    rules_agreement: bool = Field(..., alias="rulesAgreement")
    publicity_consent: bool = Field(..., alias="publicityConsent")
    student_signature: Optional[str] = Field(None, alias="studentSignature", description="Base64 data URL")
    parent_guardian_signature: Optional[str] = Field(
        None, alias="parentGuardianSignature", description="Base64 data URL"
    )
    signature_date: Optional[str] = Field(None, alias="signatureDate")
    school_official_name: Optional[str] = Field(None, alias="schoolOfficialName")
    school_official_position: Optional[str] = Field(None, alias="schoolOfficialPosition")

    class Config:
        populate_by_name = True
        str_strip_whitespace = True

    @field_validator("health_declaration", "information_consent", "rules_agreement", "publicity_consent")
    @classmethod
    def _must_accept(cls, v: bool) -> bool:
        if not v:
            raise ValueError("This declaration must be accepted")
        return v

    @field_validator(
        "medical_conditions",
        "student_signature",
        "parent_guardian_signature",
        "signature_date",
        "school_official_name",
        "school_official_position",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class ContestantRegistration(BaseModel):
    """Validated contestant submission (single act or group)."""
    performance_type: PerformanceType = Field(..., alias="performanceType")
    performance_title: str = Field(..., min_length=1, max_length=255, alias="performanceTitle")
    performance_duration: str = Field(..., min_length=1, max_length=50, alias="performanceDuration")
    number_of_performers: int = Field(..., ge=1, le=MAX_PERFORMERS, alias="numberOfPerformers")
    performers: List[PerformerForm] = Field(..., min_length=1, max_length=MAX_PERFORMERS)

    class Config:
        populate_by_name = True
        str_strip_whitespace = True

    @model_validator(mode="after")
    def _performer_count_matches(self) -> "ContestantRegistration":
        if len(self.performers) != self.number_of_performers:
            raise ValueError(
                f"numberOfPerformers is {self.number_of_performers} but "
                f"{len(self.performers)} performer(s) were submitted"
            )
        return self

    @property
    def is_group(self) -> bool:
        return self.number_of_performers >= 2


class RegistrationData(BaseModel):
    """Identifiers produced by a successful registration."""
    is_group: bool = Field(..., alias="isGroup")
    group_id: Optional[int] = Field(None, alias="groupId")
    single_id: Optional[int] = Field(None, alias="singleId")
    qr_code_url: Optional[str] = Field(None, alias="qrCodeUrl")
    email_sent: bool = Field(False, alias="emailSent")

    class Config:
        populate_by_name = True


class RegistrationResponse(BaseModel):
    """Envelope returned by the contestant endpoint."""
    success: bool = True
    message: str = "Registration completed successfully"
    data: RegistrationData
