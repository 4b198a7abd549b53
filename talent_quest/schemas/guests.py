from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from talent_quest.schemas.common import PageMeta
from talent_quest.schemas.registration import PHONE_PATTERN


class GuestRegistration(BaseModel):
    """Public guest registration form."""
    full_name: str = Field(..., min_length=2, alias="fullName")
    age: int = Field(..., ge=18, le=100, description="Guests must be 18-100 years old")
    gender: str = Field(..., min_length=1)
    contact_number: str = Field(..., min_length=7, pattern=PHONE_PATTERN, alias="contactNumber")
    email: EmailStr
    organization: Optional[str] = Field(None)
    address: Optional[str] = Field(None)
    issue_pass: bool = Field(True, alias="issuePass", description="Generate and email a QR pass")

    class Config:
        populate_by_name = True
        str_strip_whitespace = True


class GuestUpdate(BaseModel):
    """Admin guest edit; omitted fields are left unchanged."""
    full_name: Optional[str] = Field(None, min_length=2)
    age: Optional[int] = Field(None, ge=18, le=100)
    gender: Optional[str] = Field(None)
    contact_number: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    email: Optional[EmailStr] = Field(None)
    organization: Optional[str] = Field(None)
    address: Optional[str] = Field(None)


class GuestRead(BaseModel):
    """Guest read model."""
    guest_id: int
    full_name: str
    age: Optional[int] = None
    gender: Optional[str] = None
    contact_number: Optional[str] = None
    email: Optional[str] = None
    organization: Optional[str] = None
    address: Optional[str] = None
    registration_date: datetime
    qr_code_url: Optional[str] = None

    class Config:
        from_attributes = True


class GuestRegistrationResult(BaseModel):
    """Outcome of a public guest registration."""
    success: bool = True
    message: str = "Guest registration completed successfully"
    guest: GuestRead
    email_sent: bool = Field(False, alias="emailSent")

    class Config:
        populate_by_name = True


class GuestListResponse(BaseModel):
    success: bool = True
    data: List[GuestRead]
    pagination: PageMeta


class GuestStats(BaseModel):
    """Headline guest counts for the dashboard."""
    total: int
    male: int
    female: int
    with_organization: int
