from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from talent_quest.schemas.common import PageMeta

PassOwner = Literal["guest", "single", "group"]


class PassHolder(BaseModel):
    """Row of the QR management table (guest, single or group)."""
    type: PassOwner
    id: int
    name: str
    email: Optional[str] = None
    member_count: Optional[int] = Field(None, alias="memberCount")
    qr: Optional[str] = None
    qr_created_at: Optional[datetime] = Field(None, alias="qrCreatedAt")

    class Config:
        populate_by_name = True


class PassHolderPage(BaseModel):
    success: bool = True
    page: int
    page_size: int = Field(..., alias="pageSize")
    total: int
    items: List[PassHolder]

    class Config:
        populate_by_name = True


class GenerateItem(BaseModel):
    id: int = Field(..., ge=1)
    type: PassOwner
    name: Optional[str] = None
    manual: bool = Field(False, description="Set by the admin console for hand-triggered runs; recorded in the log")


class GenerateRequest(BaseModel):
    """Items to (re)issue passes for; legacy userIds are treated as guests."""
    items: Optional[List[GenerateItem]] = None
    user_ids: Optional[List[int]] = Field(None, alias="userIds")

    class Config:
        populate_by_name = True

    def resolved_items(self) -> List[GenerateItem]:
        if self.items:
            return list(self.items)
        return [GenerateItem(id=uid, type="guest") for uid in (self.user_ids or [])]


class GenerateResult(BaseModel):
    id: int
    type: PassOwner
    url: Optional[str] = None
    error: Optional[str] = None


class GenerateResponse(BaseModel):
    success: bool = True
    results: List[GenerateResult]


class GuestPassResponse(BaseModel):
    success: bool = True
    user: PassHolder


class PassStatus(BaseModel):
    """Guest pass coverage."""
    total: int
    with_qr: int = Field(..., alias="withQR")
    without_qr: int = Field(..., alias="withoutQR")

    class Config:
        populate_by_name = True


# Email dispatch


class EmailRecipient(BaseModel):
    email: Optional[str] = None
    name: Optional[str] = None
    qr_code_url: Optional[str] = Field(None, alias="qrCodeUrl")
    user_type: Optional[str] = Field(None, alias="userType")

    class Config:
        populate_by_name = True


class SendQrEmailsRequest(BaseModel):
    recipients: List[EmailRecipient] = Field(default_factory=list)
    subject: Optional[str] = None
    from_address: Optional[str] = Field(None, alias="from")

    class Config:
        populate_by_name = True


class EmailError(BaseModel):
    email: Optional[str] = None
    error: str


class EmailBatchResult(BaseModel):
    total_sent: int = Field(0, alias="totalSent")
    successful_sends: int = Field(0, alias="successfulSends")
    failed_sends: int = Field(0, alias="failedSends")
    errors: List[EmailError] = Field(default_factory=list)

    class Config:
        populate_by_name = True


class SendQrEmailsResponse(BaseModel):
    success: bool = True
    message: str
    results: EmailBatchResult


# Check-in


class ScanRequest(BaseModel):
    """Scanned QR text; a bare id needs the owner type alongside."""
    payload: str = Field(..., min_length=1)
    type: Optional[PassOwner] = None


class AttendanceRead(BaseModel):
    attendance_id: int
    qr_id: int
    scan_time: datetime
    scanned_by: Optional[str] = None
    status: str
    owner_type: Optional[PassOwner] = None
    owner_id: Optional[int] = None


class ScanResponse(BaseModel):
    success: bool = True
    message: str
    attendance: AttendanceRead
    holder: PassHolder


class AttendanceListResponse(BaseModel):
    success: bool = True
    data: List[AttendanceRead]
    pagination: PageMeta
