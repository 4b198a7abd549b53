from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from talent_quest.core.deps import get_settings_dep, get_storage, require_admin
from talent_quest.core.settings import AppSettings
from talent_quest.db.models.security import User
from talent_quest.db.session import get_async_session
from talent_quest.schemas.passes import AttendanceListResponse, ScanRequest, ScanResponse
from talent_quest.services.attendance import AttendanceService
from talent_quest.services.storage import LocalBucketStorage

router = APIRouter(prefix="/attendance", tags=["Attendance"])


def get_attendance_service(
    session: AsyncSession = Depends(get_async_session),
    storage: LocalBucketStorage = Depends(get_storage),
    settings: AppSettings = Depends(get_settings_dep),
) -> AttendanceService:
    return AttendanceService(session, storage, settings)


# PUBLIC_INTERFACE
@router.post(
    "/scan",
    response_model=ScanResponse,
    summary="Record pass scan",
    description=(
        "Decode a scanned pass and log the check-in. The first scan of a pass is 'checked_in', "
        "repeats are logged as 'duplicate'."
    ),
)
async def scan_pass(
    payload: ScanRequest,
    user: User = Depends(require_admin),
    service: AttendanceService = Depends(get_attendance_service),
) -> ScanResponse:
    return await service.scan(payload, scanned_by=user.email)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=AttendanceListResponse,
    summary="List check-ins",
    dependencies=[Depends(require_admin)],
)
async def list_attendance(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    service: AttendanceService = Depends(get_attendance_service),
) -> AttendanceListResponse:
    """Check-in log, newest first."""
    return await service.list_logs(page, limit)
