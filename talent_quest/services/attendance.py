from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from talent_quest.core.errors import NotFoundError
from talent_quest.core.settings import AppSettings
from talent_quest.db.models.passes import AttendanceLog, QrCode
from talent_quest.repositories.passes import AttendanceRepository, QrCodeRepository
from talent_quest.schemas.common import PageMeta
from talent_quest.schemas.passes import (
    AttendanceListResponse,
    AttendanceRead,
    ScanRequest,
    ScanResponse,
)
from talent_quest.services.base import BaseService
from talent_quest.services.qr import QrPassService, parse_pass_payload
from talent_quest.services.realtime import broadcast_manager
from talent_quest.services.storage import LocalBucketStorage

logger = logging.getLogger(__name__)

CHECKED_IN = "checked_in"
DUPLICATE = "duplicate"


def _owner_of(qr: QrCode):
    for owner, column in (("guest", "guest_id"), ("single", "single_id"), ("group", "group_id")):
        value = getattr(qr, column)
        if value is not None:
            return owner, value
    return None, None


def to_attendance(log: AttendanceLog, qr: QrCode) -> AttendanceRead:
    owner, owner_id = _owner_of(qr)
    return AttendanceRead(
        attendance_id=log.attendance_id,
        qr_id=log.qr_id,
        scan_time=log.scan_time,
        scanned_by=log.scanned_by,
        status=log.status,
        owner_type=owner,
        owner_id=owner_id,
    )


class AttendanceService(BaseService):
    """Entrance check-in against issued passes."""

    def __init__(self, session: AsyncSession, storage: LocalBucketStorage, settings: AppSettings) -> None:
        super().__init__(session)
        self.qr_repo = QrCodeRepository(session)
        self.repo = AttendanceRepository(session)
        self.passes = QrPassService(session, storage, settings)

    # PUBLIC_INTERFACE
    async def scan(self, request: ScanRequest, scanned_by: Optional[str]) -> ScanResponse:
        """
        Record a scan of a pass.

        The first scan of a pass is logged as checked_in, later scans as duplicate.

        Raises:
            BadRequestError: the payload cannot be decoded.
            NotFoundError: no pass has been issued to the holder.
        """
        owner, owner_id = parse_pass_payload(request.payload, request.type)
        qr = await self.qr_repo.latest_for(owner, owner_id)
        if qr is None:
            raise NotFoundError("No QR pass has been issued for this holder")
        holder = await self.passes.holder_for(owner, owner_id)

        status = DUPLICATE if await self.repo.has_check_in(qr.qr_id) else CHECKED_IN
        log = await self.repo.record(qr.qr_id, scanned_by, status)
        await self.session.commit()
        logger.info("Scan of %s %s recorded as %s", owner, owner_id, status)
        await broadcast_manager.publish(
            "attendance.recorded", {"type": owner, "id": owner_id, "status": status, "name": holder.name}
        )
        message = "Checked in" if status == CHECKED_IN else "Pass already checked in"
        return ScanResponse(message=message, attendance=to_attendance(log, qr), holder=holder)

    # PUBLIC_INTERFACE
    async def list_logs(self, page: int, limit: int) -> AttendanceListResponse:
        rows, total = await self.repo.list_logs(limit=limit, offset=(page - 1) * limit)
        return AttendanceListResponse(
            data=[to_attendance(log, qr) for log, qr in rows],
            pagination=PageMeta.build(page, limit, total),
        )
