from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import delete, select

from talent_quest.db.models.passes import AttendanceLog, QrCode
from .base import BaseRepository

OWNER_COLUMNS = {
    "guest": QrCode.guest_id,
    "single": QrCode.single_id,
    "group": QrCode.group_id,
}


class QrCodeRepository(BaseRepository):
    """Issued QR passes, keyed by owner kind (guest, single, group)."""

    async def get(self, qr_id: int) -> Optional[QrCode]:
        return await self.session.get(QrCode, qr_id)

    async def latest_for(self, owner: str, owner_id: int) -> Optional[QrCode]:
        column = OWNER_COLUMNS[owner]
        stmt = select(QrCode).where(column == owner_id).order_by(QrCode.created_at.desc(), QrCode.qr_id.desc()).limit(1)
        return await self.scalar_one_or_none(stmt)

    async def latest_by_owner(self, owner: str, owner_ids: Iterable[int] | None = None) -> Dict[int, QrCode]:
        """Most recent pass per owner id; all owners of the kind when owner_ids is None."""
        column = OWNER_COLUMNS[owner]
        stmt = select(QrCode).where(column.is_not(None))
        if owner_ids is not None:
            ids = list(set(owner_ids))
            if not ids:
                return {}
            stmt = stmt.where(column.in_(ids))
        rows = await self.scalars(stmt.order_by(QrCode.created_at, QrCode.qr_id))
        latest: Dict[int, QrCode] = {}
        for row in rows:
            latest[getattr(row, column.key)] = row
        return latest

    async def create(self, owner: str, owner_id: int, url: str) -> QrCode:
        qr = QrCode(qr_code_url=url, **{OWNER_COLUMNS[owner].key: owner_id})
        await self.add(qr)
        await self.flush()
        return qr

    async def list_for(self, owner: str, owner_id: int) -> List[QrCode]:
        column = OWNER_COLUMNS[owner]
        return list(await self.scalars(select(QrCode).where(column == owner_id)))

    async def delete_for(self, owner: str, owner_id: int) -> None:
        column = OWNER_COLUMNS[owner]
        qr_ids = select(QrCode.qr_id).where(column == owner_id)
        await self.execute(delete(AttendanceLog).where(AttendanceLog.qr_id.in_(qr_ids)))
        await self.execute(delete(QrCode).where(column == owner_id))


class AttendanceRepository(BaseRepository):
    """Check-in log."""

    async def record(self, qr_id: int, scanned_by: Optional[str], status: str) -> AttendanceLog:
        log = AttendanceLog(qr_id=qr_id, scanned_by=scanned_by, status=status)
        await self.add(log)
        await self.flush()
        await self.session.refresh(log)
        return log

    async def has_check_in(self, qr_id: int) -> bool:
        stmt = select(AttendanceLog.attendance_id).where(
            AttendanceLog.qr_id == qr_id, AttendanceLog.status == "checked_in"
        ).limit(1)
        return (await self.scalar_one_or_none(stmt)) is not None

    async def list_logs(self, limit: int = 50, offset: int = 0) -> Tuple[List[Tuple[AttendanceLog, QrCode]], int]:
        stmt = select(AttendanceLog, QrCode).join(QrCode, QrCode.qr_id == AttendanceLog.qr_id)
        total = await self.count(stmt)
        stmt = stmt.order_by(AttendanceLog.scan_time.desc(), AttendanceLog.attendance_id.desc()).offset(offset).limit(limit)
        result = await self.execute(stmt)
        return [(log, qr) for log, qr in result.all()], total
