from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from talent_quest.core.errors import NotFoundError
from talent_quest.core.settings import AppSettings
from talent_quest.repositories.passes import QrCodeRepository
from talent_quest.repositories.performances import PerformanceRepository
from talent_quest.repositories.singles import SingleRepository
from talent_quest.repositories.students import StudentRepository
from talent_quest.schemas.entries import (
    ConsentRead,
    EndorsementRead,
    HealthRead,
    PerformanceRead,
    RequirementRead,
    SingleDetail,
    SingleDetailUpdate,
    SingleListItem,
    SingleRead,
)
from talent_quest.schemas.talent import StudentRead
from talent_quest.services.base import BaseService
from talent_quest.services.realtime import broadcast_manager
from talent_quest.services.storage import LocalBucketStorage, StorageError

logger = logging.getLogger(__name__)


def _read(schema, row):
    return schema.model_validate(row) if row is not None else None


async def remove_stored_files(
    storage: LocalBucketStorage, bucket: str, urls: Iterable[Optional[str]], label: str
) -> List[str]:
    """Remove the objects behind public URLs; failures are logged, never raised."""
    paths = sorted({p for p in (storage.path_from_url(u, bucket) for u in urls if u) if p})
    if not paths:
        return []
    try:
        removed = await storage.remove(bucket, paths)
    except StorageError:
        logger.exception("Could not remove %d file(s) from %s for %s", len(paths), bucket, label)
        return []
    logger.info("Removed %d file(s) from %s for %s", len(removed), bucket, label)
    return removed


class SingleService(BaseService):
    """Solo entries: admin table, detail view, edits and cascade delete."""

    def __init__(self, session: AsyncSession, storage: LocalBucketStorage, settings: AppSettings) -> None:
        super().__init__(session)
        self.storage = storage
        self.settings = settings
        self.repo = SingleRepository(session)
        self.students = StudentRepository(session)
        self.performances = PerformanceRepository(session)
        self.qr_repo = QrCodeRepository(session)

    # PUBLIC_INTERFACE
    async def list_singles(self) -> List[SingleListItem]:
        """Singles newest first with student name/school and the act's type and duration."""
        rows = await self.repo.list_with_students()
        acts = await self.performances.first_for_students(s.student_id for s, _ in rows if s.student_id)
        items = []
        for single, student in rows:
            act = acts.get(single.student_id) if single.student_id else None
            items.append(
                SingleListItem(
                    id=single.single_id,
                    single_id=single.single_id,
                    performance_title=single.performance_title or "Untitled Performance",
                    student_id=single.student_id,
                    created_at=single.created_at,
                    student_name=(student.full_name if student else None) or "Not assigned",
                    student_school=(student.school if student else None) or "Not assigned",
                    performance_type=act.performance_type if act else None,
                    duration=act.duration if act else None,
                )
            )
        return items

    # PUBLIC_INTERFACE
    async def update_title(self, single_id: int, performance_title: Optional[str]) -> SingleRead:
        single = await self.repo.get(single_id)
        if single is None:
            raise NotFoundError("Single performance not found")
        single.performance_title = performance_title
        await self.session.commit()
        await broadcast_manager.publish("single.updated", {"singleId": single_id})
        return SingleRead.model_validate(single)

    # PUBLIC_INTERFACE
    async def get_detail(self, single_id: int) -> SingleDetail:
        """A single with its student, performance and compliance records."""
        single = await self.repo.get(single_id)
        if single is None:
            raise NotFoundError("Single performance not found")
        student = await self.students.get(single.student_id) if single.student_id else None
        records: Dict[str, object] = {}
        performance = None
        if student is not None:
            records = (await self.students.compliance_for_students([student.student_id]))[student.student_id]
            performance = (await self.performances.first_for_students([student.student_id])).get(student.student_id)
        return SingleDetail(
            single=SingleRead.model_validate(single),
            student=_read(StudentRead, student),
            performance=_read(PerformanceRead, performance),
            requirements=_read(RequirementRead, records.get("requirements")),
            health=_read(HealthRead, records.get("health")),
            consents=_read(ConsentRead, records.get("consents")),
            endorsement=_read(EndorsementRead, records.get("endorsement")),
        )

    # PUBLIC_INTERFACE
    async def update_detail(self, single_id: int, payload: SingleDetailUpdate) -> SingleDetail:
        """Apply partial updates to the single, its student and its performance."""
        single = await self.repo.get(single_id)
        if single is None:
            raise NotFoundError("Single performance not found")

        if payload.single is not None:
            await self.repo.update(single, payload.single.model_dump(exclude_unset=True))

        if single.student_id:
            if payload.student is not None:
                student = await self.students.get(single.student_id)
                if student is not None:
                    await self.students.update(student, payload.student.model_dump(exclude_unset=True))
            if payload.performance is not None:
                performance = (await self.performances.first_for_students([single.student_id])).get(single.student_id)
                if performance is not None:
                    values = payload.performance.model_dump(exclude_unset=True)
                    if payload.performance.performance_type is not None:
                        values["performance_type"] = payload.performance.performance_type.value
                    await self.performances.update(performance, values)

        await self.session.commit()
        await broadcast_manager.publish("single.updated", {"singleId": single_id})
        return await self.get_detail(single_id)

    # PUBLIC_INTERFACE
    async def delete_single(self, single_id: int) -> Dict[str, int]:
        """
        Delete a single with its stored files and every linked row.

        Storage failures are logged and do not stop the database deletion.
        """
        single = await self.repo.get(single_id)
        if single is None:
            raise NotFoundError("Single performance not found")
        student_ids = [single.student_id] if single.student_id else []
        label = f"single {single_id}"

        attachment_urls = await self.students.file_urls_for_students(student_ids)
        qr_urls = [r.qr_code_url for r in await self.qr_repo.list_for("single", single_id)]
        removed = await remove_stored_files(self.storage, self.settings.ATTACHMENT_BUCKET, attachment_urls, label)
        removed += await remove_stored_files(self.storage, self.settings.QR_BUCKET, qr_urls, label)

        await self.students.delete_compliance(student_ids)
        await self.performances.delete_for_students(student_ids)
        await self.qr_repo.delete_for("single", single_id)
        await self.repo.delete(single_id)
        for sid in student_ids:
            await self.students.delete(sid)
        await self.session.commit()
        logger.info("Deleted single %s (students=%s)", single_id, student_ids)
        await broadcast_manager.publish("single.deleted", {"singleId": single_id})
        return {"filesRemoved": len(removed)}
