from __future__ import annotations

import asyncio
import io
import json
import logging
import re
from typing import List, Optional, Tuple

import qrcode
from PIL import Image
from qrcode.constants import ERROR_CORRECT_M
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from talent_quest.core.errors import BadRequestError, NotFoundError
from talent_quest.core.settings import AppSettings
from talent_quest.db.models.passes import QrCode
from talent_quest.repositories.groups import GroupRepository
from talent_quest.repositories.guests import GuestRepository
from talent_quest.repositories.passes import QrCodeRepository
from talent_quest.repositories.singles import SingleRepository
from talent_quest.repositories.students import StudentRepository
from talent_quest.schemas.passes import (
    GenerateItem,
    GenerateResult,
    PassHolder,
    PassHolderPage,
    PassStatus,
)
from talent_quest.services.base import BaseService
from talent_quest.services.storage import LocalBucketStorage, StorageError

logger = logging.getLogger(__name__)

# Pass type written into the QR payload, per owner kind
PAYLOAD_TYPES = {
    "guest": "guest",
    "single": "contestant_single",
    "group": "contestant_group",
}
_OWNER_BY_PAYLOAD_TYPE = {v: k for k, v in PAYLOAD_TYPES.items()}
_OWNER_BY_PAYLOAD_TYPE.update({"single": "single", "group": "group"})


# PUBLIC_INTERFACE
def build_pass_payload(owner: str, owner_id: int) -> str:
    """JSON text encoded into a pass, e.g. {"type":"contestant_group","id":12}."""
    return json.dumps({"type": PAYLOAD_TYPES[owner], "id": owner_id}, separators=(",", ":"))


# PUBLIC_INTERFACE
def parse_pass_payload(text: str, owner_hint: Optional[str] = None) -> Tuple[str, int]:
    """
    Decode scanned pass text into (owner kind, owner id).

    Accepts the JSON payload written by build_pass_payload, or a bare numeric id
    when owner_hint names the kind.

    Raises:
        BadRequestError: payload is not recognised.
    """
    text = text.strip()
    try:
        data = json.loads(text)
    except ValueError:
        data = None

    if isinstance(data, dict):
        owner = _OWNER_BY_PAYLOAD_TYPE.get(str(data.get("type", "")).lower())
        raw_id = data.get("id")
    elif isinstance(data, int) and owner_hint:
        owner, raw_id = owner_hint, data
    else:
        raise BadRequestError("Unrecognised QR payload")

    if owner is None:
        raise BadRequestError("Unrecognised QR pass type")
    try:
        owner_id = int(raw_id)
    except (TypeError, ValueError):
        raise BadRequestError("QR payload carries an invalid id")
    return owner, owner_id


# PUBLIC_INTERFACE
def render_qr_png(payload: str, size: int = 512) -> bytes:
    """Render payload as a square black-on-white PNG of size x size pixels."""
    qr = qrcode.QRCode(error_correction=ERROR_CORRECT_M, box_size=10, border=1)
    qr.add_data(payload)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white").convert("RGB")
    img = img.resize((size, size), resample=Image.Resampling.NEAREST)
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


# PUBLIC_INTERFACE
def sanitize_component(value: Optional[str], fallback: str = "unnamed") -> str:
    """Replace every non-alphanumeric character with '_' (keeps case)."""
    cleaned = re.sub(r"[^a-zA-Z0-9]", "_", value or "")
    return cleaned or fallback


# PUBLIC_INTERFACE
def slug_file_name(value: Optional[str], fallback: str = "unnamed") -> str:
    """Lowercase, collapse non-alphanumeric runs to '_' and trim underscores."""
    cleaned = re.sub(r"[^a-z0-9]+", "_", (value or "").lower()).strip("_")
    return cleaned or fallback


class QrPassService(BaseService):
    """
    Issues, re-issues and looks up QR passes for guests, singles and groups.
    """

    def __init__(self, session: AsyncSession, storage: LocalBucketStorage, settings: AppSettings) -> None:
        super().__init__(session)
        self.storage = storage
        self.settings = settings
        self.qr_repo = QrCodeRepository(session)
        self.guest_repo = GuestRepository(session)
        self.single_repo = SingleRepository(session)
        self.group_repo = GroupRepository(session)
        self.student_repo = StudentRepository(session)

    async def render(self, owner: str, owner_id: int) -> bytes:
        payload = build_pass_payload(owner, owner_id)
        return await asyncio.to_thread(render_qr_png, payload, self.settings.QR_IMAGE_SIZE)

    # PUBLIC_INTERFACE
    async def store_contestant_pass(self, owner: str, owner_id: int, holder_name: str) -> str:
        """
        Render and upload the pass image for a newly registered single or group.

        Returns the public URL. The row is added separately with `record_pass` so the
        caller can track the file before touching the database.
        """
        folder = "groups" if owner == "group" else "singles"
        path = f"{folder}/{owner_id}_{sanitize_component(holder_name)}.png"
        png = await self.render(owner, owner_id)
        return await self.storage.upload(self.settings.QR_BUCKET, path, png)

    async def record_pass(self, owner: str, owner_id: int, url: str) -> QrCode:
        """Add the qr_codes row for a stored pass. The caller owns the transaction."""
        return await self.qr_repo.create(owner, owner_id, url)

    async def _drop_old_pass_rows(self, owner: str, owner_id: int, keep_urls: List[str]) -> List[str]:
        """Delete the previous rows and return the paths of their files that are not reused."""
        bucket = self.settings.QR_BUCKET
        keep = {self.storage.path_from_url(u, bucket) for u in keep_urls}
        old = await self.qr_repo.list_for(owner, owner_id)
        paths = [
            p for p in (self.storage.path_from_url(r.qr_code_url, bucket) for r in old) if p and p not in keep
        ]
        await self.qr_repo.delete_for(owner, owner_id)
        return paths

    async def _store_guest_pass(self, item: GenerateItem, png: bytes) -> List[str]:
        guest = await self.guest_repo.get(item.id)
        if guest is None:
            raise NotFoundError("Guest not found")
        name = slug_file_name(item.name or guest.full_name)
        return [await self.storage.upload(self.settings.QR_BUCKET, f"guests/{item.id}_{name}.png", png)]

    async def _store_single_pass(self, item: GenerateItem, png: bytes) -> List[str]:
        single = await self.single_repo.get(item.id)
        if single is None:
            raise NotFoundError("Single performance not found")
        student = await self.student_repo.get(single.student_id) if single.student_id else None
        title = slug_file_name(single.performance_title, fallback="untitled")
        name = slug_file_name(item.name or (student.full_name if student else None), fallback=f"single_{item.id}")
        path = f"single/{title}/{name}/{item.id}_{name}.png"
        return [await self.storage.upload(self.settings.QR_BUCKET, path, png)]

    async def _store_group_pass(self, item: GenerateItem, png: bytes) -> List[str]:
        group = await self.group_repo.get(item.id)
        if group is None:
            raise NotFoundError("Group not found")
        group_slug = slug_file_name(item.name or group.group_name, fallback=f"group_{item.id}")
        members = await self.group_repo.members(item.id)
        if not members:
            path = f"group/{group_slug}/{item.id}_{group_slug}.png"
            return [await self.storage.upload(self.settings.QR_BUCKET, path, png)]

        urls: List[str] = []
        for _, student in members:
            member_slug = slug_file_name(student.full_name, fallback=f"member_{student.student_id}")
            path = f"group/{group_slug}/members/{member_slug}/{item.id}_{member_slug}.png"
            urls.append(await self.storage.upload(self.settings.QR_BUCKET, path, png))
        return urls

    # PUBLIC_INTERFACE
    async def regenerate(self, item: GenerateItem) -> str:
        """
        Replace the pass of one guest, single or group and return the stored URL.

        Previous files and rows are replaced; the new row is committed. For groups
        every member gets a copy and the first member's URL is recorded.
        """
        png = await self.render(item.type, item.id)
        store = {
            "guest": self._store_guest_pass,
            "single": self._store_single_pass,
            "group": self._store_group_pass,
        }[item.type]
        urls = await store(item, png)
        stale = await self._drop_old_pass_rows(item.type, item.id, keep_urls=urls)
        url = urls[0]
        await self.qr_repo.create(item.type, item.id, url)
        await self.session.commit()
        if stale:
            try:
                await self.storage.remove(self.settings.QR_BUCKET, stale)
            except StorageError:
                logger.exception("Could not remove previous QR files for %s %s", item.type, item.id)
        logger.info("Issued QR pass for %s %s (manual=%s)", item.type, item.id, item.manual)
        return url

    # PUBLIC_INTERFACE
    async def generate_many(self, items: List[GenerateItem]) -> List[GenerateResult]:
        """Regenerate each item independently; failures are reported per item."""
        results: List[GenerateResult] = []
        for item in items:
            try:
                url = await self.regenerate(item)
                results.append(GenerateResult(id=item.id, type=item.type, url=url))
            except (NotFoundError, StorageError) as exc:
                await self.session.rollback()
                logger.warning("QR generation failed for %s %s: %s", item.type, item.id, exc)
                results.append(GenerateResult(id=item.id, type=item.type, error=str(exc)))
            except SQLAlchemyError:
                await self.session.rollback()
                logger.exception("Could not save QR pass for %s %s", item.type, item.id)
                results.append(GenerateResult(id=item.id, type=item.type, error="Could not save QR code"))
        return results

    # Listing

    async def _guest_holders(self) -> List[PassHolder]:
        guests = await self.guest_repo.all()
        passes = await self.qr_repo.latest_by_owner("guest")
        return [
            PassHolder(
                type="guest",
                id=g.guest_id,
                name=g.full_name,
                email=g.email,
                qr=passes[g.guest_id].qr_code_url if g.guest_id in passes else None,
                qr_created_at=passes[g.guest_id].created_at if g.guest_id in passes else None,
            )
            for g in guests
        ]

    async def _single_holders(self) -> List[PassHolder]:
        rows = await self.single_repo.list_with_students()
        passes = await self.qr_repo.latest_by_owner("single")
        holders = []
        for single, student in rows:
            qr = passes.get(single.single_id)
            holders.append(
                PassHolder(
                    type="single",
                    id=single.single_id,
                    name=student.full_name if student else f"Single #{single.single_id}",
                    email=student.email if student else None,
                    qr=qr.qr_code_url if qr else None,
                    qr_created_at=qr.created_at if qr else None,
                )
            )
        return holders

    async def _group_holders(self, group_ids: Optional[List[int]] = None) -> List[PassHolder]:
        groups = await self.group_repo.list_groups()
        if group_ids is not None:
            groups = [g for g in groups if g.group_id in set(group_ids)]
        members = await self.group_repo.members_by_group(g.group_id for g in groups)
        passes = await self.qr_repo.latest_by_owner("group", [g.group_id for g in groups])
        holders = []
        for group in groups:
            rows = members.get(group.group_id, [])
            leader = next((s for m, s in rows if m.is_leader), rows[0][1] if rows else None)
            qr = passes.get(group.group_id)
            holders.append(
                PassHolder(
                    type="group",
                    id=group.group_id,
                    name=group.group_name,
                    email=leader.email if leader else None,
                    member_count=len(rows),
                    qr=qr.qr_code_url if qr else None,
                    qr_created_at=qr.created_at if qr else None,
                )
            )
        return holders

    # PUBLIC_INTERFACE
    async def list_holders(self, q: Optional[str], page: int, page_size: int) -> PassHolderPage:
        """Guests, singles and groups in one list, filtered by name/email and sorted by name."""
        holders = await self._guest_holders() + await self._single_holders() + await self._group_holders()
        if q and q.strip():
            needle = q.strip().lower()
            holders = [h for h in holders if needle in h.name.lower() or needle in (h.email or "").lower()]
        holders.sort(key=lambda h: (h.name.lower(), h.type, h.id))
        start = (page - 1) * page_size
        return PassHolderPage(
            page=page, page_size=page_size, total=len(holders), items=holders[start:start + page_size]
        )

    # PUBLIC_INTERFACE
    async def guest_holder(self, guest_id: int) -> PassHolder:
        guest = await self.guest_repo.get(guest_id)
        if guest is None:
            raise NotFoundError("User not found")
        qr = await self.qr_repo.latest_for("guest", guest_id)
        return PassHolder(
            type="guest",
            id=guest.guest_id,
            name=guest.full_name,
            email=guest.email,
            qr=qr.qr_code_url if qr else None,
            qr_created_at=qr.created_at if qr else None,
        )

    # PUBLIC_INTERFACE
    async def guest_status(self) -> PassStatus:
        guests = await self.guest_repo.all()
        passes = await self.qr_repo.latest_by_owner("guest")
        with_qr = sum(1 for g in guests if g.guest_id in passes)
        return PassStatus(total=len(guests), with_qr=with_qr, without_qr=len(guests) - with_qr)

    # PUBLIC_INTERFACE
    async def holder_for(self, owner: str, owner_id: int) -> PassHolder:
        """Pass holder summary for any owner kind."""
        if owner == "guest":
            return await self.guest_holder(owner_id)
        if owner == "group":
            holders = await self._group_holders([owner_id])
            if not holders:
                raise NotFoundError("Group not found")
            return holders[0]
        single = await self.single_repo.get(owner_id)
        if single is None:
            raise NotFoundError("Single performance not found")
        student = await self.student_repo.get(single.student_id) if single.student_id else None
        qr = await self.qr_repo.latest_for("single", owner_id)
        return PassHolder(
            type="single",
            id=owner_id,
            name=student.full_name if student else f"Single #{owner_id}",
            email=student.email if student else None,
            qr=qr.qr_code_url if qr else None,
            qr_created_at=qr.created_at if qr else None,
        )
