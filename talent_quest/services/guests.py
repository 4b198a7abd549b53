from __future__ import annotations

import logging
from typing import Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from talent_quest.core.errors import NotFoundError
from talent_quest.core.settings import AppSettings
from talent_quest.db.models.registrants import Guest
from talent_quest.repositories.guests import GuestRepository
from talent_quest.repositories.passes import QrCodeRepository
from talent_quest.schemas.common import PageMeta
from talent_quest.schemas.guests import (
    GuestListResponse,
    GuestRead,
    GuestRegistration,
    GuestRegistrationResult,
    GuestStats,
    GuestUpdate,
)
from talent_quest.schemas.passes import EmailRecipient, GenerateItem
from talent_quest.services.base import BaseService
from talent_quest.services.mailer import SmtpMailer
from talent_quest.services.qr import QrPassService
from talent_quest.services.qr_email import QrEmailService
from talent_quest.services.realtime import broadcast_manager
from talent_quest.services.storage import LocalBucketStorage, StorageError

logger = logging.getLogger(__name__)


class GuestService(BaseService):
    """Guest registration and admin management."""

    def __init__(
        self,
        session: AsyncSession,
        storage: LocalBucketStorage,
        settings: AppSettings,
        mailer: Optional[SmtpMailer] = None,
    ) -> None:
        super().__init__(session)
        self.storage = storage
        self.settings = settings
        self.mailer = mailer
        self.repo = GuestRepository(session)
        self.qr_repo = QrCodeRepository(session)

    def _read(self, guest: Guest, qr_url: Optional[str] = None) -> GuestRead:
        data = GuestRead.model_validate(guest)
        data.qr_code_url = qr_url
        return data

    async def _get_or_404(self, guest_id: int) -> Guest:
        guest = await self.repo.get(guest_id)
        if guest is None:
            raise NotFoundError("Guest not found")
        return guest

    async def _issue_and_send(self, guest: Guest) -> Tuple[Optional[str], bool]:
        passes = QrPassService(self.session, self.storage, self.settings)
        try:
            url = await passes.regenerate(GenerateItem(id=guest.guest_id, type="guest", name=guest.full_name))
        except (StorageError, SQLAlchemyError):
            await self.session.rollback()
            await self.session.refresh(guest)
            logger.exception("Could not issue QR pass for guest %s", guest.guest_id)
            return None, False

        if self.mailer is None or not guest.email:
            return url, False
        emails = QrEmailService(self.mailer, self.storage, self.settings)
        sent = await emails.send_pass(
            EmailRecipient(email=guest.email, name=guest.full_name, qr_code_url=url, user_type="guest")
        )
        if not sent:
            logger.warning("QR email to guest %s was not delivered", guest.guest_id)
        return url, sent

    # PUBLIC_INTERFACE
    async def register(self, payload: GuestRegistration) -> GuestRegistrationResult:
        """Create a guest and, when requested, issue and email the guest pass."""
        values = payload.model_dump(exclude={"issue_pass"})
        values["email"] = str(payload.email)
        guest = await self.repo.create(**values)
        await self.session.commit()
        await self.session.refresh(guest)
        logger.info("Registered guest %s", guest.guest_id)

        qr_url, email_sent = None, False
        if payload.issue_pass:
            qr_url, email_sent = await self._issue_and_send(guest)

        await broadcast_manager.publish("guest.created", {"guestId": guest.guest_id})
        return GuestRegistrationResult(guest=self._read(guest, qr_url), email_sent=email_sent)

    # PUBLIC_INTERFACE
    async def list_guests(
        self, q: Optional[str], gender: Optional[str], page: int, limit: int
    ) -> GuestListResponse:
        guests, total = await self.repo.list_guests(q=q, gender=gender, limit=limit, offset=(page - 1) * limit)
        passes = await self.qr_repo.latest_by_owner("guest", [g.guest_id for g in guests])
        return GuestListResponse(
            data=[
                self._read(g, passes[g.guest_id].qr_code_url if g.guest_id in passes else None) for g in guests
            ],
            pagination=PageMeta.build(page, limit, total),
        )

    # PUBLIC_INTERFACE
    async def get_guest(self, guest_id: int) -> GuestRead:
        guest = await self._get_or_404(guest_id)
        qr = await self.qr_repo.latest_for("guest", guest_id)
        return self._read(guest, qr.qr_code_url if qr else None)

    # PUBLIC_INTERFACE
    async def update_guest(self, guest_id: int, payload: GuestUpdate) -> GuestRead:
        guest = await self._get_or_404(guest_id)
        values = payload.model_dump(exclude_unset=True)
        if "email" in values and values["email"] is not None:
            values["email"] = str(values["email"])
        await self.repo.update(guest, values)
        await self.session.commit()
        await broadcast_manager.publish("guest.updated", {"guestId": guest_id})
        return await self.get_guest(guest_id)

    # PUBLIC_INTERFACE
    async def delete_guest(self, guest_id: int) -> None:
        """Delete a guest with its pass rows and pass images."""
        await self._get_or_404(guest_id)
        bucket = self.settings.QR_BUCKET
        paths = [
            p
            for p in (self.storage.path_from_url(r.qr_code_url, bucket) for r in await self.qr_repo.list_for("guest", guest_id))
            if p
        ]
        if paths:
            try:
                await self.storage.remove(bucket, paths)
            except StorageError:
                logger.exception("Could not remove QR files of guest %s", guest_id)
        await self.qr_repo.delete_for("guest", guest_id)
        await self.repo.delete(guest_id)
        await self.session.commit()
        logger.info("Deleted guest %s", guest_id)
        await broadcast_manager.publish("guest.deleted", {"guestId": guest_id})

    # PUBLIC_INTERFACE
    async def stats(self) -> GuestStats:
        return GuestStats(**await self.repo.stats())
