from __future__ import annotations

import base64
import binascii
import logging
import re
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from talent_quest.core.errors import BadRequestError, RegistrationError, TalentQuestError
from talent_quest.core.settings import AppSettings
from talent_quest.repositories.groups import GroupRepository
from talent_quest.repositories.performances import PerformanceRepository
from talent_quest.repositories.singles import SingleRepository
from talent_quest.repositories.students import StudentRepository
from talent_quest.schemas.passes import EmailRecipient
from talent_quest.schemas.registration import ContestantRegistration, PerformerForm, RegistrationData
from talent_quest.services.base import BaseService
from talent_quest.services.mailer import SmtpMailer
from talent_quest.services.qr import QrPassService, sanitize_component
from talent_quest.services.qr_email import QrEmailService
from talent_quest.services.realtime import broadcast_manager
from talent_quest.services.storage import LocalBucketStorage, StorageError

logger = logging.getLogger(__name__)

_DATA_URL = re.compile(r"^data:(?P<mime>[\w/+.-]+)?(;[\w=-]+)*;base64,(?P<data>.+)$", re.DOTALL)


@dataclass
class UploadedDocument:
    """A file received with the registration form."""
    filename: str
    content: bytes
    content_type: Optional[str] = None

    @property
    def extension(self) -> str:
        return self.filename.rsplit(".", 1)[-1].lower() if "." in self.filename else "bin"


@dataclass
class PerformerDocuments:
    school_certification: Optional[UploadedDocument] = None
    school_id_copy: Optional[UploadedDocument] = None


# PUBLIC_INTERFACE
def decode_data_url(value: str) -> bytes:
    """
    Decode a base64 data URL (as produced by the signature pad) into bytes.

    Raises:
        BadRequestError: the value is not a base64 data URL.
    """
    match = _DATA_URL.match(value.strip())
    if not match:
        raise BadRequestError("Signature must be a base64 data URL")
    try:
        return base64.b64decode(match.group("data"), validate=False)
    except (binascii.Error, ValueError) as exc:
        raise BadRequestError("Signature is not valid base64") from exc


class ContestantRegistrationService(BaseService):
    """
    Registers a single act or a group in one transaction.

    Files are written to the attachment bucket as the rows are created; when any
    step fails the transaction is rolled back and every file written so far is removed.
    The QR pass email goes out only after the commit.
    """

    def __init__(
        self,
        session: AsyncSession,
        storage: LocalBucketStorage,
        mailer: SmtpMailer,
        settings: AppSettings,
    ) -> None:
        super().__init__(session)
        self.storage = storage
        self.settings = settings
        self.students = StudentRepository(session)
        self.performances = PerformanceRepository(session)
        self.singles = SingleRepository(session)
        self.groups = GroupRepository(session)
        self.passes = QrPassService(session, storage, settings)
        self.emails = QrEmailService(mailer, storage, settings)
        self._written: List[Tuple[str, str]] = []

    async def _upload(self, folder: str, name: str, data: bytes) -> str:
        bucket = self.settings.ATTACHMENT_BUCKET
        path = f"{folder}/{name}"
        url = await self.storage.upload(bucket, path, data)
        self._written.append((bucket, path))
        return url

    async def _discard_written_files(self) -> None:
        by_bucket: Dict[str, List[str]] = {}
        for bucket, path in self._written:
            by_bucket.setdefault(bucket, []).append(path)
        for bucket, paths in by_bucket.items():
            try:
                await self.storage.remove(bucket, paths)
            except StorageError:
                logger.exception("Could not clean up %d uploaded file(s) in %s", len(paths), bucket)
        self._written.clear()

    async def _add_performer(
        self,
        form: ContestantRegistration,
        performer: PerformerForm,
        documents: PerformerDocuments,
        folder: str,
    ) -> int:
        """Store one performer's files, student row and compliance rows; return the student id."""
        stamp = int(time.time() * 1000)
        certification_url = school_id_url = student_sig_url = parent_sig_url = None
        if documents.school_certification is not None:
            doc = documents.school_certification
            certification_url = await self._upload(folder, f"certification_{stamp}.{doc.extension}", doc.content)
        if documents.school_id_copy is not None:
            doc = documents.school_id_copy
            school_id_url = await self._upload(folder, f"school_id_{stamp}.{doc.extension}", doc.content)
        if performer.student_signature:
            student_sig_url = await self._upload(
                folder, f"student_signature_{stamp}.png", decode_data_url(performer.student_signature)
            )
        if performer.parent_guardian_signature:
            parent_sig_url = await self._upload(
                folder, f"parent_signature_{stamp}.png", decode_data_url(performer.parent_guardian_signature)
            )

        student = await self.students.create(
            full_name=performer.full_name,
            age=performer.age,
            gender=performer.gender,
            school=performer.school,
            course_year=performer.course_year,
            contact_number=performer.contact_number,
            email=str(performer.email),
        )
        sid = student.student_id

        if certification_url or school_id_url:
            await self.students.add_requirement(
                student_id=sid, certification_url=certification_url, school_id_url=school_id_url
            )
        await self.students.add_health_declaration(
            student_id=sid,
            is_physically_fit=performer.health_declaration,
            medical_conditions=performer.medical_conditions,
            student_signature_url=student_sig_url,
            parent_guardian_signature_url=parent_sig_url,
        )
        await self.students.add_consent(
            student_id=sid,
            info_correct=performer.information_consent,
            agree_to_rules=performer.rules_agreement,
            consent_to_publicity=performer.publicity_consent,
            student_signature_url=student_sig_url,
            parent_guardian_signature_url=parent_sig_url,
        )
        await self.performances.create(
            student_id=sid,
            performance_type=form.performance_type.value,
            title=form.performance_title,
            duration=form.performance_duration,
            num_performers=form.number_of_performers,
            group_members=None,
        )
        if performer.school_official_name:
            await self.students.add_endorsement(
                student_id=sid,
                school_official_name=performer.school_official_name,
                position=performer.school_official_position,
            )
        return sid

    async def _register_group(
        self, form: ContestantRegistration, documents: Dict[int, PerformerDocuments]
    ) -> RegistrationData:
        group = await self.groups.create(
            group_name=f"{form.performance_title} Group",
            performance_type=form.performance_type.value,
            performance_title=form.performance_title,
            performance_description=", ".join(p.full_name for p in form.performers),
        )
        gid = group.group_id
        for index, performer in enumerate(form.performers):
            folder = f"group_{gid}/performer_{index + 1}_{sanitize_component(performer.full_name)}"
            sid = await self._add_performer(form, performer, documents.get(index, PerformerDocuments()), folder)
            await self.groups.add_member(gid, sid, is_leader=index == 0)
            if index == 0:
                await self.groups.update(group, {"leader_id": sid})

        qr_url = await self._issue_pass("group", gid, form.performers[0].full_name)
        return RegistrationData(is_group=True, group_id=gid, qr_code_url=qr_url)

    async def _register_single(
        self, form: ContestantRegistration, documents: Dict[int, PerformerDocuments]
    ) -> RegistrationData:
        performer = form.performers[0]
        single = await self.singles.create(performance_title=form.performance_title)
        folder = f"single_{single.single_id}_{sanitize_component(performer.full_name)}"
        sid = await self._add_performer(form, performer, documents.get(0, PerformerDocuments()), folder)
        await self.singles.update(single, {"student_id": sid})

        qr_url = await self._issue_pass("single", single.single_id, performer.full_name)
        return RegistrationData(is_group=False, single_id=single.single_id, qr_code_url=qr_url)

    async def _issue_pass(self, owner: str, owner_id: int, holder_name: str) -> str:
        url = await self.passes.store_contestant_pass(owner, owner_id, holder_name)
        path = self.storage.path_from_url(url, self.settings.QR_BUCKET)
        if path:
            self._written.append((self.settings.QR_BUCKET, path))
        await self.passes.record_pass(owner, owner_id, url)
        return url

    async def _email_pass(self, form: ContestantRegistration, data: RegistrationData) -> bool:
        user_type = "contestant_group" if data.is_group else "contestant_single"
        recipients = [
            EmailRecipient(email=str(p.email), name=p.full_name, qr_code_url=data.qr_code_url, user_type=user_type)
            for p in form.performers
        ]
        result = await self.emails.send_bulk(recipients)
        if result.failed_sends:
            logger.warning(
                "QR email not delivered to %d of %d contestant(s): %s",
                result.failed_sends,
                result.total_sent,
                [e.email for e in result.errors],
            )
        return result.total_sent > 0 and result.failed_sends == 0

    # PUBLIC_INTERFACE
    async def register(
        self,
        form: ContestantRegistration,
        documents: Optional[Dict[int, PerformerDocuments]] = None,
    ) -> RegistrationData:
        """
        Register a contestant entry and issue its QR pass.

        Args:
            form: validated registration form.
            documents: uploaded files keyed by performer index.
        Raises:
            BadRequestError: a signature could not be decoded.
            RegistrationError: a database or storage step failed; nothing is kept.
        """
        documents = documents or {}
        self._written.clear()
        try:
            if form.is_group:
                data = await self._register_group(form, documents)
            else:
                data = await self._register_single(form, documents)
            await self.session.commit()
        except TalentQuestError:
            await self.session.rollback()
            await self._discard_written_files()
            raise
        except (SQLAlchemyError, StorageError) as exc:
            await self.session.rollback()
            await self._discard_written_files()
            logger.exception("Contestant registration failed for '%s'", form.performance_title)
            raise RegistrationError("Registration failed") from exc

        logger.info(
            "Registered %s entry '%s' (group_id=%s single_id=%s)",
            "group" if data.is_group else "single",
            form.performance_title,
            data.group_id,
            data.single_id,
        )
        data.email_sent = await self._email_pass(form, data)
        await broadcast_manager.publish(
            "registration.created",
            {
                "isGroup": data.is_group,
                "groupId": data.group_id,
                "singleId": data.single_id,
                "title": form.performance_title,
            },
        )
        return data
