from __future__ import annotations

import re
from typing import Any, Dict, List, Tuple

from fastapi import APIRouter, Depends, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from talent_quest.core.deps import get_mailer, get_settings_dep, get_storage
from talent_quest.core.settings import AppSettings
from talent_quest.db.session import get_async_session
from talent_quest.schemas.common import SuccessMessage
from talent_quest.schemas.registration import ContestantRegistration, RegistrationResponse
from talent_quest.services.mailer import SmtpMailer
from talent_quest.services.registration import (
    ContestantRegistrationService,
    PerformerDocuments,
    UploadedDocument,
)
from talent_quest.services.storage import LocalBucketStorage

router = APIRouter(prefix="/contestant", tags=["Registration"])

_PERFORMER_KEY = re.compile(r"^performers\[(\d+)\]\.(\w+)$")
_FILE_FIELDS = {
    "schoolCertification": "school_certification",
    "schoolIdCopy": "school_id_copy",
}
_ENTRY_FIELDS = ("performanceType", "performanceTitle", "performanceDuration", "numberOfPerformers")


async def parse_contestant_form(request: Request) -> Tuple[Dict[str, Any], Dict[int, PerformerDocuments]]:
    """
    Split the multipart form into entry fields, performer blocks and uploaded files.

    Performer fields arrive as ``performers[<i>].<field>``; blocks are ordered by index.
    """
    form = await request.form()
    performers: Dict[int, Dict[str, Any]] = {}
    documents: Dict[int, PerformerDocuments] = {}
    for key, value in form.multi_items():
        match = _PERFORMER_KEY.match(key)
        if not match:
            continue
        index, field = int(match.group(1)), match.group(2)
        performers.setdefault(index, {})
        if isinstance(value, UploadFile):
            if field not in _FILE_FIELDS or not value.filename:
                continue
            content = await value.read()
            if content:
                docs = documents.setdefault(index, PerformerDocuments())
                setattr(docs, _FILE_FIELDS[field], UploadedDocument(value.filename, content, value.content_type))
            continue
        performers[index][field] = value

    ordered: List[int] = sorted(performers)
    data: Dict[str, Any] = {name: form.get(name) for name in _ENTRY_FIELDS}
    data["performers"] = [performers[i] for i in ordered]
    # Re-key uploads by position so they line up with the validated performer list
    positioned = {ordered.index(i): docs for i, docs in documents.items()}
    return data, positioned


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=RegistrationResponse,
    summary="Register contestant entry",
    description=(
        "Multipart registration of a single act (1 performer) or a group (2-10 performers). "
        "Creates all records in one transaction, stores uploads, issues the QR pass and emails it."
    ),
)
async def register_contestant(
    request: Request,
    session: AsyncSession = Depends(get_async_session),
    storage: LocalBucketStorage = Depends(get_storage),
    mailer: SmtpMailer = Depends(get_mailer),
    settings: AppSettings = Depends(get_settings_dep),
) -> RegistrationResponse:
    """
    Register a contestant entry.

    Errors:
        422: form validation failed (details list each issue).
        400: a signature could not be decoded.
        500: the registration could not be stored; nothing is kept.
    """
    data, documents = await parse_contestant_form(request)
    try:
        form = ContestantRegistration.model_validate(data)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False, include_input=False, include_context=False))

    service = ContestantRegistrationService(session, storage, mailer, settings)
    result = await service.register(form, documents)
    return RegistrationResponse(data=result)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=SuccessMessage,
    summary="Describe contestant endpoint",
)
async def describe_contestant_endpoint() -> SuccessMessage:
    """Describe the contestant registration endpoint."""
    return SuccessMessage(message="Contestant registration API endpoint")
