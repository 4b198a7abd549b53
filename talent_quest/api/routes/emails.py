from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from talent_quest.core.deps import get_mailer, get_settings_dep, get_storage, require_admin
from talent_quest.core.settings import AppSettings
from talent_quest.schemas.passes import SendQrEmailsRequest, SendQrEmailsResponse
from talent_quest.services.mailer import SmtpMailer
from talent_quest.services.qr_email import QrEmailService
from talent_quest.services.storage import LocalBucketStorage

router = APIRouter(prefix="/send-qr-emails", tags=["QR Emails"], dependencies=[Depends(require_admin)])


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=SendQrEmailsResponse,
    summary="Send QR pass emails",
    description=(
        "Email each recipient their QR pass as an attached PNG. Recipients are sent in batches "
        "of EMAIL_BATCH_SIZE with a pause between batches."
    ),
)
async def send_qr_emails(
    payload: SendQrEmailsRequest,
    mailer: SmtpMailer = Depends(get_mailer),
    storage: LocalBucketStorage = Depends(get_storage),
    settings: AppSettings = Depends(get_settings_dep),
) -> SendQrEmailsResponse:
    """
    Send pass emails in bulk.

    Errors:
        400: recipients is empty.
    """
    if not payload.recipients:
        raise HTTPException(status_code=400, detail="Recipients array is required and must not be empty")
    service = QrEmailService(mailer, storage, settings)
    result = await service.send_bulk(payload.recipients, payload.subject, payload.from_address)
    return SendQrEmailsResponse(
        message=f"Successfully sent {result.successful_sends} out of {result.total_sent} emails",
        results=result,
    )
