from __future__ import annotations

import asyncio
import html as html_lib
import logging
import re
from typing import List, Optional

import httpx

from talent_quest.core.settings import AppSettings
from talent_quest.schemas.passes import EmailBatchResult, EmailError, EmailRecipient
from talent_quest.services.mailer import EmailAttachment, OutgoingEmail, SmtpMailer
from talent_quest.services.storage import LocalBucketStorage, StorageError

logger = logging.getLogger(__name__)

PASS_LABELS = {
    "contestant_single": "Single Contestant Pass",
    "contestant_group": "Group Contestant Pass",
    "guest": "Guest Pass",
}

USAGE_TIPS = [
    ("Save the Attachment", "Find the attached QR code image and save it to your phone"),
    ("Entrance Access", "Present the QR code at the {event} entrance hall for authentication"),
    ("Fast Check-in", "Scan the QR code for quick and contactless entry"),
    ("Multiple Uses", "You can use this QR code throughout the event for various services"),
    ("Security", "Keep your QR code private and do not share it with others"),
    ("Backup", "Print a copy or save multiple digital copies as backup"),
]


class QrImageUnavailable(Exception):
    """The pass image could not be loaded for attaching."""


# PUBLIC_INTERFACE
def pass_label(user_type: Optional[str]) -> str:
    """Human label for a pass type; unknown types read 'Event Access'."""
    return PASS_LABELS.get((user_type or "").lower(), "Event Access")


# PUBLIC_INTERFACE
def html_to_plain_text(markup: str) -> str:
    """Plain-text alternative of an HTML body."""
    text = re.sub(r"<style[\s\S]*?</style>", "", markup, flags=re.IGNORECASE)
    text = re.sub(r"<script[\s\S]*?</script>", "", text, flags=re.IGNORECASE)
    text = re.sub(r"<[^>]*>", "", text)
    text = html_lib.unescape(text).replace("\xa0", " ")
    return re.sub(r"\s+", " ", text).strip()


# PUBLIC_INTERFACE
def attachment_file_name(name: Optional[str]) -> str:
    """File name of the attached pass, e.g. Juan_Dela_Cruz_MTQ_2025_QR_Code.png."""
    return f"{re.sub(r'[^a-zA-Z0-9]', '_', name or 'user')}_MTQ_2025_QR_Code.png"


# PUBLIC_INTERFACE
def render_pass_email(user_name: str, user_type: Optional[str], settings: AppSettings) -> str:
    """HTML body of the pass email."""
    event = html_lib.escape(settings.EVENT_NAME)
    name = html_lib.escape(user_name)
    tips = "".join(
        f'<li style="margin-bottom: 8px;"><strong>{title}:</strong> {body.format(event=event)}</li>'
        for title, body in USAGE_TIPS
    )
    contact_email = html_lib.escape(settings.EVENT_CONTACT_EMAIL)
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Your {event} QR Code</title>
</head>
<body style="margin: 0; padding: 0; font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; background-color: #f3f4f6;">
  <div style="max-width: 600px; margin: 0 auto; background-color: white;">
    <div style="background: linear-gradient(135deg, #1e40af 0%, #3b82f6 100%); padding: 30px; text-align: center;">
      <h1 style="color: white; margin: 0; font-size: 28px;">{event}</h1>
      <p style="color: #dbeafe; margin: 8px 0 0 0; font-size: 16px;">Digital Access Pass</p>
    </div>
    <div style="padding: 30px;">
      <div style="margin-bottom: 30px; text-align: center;">
        <h2 style="color: #1f2937; margin: 0 0 16px 0;">Hello {name}!</h2>
        <p style="color: #6b7280; margin: 0; line-height: 1.5;">
          Your personalized QR code for {event} is ready. This FREE digital pass will grant you access to the event.
        </p>
      </div>
      <div style="background-color: #f8fafc; border: 2px solid #3b82f6; border-radius: 12px; padding: 30px; text-align: center; margin-bottom: 30px;">
        <h3 style="color: #1e40af; margin: 0 0 16px 0;">Your Digital Access Pass</h3>
        <p style="color: #6b7280; margin: 0;">The QR code image is attached to this email.</p>
        <p style="color: #6b7280; margin: 8px 0 0 0;">Present this QR code at the entrance for quick check-in</p>
      </div>
      <h3 style="color: #1f2937; border-bottom: 2px solid #e5e7eb; padding-bottom: 8px;">How to Use Your QR Code</h3>
      <ul style="color: #4b5563; line-height: 1.6;">{tips}</ul>
      <h3 style="color: #1f2937; border-bottom: 2px solid #e5e7eb; padding-bottom: 8px;">{event} Event Details</h3>
      <p style="color: #1f2937;"><strong>Access Type:</strong> {html_lib.escape(pass_label(user_type))}</p>
      <p style="color: #1f2937;"><strong>Registration:</strong> <span style="color: #10b981;">FREE</span></p>
      <div style="background-color: #f9fafb; padding: 20px; border-radius: 8px; text-align: center;">
        <h4 style="color: #1f2937; margin: 0 0 12px 0;">Need Help?</h4>
        <p style="margin: 0; color: #6b7280; line-height: 1.5;">
          If you have any questions about your QR code or {event}, please contact us:<br>
          <strong>Email:</strong> <a href="mailto:{contact_email}" style="color: #2563eb;">{contact_email}</a><br>
          <strong>Phone:</strong> {html_lib.escape(settings.EVENT_CONTACT_PHONE)}
        </p>
      </div>
    </div>
    <div style="background-color: #1f2937; padding: 20px; text-align: center;">
      <p style="color: #9ca3af; margin: 0; font-size: 14px;">&copy; 2025 {event}. All rights reserved.</p>
    </div>
  </div>
</body>
</html>
"""


class QrEmailService:
    """
    Renders and sends pass emails, singly or in rate-limited batches.
    """

    def __init__(self, mailer: SmtpMailer, storage: LocalBucketStorage, settings: AppSettings) -> None:
        self.mailer = mailer
        self.storage = storage
        self.settings = settings

    async def load_qr_image(self, url: str) -> bytes:
        """
        Load the pass PNG: straight from storage for local URLs, over HTTP otherwise.
        """
        local = self.storage.resolve_url(url)
        try:
            if local is not None:
                return await self.storage.download(*local)
            async with httpx.AsyncClient(timeout=15.0, follow_redirects=True) as client:
                response = await client.get(url)
                response.raise_for_status()
                return response.content
        except (StorageError, httpx.HTTPError) as exc:
            raise QrImageUnavailable(str(exc)) from exc

    # PUBLIC_INTERFACE
    async def send_pass(
        self,
        recipient: EmailRecipient,
        subject: Optional[str] = None,
        from_address: Optional[str] = None,
    ) -> bool:
        """
        Send one pass email.

        Raises:
            ValueError: recipient lacks an email or a QR code URL.
        Returns:
            True when the message was accepted by the SMTP server.
        """
        if not recipient.email or not recipient.qr_code_url:
            raise ValueError("Recipient must have email and qrCodeUrl")

        html = render_pass_email(recipient.name or "Valued Participant", recipient.user_type, self.settings)
        attachments: List[EmailAttachment] = []
        try:
            png = await self.load_qr_image(recipient.qr_code_url)
            attachments.append(EmailAttachment(filename=attachment_file_name(recipient.name), content=png))
        except QrImageUnavailable as exc:
            logger.error("Failed to fetch QR code image for %s: %s", recipient.email, exc)

        message = OutgoingEmail(
            to=recipient.email,
            subject=subject or self.settings.QR_EMAIL_SUBJECT,
            html=html,
            text=html_to_plain_text(html),
            from_address=from_address,
            headers={
                "X-MTQ-User-Type": recipient.user_type or "unknown",
                "X-MTQ-Email-Type": "qr-code",
            },
            attachments=attachments,
        )
        return await self.mailer.send(message)

    async def _send_one(
        self,
        recipient: EmailRecipient,
        subject: Optional[str],
        from_address: Optional[str],
        result: EmailBatchResult,
    ) -> None:
        try:
            ok = await self.send_pass(recipient, subject, from_address)
            error = None if ok else "Failed to send email (unknown error)"
        except ValueError as exc:
            error = str(exc)
        result.total_sent += 1
        if error is None:
            result.successful_sends += 1
        else:
            result.failed_sends += 1
            result.errors.append(EmailError(email=recipient.email, error=error))

    # PUBLIC_INTERFACE
    async def send_bulk(
        self,
        recipients: List[EmailRecipient],
        subject: Optional[str] = None,
        from_address: Optional[str] = None,
    ) -> EmailBatchResult:
        """
        Send pass emails in batches of EMAIL_BATCH_SIZE, concurrently within a batch,
        pausing EMAIL_BATCH_DELAY_SECONDS between batches.
        """
        result = EmailBatchResult()
        size = self.settings.EMAIL_BATCH_SIZE
        batches = [recipients[i:i + size] for i in range(0, len(recipients), size)]
        for index, batch in enumerate(batches, start=1):
            logger.info("Processing QR code email batch %d/%d", index, len(batches))
            await asyncio.gather(*(self._send_one(r, subject, from_address, result) for r in batch))
            if index < len(batches) and self.settings.EMAIL_BATCH_DELAY_SECONDS:
                await asyncio.sleep(self.settings.EMAIL_BATCH_DELAY_SECONDS)
        logger.info(
            "Bulk QR code email send completed: %d/%d sent", result.successful_sends, result.total_sent
        )
        return result
