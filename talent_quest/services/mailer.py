from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from email.mime.image import MIMEImage
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, formatdate
from typing import Dict, List, Optional

import aiosmtplib

from talent_quest.core.settings import AppSettings

logger = logging.getLogger(__name__)


@dataclass
class EmailAttachment:
    filename: str
    content: bytes
    subtype: str = "png"


@dataclass
class OutgoingEmail:
    """A fully rendered message ready for SMTP."""
    to: str
    subject: str
    html: str
    text: str
    from_address: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)
    attachments: List[EmailAttachment] = field(default_factory=list)


class SmtpMailer:
    """
    Sends rendered messages through SMTP with aiosmtplib.

    send() returns False instead of raising so callers can count failures
    per recipient; when no SMTP host is configured nothing is sent.
    """

    def __init__(self, settings: AppSettings) -> None:
        self.settings = settings

    def build_message(self, email: OutgoingEmail) -> MIMEMultipart:
        s = self.settings
        msg = MIMEMultipart("mixed")
        msg["Subject"] = email.subject
        msg["From"] = formataddr((s.MAIL_FROM_NAME, email.from_address or s.MAIL_FROM_ADDRESS))
        msg["To"] = email.to
        msg["Reply-To"] = s.MAIL_REPLY_TO
        msg["Date"] = formatdate(localtime=True)
        domain = (email.from_address or s.MAIL_FROM_ADDRESS).rsplit("@", 1)[-1]
        msg["Message-ID"] = f"<{uuid.uuid4()}@{domain}>"
        for name, value in email.headers.items():
            msg[name] = value

        body = MIMEMultipart("alternative")
        body.attach(MIMEText(email.text, "plain", "utf-8"))
        body.attach(MIMEText(email.html, "html", "utf-8"))
        msg.attach(body)

        for attachment in email.attachments:
            part = MIMEImage(attachment.content, _subtype=attachment.subtype)
            part.add_header("Content-Disposition", "attachment", filename=attachment.filename)
            msg.attach(part)
        return msg

    # PUBLIC_INTERFACE
    async def send(self, email: OutgoingEmail) -> bool:
        """Send one message. Returns True when the server accepted it."""
        s = self.settings
        if not s.smtp_configured:
            logger.error("Cannot send email to %s: SMTP_HOST not configured", email.to)
            return False

        msg = self.build_message(email)
        try:
            await aiosmtplib.send(
                msg,
                hostname=s.SMTP_HOST,
                port=s.SMTP_PORT,
                username=s.SMTP_USERNAME or None,
                password=s.SMTP_PASSWORD or None,
                use_tls=s.SMTP_USE_TLS,
                start_tls=s.SMTP_START_TLS and not s.SMTP_USE_TLS,
                timeout=s.SMTP_TIMEOUT_SECONDS,
            )
        except (aiosmtplib.SMTPException, OSError):
            logger.exception("Error sending email to %s", email.to)
            return False
        logger.info("Email '%s' sent to %s", email.subject, email.to)
        return True
