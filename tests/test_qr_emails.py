"""
Tests for pass email rendering and bulk dispatch.
"""

import pytest
from httpx import AsyncClient

from conftest import RecordingMailer
from talent_quest.schemas.passes import EmailRecipient
from talent_quest.services.qr_email import (
    QrEmailService,
    attachment_file_name,
    html_to_plain_text,
    pass_label,
    render_pass_email,
)

pytestmark = pytest.mark.asyncio


class TestRendering:
    def test_pass_labels(self):
        assert pass_label("guest") == "Guest Pass"
        assert pass_label("unknown-kind") == "Event Access"
        assert pass_label(None) == "Event Access"

    def test_attachment_file_name(self):
        assert attachment_file_name("Juan dela Cruz") == "Juan_dela_Cruz_MTQ_2025_QR_Code.png"

    def test_render_escapes_name(self, settings):
        html = render_pass_email("<b>Eve</b>", "guest", settings)
        assert "Hello &lt;b&gt;Eve&lt;/b&gt;!" in html
        assert "Digital Access Pass" in html

    def test_plain_text_strips_markup(self, settings):
        text = html_to_plain_text(render_pass_email("Ana", "contestant_single", settings))
        assert "<" not in text
        assert "Hello Ana!" in text


class TestSendPass:
    async def test_requires_email_and_url(self, storage, settings):
        service = QrEmailService(RecordingMailer(), storage, settings)
        with pytest.raises(ValueError, match="Recipient must have email and qrCodeUrl"):
            await service.send_pass(EmailRecipient(email="a@example.com"))

    async def test_sends_without_attachment_when_image_missing(self, storage, settings):
        mailer = RecordingMailer()
        service = QrEmailService(mailer, storage, settings)
        url = storage.public_url("qr-codes", "guests/404_missing.png")
        assert await service.send_pass(EmailRecipient(email="a@example.com", name="A", qr_code_url=url)) is True
        assert mailer.sent[0].attachments == []
        assert mailer.sent[0].headers["X-MTQ-Email-Type"] == "qr-code"

    async def test_bulk_counts_failures(self, storage, settings):
        await storage.upload("qr-codes", "guests/1_a.png", b"\x89PNG")
        url = storage.public_url("qr-codes", "guests/1_a.png")
        mailer = RecordingMailer()
        service = QrEmailService(mailer, storage, settings)
        recipients = [EmailRecipient(email=f"p{i}@example.com", name=f"P{i}", qr_code_url=url) for i in range(12)]
        recipients.append(EmailRecipient(email="nourl@example.com", name="No Url"))

        result = await service.send_bulk(recipients, subject="Your pass")

        assert result.total_sent == 13
        assert result.successful_sends == 12
        assert result.failed_sends == 1
        assert result.errors[0].email == "nourl@example.com"
        assert len(mailer.sent) == 12
        assert {m.subject for m in mailer.sent} == {"Your pass"}

    async def test_bulk_reports_rejected_messages(self, storage, settings):
        mailer = RecordingMailer()
        mailer.accept = False
        service = QrEmailService(mailer, storage, settings)
        url = storage.public_url("qr-codes", "none.png")
        result = await service.send_bulk([EmailRecipient(email="a@example.com", qr_code_url=url)])
        assert result.failed_sends == 1
        assert result.errors[0].error == "Failed to send email (unknown error)"


class TestSendQrEmailsRoute:
    async def test_requires_recipients(self, admin_client: AsyncClient):
        response = await admin_client.post("/api/v1/send-qr-emails", json={"recipients": []})
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Recipients array is required and must not be empty"

    async def test_sends_to_recipients(self, admin_client: AsyncClient, storage, mailer):
        url = await storage.upload("qr-codes", "guests/1_a.png", b"\x89PNG")
        response = await admin_client.post(
            "/api/v1/send-qr-emails",
            json={
                "recipients": [{"email": "a@example.com", "name": "A", "qrCodeUrl": url, "userType": "guest"}],
                "from": "events@example.com",
            },
        )
        body = response.json()
        assert body["message"] == "Successfully sent 1 out of 1 emails"
        assert body["results"]["successfulSends"] == 1
        assert mailer.sent[0].from_address == "events@example.com"
        assert mailer.sent[0].attachments[0].content == b"\x89PNG"
