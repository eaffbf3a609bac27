"""Tests for SmtpEmailSender rendering and delivery."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from fastapi_mail import FastMail
from fastapi_mail.errors import ConnectionErrors
from fastapi_mail.schemas import MessageType

from timeledger.core.config.settings import settings
from timeledger.core.exceptions import EmailServiceError, TemplateRenderError
from timeledger.infrastructure.services.email_sender import SmtpEmailSender, build_connection_config

VERIFICATION_DATA = {
    "subject": "Verify your email change request",
    "user_name": "Jane Doe",
    "request_id": "req-1",
    "current_email": "jane@acme.com",
    "new_email": "jane@newco.com",
    "reason": "Company Change",
    "custom_reason": None,
    "is_current_email": True,
    "verification_url": "https://app.test/verify-email?token=abc&type=current",
    "expires_in": "24 hours",
    "expires_at": datetime(2026, 3, 3, 9, 0, tzinfo=timezone.utc),
}


@pytest.fixture
def test_mode_sender():
    return SmtpEmailSender(settings.model_copy(update={"EMAIL_TEST_MODE": True}))


@pytest.fixture
def live_sender():
    return SmtpEmailSender(
        settings.model_copy(update={"EMAIL_TEST_MODE": False, "SMTP_HOST": "smtp.test", "SMTP_PORT": 587})
    )


class TestRender:
    def test_renders_html_and_text(self, test_mode_sender):
        html_body, text_body = test_mode_sender.render(
            "email_change_verification", {"app_name": "TimeLedger", **VERIFICATION_DATA}
        )

        assert "jane@newco.com" in text_body
        assert "https://app.test/verify-email?token=abc&type=current" in text_body
        assert "2026-03-03 09:00 UTC" in text_body
        assert "Jane Doe" in html_body

    def test_missing_template(self, test_mode_sender):
        with pytest.raises(TemplateRenderError):
            test_mode_sender.render("does_not_exist", {})


class TestSendTemplated:
    @pytest.mark.asyncio
    async def test_test_mode_does_not_send(self, test_mode_sender, mocker):
        send = mocker.patch.object(FastMail, "send_message", new_callable=AsyncMock)

        await test_mode_sender.send_templated("email_change_verification", "jane@acme.com", VERIFICATION_DATA)

        send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delivers_html_with_text_alternative(self, live_sender, mocker):
        send = mocker.patch.object(FastMail, "send_message", new_callable=AsyncMock)

        await live_sender.send_templated("email_change_verification", "jane@acme.com", VERIFICATION_DATA)

        message = send.await_args.args[0]
        assert message.subject == "Verify your email change request"
        assert [recipient.email for recipient in message.recipients] == ["jane@acme.com"]
        assert message.subtype == MessageType.html
        assert "Jane Doe" in message.body
        assert "jane@newco.com" in message.alternative_body

    @pytest.mark.asyncio
    async def test_delivery_failure_becomes_email_service_error(self, live_sender, mocker):
        mocker.patch.object(
            FastMail, "send_message", new_callable=AsyncMock, side_effect=ConnectionErrors("unavailable")
        )

        with pytest.raises(EmailServiceError):
            await live_sender.send_templated("email_change_verification", "jane@acme.com", VERIFICATION_DATA)


def test_connection_config_follows_smtp_settings():
    config = build_connection_config(
        settings.model_copy(
            update={"SMTP_HOST": "smtp.test", "SMTP_PORT": 465, "SMTP_USE_SSL": True, "SMTP_USERNAME": None}
        )
    )

    assert (config.MAIL_SERVER, config.MAIL_PORT) == ("smtp.test", 465)
    assert config.MAIL_SSL_TLS is True
    assert config.MAIL_STARTTLS is False
    assert config.USE_CREDENTIALS is False
