"""Tests for email service and templates."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from checklist.config import get_settings
from checklist.email.service import (
    EmailService,
    ResendProvider,
    SendGridProvider,
    SMTPProvider,
    _HttpApiProvider,
    _create_provider,
    get_email_service,
    reset_email_service,
)
from checklist.email.templates import password_reset, verification_code


class TestEmailTemplates:
    def test_verification_code_returns_tuple(self):
        subject, html, text = verification_code("TestUser", "123456")
        assert "verification" in subject.lower()
        assert "123456" in html
        assert "123456" in text
        assert "10 minutes" in text

    def test_password_reset_returns_tuple(self):
        subject, html, text = password_reset("TestUser", "https://example.com/reset-password?token=abc")
        assert "reset" in subject.lower()
        assert "token=abc" in html
        assert "token=abc" in text
        assert "1 hour" in text

    def test_username_is_escaped_in_html(self):
        _, html, _ = verification_code("<script>", "123456")
        assert "<script>" not in html
        assert "&lt;script&gt;" in html


class FakeProvider:
    name = "fake"

    def __init__(self, ok: bool = True) -> None:
        self.ok = ok
        self.sent: list[tuple[str, str, str, str]] = []

    async def send(self, to_email, subject, html_body, text_body):
        self.sent.append((to_email, subject, html_body, text_body))
        return self.ok


class TestEmailService:
    async def test_send_template_renders_code(self):
        provider = FakeProvider()
        service = EmailService(provider=provider)
        ok = await service.send_template(
            to="user@example.com", template_name="verification_code", context={"username": "u", "code": "654321"}
        )
        assert ok is True
        to_email, _, html, _ = provider.sent[0]
        assert to_email == "user@example.com"
        assert "654321" in html

    async def test_expiry_comes_from_context(self):
        provider = FakeProvider()
        service = EmailService(provider=provider)
        await service.send_template(
            to="user@example.com",
            template_name="verification_code",
            context={"username": "u", "code": "654321", "expires_minutes": 15},
        )
        assert "15 minutes" in provider.sent[0][3]

    async def test_delivery_failure_is_reported(self):
        service = EmailService(provider=FakeProvider(ok=False))
        ok = await service.send_template(
            to="user@example.com",
            template_name="password_reset",
            context={"username": "u", "reset_url": "https://example.com/r"},
        )
        assert ok is False

    async def test_unknown_template(self):
        service = EmailService(provider=FakeProvider())
        with pytest.raises(ValueError, match="Unknown template"):
            await service.send_template(to="user@example.com", template_name="welcome", context={})


class TestHttpProviders:
    def test_payload_builder_is_required(self):
        with pytest.raises(TypeError):
            _HttpApiProvider(api_key="k", from_address="noreply@example.com", from_name="Checklist")

    def test_sendgrid_payload(self):
        provider = SendGridProvider(api_key="k", from_address="noreply@example.com", from_name="Checklist")
        payload = provider.build_payload("to@example.com", "Hi", "<p>Hi</p>", "Hi")
        assert payload["personalizations"] == [{"to": [{"email": "to@example.com"}]}]
        assert payload["from"] == {"email": "noreply@example.com", "name": "Checklist"}

    async def test_http_error_returns_false(self):
        provider = ResendProvider(api_key="k", from_address="noreply@example.com", from_name="Checklist")
        with patch("httpx.AsyncClient.post", new=AsyncMock(side_effect=httpx.ConnectError("down"))):
            assert await provider.send("to@example.com", "Hi", "<p>Hi</p>", "Hi") is False


class TestProviderSelection:
    @staticmethod
    def provider_settings(name: str):
        return get_settings().model_copy(update={"email_provider": name})

    @pytest.mark.parametrize(
        ("name", "cls"),
        [("smtp", SMTPProvider), ("resend", ResendProvider), ("SendGrid", SendGridProvider)],
    )
    def test_configured_provider(self, name, cls):
        assert isinstance(_create_provider(self.provider_settings(name)), cls)

    def test_unsupported_provider(self):
        with pytest.raises(ValueError, match="Unsupported email provider"):
            _create_provider(self.provider_settings("pigeon"))

    def test_singleton_reset(self):
        settings = get_settings()
        reset_email_service()
        first = get_email_service(settings)
        assert get_email_service(settings) is first
        reset_email_service()
        assert get_email_service(settings) is not first
        reset_email_service()

    def test_new_settings_rebuild_provider(self):
        reset_email_service()
        smtp = get_email_service(self.provider_settings("smtp"))
        resend = get_email_service(self.provider_settings("resend"))
        assert isinstance(smtp.provider, SMTPProvider)
        assert isinstance(resend.provider, ResendProvider)
        reset_email_service()
