"""
Email service with provider abstraction.

Supports SMTP (default), the Resend API, and the SendGrid API.
Provider is selected via configuration.
"""

from __future__ import annotations

import ssl
from abc import ABC, abstractmethod
from email.message import EmailMessage
from typing import TYPE_CHECKING, Any

import aiosmtplib
import httpx
import structlog

from checklist.email.templates import password_reset, verification_code

if TYPE_CHECKING:
    from checklist.config import Settings

logger = structlog.get_logger()


class BaseEmailProvider(ABC):
    """Abstract base class for email delivery providers."""

    name = "base"

    @abstractmethod
    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str,
    ) -> bool:
        """Send an email. Returns True on success."""
        ...


class SMTPProvider(BaseEmailProvider):
    """Send emails via SMTP using aiosmtplib."""

    name = "smtp"

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        from_address: str,
        from_name: str,
        use_tls: bool = True,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_address = from_address
        self.from_name = from_name
        self.use_tls = use_tls

    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str,
    ) -> bool:
        """Send via SMTP."""
        message = EmailMessage()
        message["From"] = f"{self.from_name} <{self.from_address}>"
        message["To"] = to_email
        message["Subject"] = subject
        message.set_content(text_body)
        message.add_alternative(html_body, subtype="html")

        try:
            tls_context = ssl.create_default_context() if self.use_tls else None
            await aiosmtplib.send(
                message,
                hostname=self.host,
                port=self.port,
                username=self.username or None,
                password=self.password or None,
                start_tls=self.use_tls,
                tls_context=tls_context,
            )
        except (aiosmtplib.SMTPException, OSError):
            logger.exception("email_send_failed", to=to_email, provider=self.name)
            return False
        logger.info("email_sent", to=to_email, subject=subject, provider=self.name)
        return True


class _HttpApiProvider(BaseEmailProvider):
    """Shared plumbing for providers that take a JSON POST with a bearer key."""

    endpoint = ""

    def __init__(self, api_key: str, from_address: str, from_name: str) -> None:
        self.api_key = api_key
        self.from_address = from_address
        self.from_name = from_name

    @abstractmethod
    def build_payload(self, to_email: str, subject: str, html_body: str, text_body: str) -> dict[str, Any]:
        """JSON body for the provider's send endpoint."""

    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str,
    ) -> bool:
        """POST the message to the provider's HTTP API."""
        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    self.endpoint,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json=self.build_payload(to_email, subject, html_body, text_body),
                    timeout=10.0,
                )
                response.raise_for_status()
        except httpx.HTTPError:
            logger.exception("email_send_failed", to=to_email, provider=self.name)
            return False
        logger.info("email_sent", to=to_email, subject=subject, provider=self.name)
        return True


class ResendProvider(_HttpApiProvider):
    """Send emails via Resend API."""

    name = "resend"
    endpoint = "https://api.resend.com/emails"

    def build_payload(self, to_email: str, subject: str, html_body: str, text_body: str) -> dict[str, Any]:
        return {
            "from": f"{self.from_name} <{self.from_address}>",
            "to": [to_email],
            "subject": subject,
            "html": html_body,
            "text": text_body,
        }


class SendGridProvider(_HttpApiProvider):
    """Send emails via SendGrid v3 mail API."""

    name = "sendgrid"
    endpoint = "https://api.sendgrid.com/v3/mail/send"

    def build_payload(self, to_email: str, subject: str, html_body: str, text_body: str) -> dict[str, Any]:
        return {
            "personalizations": [{"to": [{"email": to_email}]}],
            "from": {"email": self.from_address, "name": self.from_name},
            "subject": subject,
            "content": [
                {"type": "text/plain", "value": text_body},
                {"type": "text/html", "value": html_body},
            ],
        }


def _create_provider(settings: Settings) -> BaseEmailProvider:
    """Create the email provider named by ``settings.email_provider``."""
    provider_name = settings.email_provider.lower()

    if provider_name == "smtp":
        return SMTPProvider(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            from_address=settings.email_from_address,
            from_name=settings.email_from_name,
            use_tls=settings.smtp_use_tls,
        )
    if provider_name == "resend":
        return ResendProvider(
            api_key=settings.resend_api_key,
            from_address=settings.email_from_address,
            from_name=settings.email_from_name,
        )
    if provider_name == "sendgrid":
        return SendGridProvider(
            api_key=settings.sendgrid_api_key,
            from_address=settings.email_from_address,
            from_name=settings.email_from_name,
        )
    msg = f"Unsupported email provider: {provider_name}"
    raise ValueError(msg)


class EmailService:
    """High-level email service: renders templates and hands them to the provider."""

    def __init__(self, provider: BaseEmailProvider) -> None:
        self.provider = provider

    async def send_email(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str,
    ) -> bool:
        """Send an email. Returns True if sent, False if delivery failed."""
        return await self.provider.send(to, subject, html_body, text_body)

    async def send_template(
        self,
        to: str,
        template_name: str,
        context: dict[str, Any],
    ) -> bool:
        """
        Render a template and send.

        Args:
            to: Recipient email.
            template_name: Template name (verification_code, password_reset).
            context: Template context variables. ``expires_minutes`` falls back to
                the template's default.

        Raises:
            ValueError: If the template name is unknown.
        """
        expiry = {"expires_minutes": context["expires_minutes"]} if "expires_minutes" in context else {}
        if template_name == "verification_code":
            subject, html_body, text_body = verification_code(
                context.get("username", ""),
                context["code"],
                **expiry,
            )
        elif template_name == "password_reset":
            subject, html_body, text_body = password_reset(
                context.get("username", ""),
                context["reset_url"],
                **expiry,
            )
        else:
            msg = f"Unknown template: {template_name}"
            raise ValueError(msg)

        return await self.send_email(to, subject, html_body, text_body)


# Module-level singleton, rebuilt when asked for with different settings
_email_service: EmailService | None = None
_email_settings: Settings | None = None


def get_email_service(settings: Settings) -> EmailService:
    """Get or create the email service for ``settings``."""
    global _email_service, _email_settings  # noqa: PLW0603
    if _email_service is None or _email_settings is not settings:
        _email_service = EmailService(_create_provider(settings))
        _email_settings = settings
    return _email_service


def reset_email_service() -> None:
    """Reset the email service singleton (for testing)."""
    global _email_service, _email_settings  # noqa: PLW0603
    _email_service = None
    _email_settings = None
