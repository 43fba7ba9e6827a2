"""
Outbound mail, rendered with jinja2 and sent over SMTP with aiosmtplib.

Every delivery is bounded by ``SMTP_TIMEOUT_SECONDS``.  Callers decide
whether a failure matters.
"""

from __future__ import annotations

import logging
from email.message import EmailMessage
from pathlib import Path

import aiosmtplib
from jinja2 import Environment, FileSystemLoader, select_autoescape

from booking_backend.core.config import settings
from booking_backend.core.exceptions import MailDeliveryError

logger = logging.getLogger(__name__)

_templates = Environment(
    loader=FileSystemLoader(str(Path(__file__).resolve().parents[1] / "templates")),
    autoescape=select_autoescape(["html", "xml"]),
)


class MailService:
    """Render templates and push them to the configured SMTP relay."""

    def __init__(self) -> None:
        self.sender = settings.DO_NOT_REPLY_MAIL

    def render(self, template: str, **context) -> str:
        context.setdefault("project_name", settings.PROJECT_NAME)
        context.setdefault("expire_hours", settings.EMAIL_TOKEN_EXPIRE_HOURS)
        return _templates.get_template(template).render(**context)

    async def send_email(self, to: str, subject: str, html: str) -> None:
        """Send one HTML mail; raises ``MailDeliveryError`` when it does not go out."""
        if not settings.MAIL_ENABLED:
            logger.info("Mail disabled, not sending %r to %s", subject, to)
            return

        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content("This message requires an HTML capable mail client.")
        message.add_alternative(html, subtype="html")

        try:
            await aiosmtplib.send(
                message,
                hostname=settings.SMTP_HOST,
                port=settings.SMTP_PORT,
                username=settings.SMTP_LOGIN or None,
                password=settings.SMTP_KEY or None,
                start_tls=settings.SMTP_USE_TLS,
                timeout=settings.SMTP_TIMEOUT_SECONDS,
            )
        except aiosmtplib.SMTPTimeoutError as exc:
            logger.warning("SMTP delivery to %s timed out", to)
            raise MailDeliveryError("Mail server did not answer in time") from exc
        except (aiosmtplib.SMTPException, OSError) as exc:
            logger.warning("SMTP delivery to %s failed: %s", to, exc)
            raise MailDeliveryError(str(exc)) from exc
        logger.info("Mail %r sent to %s", subject, to)

    async def send_confirmation(self, to: str, first_name: str, link: str) -> None:
        html = self.render("confirm_account.html", first_name=first_name, link=link)
        await self.send_email(to, "Confirm your account", html)

    async def send_password_reset(self, to: str, first_name: str, link: str) -> None:
        html = self.render("reset_password.html", first_name=first_name, link=link)
        await self.send_email(to, "Reset your password", html)


mail_service = MailService()
