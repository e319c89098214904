"""Outbound email over SMTP."""
import asyncio
import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr

from app.config import settings
from app.errors import DependencyError
from app.services.email_templates import render

logger = logging.getLogger(__name__)


class SmtpEmailSender:
    """EmailSender using the configured SMTP relay; disabled when SMTP_HOST is unset."""

    def _build(self, to: str, subject: str, html: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = formataddr((settings.email_from_name, settings.email_from))
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content("This message requires an HTML-capable email client.")
        msg.add_alternative(html, subtype="html")
        return msg

    def _send_sync(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=30) as smtp:
            if settings.smtp_use_tls:
                smtp.starttls()
            if settings.smtp_username:
                smtp.login(settings.smtp_username, settings.smtp_password)
            smtp.send_message(msg)

    async def send_template(self, template: str, to: str, context: dict) -> None:
        subject, html = render(template, context)
        if not settings.smtp_host:
            logger.warning("SMTP_HOST not set. Skipping %s email to %s", template, to)
            return
        try:
            await asyncio.to_thread(self._send_sync, self._build(to, subject, html))
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send %s email to %s: %s", template, to, e)
            raise DependencyError("email_sender", str(e)) from e
        logger.info("%s email sent to %s", template, to)
