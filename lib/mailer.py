# =============================================================================
# lib/mailer.py - SMTP Email Delivery
# =============================================================================
# Sends transactional email (verification links, password resets, one-time
# codes) through the SMTP server configured in settings.
#
# Usage:
#   from lib.mailer import EmailOptions, send_email
#   send_email(EmailOptions(send_to="a@b.com", subject="Hi", text="Hello"))
# =============================================================================

from __future__ import annotations

import asyncio
import logging
import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from app.config import settings
from lib.utils import ApplicationError

logger = logging.getLogger(__name__)

SMTP_TIMEOUT_SECONDS = 30


class MailerError(ApplicationError):
    """Raised when an email could not be delivered to the SMTP server."""

    def __init__(self, message: str = "Failed to send email", **kwargs):
        super().__init__(
            message,
            code="EMAIL_SEND_FAILED",
            suggestion="Check SMTP_HOST, SMTP_PORT and SMTP credentials in your .env file",
            **kwargs,
        )


@dataclass(frozen=True)
class EmailOptions:
    """A single outgoing email."""
    send_to: str
    subject: str
    text: str
    html: str | None = None


def _build_message(options: EmailOptions, sender: str) -> MIMEMultipart:
    msg = MIMEMultipart("alternative")
    msg["Subject"] = options.subject
    msg["From"] = sender
    msg["To"] = options.send_to

    msg.attach(MIMEText(options.text, "plain"))
    # Clients that prefer HTML get the text body if no HTML was given
    msg.attach(MIMEText(options.html or options.text, "html"))
    return msg


def _connect() -> smtplib.SMTP:
    if settings.SMTP_SECURE:
        return smtplib.SMTP_SSL(
            settings.SMTP_HOST, settings.SMTP_PORT, timeout=SMTP_TIMEOUT_SECONDS
        )

    server = smtplib.SMTP(
        settings.SMTP_HOST, settings.SMTP_PORT, timeout=SMTP_TIMEOUT_SECONDS
    )
    server.starttls()
    return server


def send_email(options: EmailOptions) -> None:
    """
    Send an email through the configured SMTP server.

    Args:
        options: Recipient, subject and bodies

    Raises:
        MailerError: If connecting, authenticating or sending fails
    """
    sender = settings.SMTP_FROM or settings.SMTP_USER
    message = _build_message(options, sender)

    try:
        server = _connect()
        try:
            if settings.SMTP_USER and settings.SMTP_PASS:
                server.login(settings.SMTP_USER, settings.SMTP_PASS)
            server.sendmail(sender, [options.send_to], message.as_string())
        finally:
            server.quit()
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Error sending email to {options.send_to}: {e}")
        raise MailerError(details={"to": options.send_to, "error": str(e)}) from e

    logger.info(f"Sent email '{options.subject}' to {options.send_to}")


async def send_email_async(options: EmailOptions) -> None:
    """Send an email without blocking the event loop."""
    await asyncio.to_thread(send_email, options)
