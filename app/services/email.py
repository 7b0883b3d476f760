"""SMTP mail delivery.

``send_email`` never raises for delivery problems; it reports them through
``EmailResult`` so callers decide how to surface the failure.
"""

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Protocol

from app.config import settings

logger = logging.getLogger(__name__)


@dataclass
class EmailResult:
    success: bool
    message_id: str | None = None
    error: str | None = None


class Mailer(Protocol):
    def __call__(
        self,
        to: str | list[str],
        subject: str,
        html: str,
        from_address: str | None = None,
        reply_to: str | None = None,
    ) -> EmailResult: ...


def _default_from() -> str:
    if settings.smtp_from_address:
        return settings.smtp_from_address
    return f"{settings.brand_name} <{settings.smtp_username}>"


def send_email(
    to: str | list[str],
    subject: str,
    html: str,
    from_address: str | None = None,
    reply_to: str | None = None,
) -> EmailResult:
    if not settings.smtp_username or not settings.smtp_password:
        logger.error("SMTP credentials not configured")
        return EmailResult(success=False, error="SMTP credentials not configured")

    recipients = to if isinstance(to, list) else [to]
    message = EmailMessage()
    message["From"] = from_address or _default_from()
    message["To"] = ", ".join(recipients)
    message["Subject"] = subject
    message["Message-ID"] = make_msgid()
    if reply_to:
        message["Reply-To"] = reply_to
    message.set_content("This message requires an HTML capable mail client.")
    message.add_alternative(html, subtype="html")

    logger.info("Sending email to %s: %s", ", ".join(recipients), subject)
    try:
        with smtplib.SMTP(
            settings.smtp_server, settings.smtp_port, timeout=settings.smtp_timeout
        ) as client:
            client.starttls()
            client.login(settings.smtp_username, settings.smtp_password)
            client.send_message(message)
    except (smtplib.SMTPException, OSError) as e:
        logger.error("Failed to send email to %s: %s", ", ".join(recipients), e)
        return EmailResult(success=False, error=str(e))

    return EmailResult(success=True, message_id=message["Message-ID"])
