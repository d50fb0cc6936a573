"""Outbound email collaborator."""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from typing import Protocol

from kocmoc.core.errors import DeliveryError
from kocmoc.core.settings import Settings

logger = logging.getLogger(__name__)


class Mailer(Protocol):
    """Anything able to deliver a plain-text email."""

    def send(self, to_address: str, subject: str, body: str) -> None:
        """Deliver a message or raise ``DeliveryError``."""


class NullMailer:
    """Stand-in used when no SMTP credentials are configured; delivers nothing."""

    def send(self, to_address: str, subject: str, body: str) -> None:
        logger.warning("Email delivery disabled; dropping message %r to %s", subject, to_address)


class SmtpMailer:
    """STARTTLS SMTP delivery using login credentials."""

    def __init__(
        self,
        *,
        host: str,
        port: int,
        username: str,
        password: str,
        sender: str | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender or username
        self.timeout = timeout

    def send(self, to_address: str, subject: str, body: str) -> None:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to_address
        msg["Subject"] = subject
        msg.set_content(body)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                smtp.starttls()
                smtp.login(self.username, self.password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning("SMTP delivery to %s failed: %s", to_address, exc)
            raise DeliveryError("Failed to deliver email") from exc


def build_mailer(settings: Settings) -> Mailer:
    """Return an SMTP mailer when credentials exist, otherwise a no-op stub."""
    if not settings.email_configured:
        logger.warning("EMAIL_USER or EMAIL_PASS not set; email delivery is disabled")
        return NullMailer()
    return SmtpMailer(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.email_user or "",
        password=settings.email_pass or "",
        sender=settings.email_from,
        timeout=settings.smtp_timeout_seconds,
    )
