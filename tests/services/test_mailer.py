# tests/services/test_mailer.py
"""Tests for outbound email delivery."""

from __future__ import annotations

import smtplib

import pytest

from kocmoc.core.errors import DeliveryError
from kocmoc.core.settings import Settings
from kocmoc.services import NullMailer, SmtpMailer, build_mailer


def test_build_mailer_without_credentials_is_null() -> None:
    settings = Settings(SECRET_KEY="k", EMAIL_USER=None, EMAIL_PASS=None)  # type: ignore[call-arg]

    assert isinstance(build_mailer(settings), NullMailer)


def test_build_mailer_with_credentials() -> None:
    settings = Settings(  # type: ignore[call-arg]
        SECRET_KEY="k",
        EMAIL_USER="bot@example.com",
        EMAIL_PASS="app-password",
        SMTP_HOST="smtp.example.com",
        SMTP_PORT=2525,
    )

    mailer = build_mailer(settings)

    assert isinstance(mailer, SmtpMailer)
    assert mailer.sender == "bot@example.com"
    assert (mailer.host, mailer.port) == ("smtp.example.com", 2525)


def test_smtp_mailer_sends_with_starttls(mocker) -> None:
    smtp_cls = mocker.patch("kocmoc.services.mailer.smtplib.SMTP")
    smtp = smtp_cls.return_value.__enter__.return_value
    mailer = SmtpMailer(host="smtp.example.com", port=587, username="bot@example.com", password="pw")

    mailer.send("alice@example.com", "Subject", "Body")

    smtp_cls.assert_called_once_with("smtp.example.com", 587, timeout=10.0)
    smtp.starttls.assert_called_once()
    smtp.login.assert_called_once_with("bot@example.com", "pw")
    sent = smtp.send_message.call_args.args[0]
    assert sent["To"] == "alice@example.com"
    assert sent["Subject"] == "Subject"


def test_smtp_failure_becomes_delivery_error(mocker) -> None:
    smtp_cls = mocker.patch("kocmoc.services.mailer.smtplib.SMTP")
    smtp_cls.return_value.__enter__.return_value.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad")
    mailer = SmtpMailer(host="smtp.example.com", port=587, username="bot@example.com", password="pw")

    with pytest.raises(DeliveryError):
        mailer.send("alice@example.com", "Subject", "Body")


def test_null_mailer_delivers_nothing(caplog: pytest.LogCaptureFixture) -> None:
    NullMailer().send("alice@example.com", "Subject", "Body")

    assert "Email delivery disabled" in caplog.text
