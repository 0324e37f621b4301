"""
Tests for reset code email delivery.
"""
import smtplib
from unittest.mock import MagicMock

import pytest

from chirotrack.config import Settings
from chirotrack.core import notifier as notifier_module
from chirotrack.core.notifier import EmailNotifier


@pytest.fixture
def mail_settings():
    return Settings(
        secret_key="x",
        mail_server="smtp.example.com",
        mail_username="mailer",
        mail_password="app-password",
        mail_from="no-reply@chirotrack.example",
        mail_retry_delay=0,
        _env_file=None,
    )


@pytest.fixture
def smtp(monkeypatch):
    server = MagicMock()
    factory = MagicMock()
    factory.return_value.__enter__.return_value = server
    monkeypatch.setattr(notifier_module.smtplib, "SMTP", factory)
    monkeypatch.setattr(notifier_module.time, "sleep", lambda seconds: None)
    return factory, server


def test_deliver_sends_code(mail_settings, smtp):
    factory, server = smtp

    result = EmailNotifier(mail_settings).deliver("jane@example.com", "48213")

    assert result.delivered
    factory.assert_called_once_with("smtp.example.com", 587, timeout=30)
    server.login.assert_called_once_with("mailer", "app-password")
    message = server.send_message.call_args[0][0]
    assert message["To"] == "jane@example.com"
    assert "48213" in message.get_payload()[0].get_payload()


def test_deliver_retries_transient_errors(mail_settings, smtp):
    factory, server = smtp
    server.send_message.side_effect = [smtplib.SMTPServerDisconnected("gone"), None]

    result = EmailNotifier(mail_settings).deliver("jane@example.com", "48213")

    assert result.delivered
    assert factory.call_count == 2


def test_deliver_does_not_retry_bad_credentials(mail_settings, smtp):
    factory, server = smtp
    server.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")

    result = EmailNotifier(mail_settings).deliver("jane@example.com", "48213")

    assert not result.delivered
    assert factory.call_count == 1


def test_deliver_gives_up_after_max_retries(mail_settings, smtp):
    factory, server = smtp
    server.send_message.side_effect = smtplib.SMTPServerDisconnected("gone")

    result = EmailNotifier(mail_settings).deliver("jane@example.com", "48213")

    assert not result.delivered
    assert factory.call_count == 3


def test_unconfigured_notifier_reports_failure():
    result = EmailNotifier(Settings(secret_key="x", _env_file=None)).deliver("jane@example.com", "48213")

    assert not result.delivered
    assert result.error == "Email configuration is incomplete"
