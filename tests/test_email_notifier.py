"""Tests for the SMTP mail transport."""

import smtplib
from unittest.mock import patch

import pytest

from content_checkup.config import SMTPConfig
from content_checkup.email_notifier import SMTPMailer


def _config(port=587, username="mailer@example.com", password="secret", use_tls=True):
    return SMTPConfig(
        host="smtp.example.com",
        port=port,
        username=username,
        password=password,
        use_tls=use_tls,
        from_email="site@example.com",
    )


@patch("content_checkup.email_notifier.smtplib.SMTP")
def test_send_over_starttls(mock_smtp):
    server = mock_smtp.return_value

    assert SMTPMailer(_config()).send("admin@example.com", "Reminder", "<p>Body</p>") is True

    mock_smtp.assert_called_once_with("smtp.example.com", 587, timeout=30)
    server.starttls.assert_called_once()
    server.login.assert_called_once_with("mailer@example.com", "secret")
    msg = server.send_message.call_args[0][0]
    assert msg["To"] == "admin@example.com"
    assert msg["From"] == "site@example.com"
    assert msg["Subject"] == "Reminder"
    assert msg.get_payload()[0].get_content_subtype() == "html"
    server.quit.assert_called_once()


@patch("content_checkup.email_notifier.smtplib.SMTP")
@patch("content_checkup.email_notifier.smtplib.SMTP_SSL")
def test_port_465_uses_implicit_ssl(mock_ssl, mock_smtp):
    server = mock_ssl.return_value

    assert SMTPMailer(_config(port=465)).send("admin@example.com", "Reminder", "Body") is True

    mock_ssl.assert_called_once_with("smtp.example.com", 465, timeout=30)
    mock_smtp.assert_not_called()
    server.starttls.assert_not_called()


@patch("content_checkup.email_notifier.smtplib.SMTP")
def test_login_skipped_without_credentials(mock_smtp):
    server = mock_smtp.return_value

    SMTPMailer(_config(username=None, password=None, use_tls=False)).send("a@example.com", "s", "b")

    server.starttls.assert_not_called()
    server.login.assert_not_called()
    server.send_message.assert_called_once()


@pytest.mark.parametrize("failure", [
    smtplib.SMTPAuthenticationError(535, b"bad credentials"),
    smtplib.SMTPRecipientsRefused({"admin@example.com": (550, b"no such user")}),
])
@patch("content_checkup.email_notifier.smtplib.SMTP")
def test_send_failure_returns_false(mock_smtp, failure):
    server = mock_smtp.return_value
    server.login.side_effect = failure

    assert SMTPMailer(_config()).send("admin@example.com", "Reminder", "Body") is False
    server.quit.assert_called_once()


@patch("content_checkup.email_notifier.smtplib.SMTP")
def test_connection_failure_returns_false(mock_smtp):
    mock_smtp.side_effect = ConnectionRefusedError("refused")

    assert SMTPMailer(_config()).send("admin@example.com", "Reminder", "Body") is False


@patch("content_checkup.email_notifier.smtplib.SMTP")
def test_starttls_failure_closes_connection(mock_smtp):
    server = mock_smtp.return_value
    server.starttls.side_effect = smtplib.SMTPNotSupportedError("STARTTLS extension not supported")

    assert SMTPMailer(_config()).send("admin@example.com", "Reminder", "Body") is False
    server.close.assert_called_once()
    server.send_message.assert_not_called()
