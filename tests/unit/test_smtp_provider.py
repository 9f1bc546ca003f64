"""Tests for the custom SMTP sender: host validation, error classification, delivery."""

import smtplib
import socket
from unittest.mock import MagicMock

import pytest

from veer.domain.enums import IntegrationStatus
from veer.domain.exceptions import SendError, ValidationException
from veer.infrastructure.external.email.protocols import OutgoingEmail
from veer.infrastructure.external.email.providers.smtp_provider import (
    SmtpProvider,
    classify_smtp_error,
    validate_from_address,
    validate_smtp_host,
)

MESSAGE = OutgoingEmail(subject="New submission", body_text="Hello", to=["owner@example.com"])


@pytest.mark.parametrize("host", ["smtp.example.com", "smtp-relay.brevo.com", "localhost", " mail.x.io "])
def test_valid_hosts_are_accepted(host: str) -> None:
    assert validate_smtp_host(host) == host.strip()


def test_email_address_as_host_is_rejected() -> None:
    with pytest.raises(ValidationException, match="not an email address") as exc_info:
        validate_smtp_host("user@gmail.com")
    assert exc_info.value.details["field"] == "smtp_host"


@pytest.mark.parametrize("host", ["", "   ", "-smtp.example.com", "smtp..example.com", "smtp_example.com"])
def test_malformed_hosts_are_rejected(host: str) -> None:
    with pytest.raises(ValidationException):
        validate_smtp_host(host)


def test_from_address_must_look_like_email() -> None:
    assert validate_from_address("forms@example.com") == "forms@example.com"
    with pytest.raises(ValidationException, match="From"):
        validate_from_address("forms at example")


def test_classify_authentication_failure_mentions_brevo_dashboard() -> None:
    error = classify_smtp_error(
        smtplib.SMTPAuthenticationError(535, b"5.7.8 Authentication failed"),
        "smtp-relay.brevo.com",
        587,
    )
    assert error.cause == "auth"
    assert "Brevo" in error.message


def test_classify_authentication_failure_generic_host() -> None:
    error = classify_smtp_error(
        smtplib.SMTPAuthenticationError(535, b"bad credentials"), "smtp.example.com", 587
    )
    assert error.message == (
        "SMTP authentication failed. Check your username and password are correct."
    )


def test_classify_dns_failure() -> None:
    error = classify_smtp_error(
        socket.gaierror(-2, "Name or service not known"), "smtp.nowhere.invalid", 587
    )
    assert error.cause == "dns"
    assert "smtp.nowhere.invalid" in error.message


def test_classify_connection_failure() -> None:
    error = classify_smtp_error(ConnectionRefusedError(111, "refused"), "smtp.example.com", 2525)
    assert error.cause == "connection"
    assert 'Cannot connect to SMTP server "smtp.example.com:2525"' in error.message


def test_classify_recipients_refused() -> None:
    error = classify_smtp_error(
        smtplib.SMTPRecipientsRefused({"bad@example.com": (550, b"no such user")}),
        "smtp.example.com",
        587,
    )
    assert error.cause == "rejected"
    assert "bad@example.com" in error.message


def test_classify_other_errors_keep_server_text() -> None:
    error = classify_smtp_error(smtplib.SMTPDataError(554, b"spam"), "smtp.example.com", 587)
    assert error.cause == "generic"
    assert error.message.startswith("SMTP error:")


@pytest.fixture
def provider(cipher) -> SmtpProvider:
    return SmtpProvider(cipher, timeout=5)


async def test_send_decrypts_password_and_delivers(
    provider: SmtpProvider, smtp_record, monkeypatch: pytest.MonkeyPatch
) -> None:
    calls: list[tuple] = []

    def fake_deliver(host, port, user, password, mime, from_address, recipients):
        calls.append((host, port, user, password, from_address, recipients, mime["Subject"]))
        return {}

    monkeypatch.setattr(provider, "_deliver", fake_deliver)
    result = await provider.send(smtp_record(), MESSAGE)

    assert result.delivered
    assert result.accepted == ["owner@example.com"]
    assert result.message_id
    assert calls == [
        ("smtp.example.com", 587, "mailer", "old-password", "a@x.com", ["owner@example.com"], "New submission")
    ]


async def test_refused_recipient_is_a_failure(
    provider: SmtpProvider, smtp_record, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(
        provider,
        "_deliver",
        lambda *args: {"owner@example.com": (550, b"mailbox unavailable")},
    )
    with pytest.raises(SendError, match="rejected by SMTP server: owner@example.com") as exc_info:
        await provider.send(smtp_record(), MESSAGE)
    assert exc_info.value.cause == "rejected"


async def test_smtp_exception_is_classified(
    provider: SmtpProvider, smtp_record, monkeypatch: pytest.MonkeyPatch
) -> None:
    def failing_deliver(*args):
        raise smtplib.SMTPAuthenticationError(535, b"Authentication failed")

    monkeypatch.setattr(provider, "_deliver", failing_deliver)
    with pytest.raises(SendError) as exc_info:
        await provider.send(smtp_record(), MESSAGE)
    assert exc_info.value.cause == "auth"


async def test_incomplete_configuration_fails_before_connecting(
    provider: SmtpProvider, smtp_record
) -> None:
    with pytest.raises(SendError, match="SMTP configuration is incomplete"):
        await provider.send(smtp_record(smtp_password=None), MESSAGE)


async def test_undecryptable_password_fails(provider: SmtpProvider, smtp_record) -> None:
    with pytest.raises(SendError, match="Failed to decrypt SMTP password"):
        await provider.send(smtp_record(smtp_password="x:y:z"), MESSAGE)


async def test_refresh_is_a_no_op(provider: SmtpProvider, smtp_record) -> None:
    assert await provider.refresh(smtp_record(status=IntegrationStatus.INACTIVE)) is True


def test_deliver_upgrades_with_starttls_and_quits(
    provider: SmtpProvider, monkeypatch: pytest.MonkeyPatch
) -> None:
    server = MagicMock()
    server.has_extn.return_value = True
    server.send_message.return_value = {}
    smtp_class = MagicMock(return_value=server)
    monkeypatch.setattr(smtplib, "SMTP", smtp_class)

    refused = provider._deliver(
        "smtp.example.com", 587, "mailer", "pw", MagicMock(), "a@x.com", ["b@x.com"]
    )

    assert refused == {}
    smtp_class.assert_called_once_with("smtp.example.com", 587, timeout=5)
    server.starttls.assert_called_once()
    server.login.assert_called_once_with("mailer", "pw")
    server.quit.assert_called_once()


def test_deliver_uses_implicit_tls_on_port_465(
    provider: SmtpProvider, monkeypatch: pytest.MonkeyPatch
) -> None:
    server = MagicMock()
    server.send_message.return_value = {}
    ssl_class = MagicMock(return_value=server)
    monkeypatch.setattr(smtplib, "SMTP_SSL", ssl_class)

    provider._deliver("smtp.example.com", 465, "mailer", "pw", MagicMock(), "a@x.com", ["b@x.com"])

    ssl_class.assert_called_once_with("smtp.example.com", 465, timeout=5)
    server.starttls.assert_not_called()


async def test_unexpected_delivery_error_becomes_generic_send_error(
    provider: SmtpProvider, smtp_record, monkeypatch: pytest.MonkeyPatch
) -> None:
    def failing_deliver(*args):
        # smtplib encodes AUTH credentials as ASCII.
        "pässwort".encode("ascii")

    monkeypatch.setattr(provider, "_deliver", failing_deliver)
    with pytest.raises(SendError, match="^SMTP error: 'ascii' codec") as exc_info:
        await provider.send(smtp_record(), MESSAGE)
    assert exc_info.value.cause == "generic"
    assert isinstance(exc_info.value.__cause__, UnicodeEncodeError)
