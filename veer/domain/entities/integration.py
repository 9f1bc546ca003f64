"""Integration state as an explicit tagged union.

An email integration is Unconfigured (no usable credentials), Connected
(credentials stored, not the active sender, possibly with the last error) or
Active (credentials stored, used for outbound mail). Active cannot be built
without credentials, so "ACTIVE with nothing to send with" is not
representable.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from veer.domain.enums import EmailProvider, IntegrationStatus
from veer.domain.exceptions import InvariantViolation


@dataclass(frozen=True)
class OAuthCredentials:
    """Encrypted OAuth token envelopes for Gmail/Outlook."""

    token_envelope: str
    refresh_envelope: str | None
    expires_at: datetime | None


@dataclass(frozen=True)
class SmtpCredentials:
    """Custom SMTP server settings; the password stays encrypted."""

    host: str
    port: int
    user: str
    password_envelope: str
    from_email: str | None


Credentials = OAuthCredentials | SmtpCredentials


@dataclass(frozen=True)
class Unconfigured:
    """No record, or a record without usable credentials."""


@dataclass(frozen=True)
class Connected:
    """Credentials stored; not the active sender."""

    credentials: Credentials
    last_error: str | None = None
    expired: bool = False


@dataclass(frozen=True)
class Active:
    """Credentials stored and used for outbound mail."""

    credentials: Credentials

    def __post_init__(self) -> None:
        if self.credentials is None:
            raise InvariantViolation("An active integration requires stored credentials")


IntegrationState = Unconfigured | Connected | Active


class IntegrationLike(Protocol):
    """Attributes of a persisted integration record needed to derive its state."""

    user_id: str
    provider: Any
    status: Any
    email_address: str | None
    error_message: str | None
    oauth_token: str | None
    oauth_refresh_token: str | None
    oauth_token_expires_at: datetime | None
    smtp_host: str | None
    smtp_port: int | None
    smtp_user: str | None
    smtp_password: str | None
    smtp_from_email: str | None


def credentials_of(record: IntegrationLike) -> Credentials | None:
    """Return the stored credentials for the record's provider, or None if incomplete."""
    provider = EmailProvider(record.provider)
    if provider.is_oauth:
        if not record.oauth_token:
            return None
        return OAuthCredentials(
            token_envelope=record.oauth_token,
            refresh_envelope=record.oauth_refresh_token,
            expires_at=record.oauth_token_expires_at,
        )
    if not (record.smtp_host and record.smtp_port and record.smtp_user and record.smtp_password):
        return None
    return SmtpCredentials(
        host=record.smtp_host,
        port=record.smtp_port,
        user=record.smtp_user,
        password_envelope=record.smtp_password,
        from_email=record.smtp_from_email,
    )


def state_of(record: IntegrationLike | None) -> IntegrationState:
    """Derive the integration state from a persisted record (None = no record)."""
    if record is None:
        return Unconfigured()
    credentials = credentials_of(record)
    if credentials is None:
        return Unconfigured()
    status = IntegrationStatus(record.status)
    if status is IntegrationStatus.ACTIVE:
        return Active(credentials=credentials)
    return Connected(
        credentials=credentials,
        last_error=record.error_message,
        expired=status is IntegrationStatus.EXPIRED,
    )
