"""Custom SMTP sender (smtplib run in a worker thread)."""

from __future__ import annotations

import asyncio
import re
import smtplib
import socket
from email.message import EmailMessage
from email.utils import make_msgid

from veer.domain.entities.integration import IntegrationLike
from veer.domain.enums import EmailProvider
from veer.domain.exceptions import DecryptionError, SendError, ValidationException
from veer.infrastructure.external.email.encryption import CredentialCipher
from veer.infrastructure.external.email.protocols import (
    DeliveryResult,
    OutgoingEmail,
    build_test_email,
)
from veer.shared.telemetry.logging import get_logger
from veer.shared.telemetry.tracing import add_span_attributes, traced
from veer.shared.utils.validation import is_valid_hostname

logger = get_logger(__name__)

SMTP_SSL_PORT = 465

FROM_ADDRESS_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

_DNS_MARKERS = ("EBADNAME", "ENOTFOUND", "EDNS")
_CONNECTION_MARKERS = ("ETIMEDOUT", "ECONNREFUSED")


def validate_smtp_host(host: str | None) -> str:
    """Return the stripped host or raise ValidationException."""
    value = (host or "").strip()
    if not value:
        raise ValidationException("SMTP host is required", field="smtp_host")
    if "@" in value:
        raise ValidationException(
            f'Invalid SMTP host: "{value}". The host should be a domain name '
            "(e.g., smtp-relay.brevo.com), not an email address.",
            field="smtp_host",
        )
    if not is_valid_hostname(value):
        raise ValidationException(
            f'Invalid SMTP host: "{value}". Please enter a valid hostname.',
            field="smtp_host",
        )
    return value


def validate_from_address(address: str | None) -> str:
    value = (address or "").strip()
    if not FROM_ADDRESS_RE.fullmatch(value):
        raise ValidationException(
            f'Invalid "From" email address: "{value}". '
            "Please set a valid email address in SMTP settings.",
            field="smtp_from_email",
        )
    return value


def _is_brevo(host: str) -> bool:
    lowered = host.lower()
    return "brevo" in lowered or "sendinblue" in lowered


def classify_smtp_error(exc: BaseException, host: str, port: int) -> SendError:
    """Translate an SMTP/socket failure into a SendError with a user-facing message."""
    text = str(exc)
    if isinstance(exc, smtplib.SMTPAuthenticationError) or "EAUTH" in text:
        message = (
            "SMTP authentication failed. Check your Brevo SMTP credentials in "
            "Dashboard > SMTP & API > SMTP"
            if _is_brevo(host)
            else "SMTP authentication failed. Check your username and password are correct."
        )
        return SendError(message, cause="auth")
    if isinstance(exc, smtplib.SMTPRecipientsRefused):
        refused = ", ".join(exc.recipients)
        return SendError(f"Email was rejected by SMTP server: {refused}", cause="rejected")
    if isinstance(exc, socket.gaierror) or any(m in text for m in _DNS_MARKERS):
        return SendError(
            f'Invalid SMTP host: "{host}". Check the host is correct and not an email address.',
            cause="dns",
        )
    if isinstance(
        exc,
        (
            TimeoutError,
            ConnectionRefusedError,
            smtplib.SMTPConnectError,
            smtplib.SMTPServerDisconnected,
        ),
    ) or any(m in text for m in _CONNECTION_MARKERS):
        return SendError(
            f'Cannot connect to SMTP server "{host}:{port}". '
            "Check host, port, and firewall settings.",
            cause="connection",
        )
    return SendError(f"SMTP error: {text or type(exc).__name__}", cause="generic")


def build_smtp_message(message: OutgoingEmail, from_address: str) -> EmailMessage:
    mime = EmailMessage()
    mime["From"] = from_address
    mime["To"] = ", ".join(message.to)
    mime["Subject"] = message.subject
    mime["Message-ID"] = make_msgid(domain=from_address.rsplit("@", 1)[-1])
    mime.set_content(message.body_text)
    if message.body_html:
        mime.add_alternative(message.body_html, subtype="html")
    return mime


class SmtpProvider:
    """Delivers mail through the user's own SMTP server."""

    provider = EmailProvider.CUSTOM

    def __init__(
        self, cipher: CredentialCipher | None = None, *, timeout: float = 10.0
    ) -> None:
        self._cipher = cipher
        self._timeout = timeout

    @property
    def cipher(self) -> CredentialCipher:
        if self._cipher is None:
            self._cipher = CredentialCipher()
        return self._cipher

    async def refresh(self, integration: IntegrationLike) -> bool:
        """SMTP credentials do not expire."""
        return True

    async def test(
        self, integration: IntegrationLike, recipient: str
    ) -> DeliveryResult:
        from_address = integration.smtp_from_email or integration.email_address or recipient
        return await self.send(
            integration, build_test_email(self.provider, recipient, from_address)
        )

    @traced("email.send")
    async def send(
        self, integration: IntegrationLike, message: OutgoingEmail
    ) -> DeliveryResult:
        if not message.to:
            raise ValidationException("At least one recipient is required", field="to")
        if not (
            integration.smtp_host
            and integration.smtp_port
            and integration.smtp_user
            and integration.smtp_password
        ):
            raise SendError("SMTP configuration is incomplete", cause="credentials")

        host = validate_smtp_host(integration.smtp_host)
        port = int(integration.smtp_port)
        from_address = validate_from_address(
            message.from_address
            or integration.smtp_from_email
            or integration.email_address
            or message.to[0]
        )
        try:
            password = self.cipher.decrypt(integration.smtp_password)
        except DecryptionError as e:
            logger.error("Could not decrypt SMTP password for user %s", integration.user_id)
            raise SendError("Failed to decrypt SMTP password", cause="credentials") from e

        add_span_attributes(email_provider=self.provider.slug, smtp_port=port)
        try:
            mime = build_smtp_message(message, from_address)
            refused = await asyncio.to_thread(
                self._deliver,
                host,
                port,
                integration.smtp_user,
                password,
                mime,
                from_address,
                message.to,
            )
        except Exception as e:
            error = classify_smtp_error(e, host, port)
            logger.warning(
                "SMTP send failed for user %s via %s:%d (cause=%s)",
                integration.user_id,
                host,
                port,
                error.cause,
            )
            raise error from e

        rejected = [addr for addr in message.to if addr in refused]
        if rejected:
            logger.warning("SMTP server refused %d recipient(s)", len(rejected))
            raise SendError(
                f"Email was rejected by SMTP server: {', '.join(rejected)}",
                cause="rejected",
            )
        logger.info("Email sent via SMTP %s:%d for user %s", host, port, integration.user_id)
        return DeliveryResult(
            delivered=True,
            message_id=mime["Message-ID"],
            accepted=[addr for addr in message.to if addr not in refused],
        )

    def _deliver(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        mime: EmailMessage,
        from_address: str,
        recipients: list[str],
    ) -> dict[str, tuple[int, bytes]]:
        """Blocking SMTP session. Returns the refused-recipients map."""
        if port == SMTP_SSL_PORT:
            server: smtplib.SMTP = smtplib.SMTP_SSL(host, port, timeout=self._timeout)
        else:
            server = smtplib.SMTP(host, port, timeout=self._timeout)
        try:
            server.ehlo()
            if port != SMTP_SSL_PORT and server.has_extn("starttls"):
                server.starttls()
                server.ehlo()
            server.login(user, password)
            return server.send_message(mime, from_addr=from_address, to_addrs=recipients)
        finally:
            try:
                server.quit()
            except (smtplib.SMTPException, OSError):
                server.close()
