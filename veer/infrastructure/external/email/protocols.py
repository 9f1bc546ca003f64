"""Email sender protocols and data structures (provider-agnostic)."""

from dataclasses import dataclass, field
from typing import Protocol

from veer.core.constants import TEST_EMAIL_SUBJECT
from veer.domain.entities.integration import IntegrationLike
from veer.domain.enums import EmailProvider
from veer.shared.utils.datetime import utc_now


@dataclass(frozen=True)
class OutgoingEmail:
    """A message to deliver through a user's email integration."""

    subject: str
    body_text: str
    to: list[str]
    body_html: str | None = None
    # None: the sender picks the integration's own address.
    from_address: str | None = None


@dataclass(frozen=True)
class DeliveryResult:
    """Successful delivery. Failures are raised as SendError, never returned."""

    delivered: bool
    message_id: str | None = None
    accepted: list[str] = field(default_factory=list)


class IAccessTokenSource(Protocol):
    """Supplies a currently valid OAuth access token (refreshing when needed)."""

    async def get_valid_access_token(
        self, user_id: str, provider: EmailProvider
    ) -> str | None: ...


class IEmailSender(Protocol):
    """Outbound email capability of one provider variant."""

    provider: EmailProvider

    async def send(
        self, integration: IntegrationLike, message: OutgoingEmail
    ) -> DeliveryResult:
        """Deliver message using the integration's credentials.

        Raises:
            SendError: Delivery failed; cause classifies the failure.
        """
        ...

    async def test(
        self, integration: IntegrationLike, recipient: str
    ) -> DeliveryResult:
        """Send the standard test email to recipient."""
        ...

    async def refresh(self, integration: IntegrationLike) -> bool:
        """Make sure credentials are usable; False when they are not (no-op for SMTP)."""
        ...


def text_to_html(text: str) -> str:
    """Minimal HTML rendition of a plain-text body."""
    body = text.replace("\n", "<br>")
    return f"<html><body><p>{body}</p></body></html>"


def build_test_email(
    provider: EmailProvider, recipient: str, from_address: str | None = None
) -> OutgoingEmail:
    """The standard connection-test message for a provider."""
    sent_at = utc_now().strftime("%Y-%m-%d %H:%M:%S UTC")
    body = (
        "This is a test email sent from your Veer account to verify that your "
        f"{provider.slug} integration is working correctly.\n\n"
        "If you received this email, your email configuration is set up successfully!\n\n"
        f"Sent at: {sent_at}"
    )
    return OutgoingEmail(
        subject=TEST_EMAIL_SUBJECT,
        body_text=body,
        body_html=text_to_html(body),
        to=[recipient],
        from_address=from_address,
    )
