"""Outbound email through a user's integration (used for form notifications and tests)."""

from __future__ import annotations

from veer.application.interfaces.repositories import IIntegrationRepository
from veer.domain.entities.integration import Active, IntegrationLike, state_of
from veer.domain.enums import EmailProvider, IntegrationStatus, IntegrationType
from veer.domain.exceptions import InvariantViolation
from veer.infrastructure.external.email.factory import EmailProviderFactory
from veer.infrastructure.external.email.protocols import DeliveryResult, OutgoingEmail
from veer.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class EmailDispatchService:
    """Route messages to the sender variant of an integration's provider."""

    def __init__(
        self, repo: IIntegrationRepository, factory: EmailProviderFactory
    ) -> None:
        self._repo = repo
        self._factory = factory

    async def send_email(
        self, integration: IntegrationLike, message: OutgoingEmail
    ) -> DeliveryResult:
        """Send through the integration's provider. Raises SendError on failure."""
        sender = self._factory.create_provider(EmailProvider(integration.provider))
        return await sender.send(integration, message)

    async def send_test_email(
        self, integration: IntegrationLike, recipient: str
    ) -> DeliveryResult:
        """Send the standard test message. Raises SendError on failure."""
        sender = self._factory.create_provider(EmailProvider(integration.provider))
        return await sender.test(integration, recipient)

    async def send_with_active_provider(
        self, user_id: str, message: OutgoingEmail
    ) -> DeliveryResult:
        """Send through the user's ACTIVE email integration.

        Raises:
            InvariantViolation: The user has no active email integration.
            SendError: Delivery failed.
        """
        active = await self._repo.list_for_user(
            user_id, IntegrationType.EMAIL, status=IntegrationStatus.ACTIVE
        )
        if not active:
            raise InvariantViolation(
                "No active email integration. Connect and enable an email provider first."
            )
        if len(active) > 1:
            # Only reachable through concurrent enables; newest activation wins.
            logger.error(
                "User %s has %d active email integrations; using the most recent",
                user_id,
                len(active),
            )
            active.sort(key=lambda r: r.updated_at, reverse=True)
        record = active[0]
        if not isinstance(state_of(record), Active):
            raise InvariantViolation(
                "Active email integration has no stored credentials",
                provider=EmailProvider(record.provider).slug,
            )
        return await self.send_email(record, message)
