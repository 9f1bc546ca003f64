"""Email sender factory: Gmail, Outlook, or custom SMTP sender by provider."""

from typing import ClassVar

import httpx

from veer.core.config import get_settings
from veer.domain.enums import EmailProvider
from veer.infrastructure.external.email.encryption import CredentialCipher
from veer.infrastructure.external.email.protocols import IAccessTokenSource, IEmailSender
from veer.infrastructure.external.email.providers.gmail_provider import GmailProvider
from veer.infrastructure.external.email.providers.oauth_base import OAuthEmailProvider
from veer.infrastructure.external.email.providers.outlook_provider import OutlookProvider
from veer.infrastructure.external.email.providers.smtp_provider import SmtpProvider
from veer.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class EmailProviderFactory:
    """Builds the sender variant for a provider with its collaborators injected."""

    _oauth_providers: ClassVar[dict[EmailProvider, type[OAuthEmailProvider]]] = {
        EmailProvider.GMAIL: GmailProvider,
        EmailProvider.OUTLOOK: OutlookProvider,
    }

    def __init__(
        self,
        token_source: IAccessTokenSource,
        cipher: CredentialCipher | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Create a factory.

        Args:
            token_source: Supplies valid access tokens to OAuth senders.
            cipher: Decrypts SMTP passwords (built from settings on first use when omitted).
            http_client: Optional shared httpx.AsyncClient for provider API calls.
        """
        self._token_source = token_source
        self._cipher = cipher
        self._http_client = http_client

    def create_provider(self, provider: EmailProvider | str) -> IEmailSender:
        """Return the sender for provider.

        Raises:
            ValueError: If the provider is not supported.
        """
        if not isinstance(provider, EmailProvider):
            provider = EmailProvider.parse(provider)
        settings = get_settings()
        if provider is EmailProvider.CUSTOM:
            return SmtpProvider(self._cipher, timeout=settings.smtp_timeout_seconds)
        provider_class = self._oauth_providers.get(provider)
        if provider_class is None:
            raise ValueError(f"Unsupported provider: {provider.value}")
        logger.debug("Creating %s", provider_class.__name__)
        return provider_class(
            self._token_source,
            http_client=self._http_client,
            timeout=settings.http_timeout_seconds,
        )
