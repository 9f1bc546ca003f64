"""OAuth access-token lifecycle: decrypt, check expiry, refresh, persist.

Refreshes are not de-duplicated: two concurrent calls for the same
integration may both refresh, and the last write wins. Both tokens are
valid, so the only cost is an extra provider round-trip.
"""

from __future__ import annotations

from collections.abc import Callable

import httpx

from veer.application.interfaces.repositories import IIntegrationRepository, IntegrationRecord
from veer.application.interfaces.services import ICacheInvalidator, NullCacheInvalidator
from veer.core.constants import TOKEN_REFRESH_BUFFER
from veer.domain.enums import EmailProvider, IntegrationStatus, IntegrationType
from veer.domain.exceptions import (
    DecryptionError,
    OAuthRefreshError,
    VeerException,
)
from veer.domain.value_objects.token_bundle import TokenBundle
from veer.infrastructure.cache.keys import user_integrations_tag
from veer.infrastructure.external.email.encryption import CredentialCipher
from veer.infrastructure.external.email.oauth_drivers import OAuthDriver, OAuthDriverRegistry
from veer.shared.telemetry.logging import get_logger
from veer.shared.telemetry.tracing import traced
from veer.shared.utils.datetime import expires_within

logger = get_logger(__name__)

REVOKED_MESSAGE = "Access was revoked or expired. Please reconnect your account."


class TokenService:
    """Returns a usable access token for a user's OAuth email integration."""

    def __init__(
        self,
        repo: IIntegrationRepository,
        cipher: CredentialCipher | None = None,
        *,
        cache: ICacheInvalidator | None = None,
        driver_factory: Callable[[EmailProvider], OAuthDriver] | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._repo = repo
        self._cipher = cipher
        self._cache = cache or NullCacheInvalidator()
        self._driver_factory = driver_factory or (
            lambda provider: OAuthDriverRegistry.get_driver(provider, http_client=http_client)
        )

    @property
    def cipher(self) -> CredentialCipher:
        if self._cipher is None:
            self._cipher = CredentialCipher()
        return self._cipher

    @traced("token.get_valid_access_token")
    async def get_valid_access_token(
        self, user_id: str, provider: EmailProvider
    ) -> str | None:
        """Return a valid access token, refreshing it when it expires within the buffer.

        Returns None when there is no OAuth record, the stored bundle cannot be
        decrypted, or the refresh fails. Never raises for those cases.
        """
        record = await self._repo.get_by_key(user_id, IntegrationType.EMAIL, provider)
        if record is None or not record.oauth_token:
            return None

        try:
            bundle = TokenBundle.from_dict(self.cipher.decrypt_json(record.oauth_token))
        except (DecryptionError, ValueError):
            logger.warning(
                "Stored %s token for user %s could not be decrypted; reconnect required",
                provider.slug,
                user_id,
            )
            return None

        expires_at = bundle.expires_at or record.oauth_token_expires_at
        if not expires_within(expires_at, TOKEN_REFRESH_BUFFER):
            return bundle.access_token

        logger.info("Refreshing %s access token for user %s", provider.slug, user_id)
        return await self._refresh(record, provider, bundle)

    def _stored_refresh_token(self, record: IntegrationRecord, bundle: TokenBundle) -> str | None:
        if record.oauth_refresh_token:
            try:
                return self.cipher.decrypt(record.oauth_refresh_token)
            except DecryptionError:
                logger.warning("Refresh token envelope unreadable; using token bundle copy")
        return bundle.refresh_token

    async def _refresh(
        self, record: IntegrationRecord, provider: EmailProvider, bundle: TokenBundle
    ) -> str | None:
        refresh_token = self._stored_refresh_token(record, bundle)
        if not refresh_token:
            logger.warning(
                "No refresh token stored for %s (user %s)", provider.slug, record.user_id
            )
            return None

        try:
            driver = self._driver_factory(provider)
            refreshed = await driver.refresh_token(refresh_token)
        except OAuthRefreshError:
            await self._mark_expired(record, provider)
            return None
        except VeerException as e:
            logger.warning(
                "Token refresh for %s (user %s) failed: %s",
                provider.slug,
                record.user_id,
                e.message,
            )
            return None

        new_bundle = TokenBundle.issued(
            refreshed.access_token,
            bundle.refresh_token or refresh_token,
            refreshed.expires_in_seconds,
        )
        record.oauth_token = self.cipher.encrypt(new_bundle.to_json())
        record.oauth_token_expires_at = new_bundle.expires_at
        await self._repo.update(record)
        return new_bundle.access_token

    async def _mark_expired(self, record: IntegrationRecord, provider: EmailProvider) -> None:
        """Provider rejected the refresh token: the user has to reconnect."""
        logger.warning(
            "%s refresh token rejected for user %s; marking integration expired",
            provider.slug,
            record.user_id,
        )
        record.status = IntegrationStatus.EXPIRED
        record.error_message = REVOKED_MESSAGE
        await self._repo.update(record)
        await self._cache.invalidate_tag(user_integrations_tag(record.user_id))
