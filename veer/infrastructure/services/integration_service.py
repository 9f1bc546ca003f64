"""Email integration lifecycle: connect, test, enable, disable, disconnect.

Every path that makes a provider ACTIVE goes through activate_provider, which
deactivates the user's other email integrations first, so at most one is
ACTIVE after any successful operation. Connecting always persists the
credentials (as INACTIVE) before the test send; a failed test leaves the
record connected with its error message instead of losing the credentials.

Operations return OperationResult; domain errors are translated at this edge.
Database errors propagate.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx

from veer.application.dtos.integration import (
    EmailIntegrationsView,
    OperationResult,
    Principal,
    ProviderView,
    SmtpSettings,
)
from veer.application.interfaces.repositories import IIntegrationRepository, IntegrationRecord
from veer.core.config import get_settings
from veer.domain.entities.integration import (
    Active,
    Connected,
    Unconfigured,
    credentials_of,
    state_of,
)
from veer.domain.enums import EmailProvider, IntegrationStatus, IntegrationType
from veer.domain.exceptions import (
    ConfigurationError,
    InvariantViolation,
    ValidationException,
    VeerException,
)
from veer.domain.value_objects.token_bundle import TokenBundle
from veer.infrastructure.cache.cache_protocol import CacheProtocol
from veer.infrastructure.cache.keys import email_integrations_key, user_integrations_tag
from veer.infrastructure.external.email.encryption import CredentialCipher
from veer.infrastructure.external.email.oauth_drivers import OAuthDriver, OAuthDriverRegistry
from veer.infrastructure.external.email.oauth_state import states_match
from veer.infrastructure.external.email.providers.smtp_provider import (
    validate_from_address,
    validate_smtp_host,
)
from veer.infrastructure.services.email_dispatch_service import EmailDispatchService
from veer.shared.telemetry.logging import get_logger
from veer.shared.utils.datetime import utc_now
from veer.shared.utils.generators import generate_state_token

logger = get_logger(__name__)

GENERIC_CONFIGURATION_ERROR = (
    "Email integrations are not configured correctly. Please contact support."
)
ENCRYPTION_FAILED_MESSAGE = (
    "Failed to encrypt password. Please check ENCRYPTION_KEY is set."
)


def validate_smtp_settings(settings: SmtpSettings) -> list[dict[str, Any]]:
    """Return field-level issues for an SMTP form; empty when it is valid."""
    issues: list[dict[str, Any]] = []
    try:
        validate_smtp_host(settings.host)
    except ValidationException:
        issues.append(
            {
                "field": "smtp_host",
                "message": (
                    "SMTP host should be a domain name (e.g., smtp.example.com), not an "
                    "email address. Did you enter your username in the host field?"
                    if "@" in (settings.host or "")
                    else "SMTP host is required and must be a valid hostname"
                ),
            }
        )
    if not 1 <= settings.port <= 65535:
        issues.append({"field": "smtp_port", "message": "Port must be between 1 and 65535"})
    if not settings.user:
        issues.append({"field": "smtp_user", "message": "SMTP username is required"})
    if not settings.password:
        issues.append({"field": "smtp_password", "message": "SMTP password is required"})
    try:
        validate_from_address(settings.from_email)
    except ValidationException:
        issues.append({"field": "smtp_from_email", "message": "Invalid email address"})
    return issues


class IntegrationService:
    """Orchestrates the email integration lifecycle for the authenticated user."""

    def __init__(
        self,
        repo: IIntegrationRepository,
        dispatcher: EmailDispatchService,
        cipher: CredentialCipher | None = None,
        *,
        cache: CacheProtocol | None = None,
        driver_factory: Callable[[EmailProvider], OAuthDriver] | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Create the service.

        Args:
            repo: Integration record store (request-scoped session).
            dispatcher: Sends test messages through the record's provider.
            cipher: Seals credentials (built from settings on first use when omitted).
            cache: Optional cache for the integration listing and invalidation.
            driver_factory: Builds the OAuth driver for a provider (defaults to the registry).
            http_client: Shared httpx client handed to default drivers.
        """
        self._repo = repo
        self._dispatcher = dispatcher
        self._cipher = cipher
        self._cache = cache
        self._driver_factory = driver_factory or (
            lambda provider: OAuthDriverRegistry.get_driver(provider, http_client=http_client)
        )

    @property
    def cipher(self) -> CredentialCipher:
        if self._cipher is None:
            self._cipher = CredentialCipher()
        return self._cipher

    # ---- reads ----

    async def list_email_integrations(self, principal: Principal) -> EmailIntegrationsView:
        """Per-provider connection summary for the user (cached; never includes secrets)."""
        key = email_integrations_key(principal.user_id)
        if self._cache is not None:
            cached = await self._cache.get(key)
            if cached is not None:
                return EmailIntegrationsView.from_dict(cached)

        records = await self._repo.list_for_user(principal.user_id, IntegrationType.EMAIL)
        by_provider = {EmailProvider(r.provider): r for r in records}
        providers: dict[str, ProviderView] = {}
        active_provider: str | None = None
        for provider in EmailProvider:
            record = by_provider.get(provider)
            view = self._provider_view(provider, record)
            providers[provider.slug] = view
            if view.is_enabled and active_provider is None:
                active_provider = provider.slug

        listing = EmailIntegrationsView(providers=providers, active_provider=active_provider)
        if self._cache is not None:
            await self._cache.set(
                key, listing.to_dict(), ttl=get_settings().cache_ttl_integrations
            )
        return listing

    @staticmethod
    def _provider_view(
        provider: EmailProvider, record: IntegrationRecord | None
    ) -> ProviderView:
        if record is None:
            return ProviderView(provider=provider.slug)
        state = state_of(record)
        smtp = provider is EmailProvider.CUSTOM
        return ProviderView(
            provider=provider.slug,
            is_connected=not isinstance(state, Unconfigured),
            is_enabled=isinstance(state, Active),
            status=IntegrationStatus(record.status).value,
            email_address=record.email_address,
            connected_at=record.connected_at.isoformat() if record.connected_at else None,
            error_message=record.error_message,
            smtp_host=record.smtp_host if smtp else None,
            smtp_port=record.smtp_port if smtp else None,
            smtp_user=record.smtp_user if smtp else None,
            smtp_from_email=record.smtp_from_email if smtp else None,
        )

    # ---- activation ----

    async def activate_provider(self, user_id: str, provider: EmailProvider) -> IntegrationRecord:
        """Make provider the user's only ACTIVE email integration.

        Idempotent. Other ACTIVE email integrations become INACTIVE first.

        Raises:
            InvariantViolation: No record, or the record has no stored credentials.
        """
        record = await self._repo.get_by_key(user_id, IntegrationType.EMAIL, provider)
        if record is None:
            raise InvariantViolation(
                f"Please connect {provider.slug} first", provider=provider.slug
            )
        Active(credentials=credentials_of(record))

        deactivated = await self._repo.update_many(
            user_id,
            IntegrationType.EMAIL,
            {"status": IntegrationStatus.INACTIVE},
            status=IntegrationStatus.ACTIVE,
            exclude_provider=provider,
        )
        if deactivated:
            logger.info(
                "Deactivated %d other email integration(s) for user %s", deactivated, user_id
            )
        record.status = IntegrationStatus.ACTIVE
        await self._repo.update(record)
        await self._invalidate(user_id)
        logger.info("Activated %s email integration for user %s", provider.slug, user_id)
        return record

    # ---- OAuth connect ----

    def start_oauth_connect(self, provider_name: str) -> OperationResult:
        """Build the provider authorization URL with a fresh state token.

        data carries the state and the OAuth provider name the state cookie is
        keyed by; the caller stores the state before redirecting.
        """
        try:
            provider = self._parse_oauth_provider(provider_name)
            state = generate_state_token()
            url = self._driver_factory(provider).build_authorization_url(state)
        except VeerException as e:
            return self._failure(e, "start_oauth_connect")
        return OperationResult.ok(
            redirect_url=url, data={"state": state, "oauth_provider": provider.oauth_name}
        )

    async def complete_oauth_connect(
        self,
        principal: Principal | None,
        provider_name: str,
        *,
        code: str | None,
        state: str | None,
        expected_state: str | None,
        error: str | None = None,
        error_description: str | None = None,
    ) -> OperationResult:
        """Finish the OAuth flow: exchange the code, store tokens, test, activate.

        Nothing is written unless the state matches the stored state exactly.
        """
        if error:
            logger.warning("OAuth provider returned error for %s: %s", provider_name, error)
            return OperationResult.fail(error_description or error)
        if not code or not state:
            return OperationResult.fail("Missing authorization code")
        if not states_match(expected_state, state):
            logger.warning("OAuth state mismatch on %s callback", provider_name)
            return OperationResult.fail("Invalid state token")
        if principal is None:
            return OperationResult.fail("Unauthorized")

        try:
            provider = self._parse_oauth_provider(provider_name)
            tokens = await self._driver_factory(provider).exchange_code(code, state)
            bundle = TokenBundle.issued(
                tokens.access_token, tokens.refresh_token, tokens.expires_in_seconds
            )
            values: dict[str, Any] = {
                "status": IntegrationStatus.INACTIVE,
                "email_address": tokens.email,
                "oauth_token": self.cipher.encrypt(bundle.to_json()),
                "oauth_token_expires_at": bundle.expires_at,
                "connected_at": utc_now(),
                "error_message": None,
            }
            if tokens.refresh_token:
                values["oauth_refresh_token"] = self.cipher.encrypt(tokens.refresh_token)
        except VeerException as e:
            return self._failure(e, "complete_oauth_connect")

        record = await self._repo.upsert(
            principal.user_id, IntegrationType.EMAIL, provider, values, values
        )
        await self._invalidate(principal.user_id)
        logger.info(
            "Stored %s tokens for user %s; sending test email", provider.slug, principal.user_id
        )

        test_error = await self._run_test(record, principal.email or tokens.email)
        if test_error:
            await self._record_error(record, test_error, deactivate=True)
            return OperationResult.fail(f"Connection successful but test failed: {test_error}")

        await self.activate_provider(principal.user_id, provider)
        await self._clear_error(record)
        return OperationResult.ok(f"{provider.slug.capitalize()} connected successfully")

    # ---- SMTP ----

    async def connect_smtp(
        self, principal: Principal, settings: SmtpSettings
    ) -> OperationResult:
        """Store custom SMTP settings, send a test email, and activate on success."""
        issues = validate_smtp_settings(settings)
        if issues:
            return OperationResult.fail("Invalid SMTP configuration", details=issues)
        try:
            password_envelope = self.cipher.encrypt(settings.password)
        except ConfigurationError:
            logger.error("Cannot encrypt SMTP password: ENCRYPTION_KEY is not configured")
            return OperationResult.fail(ENCRYPTION_FAILED_MESSAGE)

        smtp_values = {
            "smtp_host": settings.host.strip(),
            "smtp_port": settings.port,
            "smtp_user": settings.user,
            "smtp_password": password_envelope,
            "smtp_from_email": settings.from_email,
        }
        create_values = {
            **smtp_values,
            "status": IntegrationStatus.INACTIVE,
            "email_address": settings.from_email,
            "connected_at": utc_now(),
        }
        update_values = {
            **smtp_values,
            "status": IntegrationStatus.INACTIVE,
            "email_address": settings.from_email,
            "error_message": None,
        }
        record = await self._repo.upsert(
            principal.user_id,
            IntegrationType.EMAIL,
            EmailProvider.CUSTOM,
            create_values,
            update_values,
        )
        await self._invalidate(principal.user_id)

        test_error = await self._run_test(record, principal.email or settings.from_email)
        if test_error:
            await self._record_error(record, test_error, deactivate=True)
            return OperationResult.fail(f"SMTP test failed: {test_error}")

        await self.activate_provider(principal.user_id, EmailProvider.CUSTOM)
        record.email_address = settings.from_email
        record.connected_at = utc_now()
        await self._clear_error(record)
        return OperationResult.ok("SMTP connected and tested successfully")

    async def update_smtp(
        self, principal: Principal, settings: SmtpSettings
    ) -> OperationResult:
        """Replace the stored SMTP settings and re-test them.

        The displayed email address only changes once the new settings pass
        the test; a failed test keeps the old address next to the error.
        """
        record = await self._repo.get_by_key(
            principal.user_id, IntegrationType.EMAIL, EmailProvider.CUSTOM
        )
        if record is None:
            return OperationResult.fail("Please connect custom first")
        issues = validate_smtp_settings(settings)
        if issues:
            return OperationResult.fail("Invalid SMTP configuration", details=issues)
        try:
            password_envelope = self.cipher.encrypt(settings.password)
        except ConfigurationError:
            logger.error("Cannot encrypt SMTP password: ENCRYPTION_KEY is not configured")
            return OperationResult.fail(ENCRYPTION_FAILED_MESSAGE)

        record.smtp_host = settings.host.strip()
        record.smtp_port = settings.port
        record.smtp_user = settings.user
        record.smtp_password = password_envelope
        record.smtp_from_email = settings.from_email
        await self._repo.update(record)
        await self._invalidate(principal.user_id)

        test_error = await self._run_test(record, principal.email or settings.from_email)
        if test_error:
            await self._record_error(record, test_error, deactivate=True)
            return OperationResult.fail(f"SMTP test failed: {test_error}")

        record.email_address = settings.from_email
        await self._clear_error(record)
        return OperationResult.ok("SMTP settings updated and tested successfully")

    # ---- test / toggle / disconnect ----

    async def test_integration(
        self, principal: Principal, provider_name: str
    ) -> OperationResult:
        """Send a test email through the provider to the user's own address."""
        try:
            provider = EmailProvider.parse(provider_name)
        except ValueError as e:
            return OperationResult.fail(str(e))
        record = await self._repo.get_by_key(principal.user_id, IntegrationType.EMAIL, provider)
        if record is None:
            return OperationResult.fail(
                f"Integration not found. Please connect {provider.slug} first."
            )
        recipient = principal.email or record.email_address
        if not recipient:
            return OperationResult.fail("No email address available to send the test to")

        test_error = await self._run_test(record, recipient)
        if test_error:
            await self._record_error(record, test_error, deactivate=False)
            return OperationResult.fail(test_error)
        if record.error_message:
            await self._clear_error(record)
        return OperationResult.ok(f"Test email sent successfully to {recipient}")

    async def toggle(
        self, principal: Principal, provider_name: str, enabled: bool
    ) -> OperationResult:
        """Enable (make the only ACTIVE provider) or disable a connected provider."""
        try:
            provider = EmailProvider.parse(provider_name)
        except ValueError as e:
            return OperationResult.fail(str(e))
        record = await self._repo.get_by_key(principal.user_id, IntegrationType.EMAIL, provider)
        if record is None:
            return OperationResult.fail(f"Please connect {provider.slug} first")

        if not enabled:
            record.status = IntegrationStatus.INACTIVE
            await self._repo.update(record)
            await self._invalidate(principal.user_id)
            logger.info("Disabled %s email integration for user %s", provider.slug, principal.user_id)
            return OperationResult.ok(f"{provider.slug.capitalize()} disabled")

        state = state_of(record)
        if isinstance(state, Connected) and state.expired:
            return OperationResult.fail(
                f"{provider.slug.capitalize()} access expired. Please reconnect your account."
            )
        try:
            await self.activate_provider(principal.user_id, provider)
        except InvariantViolation as e:
            return self._failure(e, "toggle")
        return OperationResult.ok(f"{provider.slug.capitalize()} enabled")

    async def disconnect(self, principal: Principal, provider_name: str) -> OperationResult:
        """Delete an OAuth integration and its stored tokens. Missing records are fine."""
        try:
            provider = EmailProvider.parse(provider_name)
        except ValueError as e:
            return OperationResult.fail(str(e))
        if not provider.is_oauth:
            return OperationResult.fail(
                "Custom SMTP cannot be disconnected. Disable it or update its settings instead."
            )
        record = await self._repo.get_by_key(principal.user_id, IntegrationType.EMAIL, provider)
        if record is not None:
            await self._repo.delete(record)
            logger.info("Disconnected %s for user %s", provider.slug, principal.user_id)
        await self._invalidate(principal.user_id)
        return OperationResult.ok(f"{provider.slug.capitalize()} disconnected")

    # ---- helpers ----

    @staticmethod
    def _parse_oauth_provider(provider_name: str) -> EmailProvider:
        try:
            provider = EmailProvider.parse(provider_name)
        except ValueError as e:
            raise ValidationException(str(e), field="provider") from e
        if not provider.is_oauth:
            raise ValidationException(
                "Custom SMTP connects with server settings, not OAuth", field="provider"
            )
        return provider

    async def _run_test(self, record: IntegrationRecord, recipient: str | None) -> str | None:
        """Send the test message; return the user-facing error, or None on success."""
        if not recipient:
            return "No email address available to send the test to"
        try:
            await self._dispatcher.send_test_email(record, recipient)
        except VeerException as e:
            if isinstance(e, ConfigurationError):
                logger.error("Test send misconfigured: %s (%s)", e.message, e.details)
                return GENERIC_CONFIGURATION_ERROR
            return e.message
        except Exception as e:
            logger.exception(
                "Unexpected error sending %s test email for user %s",
                EmailProvider(record.provider).slug,
                record.user_id,
            )
            return f"Test email failed: {e}"
        return None

    async def _record_error(
        self, record: IntegrationRecord, message: str, *, deactivate: bool
    ) -> None:
        record.error_message = message
        if deactivate:
            record.status = IntegrationStatus.INACTIVE
        await self._repo.update(record)
        await self._invalidate(record.user_id)
        logger.warning(
            "%s test failed for user %s: %s",
            EmailProvider(record.provider).slug,
            record.user_id,
            message,
        )

    async def _clear_error(self, record: IntegrationRecord) -> None:
        record.error_message = None
        await self._repo.update(record)
        await self._invalidate(record.user_id)

    async def _invalidate(self, user_id: str) -> None:
        if self._cache is not None:
            await self._cache.invalidate_tag(user_integrations_tag(user_id))

    @staticmethod
    def _failure(e: VeerException, operation: str) -> OperationResult:
        if isinstance(e, ConfigurationError):
            logger.error("%s failed on configuration: %s (%s)", operation, e.message, e.details)
            return OperationResult.fail(GENERIC_CONFIGURATION_ERROR)
        logger.warning("%s failed: %s", operation, e.message)
        errors = e.details.get("errors") if isinstance(e, ValidationException) else None
        return OperationResult.fail(e.message, details=errors)
