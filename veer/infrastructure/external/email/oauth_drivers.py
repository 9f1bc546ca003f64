"""OAuth provider drivers: authorization URL, code exchange, token refresh."""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, ClassVar
from urllib.parse import urlencode

import httpx

from veer.core.config import get_settings
from veer.domain.enums import EmailProvider
from veer.domain.exceptions import (
    ConfigurationError,
    OAuthExchangeError,
    OAuthRefreshError,
    TransportError,
)
from veer.shared.telemetry.logging import get_logger
from veer.shared.telemetry.tracing import traced

logger = get_logger(__name__)

# Used when a token response omits expires_in.
DEFAULT_EXPIRES_IN = 3600


@dataclass(frozen=True)
class OAuthTokens:
    """Tokens and account identity returned by a successful code exchange."""

    access_token: str
    refresh_token: str | None
    expires_in_seconds: int
    email: str
    name: str | None = None


@dataclass(frozen=True)
class RefreshedToken:
    """Result of a refresh grant. Providers may not rotate the refresh token."""

    access_token: str
    expires_in_seconds: int


def _json_object(response: httpx.Response) -> dict[str, Any] | None:
    """Decoded JSON object body, or None when the body is not a JSON object."""
    try:
        data = response.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def _expires_in(token_data: dict[str, Any]) -> int:
    try:
        return int(token_data.get("expires_in") or DEFAULT_EXPIRES_IN)
    except (TypeError, ValueError):
        return DEFAULT_EXPIRES_IN


def _error_payload(response: httpx.Response) -> dict[str, Any]:
    """Best-effort JSON error body (empty dict when the body is not JSON)."""
    return _json_object(response) or {}


class OAuthDriver(ABC):
    """Abstract OAuth driver for one identity provider."""

    PROVIDER_NAME: ClassVar[str]
    DISPLAY_NAME: ClassVar[str]
    AUTHORIZATION_ENDPOINT: ClassVar[str]
    TOKEN_ENDPOINT: ClassVar[str]
    USERINFO_ENDPOINT: ClassVar[str]
    SCOPES: ClassVar[tuple[str, ...]]

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self._shared_http = http_client
        self._timeout = timeout

    @asynccontextmanager
    async def _http_cm(self):
        """Yield shared HTTP client or a short-lived one."""
        if self._shared_http is not None:
            yield self._shared_http
            return
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            yield client

    @property
    def authorization_endpoint(self) -> str:
        return self.AUTHORIZATION_ENDPOINT

    @property
    def token_endpoint(self) -> str:
        return self.TOKEN_ENDPOINT

    def build_authorization_url(self, state: str) -> str:
        """Build the consent-screen URL carrying the CSRF state token."""
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.SCOPES),
            **self._get_authorization_params(),
            "state": state,
        }
        return f"{self.authorization_endpoint}?{urlencode(params)}"

    @abstractmethod
    def _get_authorization_params(self) -> dict[str, str]:
        """Provider-specific auth params."""
        ...

    def _token_request_extra(self) -> dict[str, str]:
        """Extra form fields sent with every token request."""
        return {}

    @abstractmethod
    def _email_from_userinfo(self, data: dict[str, Any]) -> str | None: ...

    @abstractmethod
    def _name_from_userinfo(self, data: dict[str, Any]) -> str | None: ...

    @staticmethod
    def _error_text(payload: dict[str, Any], response: httpx.Response) -> str:
        return str(
            payload.get("error_description")
            or payload.get("error")
            or response.reason_phrase
            or response.status_code
        )

    async def _post_token(self, data: dict[str, str]) -> httpx.Response:
        try:
            async with self._http_cm() as client:
                return await client.post(
                    self.token_endpoint,
                    data={**data, **self._token_request_extra()},
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
        except httpx.HTTPError as e:
            logger.warning(
                "%s token endpoint unreachable: %s", self.PROVIDER_NAME, type(e).__name__
            )
            raise TransportError(
                f"Could not reach {self.DISPLAY_NAME}: {e}", cause="connection"
            ) from e

    async def exchange_code(self, code: str, state: str) -> OAuthTokens:
        """Exchange an authorization code for tokens and the account email.

        The state has already been verified by the caller; it is accepted
        here so the call mirrors the callback parameters.

        Raises:
            OAuthExchangeError: Token endpoint or user info lookup rejected the request.
            TransportError: Network failure.
        """
        response = await self._post_token(
            {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "code": code,
                "grant_type": "authorization_code",
                "redirect_uri": self.redirect_uri,
            }
        )
        if not response.is_success:
            payload = _error_payload(response)
            logger.error(
                "%s token exchange failed: status=%d",
                self.PROVIDER_NAME,
                response.status_code,
            )
            raise OAuthExchangeError(
                self.PROVIDER_NAME,
                f"Failed to exchange code: {self._error_text(payload, response)}",
                payload,
            )
        token_data = _json_object(response)
        if token_data is None:
            logger.error("%s token endpoint returned a non-JSON body", self.PROVIDER_NAME)
            raise OAuthExchangeError(
                self.PROVIDER_NAME, f"Unexpected token response from {self.DISPLAY_NAME}"
            )
        access_token = token_data.get("access_token")
        if not access_token:
            raise OAuthExchangeError(
                self.PROVIDER_NAME, "Token response did not include an access token"
            )

        userinfo = await self._get_user_info(access_token)
        email = self._email_from_userinfo(userinfo)
        if not email:
            raise OAuthExchangeError(
                self.PROVIDER_NAME, f"{self.DISPLAY_NAME} account has no email address"
            )
        return OAuthTokens(
            access_token=access_token,
            refresh_token=token_data.get("refresh_token"),
            expires_in_seconds=_expires_in(token_data),
            email=email,
            name=self._name_from_userinfo(userinfo),
        )

    async def _get_user_info(self, access_token: str) -> dict[str, Any]:
        try:
            async with self._http_cm() as client:
                response = await client.get(
                    self.USERINFO_ENDPOINT,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as e:
            raise TransportError(
                f"Could not reach {self.DISPLAY_NAME}: {e}", cause="connection"
            ) from e
        if not response.is_success:
            logger.error(
                "%s get user info failed: status=%d",
                self.PROVIDER_NAME,
                response.status_code,
            )
            raise OAuthExchangeError(
                self.PROVIDER_NAME, "Failed to fetch user info", _error_payload(response)
            )
        data = _json_object(response)
        if data is None:
            logger.error("%s user info returned a non-JSON body", self.PROVIDER_NAME)
            raise OAuthExchangeError(
                self.PROVIDER_NAME, f"Unexpected user info response from {self.DISPLAY_NAME}"
            )
        return data

    @traced("oauth.refresh_token")
    async def refresh_token(self, refresh_token: str) -> RefreshedToken:
        """Obtain a new access token from a refresh token.

        Raises:
            OAuthRefreshError: Provider rejected the refresh token (re-authorization needed).
            TransportError: Network failure or an unreadable provider response.
        """
        response = await self._post_token(
            {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "refresh_token": refresh_token,
                "grant_type": "refresh_token",
            }
        )
        if not response.is_success:
            payload = _error_payload(response)
            logger.warning(
                "%s token refresh rejected: status=%d error=%s",
                self.PROVIDER_NAME,
                response.status_code,
                payload.get("error"),
            )
            raise OAuthRefreshError(
                self.PROVIDER_NAME,
                f"Failed to refresh token: {self._error_text(payload, response)}",
                payload,
            )
        token_data = _json_object(response)
        if token_data is None:
            logger.warning("%s refresh returned a non-JSON body", self.PROVIDER_NAME)
            raise TransportError(
                f"Unexpected token response from {self.DISPLAY_NAME}", cause="response"
            )
        access_token = token_data.get("access_token")
        if not access_token:
            raise OAuthRefreshError(
                self.PROVIDER_NAME, "Refresh response did not include an access token"
            )
        return RefreshedToken(
            access_token=access_token,
            expires_in_seconds=_expires_in(token_data),
        )


class GoogleDriver(OAuthDriver):
    """Google OAuth driver (Gmail send scope)."""

    PROVIDER_NAME = "google"
    DISPLAY_NAME = "Google"
    AUTHORIZATION_ENDPOINT = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"
    USERINFO_ENDPOINT = "https://www.googleapis.com/oauth2/v2/userinfo"
    SCOPES = (
        "https://www.googleapis.com/auth/gmail.send",
        "https://www.googleapis.com/auth/userinfo.email",
        "https://www.googleapis.com/auth/userinfo.profile",
    )

    def _get_authorization_params(self) -> dict[str, str]:
        # offline + consent so Google issues a refresh token on every connect.
        return {"access_type": "offline", "prompt": "consent"}

    def _email_from_userinfo(self, data: dict[str, Any]) -> str | None:
        return data.get("email")

    def _name_from_userinfo(self, data: dict[str, Any]) -> str | None:
        return data.get("name")


class MicrosoftDriver(OAuthDriver):
    """Microsoft identity platform driver (Graph Mail.Send)."""

    PROVIDER_NAME = "microsoft"
    DISPLAY_NAME = "Microsoft"
    AUTHORIZATION_ENDPOINT = "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/authorize"
    TOKEN_ENDPOINT = "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/token"
    USERINFO_ENDPOINT = "https://graph.microsoft.com/v1.0/me"
    SCOPES = (
        "https://graph.microsoft.com/Mail.Send",
        "https://graph.microsoft.com/User.Read",
        "offline_access",
    )

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        *,
        tenant: str = "common",
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        super().__init__(
            client_id,
            client_secret,
            redirect_uri,
            http_client=http_client,
            timeout=timeout,
        )
        self.tenant = tenant or "common"

    @property
    def authorization_endpoint(self) -> str:
        return self.AUTHORIZATION_ENDPOINT.format(tenant=self.tenant)

    @property
    def token_endpoint(self) -> str:
        return self.TOKEN_ENDPOINT.format(tenant=self.tenant)

    def _get_authorization_params(self) -> dict[str, str]:
        return {"response_mode": "query"}

    def _token_request_extra(self) -> dict[str, str]:
        return {"scope": " ".join(self.SCOPES)}

    def _email_from_userinfo(self, data: dict[str, Any]) -> str | None:
        return data.get("mail") or data.get("userPrincipalName")

    def _name_from_userinfo(self, data: dict[str, Any]) -> str | None:
        return data.get("displayName")


class OAuthDriverRegistry:
    """Builds OAuth drivers from settings by provider name."""

    @classmethod
    def resolve_name(cls, provider: str | EmailProvider) -> str:
        """Map gmail/outlook (or google/microsoft) to the OAuth provider name."""
        if isinstance(provider, EmailProvider):
            return provider.oauth_name
        try:
            return EmailProvider.parse(provider).oauth_name
        except ValueError as e:
            raise ValueError(
                f"Unsupported OAuth provider: {provider}. Supported: google, microsoft"
            ) from e

    @classmethod
    def get_driver(
        cls,
        provider: str | EmailProvider,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> OAuthDriver:
        """Return a configured driver.

        Raises:
            ValueError: Unknown provider (or CUSTOM, which has no OAuth flow).
            ConfigurationError: Client id/secret for the provider are not set.
        """
        name = cls.resolve_name(provider)
        settings = get_settings()
        redirect_uri = f"{settings.app_url}/api/auth/oauth/callback/{name}"
        timeout = settings.http_timeout_seconds

        if name == "google":
            client_id = settings.google_oauth_client_id
            secret = settings.google_oauth_client_secret
            if not client_id or not secret or not secret.get_secret_value():
                logger.error("Google OAuth client credentials are not configured")
                raise ConfigurationError(
                    "Google OAuth credentials not configured. Please set "
                    "GOOGLE_OAUTH_CLIENT_ID and GOOGLE_OAUTH_CLIENT_SECRET",
                    setting="GOOGLE_OAUTH_CLIENT_ID",
                )
            return GoogleDriver(
                client_id,
                secret.get_secret_value(),
                redirect_uri,
                http_client=http_client,
                timeout=timeout,
            )

        client_id = settings.microsoft_oauth_client_id
        secret = settings.microsoft_oauth_client_secret
        if not client_id or not secret or not secret.get_secret_value():
            logger.error("Microsoft OAuth client credentials are not configured")
            raise ConfigurationError(
                "Microsoft OAuth credentials not configured. Please set "
                "MICROSOFT_OAUTH_CLIENT_ID and MICROSOFT_OAUTH_CLIENT_SECRET",
                setting="MICROSOFT_OAUTH_CLIENT_ID",
            )
        return MicrosoftDriver(
            client_id,
            secret.get_secret_value(),
            redirect_uri,
            tenant=settings.microsoft_oauth_tenant,
            http_client=http_client,
            timeout=timeout,
        )
