"""Shared behaviour of OAuth-backed email senders (Gmail, Outlook)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, ClassVar

import httpx

from veer.domain.entities.integration import IntegrationLike
from veer.domain.enums import EmailProvider
from veer.domain.exceptions import SendError, ValidationException
from veer.infrastructure.external.email.protocols import (
    DeliveryResult,
    IAccessTokenSource,
    OutgoingEmail,
    build_test_email,
)
from veer.shared.telemetry.logging import get_logger
from veer.shared.telemetry.tracing import add_span_attributes, traced

logger = get_logger(__name__)

RECONNECT_MESSAGE = "Failed to get valid access token. Please reconnect your account."


def error_payload(response: httpx.Response) -> dict[str, Any]:
    """JSON error body of an API response, or {} when it has none."""
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def api_error_message(response: httpx.Response, payload: dict[str, Any]) -> str:
    """Extract error.message from a Google/Graph error body, falling back to the status text."""
    error = payload.get("error")
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if isinstance(error, str) and error:
        return error
    return response.reason_phrase or f"HTTP {response.status_code}"


class OAuthEmailProvider(ABC):
    """Sends mail through a provider HTTP API with a bearer token from the token source."""

    provider: ClassVar[EmailProvider]
    DISPLAY_NAME: ClassVar[str]

    def __init__(
        self,
        token_source: IAccessTokenSource,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._token_source = token_source
        self._shared_http = http_client
        self._timeout = timeout

    @asynccontextmanager
    async def _http_cm(self):
        """Yield shared HTTP client or a short-lived one (connection reuse when shared)."""
        if self._shared_http is not None:
            yield self._shared_http
            return
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            yield client

    async def refresh(self, integration: IntegrationLike) -> bool:
        token = await self._token_source.get_valid_access_token(
            integration.user_id, self.provider
        )
        return token is not None

    @traced("email.send")
    async def send(
        self, integration: IntegrationLike, message: OutgoingEmail
    ) -> DeliveryResult:
        if not message.to:
            raise ValidationException("At least one recipient is required", field="to")
        access_token = await self._token_source.get_valid_access_token(
            integration.user_id, self.provider
        )
        if not access_token:
            raise SendError(RECONNECT_MESSAGE, cause="credentials")

        add_span_attributes(email_provider=self.provider.slug, recipients=len(message.to))
        try:
            async with self._http_cm() as client:
                response = await self._post_message(client, access_token, integration, message)
        except httpx.HTTPError as e:
            logger.warning(
                "%s send failed before a response: %s", self.DISPLAY_NAME, type(e).__name__
            )
            raise SendError(
                f"Failed to send email via {self.DISPLAY_NAME}: {e}", cause="connection"
            ) from e

        if not response.is_success:
            raise self._classify_error(response)

        logger.info(
            "Email sent via %s for user %s (%d recipient(s))",
            self.DISPLAY_NAME,
            integration.user_id,
            len(message.to),
        )
        return self._delivery_result(response, message)

    async def test(
        self, integration: IntegrationLike, recipient: str
    ) -> DeliveryResult:
        message = build_test_email(
            self.provider, recipient, integration.email_address or recipient
        )
        return await self.send(integration, message)

    @abstractmethod
    async def _post_message(
        self,
        client: httpx.AsyncClient,
        access_token: str,
        integration: IntegrationLike,
        message: OutgoingEmail,
    ) -> httpx.Response: ...

    def _classify_error(self, response: httpx.Response) -> SendError:
        payload = error_payload(response)
        logger.warning(
            "%s API rejected send: status=%d", self.DISPLAY_NAME, response.status_code
        )
        return SendError(
            f"Failed to send email via {self.DISPLAY_NAME}: {api_error_message(response, payload)}",
            cause="http",
            status_code=response.status_code,
        )

    def _delivery_result(
        self, response: httpx.Response, message: OutgoingEmail
    ) -> DeliveryResult:
        return DeliveryResult(delivered=True, accepted=list(message.to))
