"""Gmail sender using the Gmail API messages.send endpoint."""

from __future__ import annotations

import base64
from email.message import EmailMessage
from typing import Any

import httpx

from veer.domain.entities.integration import IntegrationLike
from veer.domain.enums import EmailProvider
from veer.domain.exceptions import SendError
from veer.infrastructure.external.email.protocols import (
    DeliveryResult,
    OutgoingEmail,
    text_to_html,
)
from veer.infrastructure.external.email.providers.oauth_base import (
    OAuthEmailProvider,
    api_error_message,
    error_payload,
)
from veer.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

GMAIL_SEND_URL = "https://gmail.googleapis.com/gmail/v1/users/me/messages/send"
GMAIL_API_CONSOLE_URL = (
    "https://console.cloud.google.com/apis/api/gmail.googleapis.com/overview?project={project}"
)
API_DISABLED_MARKER = "Gmail API has not been used"


def base64url_encode(data: bytes) -> str:
    """URL-safe base64 without padding, as the Gmail API expects for raw messages."""
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def build_mime_message(message: OutgoingEmail, from_address: str) -> EmailMessage:
    """RFC 5322 message with a text part and an HTML alternative."""
    mime = EmailMessage()
    mime["From"] = from_address
    mime["To"] = ", ".join(message.to)
    mime["Subject"] = message.subject
    mime.set_content(message.body_text)
    mime.add_alternative(message.body_html or text_to_html(message.body_text), subtype="html")
    return mime


def _project_id(error: dict[str, Any]) -> str:
    """Google Cloud project named in an API-disabled error, if any."""
    for detail in error.get("details") or []:
        metadata = detail.get("metadata") if isinstance(detail, dict) else None
        if not isinstance(metadata, dict):
            continue
        if metadata.get("containerInfo"):
            return str(metadata["containerInfo"])
        consumer = metadata.get("consumer")
        if consumer:
            return str(consumer).removeprefix("projects/")
    return "your-project"


def _is_api_disabled(status_code: int, error: dict[str, Any], message: str) -> bool:
    if status_code != 403:
        return False
    if API_DISABLED_MARKER in message:
        return True
    reasons = {e.get("reason") for e in error.get("errors") or [] if isinstance(e, dict)}
    reasons |= {d.get("reason") for d in error.get("details") or [] if isinstance(d, dict)}
    return bool(reasons & {"accessNotConfigured", "SERVICE_DISABLED"})


class GmailProvider(OAuthEmailProvider):
    """Gmail API sender."""

    provider = EmailProvider.GMAIL
    DISPLAY_NAME = "Gmail"

    async def _post_message(
        self,
        client: httpx.AsyncClient,
        access_token: str,
        integration: IntegrationLike,
        message: OutgoingEmail,
    ) -> httpx.Response:
        from_address = message.from_address or integration.email_address or message.to[0]
        raw = base64url_encode(build_mime_message(message, from_address).as_bytes())
        return await client.post(
            GMAIL_SEND_URL,
            headers={"Authorization": f"Bearer {access_token}"},
            json={"raw": raw},
        )

    def _classify_error(self, response: httpx.Response) -> SendError:
        payload = error_payload(response)
        error = payload.get("error") if isinstance(payload.get("error"), dict) else {}
        message = api_error_message(response, payload)
        if _is_api_disabled(response.status_code, error, message):
            project = _project_id(error)
            logger.warning("Gmail API disabled for project %s", project)
            return SendError(
                "Gmail API is not enabled. Enable it here: "
                + GMAIL_API_CONSOLE_URL.format(project=project),
                cause="api_disabled",
                status_code=response.status_code,
            )
        return super()._classify_error(response)

    def _delivery_result(
        self, response: httpx.Response, message: OutgoingEmail
    ) -> DeliveryResult:
        data = error_payload(response)
        return DeliveryResult(
            delivered=True, message_id=data.get("id"), accepted=list(message.to)
        )
