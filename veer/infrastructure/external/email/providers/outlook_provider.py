"""Outlook sender using Microsoft Graph /me/sendMail."""

from __future__ import annotations

from typing import Any

import httpx

from veer.domain.entities.integration import IntegrationLike
from veer.domain.enums import EmailProvider
from veer.infrastructure.external.email.protocols import OutgoingEmail, text_to_html
from veer.infrastructure.external.email.providers.oauth_base import OAuthEmailProvider

GRAPH_URL = "https://graph.microsoft.com/v1.0"


def build_graph_payload(message: OutgoingEmail) -> dict[str, Any]:
    """sendMail request body. Graph sends from the signed-in mailbox."""
    return {
        "message": {
            "subject": message.subject,
            "body": {
                "contentType": "HTML",
                "content": message.body_html or text_to_html(message.body_text),
            },
            "toRecipients": [
                {"emailAddress": {"address": address}} for address in message.to
            ],
        },
        "saveToSentItems": True,
    }


class OutlookProvider(OAuthEmailProvider):
    """Microsoft Graph sender (Outlook / Microsoft 365)."""

    provider = EmailProvider.OUTLOOK
    DISPLAY_NAME = "Outlook"

    async def _post_message(
        self,
        client: httpx.AsyncClient,
        access_token: str,
        integration: IntegrationLike,
        message: OutgoingEmail,
    ) -> httpx.Response:
        # 202 Accepted with an empty body on success.
        return await client.post(
            f"{GRAPH_URL}/me/sendMail",
            headers={"Authorization": f"Bearer {access_token}"},
            json=build_graph_payload(message),
        )
