"""TokenBundle value object: the decrypted OAuth access/refresh token pair.

Serialized as JSON with camelCase keys and an ISO-8601 expiry so envelopes
written by the dashboard decrypt to the same structure.
"""

import json
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from veer.shared.utils.datetime import ensure_utc, utc_now


@dataclass(frozen=True)
class TokenBundle:
    """Access token, refresh token and access-token expiry."""

    access_token: str
    refresh_token: str | None
    expires_at: datetime | None = None

    @classmethod
    def issued(
        cls, access_token: str, refresh_token: str | None, expires_in_seconds: int
    ) -> "TokenBundle":
        """Build a bundle for a token that was just issued with a lifetime in seconds."""
        return cls(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=utc_now() + timedelta(seconds=expires_in_seconds),
        )

    def to_json(self) -> str:
        payload: dict[str, Any] = {
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
        }
        if self.expires_at is not None:
            payload["expiresAt"] = self.expires_at.isoformat()
        return json.dumps(payload)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TokenBundle":
        """Parse a decrypted bundle. Raises ValueError if accessToken is missing."""
        access_token = data.get("accessToken")
        if not access_token:
            raise ValueError("Token bundle has no accessToken")
        raw_expiry = data.get("expiresAt")
        expires_at = None
        if raw_expiry:
            # JavaScript toISOString() emits a trailing Z.
            expires_at = ensure_utc(datetime.fromisoformat(str(raw_expiry).replace("Z", "+00:00")))
        return cls(
            access_token=access_token,
            refresh_token=data.get("refreshToken"),
            expires_at=expires_at,
        )
