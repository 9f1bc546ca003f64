"""Domain enumerations for integrations.

Values are upper-case strings so they match rows written by the dashboard.
"""

from enum import Enum


class IntegrationType(str, Enum):
    """Kind of third-party integration a record describes."""

    EMAIL = "EMAIL"
    CALENDAR = "CALENDAR"
    TWILIO = "TWILIO"


class IntegrationStatus(str, Enum):
    """Integration lifecycle status.

    At most one EMAIL integration per user is ACTIVE; that one is used for
    outbound mail.
    """

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    ERROR = "ERROR"
    EXPIRED = "EXPIRED"


class EmailProvider(str, Enum):
    """Email-sending providers a user can connect."""

    GMAIL = "GMAIL"
    OUTLOOK = "OUTLOOK"
    CUSTOM = "CUSTOM"

    @property
    def is_oauth(self) -> bool:
        """Gmail and Outlook connect through OAuth; CUSTOM is SMTP."""
        return self is not EmailProvider.CUSTOM

    @property
    def slug(self) -> str:
        """Lower-case name used in URLs and API payloads (gmail, outlook, custom)."""
        return self.value.lower()

    @property
    def oauth_name(self) -> str:
        """OAuth provider name used in callback URLs and state cookies."""
        if self is EmailProvider.GMAIL:
            return "google"
        if self is EmailProvider.OUTLOOK:
            return "microsoft"
        raise ValueError("custom SMTP provider has no OAuth flow")

    @classmethod
    def parse(cls, value: str) -> "EmailProvider":
        """Accept gmail/outlook/custom, google/microsoft, or enum values.

        Raises:
            ValueError: If value does not name a known provider.
        """
        key = value.strip().lower()
        aliases = {"google": cls.GMAIL, "microsoft": cls.OUTLOOK}
        if key in aliases:
            return aliases[key]
        try:
            return cls(key.upper())
        except ValueError:
            raise ValueError(
                f"Unsupported provider: {value}. Supported: gmail, outlook, custom"
            ) from None
