"""Domain entities (business concepts independent of persistence)."""

from veer.domain.entities.integration import (
    Active,
    Connected,
    Credentials,
    IntegrationState,
    OAuthCredentials,
    SmtpCredentials,
    Unconfigured,
    credentials_of,
    state_of,
)

__all__ = [
    "Active",
    "Connected",
    "Credentials",
    "IntegrationState",
    "OAuthCredentials",
    "SmtpCredentials",
    "Unconfigured",
    "credentials_of",
    "state_of",
]
