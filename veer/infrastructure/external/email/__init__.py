"""Email integration: protocols, factory, encryption, OAuth drivers, providers."""

from veer.infrastructure.external.email.encryption import CredentialCipher
from veer.infrastructure.external.email.factory import EmailProviderFactory
from veer.infrastructure.external.email.oauth_drivers import (
    GoogleDriver,
    MicrosoftDriver,
    OAuthDriver,
    OAuthDriverRegistry,
    OAuthTokens,
    RefreshedToken,
)
from veer.infrastructure.external.email.oauth_state import OAuthStateCookie
from veer.infrastructure.external.email.protocols import (
    DeliveryResult,
    IEmailSender,
    OutgoingEmail,
)

__all__ = [
    "CredentialCipher",
    "DeliveryResult",
    "EmailProviderFactory",
    "GoogleDriver",
    "IEmailSender",
    "MicrosoftDriver",
    "OAuthDriver",
    "OAuthDriverRegistry",
    "OAuthStateCookie",
    "OAuthTokens",
    "OutgoingEmail",
    "RefreshedToken",
]
