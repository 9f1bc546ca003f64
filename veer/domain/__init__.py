"""Domain layer: integration state, value objects, enums, and exceptions.

No dependencies on infrastructure or presentation. Used by application
and infrastructure layers.
"""

from veer.domain.enums import EmailProvider, IntegrationStatus, IntegrationType
from veer.domain.exceptions import (
    ConfigurationError,
    DecryptionError,
    InvariantViolation,
    OAuthExchangeError,
    OAuthRefreshError,
    SendError,
    TransportError,
    ValidationException,
    VeerException,
)

__all__ = [
    # Enums
    "EmailProvider",
    "IntegrationStatus",
    "IntegrationType",
    # Exceptions
    "ConfigurationError",
    "DecryptionError",
    "InvariantViolation",
    "OAuthExchangeError",
    "OAuthRefreshError",
    "SendError",
    "TransportError",
    "ValidationException",
    "VeerException",
]
