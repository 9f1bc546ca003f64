"""Application ports: repository and service protocols."""

from veer.application.interfaces.repositories import IIntegrationRepository, IntegrationRecord
from veer.application.interfaces.services import ICacheInvalidator, NullCacheInvalidator

__all__ = [
    "ICacheInvalidator",
    "IIntegrationRepository",
    "IntegrationRecord",
    "NullCacheInvalidator",
]
