"""Infrastructure implementations of application service interfaces."""

from veer.infrastructure.services.email_dispatch_service import EmailDispatchService
from veer.infrastructure.services.integration_service import IntegrationService
from veer.infrastructure.services.token_service import TokenService

__all__ = [
    "EmailDispatchService",
    "IntegrationService",
    "TokenService",
]
