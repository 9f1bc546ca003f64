"""Application DTOs (no ORM dependency)."""

from veer.application.dtos.integration import (
    EmailIntegrationsView,
    OperationResult,
    Principal,
    ProviderView,
    SmtpSettings,
)

__all__ = [
    "EmailIntegrationsView",
    "OperationResult",
    "Principal",
    "ProviderView",
    "SmtpSettings",
]
