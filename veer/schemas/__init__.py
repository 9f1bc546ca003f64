"""Pydantic request/response schemas for the API."""

from veer.schemas.health import HealthResponse, ReadinessResponse
from veer.schemas.integration import (
    EmailIntegrationsResponse,
    OAuthStartResponse,
    OperationResponse,
    ProviderIntegrationResponse,
    SmtpConfigInput,
    ToggleRequest,
)

__all__ = [
    "EmailIntegrationsResponse",
    "HealthResponse",
    "OAuthStartResponse",
    "OperationResponse",
    "ProviderIntegrationResponse",
    "ReadinessResponse",
    "SmtpConfigInput",
    "ToggleRequest",
]
