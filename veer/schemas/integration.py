"""Email integration API schemas."""

from typing import Any

from pydantic import BaseModel, EmailStr, Field, field_validator

from veer.application.dtos.integration import SmtpSettings
from veer.shared.utils.validation import is_valid_hostname


class SmtpConfigInput(BaseModel):
    """Request body for connecting or updating custom SMTP."""

    smtp_host: str = Field(..., min_length=1, description="e.g. smtp-relay.brevo.com")
    smtp_port: int = Field(..., ge=1, le=65535)
    smtp_user: str = Field(..., min_length=1)
    smtp_password: str = Field(..., min_length=1, description="Encrypted at rest")
    smtp_from_email: EmailStr

    @field_validator("smtp_host")
    @classmethod
    def host_is_domain(cls, v: str) -> str:
        v = v.strip()
        if "@" in v:
            raise ValueError(
                "SMTP host should be a domain name (e.g., smtp.example.com), not an email "
                "address. Did you enter your username in the host field?"
            )
        if not is_valid_hostname(v):
            raise ValueError("SMTP host must be a valid hostname")
        return v

    def to_settings(self) -> SmtpSettings:
        return SmtpSettings(
            host=self.smtp_host,
            port=self.smtp_port,
            user=self.smtp_user,
            password=self.smtp_password,
            from_email=str(self.smtp_from_email),
        )


class ToggleRequest(BaseModel):
    """Request body for enabling or disabling a connected provider."""

    enabled: bool


class OperationResponse(BaseModel):
    """Outcome of an integration operation (error is set when success is false)."""

    success: bool
    message: str | None = None
    error: str | None = None
    details: list[dict[str, Any]] | None = None


class OAuthStartResponse(BaseModel):
    """Authorization URL the browser should be sent to."""

    authorization_url: str
    provider: str


class ProviderIntegrationResponse(BaseModel):
    """One provider's connection summary (no secrets)."""

    provider: str
    is_connected: bool = False
    is_enabled: bool = False
    status: str | None = None
    email_address: str | None = None
    connected_at: str | None = None
    error_message: str | None = None
    smtp_host: str | None = None
    smtp_port: int | None = None
    smtp_user: str | None = None
    smtp_from_email: str | None = None


class EmailIntegrationsResponse(BaseModel):
    """Response for GET /integrations/email."""

    providers: dict[str, ProviderIntegrationResponse]
    active_provider: str | None = None
