"""DTOs for integration use cases (no dependency on ORM)."""

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(frozen=True)
class Principal:
    """The authenticated caller, as resolved from the identity token."""

    user_id: str
    email: str | None = None


@dataclass(frozen=True)
class OperationResult:
    """Outcome of an integration operation; error is set exactly when it failed."""

    success: bool
    message: str | None = None
    error: str | None = None
    details: list[dict[str, Any]] | None = None
    redirect_url: str | None = None
    data: dict[str, Any] | None = None

    @classmethod
    def ok(
        cls,
        message: str | None = None,
        *,
        redirect_url: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> "OperationResult":
        return cls(success=True, message=message, redirect_url=redirect_url, data=data)

    @classmethod
    def fail(
        cls, error: str, details: list[dict[str, Any]] | None = None
    ) -> "OperationResult":
        return cls(success=False, error=error, details=details)


@dataclass(frozen=True)
class SmtpSettings:
    """Validated custom SMTP form values (password in plaintext until encrypted)."""

    host: str
    port: int
    user: str
    password: str
    from_email: str


@dataclass(frozen=True)
class ProviderView:
    """One provider's entry in the integration listing. Never carries secrets."""

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


@dataclass(frozen=True)
class EmailIntegrationsView:
    """Listing of the user's email integrations keyed by provider slug."""

    providers: dict[str, ProviderView] = field(default_factory=dict)
    active_provider: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "providers": {name: asdict(view) for name, view in self.providers.items()},
            "active_provider": self.active_provider,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EmailIntegrationsView":
        return cls(
            providers={
                name: ProviderView(**view) for name, view in data.get("providers", {}).items()
            },
            active_provider=data.get("active_provider"),
        )
