"""Domain exceptions for the Veer integration service.

Defines exceptions for configuration, validation, credential and transport
failures. They are independent of infrastructure concerns; the presentation
layer maps them to HTTP responses in exception handlers, and the integration
service translates them into operation results.
"""

from typing import Any


class VeerException(Exception):
    """Base exception for all Veer application errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. field, provider).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON error responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(VeerException):
    """Raised when required configuration is missing or malformed (e.g. ENCRYPTION_KEY)."""

    def __init__(self, message: str, setting: str | None = None) -> None:
        details = {"setting": setting} if setting else {}
        super().__init__(message, "CONFIGURATION_ERROR", details)


class ValidationException(VeerException):
    """Raised when input validation fails (e.g. SMTP host or from-address)."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        errors: list[dict[str, Any]] | None = None,
    ) -> None:
        """Initialize with message, optional field name and field-level errors.

        Args:
            message: Description of the validation failure.
            field: Optional field that failed validation.
            errors: Optional list of field-level errors ({"field", "message"}).
        """
        details: dict[str, Any] = {}
        if field:
            details["field"] = field
        if errors:
            details["errors"] = errors
        super().__init__(message, "VALIDATION_ERROR", details)


class DecryptionError(VeerException):
    """Raised when an envelope is malformed, tampered, or was sealed with another key."""

    def __init__(
        self, message: str = "Failed to decrypt data - invalid or corrupted envelope"
    ) -> None:
        super().__init__(message, "DECRYPTION_ERROR")


class OAuthExchangeError(VeerException):
    """Raised when the provider rejects an authorization code (or user info lookup fails)."""

    def __init__(
        self, provider: str, message: str, payload: dict[str, Any] | None = None
    ) -> None:
        super().__init__(
            message,
            "OAUTH_EXCHANGE_ERROR",
            {"provider": provider, "payload": payload or {}},
        )


class OAuthRefreshError(VeerException):
    """Raised when the provider rejects a refresh token.

    Callers treat this as "user must re-authorize", never as retryable.
    """

    def __init__(
        self, provider: str, message: str, payload: dict[str, Any] | None = None
    ) -> None:
        super().__init__(
            message,
            "OAUTH_REFRESH_ERROR",
            {"provider": provider, "payload": payload or {}},
        )


class TransportError(VeerException):
    """Raised when an outbound SMTP or HTTP call fails.

    cause is one of: dns, connection, auth, rejected, api_disabled, http,
    credentials, generic. The message is meant to be shown to the user as is.
    """

    def __init__(self, message: str, cause: str = "generic", **details_extra: Any) -> None:
        self.cause = cause
        super().__init__(
            message, "TRANSPORT_ERROR", {"cause": cause, **details_extra}
        )


class SendError(TransportError):
    """Raised by email senders when a message could not be delivered."""


class InvariantViolation(VeerException):
    """Raised when an operation would break an integration invariant (checked before any write)."""

    def __init__(self, message: str, provider: str | None = None) -> None:
        details = {"provider": provider} if provider else {}
        super().__init__(message, "INVARIANT_VIOLATION", details)
