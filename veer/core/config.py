"""Application configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. Required fields (e.g. DATABASE_URL, SECRET_KEY) are
validated at load time; credentials that only some operations need
(ENCRYPTION_KEY, OAuth client credentials) are validated by the component
that uses them so the app can still start without them.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment and .env."""

    # App
    app_name: str = "veer"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"
    # Public base URL of the dashboard; OAuth redirect URIs are built from it.
    app_url: str = "http://localhost:3000"

    # Database
    database_url: str = ""
    database_echo: bool = False
    db_pool_size: int | None = None
    db_max_overflow: int | None = None

    # Security (identity tokens)
    secret_key: SecretStr = SecretStr("")
    algorithm: str = "HS256"

    # Credential encryption: 64 hex characters (32 bytes, AES-256-GCM).
    # Changing it invalidates every stored envelope (no key versioning).
    encryption_key: SecretStr | None = None

    # OAuth clients
    google_oauth_client_id: str | None = None
    google_oauth_client_secret: SecretStr | None = None
    microsoft_oauth_client_id: str | None = None
    microsoft_oauth_client_secret: SecretStr | None = None
    microsoft_oauth_tenant: str = "common"

    # Outbound calls (no retries anywhere; one attempt per call)
    smtp_timeout_seconds: float = 10.0
    http_timeout_seconds: float = 30.0

    # CORS
    allowed_origins: str = "http://localhost:3000"

    # Redis cache (integration listing + invalidation tags)
    redis_enabled: bool = True
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: SecretStr | None = None
    cache_ttl_integrations: int = 300

    # OpenTelemetry
    telemetry_enabled: bool = False
    telemetry_exporter: str = "console"
    telemetry_otlp_endpoint: str | None = None
    telemetry_sample_rate: float = 1.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @property
    def is_production(self) -> bool:
        """True when running with ENVIRONMENT=production (secure cookies)."""
        return self.environment.strip().lower() == "production"

    @model_validator(mode="after")
    def validate_required(self) -> "Settings":
        """Validate settings that every request path depends on."""
        if not self.secret_key.get_secret_value():
            raise ValueError(
                "SECRET_KEY is required. Generate with: openssl rand -hex 32."
            )
        if self.environment.strip().lower() not in ("development", "production", "test"):
            raise ValueError(
                f"environment must be 'development', 'production' or 'test', got: {self.environment!r}"
            )
        self.app_url = self.app_url.rstrip("/")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() before overriding env vars so the next
    get_settings() uses the new values.
    """
    return Settings()
