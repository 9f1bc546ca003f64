"""Pytest configuration and fixtures for veer.

Environment is set before any veer module reads settings. Orchestrator and
API tests run against an in-memory integration repository; nothing here
needs Postgres or Redis.
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-identity-tokens")
os.environ.setdefault("ENCRYPTION_KEY", "00112233445566778899aabbccddeeff" * 2)
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("TELEMETRY_ENABLED", "false")
os.environ.setdefault("GOOGLE_OAUTH_CLIENT_ID", "google-client-id")
os.environ.setdefault("GOOGLE_OAUTH_CLIENT_SECRET", "google-client-secret")
os.environ.setdefault("MICROSOFT_OAUTH_CLIENT_ID", "microsoft-client-id")
os.environ.setdefault("MICROSOFT_OAUTH_CLIENT_SECRET", "microsoft-client-secret")

from dataclasses import dataclass, field  # noqa: E402
from datetime import datetime  # noqa: E402
from typing import Any  # noqa: E402

import pytest  # noqa: E402

from veer.application.dtos.integration import Principal  # noqa: E402
from veer.core.config import get_settings  # noqa: E402
from veer.domain.enums import EmailProvider, IntegrationStatus, IntegrationType  # noqa: E402
from veer.infrastructure.external.email.encryption import CredentialCipher  # noqa: E402
from veer.infrastructure.external.email.protocols import DeliveryResult  # noqa: E402
from veer.shared.utils.datetime import utc_now  # noqa: E402
from veer.shared.utils.generators import generate_cuid  # noqa: E402

TEST_ENCRYPTION_KEY = "00112233445566778899aabbccddeeff" * 2


@dataclass
class FakeIntegration:
    """Stand-in for the Integration ORM row (same attributes)."""

    user_id: str
    provider: EmailProvider
    type: IntegrationType = IntegrationType.EMAIL
    status: IntegrationStatus = IntegrationStatus.INACTIVE
    email_address: str | None = None
    error_message: str | None = None
    oauth_token: str | None = None
    oauth_refresh_token: str | None = None
    oauth_token_expires_at: datetime | None = None
    smtp_host: str | None = None
    smtp_port: int | None = None
    smtp_user: str | None = None
    smtp_password: str | None = None
    smtp_from_email: str | None = None
    connected_at: datetime | None = None
    id: str = field(default_factory=generate_cuid)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)


class InMemoryIntegrationRepository:
    """Dict-backed IIntegrationRepository; counts writes for no-write assertions."""

    def __init__(self) -> None:
        self.records: dict[tuple[str, IntegrationType, EmailProvider], FakeIntegration] = {}
        self.writes = 0

    def add(self, record: FakeIntegration) -> FakeIntegration:
        self.records[(record.user_id, IntegrationType(record.type), EmailProvider(record.provider))] = record
        return record

    async def get_by_key(self, user_id, type, provider):
        return self.records.get((user_id, type, provider))

    async def list_for_user(self, user_id, type, status=None):
        found = [
            r
            for (uid, t, _), r in self.records.items()
            if uid == user_id and t == type and (status is None or r.status == status)
        ]
        return sorted(found, key=lambda r: r.created_at)

    async def create(self, obj):
        self.writes += 1
        return self.add(obj)

    async def update(self, obj):
        self.writes += 1
        obj.updated_at = utc_now()
        return self.add(obj)

    async def upsert(self, user_id, type, provider, create_values, update_values):
        self.writes += 1
        record = self.records.get((user_id, type, provider))
        if record is None:
            return self.add(FakeIntegration(user_id=user_id, provider=provider, type=type, **create_values))
        for key, value in update_values.items():
            setattr(record, key, value)
        record.updated_at = utc_now()
        return record

    async def delete(self, obj):
        self.writes += 1
        self.records.pop((obj.user_id, IntegrationType(obj.type), EmailProvider(obj.provider)), None)

    async def update_many(self, user_id, type, values, status=None, exclude_provider=None):
        self.writes += 1
        count = 0
        for (uid, t, provider), record in self.records.items():
            if uid != user_id or t != type or provider == exclude_provider:
                continue
            if status is not None and record.status != status:
                continue
            for key, value in values.items():
                setattr(record, key, value)
            count += 1
        return count


class FakeDispatcher:
    """Records test sends; raises `error` when set. `on_send` sees the record at send time."""

    def __init__(self) -> None:
        self.error: Exception | None = None
        self.sent: list[tuple[EmailProvider, str]] = []
        self.on_send = None

    async def send_test_email(self, integration: Any, recipient: str) -> DeliveryResult:
        if self.on_send is not None:
            self.on_send(integration)
        self.sent.append((EmailProvider(integration.provider), recipient))
        if self.error is not None:
            raise self.error
        return DeliveryResult(delivered=True, accepted=[recipient])


class RecordingCache:
    """In-memory CacheProtocol that remembers invalidated tags."""

    def __init__(self) -> None:
        self.store: dict[str, Any] = {}
        self.invalidated: list[str] = []

    def is_available(self) -> bool:
        return True

    async def get(self, key: str) -> Any:
        return self.store.get(key)

    async def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        self.store[key] = value
        return True

    async def delete(self, key: str) -> bool:
        return self.store.pop(key, None) is not None

    async def invalidate_tag(self, tag: str) -> int:
        self.invalidated.append(tag)
        return 1 if self.store.pop(tag, None) is not None else 0


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Each test reads settings from the current environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def cipher() -> CredentialCipher:
    return CredentialCipher(TEST_ENCRYPTION_KEY)


@pytest.fixture
def repo() -> InMemoryIntegrationRepository:
    return InMemoryIntegrationRepository()


@pytest.fixture
def dispatcher() -> FakeDispatcher:
    return FakeDispatcher()


@pytest.fixture
def cache() -> RecordingCache:
    return RecordingCache()


@pytest.fixture
def principal() -> Principal:
    return Principal(user_id="user-1", email="owner@example.com")


@pytest.fixture
def make_record(repo: InMemoryIntegrationRepository):
    """Add an integration row to the in-memory repository."""

    def _make(provider: EmailProvider, user_id: str = "user-1", **values: Any) -> FakeIntegration:
        return repo.add(FakeIntegration(user_id=user_id, provider=provider, **values))

    return _make


@pytest.fixture
def smtp_record(make_record, cipher: CredentialCipher):
    """Factory for a custom SMTP row with an encrypted password."""

    def _make(status: IntegrationStatus = IntegrationStatus.ACTIVE, **values: Any) -> FakeIntegration:
        defaults: dict[str, Any] = {
            "status": status,
            "email_address": "a@x.com",
            "smtp_host": "smtp.example.com",
            "smtp_port": 587,
            "smtp_user": "mailer",
            "smtp_password": cipher.encrypt("old-password"),
            "smtp_from_email": "a@x.com",
            "connected_at": utc_now(),
        }
        defaults.update(values)
        return make_record(EmailProvider.CUSTOM, **defaults)

    return _make
