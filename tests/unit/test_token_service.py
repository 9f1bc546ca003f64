"""Tests for TokenService: expiry buffer, refresh and revocation handling."""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from veer.domain.enums import EmailProvider, IntegrationStatus
from veer.domain.exceptions import ConfigurationError, OAuthRefreshError, TransportError
from veer.domain.value_objects.token_bundle import TokenBundle
from veer.infrastructure.external.email.oauth_drivers import GoogleDriver, RefreshedToken
from veer.infrastructure.services.token_service import REVOKED_MESSAGE, TokenService
from veer.shared.utils.datetime import utc_now


@pytest.fixture
def driver() -> MagicMock:
    driver = MagicMock()
    driver.refresh_token = AsyncMock(return_value=RefreshedToken("ya29.fresh", 3600))
    return driver


@pytest.fixture
def gmail_record(make_record, cipher):
    def _make(expires_in: timedelta, status=IntegrationStatus.ACTIVE, refresh_token="1//r"):
        expires_at = utc_now() + expires_in
        bundle = TokenBundle("ya29.stored", refresh_token, expires_at)
        return make_record(
            EmailProvider.GMAIL,
            status=status,
            email_address="owner@gmail.com",
            oauth_token=cipher.encrypt(bundle.to_json()),
            oauth_refresh_token=cipher.encrypt(refresh_token) if refresh_token else None,
            oauth_token_expires_at=expires_at,
        )

    return _make


@pytest.fixture
def service(repo, cipher, cache, driver) -> TokenService:
    return TokenService(repo, cipher, cache=cache, driver_factory=lambda provider: driver)


async def test_token_outside_refresh_buffer_is_returned_without_refresh(
    service: TokenService, gmail_record, driver: MagicMock
) -> None:
    gmail_record(timedelta(minutes=6))
    token = await service.get_valid_access_token("user-1", EmailProvider.GMAIL)
    assert token == "ya29.stored"
    driver.refresh_token.assert_not_awaited()


async def test_token_inside_refresh_buffer_is_refreshed_and_persisted(
    service: TokenService, gmail_record, driver: MagicMock, cipher
) -> None:
    record = gmail_record(timedelta(minutes=4))

    token = await service.get_valid_access_token("user-1", EmailProvider.GMAIL)

    assert token == "ya29.fresh"
    driver.refresh_token.assert_awaited_once_with("1//r")
    stored = TokenBundle.from_dict(cipher.decrypt_json(record.oauth_token))
    assert stored.access_token == "ya29.fresh"
    assert stored.refresh_token == "1//r"
    assert record.oauth_token_expires_at > utc_now() + timedelta(minutes=55)
    assert record.status == IntegrationStatus.ACTIVE


async def test_expired_token_is_refreshed(service: TokenService, gmail_record) -> None:
    gmail_record(timedelta(hours=-2))
    assert await service.get_valid_access_token("user-1", EmailProvider.GMAIL) == "ya29.fresh"


async def test_revoked_refresh_token_marks_integration_expired(
    service: TokenService, gmail_record, driver: MagicMock, cache
) -> None:
    record = gmail_record(timedelta(minutes=1))
    driver.refresh_token.side_effect = OAuthRefreshError("google", "invalid_grant")

    assert await service.get_valid_access_token("user-1", EmailProvider.GMAIL) is None

    assert record.status == IntegrationStatus.EXPIRED
    assert record.error_message == REVOKED_MESSAGE
    assert cache.invalidated == ["user-integrations-user-1"]


async def test_network_failure_during_refresh_leaves_record_untouched(
    service: TokenService, gmail_record, driver: MagicMock, repo
) -> None:
    record = gmail_record(timedelta(minutes=1))
    driver.refresh_token.side_effect = TransportError("timed out", cause="connection")
    writes_before = repo.writes

    assert await service.get_valid_access_token("user-1", EmailProvider.GMAIL) is None

    assert record.status == IntegrationStatus.ACTIVE
    assert record.error_message is None
    assert repo.writes == writes_before


async def test_missing_record_returns_none(service: TokenService) -> None:
    assert await service.get_valid_access_token("user-1", EmailProvider.OUTLOOK) is None


async def test_undecryptable_bundle_returns_none(service: TokenService, make_record) -> None:
    make_record(EmailProvider.GMAIL, oauth_token="not:an:envelope")
    assert await service.get_valid_access_token("user-1", EmailProvider.GMAIL) is None


async def test_no_refresh_token_returns_none(
    service: TokenService, gmail_record, driver: MagicMock
) -> None:
    gmail_record(timedelta(minutes=1), refresh_token=None)
    assert await service.get_valid_access_token("user-1", EmailProvider.GMAIL) is None
    driver.refresh_token.assert_not_awaited()


@pytest.fixture
def bundle_without_expiry(make_record, cipher):
    """Record whose sealed bundle has no expiresAt; only the plaintext mirror may carry one."""

    def _make(mirror_in: timedelta | None):
        bundle = TokenBundle("ya29.stored", "1//r", None)
        return make_record(
            EmailProvider.GMAIL,
            status=IntegrationStatus.ACTIVE,
            oauth_token=cipher.encrypt(bundle.to_json()),
            oauth_refresh_token=cipher.encrypt("1//r"),
            oauth_token_expires_at=utc_now() + mirror_in if mirror_in is not None else None,
        )

    return _make


async def test_expiry_mirror_inside_buffer_triggers_refresh(
    service: TokenService, bundle_without_expiry, driver: MagicMock
) -> None:
    bundle_without_expiry(timedelta(minutes=4))
    assert await service.get_valid_access_token("user-1", EmailProvider.GMAIL) == "ya29.fresh"
    driver.refresh_token.assert_awaited_once_with("1//r")


async def test_expiry_mirror_outside_buffer_keeps_stored_token(
    service: TokenService, bundle_without_expiry, driver: MagicMock
) -> None:
    bundle_without_expiry(timedelta(minutes=6))
    assert await service.get_valid_access_token("user-1", EmailProvider.GMAIL) == "ya29.stored"
    driver.refresh_token.assert_not_awaited()


async def test_unknown_expiry_counts_as_valid(
    service: TokenService, bundle_without_expiry, driver: MagicMock
) -> None:
    bundle_without_expiry(None)
    assert await service.get_valid_access_token("user-1", EmailProvider.GMAIL) == "ya29.stored"
    driver.refresh_token.assert_not_awaited()


async def test_non_json_refresh_response_returns_none_without_expiring(
    repo, cipher, cache, gmail_record
) -> None:
    http_client = httpx.AsyncClient(
        transport=httpx.MockTransport(
            lambda request: httpx.Response(200, text="<html>proxy</html>")
        )
    )
    google = GoogleDriver(
        "cid", "csecret", "http://localhost:3000/cb", http_client=http_client
    )
    service = TokenService(repo, cipher, cache=cache, driver_factory=lambda provider: google)
    record = gmail_record(timedelta(minutes=1))

    assert await service.get_valid_access_token("user-1", EmailProvider.GMAIL) is None

    assert record.status == IntegrationStatus.ACTIVE
    assert cache.invalidated == []


async def test_missing_client_credentials_during_refresh_returns_none(
    service: TokenService, gmail_record, driver: MagicMock
) -> None:
    gmail_record(timedelta(minutes=1))
    driver.refresh_token.side_effect = ConfigurationError("Google OAuth credentials not configured")
    assert await service.get_valid_access_token("user-1", EmailProvider.GMAIL) is None
