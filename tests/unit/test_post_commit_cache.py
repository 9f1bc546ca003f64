"""Tests for tag invalidation deferred to the end of the request transaction."""

from unittest.mock import MagicMock

import pytest

from veer.domain.enums import IntegrationStatus
from veer.infrastructure.cache.keys import email_integrations_key, user_integrations_tag
from veer.infrastructure.cache.post_commit import PostCommitCache
from veer.infrastructure.persistence.database import run_after_commit, run_commit_callbacks
from veer.infrastructure.services.integration_service import IntegrationService


@pytest.fixture
def session() -> MagicMock:
    session = MagicMock()
    session.info = {}
    return session


async def test_commit_callbacks_run_in_order_once(session: MagicMock) -> None:
    calls: list[str] = []

    async def first() -> None:
        calls.append("first")

    async def second() -> None:
        calls.append("second")

    run_after_commit(session, first)
    run_after_commit(session, second)
    await run_commit_callbacks(session)
    await run_commit_callbacks(session)

    assert calls == ["first", "second"]


async def test_invalidation_waits_for_commit(cache, session: MagicMock) -> None:
    deferred = PostCommitCache(cache, session)

    assert await deferred.invalidate_tag("user-integrations-user-1") == 0
    assert await deferred.invalidate_tag("user-integrations-user-1") == 0
    assert cache.invalidated == []

    await run_commit_callbacks(session)
    assert cache.invalidated == ["user-integrations-user-1"]


async def test_reads_and_writes_go_straight_to_the_cache(cache, session: MagicMock) -> None:
    deferred = PostCommitCache(cache, session)

    await deferred.set("k", {"v": 1}, ttl=60)
    assert await deferred.get("k") == {"v": 1}
    assert await deferred.delete("k") is True
    assert deferred.is_available()
    assert session.info == {}


async def test_listing_cached_mid_transaction_is_dropped_after_commit(
    repo, dispatcher, cipher, cache, principal, smtp_record, session: MagicMock
) -> None:
    smtp_record(status=IntegrationStatus.ACTIVE)
    service = IntegrationService(repo, dispatcher, cipher, cache=PostCommitCache(cache, session))

    await service.toggle(principal, "custom", False)
    assert cache.invalidated == []
    # A concurrent request cached the listing before this transaction committed.
    stale = await service.list_email_integrations(principal)
    cache.store[email_integrations_key("user-1")] = {**stale.to_dict(), "active_provider": "custom"}

    await run_commit_callbacks(session)

    assert cache.invalidated == [user_integrations_tag("user-1")]
    assert email_integrations_key("user-1") not in cache.store
    assert (await service.list_email_integrations(principal)).active_provider is None
