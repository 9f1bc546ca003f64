"""Tests for the SQLAlchemy integration repository's unit-of-work writes (mocked session)."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from veer.domain.enums import EmailProvider, IntegrationStatus, IntegrationType
from veer.infrastructure.persistence.models import Integration
from veer.infrastructure.persistence.repositories import IntegrationRepository


@pytest.fixture
def db() -> MagicMock:
    db = MagicMock()
    db.flush = AsyncMock()
    db.refresh = AsyncMock()
    db.merge = AsyncMock(side_effect=lambda obj: obj)
    db.delete = AsyncMock()
    return db


def _integration() -> Integration:
    return Integration(
        user_id="user-1",
        type=IntegrationType.EMAIL,
        provider=EmailProvider.CUSTOM,
        status=IntegrationStatus.INACTIVE,
        smtp_host="smtp.example.com",
    )


async def test_create_adds_flushes_and_refreshes(db: MagicMock) -> None:
    record = _integration()

    created = await IntegrationRepository(db).create(record)

    assert created is record
    db.add.assert_called_once_with(record)
    db.flush.assert_awaited_once()
    db.refresh.assert_awaited_once_with(record)


async def test_update_merges_detached_records(db: MagicMock) -> None:
    db.__contains__.return_value = False
    record = _integration()

    await IntegrationRepository(db).update(record)

    db.merge.assert_awaited_once_with(record)
    db.flush.assert_awaited_once()


async def test_update_of_attached_record_skips_merge(db: MagicMock) -> None:
    db.__contains__.return_value = True

    await IntegrationRepository(db).update(_integration())

    db.merge.assert_not_awaited()
    db.refresh.assert_awaited_once()


async def test_delete_flushes(db: MagicMock) -> None:
    record = _integration()
    await IntegrationRepository(db).delete(record)
    db.delete.assert_awaited_once_with(record)
    db.flush.assert_awaited_once()
