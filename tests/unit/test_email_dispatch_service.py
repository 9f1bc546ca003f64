"""Tests for EmailDispatchService (notification path through the active provider)."""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from veer.domain.enums import EmailProvider, IntegrationStatus
from veer.domain.exceptions import InvariantViolation
from veer.infrastructure.external.email.protocols import DeliveryResult, OutgoingEmail
from veer.infrastructure.services.email_dispatch_service import EmailDispatchService
from veer.shared.utils.datetime import utc_now

MESSAGE = OutgoingEmail(subject="New submission", body_text="Hi", to=["owner@example.com"])


@pytest.fixture
def sender() -> MagicMock:
    sender = MagicMock()
    sender.send = AsyncMock(return_value=DeliveryResult(delivered=True, accepted=["owner@example.com"]))
    sender.test = AsyncMock(return_value=DeliveryResult(delivered=True))
    return sender


@pytest.fixture
def factory(sender: MagicMock) -> MagicMock:
    factory = MagicMock()
    factory.create_provider.return_value = sender
    return factory


async def test_send_with_active_provider_uses_active_record(
    repo, factory: MagicMock, sender: MagicMock, make_record, smtp_record
) -> None:
    make_record(EmailProvider.GMAIL, status=IntegrationStatus.INACTIVE, oauth_token="sealed")
    active = smtp_record(status=IntegrationStatus.ACTIVE)

    result = await EmailDispatchService(repo, factory).send_with_active_provider("user-1", MESSAGE)

    assert result.delivered
    factory.create_provider.assert_called_once_with(EmailProvider.CUSTOM)
    sender.send.assert_awaited_once_with(active, MESSAGE)


async def test_send_with_no_active_provider_is_an_invariant_violation(
    repo, factory: MagicMock, smtp_record
) -> None:
    smtp_record(status=IntegrationStatus.INACTIVE)
    with pytest.raises(InvariantViolation, match="No active email integration"):
        await EmailDispatchService(repo, factory).send_with_active_provider("user-1", MESSAGE)


async def test_several_active_records_use_most_recently_updated(
    repo, factory: MagicMock, sender: MagicMock, make_record
) -> None:
    make_record(
        EmailProvider.GMAIL,
        status=IntegrationStatus.ACTIVE,
        oauth_token="sealed",
        updated_at=utc_now() - timedelta(minutes=5),
    )
    newest = make_record(EmailProvider.OUTLOOK, status=IntegrationStatus.ACTIVE, oauth_token="sealed")

    await EmailDispatchService(repo, factory).send_with_active_provider("user-1", MESSAGE)

    sender.send.assert_awaited_once_with(newest, MESSAGE)


async def test_send_test_email_dispatches_by_provider(
    repo, factory: MagicMock, sender: MagicMock, make_record
) -> None:
    record = make_record(EmailProvider.OUTLOOK, oauth_token="sealed")
    await EmailDispatchService(repo, factory).send_test_email(record, "owner@example.com")
    factory.create_provider.assert_called_once_with(EmailProvider.OUTLOOK)
    sender.test.assert_awaited_once_with(record, "owner@example.com")
