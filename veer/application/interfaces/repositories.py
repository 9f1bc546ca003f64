"""Repository interfaces (ports) for the application layer.

Protocols define contracts that infrastructure implementations must fulfill (DIP).
Records are mutable objects exposing the integration columns; services change
attributes and pass the record back to update().
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from veer.domain.entities.integration import IntegrationLike
from veer.domain.enums import EmailProvider, IntegrationStatus, IntegrationType


class IntegrationRecord(IntegrationLike, Protocol):
    """A persisted integration row."""

    id: str
    type: Any
    connected_at: datetime | None
    created_at: datetime
    updated_at: datetime


# Integration repository interface
class IIntegrationRepository(Protocol):
    """Protocol for the integration record store (DIP)."""

    async def get_by_key(
        self, user_id: str, type: IntegrationType, provider: EmailProvider
    ) -> IntegrationRecord | None:
        """Return the record for (user, type, provider), or None."""

    async def list_for_user(
        self,
        user_id: str,
        type: IntegrationType,
        status: IntegrationStatus | None = None,
    ) -> list[IntegrationRecord]:
        """Return the user's records of a type, optionally filtered by status."""

    async def create(self, obj: Any) -> Any:
        """Persist a new record."""

    async def update(self, obj: Any) -> Any:
        """Persist attribute changes made to a record."""

    async def upsert(
        self,
        user_id: str,
        type: IntegrationType,
        provider: EmailProvider,
        create_values: dict[str, Any],
        update_values: dict[str, Any],
    ) -> IntegrationRecord:
        """Create the record with create_values or update it with update_values."""

    async def delete(self, obj: Any) -> None:
        """Delete a record."""

    async def update_many(
        self,
        user_id: str,
        type: IntegrationType,
        values: dict[str, Any],
        status: IntegrationStatus | None = None,
        exclude_provider: EmailProvider | None = None,
    ) -> int:
        """Bulk update matching records; returns affected row count."""
