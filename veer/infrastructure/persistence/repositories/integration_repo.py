"""Integration repository: lookups by (user, type, provider) and bulk status changes."""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from veer.domain.enums import EmailProvider, IntegrationStatus, IntegrationType
from veer.infrastructure.persistence.models.integration import Integration
from veer.infrastructure.persistence.repositories.base import BaseRepository
from veer.shared.utils.generators import generate_cuid


class IntegrationRepository(BaseRepository[Integration]):
    """Integration record store (email, calendar and SMS integrations)."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, Integration)

    async def get_by_key(
        self,
        user_id: str,
        type: IntegrationType,
        provider: EmailProvider,
    ) -> Integration | None:
        """Return the record for (user, type, provider), or None."""
        result = await self.db.execute(
            select(Integration).where(
                Integration.user_id == user_id,
                Integration.type == type,
                Integration.provider == provider,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_user(
        self,
        user_id: str,
        type: IntegrationType,
        status: IntegrationStatus | None = None,
    ) -> list[Integration]:
        """Return the user's records of a type, optionally filtered by status."""
        stmt = select(Integration).where(
            Integration.user_id == user_id, Integration.type == type
        )
        if status is not None:
            stmt = stmt.where(Integration.status == status)
        result = await self.db.execute(stmt.order_by(Integration.created_at))
        return list(result.scalars().all())

    async def upsert(
        self,
        user_id: str,
        type: IntegrationType,
        provider: EmailProvider,
        create_values: dict[str, Any],
        update_values: dict[str, Any],
    ) -> Integration:
        """Insert the record or update it in place (INSERT ... ON CONFLICT DO UPDATE).

        create_values apply only to a new row; update_values only to an
        existing one.
        """
        stmt = (
            pg_insert(Integration)
            .values(
                id=generate_cuid(),
                user_id=user_id,
                type=type,
                provider=provider,
                **create_values,
            )
            .on_conflict_do_update(
                constraint="uq_integration_user_type_provider",
                set_={**update_values, "updated_at": func.now()},
            )
            .returning(Integration)
        )
        result = await self.db.execute(
            select(Integration)
            .from_statement(stmt)
            .execution_options(populate_existing=True)
        )
        record = result.scalar_one()
        return record

    async def update_many(
        self,
        user_id: str,
        type: IntegrationType,
        values: dict[str, Any],
        status: IntegrationStatus | None = None,
        exclude_provider: EmailProvider | None = None,
    ) -> int:
        """Bulk update the user's records of a type. Returns affected row count."""
        stmt = update(Integration).where(
            Integration.user_id == user_id, Integration.type == type
        )
        if status is not None:
            stmt = stmt.where(Integration.status == status)
        if exclude_provider is not None:
            stmt = stmt.where(Integration.provider != exclude_provider)
        result = await self.db.execute(
            stmt.values(**values).execution_options(synchronize_session="fetch")
        )
        return int(result.rowcount or 0)
