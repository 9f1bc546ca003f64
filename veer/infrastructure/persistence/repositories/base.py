"""Generic unit-of-work helpers shared by repositories.

Writes flush but never commit; the request dependency owns the transaction.
"""

from typing import Generic, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from veer.infrastructure.persistence.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Create, update and delete for one mapped model on a request session."""

    def __init__(self, db: AsyncSession, model: type[ModelType]) -> None:
        self.db = db
        self.model = model

    async def create(self, obj: ModelType) -> ModelType:
        self.db.add(obj)
        await self.db.flush()
        await self.db.refresh(obj)
        return obj

    async def update(self, obj: ModelType) -> ModelType:
        """Flush attribute changes; detached instances are merged into the session first.

        The refreshed instance is returned so server-side values (updated_at)
        are visible to the caller.
        """
        if obj not in self.db:
            obj = await self.db.merge(obj)
        await self.db.flush()
        await self.db.refresh(obj)
        return obj

    async def delete(self, obj: ModelType) -> None:
        await self.db.delete(obj)
        await self.db.flush()
