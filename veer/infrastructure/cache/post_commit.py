"""Request-scoped cache view whose tag invalidation waits for the transaction commit.

Invalidating inside the transaction lets a concurrent listing re-cache rows
that are about to change; deferring to after the commit closes that window.
"""

from __future__ import annotations

from functools import partial
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from veer.infrastructure.cache.cache_protocol import CacheProtocol
from veer.infrastructure.persistence.database import run_after_commit


class PostCommitCache:
    """Delegates reads and writes to the cache; queues invalidate_tag until commit."""

    def __init__(self, cache: CacheProtocol, session: AsyncSession) -> None:
        self._cache = cache
        self._session = session
        self._pending_tags: set[str] = set()

    def is_available(self) -> bool:
        return self._cache.is_available()

    async def get(self, key: str) -> Any:
        return await self._cache.get(key)

    async def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        return await self._cache.set(key, value, ttl=ttl)

    async def delete(self, key: str) -> bool:
        return await self._cache.delete(key)

    async def invalidate_tag(self, tag: str) -> int:
        """Queue tag for invalidation after commit (once per request). Returns 0."""
        if tag not in self._pending_tags:
            self._pending_tags.add(tag)
            run_after_commit(self._session, partial(self._cache.invalidate_tag, tag))
        return 0
