"""Service interfaces (ports) for the application layer.

Protocols define contracts for application services (DIP).
"""

from __future__ import annotations

from typing import Protocol


# Cache invalidation bus interface
class ICacheInvalidator(Protocol):
    """Protocol for invalidating cached reads by tag (e.g. user-integrations-{user_id})."""

    async def invalidate_tag(self, tag: str) -> int:
        """Drop everything cached under tag. Must not raise when the cache is down."""


class NullCacheInvalidator:
    """Invalidator used when no cache is configured."""

    async def invalidate_tag(self, tag: str) -> int:
        return 0
