"""Cache: Redis service and cache tag utilities.

Used by the integration service for the integration listing and its
invalidation. PostCommitCache defers tag invalidation until the request
transaction commits. CacheService uses veer.core.config; key format is in keys.py.
"""

from veer.infrastructure.cache.cache_protocol import CacheProtocol
from veer.infrastructure.cache.keys import email_integrations_key, user_integrations_tag
from veer.infrastructure.cache.post_commit import PostCommitCache
from veer.infrastructure.cache.redis_cache import CacheService

__all__ = [
    "CacheProtocol",
    "CacheService",
    "PostCommitCache",
    "email_integrations_key",
    "user_integrations_tag",
]
