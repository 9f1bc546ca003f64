"""Tests for cache keys and CacheService degradation (no Redis server needed)."""

import json
from unittest.mock import AsyncMock

import pytest
import redis.asyncio as redis

from veer.infrastructure.cache.keys import email_integrations_key, user_integrations_tag
from veer.infrastructure.cache.redis_cache import CacheService


class FakeRedis:
    """Minimal async Redis double over a dict."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def setex(self, key: str, ttl: int, value: str) -> None:
        self.data[key] = value
        self.ttls[key] = ttl

    async def delete(self, key: str) -> int:
        return 1 if self.data.pop(key, None) is not None else 0

    async def scan_iter(self, match: str):
        prefix = match.rstrip("*")
        for key in list(self.data):
            if key.startswith(prefix):
                yield key

    async def unlink(self, *keys: str) -> int:
        return sum(1 for k in keys if self.data.pop(k, None) is not None)

    async def aclose(self) -> None:
        return None


def test_listing_key_is_the_user_tag() -> None:
    assert user_integrations_tag("user-1") == "user-integrations-user-1"
    assert email_integrations_key("user-1") == user_integrations_tag("user-1")


@pytest.mark.parametrize("user_id", ["", "has space", "tab\tbed"])
def test_key_components_must_be_tokens(user_id: str) -> None:
    with pytest.raises(ValueError):
        user_integrations_tag(user_id)


async def test_unconnected_cache_is_a_silent_miss() -> None:
    cache = CacheService()
    assert not cache.is_available()
    assert await cache.get("user-integrations-user-1") is None
    assert await cache.set("user-integrations-user-1", {"a": 1}) is False
    assert await cache.delete("user-integrations-user-1") is False
    assert await cache.invalidate_tag("user-integrations-user-1") == 0


async def test_set_then_get_round_trips_json_with_ttl() -> None:
    client = FakeRedis()
    cache = CacheService(redis_client=client)
    assert await cache.set("k", {"active_provider": "gmail"}, ttl=300)
    assert client.ttls["k"] == 300
    assert json.loads(client.data["k"]) == {"active_provider": "gmail"}
    assert await cache.get("k") == {"active_provider": "gmail"}


async def test_invalidate_tag_drops_tag_and_derived_keys() -> None:
    client = FakeRedis()
    client.data = {
        "user-integrations-user-1": "{}",
        "user-integrations-user-1:calendar": "{}",
        "user-integrations-user-2": "{}",
    }
    cache = CacheService(redis_client=client)

    removed = await cache.invalidate_tag("user-integrations-user-1")

    assert removed == 2
    assert list(client.data) == ["user-integrations-user-2"]


async def test_redis_errors_degrade_to_miss() -> None:
    client = AsyncMock()
    client.get.side_effect = redis.ResponseError("WRONGTYPE")
    client.setex.side_effect = redis.ResponseError("OOM")
    cache = CacheService(redis_client=client)
    assert await cache.get("k") is None
    assert await cache.set("k", 1) is False


async def test_dropped_connection_without_server_disables_cache(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    client = AsyncMock()
    client.get.side_effect = redis.ConnectionError("reset by peer")
    cache = CacheService(redis_client=client)

    async def refuse(self) -> None:
        self._connected = False

    monkeypatch.setattr(CacheService, "connect", refuse)

    assert await cache.get("k") is None
    assert not cache.is_available()
