from __future__ import annotations

import asyncio
import fnmatch

from creatorhub.services.cache import (
    CacheService,
    InMemoryCacheService,
    RedisCacheService,
)


class _FakeRedis:
    """Just enough of redis.asyncio.Redis for RedisCacheService."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def setex(self, key: str, ttl: int, value: str) -> None:
        self.data[key] = value
        self.ttls[key] = ttl

    async def delete(self, *keys: str) -> None:
        for key in keys:
            self.data.pop(key, None)

    async def scan(self, cursor: int, match: str, count: int):
        return 0, [k for k in self.data if fnmatch.fnmatch(k, match)]


def test_in_memory_roundtrip_and_delete() -> None:
    cache = InMemoryCacheService()
    asyncio.run(cache.set("tenant:host:a", "1", 60))
    assert asyncio.run(cache.get("tenant:host:a")) == "1"

    asyncio.run(cache.delete("tenant:host:a"))
    assert asyncio.run(cache.get("tenant:host:a")) is None


def test_in_memory_zero_ttl_stores_nothing() -> None:
    cache = InMemoryCacheService()
    asyncio.run(cache.set("k", "v", 0))
    assert cache._store == {}


def test_in_memory_expired_entry_is_a_miss() -> None:
    cache = InMemoryCacheService()
    cache._store["k"] = ("v", 0.0)
    assert asyncio.run(cache.get("k")) is None
    assert "k" not in cache._store


def test_in_memory_delete_pattern() -> None:
    cache = InMemoryCacheService()
    asyncio.run(cache.set("tenant:host:a", "1", 60))
    asyncio.run(cache.set("tenant:host:b", "2", 60))
    asyncio.run(cache.set("other", "3", 60))

    asyncio.run(cache.delete_pattern("tenant:*"))

    assert list(cache._store) == ["other"]


def test_redis_cache_prefixes_keys() -> None:
    redis = _FakeRedis()
    cache = RedisCacheService(redis)

    asyncio.run(cache.set("tenant:host:a", "1", 300))

    assert redis.data == {"cache:tenant:host:a": "1"}
    assert redis.ttls == {"cache:tenant:host:a": 300}
    assert asyncio.run(cache.get("tenant:host:a")) == "1"


def test_redis_cache_delete_pattern_stays_in_namespace() -> None:
    redis = _FakeRedis()
    redis.data["tenant:host:a"] = "foreign"
    cache = RedisCacheService(redis)
    asyncio.run(cache.set("tenant:host:a", "1", 300))

    asyncio.run(cache.delete_pattern("tenant:*"))

    assert redis.data == {"tenant:host:a": "foreign"}


def test_both_backends_satisfy_protocol() -> None:
    assert isinstance(InMemoryCacheService(), CacheService)
    assert isinstance(RedisCacheService(_FakeRedis()), CacheService)
