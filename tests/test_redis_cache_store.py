"""Tests for the Redis cache store against an in-process stand-in client."""

import json
from fnmatch import fnmatchcase
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from portfolio_api.adapters.cache import RedisCacheStore, create_cache_store
from portfolio_api.adapters.cache.in_memory import InMemoryCacheStore
from portfolio_api.core.config import CacheSettings
from portfolio_api.core.errors import CacheBackendError, ValidationAppError


class FakeRedis:
    """The subset of ``redis.asyncio.Redis`` the store uses."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.expiry_ms: dict[str, int] = {}
        self.closed = False

    async def get(self, name: str) -> str | None:
        return self.data.get(name)

    async def set(self, name: str, value: str, px: int | None = None) -> bool:
        self.data[name] = value
        if px is not None:
            self.expiry_ms[name] = px
        return True

    async def delete(self, *names: str) -> int:
        removed = 0
        for name in names:
            if self.data.pop(name, None) is not None:
                removed += 1
        return removed

    async def scan_iter(self, match: str | None = None, count: int | None = None):
        for name in list(self.data):
            if match is None or fnmatchcase(name, match):
                yield name

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def redis_client() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def store(redis_client, clock) -> RedisCacheStore:
    return RedisCacheStore(redis_client, key_prefix="cache:", clock=clock)


@pytest.mark.asyncio
async def test_set_writes_prefixed_json_document_with_native_expiry(store, redis_client, clock) -> None:
    await store.set("github:alice:profile", {"login": "alice"}, 1.5)

    raw = redis_client.data["cache:github:alice:profile"]
    document = json.loads(raw)
    assert document["key"] == "github:alice:profile"
    assert document["value"] == {"login": "alice"}
    assert document["expires_at"] == clock.now + 1.5
    assert redis_client.expiry_ms["cache:github:alice:profile"] == 1500


@pytest.mark.asyncio
async def test_get_returns_live_entry(store) -> None:
    await store.set("k", [1, 2, 3], 60)

    entry = await store.get("k")

    assert entry is not None
    assert entry.value == [1, 2, 3]


@pytest.mark.asyncio
async def test_stale_document_is_a_miss(store, clock) -> None:
    await store.set("k", "v", 10)
    clock.advance(11)

    assert await store.get("k") is None
    assert await store.ttl("k") is None


@pytest.mark.asyncio
async def test_ttl_reports_remaining_seconds(store, clock) -> None:
    await store.set("k", "v", 100)
    clock.advance(40)

    assert await store.ttl("k") == pytest.approx(60)


@pytest.mark.asyncio
async def test_delete_pattern_is_scoped_to_prefix(store, redis_client) -> None:
    await store.set("github:alice:profile", 1, 60)
    await store.set("github:alice:repos", 2, 60)
    await store.set("github:bob:profile", 3, 60)
    redis_client.data["other:github:alice:profile"] = "foreign"

    assert await store.delete_pattern("github:alice:*") == 2
    assert "cache:github:bob:profile" in redis_client.data
    assert "other:github:alice:profile" in redis_client.data


@pytest.mark.asyncio
async def test_delete_pattern_without_matches(store) -> None:
    assert await store.delete_pattern("nothing:*") == 0


@pytest.mark.asyncio
async def test_count_clear_and_sweep(store) -> None:
    await store.set("a", 1, 60)
    await store.set("b", 2, 60)

    assert await store.count() == {"total": 2, "active": 2, "expired": 0}
    assert await store.sweep() == 0
    assert await store.clear() == 2
    assert await store.count() == {"total": 0, "active": 0, "expired": 0}


@pytest.mark.asyncio
async def test_corrupt_document_raises_backend_error(store, redis_client) -> None:
    redis_client.data["cache:k"] = "{not json"

    with pytest.raises(CacheBackendError) as exc_info:
        await store.get("k")

    assert exc_info.value.code == "cache_corrupt_entry"


@pytest.mark.asyncio
async def test_unserializable_value_raises_backend_error(store) -> None:
    with pytest.raises(CacheBackendError) as exc_info:
        await store.set("k", object(), 60)

    assert exc_info.value.code == "cache_unserializable_value"


@pytest.mark.asyncio
async def test_connection_failure_maps_to_backend_error() -> None:
    client = AsyncMock()
    client.get.side_effect = RedisConnectionError("connection refused")
    store = RedisCacheStore(client)

    with pytest.raises(CacheBackendError) as exc_info:
        await store.get("k")

    assert exc_info.value.code == "cache_backend_error"
    assert exc_info.value.details == {"operation": "get"}


@pytest.mark.asyncio
async def test_close_releases_client(store, redis_client) -> None:
    await store.close()

    assert redis_client.closed is True


def test_factory_selects_backend() -> None:
    assert isinstance(create_cache_store(CacheSettings(backend="memory")), InMemoryCacheStore)
    assert isinstance(
        create_cache_store(CacheSettings(backend="redis", redis_url="redis://localhost:6379/0")),
        RedisCacheStore,
    )


def test_factory_rejects_unknown_backend() -> None:
    with pytest.raises(ValidationAppError) as exc_info:
        create_cache_store(CacheSettings(backend="memcached"))

    assert exc_info.value.code == "cache_unknown_backend"
