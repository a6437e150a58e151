"""
kvcache - Redis Provider Integration Tests

Runs the caching providers against a real Redis server: PX expirations,
pipelined batches, SCAN-based prefix operations and typed decoding.

Requires Redis server running on localhost:6379 (or TEST_REDIS_URL env var).
Uses database 15 and flushes it around every test.
"""

import asyncio
from collections.abc import AsyncGenerator, Generator
from datetime import timedelta

import pytest
from pydantic import BaseModel

from kvcache.cache.backends.redis import AsyncRedisKeyValueStore, RedisKeyValueStore
from kvcache.cache.provider import AsyncCachingProvider, CachingProvider
from kvcache.cache.values import CacheValue

pytestmark = pytest.mark.redis

TTL = timedelta(minutes=5)


class Order(BaseModel):
    id: int
    total: float


class TestRedisCachingProvider:
    """Synchronous provider over a standalone Redis server."""

    @pytest.fixture
    def store(self, test_redis_url: str) -> Generator[RedisKeyValueStore, None, None]:
        store = RedisKeyValueStore.from_url(test_redis_url, max_connections=5, socket_timeout=2, scan_count=10)
        store.client.flushdb()
        yield store
        store.client.flushdb()
        store.close()

    @pytest.fixture
    def provider(self, store: RedisKeyValueStore) -> CachingProvider:
        return CachingProvider(store, name="redis-test")

    def test_set_and_get(self, provider: CachingProvider) -> None:
        provider.set("order:1", Order(id=1, total=9.5), TTL)

        assert provider.get("order:1", Order) == CacheValue.of(Order(id=1, total=9.5))
        assert provider.get("order:2") == CacheValue.no_value()

    def test_expiration_uses_milliseconds(self, provider: CachingProvider, store: RedisKeyValueStore) -> None:
        provider.set("short", "value", timedelta(milliseconds=1500))

        assert 0 < store.client.pttl("short") <= 1500

    def test_set_all_and_get_all(self, provider: CachingProvider) -> None:
        provider.set_all({"a": 1, "b": 2}, TTL)

        assert provider.get_all(["a", "b", "c"]) == {
            "a": CacheValue.of(1),
            "b": CacheValue.of(2),
            "c": CacheValue.no_value(),
        }

    def test_prefix_operations(self, provider: CachingProvider) -> None:
        """Test SCAN-based prefix search across more keys than one SCAN page."""
        provider.set_all({f"user:{i}": i for i in range(50)}, TTL)
        provider.set("order:1", 1, TTL)

        found = provider.get_by_prefix("*user:")
        assert len(found) == 50
        assert found["user:7"] == CacheValue.of(7)

        provider.remove_by_prefix("user:")

        assert provider.get_by_prefix("user:") == {}
        assert provider.exists("order:1") is True

    def test_remove_and_refresh(self, provider: CachingProvider) -> None:
        provider.set("key", "old", TTL)
        provider.refresh("key", "new", TTL)
        assert provider.get("key").value == "new"

        provider.remove("key")
        provider.remove("key")
        assert provider.exists("key") is False

    def test_get_or_set(self, provider: CachingProvider) -> None:
        calls = []

        def retriever() -> dict[str, int]:
            calls.append(1)
            return {"count": 1}

        assert provider.get_or_set("counter", retriever, TTL) == CacheValue.of({"count": 1})
        assert provider.get_or_set("counter", retriever, TTL) == CacheValue.of({"count": 1})
        assert calls == [1]


class TestAsyncRedisCachingProvider:
    """Asynchronous provider over a standalone Redis server."""

    @pytest.fixture
    async def provider(self, test_redis_url: str) -> AsyncGenerator[AsyncCachingProvider, None]:
        store = AsyncRedisKeyValueStore.from_url(test_redis_url, max_connections=5, socket_timeout=2)
        await store.client.flushdb()
        provider = AsyncCachingProvider(store, name="async-redis-test", owns_store=True)
        yield provider
        await store.client.flushdb()
        await provider.close()

    async def test_round_trip(self, provider: AsyncCachingProvider) -> None:
        await provider.set("order:1", Order(id=1, total=2.0), TTL)

        assert (await provider.get("order:1", Order)).value == Order(id=1, total=2.0)

    async def test_prefix_operations(self, provider: AsyncCachingProvider) -> None:
        await provider.set_all({"session:a": "x", "session:b": "y", "other": "z"}, TTL)

        assert set(await provider.get_by_prefix("session")) == {"session:a", "session:b"}

        await provider.remove_by_prefix("session")
        assert await provider.exists("session:a") is False
        assert await provider.exists("other") is True

    async def test_concurrent_get_or_set(self, provider: AsyncCachingProvider) -> None:
        """Test that concurrent misses leave exactly one of the computed values in the store."""

        def make_retriever(value: str):
            async def retriever() -> str:
                await asyncio.sleep(0.01)
                return value

            return retriever

        results = await asyncio.gather(
            provider.get_or_set("race", make_retriever("a"), TTL),
            provider.get_or_set("race", make_retriever("b"), TTL),
        )

        assert {r.value for r in results} <= {"a", "b"}
        assert (await provider.get("race")).value in {"a", "b"}
