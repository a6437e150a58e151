"""
kvcache - Redis Key-Value Stores

Synchronous and asynchronous stores over redis-py, for standalone servers and
Redis Cluster:
- Values are raw bytes (the client must not decode responses)
- TTLs are applied with SET ... PX <milliseconds>
- Batched writes go through one pipeline (MULTI/EXEC on a standalone server)
- Key scan uses SCAN MATCH per node; on a cluster every node from get_nodes()
  is scanned, replicas included, so the same key can be reported twice

Every redis.exceptions.RedisError and RedisClusterException is logged and
re-raised as StoreError.
No retries are attempted here; configure them on the redis client.

Requires: redis>=5.0

Example:
    store = RedisKeyValueStore.from_url("redis://localhost:6379/0")
    provider = CachingProvider(store)
"""

from __future__ import annotations

import logging
from collections.abc import Generator, Sequence
from contextlib import contextmanager
from typing import Any

from ...errors import StoreError
from ..interface import AsyncKeyValueStore, KeyValueStore

logger = logging.getLogger(__name__)

try:
    from redis import Redis
    from redis.asyncio import Redis as AsyncRedis
    from redis.asyncio.cluster import RedisCluster as AsyncRedisCluster
    from redis.cluster import RedisCluster
    from redis.exceptions import RedisClusterException, RedisError
except ImportError as e:  # pragma: no cover
    raise ImportError(
        "Redis client is required but not installed. "
        "Install with: pip install 'redis>=5.0.0' or add 'redis' to your dependencies."
    ) from e


DEFAULT_SCAN_COUNT = 1000

# RedisClusterException (cluster discovery and slot errors) is not a RedisError
REDIS_ERRORS: tuple[type[Exception], ...] = (RedisError, RedisClusterException)


@contextmanager
def _store_call(operation: str, **details: Any) -> Generator[None, None, None]:
    """Translate redis errors raised inside the block into StoreError."""
    try:
        yield
    except REDIS_ERRORS as e:
        logger.error(
            f"Redis {operation} failed: {e}",
            extra={"operation": operation, "error": str(e), **details},
            exc_info=True,
        )
        raise StoreError(operation, e, details) from e


def _decode_key(key: bytes | str) -> str:
    return key.decode("utf-8") if isinstance(key, bytes) else key


class RedisKeyValueStore(KeyValueStore):
    """Synchronous store over redis.Redis or redis.cluster.RedisCluster."""

    def __init__(self, client: Redis | RedisCluster, scan_count: int = DEFAULT_SCAN_COUNT) -> None:
        """
        Wrap an existing client.

        Args:
            client: Connected redis client created with decode_responses=False
            scan_count: COUNT hint passed to SCAN
        """
        self._client = client
        self.scan_count = max(1, int(scan_count))

    @classmethod
    def from_url(
        cls,
        redis_url: str,
        cluster: bool = False,
        max_connections: int = 10,
        socket_timeout: int = 5,
        scan_count: int = DEFAULT_SCAN_COUNT,
    ) -> RedisKeyValueStore:
        """
        Create a store from a connection URL.

        Args:
            redis_url: e.g. redis://localhost:6379/0 or rediss:// for TLS
            cluster: Connect with RedisCluster instead of a single-server client
            max_connections: Connection pool size (per node on a cluster)
            socket_timeout: Socket timeout in seconds
            scan_count: COUNT hint passed to SCAN
        """
        if not redis_url:
            raise ValueError("redis_url is required")

        client_cls = RedisCluster if cluster else Redis
        client = client_cls.from_url(
            url=redis_url,
            decode_responses=False,
            max_connections=max_connections,
            socket_timeout=socket_timeout,
        )
        return cls(client, scan_count=scan_count)

    @property
    def client(self) -> Redis | RedisCluster:
        return self._client

    @property
    def is_distributed(self) -> bool:
        return isinstance(self._client, RedisCluster)

    def get(self, key: str) -> bytes | None:
        with _store_call("get", key=key):
            return self._client.get(key)

    def get_many(self, keys: Sequence[str]) -> list[bytes | None]:
        with _store_call("get_many", key_count=len(keys)):
            if isinstance(self._client, RedisCluster):
                # Keys may live in different slots
                return list(self._client.mget_nonatomic(list(keys)))
            return list(self._client.mget(list(keys)))

    def set(self, key: str, data: bytes, ttl_ms: int) -> None:
        with _store_call("set", key=key, ttl_ms=ttl_ms):
            self._client.set(key, data, px=ttl_ms)

    def set_many(self, items: Sequence[tuple[str, bytes, int]]) -> None:
        with _store_call("set_many", key_count=len(items)):
            if isinstance(self._client, RedisCluster):
                pipe = self._client.pipeline()
            else:
                pipe = self._client.pipeline(transaction=True)

            for key, data, ttl_ms in items:
                pipe.set(key, data, px=ttl_ms)
            pipe.execute()

    def delete(self, key: str) -> None:
        with _store_call("delete", key=key):
            self._client.delete(key)

    def delete_many(self, keys: Sequence[str]) -> None:
        if not keys:
            return
        with _store_call("delete_many", key_count=len(keys)):
            self._client.delete(*keys)

    def exists(self, key: str) -> bool:
        with _store_call("exists", key=key):
            return bool(self._client.exists(key))

    def list_nodes(self) -> list[Any]:
        if isinstance(self._client, RedisCluster):
            with _store_call("list_nodes"):
                return list(self._client.get_nodes())
        return [self._client]

    def scan_keys_by_pattern(self, pattern: str, node: Any) -> list[str]:
        with _store_call("scan", pattern=pattern):
            if isinstance(self._client, RedisCluster):
                keys = self._client.scan_iter(match=pattern, count=self.scan_count, target_nodes=node)
            else:
                keys = self._client.scan_iter(match=pattern, count=self.scan_count)
            return [_decode_key(key) for key in keys]

    def close(self) -> None:
        try:
            self._client.close()
            logger.info("Closed Redis key-value store")
        except REDIS_ERRORS as e:
            logger.warning(f"Error closing Redis client: {e}", extra={"error": str(e)})


class AsyncRedisKeyValueStore(AsyncKeyValueStore):
    """Asynchronous store over redis.asyncio.Redis or redis.asyncio.cluster.RedisCluster."""

    def __init__(self, client: AsyncRedis | AsyncRedisCluster, scan_count: int = DEFAULT_SCAN_COUNT) -> None:
        self._client = client
        self.scan_count = max(1, int(scan_count))

    @classmethod
    def from_url(
        cls,
        redis_url: str,
        cluster: bool = False,
        max_connections: int = 10,
        socket_timeout: int = 5,
        scan_count: int = DEFAULT_SCAN_COUNT,
    ) -> AsyncRedisKeyValueStore:
        """Create a store from a connection URL (lazy connection; connects on first command)."""
        if not redis_url:
            raise ValueError("redis_url is required")

        client_cls = AsyncRedisCluster if cluster else AsyncRedis
        client = client_cls.from_url(  # type: ignore[call-overload]
            url=redis_url,
            decode_responses=False,
            max_connections=max_connections,
            socket_timeout=socket_timeout,
        )
        return cls(client, scan_count=scan_count)

    @property
    def client(self) -> AsyncRedis | AsyncRedisCluster:
        return self._client

    @property
    def is_distributed(self) -> bool:
        return isinstance(self._client, AsyncRedisCluster)

    async def get(self, key: str) -> bytes | None:
        with _store_call("get", key=key):
            return await self._client.get(key)

    async def get_many(self, keys: Sequence[str]) -> list[bytes | None]:
        with _store_call("get_many", key_count=len(keys)):
            if isinstance(self._client, AsyncRedisCluster):
                return list(await self._client.mget_nonatomic(list(keys)))
            return list(await self._client.mget(list(keys)))

    async def set(self, key: str, data: bytes, ttl_ms: int) -> None:
        with _store_call("set", key=key, ttl_ms=ttl_ms):
            await self._client.set(key, data, px=ttl_ms)

    async def set_many(self, items: Sequence[tuple[str, bytes, int]]) -> None:
        with _store_call("set_many", key_count=len(items)):
            if isinstance(self._client, AsyncRedisCluster):
                pipe = self._client.pipeline()
            else:
                pipe = self._client.pipeline(transaction=True)

            for key, data, ttl_ms in items:
                pipe.set(key, data, px=ttl_ms)
            await pipe.execute()

    async def delete(self, key: str) -> None:
        with _store_call("delete", key=key):
            await self._client.delete(key)

    async def delete_many(self, keys: Sequence[str]) -> None:
        if not keys:
            return
        with _store_call("delete_many", key_count=len(keys)):
            await self._client.delete(*keys)

    async def exists(self, key: str) -> bool:
        with _store_call("exists", key=key):
            return bool(await self._client.exists(key))

    async def list_nodes(self) -> list[Any]:
        if isinstance(self._client, AsyncRedisCluster):
            with _store_call("list_nodes"):
                # Node discovery is lazy on the async cluster client
                await self._client.initialize()
                return list(self._client.get_nodes())
        return [self._client]

    async def scan_keys_by_pattern(self, pattern: str, node: Any) -> list[str]:
        with _store_call("scan", pattern=pattern):
            if isinstance(self._client, AsyncRedisCluster):
                keys = self._client.scan_iter(match=pattern, count=self.scan_count, target_nodes=node)
            else:
                keys = self._client.scan_iter(match=pattern, count=self.scan_count)
            return [_decode_key(key) async for key in keys]

    async def close(self) -> None:
        try:
            await self._client.aclose()
            logger.info("Closed async Redis key-value store")
        except REDIS_ERRORS as e:
            logger.warning(f"Error closing async Redis client: {e}", extra={"error": str(e)})
