"""
kvcache - Caching Providers

Translates generic cache operations into calls against a key-value store:
- typed get / get-or-compute (read-through) with explicit CacheValue misses
- set / refresh / remove / exists with strictly positive expirations
- bulk get_all / set_all / remove_all in one store request each
- prefix search and removal through a per-node key scan

CachingProvider and AsyncCachingProvider expose the same operations with the
same semantics; the async twin awaits every store call.

Known races (neither provider takes a lock):
- get_or_set: concurrent misses for one key each run the retriever and write;
  the last write to land at the store wins.
- refresh: remove and set are two calls, exists() may observe the gap.
- prefix operations: the scan is a point-in-time enumeration, not a transaction.
  Keys written after the scan are not touched; keys removed after the scan
  come back from get_by_prefix as CacheValue.no_value().

Write policy for get_or_set: the computed value is stored before it is
returned. If the store write fails the error propagates and the value is not
returned.

Example:
    provider = CachingProvider(RedisKeyValueStore.from_url("redis://localhost:6379"))
    provider.set("user:1", {"name": "Ada"}, timedelta(minutes=5))
    cached = provider.get("user:1")
    if cached.has_value:
        ...
"""

from __future__ import annotations

import inspect
import logging
import threading
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from typing import Any, TypeVar

from ..errors import InvalidArgumentError
from .interface import AsyncKeyValueStore, KeyValueStore, Serializer
from .keys import (
    Expiration,
    check_key,
    check_keys,
    check_mapping,
    check_value,
    expiration_to_ms,
    normalize_prefix,
    usable_keys,
)
from .serializers import JsonSerializer
from .values import CacheValue

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _retrieved_value(result: Any) -> CacheValue[Any]:
    """Interpret what a retriever produced: a CacheValue is taken as-is, None means no value."""
    if isinstance(result, CacheValue):
        result = result.value if result.has_value else None
    if result is None:
        return CacheValue.no_value()
    return CacheValue.of(result)


class _ProviderBase:
    """State and helpers shared by the sync and async providers."""

    def __init__(self, store: Any, serializer: Serializer | None, name: str, owns_store: bool) -> None:
        if store is None:
            raise InvalidArgumentError("store", "must not be None")

        self.name = name
        self._store = store
        self._serializer = serializer or JsonSerializer()
        self._owns_store = owns_store

        # Shared across threads; updated and read under _stats_lock
        self._stats_lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._sets = 0
        self._removes = 0

    @property
    def is_distributed_cache(self) -> bool:
        return bool(self._store.is_distributed)

    @property
    def serializer(self) -> Serializer:
        return self._serializer

    def _decode(self, raw: bytes | None, value_type: Any) -> CacheValue[Any]:
        if raw is None:
            self._record(misses=1)
            return CacheValue.no_value()

        self._record(hits=1)
        return CacheValue.of(self._serializer.deserialize(raw, value_type))

    def _collect(self, keys: Sequence[str], raws: Sequence[bytes | None], value_type: Any) -> dict[str, CacheValue[Any]]:
        # Store multi-gets preserve order; duplicate keys collapse (last one wins)
        result: dict[str, CacheValue[Any]] = {}
        for key, raw in zip(keys, raws, strict=True):
            result[key] = self._decode(raw, value_type)
        return result

    def _encode_all(self, values: Mapping[str, Any], ttl_ms: int) -> list[tuple[str, bytes, int]]:
        return [(key, self._serializer.serialize(value), ttl_ms) for key, value in values.items()]

    @staticmethod
    def _dedupe(keys: Iterable[str]) -> list[str]:
        # The same logical key may be reported by several replica nodes
        return list(dict.fromkeys(keys))

    def _record(self, hits: int = 0, misses: int = 0, sets: int = 0, removes: int = 0) -> None:
        with self._stats_lock:
            self._hits += hits
            self._misses += misses
            self._sets += sets
            self._removes += removes

    def get_stats(self) -> dict[str, Any]:
        """Return in-process operation counters (a consistent snapshot)."""
        with self._stats_lock:
            hits, misses, sets, removes = self._hits, self._misses, self._sets, self._removes

        total_requests = hits + misses
        hit_rate = round((hits / total_requests) * 100, 2) if total_requests else 0.0
        return {
            "provider": self.name,
            "serializer": self._serializer.name,
            "is_distributed_cache": self.is_distributed_cache,
            "hits": hits,
            "misses": misses,
            "hit_rate": hit_rate,
            "sets": sets,
            "removes": removes,
        }


class CachingProvider(_ProviderBase):
    """
    Synchronous caching provider.

    The store handle is injected and shared by every call. The provider only
    closes it when owns_store is True (as when built by the factory).
    """

    def __init__(
        self,
        store: KeyValueStore,
        serializer: Serializer | None = None,
        name: str = "default",
        owns_store: bool = False,
    ) -> None:
        super().__init__(store, serializer, name, owns_store)
        self._store: KeyValueStore = store

    # ------------ Single key ------------

    def get(self, key: str, value_type: type[T] | Any = None) -> CacheValue[T]:
        """
        Fetch and decode a cached value.

        Args:
            key: Cache key
            value_type: Optional expected type used to validate the decoded value

        Returns:
            CacheValue.of(value) on a hit, CacheValue.no_value() on a miss

        Raises:
            InvalidArgumentError: If key is empty
            SerializationError: If the stored bytes cannot be decoded
        """
        check_key(key)

        value = self._decode(self._store.get(key), value_type)
        logger.debug("Cache %s for key '%s'", "hit" if value.has_value else "miss", key, extra={"provider": self.name})
        return value

    def get_or_set(
        self,
        key: str,
        retriever: Callable[[], T | CacheValue[T] | None],
        expiration: Expiration,
        value_type: type[T] | Any = None,
    ) -> CacheValue[T]:
        """
        Read-through get: on a miss, compute the value with retriever and store it.

        Args:
            key: Cache key
            retriever: Called only on a miss. Returning None or CacheValue.no_value()
                means "nothing to cache"; exceptions propagate unchanged.
            expiration: TTL for the computed value (timedelta or seconds, > 0)
            value_type: Optional expected type for decoding a hit

        Returns:
            The cached or freshly computed value, or CacheValue.no_value()
        """
        check_key(key)
        ttl_ms = expiration_to_ms(expiration)
        if retriever is None:
            raise InvalidArgumentError("retriever", "must not be None")

        cached = self._decode(self._store.get(key), value_type)
        if cached.has_value:
            return cached

        computed = _retrieved_value(retriever())
        if not computed.has_value:
            logger.debug("Retriever produced no value for key '%s'", key, extra={"provider": self.name})
            return CacheValue.no_value()

        self._write(key, computed.value, ttl_ms)
        return computed

    def set(self, key: str, value: Any, expiration: Expiration) -> None:
        """Serialize and store a value, overwriting any existing entry."""
        check_key(key)
        check_value(value)
        ttl_ms = expiration_to_ms(expiration)

        self._write(key, value, ttl_ms)

    def _write(self, key: str, value: Any, ttl_ms: int) -> None:
        self._store.set(key, self._serializer.serialize(value), ttl_ms)
        self._record(sets=1)

    def remove(self, key: str) -> None:
        """Delete a key; removing an absent key is a no-op."""
        check_key(key)

        self._store.delete(key)
        self._record(removes=1)

    def exists(self, key: str) -> bool:
        check_key(key)

        return self._store.exists(key)

    def refresh(self, key: str, value: Any, expiration: Expiration) -> None:
        """Remove then set. Two sequential store calls, not atomic."""
        check_key(key)
        check_value(value)
        expiration_to_ms(expiration)

        self.remove(key)
        self.set(key, value, expiration)

    # ------------ Prefix search ------------

    def _search_keys(self, pattern: str) -> list[str]:
        found: list[str] = []
        for node in self._store.list_nodes():
            found.extend(self._store.scan_keys_by_pattern(pattern, node))
        return self._dedupe(found)

    def remove_by_prefix(self, prefix: str) -> None:
        """
        Remove every key starting with prefix.

        Scans the whole key space of every node, so the cost grows with the
        total number of keys in the store, not with the number of matches.
        """
        pattern = normalize_prefix(prefix)

        keys = self._search_keys(pattern)
        if keys:
            self._store.delete_many(keys)
            self._record(removes=len(keys))

        logger.info(
            "Removed %d key(s) matching '%s'",
            len(keys),
            pattern,
            extra={"provider": self.name, "pattern": pattern, "key_count": len(keys)},
        )

    def get_by_prefix(self, prefix: str, value_type: type[T] | Any = None) -> dict[str, CacheValue[T]]:
        """
        Fetch every key starting with prefix.

        The returned key set is exactly the scan result; keys that vanish
        before the fetch map to CacheValue.no_value(). Same full-scan cost as
        remove_by_prefix.
        """
        pattern = normalize_prefix(prefix)

        keys = self._search_keys(pattern)
        if not keys:
            return {}

        return self._collect(keys, self._store.get_many(keys), value_type)

    # ------------ Bulk ------------

    def set_all(self, values: Mapping[str, Any], expiration: Expiration) -> None:
        """Serialize every value, then submit all writes as one batch."""
        ttl_ms = expiration_to_ms(expiration)
        check_mapping(values)

        items = self._encode_all(values, ttl_ms)
        self._store.set_many(items)
        self._record(sets=len(items))

    def get_all(self, keys: Iterable[str], value_type: type[T] | Any = None) -> dict[str, CacheValue[T]]:
        """Fetch several keys with one multi-get; absent keys map to CacheValue.no_value()."""
        key_list = check_keys(keys)
        for key in key_list:
            check_key(key, argument="keys item")

        return self._collect(key_list, self._store.get_many(key_list), value_type)

    def remove_all(self, keys: Iterable[str]) -> None:
        """Delete several keys in one batch. None and empty keys are skipped."""
        key_list = usable_keys(check_keys(keys))
        if not key_list:
            return

        self._store.delete_many(key_list)
        self._record(removes=len(key_list))

    # ------------ Lifecycle ------------

    def close(self) -> None:
        if self._owns_store:
            self._store.close()
            logger.info("Closed store for caching provider '%s'", self.name)


class AsyncCachingProvider(_ProviderBase):
    """
    Asynchronous caching provider.

    Every store call is an await point; nothing else suspends. Retrievers
    passed to get_or_set may be plain callables or coroutine functions.
    """

    def __init__(
        self,
        store: AsyncKeyValueStore,
        serializer: Serializer | None = None,
        name: str = "default",
        owns_store: bool = False,
    ) -> None:
        super().__init__(store, serializer, name, owns_store)
        self._store: AsyncKeyValueStore = store

    # ------------ Single key ------------

    async def get(self, key: str, value_type: type[T] | Any = None) -> CacheValue[T]:
        """Fetch and decode a cached value (see CachingProvider.get)."""
        check_key(key)

        value = self._decode(await self._store.get(key), value_type)
        logger.debug("Cache %s for key '%s'", "hit" if value.has_value else "miss", key, extra={"provider": self.name})
        return value

    async def get_or_set(
        self,
        key: str,
        retriever: Callable[[], T | CacheValue[T] | None | Awaitable[T | CacheValue[T] | None]],
        expiration: Expiration,
        value_type: type[T] | Any = None,
    ) -> CacheValue[T]:
        """Read-through get (see CachingProvider.get_or_set). Awaitable retriever results are awaited."""
        check_key(key)
        ttl_ms = expiration_to_ms(expiration)
        if retriever is None:
            raise InvalidArgumentError("retriever", "must not be None")

        cached = self._decode(await self._store.get(key), value_type)
        if cached.has_value:
            return cached

        result = retriever()
        if inspect.isawaitable(result):
            result = await result

        computed = _retrieved_value(result)
        if not computed.has_value:
            logger.debug("Retriever produced no value for key '%s'", key, extra={"provider": self.name})
            return CacheValue.no_value()

        await self._write(key, computed.value, ttl_ms)
        return computed

    async def set(self, key: str, value: Any, expiration: Expiration) -> None:
        check_key(key)
        check_value(value)
        ttl_ms = expiration_to_ms(expiration)

        await self._write(key, value, ttl_ms)

    async def _write(self, key: str, value: Any, ttl_ms: int) -> None:
        await self._store.set(key, self._serializer.serialize(value), ttl_ms)
        self._record(sets=1)

    async def remove(self, key: str) -> None:
        check_key(key)

        await self._store.delete(key)
        self._record(removes=1)

    async def exists(self, key: str) -> bool:
        check_key(key)

        return await self._store.exists(key)

    async def refresh(self, key: str, value: Any, expiration: Expiration) -> None:
        check_key(key)
        check_value(value)
        expiration_to_ms(expiration)

        await self.remove(key)
        await self.set(key, value, expiration)

    # ------------ Prefix search ------------

    async def _search_keys(self, pattern: str) -> list[str]:
        found: list[str] = []
        for node in await self._store.list_nodes():
            found.extend(await self._store.scan_keys_by_pattern(pattern, node))
        return self._dedupe(found)

    async def remove_by_prefix(self, prefix: str) -> None:
        """Remove every key starting with prefix (full key-space scan, see CachingProvider)."""
        pattern = normalize_prefix(prefix)

        keys = await self._search_keys(pattern)
        if keys:
            await self._store.delete_many(keys)
            self._record(removes=len(keys))

        logger.info(
            "Removed %d key(s) matching '%s'",
            len(keys),
            pattern,
            extra={"provider": self.name, "pattern": pattern, "key_count": len(keys)},
        )

    async def get_by_prefix(self, prefix: str, value_type: type[T] | Any = None) -> dict[str, CacheValue[T]]:
        pattern = normalize_prefix(prefix)

        keys = await self._search_keys(pattern)
        if not keys:
            return {}

        return self._collect(keys, await self._store.get_many(keys), value_type)

    # ------------ Bulk ------------

    async def set_all(self, values: Mapping[str, Any], expiration: Expiration) -> None:
        ttl_ms = expiration_to_ms(expiration)
        check_mapping(values)

        items = self._encode_all(values, ttl_ms)
        await self._store.set_many(items)
        self._record(sets=len(items))

    async def get_all(self, keys: Iterable[str], value_type: type[T] | Any = None) -> dict[str, CacheValue[T]]:
        key_list = check_keys(keys)
        for key in key_list:
            check_key(key, argument="keys item")

        return self._collect(key_list, await self._store.get_many(key_list), value_type)

    async def remove_all(self, keys: Iterable[str]) -> None:
        key_list = usable_keys(check_keys(keys))
        if not key_list:
            return

        await self._store.delete_many(key_list)
        self._record(removes=len(key_list))

    # ------------ Lifecycle ------------

    async def close(self) -> None:
        if self._owns_store:
            await self._store.close()
            logger.info("Closed store for caching provider '%s'", self.name)
