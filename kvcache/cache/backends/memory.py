"""
kvcache - Memory Key-Value Store

In-process store with per-key TTL, suitable for tests and single-process
deployments. A store may be configured with several replica nodes that share
one keyspace; every node reports every key on scan, so callers see the same
duplicate-reporting behaviour as a replicated deployment.
"""

import asyncio
import logging
import threading
import time
from collections.abc import Sequence
from fnmatch import fnmatchcase
from typing import Any

from ..interface import AsyncKeyValueStore, KeyValueStore

logger = logging.getLogger(__name__)


class MemoryKeyValueStore(KeyValueStore):
    """
    Thread-safe in-memory key-value store.

    Features:
    - Millisecond TTL per key, expired entries purged lazily on access
    - Glob key scan (same '*', '?' and '[...]' wildcards as Redis)
    - Batched writes applied under one lock (all-or-nothing)
    """

    def __init__(self, nodes: int = 1, clock: Any = time.monotonic):
        """
        Initialize memory store.

        Args:
            nodes: Number of replica node handles reported by list_nodes()
            clock: Monotonic clock in seconds (overridable in tests)
        """
        if nodes < 1:
            raise ValueError("nodes must be at least 1")

        self._node_names = [f"memory-{i}" for i in range(nodes)]
        self._clock = clock

        # key -> (data, expiry_time)
        self._data: dict[str, tuple[bytes, float]] = {}
        self._lock = threading.Lock()

    @property
    def is_distributed(self) -> bool:
        return len(self._node_names) > 1

    def _expiry(self, ttl_ms: int) -> float:
        return self._clock() + ttl_ms / 1000

    def _live(self, key: str) -> bytes | None:
        """Return live data for key, purging it if expired. Caller holds the lock."""
        entry = self._data.get(key)
        if entry is None:
            return None

        data, expiry = entry
        if self._clock() >= expiry:
            del self._data[key]
            return None
        return data

    def get(self, key: str) -> bytes | None:
        with self._lock:
            return self._live(key)

    def get_many(self, keys: Sequence[str]) -> list[bytes | None]:
        with self._lock:
            return [self._live(key) for key in keys]

    def set(self, key: str, data: bytes, ttl_ms: int) -> None:
        with self._lock:
            self._data[key] = (bytes(data), self._expiry(ttl_ms))

    def set_many(self, items: Sequence[tuple[str, bytes, int]]) -> None:
        entries = {key: (bytes(data), self._expiry(ttl_ms)) for key, data, ttl_ms in items}
        with self._lock:
            self._data.update(entries)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def delete_many(self, keys: Sequence[str]) -> None:
        with self._lock:
            for key in keys:
                self._data.pop(key, None)

    def exists(self, key: str) -> bool:
        with self._lock:
            return self._live(key) is not None

    def list_nodes(self) -> list[Any]:
        return list(self._node_names)

    def scan_keys_by_pattern(self, pattern: str, node: Any) -> list[str]:
        if node not in self._node_names:
            raise ValueError(f"Unknown memory node: {node!r}")

        with self._lock:
            return [key for key in list(self._data) if self._live(key) is not None and fnmatchcase(key, pattern)]

    def __len__(self) -> int:
        with self._lock:
            return sum(1 for key in list(self._data) if self._live(key) is not None)

    def close(self) -> None:
        logger.debug("Memory key-value store closed (%d node(s))", len(self._node_names))


class AsyncMemoryKeyValueStore(AsyncKeyValueStore):
    """
    Asynchronous facade over MemoryKeyValueStore.

    Each call yields to the event loop once before touching the data, so
    concurrent tasks interleave at store calls the way they would against a
    network store.
    """

    def __init__(self, nodes: int = 1, store: MemoryKeyValueStore | None = None):
        self.store = store or MemoryKeyValueStore(nodes=nodes)

    @property
    def is_distributed(self) -> bool:
        return self.store.is_distributed

    async def get(self, key: str) -> bytes | None:
        await asyncio.sleep(0)
        return self.store.get(key)

    async def get_many(self, keys: Sequence[str]) -> list[bytes | None]:
        await asyncio.sleep(0)
        return self.store.get_many(keys)

    async def set(self, key: str, data: bytes, ttl_ms: int) -> None:
        await asyncio.sleep(0)
        self.store.set(key, data, ttl_ms)

    async def set_many(self, items: Sequence[tuple[str, bytes, int]]) -> None:
        await asyncio.sleep(0)
        self.store.set_many(items)

    async def delete(self, key: str) -> None:
        await asyncio.sleep(0)
        self.store.delete(key)

    async def delete_many(self, keys: Sequence[str]) -> None:
        await asyncio.sleep(0)
        self.store.delete_many(keys)

    async def exists(self, key: str) -> bool:
        await asyncio.sleep(0)
        return self.store.exists(key)

    async def list_nodes(self) -> list[Any]:
        return self.store.list_nodes()

    async def scan_keys_by_pattern(self, pattern: str, node: Any) -> list[str]:
        await asyncio.sleep(0)
        return self.store.scan_keys_by_pattern(pattern, node)

    async def close(self) -> None:
        self.store.close()
