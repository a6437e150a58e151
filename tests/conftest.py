"""
kvcache - Test Configuration and Shared Fixtures

Provides pytest configuration and shared fixtures for unit and integration tests.
"""

import os
import socket
from collections.abc import Generator, Sequence
from typing import Any

import pytest

from kvcache.cache.backends.memory import AsyncMemoryKeyValueStore, MemoryKeyValueStore
from kvcache.cache.provider import AsyncCachingProvider, CachingProvider

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "DEBUG"


def is_redis_available() -> bool:
    """Check if a Redis server is available for testing."""
    try:
        with socket.create_connection(("localhost", 6379), timeout=1):
            return True
    except OSError:
        return False


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip tests marked `redis` when no server is reachable."""
    if is_redis_available():
        return
    skip_redis = pytest.mark.skip(reason="Redis server not available")
    for item in items:
        if item.get_closest_marker("redis"):
            item.add_marker(skip_redis)


class RecordingStore(MemoryKeyValueStore):
    """Memory store that records every store call as (operation, argument)."""

    def __init__(self, nodes: int = 1) -> None:
        super().__init__(nodes=nodes)
        self.calls: list[tuple[str, Any]] = []

    def operations(self) -> list[str]:
        return [op for op, _ in self.calls]

    def get(self, key: str) -> bytes | None:
        self.calls.append(("get", key))
        return super().get(key)

    def get_many(self, keys: Sequence[str]) -> list[bytes | None]:
        self.calls.append(("get_many", list(keys)))
        return super().get_many(keys)

    def set(self, key: str, data: bytes, ttl_ms: int) -> None:
        self.calls.append(("set", key))
        super().set(key, data, ttl_ms)

    def set_many(self, items: Sequence[tuple[str, bytes, int]]) -> None:
        self.calls.append(("set_many", [key for key, _, _ in items]))
        super().set_many(items)

    def delete(self, key: str) -> None:
        self.calls.append(("delete", key))
        super().delete(key)

    def delete_many(self, keys: Sequence[str]) -> None:
        self.calls.append(("delete_many", list(keys)))
        super().delete_many(keys)

    def exists(self, key: str) -> bool:
        self.calls.append(("exists", key))
        return super().exists(key)

    def scan_keys_by_pattern(self, pattern: str, node: Any) -> list[str]:
        self.calls.append(("scan", (pattern, node)))
        return super().scan_keys_by_pattern(pattern, node)


@pytest.fixture
def test_redis_url() -> str:
    """Get Redis URL for testing (database 15 for isolation)."""
    return os.environ.get("TEST_REDIS_URL", "redis://localhost:6379/15")


@pytest.fixture
def recording_store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def replicated_store() -> RecordingStore:
    """Recording store with three replica nodes sharing one keyspace."""
    return RecordingStore(nodes=3)


@pytest.fixture
def provider(recording_store: RecordingStore) -> CachingProvider:
    """Synchronous provider over a recording memory store."""
    return CachingProvider(recording_store, name="test")


@pytest.fixture
def async_store() -> AsyncMemoryKeyValueStore:
    return AsyncMemoryKeyValueStore(store=RecordingStore())


@pytest.fixture
def async_provider(async_store: AsyncMemoryKeyValueStore) -> AsyncCachingProvider:
    """Asynchronous provider over a recording memory store."""
    return AsyncCachingProvider(async_store, name="test")


@pytest.fixture(autouse=True)
def reset_provider_factory() -> Generator[None, None, None]:
    """Reset provider registry and loaded config after each test to prevent state leakage."""
    yield
    from kvcache.cache.factory import reset_provider_factory
    from kvcache.config import reset_config

    reset_provider_factory()
    reset_config()


@pytest.fixture
def sample_cache_data() -> dict[str, Any]:
    """Sample data for cache testing."""
    return {
        "simple_string": "hello",
        "simple_int": 42,
        "simple_float": 3.14,
        "simple_bool": True,
        "complex_dict": {
            "nested": {
                "key": "value",
                "number": 123,
                "list": [1, 2, 3],
            }
        },
        "complex_list": [
            {"id": 1, "name": "Alice"},
            {"id": 2, "name": "Bob"},
        ],
    }
