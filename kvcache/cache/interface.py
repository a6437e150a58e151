"""
kvcache - Collaborator Interfaces

Defines the abstract interfaces the caching providers consume:
- KeyValueStore / AsyncKeyValueStore: raw byte storage with TTL and per-node key scan
- Serializer: typed values to/from bytes

Stores deal only in bytes and millisecond TTLs. Argument validation, prefix
normalization and serialization all happen in the provider.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any


class KeyValueStore(ABC):
    """
    Abstract base class for synchronous key-value stores.

    Implementations must be safe to share across threads for the lifetime of
    the provider that uses them.
    """

    @property
    def is_distributed(self) -> bool:
        """True when the store spans more than one node (cluster/replicas)."""
        return False

    @abstractmethod
    def get(self, key: str) -> bytes | None:
        """
        Fetch raw bytes for a key.

        Returns:
            Stored bytes, or None when the key is absent
        """
        pass

    @abstractmethod
    def get_many(self, keys: Sequence[str]) -> list[bytes | None]:
        """
        Fetch several keys in one request.

        Returns:
            One entry per input key, in input order (None for absent keys)
        """
        pass

    @abstractmethod
    def set(self, key: str, data: bytes, ttl_ms: int) -> None:
        """Write bytes under key with a TTL in milliseconds, overwriting any entry."""
        pass

    @abstractmethod
    def set_many(self, items: Sequence[tuple[str, bytes, int]]) -> None:
        """
        Write (key, bytes, ttl_ms) triples as one batch.

        The batch is submitted as a single request; no per-item result is reported.
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete a key. Deleting an absent key is not an error."""
        pass

    @abstractmethod
    def delete_many(self, keys: Sequence[str]) -> None:
        """Delete several keys in one batched request."""
        pass

    @abstractmethod
    def exists(self, key: str) -> bool:
        pass

    @abstractmethod
    def list_nodes(self) -> list[Any]:
        """Return handles for every reachable node of the store."""
        pass

    @abstractmethod
    def scan_keys_by_pattern(self, pattern: str, node: Any) -> list[str]:
        """
        Enumerate keys matching a glob pattern on a single node.

        Results are node-local; the same key may be reported by several nodes.
        """
        pass

    def close(self) -> None:
        """Release connections held by the store."""
        return None


class AsyncKeyValueStore(ABC):
    """Abstract base class for asynchronous key-value stores (same contract as KeyValueStore)."""

    @property
    def is_distributed(self) -> bool:
        return False

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        pass

    @abstractmethod
    async def get_many(self, keys: Sequence[str]) -> list[bytes | None]:
        pass

    @abstractmethod
    async def set(self, key: str, data: bytes, ttl_ms: int) -> None:
        pass

    @abstractmethod
    async def set_many(self, items: Sequence[tuple[str, bytes, int]]) -> None:
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        pass

    @abstractmethod
    async def delete_many(self, keys: Sequence[str]) -> None:
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        pass

    @abstractmethod
    async def list_nodes(self) -> list[Any]:
        pass

    @abstractmethod
    async def scan_keys_by_pattern(self, pattern: str, node: Any) -> list[str]:
        pass

    async def close(self) -> None:
        return None


class Serializer(ABC):
    """Converts values to and from the byte encoding held in the store."""

    name: str = "serializer"

    @abstractmethod
    def serialize(self, value: Any) -> bytes:
        """
        Encode a value.

        Raises:
            SerializationError: If the value cannot be encoded
        """
        pass

    @abstractmethod
    def deserialize(self, data: bytes, value_type: Any = None) -> Any:
        """
        Decode stored bytes, optionally validating against an expected type.

        Raises:
            SerializationError: If the bytes are malformed or do not match value_type
        """
        pass
