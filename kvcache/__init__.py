"""
kvcache - Caching provider over remote key-value stores.

Typed get/set/remove with expiration, bulk operations and prefix search,
backed by Redis (standalone or cluster) or an in-process store.
"""

from .cache import (
    AsyncCachingProvider,
    CacheValue,
    CachingProvider,
    create_async_provider,
    create_provider,
)
from .errors import (
    ConfigurationError,
    InvalidArgumentError,
    KVCacheError,
    SerializationError,
    StoreError,
)

__version__ = "0.1.0"

__all__ = [
    "CachingProvider",
    "AsyncCachingProvider",
    "CacheValue",
    "create_provider",
    "create_async_provider",
    "KVCacheError",
    "InvalidArgumentError",
    "SerializationError",
    "StoreError",
    "ConfigurationError",
]
