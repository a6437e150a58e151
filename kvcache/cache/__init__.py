"""
kvcache - Cache Module

Caching providers over pluggable key-value stores.

- provider.py: CachingProvider / AsyncCachingProvider (the cache API)
- interface.py: KeyValueStore, AsyncKeyValueStore and Serializer contracts
- backends/: store implementations (memory in core, Redis lazy-loaded)
- factory.py: providers built from configuration, kept in a named registry

Usage:
    from kvcache.cache import create_provider

    provider = create_provider()
    provider.set("key", "value", 3600)
    cached = provider.get("key")
"""

from .factory import (
    close_all_providers,
    create_async_provider,
    create_provider,
    get_async_provider,
    get_provider,
    list_providers,
    reset_provider_factory,
)
from .interface import AsyncKeyValueStore, KeyValueStore, Serializer
from .keys import normalize_prefix
from .provider import AsyncCachingProvider, CachingProvider
from .serializers import JsonSerializer, PickleSerializer
from .values import CacheValue

__all__ = [
    # Providers
    "CachingProvider",
    "AsyncCachingProvider",
    "CacheValue",
    # Factory functions
    "create_provider",
    "create_async_provider",
    "get_provider",
    "get_async_provider",
    "close_all_providers",
    "list_providers",
    "reset_provider_factory",
    # Collaborator interfaces
    "KeyValueStore",
    "AsyncKeyValueStore",
    "Serializer",
    "JsonSerializer",
    "PickleSerializer",
    "normalize_prefix",
]
