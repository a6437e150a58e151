"""
kvcache - Provider Factory

Builds caching providers from configuration and keeps a named registry of
them, so a composition root can create a provider once and share it.

Key points:
- Select the store with CACHE_BACKEND=memory|redis|redis_cluster
  (defaults to redis when REDIS_URL is set, memory otherwise)
- The Redis backend is imported lazily so the memory backend works without it
- Providers created here own their store and close it in close_all_providers()

Examples:
    from kvcache.cache.factory import create_provider

    provider = create_provider()

    from kvcache.config import CacheConfig, StoreBackend
    cfg = CacheConfig(backend=StoreBackend.MEMORY, memory_nodes=2)
    provider = create_provider(cfg, name="test")
"""

from __future__ import annotations

import logging
from typing import Any

from ..config import CacheConfig, SerializerKind, StoreBackend, get_config
from ..errors import ConfigurationError
from .backends.memory import AsyncMemoryKeyValueStore, MemoryKeyValueStore
from .interface import AsyncKeyValueStore, KeyValueStore, Serializer
from .provider import AsyncCachingProvider, CachingProvider
from .serializers import JsonSerializer, PickleSerializer

logger = logging.getLogger(__name__)

# Registries keyed by provider name
_providers: dict[str, CachingProvider] = {}
_async_providers: dict[str, AsyncCachingProvider] = {}


def _create_serializer(config: CacheConfig) -> Serializer:
    if config.serializer == SerializerKind.PICKLE:
        return PickleSerializer()
    return JsonSerializer()


def _import_redis_backend() -> Any:
    """Lazy import so the memory backend doesn't require redis."""
    try:
        from .backends import redis as redis_backend
    except ImportError as e:
        logger.error(
            "Redis backend selected but redis client is not installed",
            extra={"package": "redis>=5.0.0", "error": str(e)},
        )
        raise ConfigurationError(
            "Redis backend selected but redis client is unavailable. "
            "Install with: pip install 'redis>=5.0.0' or add to dependencies.",
            details={"package": "redis>=5.0.0", "error": str(e)},
        ) from e
    return redis_backend


def _create_store(config: CacheConfig) -> KeyValueStore:
    if config.backend == StoreBackend.MEMORY:
        return MemoryKeyValueStore(nodes=config.memory_nodes)

    if config.is_redis:
        redis_backend = _import_redis_backend()
        return redis_backend.RedisKeyValueStore.from_url(
            config.redis_url,
            cluster=config.backend == StoreBackend.REDIS_CLUSTER,
            max_connections=config.redis_max_connections,
            socket_timeout=config.redis_socket_timeout,
            scan_count=config.scan_count,
        )

    raise ConfigurationError(
        f"Unknown cache backend: {config.backend}",
        details={"backend": str(config.backend), "supported": [b.value for b in StoreBackend]},
    )


def _create_async_store(config: CacheConfig) -> AsyncKeyValueStore:
    if config.backend == StoreBackend.MEMORY:
        return AsyncMemoryKeyValueStore(nodes=config.memory_nodes)

    if config.is_redis:
        redis_backend = _import_redis_backend()
        return redis_backend.AsyncRedisKeyValueStore.from_url(
            config.redis_url,
            cluster=config.backend == StoreBackend.REDIS_CLUSTER,
            max_connections=config.redis_max_connections,
            socket_timeout=config.redis_socket_timeout,
            scan_count=config.scan_count,
        )

    raise ConfigurationError(
        f"Unknown cache backend: {config.backend}",
        details={"backend": str(config.backend), "supported": [b.value for b in StoreBackend]},
    )


def _store_creation_errors(config: CacheConfig) -> tuple[type[Exception], ...]:
    """Exceptions from store construction that mean the backend is unusable."""
    if config.is_redis:
        # Cluster clients connect during construction
        return (ValueError, OSError, *_import_redis_backend().REDIS_ERRORS)
    return (ValueError, OSError)


def _resolve(config: CacheConfig | None, name: str | None) -> tuple[CacheConfig, str]:
    if config is None:
        config = get_config().cache
    return config, name or config.name


def create_provider(config: CacheConfig | None = None, name: str | None = None) -> CachingProvider:
    """
    Create (or return the registered) synchronous caching provider.

    Args:
        config: Cache configuration (uses global config if not provided)
        name: Registry name (defaults to config.name)

    Returns:
        Configured CachingProvider that owns its store

    Raises:
        ConfigurationError: If the configuration is invalid or the backend unavailable
    """
    config, name = _resolve(config, name)

    if name in _providers:
        logger.debug("Returning existing caching provider: %s", name)
        return _providers[name]

    logger.info(
        "Creating caching provider '%s' with backend: %s",
        name,
        config.backend.value,
        extra={"provider": name, "backend": config.backend.value},
    )

    try:
        store = _create_store(config)
    except ConfigurationError:
        raise
    except _store_creation_errors(config) as e:
        logger.error(
            "Failed to create store for provider '%s': %s",
            name,
            e,
            extra={"provider": name, "backend": config.backend.value, "error": str(e)},
            exc_info=True,
        )
        raise ConfigurationError(
            f"Failed to create caching provider '{name}': {e}",
            details={"provider": name, "backend": config.backend.value, "error": str(e)},
        ) from e

    provider = CachingProvider(store, serializer=_create_serializer(config), name=name, owns_store=True)
    _providers[name] = provider
    return provider


def create_async_provider(config: CacheConfig | None = None, name: str | None = None) -> AsyncCachingProvider:
    """Create (or return the registered) asynchronous caching provider. See create_provider()."""
    config, name = _resolve(config, name)

    if name in _async_providers:
        logger.debug("Returning existing async caching provider: %s", name)
        return _async_providers[name]

    logger.info(
        "Creating async caching provider '%s' with backend: %s",
        name,
        config.backend.value,
        extra={"provider": name, "backend": config.backend.value},
    )

    try:
        store = _create_async_store(config)
    except ConfigurationError:
        raise
    except _store_creation_errors(config) as e:
        logger.error(
            "Failed to create store for async provider '%s': %s",
            name,
            e,
            extra={"provider": name, "backend": config.backend.value, "error": str(e)},
            exc_info=True,
        )
        raise ConfigurationError(
            f"Failed to create async caching provider '{name}': {e}",
            details={"provider": name, "backend": config.backend.value, "error": str(e)},
        ) from e

    provider = AsyncCachingProvider(store, serializer=_create_serializer(config), name=name, owns_store=True)
    _async_providers[name] = provider
    return provider


def get_provider(name: str = "default") -> CachingProvider:
    """Get a registered provider, creating it from the global configuration if missing."""
    if name not in _providers:
        logger.debug("Caching provider '%s' not found, creating new instance", name)
        return create_provider(name=name)
    return _providers[name]


def get_async_provider(name: str = "default") -> AsyncCachingProvider:
    if name not in _async_providers:
        logger.debug("Async caching provider '%s' not found, creating new instance", name)
        return create_async_provider(name=name)
    return _async_providers[name]


def list_providers() -> list[str]:
    """List registered provider names (sync and async)."""
    return sorted(set(_providers) | set(_async_providers))


async def close_all_providers() -> None:
    """
    Close every registered provider and its store, then clear the registry.

    A provider whose close() fails is logged and skipped; the rest are still
    closed. Call this during graceful shutdown.
    """
    if not _providers and not _async_providers:
        logger.debug("No caching providers to close")
        return

    logger.info("Closing %d caching provider(s)...", len(_providers) + len(_async_providers))

    try:
        for name, provider in list(_providers.items()):
            try:
                provider.close()
                logger.info("Closed caching provider: %s", name)
            except Exception as e:
                logger.error(
                    "Error closing caching provider '%s': %s",
                    name,
                    e,
                    extra={"provider": name, "error": str(e)},
                    exc_info=True,
                )

        for name, async_provider in list(_async_providers.items()):
            try:
                await async_provider.close()
                logger.info("Closed async caching provider: %s", name)
            except Exception as e:
                logger.error(
                    "Error closing async caching provider '%s': %s",
                    name,
                    e,
                    extra={"provider": name, "error": str(e)},
                    exc_info=True,
                )
    finally:
        _providers.clear()
        _async_providers.clear()


def reset_provider_factory() -> None:
    """
    Forget registered providers without closing them.

    Warning: Only use this in testing contexts.
    """
    count = len(_providers) + len(_async_providers)
    _providers.clear()
    _async_providers.clear()
    logger.debug("Reset provider factory, cleared %d instance reference(s)", count)
