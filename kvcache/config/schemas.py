"""
kvcache - Configuration Schemas

Defines typed configuration models using Pydantic for validation and type safety.
All configuration is defined here and validated when loaded.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Environment(str, Enum):
    """Runtime environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


class StoreBackend(str, Enum):
    """Supported key-value stores."""

    MEMORY = "memory"
    REDIS = "redis"
    REDIS_CLUSTER = "redis_cluster"


class SerializerKind(str, Enum):
    """Supported value serializers."""

    JSON = "json"
    PICKLE = "pickle"


class LogLevel(str, Enum):
    """Log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    JSON = "json"
    TEXT = "text"


class CacheConfig(BaseModel):
    """Caching provider configuration."""

    backend: StoreBackend = Field(default=StoreBackend.MEMORY, description="Key-value store to use")
    name: str = Field(default="default", min_length=1, description="Provider name (registry key, log field)")
    serializer: SerializerKind = Field(default=SerializerKind.JSON, description="Value serializer")

    # Memory-specific settings (only used when backend=memory)
    memory_nodes: int = Field(default=1, ge=1, description="Replica node handles reported by the memory store")

    # Redis-specific settings (only used when backend=redis or redis_cluster)
    redis_url: str | None = Field(default=None, validate_default=True, description="Redis connection URL")
    redis_max_connections: int = Field(default=10, ge=1, description="Redis connection pool size")
    redis_socket_timeout: int = Field(default=5, ge=1, description="Redis socket timeout in seconds")
    scan_count: int = Field(default=1000, ge=1, description="COUNT hint for SCAN during prefix operations")

    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v: str | None, info: Any) -> str | None:
        """Ensure redis_url is provided when a redis backend is selected."""
        backend = info.data.get("backend")
        if backend in (StoreBackend.REDIS, StoreBackend.REDIS_CLUSTER) and not v:
            raise ValueError("redis_url is required when the cache backend is 'redis' or 'redis_cluster'")
        return v

    @property
    def is_redis(self) -> bool:
        return self.backend in (StoreBackend.REDIS, StoreBackend.REDIS_CLUSTER)


class KVCacheConfig(BaseModel):
    """Root configuration for kvcache."""

    environment: Environment = Field(default=Environment.DEVELOPMENT, description="Runtime environment")
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    log_format: LogFormat = Field(default=LogFormat.JSON, description="Log output format")

    cache: CacheConfig = Field(default_factory=CacheConfig)

    model_config = ConfigDict(validate_assignment=True)
