"""
kvcache - Key-Value Store Backends

Exports available store implementations.

Redis stores are lazy-loaded via factory.py to avoid import overhead.
"""

from .memory import AsyncMemoryKeyValueStore, MemoryKeyValueStore

__all__ = [
    "MemoryKeyValueStore",
    "AsyncMemoryKeyValueStore",
]
