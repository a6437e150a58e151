"""
kvcache - Cache Values

Tagged result type returned by every read operation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class CacheValue(Generic[T]):
    """
    Either a present value (has_value=True) or an absence (has_value=False).

    When has_value is False the wrapped value is None and must not be inspected.
    """

    value: T | None
    has_value: bool

    @classmethod
    def of(cls, value: T) -> CacheValue[T]:
        """Wrap a present value."""
        return cls(value, True)

    @classmethod
    def no_value(cls) -> CacheValue[T]:
        """The absent value."""
        return cls(None, False)

    @property
    def is_null(self) -> bool:
        return not self.has_value

    def __bool__(self) -> bool:
        return self.has_value

    def __repr__(self) -> str:
        if not self.has_value:
            return "CacheValue.no_value()"
        return f"CacheValue.of({self.value!r})"
