"""
kvcache - Serializers

Byte encodings for cached values:
- JsonSerializer: compact UTF-8 JSON (default). Typed decoding through a
  pydantic TypeAdapter when the caller names the expected type.
- PickleSerializer: arbitrary Python objects. Only use with a trusted store.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import math
import pickle
from functools import lru_cache
from typing import Any

from pydantic import BaseModel, TypeAdapter
from pydantic_core import PydanticSerializationError, to_json

from ..errors import SerializationError
from .interface import Serializer

logger = logging.getLogger(__name__)


@lru_cache(maxsize=256)
def _cached_adapter(value_type: Any) -> TypeAdapter[Any]:
    return TypeAdapter(value_type)


def _type_adapter(value_type: Any) -> TypeAdapter[Any]:
    try:
        return _cached_adapter(value_type)
    except TypeError:
        # Unhashable type expressions can't be memoized
        return TypeAdapter(value_type)


def _preview(data: bytes) -> bytes:
    return data[:100] if len(data) > 100 else data


def _lossy_json_path(value: Any, path: str = "$") -> str | None:
    """
    Return the path of the first part of value that JSON would not give back unchanged.

    Plain JSON types must round-trip as themselves. Pydantic models and
    dataclasses are accepted whole; they come back through a value_type.
    """
    if value is None or isinstance(value, (bool, int, str)):
        return None
    if isinstance(value, float):
        return None if math.isfinite(value) else path
    if isinstance(value, BaseModel) or (dataclasses.is_dataclass(value) and not isinstance(value, type)):
        return None
    if isinstance(value, list):
        for i, item in enumerate(value):
            found = _lossy_json_path(item, f"{path}[{i}]")
            if found:
                return found
        return None
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                return f"{path}.<key {key!r}>"
            found = _lossy_json_path(item, f"{path}.{key}")
            if found:
                return found
        return None
    return path


class JsonSerializer(Serializer):
    """
    JSON serializer backed by pydantic-core.

    Accepts JSON-native values (None, bool, int, finite float, str, list and
    str-keyed dict) plus pydantic models and dataclasses. Values JSON would
    silently change (tuples, sets, bytes, datetimes, non-str keys) are rejected
    with SerializationError; put them inside a model or use PickleSerializer.
    Without a value_type, decoding yields plain JSON types (dict, list, str, ...).
    """

    name = "json"

    def serialize(self, value: Any) -> bytes:
        lossy_path = _lossy_json_path(value)
        if lossy_path is not None:
            logger.error(
                f"Refusing to serialize value of type {type(value).__name__}: not JSON-native at {lossy_path}",
                extra={"value_type": type(value).__name__, "path": lossy_path},
            )
            raise SerializationError(
                f"Value of type {type(value).__name__} would not survive a JSON round trip "
                f"(at {lossy_path}); wrap it in a pydantic model or use PickleSerializer",
                details={"serializer": self.name, "value_type": type(value).__name__, "path": lossy_path},
            )

        try:
            return to_json(value)
        except (PydanticSerializationError, TypeError, ValueError) as e:
            logger.error(
                f"Failed to serialize value of type {type(value).__name__}: {e}",
                extra={"value_type": type(value).__name__, "error": str(e)},
            )
            raise SerializationError(
                f"Cannot serialize value of type {type(value).__name__}",
                details={"serializer": self.name, "value_type": type(value).__name__, "error": str(e)},
            ) from e

    def deserialize(self, data: bytes, value_type: Any = None) -> Any:
        try:
            if value_type is None:
                return json.loads(data)
            return _type_adapter(value_type).validate_json(data)
        except (ValueError, UnicodeDecodeError) as e:
            # pydantic.ValidationError and json.JSONDecodeError are both ValueErrors
            logger.error(
                f"Failed to deserialize cached data: {e}",
                extra={"data_preview": _preview(data), "expected_type": repr(value_type), "error": str(e)},
            )
            raise SerializationError(
                "Cannot deserialize cached data",
                details={"serializer": self.name, "expected_type": repr(value_type), "error": str(e)},
            ) from e


class PickleSerializer(Serializer):
    """Pickle serializer for values JSON cannot represent."""

    name = "pickle"

    def __init__(self, protocol: int = pickle.HIGHEST_PROTOCOL) -> None:
        self.protocol = protocol

    def serialize(self, value: Any) -> bytes:
        try:
            return pickle.dumps(value, protocol=self.protocol)
        except (pickle.PicklingError, TypeError, AttributeError) as e:
            raise SerializationError(
                f"Cannot pickle value of type {type(value).__name__}",
                details={"serializer": self.name, "value_type": type(value).__name__, "error": str(e)},
            ) from e

    def deserialize(self, data: bytes, value_type: Any = None) -> Any:
        try:
            value = pickle.loads(data)  # noqa: S301
        except (pickle.UnpicklingError, EOFError, AttributeError, ImportError, IndexError, TypeError, ValueError) as e:
            logger.error(
                f"Failed to unpickle cached data: {e}",
                extra={"data_preview": _preview(data), "error": str(e)},
            )
            raise SerializationError(
                "Cannot deserialize cached data",
                details={"serializer": self.name, "error": str(e)},
            ) from e

        if isinstance(value_type, type) and not isinstance(value, value_type):
            raise SerializationError(
                f"Cached value is {type(value).__name__}, expected {value_type.__name__}",
                details={"serializer": self.name, "expected_type": value_type.__name__},
            )
        return value
