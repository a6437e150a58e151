"""
kvcache - Argument Checks

Validation helpers shared by the sync and async providers. Every check raises
InvalidArgumentError before the provider touches the store.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping
from datetime import timedelta
from typing import Any

from ..errors import InvalidArgumentError

_LEADING_WILDCARDS = re.compile(r"^\*+")

Expiration = timedelta | int | float


def check_key(key: Any, argument: str = "key") -> str:
    """Ensure a cache key is a non-empty, non-whitespace string."""
    if key is None:
        raise InvalidArgumentError(argument, "must not be None")
    if not isinstance(key, str):
        raise InvalidArgumentError(argument, "must be a string", {"type": type(key).__name__})
    if not key.strip():
        raise InvalidArgumentError(argument, "must not be empty or whitespace")
    return key


def check_value(value: Any, argument: str = "value") -> Any:
    if value is None:
        raise InvalidArgumentError(argument, "must not be None")
    return value


def expiration_to_ms(expiration: Any, argument: str = "expiration") -> int:
    """
    Validate an expiration and convert it to whole milliseconds.

    Accepts a timedelta or a number of seconds. Sub-millisecond positive
    values round up to 1 ms so they never reach the store as "no expiry".
    """
    if isinstance(expiration, bool) or expiration is None:
        raise InvalidArgumentError(argument, "must be a timedelta or a number of seconds")
    if isinstance(expiration, timedelta):
        seconds = expiration.total_seconds()
    elif isinstance(expiration, (int, float)):
        seconds = float(expiration)
    else:
        raise InvalidArgumentError(
            argument,
            "must be a timedelta or a number of seconds",
            {"type": type(expiration).__name__},
        )

    if math.isnan(seconds) or math.isinf(seconds) or seconds <= 0:
        raise InvalidArgumentError(argument, "must be strictly positive", {"seconds": seconds})

    return max(1, math.ceil(seconds * 1000))


def check_keys(keys: Any, argument: str = "keys") -> list[Any]:
    """Ensure a key collection is non-empty; returns it as a list in input order."""
    if keys is None:
        raise InvalidArgumentError(argument, "must not be None")
    if isinstance(keys, (str, bytes)):
        raise InvalidArgumentError(argument, "must be a collection of keys, not a single string")
    if not isinstance(keys, Iterable):
        raise InvalidArgumentError(argument, "must be iterable", {"type": type(keys).__name__})
    key_list = list(keys)
    if not key_list:
        raise InvalidArgumentError(argument, "must not be empty")
    return key_list


def check_mapping(values: Any, argument: str = "values") -> Mapping[str, Any]:
    """Ensure a key->value mapping is non-empty with valid keys and non-None values."""
    if values is None:
        raise InvalidArgumentError(argument, "must not be None")
    if not isinstance(values, Mapping):
        raise InvalidArgumentError(argument, "must be a mapping", {"type": type(values).__name__})
    if not values:
        raise InvalidArgumentError(argument, "must not be empty")
    for key, value in values.items():
        check_key(key, argument=f"{argument} key")
        check_value(value, argument=f"{argument}[{key!r}]")
    return values


def usable_keys(keys: Iterable[Any]) -> list[str]:
    """Drop None and empty keys, keeping input order."""
    return [k for k in keys if k]


def normalize_prefix(prefix: Any) -> str:
    """
    Rewrite a key prefix into a store glob pattern.

    Leading '*' characters are stripped and a trailing '*' is appended when
    missing. The bare "*" prefix would match every key and is rejected.

        "*foo" -> "foo*", "foo" -> "foo*", "foo*" -> "foo*"
    """
    check_key(prefix, argument="prefix")
    if prefix == "*":
        raise InvalidArgumentError("prefix", "must not be '*'")

    pattern = _LEADING_WILDCARDS.sub("", prefix)
    if not pattern.endswith("*"):
        pattern = f"{pattern}*"

    # "**" and friends collapse to the match-everything pattern
    if pattern == "*":
        raise InvalidArgumentError("prefix", "must not consist only of '*'", {"prefix": prefix})
    return pattern
