"""
kvcache - Argument Check Tests

Prefix normalization, expiration conversion and key/collection validation.
"""

from datetime import timedelta

import pytest

from kvcache.cache.keys import (
    check_key,
    check_keys,
    check_mapping,
    check_value,
    expiration_to_ms,
    normalize_prefix,
    usable_keys,
)
from kvcache.cache.values import CacheValue
from kvcache.errors import InvalidArgumentError


class TestNormalizePrefix:
    @pytest.mark.parametrize(
        ("prefix", "pattern"),
        [
            ("*foo", "foo*"),
            ("foo", "foo*"),
            ("foo*", "foo*"),
            ("***foo", "foo*"),
            ("user:", "user:*"),
            ("a*b", "a*b*"),
        ],
    )
    def test_rewrites_to_glob(self, prefix: str, pattern: str) -> None:
        assert normalize_prefix(prefix) == pattern

    def test_rejects_bare_wildcard(self) -> None:
        with pytest.raises(InvalidArgumentError) as exc_info:
            normalize_prefix("*")
        assert exc_info.value.argument == "prefix"

    def test_rejects_wildcards_only(self) -> None:
        """A prefix of only '*' characters would still match every key."""
        with pytest.raises(InvalidArgumentError):
            normalize_prefix("***")

    @pytest.mark.parametrize("prefix", [None, "", "   "])
    def test_rejects_empty(self, prefix: object) -> None:
        with pytest.raises(InvalidArgumentError):
            normalize_prefix(prefix)


class TestExpiration:
    def test_timedelta(self) -> None:
        assert expiration_to_ms(timedelta(seconds=60)) == 60_000
        assert expiration_to_ms(timedelta(milliseconds=250)) == 250

    def test_seconds(self) -> None:
        assert expiration_to_ms(60) == 60_000
        assert expiration_to_ms(1.5) == 1500

    def test_sub_millisecond_rounds_up(self) -> None:
        assert expiration_to_ms(timedelta(microseconds=10)) == 1

    @pytest.mark.parametrize(
        "expiration",
        [0, -1, 0.0, timedelta(0), timedelta(seconds=-5), float("nan"), float("inf")],
    )
    def test_rejects_non_positive(self, expiration: object) -> None:
        with pytest.raises(InvalidArgumentError) as exc_info:
            expiration_to_ms(expiration)
        assert exc_info.value.argument == "expiration"

    @pytest.mark.parametrize("expiration", [None, True, "60", [60]])
    def test_rejects_wrong_type(self, expiration: object) -> None:
        with pytest.raises(InvalidArgumentError):
            expiration_to_ms(expiration)


class TestKeyChecks:
    def test_valid_key(self) -> None:
        assert check_key("user:1") == "user:1"

    @pytest.mark.parametrize("key", [None, "", " ", "\t\n", 42])
    def test_invalid_key(self, key: object) -> None:
        with pytest.raises(InvalidArgumentError):
            check_key(key)

    def test_invalid_argument_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            check_key("")

    def test_check_value(self) -> None:
        assert check_value(0) == 0
        with pytest.raises(InvalidArgumentError):
            check_value(None)

    def test_check_keys(self) -> None:
        assert check_keys(("a", "b")) == ["a", "b"]
        assert check_keys(k for k in ["x"]) == ["x"]

    @pytest.mark.parametrize("keys", [None, [], "abc", 5])
    def test_check_keys_invalid(self, keys: object) -> None:
        with pytest.raises(InvalidArgumentError):
            check_keys(keys)

    def test_check_mapping(self) -> None:
        values = {"a": 1}
        assert check_mapping(values) is values

    @pytest.mark.parametrize("values", [None, {}, [("a", 1)], {"": 1}, {"a": None}])
    def test_check_mapping_invalid(self, values: object) -> None:
        with pytest.raises(InvalidArgumentError):
            check_mapping(values)

    def test_usable_keys(self) -> None:
        assert usable_keys(["a", None, "", "b"]) == ["a", "b"]


class TestCacheValue:
    def test_present(self) -> None:
        value = CacheValue.of({"id": 1})

        assert value.has_value is True
        assert value.is_null is False
        assert value.value == {"id": 1}
        assert bool(value) is True

    def test_no_value(self) -> None:
        value = CacheValue.no_value()

        assert value.has_value is False
        assert value.is_null is True
        assert value.value is None
        assert not value
        assert value == CacheValue.no_value()

    def test_falsy_present_value_still_has_value(self) -> None:
        assert CacheValue.of(0).has_value is True
        assert CacheValue.of(0) != CacheValue.no_value()

    def test_immutable(self) -> None:
        value = CacheValue.of(1)
        with pytest.raises(AttributeError):
            value.value = 2  # type: ignore[misc]
