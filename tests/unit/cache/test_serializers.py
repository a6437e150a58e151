"""
kvcache - Serializer Tests

JSON (pydantic-core) and pickle serializers, typed decoding and failures.
"""

from dataclasses import dataclass
from datetime import datetime, timezone

import pytest
from pydantic import BaseModel

from kvcache.cache.serializers import JsonSerializer, PickleSerializer
from kvcache.errors import SerializationError


class User(BaseModel):
    id: int
    name: str
    tags: list[str] = []


@dataclass
class Point:
    x: int
    y: int


class Event(BaseModel):
    name: str
    at: datetime


class TestJsonSerializer:
    @pytest.fixture
    def serializer(self) -> JsonSerializer:
        return JsonSerializer()

    def test_plain_values(self, serializer: JsonSerializer, sample_cache_data: dict) -> None:
        """Test that untyped decoding recovers JSON-native values."""
        for value in sample_cache_data.values():
            assert serializer.deserialize(serializer.serialize(value)) == value

    def test_compact_utf8(self, serializer: JsonSerializer) -> None:
        assert serializer.serialize({"greeting": "Hello 世界"}) == '{"greeting":"Hello 世界"}'.encode()

    def test_model_round_trip(self, serializer: JsonSerializer) -> None:
        """Test typed decoding into a pydantic model."""
        user = User(id=1, name="Ada", tags=["admin"])

        data = serializer.serialize(user)

        assert serializer.deserialize(data, User) == user
        assert serializer.deserialize(data) == {"id": 1, "name": "Ada", "tags": ["admin"]}

    def test_dataclass_and_generic_types(self, serializer: JsonSerializer) -> None:
        data = serializer.serialize([Point(1, 2), Point(3, 4)])

        assert serializer.deserialize(data, list[Point]) == [Point(1, 2), Point(3, 4)]

    def test_datetime_inside_model(self, serializer: JsonSerializer) -> None:
        """Test that datetimes survive when a model names their type."""
        event = Event(name="deploy", at=datetime(2025, 1, 1, 12, 30, tzinfo=timezone.utc))

        assert serializer.deserialize(serializer.serialize(event), Event) == event

    @pytest.mark.parametrize(
        "value",
        [
            (1, 2),
            {1, 2},
            b"ab",
            datetime(2024, 1, 1),
            {"nested": [("a", 1)]},
            {1: "int key"},
            float("nan"),
        ],
        ids=["tuple", "set", "bytes", "datetime", "nested-tuple", "int-key", "nan"],
    )
    def test_rejects_values_json_would_change(self, serializer: JsonSerializer, value: object) -> None:
        """Test that values plain JSON cannot give back unchanged are refused at write time."""
        with pytest.raises(SerializationError) as exc_info:
            serializer.serialize(value)
        assert exc_info.value.details["serializer"] == "json"
        assert exc_info.value.details["path"].startswith("$")

    def test_malformed_bytes(self, serializer: JsonSerializer) -> None:
        with pytest.raises(SerializationError) as exc_info:
            serializer.deserialize(b"{not json")
        assert exc_info.value.details["serializer"] == "json"

    def test_type_mismatch(self, serializer: JsonSerializer) -> None:
        """Test that bytes decoding to the wrong shape raise SerializationError."""
        with pytest.raises(SerializationError):
            serializer.deserialize(b'{"id": "not-a-number"}', User)

    def test_unserializable_value(self, serializer: JsonSerializer) -> None:
        with pytest.raises(SerializationError):
            serializer.serialize(object())


class TestPickleSerializer:
    @pytest.fixture
    def serializer(self) -> PickleSerializer:
        return PickleSerializer()

    def test_round_trip(self, serializer: PickleSerializer) -> None:
        value = {"point": Point(1, 2), "ids": {1, 2, 3}}

        assert serializer.deserialize(serializer.serialize(value)) == value

    def test_expected_type_checked(self, serializer: PickleSerializer) -> None:
        data = serializer.serialize(Point(1, 2))

        assert serializer.deserialize(data, Point) == Point(1, 2)
        with pytest.raises(SerializationError):
            serializer.deserialize(data, User)

    def test_malformed_bytes(self, serializer: PickleSerializer) -> None:
        with pytest.raises(SerializationError):
            serializer.deserialize(b"definitely not a pickle")

    def test_unpicklable_value(self, serializer: PickleSerializer) -> None:
        with pytest.raises(SerializationError):
            serializer.serialize(lambda: None)
