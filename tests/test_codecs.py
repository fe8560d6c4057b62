"""Tests for typedcache.codecs, typedcache.clock and typedcache.ttl."""

from __future__ import annotations

import json
from datetime import timedelta
from typing import Any

import pytest
from pydantic import BaseModel, ValidationError

from typedcache.clock import ManualClock, SystemClock
from typedcache.codecs import JsonCodec, JsonMapCodec, ModelCodec
from typedcache.ttl import DefaultTtlPolicy


class Point(BaseModel):
    x: int
    y: int


class CountsCodec(JsonMapCodec[dict[str, int]]):
    """Inline codec used to exercise the JsonMapCodec base."""

    @property
    def type_id(self) -> str:
        return "counts:v1"

    def encode(self, value: dict[str, int]) -> dict[str, Any]:
        return {"counts": value}

    def decode(self, payload: dict[str, Any]) -> dict[str, int]:
        return dict(payload["counts"])


# ------------------------------------------------------------------ #
# Codecs
# ------------------------------------------------------------------ #


class TestJsonCodec:
    def test_type_id(self) -> None:
        assert JsonCodec().type_id == "json:v1"

    def test_payload_is_json_string(self) -> None:
        payload = JsonCodec().encode({"a": [1, 2]})
        assert isinstance(payload, str)
        assert json.loads(payload) == {"a": [1, 2]}

    def test_decode(self) -> None:
        assert JsonCodec().decode('{"name": "Ada"}') == {"name": "Ada"}

    def test_decode_rejects_non_object(self) -> None:
        with pytest.raises(TypeError):
            JsonCodec().decode("[1, 2]")

    def test_decode_rejects_invalid_json(self) -> None:
        with pytest.raises(json.JSONDecodeError):
            JsonCodec().decode("{nope")


class TestModelCodec:
    def test_type_id_includes_name_and_version(self) -> None:
        assert ModelCodec(Point).type_id == "model:Point:v1"
        assert ModelCodec(Point, version=3).type_id == "model:Point:v3"

    def test_encode_is_inline_dict(self) -> None:
        assert ModelCodec(Point).encode(Point(x=1, y=2)) == {"x": 1, "y": 2}

    def test_decode_validates(self) -> None:
        codec = ModelCodec(Point)
        assert codec.decode({"x": 1, "y": 2}) == Point(x=1, y=2)
        with pytest.raises(ValidationError):
            codec.decode({"x": "not a number"})


class TestJsonMapCodec:
    def test_subclass_round_trip(self) -> None:
        codec = CountsCodec()
        payload = codec.encode({"a": 1})
        assert payload == {"counts": {"a": 1}}
        assert codec.decode(payload) == {"a": 1}


# ------------------------------------------------------------------ #
# Clock and TTL
# ------------------------------------------------------------------ #


class TestClock:
    def test_manual_clock(self) -> None:
        clock = ManualClock(100)
        clock.advance(50)
        assert clock.now_epoch_ms() == 150
        clock.set(10)
        assert clock.now_epoch_ms() == 10

    def test_system_clock_is_epoch_ms(self) -> None:
        # 2020-01-01 in epoch milliseconds
        assert SystemClock().now_epoch_ms() > 1_577_836_800_000


class TestDefaultTtlPolicy:
    def test_no_ttl_never_expires(self) -> None:
        assert DefaultTtlPolicy().compute_expires_at_epoch_ms(None, ManualClock(5)) is None

    def test_explicit_ttl(self) -> None:
        policy = DefaultTtlPolicy()
        assert policy.compute_expires_at_epoch_ms(timedelta(seconds=2), ManualClock(1_000)) == 3_000

    def test_default_ttl_used_when_none_given(self) -> None:
        policy = DefaultTtlPolicy(timedelta(milliseconds=250))
        assert policy.default_ttl == timedelta(milliseconds=250)
        assert policy.compute_expires_at_epoch_ms(None, ManualClock(1_000)) == 1_250

    def test_explicit_ttl_beats_default(self) -> None:
        policy = DefaultTtlPolicy(timedelta(hours=1))
        assert policy.compute_expires_at_epoch_ms(timedelta(seconds=1), ManualClock(0)) == 1_000
