"""Value codecs: how application values become storable payloads.

A codec turns a value of type ``D`` into a JSON-compatible payload ``E``
and back, and names the format with a :attr:`~CacheCodec.type_id`. The
cache stores the ``type_id`` next to the payload and refuses to decode an
entry with a different one (see :meth:`typedcache.cache.TypedCache.get`),
so bump the id whenever the encoded shape changes.

Shipped codecs:

* :class:`JsonCodec` -- a JSON object stored as a JSON *string* (``json:v1``).
* :class:`JsonMapCodec` -- base class for codecs storing a JSON object inline.
* :class:`ModelCodec` -- a Pydantic model stored as its JSON dump.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

E = TypeVar("E")
D = TypeVar("D")
M = TypeVar("M", bound=BaseModel)


class CacheCodec(ABC, Generic[E, D]):
    """Encode values of type ``D`` into payloads of type ``E`` and back."""

    @property
    @abstractmethod
    def type_id(self) -> str:
        """Identifier of the encoded format, e.g. ``"json:v1"``."""

    @abstractmethod
    def encode(self, value: D) -> E:
        """Turn *value* into a JSON-compatible payload."""

    @abstractmethod
    def decode(self, payload: E) -> D:
        """Turn a stored *payload* back into a value.

        Raises:
            Exception: Any error; the cache treats it as a corrupted entry.
        """


class JsonCodec(CacheCodec[str, dict[str, Any]]):
    """Store a JSON object as an encoded JSON string."""

    @property
    def type_id(self) -> str:
        return "json:v1"

    def encode(self, value: dict[str, Any]) -> str:
        return json.dumps(value, ensure_ascii=False)

    def decode(self, payload: str) -> dict[str, Any]:
        value = json.loads(payload)
        if not isinstance(value, dict):
            raise TypeError(f"Expected a JSON object, got {type(value).__name__}")
        return value


class JsonMapCodec(CacheCodec[dict[str, Any], D]):
    """Base class for codecs whose payload is a JSON object stored inline.

    Subclasses supply :attr:`type_id`, :meth:`encode` and :meth:`decode`.
    Inline payloads stay readable in the cache file, unlike
    :class:`JsonCodec`'s escaped strings.
    """


class ModelCodec(JsonMapCodec[M]):
    """Store a Pydantic model as its JSON-mode dump.

    Args:
        model: The model class to encode and validate against.
        version: Format version baked into :attr:`type_id`. Increment it
            when the model changes incompatibly so that old entries are
            evicted instead of failing validation.

    Example::

        codec = ModelCodec(User, version=2)
        codec.type_id  # "model:User:v2"
    """

    def __init__(self, model: type[M], version: int = 1) -> None:
        self._model = model
        self._version = version

    @property
    def type_id(self) -> str:
        return f"model:{self._model.__name__}:v{self._version}"

    def encode(self, value: M) -> dict[str, Any]:
        return value.model_dump(mode="json")

    def decode(self, payload: dict[str, Any]) -> M:
        return self._model.model_validate(payload)
