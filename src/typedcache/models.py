"""Canonical Pydantic models shared across all typedcache modules.

This is the single source of truth for data shapes in the project. The
models fall into two groups:

**Storage models** -- persisted in the cache file:
    :class:`CacheEntry` and :class:`CacheDocument`. Field names are
    ``snake_case`` in Python; the wire format uses the camelCase aliases
    (``typeId``, ``createdAt``, ``expiresAt``, ``schemaVersion``,
    ``tagIndex``). Both spellings are accepted on construction.

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`CacheLocation` and :class:`CacheSettings`.

All models use Pydantic v2 with ``model_config`` where needed.
"""

from __future__ import annotations

import enum
from typing import Any, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator

SCHEMA_VERSION = 1
"""Version of the cache document format written by this release."""


# --- Storage models ---


class CacheEntry(BaseModel):
    """One cached value.

    Entries are immutable: a write of an existing key replaces the entry
    wholesale and tag changes produce a new instance via :meth:`with_tags`.
    The storage engine never looks inside :attr:`payload`; its shape is
    owned by the codec identified by :attr:`type_id`.

    Example::

        CacheEntry(
            key="user:42",
            type_id="json:v1",
            payload='{"name": "Ada"}',
            created_at_epoch_ms=1_700_000_000_000,
            tags={"users"},
        )
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    key: str
    type_id: str = Field(alias="typeId", description="Codec identifier, opaque to storage")
    payload: Any = Field(default=None, description="Codec-encoded value, opaque to storage")
    created_at_epoch_ms: int = Field(alias="createdAt")
    expires_at_epoch_ms: Optional[int] = Field(
        default=None, alias="expiresAt", description="None = never expires"
    )
    tags: frozenset[str] = Field(default_factory=frozenset)

    @field_serializer("tags")
    def _serialize_tags(self, tags: frozenset[str]) -> list[str]:
        return sorted(tags)

    def is_expired(self, now_epoch_ms: int) -> bool:
        """Return ``True`` if the entry has an expiry at or before *now_epoch_ms*."""
        return self.expires_at_epoch_ms is not None and self.expires_at_epoch_ms <= now_epoch_ms

    def with_tags(self, tags: Iterable[str]) -> CacheEntry:
        """Return a copy of this entry carrying *tags* instead of its current tags."""
        return self.model_copy(update={"tags": frozenset(tags)})


class CacheDocument(BaseModel):
    """The unit of persistence: everything stored in one cache file.

    Holds the entry map and the reverse tag index. For every entry ``e``
    and every tag ``t`` in ``e.tags``, ``tag_index[t]`` contains ``e.key``
    and vice versa; a tag whose key set would become empty is removed.
    The helpers in :mod:`typedcache.store.index` keep this invariant.

    Missing or ``null`` top-level fields fall back to their defaults so
    that older or hand-edited files still load.
    """

    model_config = ConfigDict(populate_by_name=True)

    schema_version: int = Field(default=1, alias="schemaVersion")
    entries: dict[str, CacheEntry] = Field(default_factory=dict)
    tag_index: dict[str, set[str]] = Field(default_factory=dict, alias="tagIndex")

    @model_validator(mode="before")
    @classmethod
    def _drop_null_fields(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data

    @field_serializer("tag_index")
    def _serialize_tag_index(self, tag_index: dict[str, set[str]]) -> dict[str, list[str]]:
        return {tag: sorted(keys) for tag, keys in tag_index.items()}


# --- Configuration models ---


class CacheLocation(str, enum.Enum):
    """Symbolic locations a cache file can live in.

    Resolved to concrete directories by
    :func:`~typedcache.config.resolve_cache_file`.
    """

    SUPPORT = "support"
    CACHE = "cache"
    TEMPORARY = "temporary"
    DOCUMENTS = "documents"


class CacheSettings(BaseModel):
    """Cache configuration persisted at ``~/.config/typedcache/config.json``.

    Loaded and saved by :func:`~typedcache.config.load_settings` and
    :func:`~typedcache.config.save_settings`. Fields here have the lowest
    precedence and can be overridden by project config, environment
    variables, or CLI flags. See :func:`~typedcache.config.resolve_settings`.
    """

    location: CacheLocation = Field(
        default=CacheLocation.SUPPORT,
        description="Where the cache file lives: support, cache, temporary, documents",
    )
    file_name: str = Field(default="typed_cache.json", description="Cache file name")
    subdir: Optional[str] = Field(
        default=None, description="Optional subdirectory inside the location"
    )
    path: Optional[str] = Field(
        default=None, description="Explicit cache file path (overrides location)"
    )
    enable_recovery: bool = Field(
        default=True, description="Recover from .bak/.tmp when the file is corrupted"
    )
    delete_corrupted_entries: bool = Field(
        default=True, description="Evict entries that fail to decode instead of raising"
    )
    default_ttl_seconds: Optional[int] = Field(
        default=None, ge=0, description="TTL applied when a put() gives none"
    )
