"""Abstract storage backend consumed by :class:`~typedcache.cache.TypedCache`.

A backend stores :class:`~typedcache.models.CacheEntry` objects and keeps a
tag index. It does not interpret payloads and does not enforce expiry on
reads; both are the cache façade's job.

The only implementation shipped is
:class:`~typedcache.store.backend.JsonFileBackend`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from typedcache.models import CacheEntry


class CacheBackend(ABC):
    """Persistent store of cache entries with a reverse tag index."""

    @abstractmethod
    async def read(self, key: str) -> Optional[CacheEntry]:
        """Return the entry stored under *key*, expired or not, or ``None``."""

    @abstractmethod
    async def read_all(self) -> list[CacheEntry]:
        """Return every stored entry."""

    @abstractmethod
    async def write(self, entry: CacheEntry) -> None:
        """Insert or replace *entry*."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove the entry under *key*; return ``True`` if one existed."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove every entry and tag."""

    @abstractmethod
    async def keys_by_tag(self, tag: str) -> set[str]:
        """Return the keys currently carrying *tag*."""

    @abstractmethod
    async def delete_tag(self, tag: str) -> bool:
        """Strip *tag* from every entry; return ``True`` if the tag existed."""

    @abstractmethod
    async def purge_expired(self, now_epoch_ms: int) -> int:
        """Remove entries expired at *now_epoch_ms*; return how many were removed."""
