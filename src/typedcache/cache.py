"""Typed cache façade over a storage backend.

:class:`TypedCache` is what applications talk to. It adds the policies the
storage engine deliberately leaves out:

* **Codecs** -- values are encoded with a :class:`~typedcache.codecs.CacheCodec`
  and the codec's ``type_id`` is checked on every read.
* **Expiry** -- entries are stamped using a :class:`~typedcache.clock.Clock`
  and a :class:`~typedcache.ttl.TtlPolicy`; expired entries read as misses
  and are deleted lazily.
* **Corruption policy** -- an entry with the wrong ``type_id`` or an
  undecodable payload is either evicted (``delete_corrupted_entries=True``,
  the default) or reported with a typed exception.
* **Stale-while-revalidate** -- :meth:`TypedCache.get_or_fetch` can serve an
  expired value while refreshing it.

Usually created through :func:`typedcache.create`.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Awaitable, Callable, Iterable, Optional

from typedcache.clock import Clock, SystemClock
from typedcache.codecs import CacheCodec
from typedcache.exceptions import (
    CacheBackendError,
    CacheDecodeError,
    CacheTypeMismatchError,
    InvalidUsageError,
)
from typedcache.models import CacheEntry
from typedcache.store.base import CacheBackend
from typedcache.ttl import DefaultTtlPolicy, TtlPolicy


class TypedCache:
    """Typed, expiring, taggable cache.

    Args:
        backend: Where entries are stored.
        clock: Time source for expiry. Defaults to :class:`SystemClock`.
        ttl_policy: Computes expiry of new entries. Defaults to
            :class:`DefaultTtlPolicy` (no default TTL).
        logger: Sink for non-fatal problems (failed lazy deletes, failed
            refreshes, evicted entries).
        delete_corrupted_entries: On a type mismatch or decode failure,
            delete the entry and report a miss instead of raising.
        default_codec: Codec used when a call does not pass one.

    Example::

        cache = TypedCache(JsonFileBackend(path), default_codec=JsonCodec())
        await cache.put("user:1", {"name": "Ada"}, ttl=timedelta(minutes=5), tags={"users"})
        await cache.get("user:1")  # {"name": "Ada"}
        await cache.invalidate_by_tag("users")
    """

    def __init__(
        self,
        backend: CacheBackend,
        clock: Optional[Clock] = None,
        ttl_policy: Optional[TtlPolicy] = None,
        logger: Optional[logging.Logger] = None,
        delete_corrupted_entries: bool = True,
        default_codec: Optional[CacheCodec[Any, Any]] = None,
    ) -> None:
        self._backend = backend
        self._clock = clock or SystemClock()
        self._ttl_policy = ttl_policy or DefaultTtlPolicy()
        self._logger = logger or logging.getLogger(__name__)
        self._delete_corrupted_entries = delete_corrupted_entries
        self._default_codec = default_codec

    @property
    def backend(self) -> CacheBackend:
        return self._backend

    @property
    def clock(self) -> Clock:
        return self._clock

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    async def get(
        self,
        key: str,
        codec: Optional[CacheCodec[Any, Any]] = None,
        allow_expired: bool = False,
    ) -> Any:
        """Return the decoded value under *key*, or ``None`` on a miss.

        Args:
            key: Cache key.
            codec: Codec to decode with. Defaults to the cache's default codec.
            allow_expired: Return expired values instead of treating them as
                misses.

        Raises:
            CacheBackendError: If the backend cannot be read.
            CacheTypeMismatchError: Stored ``type_id`` differs from the
                codec's and ``delete_corrupted_entries`` is off.
            CacheDecodeError: The payload cannot be decoded and
                ``delete_corrupted_entries`` is off.
            InvalidUsageError: No codec given and no default configured.
        """
        codec = self._resolve_codec(codec)
        now = self._clock.now_epoch_ms()

        try:
            entry = await self._backend.read(key)
        except CacheBackendError as exc:
            self._logger.error("Backend read failed for key=%r: %s", key, exc)
            raise

        if entry is None:
            return None

        if not allow_expired and entry.is_expired(now):
            await self._delete_quietly(key, "expired")
            return None

        if entry.type_id != codec.type_id:
            message = (
                f"Type mismatch for key={key!r}: stored={entry.type_id!r} "
                f"requested={codec.type_id!r}"
            )
            if not self._delete_corrupted_entries:
                raise CacheTypeMismatchError(message)
            self._logger.warning(message)
            await self._delete_quietly(key, "mismatched")
            return None

        try:
            return codec.decode(entry.payload)
        except Exception as exc:
            message = f"Decode failed for key={key!r} typeId={codec.type_id!r}: {exc}"
            if not self._delete_corrupted_entries:
                raise CacheDecodeError(message) from exc
            self._logger.warning(message)
            await self._delete_quietly(key, "corrupted")
            return None

    async def contains(self, key: str) -> bool:
        """Return ``True`` if *key* is stored and not expired."""
        entry = await self._backend.read(key)
        if entry is None:
            return False
        return not entry.is_expired(self._clock.now_epoch_ms())

    async def get_or_fetch(
        self,
        key: str,
        fetch: Callable[[], Awaitable[Any]],
        codec: Optional[CacheCodec[Any, Any]] = None,
        ttl: Optional[timedelta] = None,
        tags: Iterable[str] = (),
        allow_expired_while_revalidating: bool = False,
    ) -> Any:
        """Return the cached value for *key*, fetching and storing it on a miss.

        With *allow_expired_while_revalidating*, a stored value is returned
        even if expired, after an in-line refresh attempt. A failed refresh
        is logged and the stale value is still returned.

        Args:
            key: Cache key.
            fetch: Coroutine factory producing a fresh value.
            codec: Codec for reading and writing.
            ttl: TTL for a freshly fetched value.
            tags: Tags for a freshly fetched value.
            allow_expired_while_revalidating: Serve stale values while
                refreshing them.

        Raises:
            Exception: Whatever *fetch* raises on a miss.
        """
        tags = frozenset(tags)
        cached = await self.get(key, codec=codec, allow_expired=allow_expired_while_revalidating)

        if cached is not None and not allow_expired_while_revalidating:
            return cached

        if cached is not None:
            try:
                fresh = await fetch()
                await self.put(key, fresh, codec=codec, ttl=ttl, tags=tags)
            except Exception as exc:
                self._logger.warning("Refresh failed for key=%r: %s", key, exc)
            return cached

        fresh = await fetch()
        await self.put(key, fresh, codec=codec, ttl=ttl, tags=tags)
        return fresh

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    async def put(
        self,
        key: str,
        value: Any,
        codec: Optional[CacheCodec[Any, Any]] = None,
        ttl: Optional[timedelta] = None,
        tags: Iterable[str] = (),
    ) -> None:
        """Encode *value* and store it under *key*, replacing any previous entry.

        Raises:
            CacheBackendError: If the backend cannot be written.
            InvalidUsageError: No codec given and no default configured.
        """
        codec = self._resolve_codec(codec)
        entry = CacheEntry(
            key=key,
            type_id=codec.type_id,
            payload=codec.encode(value),
            created_at_epoch_ms=self._clock.now_epoch_ms(),
            expires_at_epoch_ms=self._ttl_policy.compute_expires_at_epoch_ms(ttl, self._clock),
            tags=frozenset(tags),
        )
        await self._backend.write(entry)

    async def invalidate(self, key: str) -> None:
        """Remove *key* from the cache."""
        await self._backend.delete(key)

    async def invalidate_by_tag(self, tag: str) -> None:
        """Remove every entry carrying *tag*, then the tag itself.

        Deletion is best-effort: a key or the tag itself that cannot be
        removed is logged and skipped.
        """
        for key in sorted(await self._backend.keys_by_tag(tag)):
            try:
                await self._backend.delete(key)
            except CacheBackendError as exc:
                self._logger.warning("Failed to delete key=%r for tag=%r: %s", key, tag, exc)
        try:
            await self._backend.delete_tag(tag)
        except CacheBackendError as exc:
            self._logger.warning("Failed to delete tag=%r: %s", tag, exc)

    async def purge_expired(self) -> int:
        """Remove expired entries; return how many were removed.

        Backend failures are logged and reported as ``0``.
        """
        try:
            return await self._backend.purge_expired(self._clock.now_epoch_ms())
        except CacheBackendError as exc:
            self._logger.error("Purging expired entries failed: %s", exc)
            return 0

    async def clear(self) -> None:
        """Remove everything from the cache."""
        await self._backend.clear()

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _resolve_codec(self, codec: Optional[CacheCodec[Any, Any]]) -> CacheCodec[Any, Any]:
        if codec is not None:
            return codec
        if self._default_codec is None:
            raise InvalidUsageError("No codec given and no default codec configured")
        return self._default_codec

    async def _delete_quietly(self, key: str, reason: str) -> None:
        try:
            await self._backend.delete(key)
        except CacheBackendError as exc:
            self._logger.warning("Failed to delete %s key=%r: %s", reason, key, exc)
