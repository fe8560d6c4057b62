"""JSON-file storage backend.

:class:`JsonFileBackend` composes the storage engine:

* :class:`~typedcache.store.serializer.OperationSerializer` -- one operation
  at a time, in submission order;
* :class:`~typedcache.store.loader.RecoveryLoader` -- reads the current
  document, recovering from corruption;
* :mod:`typedcache.store.index` -- mutates the document in memory;
* :class:`~typedcache.store.writer.AtomicFileWriter` -- persists the result.

Every public operation is ``load -> mutate -> persist`` (or just ``load``
for reads) inside the serializer. No document is kept between operations,
so the file is the single source of truth and an instance holds no open
handles.

Two backends pointed at the same path must not be used concurrently: the
serializer only orders operations of one instance.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Awaitable, Callable, Optional, TypeVar

from typedcache.exceptions import CacheBackendError
from typedcache.models import CacheEntry, CacheLocation
from typedcache.store import index
from typedcache.store.base import CacheBackend
from typedcache.store.document import empty_document
from typedcache.store.loader import LoadResult, RecoveryLoader
from typedcache.store.serializer import OperationSerializer
from typedcache.store.writer import AtomicFileWriter, FileArtifacts

T = TypeVar("T")


class JsonFileBackend(CacheBackend):
    """A :class:`~typedcache.store.base.CacheBackend` stored in one JSON file.

    Three files are involved: ``<path>`` (the cache), ``<path>.tmp`` (staging
    for atomic writes) and ``<path>.bak`` (the previous generation, used to
    recover from corruption).

    I/O failures surface as :class:`~typedcache.exceptions.CacheBackendError`;
    a corrupted file never raises.

    Args:
        path: The cache file.
        enable_recovery: Recover from ``.bak``/``.tmp`` when the cache file
            is corrupted. When ``False`` a corrupted file reads as empty.
        logger: Sink for non-fatal diagnostics (failed backups, recovery).
            Defaults to the storage modules' own loggers.

    Example::

        backend = JsonFileBackend("/tmp/app/cache.json")
        await backend.write(entry)
        assert await backend.keys_by_tag("users") == {entry.key}
    """

    def __init__(
        self,
        path: str | Path,
        *,
        enable_recovery: bool = True,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._writer = AtomicFileWriter(path, logger=logger)
        self._loader = RecoveryLoader(self._writer, enable_recovery=enable_recovery, logger=logger)
        self._serializer = OperationSerializer()

    @classmethod
    def from_location(
        cls,
        location: CacheLocation = CacheLocation.SUPPORT,
        file_name: str = "typed_cache.json",
        subdir: Optional[str] = None,
        enable_recovery: bool = True,
        logger: Optional[logging.Logger] = None,
    ) -> JsonFileBackend:
        """Create a backend whose file lives in a symbolic *location*.

        The directory is resolved (and created) by
        :func:`~typedcache.config.resolve_cache_file`.

        Example::

            backend = JsonFileBackend.from_location(
                CacheLocation.CACHE, "responses.json", subdir="my_app"
            )
        """
        from typedcache.config import resolve_cache_file

        path = resolve_cache_file(location=location, file_name=file_name, subdir=subdir)
        return cls(path, enable_recovery=enable_recovery, logger=logger)

    @property
    def path(self) -> Path:
        """The primary cache file."""
        return self._writer.artifacts.primary

    @property
    def artifacts(self) -> FileArtifacts:
        """The primary, temp and backup file paths."""
        return self._writer.artifacts

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    async def read(self, key: str) -> Optional[CacheEntry]:
        """Return the entry under *key*, or ``None``.

        Expiry is not checked and nothing is written.
        """

        async def _read() -> Optional[CacheEntry]:
            document = await self._loader.load()
            return document.entries.get(key)

        return await self._run(f"read of {key!r}", _read)

    async def read_all(self) -> list[CacheEntry]:
        async def _read_all() -> list[CacheEntry]:
            document = await self._loader.load()
            return list(document.entries.values())

        return await self._run("read of all entries", _read_all)

    async def keys_by_tag(self, tag: str) -> set[str]:
        """Return a copy of the key set indexed under *tag*; empty if unknown."""

        async def _keys_by_tag() -> set[str]:
            document = await self._loader.load()
            return set(document.tag_index.get(tag, ()))

        return await self._run(f"lookup of tag {tag!r}", _keys_by_tag)

    async def inspect(self) -> LoadResult:
        """Load the document and report which artifact it came from."""
        return await self._run("inspection", self._loader.load_result)

    # ------------------------------------------------------------------ #
    # Mutations
    # ------------------------------------------------------------------ #

    async def write(self, entry: CacheEntry) -> None:
        """Insert or replace *entry*. Always rewrites the file."""

        async def _write() -> None:
            document = await self._loader.load()
            index.upsert(document, entry)
            await self._writer.persist(document)

        await self._run(f"write of {entry.key!r}", _write)

    async def delete(self, key: str) -> bool:
        """Remove the entry under *key*. Writes nothing if it does not exist."""

        async def _delete() -> bool:
            document = await self._loader.load()
            removed = index.remove_entry(document, key)
            if removed is None:
                return False
            index.retract_tags(document, key, removed.tags)
            await self._writer.persist(document)
            return True

        return await self._run(f"delete of {key!r}", _delete)

    async def clear(self) -> None:
        """Replace the cache with an empty document. Always writes."""

        async def _clear() -> None:
            await self._writer.persist(empty_document())

        await self._run("clear", _clear)

    async def delete_tag(self, tag: str) -> bool:
        """Strip *tag* from all entries, keeping the entries. No write if unknown."""

        async def _delete_tag() -> bool:
            document = await self._loader.load()
            if not index.delete_tag(document, tag):
                return False
            await self._writer.persist(document)
            return True

        return await self._run(f"delete of tag {tag!r}", _delete_tag)

    async def purge_expired(self, now_epoch_ms: int) -> int:
        """Remove entries expired at *now_epoch_ms*. Writes only if something expired."""

        async def _purge() -> int:
            document = await self._loader.load()
            removed = index.purge_expired(document, now_epoch_ms)
            if removed:
                await self._writer.persist(document)
            return removed

        return await self._run("purge of expired entries", _purge)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    async def _run(self, description: str, operation: Callable[[], Awaitable[T]]) -> T:
        try:
            return await self._serializer.run(operation)
        except OSError as exc:
            raise CacheBackendError(f"Cache {description} failed at {self.path}: {exc}") from exc
