"""Crash-safe replacement of the cache file.

Every mutation rewrites the whole document using three files that share a
directory:

* ``<name>`` -- the primary file, always a complete generation.
* ``<name>.tmp`` -- staging file for the generation being written.
* ``<name>.bak`` -- copy of the previous generation, used for recovery.

Write sequence (:meth:`AtomicFileWriter.write_text`):

1. Create the parent directory if needed.
2. Write the full content to ``.tmp``, flush and ``fsync`` it.
3. Copy the current primary to ``.bak`` (best-effort, see below).
4. Rename ``.tmp`` over the primary. If the platform refuses to rename
   over an existing file, delete the primary and rename once more.

Until step 4 completes the primary holds the previous generation; after it,
the new one. A reader never sees a half-written primary.

A failed backup copy is not an error: it is returned in
:attr:`PersistReport.backup_error` and logged at WARNING.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os

from typedcache.models import CacheDocument
from typedcache.store.document import encode_document

TEMP_SUFFIX = ".tmp"
BACKUP_SUFFIX = ".bak"


@dataclass(frozen=True)
class FileArtifacts:
    """The primary / temp / backup file triplet of one cache."""

    primary: Path

    @property
    def temp(self) -> Path:
        return self.primary.with_name(self.primary.name + TEMP_SUFFIX)

    @property
    def backup(self) -> Path:
        return self.primary.with_name(self.primary.name + BACKUP_SUFFIX)


@dataclass(frozen=True)
class PersistReport:
    """Outcome of one atomic write.

    Attributes:
        path: The primary file that now holds the new generation.
        bytes_written: Size of the new generation in bytes.
        backup_error: The error raised while copying the previous
            generation to ``.bak``, or ``None`` if the copy succeeded or
            there was nothing to copy.
        replaced_after_delete: ``True`` if the first rename failed and the
            primary had to be deleted before the retry.
    """

    path: Path
    bytes_written: int
    backup_error: Optional[OSError] = None
    replaced_after_delete: bool = False


class AtomicFileWriter:
    """Persist cache documents to one file with the temp/backup/rename protocol.

    Holds no open handles between calls. Not safe to share a path between
    two writers that run concurrently; callers serialise access (see
    :class:`~typedcache.store.serializer.OperationSerializer`).

    Args:
        path: The primary cache file.
        logger: Sink for non-fatal diagnostics. Defaults to this module's
            logger.
    """

    def __init__(self, path: str | Path, logger: Optional[logging.Logger] = None) -> None:
        self._artifacts = FileArtifacts(Path(path))
        self._logger = logger or logging.getLogger(__name__)

    @property
    def artifacts(self) -> FileArtifacts:
        return self._artifacts

    async def persist(self, document: CacheDocument, backup: bool = True) -> PersistReport:
        """Encode *document* and atomically replace the primary file with it.

        Raises:
            OSError: If the temp file cannot be written or renamed into place.
            TypeError: If an entry payload is not JSON-serialisable (nothing
                is written in that case).
        """
        return await self.write_text(encode_document(document), backup=backup)

    async def write_text(self, content: str, backup: bool = True) -> PersistReport:
        """Atomically replace the primary file with *content*.

        Args:
            content: The full new file contents.
            backup: Copy the current primary to ``.bak`` first. Disabled
                when restoring a corrupted primary from its backup.

        Returns:
            A :class:`PersistReport` describing what happened.

        Raises:
            OSError: If the temp file cannot be written or renamed into place.
        """
        files = self._artifacts
        await aiofiles.os.makedirs(files.primary.parent, exist_ok=True)

        await self._write_temp(files.temp, content)

        backup_error = await self._backup(files) if backup else None
        if backup_error is not None:
            self._logger.warning(
                "Could not back up %s to %s: %s", files.primary, files.backup, backup_error
            )

        replaced_after_delete = await self._rename_into_place(files)
        return PersistReport(
            path=files.primary,
            bytes_written=len(content.encode("utf-8")),
            backup_error=backup_error,
            replaced_after_delete=replaced_after_delete,
        )

    async def _write_temp(self, temp: Path, content: str) -> None:
        try:
            async with aiofiles.open(temp, mode="w", encoding="utf-8") as handle:
                await handle.write(content)
                await handle.flush()
                await asyncio.to_thread(os.fsync, handle.fileno())
        except BaseException:
            # A partial staging file is useless for recovery.
            with contextlib.suppress(OSError):
                await aiofiles.os.remove(temp)
            raise

    async def _backup(self, files: FileArtifacts) -> Optional[OSError]:
        """Copy the current primary to ``.bak``; return the failure instead of raising."""
        try:
            if not await aiofiles.os.path.exists(files.primary):
                return None
            await asyncio.to_thread(shutil.copyfile, files.primary, files.backup)
        except OSError as exc:
            return exc
        return None

    async def _rename_into_place(self, files: FileArtifacts) -> bool:
        try:
            await aiofiles.os.replace(files.temp, files.primary)
            return False
        except OSError as exc:
            self._logger.debug(
                "Rename %s -> %s failed (%s); deleting target and retrying",
                files.temp,
                files.primary,
                exc,
            )
        with contextlib.suppress(FileNotFoundError):
            await aiofiles.os.remove(files.primary)
        await aiofiles.os.rename(files.temp, files.primary)
        return True
