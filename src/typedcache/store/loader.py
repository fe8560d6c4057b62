"""Load the cache document, recovering from corrupted files.

Policy of :meth:`RecoveryLoader.load_result`:

1. Primary missing, empty or whitespace-only -> empty document. Not an error.
2. Primary parses -> that document.
3. Primary is corrupted (invalid JSON, invalid UTF-8, wrong shape):

   * recovery disabled -> empty document;
   * recovery enabled -> try ``.bak`` then ``.tmp``. The first candidate
     that parses is written back to the primary and returned. If none
     does, the result is an empty document.

Corruption never raises. I/O failures on the primary (permissions, a
directory in the way) do raise :class:`OSError`; the backend turns those
into :class:`~typedcache.exceptions.CacheBackendError`.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import aiofiles

from typedcache.exceptions import DocumentDecodeError
from typedcache.models import CacheDocument
from typedcache.store.document import decode_document, empty_document
from typedcache.store.writer import AtomicFileWriter


class DocumentSource(str, enum.Enum):
    """Where a loaded document came from."""

    MISSING = "missing"
    PRIMARY = "primary"
    BACKUP = "backup"
    TEMP = "temp"
    EMPTY = "empty"


@dataclass(frozen=True)
class LoadResult:
    """A loaded document plus the artifact it was read from.

    ``source`` is :attr:`DocumentSource.MISSING` for a fresh cache and
    :attr:`DocumentSource.EMPTY` when a corrupted primary could not be
    recovered.
    """

    document: CacheDocument
    source: DocumentSource

    @property
    def recovered(self) -> bool:
        return self.source in (DocumentSource.BACKUP, DocumentSource.TEMP)


class RecoveryLoader:
    """Read the primary cache file, falling back to ``.bak`` and ``.tmp``.

    Args:
        writer: Writer for the same cache file. Supplies the file triplet
            and restores the primary after a successful recovery.
        enable_recovery: When ``False`` a corrupted primary yields an empty
            document without looking at the other artifacts.
        logger: Sink for recovery diagnostics. Defaults to this module's
            logger.
    """

    def __init__(
        self,
        writer: AtomicFileWriter,
        enable_recovery: bool = True,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._writer = writer
        self._enable_recovery = enable_recovery
        self._logger = logger or logging.getLogger(__name__)

    @property
    def enable_recovery(self) -> bool:
        return self._enable_recovery

    async def load(self) -> CacheDocument:
        """Return the current document (see the module docstring for the policy)."""
        return (await self.load_result()).document

    async def load_result(self) -> LoadResult:
        """Like :meth:`load`, but also report which artifact was used.

        Raises:
            OSError: If the primary exists but cannot be read.
        """
        primary = self._writer.artifacts.primary
        try:
            text = await _read_text(primary)
            if text is None or not text.strip():
                return LoadResult(empty_document(), DocumentSource.MISSING)
            return LoadResult(decode_document(text), DocumentSource.PRIMARY)
        except DocumentDecodeError as exc:
            if not self._enable_recovery:
                self._logger.warning(
                    "Cache file %s is corrupted (%s); recovery disabled, starting empty",
                    primary,
                    exc,
                )
                return LoadResult(empty_document(), DocumentSource.EMPTY)
            self._logger.warning("Cache file %s is corrupted (%s); attempting recovery", primary, exc)
            return await self._recover()

    async def _recover(self) -> LoadResult:
        files = self._writer.artifacts
        candidates = (
            (DocumentSource.BACKUP, files.backup),
            (DocumentSource.TEMP, files.temp),
        )
        for source, candidate in candidates:
            document = await self._read_candidate(candidate)
            if document is None:
                continue
            self._logger.warning("Recovered cache %s from %s", files.primary, candidate)
            await self._restore(document)
            return LoadResult(document, source)

        self._logger.error(
            "Could not recover cache %s from %s or %s; starting empty",
            files.primary,
            files.backup.name,
            files.temp.name,
        )
        return LoadResult(empty_document(), DocumentSource.EMPTY)

    async def _read_candidate(self, path: Path) -> Optional[CacheDocument]:
        """Parse a recovery candidate; log and return ``None`` if it is unusable."""
        try:
            text = await _read_text(path)
            if text is None:
                return None
            return decode_document(text)
        except (OSError, DocumentDecodeError) as exc:
            self._logger.warning("Recovery candidate %s is unusable: %s", path, exc)
            return None

    async def _restore(self, document: CacheDocument) -> None:
        # The corrupted primary must not overwrite the good backup.
        try:
            await self._writer.persist(document, backup=False)
        except OSError as exc:
            self._logger.warning(
                "Could not restore %s after recovery: %s", self._writer.artifacts.primary, exc
            )


async def _read_text(path: Path) -> Optional[str]:
    """Return the UTF-8 contents of *path*, or ``None`` if it does not exist.

    Raises:
        DocumentDecodeError: If the file is not valid UTF-8.
        OSError: For any other read failure.
    """
    try:
        async with aiofiles.open(path, mode="r", encoding="utf-8") as handle:
            return await handle.read()
    except FileNotFoundError:
        return None
    except UnicodeDecodeError as exc:
        raise DocumentDecodeError(f"{path} is not valid UTF-8: {exc}") from exc
