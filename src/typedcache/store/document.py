"""Document codec: cache document <-> UTF-8 JSON text.

The whole cache lives in one JSON object::

    {
      "schemaVersion": 1,
      "entries": {"<key>": {"key": ..., "typeId": ..., "payload": ...,
                            "createdAt": ..., "expiresAt": ..., "tags": [...]}},
      "tagIndex": {"<tag>": ["<key>", ...]}
    }

:func:`decode_document` is forgiving about *absent* data (a missing
``schemaVersion`` means ``1``, missing ``entries``/``tagIndex`` mean empty)
but strict about *malformed* data: anything that is not a JSON object of
that shape raises :class:`~typedcache.exceptions.DocumentDecodeError`, which
the recovery loader treats as corruption.

Older documents are upgraded through :data:`MIGRATIONS` before validation.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable

from pydantic import ValidationError

from typedcache.exceptions import DocumentDecodeError
from typedcache.models import SCHEMA_VERSION, CacheDocument

logger = logging.getLogger(__name__)

MIGRATIONS: dict[int, Callable[[dict[str, Any]], dict[str, Any]]] = {}
"""Upgrade steps keyed by the version they upgrade *from*.

``MIGRATIONS[n]`` receives a raw version-``n`` document and returns the
equivalent version ``n + 1`` document. Empty while only version 1 exists.
"""


def empty_document() -> CacheDocument:
    """Return a new document with no entries at the current schema version."""
    return CacheDocument(schema_version=SCHEMA_VERSION)


def encode_document(document: CacheDocument) -> str:
    """Serialise *document* to its JSON text form.

    Tags and tag-index key lists are written sorted, so encoding the same
    document twice yields identical text. Payloads are handed to :mod:`json`
    untouched, and non-finite floats are written as ``Infinity``/``NaN``
    so they load back as floats.

    Raises:
        TypeError: If an entry payload is not JSON-serialisable.
    """
    data = document.model_dump(by_alias=True)
    return json.dumps(data, ensure_ascii=False, separators=(",", ":"))


def decode_document(text: str) -> CacheDocument:
    """Parse JSON *text* into a :class:`~typedcache.models.CacheDocument`.

    Args:
        text: Full contents of a cache file.

    Returns:
        The parsed and validated document, upgraded to the current schema
        version when it was older.

    Raises:
        DocumentDecodeError: If *text* is not JSON, is not a JSON object, or
            does not have the shape of a cache document.
    """
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise DocumentDecodeError(f"Invalid JSON: {exc}") from exc
    if not isinstance(raw, dict):
        raise DocumentDecodeError(
            f"Expected a JSON object at top level, got {type(raw).__name__}"
        )
    raw = migrate_document(raw)
    try:
        return CacheDocument.model_validate(raw)
    except ValidationError as exc:
        raise DocumentDecodeError(f"Malformed cache document: {exc}") from exc


def migrate_document(raw: dict[str, Any]) -> dict[str, Any]:
    """Upgrade a raw document dict to :data:`~typedcache.models.SCHEMA_VERSION`.

    Documents written by a newer release are returned unchanged and read
    best-effort.

    Raises:
        DocumentDecodeError: If ``schemaVersion`` is not an integer or no
            migration is registered for an intermediate version.
    """
    version = raw.get("schemaVersion")
    if version is None:
        version = 1
    if isinstance(version, bool) or not isinstance(version, (int, float)):
        raise DocumentDecodeError(f"Invalid schemaVersion: {version!r}")
    version = int(version)

    if version > SCHEMA_VERSION:
        logger.debug(
            "Cache document has schema version %d, newer than %d; reading best-effort",
            version,
            SCHEMA_VERSION,
        )
        return raw

    while version < SCHEMA_VERSION:
        step = MIGRATIONS.get(version)
        if step is None:
            raise DocumentDecodeError(f"No migration from schema version {version}")
        raw = step(raw)
        version += 1
        raw["schemaVersion"] = version
        logger.debug("Migrated cache document to schema version %d", version)
    return raw
