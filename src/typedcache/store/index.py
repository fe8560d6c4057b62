"""In-memory mutations of a cache document that keep the tag index consistent.

No I/O happens here. Every function mutates the :class:`CacheDocument` it is
given; persisting the result is the caller's job.

Invariant maintained by every function: for each entry ``e`` and each tag
``t`` in ``e.tags``, ``tag_index[t]`` contains ``e.key``; for each tag in
``tag_index`` every listed key refers to an entry carrying that tag; no tag
maps to an empty set.
"""

from __future__ import annotations

from typing import Iterable, Optional

from typedcache.models import CacheDocument, CacheEntry


def upsert(document: CacheDocument, entry: CacheEntry) -> None:
    """Insert *entry*, replacing and un-indexing any entry under the same key."""
    previous = document.entries.get(entry.key)
    if previous is not None:
        retract_tags(document, entry.key, previous.tags)

    document.entries[entry.key] = entry

    for tag in entry.tags:
        document.tag_index.setdefault(tag, set()).add(entry.key)


def retract_tags(document: CacheDocument, key: str, tags: Iterable[str]) -> None:
    """Remove *key* from the index set of each tag in *tags*.

    Tags left with no keys are dropped from the index. Tags missing from the
    index are ignored.
    """
    for tag in tags:
        keys = document.tag_index.get(tag)
        if keys is None:
            continue
        keys.discard(key)
        if not keys:
            del document.tag_index[tag]


def remove_entry(document: CacheDocument, key: str) -> Optional[CacheEntry]:
    """Remove and return the entry stored under *key*, or ``None`` if absent.

    The tag index is left untouched; call :func:`retract_tags` with the
    returned entry's tags.
    """
    return document.entries.pop(key, None)


def purge_expired(document: CacheDocument, now_epoch_ms: int) -> int:
    """Remove every entry that expired at or before *now_epoch_ms*.

    Returns:
        Number of entries removed. Zero means the document was not touched.
    """
    expired = [key for key, entry in document.entries.items() if entry.is_expired(now_epoch_ms)]
    for key in expired:
        entry = remove_entry(document, key)
        if entry is not None:
            retract_tags(document, key, entry.tags)
    return len(expired)


def delete_tag(document: CacheDocument, tag: str) -> set[str]:
    """Drop *tag* from the index and from every entry that carried it.

    The entries themselves are kept.

    Returns:
        Keys whose tag set changed. Empty if the tag was unknown.
    """
    keys = document.tag_index.pop(tag, None)
    if not keys:
        return set()

    for key in keys:
        entry = document.entries.get(key)
        if entry is None:
            continue
        document.entries[key] = entry.with_tags(entry.tags - {tag})
    return set(keys)


def tag_index_violations(document: CacheDocument) -> list[str]:
    """Describe every way *document* breaks the tag-index invariant.

    Returns:
        Human-readable problem descriptions; empty for a consistent document.
    """
    problems: list[str] = []
    for key, entry in document.entries.items():
        for tag in sorted(entry.tags):
            if key not in document.tag_index.get(tag, ()):
                problems.append(f"entry {key!r} has tag {tag!r} but is missing from its index")
    for tag, keys in document.tag_index.items():
        if not keys:
            problems.append(f"tag {tag!r} has an empty key set")
        for key in sorted(keys):
            entry = document.entries.get(key)
            if entry is None:
                problems.append(f"tag {tag!r} lists unknown key {key!r}")
            elif tag not in entry.tags:
                problems.append(f"tag {tag!r} lists {key!r}, which does not carry it")
    return problems
