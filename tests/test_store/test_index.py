"""Tests for typedcache.store.index -- in-memory mutations and the tag index."""

from __future__ import annotations

from typing import Iterable, Optional

from typedcache.models import CacheDocument, CacheEntry
from typedcache.store import index
from typedcache.store.document import empty_document


def _entry(key: str, tags: Iterable[str] = (), expires_at: Optional[int] = None) -> CacheEntry:
    return CacheEntry(
        key=key,
        type_id="x",
        payload=key,
        created_at_epoch_ms=0,
        expires_at_epoch_ms=expires_at,
        tags=frozenset(tags),
    )


def _assert_consistent(document: CacheDocument) -> None:
    assert index.tag_index_violations(document) == []


# ------------------------------------------------------------------ #
# upsert
# ------------------------------------------------------------------ #


class TestUpsert:
    def test_insert_indexes_tags(self) -> None:
        doc = empty_document()
        index.upsert(doc, _entry("a", {"t1", "t2"}))
        assert doc.tag_index == {"t1": {"a"}, "t2": {"a"}}
        _assert_consistent(doc)

    def test_replace_retracts_old_tags(self) -> None:
        doc = empty_document()
        index.upsert(doc, _entry("a", {"t1", "t2"}))
        index.upsert(doc, _entry("a", {"t2", "t3"}))

        assert set(doc.tag_index) == {"t2", "t3"}
        assert doc.entries["a"].tags == frozenset({"t2", "t3"})
        _assert_consistent(doc)

    def test_shared_tag_survives_replace_of_one_key(self) -> None:
        doc = empty_document()
        index.upsert(doc, _entry("a", {"t"}))
        index.upsert(doc, _entry("b", {"t"}))
        index.upsert(doc, _entry("a"))

        assert doc.tag_index == {"t": {"b"}}
        _assert_consistent(doc)


# ------------------------------------------------------------------ #
# Removal
# ------------------------------------------------------------------ #


class TestRemove:
    def test_remove_entry_then_retract(self) -> None:
        doc = empty_document()
        index.upsert(doc, _entry("a", {"t"}))
        index.upsert(doc, _entry("b", {"t", "u"}))

        removed = index.remove_entry(doc, "b")
        assert removed is not None
        index.retract_tags(doc, "b", removed.tags)

        assert doc.tag_index == {"t": {"a"}}
        _assert_consistent(doc)

    def test_remove_missing_returns_none(self) -> None:
        doc = empty_document()
        assert index.remove_entry(doc, "nope") is None

    def test_retract_unknown_tag_ignored(self) -> None:
        doc = empty_document()
        index.upsert(doc, _entry("a", {"t"}))
        index.retract_tags(doc, "a", {"ghost"})
        assert doc.tag_index == {"t": {"a"}}


# ------------------------------------------------------------------ #
# Purge and tag deletion
# ------------------------------------------------------------------ #


class TestPurgeExpired:
    def test_removes_only_expired(self) -> None:
        doc = empty_document()
        index.upsert(doc, _entry("old", {"t"}, expires_at=100))
        index.upsert(doc, _entry("edge", {"t"}, expires_at=200))
        index.upsert(doc, _entry("new", {"t"}, expires_at=300))
        index.upsert(doc, _entry("forever", {"t"}))

        removed = index.purge_expired(doc, 200)

        assert removed == 2
        assert set(doc.entries) == {"new", "forever"}
        assert doc.tag_index == {"t": {"new", "forever"}}
        _assert_consistent(doc)

    def test_nothing_expired_returns_zero(self) -> None:
        doc = empty_document()
        index.upsert(doc, _entry("a", expires_at=1_000))
        assert index.purge_expired(doc, 999) == 0
        assert set(doc.entries) == {"a"}


class TestDeleteTag:
    def test_strips_tag_and_keeps_entries(self) -> None:
        doc = empty_document()
        index.upsert(doc, _entry("a", {"t", "u"}))
        index.upsert(doc, _entry("b", {"t"}))

        affected = index.delete_tag(doc, "t")

        assert affected == {"a", "b"}
        assert set(doc.entries) == {"a", "b"}
        assert doc.entries["a"].tags == frozenset({"u"})
        assert doc.entries["b"].tags == frozenset()
        assert doc.tag_index == {"u": {"a"}}
        _assert_consistent(doc)

    def test_unknown_tag_is_noop(self) -> None:
        doc = empty_document()
        index.upsert(doc, _entry("a", {"t"}))
        assert index.delete_tag(doc, "ghost") == set()
        assert doc.tag_index == {"t": {"a"}}


# ------------------------------------------------------------------ #
# Violations
# ------------------------------------------------------------------ #


class TestViolations:
    def test_entry_missing_from_index(self) -> None:
        doc = CacheDocument(entries={"a": _entry("a", {"t"})})
        problems = index.tag_index_violations(doc)
        assert len(problems) == 1
        assert "missing from its index" in problems[0]

    def test_index_lists_unknown_key(self) -> None:
        doc = CacheDocument(tag_index={"t": {"ghost"}})
        assert any("unknown key" in p for p in index.tag_index_violations(doc))

    def test_index_lists_key_without_tag(self) -> None:
        doc = CacheDocument(entries={"a": _entry("a")}, tag_index={"t": {"a"}})
        assert any("does not carry it" in p for p in index.tag_index_violations(doc))

    def test_empty_key_set(self) -> None:
        doc = CacheDocument(tag_index={"t": set()})
        assert any("empty key set" in p for p in index.tag_index_violations(doc))
