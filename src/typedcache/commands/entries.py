"""Inspection commands -- look inside a cache file without changing it.

``info``, ``get``, ``keys``, ``tags`` and ``check`` all load the cache
through the storage engine, so a corrupted file is recovered (and the
primary restored) exactly as it would be by an application.
"""

from __future__ import annotations

from typing import Optional

import typer

from typedcache.clock import SystemClock
from typedcache.commands.common import format_epoch_ms, open_backend, run
from typedcache.exceptions import NotFoundError
from typedcache.models import CacheEntry
from typedcache.output import (
    error,
    format_response,
    print_data,
    print_table,
    success,
    suggest,
    warning,
)
from typedcache.store import DocumentSource, JsonFileBackend
from typedcache.store.index import tag_index_violations


def info_command(ctx: typer.Context) -> None:
    """Show where the cache lives and what it contains.

    Reports the file triplet (primary, ``.tmp``, ``.bak``), which of them
    the document was loaded from, the schema version and entry, tag and
    expired-entry counts.

    Example::

        typedcache info
        typedcache --file ./cache.json info --json
    """
    backend = open_backend(ctx)
    result = run(backend.inspect())
    document = result.document
    now = SystemClock().now_epoch_ms()
    files = backend.artifacts

    format_response(
        {
            "path": str(files.primary),
            "exists": files.primary.exists(),
            "temp": str(files.temp),
            "temp_exists": files.temp.exists(),
            "backup": str(files.backup),
            "backup_exists": files.backup.exists(),
            "source": result.source.value,
            "schema_version": document.schema_version,
            "entries": len(document.entries),
            "tags": len(document.tag_index),
            "expired": sum(1 for e in document.entries.values() if e.is_expired(now)),
        }
    )
    if result.recovered:
        warning(f"Cache file was corrupted and has been restored from the {result.source.value} file.")
    elif result.source == DocumentSource.EMPTY:
        warning("Cache file was corrupted and could not be recovered; it reads as empty.")
        suggest("Inspect the .bak and .tmp files, or run 'typedcache clear' to start over.")


def get_command(
    ctx: typer.Context,
    key: str = typer.Argument(help="Cache key."),
) -> None:
    """Print the stored entry for KEY in its on-disk form.

    Exits with code 4 if the key is not in the cache. Expired entries are
    still shown.

    Example::

        typedcache get user:42 --json
    """
    backend = open_backend(ctx)

    async def _get() -> CacheEntry:
        entry = await backend.read(key)
        if entry is None:
            raise NotFoundError(f"No entry for key {key!r}")
        return entry

    entry = run(_get())
    format_response(entry.model_dump(by_alias=True))


def keys_command(
    ctx: typer.Context,
    tag: Optional[str] = typer.Option(None, "--tag", "-t", help="Only entries carrying this tag."),
) -> None:
    """List cache entries.

    Example::

        typedcache keys
        typedcache keys --tag users --plain
    """
    backend = open_backend(ctx)
    entries = run(_select_entries(backend, tag))
    now = SystemClock().now_epoch_ms()

    rows = []
    for entry in sorted(entries, key=lambda e: e.key):
        expires = format_epoch_ms(entry.expires_at_epoch_ms)
        if entry.is_expired(now):
            expires += " (expired)"
        rows.append(
            [
                entry.key,
                entry.type_id,
                format_epoch_ms(entry.created_at_epoch_ms),
                expires,
                ",".join(sorted(entry.tags)),
            ]
        )
    print_table(["key", "typeId", "created", "expires", "tags"], rows, title="Entries")


async def _select_entries(backend: JsonFileBackend, tag: Optional[str]) -> list[CacheEntry]:
    entries = await backend.read_all()
    if tag is None:
        return entries
    keys = await backend.keys_by_tag(tag)
    return [entry for entry in entries if entry.key in keys]


def tags_command(ctx: typer.Context) -> None:
    """List tags and how many entries carry each."""
    backend = open_backend(ctx)
    document = run(backend.inspect()).document
    rows = [[tag, str(len(keys))] for tag, keys in sorted(document.tag_index.items())]
    print_table(["tag", "keys"], rows, title="Tags")


def check_command(ctx: typer.Context) -> None:
    """Verify that the tag index matches the entries.

    Prints one line per problem and exits with code 1 if any are found.
    """
    backend = open_backend(ctx)
    document = run(backend.inspect()).document
    problems = tag_index_violations(document)
    if not problems:
        success(
            f"Tag index consistent ({len(document.entries)} entries, "
            f"{len(document.tag_index)} tags)."
        )
        return
    for problem in problems:
        print_data(problem)
    error(f"{len(problems)} tag index problem(s) found.")
    raise typer.Exit(code=1)
