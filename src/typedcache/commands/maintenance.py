"""Maintenance commands -- remove entries, tags and expired data.

Every command goes through the storage engine, so writes use the same
temp/backup/rename protocol as applications do.
"""

from __future__ import annotations

import typer

from typedcache.clock import SystemClock
from typedcache.commands.common import open_backend, run
from typedcache.output import info, success


def delete_command(
    ctx: typer.Context,
    key: str = typer.Argument(help="Cache key to remove."),
) -> None:
    """Remove the entry stored under KEY.

    A missing key is not an error and leaves the file untouched.
    """
    backend = open_backend(ctx)
    if run(backend.delete(key)):
        success(f"Deleted {key}.")
    else:
        info(f"No entry for {key}; nothing to do.")


def delete_tag_command(
    ctx: typer.Context,
    tag: str = typer.Argument(help="Tag to remove."),
) -> None:
    """Strip TAG from every entry. The entries themselves are kept."""
    backend = open_backend(ctx)
    if run(backend.delete_tag(tag)):
        success(f"Removed tag {tag}.")
    else:
        info(f"Unknown tag {tag}; nothing to do.")


def purge_command(ctx: typer.Context) -> None:
    """Remove every expired entry."""
    backend = open_backend(ctx)
    removed = run(backend.purge_expired(SystemClock().now_epoch_ms()))
    success(f"Purged {removed} expired entr{'y' if removed == 1 else 'ies'}.")


def clear_command(ctx: typer.Context) -> None:
    """Remove all entries and tags.

    Asks for confirmation unless ``--force`` is active.

    Example::

        typedcache clear
        typedcache --force clear
    """
    backend = open_backend(ctx)
    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        confirmed = typer.confirm(f"Remove all entries from {backend.path}?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    run(backend.clear())
    success("Cache cleared.")
