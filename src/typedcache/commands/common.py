"""Helpers shared by the CLI commands: opening the cache and running coroutines."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Awaitable, Optional, TypeVar

import typer

from typedcache.exceptions import TypedCacheError
from typedcache.output import debug, error
from typedcache.store import JsonFileBackend

T = TypeVar("T")


def open_backend(ctx: typer.Context) -> JsonFileBackend:
    """Build a backend for the cache file selected by global options and config.

    Raises:
        typer.Exit: With the error's exit code if the settings are invalid.
    """
    from typedcache.config import cache_path_for, resolve_settings

    obj = ctx.obj or {}
    try:
        settings = resolve_settings(
            cli_path=obj.get("path"),
            cli_location=obj.get("location"),
            cli_subdir=obj.get("subdir"),
            cli_no_recovery=obj.get("no_recovery", False),
        )
        path = cache_path_for(settings)
    except TypedCacheError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    except OSError as exc:
        error(f"Cannot resolve cache directory: {exc}")
        raise typer.Exit(code=1) from None

    debug(f"Cache file: {path} (recovery {'on' if settings.enable_recovery else 'off'})")
    return JsonFileBackend(path, enable_recovery=settings.enable_recovery)


def run(awaitable: Awaitable[T]) -> T:
    """Run *awaitable* to completion, mapping typedcache errors to exit codes.

    Raises:
        typer.Exit: With the error's exit code on a :class:`TypedCacheError`.
    """

    async def _main() -> T:
        return await awaitable

    try:
        return asyncio.run(_main())
    except TypedCacheError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def format_epoch_ms(epoch_ms: Optional[int]) -> str:
    """Render an epoch-millisecond timestamp as UTC ISO-8601, or ``never``."""
    if epoch_ms is None:
        return "never"
    moment = datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="seconds")
