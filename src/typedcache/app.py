"""Typer application and CLI entry point for typedcache.

This module wires together the top-level Typer application and registers
the inspection and maintenance sub-commands (``info``, ``get``, ``keys``,
``tags``, ``check``, ``delete``, ``delete-tag``, ``purge``, ``clear``,
``config``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers and invokes the Typer app.
Unhandled exceptions are written to a crash log under the data directory.

See Also:
    :mod:`typedcache.config`: Settings and cache path resolution.
    :mod:`typedcache.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer
from rich.logging import RichHandler

from typedcache import __version__
from typedcache.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="typedcache",
    help="Inspect and maintain typedcache JSON cache files.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

# ------------------------------------------------------------------ #
# Commands
# ------------------------------------------------------------------ #

from typedcache.commands.config import config_app  # noqa: E402
from typedcache.commands.entries import (  # noqa: E402
    check_command,
    get_command,
    info_command,
    keys_command,
    tags_command,
)
from typedcache.commands.maintenance import (  # noqa: E402
    clear_command,
    delete_command,
    delete_tag_command,
    purge_command,
)

app.command("info")(info_command)
app.command("get")(get_command)
app.command("keys")(keys_command)
app.command("tags")(tags_command)
app.command("check")(check_command)
app.command("delete")(delete_command)
app.command("delete-tag")(delete_tag_command)
app.command("purge")(purge_command)
app.command("clear")(clear_command)
app.add_typer(config_app, name="config", help="Settings management.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"typedcache {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    path: Optional[str] = typer.Option(
        None, "--file", "-f", help="Cache file to operate on (overrides location)."
    ),
    location: Optional[str] = typer.Option(
        None, "--location", help="Base location: support, cache, temporary or documents."
    ),
    subdir: Optional[str] = typer.Option(
        None, "--subdir", help="Subdirectory inside the base location."
    ),
    no_recovery: bool = typer.Option(
        False, "--no-recovery", help="Treat a corrupted cache as empty instead of recovering."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
    force: bool = typer.Option(
        False, "--force", help="Skip confirmations."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~typedcache.output.OutputManager` and the
    ``typedcache`` log handler from CLI flags, and stores the cache
    selection options in the Typer context so that sub-commands can read
    them via ``ctx.obj``.

    Args:
        ctx: Typer invocation context.
        version: If ``True``, print the version string and exit.
        path: Explicit cache file path (highest precedence).
        location: Symbolic base location override.
        subdir: Subdirectory override.
        no_recovery: Disable corruption recovery for this invocation.
        json_output: Force JSON output format.
        plain_output: Force plain-text output format.
        no_color: Disable all colour and Rich markup.
        quiet: Suppress non-essential diagnostic output.
        verbose: Enable debug-level diagnostic output and log records.
        force: Skip interactive confirmations.
    """
    from typedcache.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    output = OutputManager(
        format=fmt,
        no_color=no_color,
        quiet=quiet,
        verbose=verbose,
    )
    set_output(output)
    _configure_logging(output.stderr_console, verbose)

    ctx.ensure_object(dict)
    ctx.obj["path"] = path
    ctx.obj["location"] = location
    ctx.obj["subdir"] = subdir
    ctx.obj["no_recovery"] = no_recovery
    ctx.obj["force"] = force
    ctx.obj["verbose"] = verbose


def _configure_logging(console: Any, verbose: bool) -> None:  # noqa: ANN401
    """Route ``typedcache`` log records to stderr through Rich.

    Recovery and backup warnings are always shown; storage debug records
    only with ``--verbose``.
    """
    logger = logging.getLogger("typedcache")
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)
    handler = RichHandler(console=console, show_time=False, show_path=False)
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path.

    Args:
        exc: The unhandled exception to log.

    Returns:
        Absolute path to the written crash log file.
    """
    from typedcache.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``typedcache`` console script.

    Unhandled :class:`~typedcache.exceptions.TypedCacheError` instances
    cause a clean exit with the error's ``exit_code``. All other exceptions
    produce a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from typedcache.exceptions import TypedCacheError
        from typedcache.output import error

        if isinstance(exc, TypedCacheError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
