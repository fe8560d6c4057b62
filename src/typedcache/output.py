"""Terminal output for the ``typedcache`` CLI.

Cache data (entries, key tables, the ``info`` report) is written to
**stdout** so it can be piped into ``jq`` or another tool. Everything else
(status lines, recovery warnings, errors, hints) goes to **stderr**.

The data format is chosen once per invocation: ``--json``, ``--plain``, or
automatically Rich on an interactive terminal and plain text otherwise.
Colour is dropped for ``--no-color``, ``NO_COLOR`` and ``TERM=dumb``.

Commands call the module-level helpers (:func:`format_response`,
:func:`warning`, ...), which forward to the :class:`OutputManager`
installed by :func:`~typedcache.app.main_callback`.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, NamedTuple, Optional

from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text


class OutputFormat(str, Enum):
    """How data on stdout is rendered. ``AUTO`` picks ``RICH`` or ``PLAIN``."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class _Level(NamedTuple):
    prefix: str
    prefix_style: Optional[str]
    body_style: Optional[str]
    shown_when: str  # "normal": hidden by --quiet, "always", or "verbose"


_LEVELS: dict[str, _Level] = {
    "info": _Level("", None, None, "normal"),
    "success": _Level("", None, "green", "normal"),
    "warning": _Level("Warning: ", "yellow", None, "always"),
    "error": _Level("Error: ", "bold red", None, "always"),
    "suggest": _Level("→ ", "dim", "dim", "normal"),
    "debug": _Level("[debug] ", "dim", "dim", "verbose"),
}


class OutputManager:
    """Holds the output preferences of one CLI invocation.

    Args:
        format: Data format for stdout. ``AUTO`` resolves from TTY detection.
        no_color: Disable colour on both streams.
        quiet: Hide informational diagnostics. Warnings and errors stay.
        verbose: Show debug diagnostics.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose

        if format == OutputFormat.AUTO:
            rich_ok = _is_tty() and not self._no_color
            format = OutputFormat.RICH if rich_ok else OutputFormat.PLAIN
        self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=format == OutputFormat.RICH,
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    @property
    def stderr_console(self) -> Console:
        """The diagnostics console, shared with the CLI's log handler."""
        return self._stderr

    # ------------------------------------------------------------------ #
    # Data (stdout)
    # ------------------------------------------------------------------ #

    def format_response(self, data: Any) -> None:
        """Print a dict, list or scalar to stdout in the active format.

        Plain mode prints one ``key<TAB>value`` line per dict item, nested
        values as compact JSON.
        """
        if self._format == OutputFormat.PLAIN:
            for line in _plain_lines(data):
                self.print_data(line)
            return
        text = json.dumps(data, indent=2, ensure_ascii=False, default=str)
        if self._format == OutputFormat.JSON:
            self.print_data(text)
        else:
            self._stdout.print(Syntax(text, "json", theme="monokai", word_wrap=True))

    def print_data(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print rows as a Rich table, JSON records, or tab-separated lines."""
        if self._format == OutputFormat.JSON:
            records = [dict(zip(headers, row)) for row in rows]
            self.print_data(json.dumps(records, indent=2, ensure_ascii=False))
        elif self._format == OutputFormat.PLAIN:
            for row in [headers, *rows]:
                self.print_data("\t".join(row))
        else:
            table = Table(*headers, title=title, header_style="bold cyan")
            for row in rows:
                table.add_row(*row)
            self._stdout.print(table)

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        self._diagnostic("info", message)

    def success(self, message: str) -> None:
        self._diagnostic("success", message)

    def warning(self, message: str) -> None:
        self._diagnostic("warning", message)

    def error(self, message: str) -> None:
        self._diagnostic("error", message)

    def suggest(self, message: str) -> None:
        """Print a next-step hint, e.g. a command that fixes the problem."""
        self._diagnostic("suggest", message)

    def debug(self, message: str) -> None:
        self._diagnostic("debug", message)

    def _diagnostic(self, level: str, message: str) -> None:
        style = _LEVELS[level]
        if style.shown_when == "normal" and self._quiet:
            return
        if style.shown_when == "verbose" and not self._verbose:
            return
        if self._no_color:
            print(f"{style.prefix}{message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(
                Text.assemble((style.prefix, style.prefix_style or ""), (message, style.body_style or ""))
            )


def _plain_lines(data: Any) -> list[str]:
    if isinstance(data, dict):
        lines = []
        for key, value in data.items():
            if isinstance(value, (dict, list)):
                value = json.dumps(value, ensure_ascii=False, default=str)
            lines.append(f"{key}\t{value}")
        return lines
    if isinstance(data, list):
        return [str(item) for item in data]
    return [str(data)]


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """``NO_COLOR`` set to any value, or ``TERM=dumb``."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Global instance
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed :class:`OutputManager`, creating a default one."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    global _output
    _output = None


def format_response(data: Any) -> None:
    get_output().format_response(data)


def print_data(text: str) -> None:
    get_output().print_data(text)


def print_table(headers: list[str], rows: list[list[str]], title: Optional[str] = None) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def debug(message: str) -> None:
    get_output().debug(message)
