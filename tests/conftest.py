"""Shared test fixtures for typedcache.

Provides reusable fixtures for building backends on
temporary files, isolating the config environment, managing output and
logging state, and running CLI commands. These fixtures are automatically
discovered by pytest and available to all test modules without explicit
imports.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from typedcache.output import OutputFormat, OutputManager, reset_output, set_output
from typedcache.store import JsonFileBackend


# ---------------------------------------------------------------------------
# Auto-reset global output and logging state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager and CLI log handlers after every test.

    The OutputManager and the CLI's Rich log handler cache references to
    sys.stdout/sys.stderr at creation time. When Typer's CliRunner
    redirects those streams during a test and the test finishes, the cached
    references become stale ("I/O operation on closed file"). Resetting
    forces fresh ones to be created on next use.
    """
    yield
    reset_output()
    package_logger = logging.getLogger("typedcache")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)


# ---------------------------------------------------------------------------
# Backend fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cache_path(tmp_path: Path) -> Path:
    """Path of a (not yet existing) cache file inside tmp_path."""
    return tmp_path / "cache" / "store.json"


@pytest.fixture
def backend(cache_path: Path) -> JsonFileBackend:
    """A recovery-enabled backend on :func:`cache_path`."""
    return JsonFileBackend(cache_path)


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME, XDG_CACHE_HOME, and XDG_DATA_HOME to
    subdirectories of tmp_path so that tests never touch real user
    config. Clears all TYPEDCACHE_* environment variables and changes
    the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("typedcache.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in [
        "TYPEDCACHE_PATH",
        "TYPEDCACHE_LOCATION",
        "TYPEDCACHE_FILE",
        "TYPEDCACHE_SUBDIR",
        "TYPEDCACHE_RECOVERY",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet PLAIN-format output manager for tests that don't care about output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner.

    Returns a CliRunner instance that captures stdout/stderr and
    provides a consistent interface for invoking Typer apps in tests.
    """
    from typer.testing import CliRunner

    return CliRunner()
