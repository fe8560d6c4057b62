"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for typedcache:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.typedcache/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_cache_dir`, :func:`get_data_dir`.
* **Path resolution** -- :func:`resolve_cache_file` maps a symbolic
  :class:`~typedcache.models.CacheLocation` plus file name and optional
  subdirectory to a concrete cache file path.
* **Settings** -- a single :class:`~typedcache.models.CacheSettings` JSON
  file in the config directory, plus an optional project-local
  ``./typedcache.json``.
* **Precedence resolution** -- :func:`resolve_settings` merges CLI flags,
  environment variables, project-local config, and user config into the
  effective settings.

Settings files are written with a temp-file-then-rename strategy
(:func:`_atomic_write`). The cache file itself has its own, asynchronous
protocol in :mod:`typedcache.store.writer`.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from typedcache.exceptions import ConfigError
from typedcache.models import CacheLocation, CacheSettings

_APP_NAME = "typedcache"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "typedcache.json"
_DEFAULT_EXTENSION = ".json"

_FALSE_VALUES = ("0", "false", "no", "off")


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform follows the XDG Base Directory layout (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/typedcache/`` (default ``~/.config/typedcache/``).
    On macOS/Windows: ``~/.typedcache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the cache directory, creating it if necessary.

    Backs :attr:`CacheLocation.CACHE`: data the system may purge.

    On Linux/BSD: ``$XDG_CACHE_HOME/typedcache/`` (default ``~/.cache/typedcache/``).
    On macOS/Windows: ``~/.typedcache/cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory, creating it if necessary.

    Backs :attr:`CacheLocation.SUPPORT` (the default location) and holds
    crash logs.

    On Linux/BSD: ``$XDG_DATA_HOME/typedcache/`` (default ``~/.local/share/typedcache/``).
    On macOS/Windows: ``~/.typedcache/data/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


def _location_dir(location: CacheLocation) -> Path:
    if location == CacheLocation.SUPPORT:
        return get_data_dir()
    if location == CacheLocation.CACHE:
        return get_cache_dir()
    if location == CacheLocation.TEMPORARY:
        return Path(tempfile.gettempdir()) / _APP_NAME
    return Path.home() / "Documents" / _APP_NAME


def resolve_cache_file(
    location: CacheLocation = CacheLocation.SUPPORT,
    file_name: str = "typed_cache.json",
    subdir: Optional[str] = None,
) -> Path:
    """Map a symbolic location to a cache file path, creating its directory.

    Args:
        location: Which base directory to use.
        file_name: Cache file name. ``.json`` is appended when it has no
            extension.
        subdir: Optional subdirectory inside the base directory.

    Returns:
        The cache file path. The file itself is not created.

    Example::

        resolve_cache_file(CacheLocation.CACHE, "responses", subdir="my_app")
        # ~/.cache/typedcache/my_app/responses.json
    """
    if not Path(file_name).suffix:
        file_name = f"{file_name}{_DEFAULT_EXTENSION}"
    directory = _location_dir(location)
    if subdir:
        directory = directory / subdir
    directory.mkdir(parents=True, exist_ok=True)
    return directory / file_name


def cache_path_for(settings: CacheSettings) -> Path:
    """Return the cache file path described by *settings*.

    An explicit ``settings.path`` wins over location-based resolution.
    """
    if settings.path:
        return Path(settings.path).expanduser()
    return resolve_cache_file(settings.location, settings.file_name, settings.subdir)


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    On any failure the temp file is cleaned up.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- User settings ---


def _settings_path() -> Path:
    """Path to the user settings file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_settings() -> CacheSettings:
    """Load the user settings from the config directory.

    Returns:
        The deserialised :class:`~typedcache.models.CacheSettings`, or a
        default instance if the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = _settings_path()
    if not path.is_file():
        return CacheSettings()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return CacheSettings.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid settings at {path}: {exc}") from exc


def save_settings(settings: CacheSettings) -> None:
    """Persist the user settings atomically to disk."""
    data = settings.model_dump(mode="json")
    _atomic_write(_settings_path(), json.dumps(data, indent=2) + "\n")


# --- Project-local config ---


def load_project_settings() -> Optional[dict[str, Any]]:
    """Load project-local overrides from ``./typedcache.json``.

    Returns:
        The parsed JSON object, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file is not a valid JSON object.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    return data


# --- Precedence resolution ---


def _env_overrides() -> dict[str, Any]:
    """Collect ``TYPEDCACHE_*`` environment overrides."""
    overrides: dict[str, Any] = {}
    if os.environ.get("TYPEDCACHE_PATH"):
        overrides["path"] = os.environ["TYPEDCACHE_PATH"]
    if os.environ.get("TYPEDCACHE_LOCATION"):
        overrides["location"] = os.environ["TYPEDCACHE_LOCATION"]
    if os.environ.get("TYPEDCACHE_FILE"):
        overrides["file_name"] = os.environ["TYPEDCACHE_FILE"]
    if os.environ.get("TYPEDCACHE_SUBDIR"):
        overrides["subdir"] = os.environ["TYPEDCACHE_SUBDIR"]
    recovery = os.environ.get("TYPEDCACHE_RECOVERY")
    if recovery:
        overrides["enable_recovery"] = recovery.strip().lower() not in _FALSE_VALUES
    return overrides


def resolve_settings(
    cli_path: Optional[str] = None,
    cli_location: Optional[str] = None,
    cli_subdir: Optional[str] = None,
    cli_no_recovery: bool = False,
) -> CacheSettings:
    """Resolve settings with the full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_path``, ``cli_location``, ``cli_subdir``,
           ``cli_no_recovery``)
        2. Environment variables (``TYPEDCACHE_PATH``,
           ``TYPEDCACHE_LOCATION``, ``TYPEDCACHE_FILE``,
           ``TYPEDCACHE_SUBDIR``, ``TYPEDCACHE_RECOVERY``)
        3. Project config (``./typedcache.json``)
        4. User config (``~/.config/typedcache/config.json``)
        5. Defaults

    Raises:
        ConfigError: If any layer is invalid (unknown location, bad JSON).
    """
    # 5 + 4. User settings (fills in defaults automatically)
    data = load_settings().model_dump(mode="json")

    # 3. Project-local overrides
    project = load_project_settings()
    if project is not None:
        data.update(project)

    # 2. Environment
    data.update(_env_overrides())

    # 1. CLI flags
    if cli_path is not None:
        data["path"] = cli_path
    if cli_location is not None:
        data["location"] = cli_location
    if cli_subdir is not None:
        data["subdir"] = cli_subdir
    if cli_no_recovery:
        data["enable_recovery"] = False

    try:
        return CacheSettings.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid cache settings: {exc}") from exc
