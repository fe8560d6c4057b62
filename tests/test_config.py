"""Tests for typedcache.config -- XDG paths, cache file resolution, settings, precedence."""

from __future__ import annotations

import json
import tempfile
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from typedcache.config import (
    _atomic_write,
    cache_path_for,
    get_cache_dir,
    get_config_dir,
    get_data_dir,
    load_project_settings,
    load_settings,
    resolve_cache_file,
    resolve_settings,
    save_settings,
)
from typedcache.exceptions import ConfigError
from typedcache.models import CacheLocation, CacheSettings


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_json(path: Path, data: Any) -> None:
    """Write a dict as JSON to *path*, creating parent dirs."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


# ---------------------------------------------------------------------------
# XDG path resolution
# ---------------------------------------------------------------------------


class TestXDGPathsLinux:
    """XDG paths on Linux (the default XDG platform)."""

    def test_config_dir_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("typedcache.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        result = get_config_dir()
        assert result == tmp_path / ".config" / "typedcache"
        assert result.is_dir()

    def test_cache_dir_xdg_custom(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        custom = tmp_path / "custom_cache"
        monkeypatch.setattr("typedcache.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_CACHE_HOME", str(custom))

        result = get_cache_dir()
        assert result == custom / "typedcache"
        assert result.is_dir()

    def test_data_dir_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("typedcache.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_DATA_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        result = get_data_dir()
        assert result == tmp_path / ".local" / "share" / "typedcache"
        assert result.is_dir()


class TestXDGPathsFallback:
    """Fallback paths on non-XDG platforms (macOS, Windows)."""

    def test_config_dir_fallback(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("typedcache.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        assert get_config_dir() == tmp_path / ".typedcache"

    def test_cache_and_data_dirs_fallback(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr("typedcache.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        assert get_cache_dir() == tmp_path / ".typedcache" / "cache"
        assert get_data_dir() == tmp_path / ".typedcache" / "data"


# ---------------------------------------------------------------------------
# Cache file resolution
# ---------------------------------------------------------------------------


@pytest.mark.usefixtures("isolated_config")
class TestResolveCacheFile:
    def test_default_is_support_location(self, isolated_config: Path) -> None:
        path = resolve_cache_file()
        assert path == isolated_config / "data" / "typedcache" / "typed_cache.json"
        assert path.parent.is_dir()
        assert not path.exists()

    def test_cache_location_with_subdir(self, isolated_config: Path) -> None:
        path = resolve_cache_file(CacheLocation.CACHE, "responses.json", subdir="my_app")
        assert path == isolated_config / "cache" / "typedcache" / "my_app" / "responses.json"
        assert path.parent.is_dir()

    def test_extension_appended_when_missing(self) -> None:
        assert resolve_cache_file(file_name="responses").name == "responses.json"

    def test_existing_extension_kept(self) -> None:
        assert resolve_cache_file(file_name="store.cache").name == "store.cache"

    def test_temporary_location(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(tempfile, "gettempdir", lambda: str(tmp_path / "tmpdir"))
        path = resolve_cache_file(CacheLocation.TEMPORARY, "c.json")
        assert path == tmp_path / "tmpdir" / "typedcache" / "c.json"

    def test_documents_location(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))
        path = resolve_cache_file(CacheLocation.DOCUMENTS, "c.json")
        assert path == tmp_path / "Documents" / "typedcache" / "c.json"

    def test_explicit_path_wins(self, tmp_path: Path) -> None:
        explicit = tmp_path / "elsewhere" / "c.json"
        settings = CacheSettings(location=CacheLocation.CACHE, path=str(explicit))
        assert cache_path_for(settings) == explicit


# ---------------------------------------------------------------------------
# Atomic writes
# ---------------------------------------------------------------------------


class TestAtomicWrite:
    def test_creates_file_with_content(self, tmp_path: Path) -> None:
        target = tmp_path / "a" / "test.txt"
        _atomic_write(target, "hello world")
        assert target.read_text(encoding="utf-8") == "hello world"

    def test_no_temp_files_left_on_error(self, tmp_path: Path) -> None:
        target = tmp_path / "test.txt"
        with patch("typedcache.config.os.fsync", side_effect=OSError("disk error")):
            with pytest.raises(OSError, match="disk error"):
                _atomic_write(target, "will fail")
        assert list(tmp_path.iterdir()) == []


# ---------------------------------------------------------------------------
# User settings
# ---------------------------------------------------------------------------


@pytest.mark.usefixtures("isolated_config")
class TestSettings:
    def test_load_returns_defaults_when_missing(self) -> None:
        settings = load_settings()
        assert settings == CacheSettings()
        assert settings.location == CacheLocation.SUPPORT
        assert settings.enable_recovery is True

    def test_save_and_load_roundtrip(self) -> None:
        settings = CacheSettings(
            location=CacheLocation.CACHE, subdir="svc", default_ttl_seconds=300
        )
        save_settings(settings)
        assert load_settings() == settings

    def test_saved_settings_are_valid_json(self) -> None:
        save_settings(CacheSettings(file_name="x.json"))
        data = json.loads((get_config_dir() / "config.json").read_text(encoding="utf-8"))
        assert data["file_name"] == "x.json"
        assert data["location"] == "support"

    def test_load_invalid_json_raises_config_error(self) -> None:
        (get_config_dir() / "config.json").write_text("{broken", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid settings"):
            load_settings()

    def test_load_invalid_schema_raises_config_error(self) -> None:
        _write_json(get_config_dir() / "config.json", {"location": "moon"})
        with pytest.raises(ConfigError):
            load_settings()


class TestProjectSettings:
    def test_returns_none_when_missing(self, isolated_config: Path) -> None:
        assert load_project_settings() is None

    def test_loads_object(self, isolated_config: Path) -> None:
        _write_json(isolated_config / "typedcache.json", {"subdir": "proj"})
        assert load_project_settings() == {"subdir": "proj"}

    def test_non_object_raises(self, isolated_config: Path) -> None:
        _write_json(isolated_config / "typedcache.json", ["not", "an", "object"])
        with pytest.raises(ConfigError, match="expected a JSON object"):
            load_project_settings()


# ---------------------------------------------------------------------------
# Precedence resolution
# ---------------------------------------------------------------------------


@pytest.mark.usefixtures("isolated_config")
class TestResolveSettings:
    def test_defaults(self) -> None:
        assert resolve_settings() == CacheSettings()

    def test_user_settings_used(self) -> None:
        save_settings(CacheSettings(subdir="user"))
        assert resolve_settings().subdir == "user"

    def test_project_overrides_user(self, isolated_config: Path) -> None:
        save_settings(CacheSettings(subdir="user", file_name="user.json"))
        _write_json(isolated_config / "typedcache.json", {"subdir": "project"})

        settings = resolve_settings()

        assert settings.subdir == "project"
        assert settings.file_name == "user.json"

    def test_env_overrides_project(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _write_json(isolated_config / "typedcache.json", {"location": "cache"})
        monkeypatch.setenv("TYPEDCACHE_LOCATION", "temporary")
        monkeypatch.setenv("TYPEDCACHE_FILE", "env.json")

        settings = resolve_settings()

        assert settings.location == CacheLocation.TEMPORARY
        assert settings.file_name == "env.json"

    @pytest.mark.parametrize("value,expected", [("0", False), ("off", False), ("1", True)])
    def test_env_recovery_flag(
        self, monkeypatch: pytest.MonkeyPatch, value: str, expected: bool
    ) -> None:
        monkeypatch.setenv("TYPEDCACHE_RECOVERY", value)
        assert resolve_settings().enable_recovery is expected

    def test_cli_overrides_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TYPEDCACHE_PATH", "/env/cache.json")
        monkeypatch.setenv("TYPEDCACHE_SUBDIR", "env")

        settings = resolve_settings(
            cli_path="/cli/cache.json", cli_subdir="cli", cli_no_recovery=True
        )

        assert settings.path == "/cli/cache.json"
        assert settings.subdir == "cli"
        assert settings.enable_recovery is False

    def test_invalid_location_raises_config_error(self) -> None:
        with pytest.raises(ConfigError, match="Invalid cache settings"):
            resolve_settings(cli_location="moon")
