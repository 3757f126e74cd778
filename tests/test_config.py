"""
Tests for configuration and the cache factory.
"""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from fcache.cache import FileCache, get_cache
from fcache.cache.factory import build_cache
from fcache.config import Settings, get_settings
from fcache.exceptions import ConfigurationError


class TestSettingsDefaults:
    """Tests for Settings default values."""

    def test_defaults(self, clean_env: None) -> None:
        """Test default values when nothing is configured."""
        settings = Settings(_env_file=None)

        assert settings.CACHE_PATH == Path("storage/cache")
        assert settings.LOCK_TIMEOUT == -1.0
        assert settings.INCREMENT_TTL == 3600
        assert settings.LOG_LEVEL == "INFO"
        assert settings.LOG_FILE is None


class TestSettingsFromEnv:
    """Tests for environment loading and validation."""

    def test_loads_prefixed_env(self, clean_env: None, tmp_path: Path) -> None:
        """Test FCACHE_* variables populate settings."""
        env_vars = {
            "FCACHE_CACHE_PATH": str(tmp_path / "cache"),
            "FCACHE_LOCK_TIMEOUT": "2.5",
            "FCACHE_INCREMENT_TTL": "60",
            "FCACHE_LOG_LEVEL": "DEBUG",
        }
        with patch.dict(os.environ, env_vars):
            settings = get_settings()

        assert settings.CACHE_PATH == tmp_path / "cache"
        assert settings.LOCK_TIMEOUT == 2.5
        assert settings.INCREMENT_TTL == 60
        assert settings.LOG_LEVEL == "DEBUG"

    def test_get_settings_is_cached(self, clean_env: None) -> None:
        """Test get_settings returns a singleton."""
        assert get_settings() is get_settings()

    @pytest.mark.parametrize(
        "name, value",
        [
            ("FCACHE_INCREMENT_TTL", "0"),
            ("FCACHE_LOCK_TIMEOUT", "-5"),
            ("FCACHE_LOG_LEVEL", "LOUD"),
        ],
    )
    def test_invalid_values(self, clean_env: None, name: str, value: str) -> None:
        """Test invalid values are rejected."""
        with patch.dict(os.environ, {name: value}):
            with pytest.raises(ValidationError):
                Settings(_env_file=None)

    def test_ensure_directories(self, clean_env: None, tmp_path: Path) -> None:
        """Test the cache directory is created on demand."""
        settings = Settings(_env_file=None, CACHE_PATH=tmp_path / "a" / "b")
        settings.ensure_directories()
        assert (tmp_path / "a" / "b").is_dir()

    def test_display(self, clean_env: None, tmp_path: Path) -> None:
        """Test display returns plain values."""
        settings = Settings(_env_file=None, CACHE_PATH=tmp_path)
        shown = settings.display()

        assert shown["CACHE_PATH"] == str(tmp_path)
        assert shown["LOG_FILE"] is None
        assert shown["INCREMENT_TTL"] == 3600


class TestCacheFactory:
    """Tests for building caches from settings."""

    def test_build_from_settings(self, clean_env: None, tmp_path: Path) -> None:
        """Test settings flow into the FileCache."""
        settings = Settings(
            _env_file=None,
            CACHE_PATH=tmp_path / "cache",
            LOCK_TIMEOUT=3.0,
            INCREMENT_TTL=90,
        )
        cache = build_cache(settings)

        assert isinstance(cache, FileCache)
        assert cache.directory == tmp_path / "cache"
        assert cache.lock_timeout == 3.0
        assert cache.default_increment_ttl == 90
        assert (tmp_path / "cache").is_dir()

    def test_shared_instance(self, clean_env: None, tmp_path: Path) -> None:
        """Test get_cache() memoizes the settings-driven instance."""
        with patch.dict(os.environ, {"FCACHE_CACHE_PATH": str(tmp_path / "shared")}):
            first = get_cache()
            second = get_cache()

        assert first is second
        assert isinstance(first, FileCache)
        assert first.directory == tmp_path / "shared"

    def test_explicit_settings_build_fresh_instance(
        self, clean_env: None, tmp_path: Path
    ) -> None:
        """Test explicit settings bypass the shared instance."""
        settings = Settings(_env_file=None, CACHE_PATH=tmp_path)
        assert get_cache(settings) is not get_cache(settings)

    def test_unusable_directory(self, clean_env: None, tmp_path: Path) -> None:
        """Test a directory that cannot be created raises ConfigurationError."""
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        settings = Settings(_env_file=None, CACHE_PATH=blocker / "cache")

        with pytest.raises(ConfigurationError) as exc_info:
            build_cache(settings)

        assert exc_info.value.context["path"] == str(blocker / "cache")
