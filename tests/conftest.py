"""
Pytest configuration and fixtures for fcache tests.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Generator
from unittest.mock import patch

import pytest

from fcache.cache import FileCache, clear_cache_instance
from fcache.config import clear_settings_cache

START_TIME = 1_700_000_000.0


class FakeClock:
    """Controllable replacement for time.time."""

    def __init__(self, now: float = START_TIME) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """Provide a clock frozen at START_TIME."""
    return FakeClock()


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    """Provide a cache directory that does not exist yet."""
    return tmp_path / "storage" / "cache"


@pytest.fixture
def cache(cache_dir: Path, clock: FakeClock) -> FileCache:
    """Provide a FileCache driven by the fake clock."""
    return FileCache(cache_dir, clock=clock)


@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    """Remove FCACHE_* variables and reset cached settings and cache instance."""
    cleaned = {k: v for k, v in os.environ.items() if not k.startswith("FCACHE_")}
    with patch.dict(os.environ, cleaned, clear=True):
        clear_settings_cache()
        clear_cache_instance()
        yield
    clear_settings_cache()
    clear_cache_instance()
