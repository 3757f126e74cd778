"""
Settings-driven construction of the shared cache instance.
"""

from __future__ import annotations

from functools import lru_cache

from fcache.cache.base import CacheInterface
from fcache.cache.file_cache import FileCache
from fcache.config import Settings, get_settings
from fcache.exceptions import ConfigurationError


def build_cache(settings: Settings) -> FileCache:
    """Build a FileCache from settings.

    Raises:
        ConfigurationError: If the cache directory cannot be created.
    """
    try:
        settings.ensure_directories()
        return FileCache(
            settings.CACHE_PATH,
            lock_timeout=settings.LOCK_TIMEOUT,
            default_increment_ttl=settings.INCREMENT_TTL,
        )
    except OSError as e:
        raise ConfigurationError(
            "Cache directory cannot be created",
            context={"path": str(settings.CACHE_PATH), "error": str(e)},
        ) from e


@lru_cache
def _shared_cache() -> FileCache:
    return build_cache(get_settings())


def get_cache(settings: Settings | None = None) -> CacheInterface:
    """Get a cache instance.

    Without arguments, returns the process-wide instance built from
    ``get_settings()``. With explicit settings, builds a fresh instance.
    """
    if settings is not None:
        return build_cache(settings)
    return _shared_cache()


def clear_cache_instance() -> None:
    """Drop the shared instance (useful for testing)."""
    _shared_cache.cache_clear()
