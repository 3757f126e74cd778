"""
Cache package.

- base.py: CacheInterface contract and CacheEntry record
- file_cache.py: FileCache, one JSON file per key with atomic writes
- factory.py: settings-driven shared instance
"""

from fcache.cache.base import CacheEntry, CacheInterface
from fcache.cache.factory import build_cache, clear_cache_instance, get_cache
from fcache.cache.file_cache import FileCache, validate_key

__all__ = [
    "CacheEntry",
    "CacheInterface",
    "FileCache",
    "build_cache",
    "clear_cache_instance",
    "get_cache",
    "validate_key",
]
