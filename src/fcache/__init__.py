"""
fcache - file-backed key-value cache.

One JSON file per key, TTL-based expiration, atomic write-then-rename.
"""

from fcache.cache import CacheEntry, CacheInterface, FileCache, get_cache
from fcache.exceptions import FCacheError, InvalidCacheKeyError

__version__ = "0.1.0"

__all__ = [
    "CacheEntry",
    "CacheInterface",
    "FileCache",
    "FCacheError",
    "InvalidCacheKeyError",
    "get_cache",
    "__version__",
]
