"""
File-based key-value cache.

Each key is stored as one JSON file named after the SHA-1 of the key:

    <directory>/<sha1(key)>.cache  ->  {"value": ..., "expires_at": 1700000000}

Writes go to a uniquely named temporary file in the same directory while the
key's exclusive lock is held, then ``os.replace`` moves it onto the entry path,
so readers see either the old entry or the new one, never a partial file.

Expired entries are only removed when a ``get`` observes them. Unreadable or
undecodable files read as misses and are left in place until overwritten.
"""

from __future__ import annotations

import hashlib
import os
import re
import time
from datetime import timedelta
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping

import orjson
from filelock import FileLock, Timeout
from uuid6 import uuid7

from fcache.cache.base import CacheEntry, CacheInterface, Ttl
from fcache.exceptions import InvalidCacheKeyError
from fcache.logging import get_logger

logger = get_logger(__name__)

ENTRY_SUFFIX = ".cache"
LOCK_SUFFIX = ".lock"
TEMP_MARKER = ".tmp."
DEFAULT_INCREMENT_TTL = 60 * 60  # 1 hour
RESERVED_CHARACTERS = "{}()/\\@:"

# orjson encodes integers from signed to unsigned 64-bit limits
MIN_STORABLE_INT = -(2**63)
MAX_STORABLE_INT = 2**64 - 1

_RESERVED_RE = re.compile(r"[{}()/\\@:]")


def validate_key(key: Any) -> None:
    """Validate a cache key.

    Raises:
        InvalidCacheKeyError: If the key is not a string, is empty, or
            contains one of the reserved characters ``{}()/\\@:``.
    """
    if not isinstance(key, str):
        raise InvalidCacheKeyError(
            "Cache key must be a string.", context={"key": key}
        )
    if key == "":
        raise InvalidCacheKeyError("Cache key cannot be empty.")
    if _RESERVED_RE.search(key):
        raise InvalidCacheKeyError(
            f"Cache key contains reserved characters: {RESERVED_CHARACTERS}",
            context={"key": key},
        )


def ttl_to_seconds(ttl: Ttl) -> int | None:
    """Normalize a ttl to whole seconds, or None for no expiry."""
    if ttl is None:
        return None
    if isinstance(ttl, timedelta):
        return int(ttl.total_seconds())
    if isinstance(ttl, bool) or not isinstance(ttl, int):
        raise TypeError(f"ttl must be None, int or timedelta, not {type(ttl).__name__}")
    return ttl


def _to_int(value: Any) -> int | None:
    if isinstance(value, (int, float)):
        try:
            return int(value)
        except (ValueError, OverflowError):
            return None
    if isinstance(value, str):
        for parse in (int, float):
            try:
                return int(parse(value.strip()))
            except (ValueError, OverflowError):
                continue
    return None


class FileCache(CacheInterface):
    """Cache storing one file per key in a flat directory.

    Args:
        directory: Directory holding the entry files. Created with its
            parents if missing.
        lock_timeout: Seconds to wait for a key lock; -1 waits forever.
        default_increment_ttl: TTL given to counters whose entry has no expiry.
        clock: Returns the current epoch time; defaults to ``time.time``.
    """

    def __init__(
        self,
        directory: str | Path,
        *,
        lock_timeout: float = -1,
        default_increment_ttl: int = DEFAULT_INCREMENT_TTL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._directory = Path(directory)
        self.lock_timeout = lock_timeout
        self.default_increment_ttl = default_increment_ttl
        self._clock = clock
        self._ensure_directory()

    def __repr__(self) -> str:
        return f"FileCache(directory={str(self._directory)!r})"

    @property
    def directory(self) -> Path:
        """Directory holding the entry files."""
        return self._directory

    def path_for(self, key: str) -> Path:
        """Get the entry file path for a key.

        Raises:
            InvalidCacheKeyError: If the key is invalid.
        """
        validate_key(key)
        digest = hashlib.sha1(key.encode("utf-8")).hexdigest()
        return self._directory / f"{digest}{ENTRY_SUFFIX}"

    # --- CacheInterface ---

    def get(self, key: str, default: Any = None) -> Any:
        path = self.path_for(key)

        entry = self._read_entry(path)
        if entry is None:
            logger.debug("Cache miss", key=key)
            return default

        if entry.is_expired(self._now()):
            logger.debug("Cache entry expired, removing", key=key, path=str(path))
            self._unlink(path)
            return default

        if entry.value is None:
            return default
        return entry.value

    def set(self, key: str, value: Any, ttl: Ttl = None) -> bool:
        path = self.path_for(key)
        seconds = ttl_to_seconds(ttl)

        try:
            with self._lock(path):
                return self._store(path, value, seconds)
        except Timeout:
            logger.warning("Timed out waiting for key lock", key=key, timeout=self.lock_timeout)
            return False
        except OSError as e:
            logger.warning("Could not lock cache entry", key=key, error=str(e))
            return False

    def delete(self, key: str) -> bool:
        return self._unlink(self.path_for(key))

    def clear(self) -> bool:
        try:
            with os.scandir(self._directory) as it:
                files = [
                    Path(item.path)
                    for item in it
                    if item.name.endswith(ENTRY_SUFFIX) and item.is_file()
                ]
        except FileNotFoundError:
            return True
        except OSError as e:
            logger.warning("Failed to list cache directory", path=str(self._directory), error=str(e))
            return False

        failed = 0
        for path in files:
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as e:
                failed += 1
                logger.warning("Failed to remove cache file", path=str(path), error=str(e))

        logger.info("Cleared cache", removed=len(files) - failed, failed=failed)
        return True

    def get_multiple(self, keys: Iterable[str], default: Any = None) -> dict[str, Any]:
        return {key: self.get(key, default) for key in keys}

    def set_multiple(
        self,
        values: Mapping[str, Any] | Iterable[tuple[str, Any]],
        ttl: Ttl = None,
    ) -> bool:
        items = values.items() if isinstance(values, Mapping) else values
        success = True
        for key, value in items:
            if not self.set(key, value, ttl):
                success = False
        return success

    def delete_multiple(self, keys: Iterable[str]) -> bool:
        success = True
        for key in keys:
            if not self.delete(key):
                success = False
        return success

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def increment(self, key: str, delta: int = 1) -> int:
        """Add ``delta`` to the integer stored under ``key``.

        A missing key counts as 0 and values that cannot be read as an
        integer count as 0. The read-modify-write runs under the key lock;
        if the lock cannot be taken the update runs without it. The new value
        keeps the entry's remaining ttl (at least 1 second), counted again
        from now, or ``default_increment_ttl`` if the entry had no expiry.
        A failed write is logged and the new value is still returned.

        Raises:
            InvalidCacheKeyError: If the key is invalid.
            OverflowError: If the result does not fit in a 64-bit integer.
                The stored value is left unchanged.
        """
        path = self.path_for(key)

        lock: FileLock | None = None
        try:
            lock = self._lock(path)
            lock.acquire()
        except Timeout:
            logger.warning("Timed out waiting for key lock, updating unlocked", key=key, timeout=self.lock_timeout)
            lock = None
        except OSError as e:
            logger.warning("Could not lock cache entry, updating unlocked", key=key, error=str(e))
            lock = None

        try:
            return self._apply_delta(key, path, delta)
        finally:
            if lock is not None:
                lock.release()

    def decrement(self, key: str, delta: int = 1) -> int:
        return self.increment(key, -delta)

    # --- internals ---

    def _apply_delta(self, key: str, path: Path, delta: int) -> int:
        current = self.get(key, 0)
        number = _to_int(current)
        if number is None:
            logger.warning("Non-numeric value treated as 0", key=key)
            number = 0
        new_value = number + delta

        if not MIN_STORABLE_INT <= new_value <= MAX_STORABLE_INT:
            raise OverflowError(
                f"Counter {key!r} would become {new_value}, outside the storable "
                f"range [{MIN_STORABLE_INT}, {MAX_STORABLE_INT}]"
            )

        ttl: int | None = None
        entry = self._read_entry(path)
        if entry is not None:
            ttl = entry.remaining_ttl(self._now())
        if ttl is None:
            ttl = self.default_increment_ttl

        if not self._store(path, new_value, ttl):
            logger.warning("Failed to store counter", key=key, value=new_value)

        return new_value

    def _now(self) -> int:
        return int(self._clock())

    def _ensure_directory(self) -> None:
        self._directory.mkdir(parents=True, exist_ok=True)

    def _lock(self, path: Path) -> FileLock:
        self._ensure_directory()
        return FileLock(path.with_name(path.name + LOCK_SUFFIX), timeout=self.lock_timeout)

    def _read_entry(self, path: Path) -> CacheEntry | None:
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("Failed to read cache file", path=str(path), error=str(e))
            return None

        try:
            data = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            logger.warning("Corrupt cache file", path=str(path), error=str(e))
            return None

        if not isinstance(data, dict):
            logger.warning("Cache file is not an entry object", path=str(path))
            return None

        return CacheEntry.from_dict(data)

    def _store(self, path: Path, value: Any, seconds: int | None) -> bool:
        """Write an entry through a temporary file and rename it into place.

        The caller holds the key lock.
        """
        entry = CacheEntry(
            value=value,
            expires_at=self._now() + seconds if seconds is not None else None,
        )
        try:
            payload = orjson.dumps(entry.to_dict())
        except orjson.JSONEncodeError as e:
            logger.warning("Value is not serializable", path=str(path), error=str(e))
            return False

        try:
            self._ensure_directory()
        except OSError as e:
            logger.warning("Failed to create cache directory", path=str(self._directory), error=str(e))
            return False

        tmp_path = path.with_name(f"{path.name}{TEMP_MARKER}{uuid7().hex}")
        try:
            with open(tmp_path, "xb") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            logger.warning("Failed to write cache file", path=str(tmp_path), error=str(e))
            self._discard(tmp_path)
            return False

        try:
            os.replace(tmp_path, path)
        except OSError as e:
            logger.warning("Failed to move cache file into place", path=str(path), error=str(e))
            self._discard(tmp_path)
            return False

        logger.debug("Stored cache entry", path=str(path), expires_at=entry.expires_at)
        return True

    def _unlink(self, path: Path) -> bool:
        try:
            path.unlink()
        except FileNotFoundError:
            return True
        except OSError as e:
            logger.warning("Failed to remove cache file", path=str(path), error=str(e))
            return False
        return True

    def _discard(self, tmp_path: Path) -> None:
        try:
            tmp_path.unlink(missing_ok=True)
        except OSError as e:
            logger.debug("Could not remove temporary file", path=str(tmp_path), error=str(e))
