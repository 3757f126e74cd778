"""
Base classes for caching.

- CacheInterface: abstract synchronous key-value cache contract with
  batch operations and integer counters
- CacheEntry: the persisted unit, a value plus an optional absolute expiry
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Iterable, Mapping

Ttl = int | timedelta | None


@dataclass(frozen=True)
class CacheEntry:
    """A cached value and its expiry.

    Attributes:
        value: Any JSON-representable payload.
        expires_at: Absolute expiry in epoch seconds, or None for no expiry.
    """

    value: Any
    expires_at: int | None = None

    def is_expired(self, now: int) -> bool:
        """An entry is expired once its expiry is strictly in the past."""
        return self.expires_at is not None and self.expires_at < now

    def remaining_ttl(self, now: int) -> int | None:
        """Seconds left before expiry, floored at 1, or None without expiry."""
        if self.expires_at is None:
            return None
        return max(1, self.expires_at - now)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the on-disk mapping."""
        return {"value": self.value, "expires_at": self.expires_at}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CacheEntry:
        """Build from the on-disk mapping.

        A non-integer ``expires_at`` is treated as no expiry.
        """
        expires_at = data.get("expires_at")
        if isinstance(expires_at, bool) or not isinstance(expires_at, (int, float)):
            expires_at = None
        return cls(
            value=data.get("value"),
            expires_at=int(expires_at) if expires_at is not None else None,
        )


class CacheInterface(ABC):
    """Abstract interface for cache implementations."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Get a value from the cache, or ``default`` on a miss."""
        ...

    @abstractmethod
    def set(self, key: str, value: Any, ttl: Ttl = None) -> bool:
        """Set a value in the cache."""
        ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete a value from the cache. Missing keys count as deleted."""
        ...

    @abstractmethod
    def clear(self) -> bool:
        """Remove every entry."""
        ...

    @abstractmethod
    def get_multiple(self, keys: Iterable[str], default: Any = None) -> dict[str, Any]:
        """Get several values at once."""
        ...

    @abstractmethod
    def set_multiple(
        self,
        values: Mapping[str, Any] | Iterable[tuple[str, Any]],
        ttl: Ttl = None,
    ) -> bool:
        """Set several values with a shared ttl."""
        ...

    @abstractmethod
    def delete_multiple(self, keys: Iterable[str]) -> bool:
        """Delete several values."""
        ...

    @abstractmethod
    def has(self, key: str) -> bool:
        """Check if a key holds a non-null value."""
        ...

    @abstractmethod
    def increment(self, key: str, delta: int = 1) -> int:
        """Add ``delta`` to an integer value and return the result."""
        ...

    @abstractmethod
    def decrement(self, key: str, delta: int = 1) -> int:
        """Subtract ``delta`` from an integer value and return the result."""
        ...
