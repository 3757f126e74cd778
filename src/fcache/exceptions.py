"""
Custom exception hierarchy for fcache.

All exceptions inherit from FCacheError, which provides optional context
for structured error handling and logging.
"""

from __future__ import annotations

from typing import Any


class FCacheError(Exception):
    """Base exception for all fcache errors.

    Attributes:
        message: Human-readable error message.
        context: Optional structured context for logging/debugging.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class InvalidCacheKeyError(FCacheError, ValueError):
    """Raised when a cache key is empty, not a string, or uses reserved characters.

    Reserved characters are ``{}()/\\@:``.

    Context should include:
        - key: The rejected key
    """

    pass


class ConfigurationError(FCacheError):
    """Raised when configuration is invalid or unusable.

    Examples:
        - Cache directory cannot be created
    """

    pass
