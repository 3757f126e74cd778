"""
Configuration management using pydantic-settings.

Loads configuration from environment variables (prefixed ``FCACHE_``) and
.env files. Validates fields and provides typed access to settings.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Cache settings loaded from environment variables.

    Optional:
        FCACHE_CACHE_PATH: Directory holding the cache entry files
        FCACHE_LOCK_TIMEOUT: Seconds to wait for a key lock (-1 waits forever)
        FCACHE_INCREMENT_TTL: TTL for counters created without an expiry
        FCACHE_LOG_LEVEL: Logging level
        FCACHE_LOG_FILE: Optional JSON-lines log file
    """

    model_config = SettingsConfigDict(
        env_prefix="FCACHE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    CACHE_PATH: Path = Field(
        default=Path("storage/cache"), description="Cache directory"
    )
    LOCK_TIMEOUT: float = Field(
        default=-1.0, description="Seconds to wait for a key lock, -1 waits forever"
    )
    INCREMENT_TTL: int = Field(
        default=3600, ge=1, description="TTL in seconds for new counters"
    )

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    LOG_FILE: Path | None = Field(default=None, description="JSON log file")

    @field_validator("LOCK_TIMEOUT")
    @classmethod
    def validate_lock_timeout(cls, v: float) -> float:
        """Negative timeouts other than -1 are meaningless to filelock."""
        if v < 0 and v != -1:
            raise ValueError("LOCK_TIMEOUT must be >= 0, or -1 to wait forever")
        return v

    def ensure_directories(self) -> None:
        """Create the cache directory if it doesn't exist."""
        self.CACHE_PATH.mkdir(parents=True, exist_ok=True)

    def display(self) -> dict[str, str | int | float | None]:
        """Return settings as plain values for display."""
        return {
            "CACHE_PATH": str(self.CACHE_PATH),
            "LOCK_TIMEOUT": self.LOCK_TIMEOUT,
            "INCREMENT_TTL": self.INCREMENT_TTL,
            "LOG_LEVEL": self.LOG_LEVEL,
            "LOG_FILE": str(self.LOG_FILE) if self.LOG_FILE else None,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If settings are invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
