"""
Configuration management using pydantic-settings.

Loads configuration from environment variables and .env files.
Used by the CLI and by FileCache.from_settings(); the cache class itself
takes explicit arguments.
"""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Length of a hex-encoded SHA-256 digest
DIGEST_HEX_LENGTH = 64


class Settings(BaseSettings):
    """Cache settings loaded from environment variables.

    Optional:
        CACHE_DIR: Root directory of the storage tree
        DEFAULT_TTL_SECONDS: TTL applied when none is given (<= 0 expires at once)
        PURGE_ON_READ: Delete expired records when a read discovers them
        SHARD_LEVELS: Number of nested hash directories
        SHARD_PREFIX_LENGTH: Hex characters consumed per directory level
        LOG_LEVEL: Logging level
        LOG_FILE: Optional JSON-lines log file
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    CACHE_DIR: Path = Field(default=Path(".cache"), description="Cache directory")
    DEFAULT_TTL_SECONDS: float = Field(
        default=300.0, description="Default time-to-live in seconds"
    )
    PURGE_ON_READ: bool = Field(
        default=True, description="Delete expired records discovered on read"
    )

    SHARD_LEVELS: int = Field(
        default=3, ge=0, le=32, description="Number of nested shard directories"
    )
    SHARD_PREFIX_LENGTH: int = Field(
        default=2, ge=1, le=DIGEST_HEX_LENGTH, description="Hex characters per shard"
    )

    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    LOG_FILE: Path | None = Field(default=None, description="JSON-lines log file")

    @model_validator(mode="after")
    def validate_shard_layout(self) -> Settings:
        """Ensure the shard layout fits inside a SHA-256 hex digest."""
        needed = self.SHARD_LEVELS * self.SHARD_PREFIX_LENGTH
        if needed > DIGEST_HEX_LENGTH:
            raise ValueError(
                f"SHARD_LEVELS * SHARD_PREFIX_LENGTH needs {needed} hex characters, "
                f"but the digest only has {DIGEST_HEX_LENGTH}"
            )
        return self

    @property
    def default_ttl(self) -> timedelta:
        """Default TTL as a timedelta."""
        return timedelta(seconds=self.DEFAULT_TTL_SECONDS)

    def display(self) -> dict[str, str | int | float | bool | None]:
        """Return settings as a flat dict for display."""
        return {
            "CACHE_DIR": str(self.CACHE_DIR),
            "DEFAULT_TTL_SECONDS": self.DEFAULT_TTL_SECONDS,
            "PURGE_ON_READ": self.PURGE_ON_READ,
            "SHARD_LEVELS": self.SHARD_LEVELS,
            "SHARD_PREFIX_LENGTH": self.SHARD_PREFIX_LENGTH,
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
