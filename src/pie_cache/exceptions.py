"""
Custom exception hierarchy for the file cache.

All exceptions inherit from CacheError, which provides optional context
for structured error handling and logging.
"""

from __future__ import annotations

from typing import Any


class CacheError(Exception):
    """Base exception for all cache errors.

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


class InvalidConfigurationError(CacheError):
    """Raised when the shard layout cannot be built.

    Examples:
        - More hex characters requested than the digest provides
        - Negative shard levels or a non-positive prefix length
    """

    pass


class DirectoryCreationError(CacheError):
    """Raised when the base directory or a shard directory cannot be created.

    Context should include:
        - path: The directory that could not be created
    """

    pass


class SerializationError(CacheError):
    """Raised when a record cannot be encoded for storage."""

    pass


class WriteError(CacheError):
    """Raised when a record file cannot be written.

    Context should include:
        - key: The cache key
        - path: The target file
    """

    pass


class ReadError(CacheError):
    """Raised when a record file exists but cannot be read."""

    pass


class NotFoundError(CacheError):
    """Raised when no record file exists for a key."""

    pass


class ExpiredError(CacheError):
    """Raised when a record exists but its expiration time has passed.

    Context should include:
        - key: The cache key
        - expires_at: When the record expired
    """

    pass


class CorruptRecordError(CacheError):
    """Raised when a record file cannot be decoded into a CacheRecord."""

    pass


class DeleteError(CacheError):
    """Raised when an existing record file cannot be removed."""

    pass


class WalkError(CacheError):
    """Raised when the storage tree cannot be fully walked.

    Context should include:
        - errors: One message per directory that could not be listed
    """

    pass
