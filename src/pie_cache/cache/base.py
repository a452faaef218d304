"""
Base classes for caching.

CacheProtocol is the abstract interface the file cache implements, so that
callers can depend on the operations rather than on the storage layout.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import timedelta


class CacheProtocol(ABC):
    """Abstract interface for cache implementations."""

    @abstractmethod
    def get(self, key: str) -> bytes:
        """Get a value from the cache."""
        ...

    @abstractmethod
    def set(self, key: str, value: bytes, ttl: timedelta | float | None = None) -> None:
        """Set a value in the cache."""
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete a value from the cache."""
        ...

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Check if a live value exists in the cache."""
        ...
