"""File-backed key-value cache with per-item TTL expiration."""

from pie_cache.cache import CacheProtocol, FileCache
from pie_cache.exceptions import (
    CacheError,
    CorruptRecordError,
    DeleteError,
    DirectoryCreationError,
    ExpiredError,
    InvalidConfigurationError,
    NotFoundError,
    ReadError,
    SerializationError,
    WalkError,
    WriteError,
)
from pie_cache.types import CacheRecord, ExistenceCheck, PurgeReport

__version__ = "0.1.0"

__all__ = [
    "CacheError",
    "CacheProtocol",
    "CacheRecord",
    "CorruptRecordError",
    "DeleteError",
    "DirectoryCreationError",
    "ExistenceCheck",
    "ExpiredError",
    "FileCache",
    "InvalidConfigurationError",
    "NotFoundError",
    "PurgeReport",
    "ReadError",
    "SerializationError",
    "WalkError",
    "WriteError",
    "__version__",
]
