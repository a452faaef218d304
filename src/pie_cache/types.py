"""
Core types for the file cache.

This module defines the data structures shared across the package:
- CacheRecord, the persisted unit, with its JSON encoding
- PurgeReport and ExistenceCheck result types
- Helper functions for timestamps and TTL coercion
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import orjson

from pie_cache.exceptions import CacheError, CorruptRecordError, SerializationError

# Substrings stripped from keys before hashing; appended by an external naming scheme
NORMALIZED_SUFFIXES: tuple[str, ...] = ("_info.json", "_toc.json")


def utc_now() -> datetime:
    """Get current UTC time with timezone info."""
    return datetime.now(timezone.utc)


def as_timedelta(ttl: timedelta | float) -> timedelta:
    """Coerce a TTL given as a timedelta or as seconds."""
    if isinstance(ttl, timedelta):
        return ttl
    return timedelta(seconds=ttl)


def normalize_key(key: str) -> str:
    """Remove every occurrence of the known external suffixes from a key.

    Replacement is not anchored to the end: "a_toc.jsonb" becomes "ab".
    """
    for suffix in NORMALIZED_SUFFIXES:
        key = key.replace(suffix, "")
    return key


def _parse_timestamp(value: Any) -> datetime:
    if not isinstance(value, str):
        raise TypeError(f"timestamp must be a string, got {type(value).__name__}")
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class CacheRecord:
    """Immutable cache record as stored in a single file.

    ``key`` holds the normalized key for introspection only; addressing
    is derived from the key passed to the cache, never from this field.
    """

    key: str
    payload: bytes
    created_at: datetime
    expires_at: datetime

    @classmethod
    def create(
        cls,
        key: str,
        payload: bytes,
        ttl: timedelta,
        now: datetime | None = None,
    ) -> CacheRecord:
        """Factory method that stamps creation and expiration times."""
        created_at = now if now is not None else utc_now()
        return cls(
            key=normalize_key(key),
            payload=bytes(payload),
            created_at=created_at,
            expires_at=created_at + ttl,
        )

    def is_expired(self, now: datetime) -> bool:
        """True once ``now`` is strictly after the expiration time."""
        return now > self.expires_at

    def to_dict(self) -> dict[str, Any]:
        """Convert to the on-disk field layout."""
        return {
            "key": self.key,
            "data": base64.b64encode(self.payload).decode("ascii"),
            "expireAt": self.expires_at.isoformat(),
            "created": self.created_at.isoformat(),
        }

    def to_json(self) -> bytes:
        """Encode the record as UTF-8 JSON.

        Raises:
            SerializationError: If the record cannot be encoded.
        """
        try:
            return orjson.dumps(self.to_dict())
        except (TypeError, ValueError, orjson.JSONEncodeError) as e:
            raise SerializationError(
                "Failed to encode cache record", {"key": self.key, "error": str(e)}
            ) from e

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CacheRecord:
        """Build a record from the on-disk field layout.

        Unknown fields are ignored. ``"data": null`` reads as an empty payload.
        """
        key = data["key"]
        if not isinstance(key, str):
            raise TypeError(f"key must be a string, got {type(key).__name__}")
        encoded = data["data"]
        if encoded is None:
            encoded = ""
        if not isinstance(encoded, str):
            raise TypeError(f"data must be a string, got {type(encoded).__name__}")
        return cls(
            key=key,
            payload=base64.b64decode(encoded, validate=True),
            created_at=_parse_timestamp(data["created"]),
            expires_at=_parse_timestamp(data["expireAt"]),
        )

    @classmethod
    def from_json(cls, raw: bytes) -> CacheRecord:
        """Decode a record from stored bytes.

        Raises:
            CorruptRecordError: If the content is not a well-formed record.
        """
        try:
            data = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            raise CorruptRecordError(
                "Cache record is not valid JSON", {"error": str(e)}
            ) from e

        if not isinstance(data, dict):
            raise CorruptRecordError(
                "Cache record must be a JSON object", {"type": type(data).__name__}
            )

        try:
            return cls.from_dict(data)
        except KeyError as e:
            raise CorruptRecordError(
                "Cache record is missing a field", {"field": e.args[0]}
            ) from e
        except (TypeError, ValueError, binascii.Error) as e:
            raise CorruptRecordError(
                "Cache record has an invalid field", {"error": str(e)}
            ) from e


@dataclass
class PurgeReport:
    """Outcome of a bulk expiration sweep."""

    scanned: int = 0
    removed: int = 0
    kept: int = 0
    failed: int = 0  # purge-eligible files that could not be deleted
    cancelled: bool = False

    def to_dict(self) -> dict[str, int | bool]:
        """Convert to dict for display."""
        return {
            "scanned": self.scanned,
            "removed": self.removed,
            "kept": self.kept,
            "failed": self.failed,
            "cancelled": self.cancelled,
        }


@dataclass(frozen=True)
class ExistenceCheck:
    """Result of an existence probe.

    ``error`` is set when the answer is False for a reason other than
    the record being absent or expired.
    """

    exists: bool
    error: CacheError | None = None

    def __bool__(self) -> bool:
        return self.exists
