"""
File-based key-value cache with per-item TTL.

Each record lives in its own JSON file. The path is derived from the SHA-256
of the normalized key, split into nested shard directories, with the original
key as the file name:

    <base_dir>/ab/cd/ef/<key>

The filesystem is the only index. Point operations touch one file; purge and
enumeration walk the whole tree.
"""

from __future__ import annotations

import contextlib
import hashlib
import os
import tempfile
import threading
from collections.abc import Callable, Iterator
from datetime import datetime, timedelta
from pathlib import Path

from pie_cache.cache.base import CacheProtocol
from pie_cache.config import DIGEST_HEX_LENGTH, Settings, get_settings
from pie_cache.exceptions import (
    CacheError,
    CorruptRecordError,
    DeleteError,
    DirectoryCreationError,
    ExpiredError,
    InvalidConfigurationError,
    NotFoundError,
    ReadError,
    WalkError,
    WriteError,
)
from pie_cache.logging import get_logger, log_context
from pie_cache.types import (
    CacheRecord,
    ExistenceCheck,
    PurgeReport,
    as_timedelta,
    normalize_key,
    utc_now,
)

logger = get_logger(__name__)

RECORD_EXTENSION = ".json"
RECORD_FILE_MODE = 0o644

# In-flight writes; never treated as records
TEMP_PREFIX = ".pie-"
TEMP_SUFFIX = ".tmp"

_HEX_DIGITS = frozenset("0123456789abcdef")


def _is_temp_name(name: str) -> bool:
    return name.startswith(TEMP_PREFIX) and name.endswith(TEMP_SUFFIX)


def _escapes_shard(key: str) -> bool:
    """True if a ".." segment would lift the file out of its shard directory."""
    return ".." in key.split("/")


class FileCache(CacheProtocol):
    """Sharded, file-backed cache with TTL expiration.

    Configuration is fixed at construction. The cache assumes it is the
    only writer under ``base_dir``; files that do not follow the shard
    layout are ignored by purge and enumeration.
    """

    def __init__(
        self,
        base_dir: str | Path,
        default_ttl: timedelta | float,
        *,
        shard_levels: int = 3,
        shard_prefix_length: int = 2,
        purge_on_read: bool = True,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the cache and create its root directory.

        Args:
            base_dir: Root of the storage tree.
            default_ttl: TTL used by set() when none is given; numbers are seconds.
            shard_levels: Number of nested hash directories.
            shard_prefix_length: Hex characters consumed per directory.
            purge_on_read: Delete expired records when get()/exists() finds them.
            clock: Returns the current aware datetime.

        Raises:
            InvalidConfigurationError: If the shard parameters are out of range.
            DirectoryCreationError: If base_dir cannot be created.
        """
        if shard_levels < 0 or shard_prefix_length < 1:
            raise InvalidConfigurationError(
                "Shard levels must be >= 0 and prefix length >= 1",
                {"shard_levels": shard_levels, "shard_prefix_length": shard_prefix_length},
            )

        self._base_dir = Path(base_dir)
        self._default_ttl = as_timedelta(default_ttl)
        self._shard_levels = shard_levels
        self._shard_prefix_length = shard_prefix_length
        self._purge_on_read = purge_on_read
        self._clock = clock

        try:
            self._base_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DirectoryCreationError(
                "Failed to create cache directory",
                {"path": str(self._base_dir), "error": str(e)},
            ) from e

        logger.debug(
            "File cache ready",
            base_dir=str(self._base_dir),
            default_ttl=self._default_ttl.total_seconds(),
        )

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> FileCache:
        """Build a cache from environment settings."""
        settings = settings or get_settings()
        return cls(
            settings.CACHE_DIR,
            settings.default_ttl,
            shard_levels=settings.SHARD_LEVELS,
            shard_prefix_length=settings.SHARD_PREFIX_LENGTH,
            purge_on_read=settings.PURGE_ON_READ,
        )

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    @property
    def default_ttl(self) -> timedelta:
        return self._default_ttl

    @property
    def shard_levels(self) -> int:
        return self._shard_levels

    @property
    def shard_prefix_length(self) -> int:
        return self._shard_prefix_length

    @property
    def purge_on_read(self) -> bool:
        return self._purge_on_read

    # === Addressing ===

    def resolve_path(self, key: str) -> Path:
        """Map a key to its record file.

        The shard directories come from the hash of the normalized key;
        the file name is the key exactly as given, minus leading slashes.

        Raises:
            InvalidConfigurationError: If the shards need more hex characters
                than the digest has.
        """
        digest = hashlib.sha256(
            normalize_key(key).encode("utf-8", errors="surrogatepass")
        ).hexdigest()

        path = self._base_dir
        for level in range(self._shard_levels):
            start = level * self._shard_prefix_length
            end = start + self._shard_prefix_length
            if end > len(digest):
                raise InvalidConfigurationError(
                    "Shard layout exceeds digest length",
                    {
                        "shard_levels": self._shard_levels,
                        "shard_prefix_length": self._shard_prefix_length,
                        "digest_length": DIGEST_HEX_LENGTH,
                    },
                )
            path = path / digest[start:end]

        return path / key.lstrip("/")

    # === Point operations ===

    def set(self, key: str, value: bytes, ttl: timedelta | float | None = None) -> None:
        """Store a value under the default TTL, or ``ttl`` when given."""
        self.set_with_ttl(key, value, self._default_ttl if ttl is None else ttl)

    def set_with_ttl(self, key: str, value: bytes, ttl: timedelta | float) -> None:
        """Store a value that expires ``ttl`` after now.

        A zero or negative TTL writes a record that is already expired.
        Any existing record for the key is replaced.

        Raises:
            DirectoryCreationError: If the shard directories cannot be created.
            SerializationError: If the record cannot be encoded.
            WriteError: If the record file cannot be written.
        """
        record = CacheRecord.create(key, value, as_timedelta(ttl), now=self._clock())
        path = self.resolve_path(key)
        if not key.lstrip("/"):
            raise WriteError("Cache key has no file name", {"key": key})
        if _escapes_shard(key):
            raise WriteError("Cache key leaves the cache directory", {"key": key})
        if _is_temp_name(path.name):
            raise WriteError(
                "Cache key uses the reserved temporary file pattern",
                {"key": key, "pattern": f"{TEMP_PREFIX}*{TEMP_SUFFIX}"},
            )

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except (OSError, ValueError) as e:
            raise DirectoryCreationError(
                "Failed to create shard directory",
                {"key": key, "path": str(path.parent), "error": str(e)},
            ) from e

        self._write_atomic(key, path, record.to_json())
        logger.debug(
            "Stored cache record",
            key=key,
            size=len(record.payload),
            expires_at=record.expires_at.isoformat(),
        )

    def get(self, key: str) -> bytes:
        """Return the payload stored under ``key``.

        Raises:
            NotFoundError: If no record exists.
            ReadError: If the record file cannot be read.
            CorruptRecordError: If the file is not a valid record.
            ExpiredError: If the record has expired. The file is removed
                first when purge-on-read is enabled.
        """
        path = self._existing_path(key)
        record = self._load(key, path)

        if record.is_expired(self._clock()):
            if self._purge_on_read:
                self._remove_quietly(path)
                logger.debug("Purged expired record on read", key=key)
            raise ExpiredError(
                "Cache record expired",
                {"key": key, "expires_at": record.expires_at.isoformat()},
            )

        return record.payload

    def get_string(self, key: str, encoding: str = "utf-8") -> str:
        """Return the payload decoded as text.

        Raises:
            CorruptRecordError: If the payload is not valid in ``encoding``,
                in addition to everything get() raises.
        """
        payload = self.get(key)
        try:
            return payload.decode(encoding)
        except UnicodeDecodeError as e:
            raise CorruptRecordError(
                "Cache payload is not valid text",
                {"key": key, "encoding": encoding, "error": str(e)},
            ) from e

    def exists(self, key: str) -> bool:
        """True if a live record exists. Never raises."""
        return self.check(key).exists

    def check(self, key: str) -> ExistenceCheck:
        """Probe for a live record, keeping the reason for a negative answer.

        Plain absence and expiry give ``ExistenceCheck(False)``; any other
        failure is attached as ``error``. With purge-on-read enabled this is
        a full get(), so expired records are removed.
        """
        try:
            path = self._existing_path(key)
        except NotFoundError:
            return ExistenceCheck(False)
        except CacheError as e:
            return ExistenceCheck(False, e)

        try:
            is_file = path.is_file()
        except (OSError, ValueError) as e:
            return ExistenceCheck(
                False,
                ReadError("Failed to stat cache record", {"key": key, "error": str(e)}),
            )
        if not is_file:
            return ExistenceCheck(False)

        if not self._purge_on_read:
            return ExistenceCheck(True)

        try:
            self.get(key)
        except (NotFoundError, ExpiredError):
            return ExistenceCheck(False)
        except CacheError as e:
            return ExistenceCheck(False, e)
        return ExistenceCheck(True)

    def delete(self, key: str) -> None:
        """Remove the record for ``key`` whether or not it has expired.

        Raises:
            NotFoundError: If no record exists.
            DeleteError: If the file cannot be removed.
        """
        path = self._existing_path(key)
        try:
            path.unlink()
        except FileNotFoundError as e:
            raise NotFoundError("Cache record not found", {"key": key}) from e
        except (OSError, ValueError) as e:
            raise DeleteError(
                "Failed to delete cache record",
                {"key": key, "path": str(path), "error": str(e)},
            ) from e
        logger.debug("Deleted cache record", key=key)

    # === Tree walks ===

    def purge_expired(self, cancel: threading.Event | None = None) -> PurgeReport:
        """Delete every expired, unreadable or corrupt record in the tree.

        Per-file failures are counted, not raised. Directories are left in
        place even when emptied.

        Args:
            cancel: When set, the sweep stops before the next directory.

        Returns:
            PurgeReport with counts for the sweep.

        Raises:
            WalkError: If one or more directories could not be listed.
        """
        report = PurgeReport()
        walk_errors: list[OSError] = []

        with log_context(cache_dir=str(self._base_dir), operation="purge"):
            for path, _ in self._walk_records(walk_errors, cancel):
                report.scanned += 1
                if not self._is_purgeable(path):
                    report.kept += 1
                elif self._remove_quietly(path):
                    report.removed += 1
                else:
                    report.failed += 1

            report.cancelled = cancel is not None and cancel.is_set()
            self._raise_walk_errors(walk_errors)
            logger.info("Purge sweep finished", **report.to_dict())

        return report

    def list_keys(self, cancel: threading.Event | None = None) -> list[str]:
        """List the keys of all stored records, expired ones included.

        Keys are recovered from file names, with a trailing ".json" removed.
        Order is unspecified. This walks the whole tree.

        Raises:
            WalkError: If one or more directories could not be listed.
        """
        keys: list[str] = []
        walk_errors: list[OSError] = []

        with log_context(cache_dir=str(self._base_dir), operation="list_keys"):
            for _, parts in self._walk_records(walk_errors, cancel):
                key = "/".join(parts[self._shard_levels:])
                if key.endswith(RECORD_EXTENSION):
                    key = key[: -len(RECORD_EXTENSION)]
                keys.append(key)
            self._raise_walk_errors(walk_errors)

        return keys

    # === Internals ===

    def _existing_path(self, key: str) -> Path:
        """Path of a record that may already exist; keys with ".." never do."""
        path = self.resolve_path(key)
        if _escapes_shard(key):
            raise NotFoundError("Cache record not found", {"key": key})
        return path

    def _load(self, key: str, path: Path) -> CacheRecord:
        try:
            raw = path.read_bytes()
        except FileNotFoundError as e:
            raise NotFoundError("Cache record not found", {"key": key}) from e
        except (OSError, ValueError) as e:
            raise ReadError(
                "Failed to read cache record",
                {"key": key, "path": str(path), "error": str(e)},
            ) from e

        try:
            return CacheRecord.from_json(raw)
        except CorruptRecordError as e:
            raise CorruptRecordError(e.message, {**e.context, "key": key}) from e

    def _write_atomic(self, key: str, path: Path, content: bytes) -> None:
        """Write to a temp sibling, then rename over the target."""
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=path.parent, prefix=TEMP_PREFIX, suffix=TEMP_SUFFIX
            )
        except (OSError, ValueError) as e:
            raise WriteError(
                "Failed to create temporary cache file",
                {"key": key, "path": str(path), "error": str(e)},
            ) from e

        try:
            with os.fdopen(fd, "wb") as f:
                f.write(content)
            os.chmod(tmp_name, RECORD_FILE_MODE)
            os.replace(tmp_name, path)
        except (OSError, ValueError) as e:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
            raise WriteError(
                "Failed to write cache file",
                {"key": key, "path": str(path), "error": str(e)},
            ) from e

    def _remove_quietly(self, path: Path) -> bool:
        """Best-effort delete. True if the file is gone afterwards."""
        try:
            path.unlink()
        except FileNotFoundError:
            return True
        except OSError as e:
            logger.warning("Failed to remove cache file", path=str(path), error=str(e))
            return False
        return True

    def _is_purgeable(self, path: Path) -> bool:
        try:
            record = CacheRecord.from_json(path.read_bytes())
        except OSError as e:
            logger.debug("Unreadable cache file", path=str(path), error=str(e))
            return True
        except CorruptRecordError as e:
            logger.debug("Corrupt cache file", path=str(path), error=str(e))
            return True
        return record.is_expired(self._clock())

    def _is_shard_segment(self, segment: str) -> bool:
        return len(segment) == self._shard_prefix_length and set(segment) <= _HEX_DIGITS

    def _walk_records(
        self,
        walk_errors: list[OSError],
        cancel: threading.Event | None,
    ) -> Iterator[tuple[Path, tuple[str, ...]]]:
        """Yield (path, parts relative to base_dir) for each record file."""
        for dirpath, _, filenames in os.walk(self._base_dir, onerror=walk_errors.append):
            if cancel is not None and cancel.is_set():
                logger.info("Tree walk cancelled", directory=dirpath)
                return

            rel_dir = Path(dirpath).relative_to(self._base_dir).parts
            if len(rel_dir) < self._shard_levels:
                continue
            if not all(self._is_shard_segment(s) for s in rel_dir[: self._shard_levels]):
                continue

            for filename in filenames:
                if _is_temp_name(filename):
                    continue
                yield Path(dirpath) / filename, (*rel_dir, filename)

    def _raise_walk_errors(self, walk_errors: list[OSError]) -> None:
        if not walk_errors:
            return
        raise WalkError(
            "Failed to walk cache directory",
            {"base_dir": str(self._base_dir), "errors": [str(e) for e in walk_errors]},
        ) from walk_errors[0]
