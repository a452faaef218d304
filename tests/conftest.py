"""
Pytest configuration and fixtures for file cache tests.
"""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Generator
from unittest.mock import patch

import pytest

from pie_cache.cache.file_cache import FileCache
from pie_cache.config import clear_settings_cache


class FakeClock:
    """Manually advanced clock returning aware UTC datetimes."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test outputs."""
    return tmp_path


@pytest.fixture
def clock() -> FakeClock:
    """Provide a frozen clock that tests advance explicitly."""
    return FakeClock()


@pytest.fixture
def cache(temp_dir: Path, clock: FakeClock) -> FileCache:
    """Provide a cache with a 5 minute default TTL driven by the fake clock."""
    return FileCache(temp_dir / "cache", timedelta(minutes=5), clock=clock)


@pytest.fixture
def mock_env_vars(temp_dir: Path) -> Generator[dict[str, str], None, None]:
    """Provide cache environment variables pointing at the temp directory."""
    env_vars = {
        "CACHE_DIR": str(temp_dir / "env_cache"),
        "DEFAULT_TTL_SECONDS": "120",
        "PURGE_ON_READ": "true",
        "SHARD_LEVELS": "3",
        "SHARD_PREFIX_LENGTH": "2",
        "LOG_LEVEL": "WARNING",
    }

    with patch.dict(os.environ, env_vars, clear=False):
        clear_settings_cache()
        yield env_vars


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Automatically reset settings cache before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()
