"""
Tests for structured logging.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Generator

import pytest

from pie_cache.exceptions import CacheError, ExpiredError
from pie_cache.logging import get_logger, get_operation, log_context, setup_logging


@pytest.fixture
def log_file(temp_dir: Path) -> Generator[Path, None, None]:
    """Route package logs to a JSON-lines file for the test."""
    path = temp_dir / "logs" / "cache.jsonl"
    setup_logging(log_level="DEBUG", log_file=path, console_output=False)
    yield path
    root = logging.getLogger("pie_cache")
    for handler in root.handlers:
        handler.close()
    setup_logging(log_level="WARNING")


def _last_line(path: Path) -> dict:
    for handler in logging.getLogger("pie_cache").handlers:
        handler.flush()
    return json.loads(path.read_text(encoding="utf-8").splitlines()[-1])


class TestJSONLogging:
    """Tests for the JSON file handler."""

    def test_writes_message_and_extra(self, log_file: Path) -> None:
        logger = get_logger("tests")
        logger.info("Purge sweep finished", removed=2)

        line = _last_line(log_file)

        assert line["message"] == "Purge sweep finished"
        assert line["level"] == "INFO"
        assert line["logger"] == "pie_cache.tests"
        assert line["extra"]["removed"] == 2

    def test_includes_context(self, log_file: Path) -> None:
        logger = get_logger("tests")
        with log_context(cache_dir="/tmp/c", operation="purge"):
            logger.debug("scanning")

        line = _last_line(log_file)

        assert line["operation"] == "purge"
        assert line["cache_dir"] == "/tmp/c"


class TestLogContext:
    """Tests for scoped context."""

    def test_context_is_restored(self) -> None:
        with log_context(operation="outer"):
            with log_context(operation="inner"):
                assert get_operation() == "inner"
            assert get_operation() == "outer"
        assert get_operation() is None


class TestCacheError:
    """Tests for the exception base class."""

    def test_str_includes_context(self) -> None:
        err = ExpiredError("Cache record expired", {"key": "k"})

        assert str(err) == "Cache record expired (key='k')"
        assert isinstance(err, CacheError)

    def test_repr(self) -> None:
        err = CacheError("boom")
        assert repr(err) == "CacheError('boom', context={})"
        assert str(err) == "boom"
