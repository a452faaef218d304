"""
Tests for the command line interface.
"""

from __future__ import annotations

from pathlib import Path

from typer.testing import CliRunner

from pie_cache import __version__
from pie_cache.cli.main import app

runner = CliRunner()


class TestPointCommands:
    """Tests for set/get/exists/delete."""

    def test_set_then_get(self, mock_env_vars: dict[str, str]) -> None:
        result = runner.invoke(app, ["set", "user:123", "user data"])
        assert result.exit_code == 0

        result = runner.invoke(app, ["get", "user:123"])
        assert result.exit_code == 0
        assert "user data" in result.output

    def test_cache_dir_option(self, mock_env_vars: dict[str, str], temp_dir: Path) -> None:
        other = temp_dir / "other"

        result = runner.invoke(app, ["set", "k", "v", "--cache-dir", str(other)])
        assert result.exit_code == 0
        assert other.is_dir()

        # Not visible through the environment-configured directory
        result = runner.invoke(app, ["get", "k"])
        assert result.exit_code == 1

    def test_get_missing(self, mock_env_vars: dict[str, str]) -> None:
        result = runner.invoke(app, ["get", "missing"])

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_expired_with_negative_ttl(self, mock_env_vars: dict[str, str]) -> None:
        runner.invoke(app, ["set", "k", "v", "--ttl", "-1"])

        result = runner.invoke(app, ["get", "k"])

        assert result.exit_code == 1
        assert "expired" in result.output

    def test_exists_and_delete(self, mock_env_vars: dict[str, str]) -> None:
        runner.invoke(app, ["set", "k", "v"])

        result = runner.invoke(app, ["exists", "k"])
        assert result.exit_code == 0
        assert "present" in result.output

        result = runner.invoke(app, ["delete", "k"])
        assert result.exit_code == 0

        result = runner.invoke(app, ["exists", "k"])
        assert result.exit_code == 1
        assert "absent" in result.output

    def test_delete_missing(self, mock_env_vars: dict[str, str]) -> None:
        result = runner.invoke(app, ["delete", "missing"])
        assert result.exit_code == 1


class TestTreeCommands:
    """Tests for keys and purge."""

    def test_keys(self, mock_env_vars: dict[str, str]) -> None:
        for key in ("b", "a", "c"):
            runner.invoke(app, ["set", key, "v"])

        result = runner.invoke(app, ["keys"])

        assert result.exit_code == 0
        assert result.stdout.split() == ["a", "b", "c"]

    def test_purge(self, mock_env_vars: dict[str, str]) -> None:
        runner.invoke(app, ["set", "old", "v", "--ttl", "-5"])
        runner.invoke(app, ["set", "new", "v"])

        result = runner.invoke(app, ["purge"])
        assert result.exit_code == 0
        assert "removed" in result.output

        result = runner.invoke(app, ["keys"])
        assert result.stdout.split() == ["new"]


class TestInfoCommands:
    """Tests for config and version."""

    def test_config(self, mock_env_vars: dict[str, str]) -> None:
        result = runner.invoke(app, ["config"])

        assert result.exit_code == 0
        assert "CACHE_DIR" in result.output
        assert "SHARD_LEVELS" in result.output

    def test_config_invalid(self, mock_env_vars: dict[str, str]) -> None:
        result = runner.invoke(app, ["config"], env={"SHARD_LEVELS": "32", "SHARD_PREFIX_LENGTH": "4"})
        assert result.exit_code == 1

    def test_version(self) -> None:
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert __version__ in result.output
