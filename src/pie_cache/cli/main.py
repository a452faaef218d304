"""
CLI for the file cache.

Commands:
    pie-cache set KEY VALUE - Store a value
    pie-cache get KEY - Print a stored value
    pie-cache exists KEY - Exit 0 if a live value exists, 1 otherwise
    pie-cache delete KEY - Remove a value
    pie-cache purge - Remove all expired records
    pie-cache keys - List stored keys
    pie-cache config - Show current configuration
    pie-cache version - Print version
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from pie_cache import __version__
from pie_cache.cache.file_cache import FileCache
from pie_cache.config import Settings, clear_settings_cache, get_settings
from pie_cache.exceptions import CacheError
from pie_cache.logging import setup_logging

app = typer.Typer(
    name="pie-cache",
    help="File-backed key-value cache with per-item TTL",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)

CacheDirOption = Annotated[
    Optional[Path],
    typer.Option("--cache-dir", "-d", help="Cache directory (overrides CACHE_DIR)"),
]


def _get_settings_safe() -> Settings | None:
    """Get settings, returning None if configuration is invalid."""
    try:
        clear_settings_cache()
        return get_settings()
    except Exception:
        return None


def _fail(message: str) -> typer.Exit:
    error_console.print(f"[red]Error:[/red] {escape(message)}")
    return typer.Exit(1)


def _open_cache(cache_dir: Path | None) -> FileCache:
    """Load settings, configure logging and open the cache."""
    settings = _get_settings_safe()
    if settings is None:
        raise _fail("Configuration is invalid. Run 'pie-cache config' to inspect it.")

    setup_logging(log_level=settings.LOG_LEVEL, log_file=settings.LOG_FILE)

    if cache_dir is not None:
        settings = settings.model_copy(update={"CACHE_DIR": cache_dir})

    try:
        return FileCache.from_settings(settings)
    except CacheError as e:
        raise _fail(str(e)) from e


@app.command("set")
def set_value(
    key: Annotated[str, typer.Argument(help="Cache key")],
    value: Annotated[str, typer.Argument(help="Value to store (UTF-8)")],
    ttl: Annotated[
        Optional[float],
        typer.Option("--ttl", "-t", help="Time-to-live in seconds"),
    ] = None,
    cache_dir: CacheDirOption = None,
) -> None:
    """Store a value under a key."""
    cache = _open_cache(cache_dir)
    try:
        cache.set(key, value.encode("utf-8"), ttl)
    except CacheError as e:
        raise _fail(str(e)) from e
    console.print(f"[green]Stored[/green] {escape(key)}")


@app.command("get")
def get_value(
    key: Annotated[str, typer.Argument(help="Cache key")],
    cache_dir: CacheDirOption = None,
) -> None:
    """Print the value stored under a key."""
    cache = _open_cache(cache_dir)
    try:
        value = cache.get_string(key)
    except CacheError as e:
        raise _fail(str(e)) from e
    typer.echo(value)


@app.command()
def exists(
    key: Annotated[str, typer.Argument(help="Cache key")],
    cache_dir: CacheDirOption = None,
) -> None:
    """Check whether a live value exists; exit code 1 when it does not."""
    cache = _open_cache(cache_dir)
    result = cache.check(key)
    if result.error is not None:
        error_console.print(f"[yellow]Warning:[/yellow] {escape(str(result.error))}")
    if not result.exists:
        console.print(f"{escape(key)}: [red]absent[/red]")
        raise typer.Exit(1)
    console.print(f"{escape(key)}: [green]present[/green]")


@app.command()
def delete(
    key: Annotated[str, typer.Argument(help="Cache key")],
    cache_dir: CacheDirOption = None,
) -> None:
    """Remove the value stored under a key."""
    cache = _open_cache(cache_dir)
    try:
        cache.delete(key)
    except CacheError as e:
        raise _fail(str(e)) from e
    console.print(f"[green]Deleted[/green] {escape(key)}")


@app.command()
def purge(cache_dir: CacheDirOption = None) -> None:
    """Remove every expired or corrupt record."""
    cache = _open_cache(cache_dir)
    try:
        report = cache.purge_expired()
    except CacheError as e:
        raise _fail(str(e)) from e

    table = Table(title="Purge", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Count", style="green")
    for name, count in report.to_dict().items():
        table.add_row(name, str(count))
    console.print(table)


@app.command()
def keys(cache_dir: CacheDirOption = None) -> None:
    """List stored keys, including expired ones not yet purged."""
    cache = _open_cache(cache_dir)
    try:
        found = cache.list_keys()
    except CacheError as e:
        raise _fail(str(e)) from e
    for key in sorted(found):
        typer.echo(key)


@app.command()
def config() -> None:
    """Show current configuration."""
    settings = _get_settings_safe()
    if settings is None:
        error_console.print("[red]Configuration is invalid.[/red]")
        error_console.print(
            "Check SHARD_LEVELS * SHARD_PREFIX_LENGTH <= 64 and the LOG_LEVEL value."
        )
        raise typer.Exit(1)

    table = Table(title="Settings", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    for key, value in settings.display().items():
        display_value = str(value) if value is not None else "[dim]not set[/dim]"
        table.add_row(key, display_value)

    console.print(table)


@app.command()
def version() -> None:
    """Print the version number."""
    console.print(f"pie-cache version {__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()
