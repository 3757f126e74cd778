"""
CLI for fcache.

Commands:
    fcache get KEY - Print a cached value as JSON
    fcache set KEY VALUE - Store a value (JSON, or a plain string)
    fcache delete KEY - Remove an entry
    fcache has KEY - Exit 0 if the key holds a value
    fcache incr KEY / fcache decr KEY - Adjust an integer counter
    fcache clear - Remove every entry
    fcache config - Show current configuration
    fcache version - Print version
"""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Annotated, Any, Generator, Optional

import orjson
import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from fcache import __version__
from fcache.cache import CacheInterface, get_cache
from fcache.config import Settings, clear_settings_cache, get_settings
from fcache.exceptions import ConfigurationError, InvalidCacheKeyError
from fcache.logging import log_context, setup_logging

app = typer.Typer(
    name="fcache",
    help="fcache - inspect and manipulate a file-backed key-value cache",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)


def _get_settings_safe() -> Settings | None:
    """Get settings, returning None if configuration is invalid."""
    try:
        clear_settings_cache()
        return get_settings()
    except Exception:
        return None


def _parse_value(text: str) -> Any:
    """Read a command-line value as JSON, falling back to the raw string."""
    try:
        return orjson.loads(text)
    except orjson.JSONDecodeError:
        return text


@contextmanager
def _open_cache(ctx: typer.Context, command: str) -> Generator[CacheInterface, None, None]:
    settings = _get_settings_safe()
    if settings is None:
        error_console.print(
            "[red]Error:[/red] Configuration is invalid. "
            "Run 'fcache config' to see what's wrong."
        )
        raise typer.Exit(1)

    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)

    path_override = (ctx.obj or {}).get("path")
    if path_override is not None:
        settings = settings.model_copy(update={"CACHE_PATH": path_override})

    try:
        cache = get_cache(settings)
    except ConfigurationError as e:
        error_console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    with log_context(cache_dir=str(settings.CACHE_PATH), command=command):
        try:
            yield cache
        except InvalidCacheKeyError as e:
            error_console.print(f"[red]Invalid key:[/red] {escape(str(e))}")
            raise typer.Exit(2)
        except (OverflowError, OSError) as e:
            error_console.print(f"[red]Error:[/red] {escape(str(e))}")
            raise typer.Exit(1)


@app.callback()
def main_callback(
    ctx: typer.Context,
    path: Annotated[
        Optional[Path],
        typer.Option("--path", "-p", help="Cache directory (overrides FCACHE_CACHE_PATH)"),
    ] = None,
) -> None:
    """File-backed key-value cache."""
    ctx.obj = {"path": path}


@app.command()
def get(
    ctx: typer.Context,
    key: Annotated[str, typer.Argument(help="Cache key")],
    default: Annotated[
        Optional[str],
        typer.Option("--default", "-d", help="Value to print on a miss (JSON or text)"),
    ] = None,
) -> None:
    """Print the value stored under KEY as JSON."""
    with _open_cache(ctx, "get") as cache:
        value = cache.get(key)

    if value is None:
        if default is None:
            error_console.print(f"[yellow]Miss:[/yellow] {escape(key)}")
            raise typer.Exit(1)
        value = _parse_value(default)

    console.print_json(orjson.dumps(value).decode("utf-8"))


@app.command(name="set")
def set_(
    ctx: typer.Context,
    key: Annotated[str, typer.Argument(help="Cache key")],
    value: Annotated[str, typer.Argument(help="Value (JSON, or stored as plain text)")],
    ttl: Annotated[
        Optional[int],
        typer.Option("--ttl", "-t", help="Time to live in seconds"),
    ] = None,
) -> None:
    """Store VALUE under KEY."""
    with _open_cache(ctx, "set") as cache:
        stored = cache.set(key, _parse_value(value), ttl)

    if not stored:
        error_console.print(f"[red]Error:[/red] Failed to store {escape(key)}")
        raise typer.Exit(1)
    console.print(f"[green]Stored[/green] {escape(key)}")


@app.command()
def delete(
    ctx: typer.Context,
    key: Annotated[str, typer.Argument(help="Cache key")],
) -> None:
    """Remove the entry for KEY."""
    with _open_cache(ctx, "delete") as cache:
        deleted = cache.delete(key)

    if not deleted:
        error_console.print(f"[red]Error:[/red] Failed to delete {escape(key)}")
        raise typer.Exit(1)
    console.print(f"[green]Deleted[/green] {escape(key)}")


@app.command()
def has(
    ctx: typer.Context,
    key: Annotated[str, typer.Argument(help="Cache key")],
) -> None:
    """Exit 0 if KEY holds a value, 1 otherwise."""
    with _open_cache(ctx, "has") as cache:
        present = cache.has(key)

    console.print("yes" if present else "no")
    if not present:
        raise typer.Exit(1)


@app.command()
def incr(
    ctx: typer.Context,
    key: Annotated[str, typer.Argument(help="Counter key")],
    by: Annotated[int, typer.Option("--by", "-b", help="Amount to add")] = 1,
) -> None:
    """Increment the counter at KEY and print the new value."""
    with _open_cache(ctx, "incr") as cache:
        console.print(cache.increment(key, by))


@app.command()
def decr(
    ctx: typer.Context,
    key: Annotated[str, typer.Argument(help="Counter key")],
    by: Annotated[int, typer.Option("--by", "-b", help="Amount to subtract")] = 1,
) -> None:
    """Decrement the counter at KEY and print the new value."""
    with _open_cache(ctx, "decr") as cache:
        console.print(cache.decrement(key, by))


@app.command()
def clear(ctx: typer.Context) -> None:
    """Remove every cache entry."""
    with _open_cache(ctx, "clear") as cache:
        cleared = cache.clear()

    if not cleared:
        error_console.print("[red]Error:[/red] Could not list the cache directory")
        raise typer.Exit(1)
    console.print("[green]Cache cleared[/green]")


@app.command()
def config(ctx: typer.Context) -> None:
    """Show current configuration."""
    settings = _get_settings_safe()

    if settings is None:
        error_console.print("[red]Configuration is invalid.[/red]")
        error_console.print()
        error_console.print("Check the FCACHE_* environment variables and your .env file:")
        error_console.print("  - FCACHE_LOCK_TIMEOUT must be >= 0 or -1")
        error_console.print("  - FCACHE_INCREMENT_TTL must be >= 1")
        error_console.print("  - FCACHE_LOG_LEVEL must be DEBUG, INFO, WARNING, ERROR or CRITICAL")
        raise typer.Exit(1)

    path_override = (ctx.obj or {}).get("path")
    if path_override is not None:
        settings = settings.model_copy(update={"CACHE_PATH": path_override})

    table = Table(title="Settings", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    for key, value in settings.display().items():
        display_value = escape(str(value)) if value is not None else "[dim]not set[/dim]"
        table.add_row(key, display_value)

    console.print(table)


@app.command()
def version() -> None:
    """Print the version number."""
    console.print(f"fcache version {__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
