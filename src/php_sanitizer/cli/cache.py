"""Result cache commands."""

from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from ..cache import ResultCache
from ..exceptions import SanitizerError
from . import app
from ._common import console, resolve_config

_CONFIG_OPTION = typer.Option(
    None, "--config", "-c", help="Configuration file (TOML)", exists=True, dir_okay=False
)


def _open_cache(config: Optional[Path]) -> ResultCache:
    try:
        settings = resolve_config(config=config)
    except SanitizerError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    return ResultCache(cache_dir=settings.cache_dir, enabled=settings.cache_enabled)


@app.command()
def cache_info(config: Optional[Path] = _CONFIG_OPTION):
    """Show where the result cache lives and how much it holds."""
    with _open_cache(config) as cache:
        stats = cache.stats()

    if not stats["enabled"]:
        console.print("Result cache: [red]disabled[/red]")
        return

    table = Table(title="Result cache", show_header=False)
    table.add_column("Property", style="bold")
    table.add_column("Value")
    table.add_row("Status", "[green]enabled[/green]")
    table.add_row("Directory", str(stats["directory"]))
    table.add_row("Entries", str(stats["size"]))
    table.add_row("Size", f"{stats['volume']} bytes")
    console.print(table)


@app.command()
def cache_clear(config: Optional[Path] = _CONFIG_OPTION):
    """Drop every cached parser view."""
    with _open_cache(config) as cache:
        if not cache.enabled:
            console.print("[yellow]Result cache is disabled, nothing to clear[/yellow]")
            return
        removed = cache.stats()["size"]
        cache.clear()

    console.print(f"[green]Cache cleared[/green] ({removed} entries removed)")
