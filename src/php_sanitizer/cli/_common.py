"""Shared CLI helpers."""

from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.table import Table

from ..config import SanitizerConfig, load_config
from ..models import DependencyResult, ScanResult

console = Console()


def resolve_config(
    config: Optional[Path] = None,
    workers: Optional[int] = None,
    results_dir: Optional[Path] = None,
    verbose: bool = False,
    quiet: bool = False,
) -> SanitizerConfig:
    """Build configuration from CLI options."""
    overrides = {}
    if workers is not None:
        overrides["workers"] = workers
    if results_dir is not None:
        overrides["results_dir"] = str(results_dir)
    return load_config(config_file=config, verbose=verbose, quiet=quiet, **overrides)


def print_dependency_result(result: DependencyResult) -> None:
    if result.is_empty():
        console.print("[yellow]No modules matched the module pattern[/yellow]")
        return

    console.print(
        f"  Modules: [green]{len(result.modules)}[/green]   "
        f"Components: [green]{len(result.components)}[/green]   "
        f"Score: [bold]{result.score:.2f}[/bold]"
    )

    table = Table(show_header=True, header_style="bold")
    table.add_column("Module")
    table.add_column("Depends on")
    for name in sorted(result.graph):
        table.add_row(name, ", ".join(sorted(result.graph[name])) or "-")
    console.print(table)

    cycles = [sorted(c) for c in result.components if len(c) > 1]
    for members in cycles:
        console.print(f"  [red]Cycle:[/red] {' -> '.join(members)}")


def print_scan_result(result: ScanResult, verbose: bool = False) -> None:
    if result.is_empty():
        console.print("[green]PHPMD reported no violations[/green]")
        return

    console.print(
        f"  Violations: [yellow]{result.violation_count}[/yellow] "
        f"in [yellow]{len(result.violations)}[/yellow] files"
    )
    table = Table(show_header=True, header_style="bold")
    table.add_column("File")
    table.add_column("Violations", justify="right")
    table.add_column("Top priority", justify="right")
    for path in sorted(result.violations):
        items = result.violations[path]
        table.add_row(path, str(len(items)), str(min(v.priority for v in items)))
    console.print(table)

    if verbose:
        for path in sorted(result.violations):
            for v in result.violations[path]:
                console.print(f"  {path}:{v.begin_line} [dim]{v.rule}[/dim] {v.message}")
