"""Analysis commands: full run, dependency analysis only, PHPMD only."""

import json
from pathlib import Path
from typing import Optional

import typer

from ..dependency.analyzer import DependencyAnalyzer
from ..events import AnalysisEvents
from ..exceptions import ConcurrentAnalysisError, SanitizerError
from ..logging_config import apply_verbosity, setup_logging
from ..orchestrator import Analyzer
from ..phpmd.adapter import PHPMDAnalyzer
from ..sinks import JsonResultSink, Project, StaticProjectResolver
from . import app
from ._common import console, print_dependency_result, print_scan_result, resolve_config


@app.command()
def analyze(
    archive: Path = typer.Argument(
        ...,
        help="ZIP archive of the project's source code",
        file_okay=True,
        dir_okay=False,
    ),
    modules: str = typer.Option(
        ...,
        "--modules",
        "-m",
        help="Pattern locating module directories (substring or /regex/)",
    ),
    project_id: Optional[str] = typer.Option(
        None,
        "--project-id",
        "-p",
        help="Project identity (defaults to the archive name)",
    ),
    user_id: Optional[str] = typer.Option(None, "--user-id", help="Owning user identity"),
    results_dir: Optional[Path] = typer.Option(
        None,
        "--results-dir",
        "-o",
        help="Directory to write the JSON results to",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Configuration file (TOML)",
        exists=True,
        file_okay=True,
        dir_okay=False,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show every violation"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress logging"),
):
    """
    Unpack a project archive, run dependency and PHPMD analysis, save the results.

    [bold cyan]Examples:[/bold cyan]

      php-sanitizer analyze project.zip --modules "/^src\\/[^\\/]+Bundle$/"

      php-sanitizer analyze project.zip -m src/ -o results/
    """
    setup_logging(verbose=verbose, quiet=quiet)

    try:
        settings = resolve_config(
            config=config, results_dir=results_dir, verbose=verbose, quiet=quiet
        )
        apply_verbosity(settings.verbosity)
    except SanitizerError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    project = Project(
        id=project_id or archive.stem,
        archive_path=archive.resolve(),
        modules_pattern=modules,
        user_id=user_id,
        name=archive.stem,
    )
    sink = JsonResultSink(settings.results_dir)
    analyzer = Analyzer.from_config(settings, StaticProjectResolver([project]), sink)

    def _on_end(event) -> None:
        if not quiet:
            console.print(f"[dim]Analysis of {event.project_id} ended[/dim]")

    analyzer.dispatcher.add_listener(AnalysisEvents.END, _on_end)

    try:
        outcome = analyzer.run_analysis(project.id)
    except ConcurrentAnalysisError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2)

    if not outcome.succeeded or outcome.record is None:
        console.print(f"[red]Analysis failed:[/red] {outcome.error}")
        raise typer.Exit(1)

    if not quiet:
        console.print()
        console.print(f"[bold cyan]PHP SANITIZER: {project.name}[/bold cyan]")
        console.print()
        print_dependency_result(outcome.record.dependency)
        console.print()
        print_scan_result(outcome.record.phpmd, verbose=verbose)
        console.print()
        console.print(f"Results written to [blue]{sink.last_path}[/blue]")


@app.command()
def deps(
    source_dir: Path = typer.Argument(
        ...,
        help="Project source directory",
        exists=True,
        file_okay=False,
        dir_okay=True,
    ),
    modules: str = typer.Option(..., "--modules", "-m", help="Pattern locating module directories"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
    workers: Optional[int] = typer.Option(
        None, "--workers", "-w", help="Parallel workers", min=1, max=32
    ),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file (TOML)", exists=True, dir_okay=False
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Run the module dependency analysis on an unpacked source tree."""
    setup_logging(verbose=verbose, quiet=as_json)

    try:
        settings = resolve_config(config=config, workers=workers, verbose=verbose, quiet=as_json)
        apply_verbosity(settings.verbosity)
        analyzer = DependencyAnalyzer(settings.source_extensions, settings.max_workers)
        result = analyzer.analyze(source_dir, modules)
    except SanitizerError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if as_json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print_dependency_result(result)


@app.command()
def scan(
    source_dir: Path = typer.Argument(
        ...,
        help="Project source directory",
        exists=True,
        file_okay=False,
        dir_okay=True,
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file (TOML)", exists=True, dir_okay=False
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Run PHPMD on a source tree and list its violations."""
    setup_logging(verbose=verbose, quiet=as_json)

    try:
        settings = resolve_config(config=config, verbose=verbose, quiet=as_json)
        apply_verbosity(settings.verbosity)
        analyzer = PHPMDAnalyzer(
            workspace_dir=settings.workspace_path,
            command=settings.phpmd_command,
            rules=settings.phpmd_rules,
            report_format=settings.phpmd_report_format,
            timeout_seconds=settings.phpmd_timeout_seconds,
        )
        result = analyzer.analyze(source_dir)
    except SanitizerError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if as_json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print_scan_result(result, verbose=verbose)
