"""CLI entry point: registers all subcommands."""

import typer

from .. import __version__

app = typer.Typer(
    name="php-sanitizer",
    help=f"PHP Sanitizer {__version__} - module coupling and PHPMD analysis",
    add_completion=False,
    rich_markup_mode="rich",
)


# Import subcommands to register them
from .analyze import analyze as _analyze, deps as _deps, scan as _scan  # noqa: F401, E402
from .cache import cache_clear as _cache_clear, cache_info as _cache_info  # noqa: F401, E402


def main() -> None:
    app()
