"""PHPMD adapter: process spawning, invocation and report parsing."""

from .adapter import EXIT_ERROR, EXIT_NO_VIOLATIONS, EXIT_VIOLATIONS, PHPMDAnalyzer
from .report import parse_report, relative_report_path
from .spawner import (
    PosixProcessSpawner,
    ProcessResult,
    ProcessSpawner,
    WindowsProcessSpawner,
    default_spawner,
)

__all__ = [
    "PHPMDAnalyzer",
    "EXIT_NO_VIOLATIONS",
    "EXIT_ERROR",
    "EXIT_VIOLATIONS",
    "parse_report",
    "relative_report_path",
    "ProcessSpawner",
    "ProcessResult",
    "PosixProcessSpawner",
    "WindowsProcessSpawner",
    "default_spawner",
]
