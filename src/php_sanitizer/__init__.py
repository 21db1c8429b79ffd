"""
PHP Sanitizer - module coupling and code quality analysis for PHP projects.

Infers a module dependency graph from the sources, scores how coupled the
modules are through their strongly connected components, and collects
PHPMD rule violations.
"""

__version__ = "0.3.0"

from .dependency import DependencyAnalyzer, strongly_connected_components
from .models import AnalysisRecord, DependencyResult, ScanResult, Violation
from .orchestrator import Analyzer, RunOutcome, RunState
from .phpmd import PHPMDAnalyzer

__all__ = [
    "Analyzer",  # Main entry point
    "RunOutcome",
    "RunState",
    "DependencyAnalyzer",
    "PHPMDAnalyzer",
    "strongly_connected_components",
    "AnalysisRecord",
    "DependencyResult",
    "ScanResult",
    "Violation",
]
