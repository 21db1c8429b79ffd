"""Module dependency analysis: discovery, graph building, SCC scoring."""

from .algorithms import coupling_score, strongly_connected_components
from .analyzer import DependencyAnalyzer
from .builder import build_graph
from .scanner import discover_modules, parse_source, scan_module

__all__ = [
    "DependencyAnalyzer",
    "build_graph",
    "coupling_score",
    "discover_modules",
    "parse_source",
    "scan_module",
    "strongly_connected_components",
]
