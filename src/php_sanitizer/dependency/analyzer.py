"""Module dependency analysis for a PHP project.

The result holds the module dependency graph, its strongly connected
components and a score telling how coupled the modules are.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, Optional

from ..logging_config import get_logger
from ..models import DependencyResult, Module
from .algorithms import coupling_score, strongly_connected_components
from .builder import build_graph
from .scanner import DEFAULT_EXTENSIONS, discover_modules, scan_module

logger = get_logger(__name__)

# Below this many modules the thread pool costs more than it saves.
_PARALLEL_MIN_MODULES = 8


class DependencyAnalyzer:
    """Discover modules, scan them, and score their coupling."""

    def __init__(
        self,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
        max_workers: Optional[int] = None,
    ):
        self.extensions = tuple(extensions)
        self.max_workers = max_workers

    def scan_modules(self, modules: dict[str, Path]) -> dict[str, Module]:
        """Scan every module for declared and used symbols."""
        names = list(modules)

        def _scan(name: str) -> Module:
            declares, uses = scan_module(modules[name], self.extensions)
            return Module(name=name, path=modules[name], declares=declares, uses=uses)

        parallel = (
            self.max_workers is not None
            and self.max_workers > 1
            and len(names) >= _PARALLEL_MIN_MODULES
        )
        if not parallel:
            return {name: _scan(name) for name in names}

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            # map() keeps the input order and re-raises worker errors
            scanned = list(executor.map(_scan, names))
        return {module.name: module for module in scanned}

    def analyze(self, source_dir: str | Path, module_pattern: str) -> DependencyResult:
        """Analyze the sources under ``source_dir``.

        Args:
            source_dir: Root of the unpacked project
            module_pattern: Pattern locating module root directories

        Returns:
            DependencyResult; the empty result when no module matched
        """
        modules = discover_modules(source_dir, module_pattern)
        if not modules:
            logger.info("No modules matched %r under %s", module_pattern, source_dir)
            return DependencyResult.empty()

        declarations = self.scan_modules(modules)
        graph = build_graph(declarations)
        components = strongly_connected_components(graph)
        score = coupling_score(len(components), len(modules))

        logger.debug(
            "Dependency analysis: %d modules, %d components, score %.3f",
            len(modules),
            len(components),
            score,
        )
        return DependencyResult(
            modules=list(modules),
            graph=graph,
            components=components,
            score=score,
        )
