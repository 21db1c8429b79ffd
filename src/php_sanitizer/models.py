"""Result models produced by one analysis run.

Both analyzer results are plain dataclasses with ``to_dict`` / ``from_dict``
so they can be forwarded to sinks and cached as JSON-friendly payloads.
Sets are serialized as sorted lists.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional


@dataclass(frozen=True)
class Module:
    """A top-level source directory treated as one coupling unit."""

    name: str
    path: Path
    declares: frozenset[str] = frozenset()
    uses: frozenset[str] = frozenset()


# ── Dependency analysis ───────────────────────────────────────────


@dataclass
class DependencyResult:
    """Module dependency graph, its strongly connected components and the coupling score.

    ``score`` is components / modules. Lower means more coupled. It is 0
    only for the empty result.
    """

    modules: list[str] = field(default_factory=list)
    graph: dict[str, set[str]] = field(default_factory=dict)
    components: list[set[str]] = field(default_factory=list)
    score: float = 0.0

    @classmethod
    def empty(cls) -> DependencyResult:
        return cls()

    def is_empty(self) -> bool:
        return not self.modules

    @property
    def edge_count(self) -> int:
        return sum(len(targets) for targets in self.graph.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "modules": sorted(self.modules),
            "graph": {name: sorted(targets) for name, targets in sorted(self.graph.items())},
            "components": [sorted(component) for component in self.components],
            "score": self.score,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DependencyResult:
        return cls(
            modules=list(data.get("modules", [])),
            graph={name: set(targets) for name, targets in data.get("graph", {}).items()},
            components=[set(component) for component in data.get("components", [])],
            score=float(data.get("score", 0.0)),
        )


# ── PHPMD scan ────────────────────────────────────────────────────


@dataclass(frozen=True)
class Violation:
    """One rule violation reported by PHPMD."""

    file: str
    begin_line: int
    end_line: int
    rule: str
    ruleset: str
    priority: int  # 1 is the highest priority
    message: str
    url: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": self.file,
            "begin_line": self.begin_line,
            "end_line": self.end_line,
            "rule": self.rule,
            "ruleset": self.ruleset,
            "priority": self.priority,
            "message": self.message,
            "url": self.url,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Violation:
        return cls(
            file=str(data["file"]),
            begin_line=int(data["begin_line"]),
            end_line=int(data["end_line"]),
            rule=str(data["rule"]),
            ruleset=str(data["ruleset"]),
            priority=int(data["priority"]),
            message=str(data["message"]),
            url=data.get("url") or None,
        )


@dataclass
class ScanResult:
    """PHPMD violations grouped by project-relative file path."""

    violations: dict[str, list[Violation]] = field(default_factory=dict)
    empty: bool = False

    @classmethod
    def empty_result(cls) -> ScanResult:
        return cls(violations={}, empty=True)

    def is_empty(self) -> bool:
        return self.empty or not self.violations

    @property
    def violation_count(self) -> int:
        return sum(len(items) for items in self.violations.values())

    def add(self, violation: Violation) -> None:
        self.violations.setdefault(violation.file, []).append(violation)

    def to_dict(self) -> dict[str, Any]:
        return {
            "empty": self.empty,
            "violations": {
                path: [v.to_dict() for v in items] for path, items in self.violations.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScanResult:
        return cls(
            violations={
                path: [Violation.from_dict(v) for v in items]
                for path, items in data.get("violations", {}).items()
            },
            empty=bool(data.get("empty", False)),
        )


# ── Persisted run output ──────────────────────────────────────────


@dataclass
class AnalysisRecord:
    """Both results of one run, tied to their project and creation time."""

    project_id: str
    dependency: DependencyResult
    phpmd: ScanResult
    user_id: Optional[str] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:16])
    created: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "user_id": self.user_id,
            "created": self.created.isoformat(),
            "dependency": self.dependency.to_dict(),
            "phpmd": self.phpmd.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AnalysisRecord:
        return cls(
            id=str(data["id"]),
            project_id=str(data["project_id"]),
            user_id=data.get("user_id"),
            created=datetime.fromisoformat(data["created"]),
            dependency=DependencyResult.from_dict(data.get("dependency", {})),
            phpmd=ScanResult.from_dict(data.get("phpmd", {})),
        )
