"""Read-side parsers: derived views over stored analysis records.

Each view is computed once per analysis and kept in the ResultCache,
keyed by the method name, the parser name and the analysis' identity chain.
Project and user views are keyed by the project or user, with the ids of
the analyses they cover as the data version.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence
from urllib.parse import urlparse

from .cache import CacheTarget, ResultCache
from .exceptions import EmptyResultError
from .locking import RunLock
from .models import AnalysisRecord
from .sinks import Project

# Rule set names as PHPMD writes them in its reports
RULE_CODESIZE = "Code Size Rules"
RULE_CLEANCODE = "Clean Code Rules"
RULE_CONTROVERSIAL = "Controversial Rules"
RULE_DESIGN = "Design Rules"
RULE_NAMING = "Naming Rules"
RULE_UNUSEDCODE = "Unused Code Rules"

RULESETS = (
    RULE_CODESIZE,
    RULE_CLEANCODE,
    RULE_CONTROVERSIAL,
    RULE_DESIGN,
    RULE_NAMING,
    RULE_UNUSEDCODE,
)

RULESET_LABELS = {
    RULE_CODESIZE: "Code size errors",
    RULE_CLEANCODE: "Clean code errors",
    RULE_CONTROVERSIAL: "Controversial",
    RULE_DESIGN: "Design errors",
    RULE_NAMING: "Naming errors",
    RULE_UNUSEDCODE: "Unused code errors",
}

PRIORITIES = (1, 2, 3, 4, 5)


def analysis_target(record: AnalysisRecord) -> CacheTarget:
    return CacheTarget.for_analysis(record.user_id or "", record.project_id, record.id)


def filter_url(url: Optional[str]) -> Optional[str]:
    """Keep only well-formed http(s) URLs."""
    if not url:
        return None
    parsed = urlparse(url)
    if parsed.scheme in ("http", "https") and parsed.netloc:
        return url
    return None


class PHPMDParser:
    """Views over PHPMD results."""

    NAME = "phpmd"

    def __init__(self, cache: ResultCache):
        self.cache = cache

    def is_result_empty(self, record: AnalysisRecord) -> bool:
        return record.phpmd.is_empty()

    def _check(self, record: AnalysisRecord) -> None:
        if self.is_result_empty(record):
            raise EmptyResultError(self.NAME)

    def for_priority_counts(self, record: AnalysisRecord) -> dict[int, dict[str, int]]:
        """Violation counts per priority, then per rule set.

        Every known priority and rule set is present, with 0 where nothing
        was reported. Unknown rule sets are counted under their own name.
        """
        self._check(record)
        target = analysis_target(record)
        cached = self.cache.get("for_priority_counts", self.NAME, target)
        if cached is not None:
            return cached

        counter: dict[int, dict[str, int]] = {
            priority: {ruleset: 0 for ruleset in RULESETS} for priority in PRIORITIES
        }
        for violations in record.phpmd.violations.values():
            for violation in violations:
                by_ruleset = counter.setdefault(violation.priority, {})
                by_ruleset[violation.ruleset] = by_ruleset.get(violation.ruleset, 0) + 1

        self.cache.set(counter, "for_priority_counts", self.NAME, target)
        return counter

    def for_violation_table(self, record: AnalysisRecord) -> dict[str, list[dict[str, Any]]]:
        """One row per violation, grouped by file."""
        self._check(record)
        target = analysis_target(record)
        cached = self.cache.get("for_violation_table", self.NAME, target)
        if cached is not None:
            return cached

        table: dict[str, list[dict[str, Any]]] = {}
        for filename, violations in record.phpmd.violations.items():
            for violation in violations:
                table.setdefault(filename, []).append(
                    {
                        "priority": violation.priority,
                        "ruleset": RULESET_LABELS.get(violation.ruleset, violation.ruleset),
                        "rule": violation.rule,
                        "url": filter_url(violation.url),
                        "lines": f"{violation.begin_line}:{violation.end_line}",
                        "message": violation.message,
                    }
                )

        self.cache.set(table, "for_violation_table", self.NAME, target)
        return table


class DependencyParser:
    """Views over dependency results."""

    NAME = "dependency"

    def __init__(self, cache: ResultCache):
        self.cache = cache

    def is_result_empty(self, record: AnalysisRecord) -> bool:
        return record.dependency.is_empty()

    def for_component_summary(self, record: AnalysisRecord) -> dict[str, Any]:
        """Components (largest first), the edge list and the score."""
        if self.is_result_empty(record):
            raise EmptyResultError(self.NAME)

        target = analysis_target(record)
        cached = self.cache.get("for_component_summary", self.NAME, target)
        if cached is not None:
            return cached

        result = record.dependency
        components = sorted(
            (sorted(component) for component in result.components),
            key=lambda members: (-len(members), members),
        )
        edges = [
            (source, dest)
            for source, targets in sorted(result.graph.items())
            for dest in sorted(targets)
        ]
        summary = {
            "score": result.score,
            "module_count": len(result.modules),
            "components": [
                {"size": len(members), "members": members, "cyclic": len(members) > 1}
                for members in components
            ],
            "edges": edges,
        }

        self.cache.set(summary, "for_component_summary", self.NAME, target)
        return summary


# ── project and user views ────────────────────────────────────────

ANALYSIS_LABEL_FORMAT = "%Y-%m-%d %H:%M:%S"


def project_target(project_id: Any, records: Sequence[AnalysisRecord]) -> CacheTarget:
    user_id = next((r.user_id for r in records if r.user_id), "")
    return CacheTarget.for_project(user_id, project_id)


def records_version(records: Iterable[AnalysisRecord]) -> str:
    """Changes whenever an analysis is added to or removed from the history."""
    return json.dumps([record.id for record in records])


def phpmd_score(record: AnalysisRecord) -> int:
    """Sum of the priorities of every reported violation."""
    return sum(
        violation.priority
        for violations in record.phpmd.violations.values()
        for violation in violations
    )


class _ProjectHistory:
    """Project-level emptiness on top of a per-analysis ``is_result_empty``."""

    NAME: str

    def is_project_empty(self, records: Sequence[AnalysisRecord]) -> bool:
        """True unless at least one analysis has results of this kind."""
        return all(self.is_result_empty(record) for record in records)

    def _valid_records(self, records: Sequence[AnalysisRecord]) -> list[AnalysisRecord]:
        if self.is_project_empty(records):
            raise EmptyResultError(self.NAME)
        return [record for record in records if not self.is_result_empty(record)]


class ProjectPHPMDParser(_ProjectHistory, PHPMDParser):
    """PHPMD views over a project's analysis history."""

    NAME = "project-phpmd"

    def for_project_scores(
        self, project_id: Any, records: Sequence[AnalysisRecord]
    ) -> dict[str, int]:
        """PHPMD score of every analysis with PHPMD results, by analysis id."""
        valid = self._valid_records(records)
        target = project_target(project_id, records)
        version = records_version(records)
        cached = self.cache.get("for_project_scores", self.NAME, target, version)
        if cached is not None:
            return cached

        scores = {record.id: phpmd_score(record) for record in valid}
        self.cache.set(scores, "for_project_scores", self.NAME, target, version)
        return scores

    def for_project_validation(
        self, project_id: Any, records: Sequence[AnalysisRecord]
    ) -> list[str]:
        """Ids of the analyses with PHPMD results."""
        return [record.id for record in self._valid_records(records)]


class ProjectDependencyParser(_ProjectHistory, DependencyParser):
    """Dependency views over a project's analysis history."""

    NAME = "project-dependency"

    def for_project_scores(
        self, project_id: Any, records: Sequence[AnalysisRecord]
    ) -> dict[str, float]:
        """Coupling score of every analysis with dependency results, by analysis id."""
        valid = self._valid_records(records)
        target = project_target(project_id, records)
        version = records_version(records)
        cached = self.cache.get("for_project_scores", self.NAME, target, version)
        if cached is not None:
            return cached

        scores = {record.id: record.dependency.score for record in valid}
        self.cache.set(scores, "for_project_scores", self.NAME, target, version)
        return scores

    def for_project_validation(
        self, project_id: Any, records: Sequence[AnalysisRecord]
    ) -> list[str]:
        """Ids of the analyses with dependency results."""
        return [record.id for record in self._valid_records(records)]


class ProjectParser:
    """Summary of a project's whole analysis history.

    ``is_analyzed`` is read from the run lock when one is given, so it is
    never cached.
    """

    NAME = "project"

    def __init__(
        self,
        cache: ResultCache,
        phpmd_parser: Optional[ProjectPHPMDParser] = None,
        dependency_parser: Optional[ProjectDependencyParser] = None,
        run_lock: Optional[RunLock] = None,
    ):
        self.cache = cache
        self.phpmd_parser = phpmd_parser or ProjectPHPMDParser(cache)
        self.dependency_parser = dependency_parser or ProjectDependencyParser(cache)
        self.run_lock = run_lock

    def is_result_empty(self, records: Sequence[AnalysisRecord]) -> bool:
        return not records

    def is_analyzing(self, project_id: Any) -> bool:
        return self.run_lock is not None and self.run_lock.is_held(str(project_id))

    @staticmethod
    def _or_default(view: Callable[[], Any], default: Any) -> Any:
        # A project without valid results of one kind still gets a summary
        try:
            return view()
        except EmptyResultError:
            return default

    def for_project_summary(
        self, project_id: Any, records: Sequence[AnalysisRecord]
    ) -> dict[str, Any]:
        """Per-analysis labels, validity flags and scores, newest analysis first.

        Raises:
            EmptyResultError: If the project has no analyses at all
        """
        if self.is_result_empty(records):
            raise EmptyResultError(self.NAME)

        valid_phpmd = self._or_default(
            lambda: self.phpmd_parser.for_project_validation(project_id, records), []
        )
        valid_dependency = self._or_default(
            lambda: self.dependency_parser.for_project_validation(project_id, records), []
        )
        phpmd_scores = self._or_default(
            lambda: self.phpmd_parser.for_project_scores(project_id, records), {}
        )
        dependency_scores = self._or_default(
            lambda: self.dependency_parser.for_project_scores(project_id, records), {}
        )

        analyses = {}
        for record in sorted(records, key=lambda r: r.created, reverse=True):
            analyses[record.id] = {
                "label": record.created.strftime(ANALYSIS_LABEL_FORMAT),
                "is_valid_phpmd_analysis": record.id in valid_phpmd,
                "is_valid_dependency_analysis": record.id in valid_dependency,
                "phpmd_score": phpmd_scores.get(record.id),
                "dependency_score": dependency_scores.get(record.id),
            }

        return {
            "project_id": str(project_id),
            "is_analyzed": self.is_analyzing(project_id),
            "has_valid_phpmd_analyses": bool(valid_phpmd),
            "has_valid_dependency_analyses": bool(valid_dependency),
            "analyses": analyses,
        }

    def for_project_notifier(
        self, project_id: Any, records: Sequence[AnalysisRecord]
    ) -> dict[str, bool]:
        """Whether a run of the project is in progress."""
        if self.is_result_empty(records):
            raise EmptyResultError(self.NAME)
        return {"analyzing": self.is_analyzing(project_id)}


class UserParser:
    """Summary of all projects owned by one user."""

    NAME = "user"

    def __init__(self, cache: ResultCache, project_parser: Optional[ProjectParser] = None):
        self.cache = cache
        self.project_parser = project_parser or ProjectParser(cache)

    def for_user_summary(
        self,
        user_id: Any,
        projects: Sequence[Project],
        history: Mapping[str, Sequence[AnalysisRecord]],
    ) -> dict[str, Any]:
        """Name, empty flag and analyzing flag of each of the user's projects.

        ``history`` maps a project id to its analysis records. A user
        without projects gets an empty summary.
        """
        target = CacheTarget.for_user(user_id)
        version = json.dumps(
            [
                [str(project.id), project.name, [r.id for r in history.get(str(project.id), ())]]
                for project in projects
            ]
        )
        cached = self.cache.get("for_user_summary", self.NAME, target, version)
        if cached is None:
            cached = {
                str(project.id): {
                    "name": project.name,
                    "is_empty": self.project_parser.is_result_empty(
                        history.get(str(project.id), ())
                    ),
                }
                for project in projects
            }
            self.cache.set(cached, "for_user_summary", self.NAME, target, version)

        return {
            "projects": {
                project_id: {**entry, "is_analyzed": self.project_parser.is_analyzing(project_id)}
                for project_id, entry in cached.items()
            }
        }
