"""Collaborator adapters: where projects come from and where results go.

The orchestrator depends only on the ``ProjectResolver`` and ``ResultSink``
protocols. The implementations here cover the command line (a single
project given by its archive, results written as JSON) and tests.
"""

from __future__ import annotations

import hashlib
import json
import os
import re
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Protocol

from .logging_config import get_logger
from .models import AnalysisRecord

logger = get_logger(__name__)

_UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9_.-]")


def _file_stem(project_id: str) -> str:
    """Project id usable as a single file name component.

    Ids that need rewriting get a short hash suffix so that ``a/b`` and
    ``a_b`` still end up in different files.
    """
    project_id = str(project_id)
    safe_id = _UNSAFE_CHARS_RE.sub("_", project_id)
    if safe_id == project_id:
        return safe_id
    digest = hashlib.md5(project_id.encode("utf-8")).hexdigest()[:8]
    return f"{safe_id}_{digest}"


@dataclass(frozen=True)
class Project:
    """What the orchestrator needs to know about a project."""

    id: str
    archive_path: Path
    modules_pattern: str
    user_id: Optional[str] = None
    name: str = ""


class ProjectResolver(Protocol):
    def resolve(self, project_id: str) -> Optional[Project]:
        """Return the project with the given id, or None."""
        ...


class ResultSink(Protocol):
    def save(self, record: AnalysisRecord) -> None:
        """Persist or forward the results of one run."""
        ...


class StaticProjectResolver:
    """Resolves projects from an in-memory mapping."""

    def __init__(self, projects: Iterable[Project] = ()):
        self._projects = {str(p.id): p for p in projects}

    def add(self, project: Project) -> None:
        self._projects[str(project.id)] = project

    def resolve(self, project_id: str) -> Optional[Project]:
        return self._projects.get(str(project_id))


class MemoryResultSink:
    """Keeps saved records in a list."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.records: list[AnalysisRecord] = []

    def save(self, record: AnalysisRecord) -> None:
        with self._lock:
            self.records.append(record)

    def for_project(self, project_id: str) -> list[AnalysisRecord]:
        with self._lock:
            return [r for r in self.records if r.project_id == str(project_id)]


class JsonResultSink:
    """Writes every record to ``<results_dir>/<project>-<timestamp>.json``."""

    def __init__(self, results_dir: str | Path):
        self.results_dir = Path(results_dir)
        self.last_path: Optional[Path] = None

    def path_for(self, record: AnalysisRecord) -> Path:
        stamp = record.created.strftime("%Y%m%dT%H%M%S")
        return self.results_dir / f"{_file_stem(record.project_id)}-{stamp}-{record.id[:8]}.json"

    def save(self, record: AnalysisRecord) -> None:
        self.results_dir.mkdir(parents=True, exist_ok=True)
        target = self.path_for(record)

        # Write to a temp file first, then replace, so readers never see partial JSON
        fd, tmp_name = tempfile.mkstemp(dir=self.results_dir, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(record.to_dict(), f, indent=2)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        self.last_path = target
        logger.debug("Results for project %s written to %s", record.project_id, target)

    def load(self, path: str | Path) -> AnalysisRecord:
        return AnalysisRecord.from_dict(json.loads(Path(path).read_text(encoding="utf-8")))
