"""The analysis orchestrator.

One call to ``Analyzer.run_analysis`` is one run::

    IDLE -> PREPARING -> RUNNING -> SAVING -> CLEANING_UP -> DONE
                 \\___________\\_________\\___-> CLEANING_UP -> FAILED

Cleanup (workspace removal, lease release, completion event) happens on
every path once a run has started. Errors raised while preparing, running
or saving are logged and reported in the returned ``RunOutcome``; they are
not raised to the caller. The one exception is ``ConcurrentAnalysisError``:
a run is refused before it starts when the project is already being
analyzed.
"""

from __future__ import annotations

import shutil
import tempfile
import zipfile
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from .config import SanitizerConfig
from .dependency.analyzer import DependencyAnalyzer
from .events import AnalysisEndEvent, AnalysisEvents, EventDispatcher
from .exceptions import MissingSourceError, ProjectNotFoundError, WorkspaceError
from .locking import RunLock
from .logging_config import get_logger
from .models import AnalysisRecord, DependencyResult, ScanResult
from .phpmd.adapter import PHPMDAnalyzer
from .phpmd.spawner import ProcessSpawner
from .sinks import Project, ProjectResolver, ResultSink

logger = get_logger(__name__)


class RunState(Enum):
    IDLE = "idle"
    PREPARING = "preparing"
    RUNNING = "running"
    SAVING = "saving"
    CLEANING_UP = "cleaning_up"
    DONE = "done"
    FAILED = "failed"


@dataclass
class RunOutcome:
    """What happened during one run."""

    project_id: str
    state: RunState = RunState.IDLE
    record: Optional[AnalysisRecord] = None
    error: Optional[BaseException] = None
    transitions: list[RunState] = field(default_factory=lambda: [RunState.IDLE])

    @property
    def succeeded(self) -> bool:
        return self.state is RunState.DONE

    def advance(self, state: RunState) -> None:
        self.state = state
        self.transitions.append(state)


def extract_archive(archive_path: Path, destination: Path) -> None:
    """Unpack a ZIP archive, keeping its directory structure.

    Raises:
        WorkspaceError: If the archive is not a valid ZIP or a member would
            land outside ``destination``
    """
    root = destination.resolve()
    try:
        with zipfile.ZipFile(archive_path) as archive:
            for member in archive.namelist():
                target = (root / member).resolve()
                if target != root and root not in target.parents:
                    raise WorkspaceError(destination, f"archive member escapes workspace: {member}")
            archive.extractall(root)
    except zipfile.BadZipFile as e:
        raise WorkspaceError(destination, f"invalid ZIP archive {archive_path}: {e}")
    except OSError as e:
        raise WorkspaceError(destination, f"cannot unpack {archive_path}: {e}")


class Analyzer:
    """Runs both analyzers over a project's archived sources and saves the results."""

    def __init__(
        self,
        workspace_dir: str | Path,
        resolver: ProjectResolver,
        sink: ResultSink,
        dependency_analyzer: DependencyAnalyzer,
        phpmd_analyzer: PHPMDAnalyzer,
        dispatcher: Optional[EventDispatcher] = None,
        run_lock: Optional[RunLock] = None,
        parallel_analyzers: bool = False,
    ):
        self.workspace_dir = Path(workspace_dir)
        self.resolver = resolver
        self.sink = sink
        self.dependency_analyzer = dependency_analyzer
        self.phpmd_analyzer = phpmd_analyzer
        self.dispatcher = dispatcher or EventDispatcher()
        self.run_lock = run_lock or RunLock(self.workspace_dir)
        self.parallel_analyzers = parallel_analyzers

    @classmethod
    def from_config(
        cls,
        config: SanitizerConfig,
        resolver: ProjectResolver,
        sink: ResultSink,
        dispatcher: Optional[EventDispatcher] = None,
        spawner: Optional[ProcessSpawner] = None,
    ) -> Analyzer:
        """Wire an Analyzer from configuration."""
        return cls(
            workspace_dir=config.workspace_path,
            resolver=resolver,
            sink=sink,
            dependency_analyzer=DependencyAnalyzer(
                extensions=config.source_extensions,
                max_workers=config.max_workers,
            ),
            phpmd_analyzer=PHPMDAnalyzer(
                workspace_dir=config.workspace_path,
                command=config.phpmd_command,
                rules=config.phpmd_rules,
                report_format=config.phpmd_report_format,
                timeout_seconds=config.phpmd_timeout_seconds,
                spawner=spawner,
            ),
            dispatcher=dispatcher,
            parallel_analyzers=config.parallel_analyzers,
        )

    # ── entry point ───────────────────────────────────────────────

    def run_analysis(self, project_id: str) -> RunOutcome:
        """Analyze the project with the given id and save the results.

        Raises:
            ConcurrentAnalysisError: If a run for this project is in progress
        """
        outcome = RunOutcome(project_id=str(project_id))

        project = self._requirements(outcome)
        if project is None:
            return outcome

        try:
            token = self.run_lock.acquire(project.id)
        except WorkspaceError as e:
            logger.error("Cannot start analysis of project %s: %s", project.id, e)
            outcome.error = e
            outcome.advance(RunState.FAILED)
            self._signal_end(project, succeeded=False)
            return outcome

        self._execute(project, outcome, token)
        return outcome

    def _requirements(self, outcome: RunOutcome) -> Optional[Project]:
        """Resolve the project. Logs and returns None if it doesn't exist."""
        try:
            project = self.resolver.resolve(outcome.project_id)
            if project is None:
                raise ProjectNotFoundError(outcome.project_id)
        except Exception as e:
            logger.error("Cannot analyze project %s: %s", outcome.project_id, e)
            outcome.error = e
            outcome.advance(RunState.FAILED)
            return None
        return project

    def _execute(self, project: Project, outcome: RunOutcome, token: str) -> None:
        project_dir: Optional[Path] = None
        try:
            outcome.advance(RunState.PREPARING)
            project_dir = self._prepare(project)

            outcome.advance(RunState.RUNNING)
            dependency_result, phpmd_result = self._run_analyzers(project, project_dir)

            outcome.advance(RunState.SAVING)
            outcome.record = self._save_results(project, dependency_result, phpmd_result)
        except Exception as e:
            logger.exception("Analysis of project %s failed", project.id)
            outcome.error = e
        finally:
            outcome.advance(RunState.CLEANING_UP)
            self._clean_up(project, project_dir, token, succeeded=outcome.error is None)
            outcome.advance(RunState.DONE if outcome.error is None else RunState.FAILED)

    # ── stages ────────────────────────────────────────────────────

    def _prepare(self, project: Project) -> Path:
        """Unpack the project's archive into a fresh temporary directory."""
        archive = Path(project.archive_path)
        if not archive.is_file():
            raise MissingSourceError(archive)

        try:
            self.workspace_dir.mkdir(parents=True, exist_ok=True)
            project_dir = Path(tempfile.mkdtemp(prefix="run-", dir=self.workspace_dir))
        except OSError as e:
            raise WorkspaceError(self.workspace_dir, f"cannot create run directory: {e}")

        try:
            extract_archive(archive, project_dir)
        except Exception:
            shutil.rmtree(project_dir, ignore_errors=True)
            raise

        logger.debug("Project %s unpacked into %s", project.id, project_dir)
        return project_dir

    def _run_analyzers(
        self, project: Project, project_dir: Path
    ) -> tuple[DependencyResult, ScanResult]:
        if not self.parallel_analyzers:
            dependency_result = self.dependency_analyzer.analyze(project_dir, project.modules_pattern)
            phpmd_result = self.phpmd_analyzer.analyze(project_dir)
            return dependency_result, phpmd_result

        # Leaving the with-block waits for both, even when one of them failed
        with ThreadPoolExecutor(max_workers=2) as executor:
            dependency_future = executor.submit(
                self.dependency_analyzer.analyze, project_dir, project.modules_pattern
            )
            phpmd_future = executor.submit(self.phpmd_analyzer.analyze, project_dir)
            return dependency_future.result(), phpmd_future.result()

    def _save_results(
        self, project: Project, dependency_result: DependencyResult, phpmd_result: ScanResult
    ) -> AnalysisRecord:
        record = AnalysisRecord(
            project_id=project.id,
            user_id=project.user_id,
            dependency=dependency_result,
            phpmd=phpmd_result,
        )
        self.sink.save(record)
        logger.info(
            "Saved analysis %s of project %s: score %.3f, %d violations",
            record.id,
            project.id,
            dependency_result.score,
            phpmd_result.violation_count,
        )
        return record

    def _clean_up(
        self, project: Project, project_dir: Optional[Path], token: str, succeeded: bool
    ) -> None:
        if project_dir is not None:
            try:
                shutil.rmtree(project_dir)
            except OSError as e:
                logger.error("Cannot remove run directory %s: %s", project_dir, e)

        try:
            self.run_lock.release(project.id, token)
        except OSError as e:
            logger.error("Cannot release lease of project %s: %s", project.id, e)

        self._signal_end(project, succeeded)

    def _signal_end(self, project: Project, succeeded: bool) -> None:
        self.dispatcher.dispatch(
            AnalysisEvents.END, AnalysisEndEvent(project_id=project.id, succeeded=succeeded)
        )
