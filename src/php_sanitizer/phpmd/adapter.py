"""Run PHPMD against a source tree and collect its violations."""

from __future__ import annotations

import os
import subprocess
import tempfile
from pathlib import Path
from typing import Optional, Sequence

from ..exceptions import ExternalToolError, WorkspaceError
from ..logging_config import get_logger
from ..models import ScanResult
from .report import TOOL_NAME, parse_report
from .spawner import ProcessSpawner, default_spawner

logger = get_logger(__name__)

# PHPMD exit statuses
EXIT_NO_VIOLATIONS = 0
EXIT_ERROR = 1
EXIT_VIOLATIONS = 2


class PHPMDAnalyzer:
    """Adapter around the PHPMD command line tool.

    Usage::

        analyzer = PHPMDAnalyzer(workspace_dir, ["phpmd"], ["codesize", "design"])
        result = analyzer.analyze("/tmp/run/project")
    """

    def __init__(
        self,
        workspace_dir: str | Path,
        command: Sequence[str] = ("phpmd",),
        rules: Sequence[str] = ("cleancode", "codesize", "design", "naming", "unusedcode"),
        report_format: str = "xml",
        timeout_seconds: float = 600,
        spawner: Optional[ProcessSpawner] = None,
    ):
        self.workspace_dir = Path(workspace_dir)
        self.command = list(command)
        self.rules = list(rules)
        self.report_format = report_format
        self.timeout_seconds = timeout_seconds
        self.spawner = spawner or default_spawner()

    def _create_report_file(self) -> Path:
        """Create the temporary file PHPMD writes its report to."""
        try:
            self.workspace_dir.mkdir(parents=True, exist_ok=True)
            fd, name = tempfile.mkstemp(prefix="phpmd-", suffix=".xml", dir=self.workspace_dir)
        except OSError as e:
            raise WorkspaceError(self.workspace_dir, f"cannot create PHPMD report file: {e}")
        os.close(fd)
        return Path(name)

    def build_command(self, source_dir: str | Path, report_file: str | Path) -> list[str]:
        return [
            *self.command,
            str(source_dir),
            self.report_format,
            ",".join(self.rules),
            "--reportfile",
            str(report_file),
        ]

    def _invoke(self, source_dir: Path, report_file: Path) -> bool:
        """Run PHPMD. Returns True when it reported violations."""
        argv = self.build_command(source_dir, report_file)
        try:
            result = self.spawner.run(argv, timeout=self.timeout_seconds)
        except FileNotFoundError as e:
            raise ExternalToolError(TOOL_NAME, f"executable not found: {e}")
        except subprocess.TimeoutExpired:
            raise ExternalToolError(
                TOOL_NAME, f"timed out after {self.timeout_seconds}s"
            )

        if result.returncode == EXIT_NO_VIOLATIONS:
            return False
        if result.returncode == EXIT_ERROR:
            raise ExternalToolError(
                TOOL_NAME,
                f"internal error: {result.stderr.strip() or 'no output'}",
                exit_status=result.returncode,
            )
        if result.returncode != EXIT_VIOLATIONS:
            raise ExternalToolError(
                TOOL_NAME,
                f"unexpected exit status: {result.stderr.strip() or 'no output'}",
                exit_status=result.returncode,
            )
        return True

    def analyze(self, source_dir: str | Path) -> ScanResult:
        """Scan the project at ``source_dir``.

        Raises:
            WorkspaceError: If the report file cannot be created
            ExternalToolError: If PHPMD fails, times out, or writes an unreadable report
        """
        source_dir = Path(source_dir).resolve()
        report_file: Optional[Path] = None
        try:
            report_file = self._create_report_file()
            if not self._invoke(source_dir, report_file):
                logger.debug("PHPMD found no violations in %s", source_dir)
                return ScanResult.empty_result()

            result = parse_report(report_file, source_dir)
            logger.debug(
                "PHPMD reported %d violations in %d files",
                result.violation_count,
                len(result.violations),
            )
            return result
        finally:
            if report_file is not None:
                try:
                    report_file.unlink()
                except FileNotFoundError:
                    pass
