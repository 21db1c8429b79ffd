"""Analysis run exceptions: project lookup, workspace, external tool."""

from pathlib import Path
from typing import Optional

from .base import SanitizerError


class AnalysisError(SanitizerError):
    """Base class for analysis-related errors."""
    pass


class ProjectNotFoundError(AnalysisError):
    """Raised when a project id does not resolve to a project."""

    def __init__(self, project_id: str):
        super().__init__(
            "The id of an existing project must be provided",
            details={"project_id": str(project_id)},
        )
        self.project_id = project_id


class MissingSourceError(AnalysisError):
    """Raised when the project's source archive no longer exists."""

    def __init__(self, archive_path: Path):
        super().__init__(
            f"Project source archive not found: {archive_path}",
            details={"archive_path": str(archive_path)},
        )
        self.archive_path = archive_path


class ConcurrentAnalysisError(AnalysisError):
    """Raised when an analysis is started on a project that is already being analyzed."""

    def __init__(self, project_id: str, holder: Optional[str] = None):
        details = {"project_id": str(project_id)}
        if holder:
            details["holder"] = holder
        super().__init__(
            f"An analysis is already running for project {project_id}",
            details=details,
        )
        self.project_id = project_id
        self.holder = holder


class WorkspaceError(AnalysisError):
    """Raised when a workspace directory or file cannot be created or populated."""

    def __init__(self, path: Path, reason: str):
        super().__init__(
            f"Workspace failure at {path}",
            details={"path": str(path), "reason": reason},
        )
        self.path = path
        self.reason = reason


class ExternalToolError(AnalysisError):
    """Raised when the external code scanner fails or cannot be run."""

    def __init__(self, tool: str, reason: str, exit_status: Optional[int] = None):
        details = {"tool": tool, "reason": reason}
        if exit_status is not None:
            details["exit_status"] = exit_status
        super().__init__(f"{tool} failed: {reason}", details=details)
        self.tool = tool
        self.reason = reason
        self.exit_status = exit_status


class ReportParseError(ExternalToolError):
    """Raised when the external scanner's report cannot be parsed."""

    def __init__(self, tool: str, report_path: Path, reason: str):
        super().__init__(tool, f"unreadable report {report_path}: {reason}")
        self.report_path = report_path
