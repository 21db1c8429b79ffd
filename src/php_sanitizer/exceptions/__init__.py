"""Exception hierarchy for PHP Sanitizer."""

from .analysis import (
    AnalysisError,
    ConcurrentAnalysisError,
    ExternalToolError,
    MissingSourceError,
    ProjectNotFoundError,
    ReportParseError,
    WorkspaceError,
)
from .base import SanitizerError
from .cache import CacheError, EmptyResultError, InvalidCacheTargetError, ParserError
from .config import ConfigFileError, ConfigurationError, InvalidConfigError

__all__ = [
    "SanitizerError",
    "AnalysisError",
    "ProjectNotFoundError",
    "MissingSourceError",
    "ConcurrentAnalysisError",
    "WorkspaceError",
    "ExternalToolError",
    "ReportParseError",
    "CacheError",
    "InvalidCacheTargetError",
    "ParserError",
    "EmptyResultError",
    "ConfigurationError",
    "ConfigFileError",
    "InvalidConfigError",
]
