"""Result cache and read-side parser exceptions."""

from typing import Any

from .base import SanitizerError


class CacheError(SanitizerError):
    """Base class for result cache errors."""
    pass


class InvalidCacheTargetError(CacheError):
    """Raised when a cache target is not a user, project or analysis target."""

    def __init__(self, target: Any):
        super().__init__(
            "The target must be a user, project or analysis target",
            details={"target_type": type(target).__name__},
        )
        self.target = target


class ParserError(SanitizerError):
    """Base class for read-side result parser errors."""
    pass


class EmptyResultError(ParserError):
    """Raised when a parser is handed an analysis whose regarded result is empty."""

    def __init__(self, parser: str):
        super().__init__(
            f"Analysis with empty {parser} results provided",
            details={"parser": parser},
        )
        self.parser = parser
