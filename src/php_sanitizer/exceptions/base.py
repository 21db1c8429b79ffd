"""Root of the PHP Sanitizer exception hierarchy."""

from typing import Any, Mapping, Optional


class SanitizerError(Exception):
    """Base exception for all PHP Sanitizer errors.

    ``details`` holds the identifiers a log reader needs (project id, path,
    tool, exit status). Values are kept as strings.
    """

    def __init__(self, message: str, details: Optional[Mapping[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = {key: str(value) for key, value in (details or {}).items()}

    def __str__(self) -> str:
        if not self.details:
            return self.message
        context = ", ".join(f"{key}={value}" for key, value in self.details.items())
        return f"{self.message} ({context})"
