"""Configuration exceptions."""

from pathlib import Path
from typing import Any

from .base import SanitizerError


class ConfigurationError(SanitizerError):
    """Base class for configuration-related errors."""

    pass


class ConfigFileError(ConfigurationError):
    """Raised when a config file is missing or is not valid TOML."""

    def __init__(self, path: Path, reason: str):
        super().__init__(f"Config file {path}: {reason}", details={"path": path})
        self.path = path
        self.reason = reason


class InvalidConfigError(ConfigurationError):
    """Raised when a configuration field holds an unusable value."""

    def __init__(self, key: str, value: Any, reason: str):
        super().__init__(f"Invalid {key} ({reason})", details={"key": key, "value": value})
        self.key = key
        self.value = value
        self.reason = reason
