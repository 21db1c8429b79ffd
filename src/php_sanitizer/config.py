"""Configuration loading and management for PHP Sanitizer.

Configuration sources are merged in priority order:
    1. Defaults (defined in SanitizerConfig)
    2. Global config (~/.php-sanitizer.toml)
    3. Project config (./php-sanitizer.toml)
    4. Explicit config file
    5. Environment variables (PHP_SANITIZER_* prefix)
    6. Direct overrides (passed as kwargs)

Example:
    >>> config = load_config(workers=2, phpmd_timeout_seconds=120)
    >>> config.workers
    2
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Callable, Iterator, List, Literal, Optional

from .exceptions import ConfigFileError, ConfigurationError, InvalidConfigError

Verbosity = Literal["quiet", "normal", "verbose"]

ENV_PREFIX = "PHP_SANITIZER_"

# Rule sets shipped with PHPMD.
DEFAULT_PHPMD_RULES = [
    "cleancode",
    "codesize",
    "controversial",
    "design",
    "naming",
    "unusedcode",
]


@dataclass(frozen=True)
class SanitizerConfig:
    """Configuration for analysis runs.

    Attributes:
        Workspace:
            workspace_dir: Root under which per-run temp directories, PHPMD
                report files and run leases are created
            results_dir: Directory the JSON result sink writes to

        Dependency analysis:
            source_extensions: File extensions scanned for declarations/usages
            workers: Parallel module scan workers (None = auto-detect)

        PHPMD:
            phpmd_command: Command prefix used to launch PHPMD
            phpmd_rules: Rule sets passed to PHPMD (comma-joined)
            phpmd_report_format: Report format requested from PHPMD
            phpmd_timeout_seconds: Hard limit for one PHPMD invocation

        Orchestration:
            parallel_analyzers: Run dependency analysis and PHPMD concurrently

        Caching:
            cache_enabled: Enable the read-side result cache
            cache_dir: Directory for cache storage

        Output control:
            verbosity: Logging verbosity level
    """

    workspace_dir: str = field(
        default_factory=lambda: os.path.join(tempfile.gettempdir(), "php-sanitizer")
    )
    results_dir: str = ".php-sanitizer/results"

    source_extensions: List[str] = field(default_factory=lambda: [".php", ".inc"])
    workers: Optional[int] = None

    phpmd_command: List[str] = field(default_factory=lambda: ["phpmd"])
    phpmd_rules: List[str] = field(default_factory=lambda: list(DEFAULT_PHPMD_RULES))
    phpmd_report_format: str = "xml"
    phpmd_timeout_seconds: int = 600

    parallel_analyzers: bool = False

    cache_enabled: bool = True
    cache_dir: str = ".php-sanitizer/cache"

    verbosity: Verbosity = "normal"

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if not self.workspace_dir:
            raise InvalidConfigError("workspace_dir", self.workspace_dir, "must not be empty")

        if not self.source_extensions:
            raise InvalidConfigError(
                "source_extensions", self.source_extensions, "at least one extension required"
            )
        for ext in self.source_extensions:
            if not ext.startswith("."):
                raise InvalidConfigError("source_extensions", ext, "extensions must start with '.'")

        if self.workers is not None and self.workers < 1:
            raise InvalidConfigError("workers", self.workers, "must be at least 1")

        if not self.phpmd_command:
            raise InvalidConfigError("phpmd_command", self.phpmd_command, "must not be empty")
        if not self.phpmd_rules:
            raise InvalidConfigError("phpmd_rules", self.phpmd_rules, "at least one rule set required")
        # The adapter only understands the XML report.
        if self.phpmd_report_format != "xml":
            raise InvalidConfigError(
                "phpmd_report_format", self.phpmd_report_format, "only 'xml' is supported"
            )
        if self.phpmd_timeout_seconds < 1:
            raise InvalidConfigError(
                "phpmd_timeout_seconds", self.phpmd_timeout_seconds, "must be at least 1"
            )

        if self.verbosity not in ("quiet", "normal", "verbose"):
            raise InvalidConfigError("verbosity", self.verbosity, "expected quiet/normal/verbose")

    @property
    def workspace_path(self) -> Path:
        """Workspace root as a Path."""
        return Path(self.workspace_dir)

    @property
    def max_workers(self) -> int:
        """Resolved worker count for module scanning."""
        if self.workers is not None:
            return self.workers
        return min(32, (os.cpu_count() or 1) + 4)


def _parse_bool(value: str) -> bool:
    lower = value.strip().lower()
    if lower in ("1", "true", "yes", "on"):
        return True
    if lower in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"expected a boolean, got {value!r}")


def _parse_list(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def _parse_optional_int(value: str) -> Optional[int]:
    value = value.strip()
    if value.lower() in ("", "auto", "none"):
        return None
    return int(value)


# Environment variable readers, by field. Fields not listed are plain strings.
_ENV_PARSERS: dict[str, Callable[[str], Any]] = {
    "source_extensions": _parse_list,
    "workers": _parse_optional_int,
    "phpmd_command": _parse_list,
    "phpmd_rules": _parse_list,
    "phpmd_timeout_seconds": int,
    "parallel_analyzers": _parse_bool,
    "cache_enabled": _parse_bool,
}


def _config_files(config_file: Optional[Path]) -> Iterator[tuple[Path, bool]]:
    """Config files in merge order, each with whether it must exist."""
    yield Path.home() / ".php-sanitizer.toml", False
    yield Path.cwd() / "php-sanitizer.toml", False
    if config_file is not None:
        yield Path(config_file), True


def load_config(config_file: Optional[Path] = None, **overrides) -> SanitizerConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Values from command line flags; None means "not given".
            ``verbose`` / ``quiet`` booleans are mapped onto ``verbosity``.

    Returns:
        Validated SanitizerConfig instance

    Raises:
        ConfigurationError: If a config file is missing, unreadable or holds
            unknown keys, or an environment variable cannot be parsed
    """
    merged: dict[str, Any] = {}

    for path, required in _config_files(config_file):
        if not path.exists():
            if required:
                raise ConfigFileError(path, "not found")
            continue
        try:
            merged.update(_load_toml_file(path))
        except Exception as e:
            raise ConfigFileError(path, str(e))

    merged.update(_load_env_vars())

    verbose = overrides.pop("verbose", False)
    quiet = overrides.pop("quiet", False)
    if quiet:
        overrides["verbosity"] = "quiet"
    elif verbose:
        overrides["verbosity"] = "verbose"

    merged.update({key: value for key, value in overrides.items() if value is not None})

    try:
        return SanitizerConfig(**merged)
    except TypeError as e:
        # Unknown key
        raise ConfigurationError(f"Invalid configuration: {e}")


def _load_env_vars() -> dict[str, Any]:
    """Read PHP_SANITIZER_<FIELD> environment variables.

    List fields are comma-separated. ``PHP_SANITIZER_WORKERS=auto`` resets
    the worker count to auto-detection.
    """
    values: dict[str, Any] = {}
    for config_field in fields(SanitizerConfig):
        env_key = f"{ENV_PREFIX}{config_field.name.upper()}"
        raw = os.environ.get(env_key)
        if raw is None:
            continue
        parser = _ENV_PARSERS.get(config_field.name, str)
        try:
            values[config_field.name] = parser(raw)
        except ValueError as e:
            raise ConfigurationError(f"Invalid {env_key}: {e}")
    return values


def _load_toml_file(path: Path) -> dict:
    """Load TOML file and return parsed dict."""
    try:
        import tomllib
    except ModuleNotFoundError:
        import tomli as tomllib  # type: ignore

    with open(path, "rb") as f:
        return tomllib.load(f)
