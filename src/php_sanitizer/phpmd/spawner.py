"""Process spawning strategies for external tools.

The platform is looked at once, by ``default_spawner()``, when an adapter
is built. Callers never branch on the operating system themselves.
"""

from __future__ import annotations

import os
import shutil
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Sequence

from ..logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProcessResult:
    """Exit status and captured output of a finished process."""

    returncode: int
    stdout: str = ""
    stderr: str = ""


class ProcessSpawner(ABC):
    """Runs a command to completion and reports its exit status."""

    @abstractmethod
    def run(self, argv: Sequence[str], timeout: float) -> ProcessResult:
        """Run ``argv`` and wait for it.

        Raises:
            FileNotFoundError: If the executable does not exist
            subprocess.TimeoutExpired: If the process outlives ``timeout``
        """

    def _run(self, argv: Sequence[str], timeout: float, **kwargs) -> ProcessResult:
        logger.debug("Running %s", " ".join(argv))
        completed = subprocess.run(
            list(argv),
            capture_output=True,
            text=True,
            timeout=timeout,
            **kwargs,
        )
        return ProcessResult(
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )


class PosixProcessSpawner(ProcessSpawner):
    """Runs commands directly in their own session."""

    def run(self, argv: Sequence[str], timeout: float) -> ProcessResult:
        return self._run(argv, timeout, start_new_session=True)


class WindowsProcessSpawner(ProcessSpawner):
    """Runs commands without a console window.

    Batch wrappers (``phpmd.bat``) cannot be executed directly and are
    routed through ``cmd /c``.
    """

    def run(self, argv: Sequence[str], timeout: float) -> ProcessResult:
        argv = list(argv)
        executable = shutil.which(argv[0]) or argv[0]
        if executable.lower().endswith((".bat", ".cmd")):
            argv = ["cmd", "/c", executable, *argv[1:]]
        creationflags = getattr(subprocess, "CREATE_NO_WINDOW", 0)
        return self._run(argv, timeout, creationflags=creationflags)


def default_spawner() -> ProcessSpawner:
    """Pick the spawner for the running platform."""
    if os.name == "nt":
        return WindowsProcessSpawner()
    return PosixProcessSpawner()
