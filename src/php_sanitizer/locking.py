"""Per-project run leases.

A lease is a small JSON file created atomically with ``O_CREAT | O_EXCL``
under ``<workspace>/.locks/``. Creating it is the compare-and-swap: exactly
one caller wins, every other caller sees the file and is rejected. Release
only removes a lease whose token matches the caller's.

The lease is separate from any "analyzing" flag a collaborator shows to
users; that display status is driven by the completion event.
"""

from __future__ import annotations

import hashlib
import json
import os
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .exceptions import ConcurrentAnalysisError, WorkspaceError
from .logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class Lease:
    """Ownership record of one project's run."""

    project_id: str
    token: str
    pid: int
    acquired: str

    def to_dict(self) -> dict:
        return {
            "project_id": self.project_id,
            "token": self.token,
            "pid": self.pid,
            "acquired": self.acquired,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Lease:
        return cls(
            project_id=str(data["project_id"]),
            token=str(data["token"]),
            pid=int(data["pid"]),
            acquired=str(data["acquired"]),
        )


def _is_process_alive(pid: int) -> bool:
    """Check whether a process with the given PID exists."""
    try:
        os.kill(pid, 0)
        return True
    except ProcessLookupError:
        return False
    except PermissionError:
        # Process exists but belongs to another user
        return True
    except OSError:
        return False


class RunLock:
    """File based run leases, one per project."""

    def __init__(self, workspace_dir: str | Path):
        self.lock_dir = Path(workspace_dir) / ".locks"

    def _lease_path(self, project_id: str) -> Path:
        # One file per distinct id, whatever characters the id contains
        digest = hashlib.md5(str(project_id).encode("utf-8")).hexdigest()
        return self.lock_dir / f"{digest}.lock"

    def read(self, project_id: str) -> Optional[Lease]:
        """Return the current lease, or None if the project is free.

        An unreadable lease file is still reported as held (token ``""``),
        since its owner may be writing it.
        """
        path = self._lease_path(project_id)
        try:
            data = json.loads(path.read_text())
            return Lease.from_dict(data)
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError, TypeError):
            return Lease(project_id=str(project_id), token="", pid=-1, acquired="")

    def is_held(self, project_id: str) -> bool:
        return self._lease_path(project_id).exists()

    def acquire(self, project_id: str) -> str:
        """Take the lease for ``project_id`` and return its run token.

        Raises:
            ConcurrentAnalysisError: If another run holds the lease
            WorkspaceError: If the lease directory or file cannot be written
        """
        try:
            self.lock_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise WorkspaceError(self.lock_dir, f"cannot create lock directory: {e}")

        path = self._lease_path(project_id)
        lease = Lease(
            project_id=str(project_id),
            token=uuid.uuid4().hex,
            pid=os.getpid(),
            acquired=datetime.now(timezone.utc).isoformat(),
        )

        try:
            fd = os.open(str(path), os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            holder = self.read(project_id)
            raise ConcurrentAnalysisError(
                str(project_id), holder=f"pid {holder.pid}" if holder and holder.pid > 0 else None
            )
        except OSError as e:
            raise WorkspaceError(path, f"cannot create lease: {e}")

        try:
            with os.fdopen(fd, "w") as f:
                json.dump(lease.to_dict(), f)
        except OSError as e:
            path.unlink(missing_ok=True)
            raise WorkspaceError(path, f"cannot write lease: {e}")

        logger.debug("Lease acquired for project %s (token %s)", project_id, lease.token[:8])
        return lease.token

    def release(self, project_id: str, token: str) -> bool:
        """Drop the lease if ``token`` still owns it.

        Returns True if the lease file was removed.
        """
        current = self.read(project_id)
        if current is None:
            return False
        if current.token != token:
            logger.warning("Lease for project %s is owned by another run, not releasing", project_id)
            return False

        try:
            self._lease_path(project_id).unlink()
        except FileNotFoundError:
            return False
        logger.debug("Lease released for project %s", project_id)
        return True

    def break_lease(self, project_id: str, only_if_stale: bool = True) -> bool:
        """Remove a lease left behind by a crashed run.

        With ``only_if_stale`` the lease is only broken when its recorded
        process is gone.
        """
        current = self.read(project_id)
        if current is None:
            return False
        if only_if_stale and current.pid > 0 and _is_process_alive(current.pid):
            return False

        try:
            self._lease_path(project_id).unlink()
        except FileNotFoundError:
            return False
        logger.info("Broke lease for project %s (pid %d)", project_id, current.pid)
        return True
