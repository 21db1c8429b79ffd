"""Analysis lifecycle events.

The orchestrator dispatches ``AnalysisEvents.END`` exactly once per run,
whether the run succeeded or failed. Collaborators subscribe to clear their
"currently analyzing" status and mark earlier results as read.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable

from .logging_config import get_logger

logger = get_logger(__name__)

Listener = Callable[[Any], None]


class AnalysisEvents:
    """Names of the analysis related events."""

    END = "php_sanitizer.analysis.end"


@dataclass(frozen=True)
class AnalysisEndEvent:
    """Marks the end of one analysis run."""

    project_id: str
    succeeded: bool


class EventDispatcher:
    """Thread-safe registry of event listeners.

    A failing listener is logged and skipped so the remaining listeners still
    run and the dispatching code is never interrupted.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    def add_listener(self, event_name: str, listener: Listener) -> None:
        with self._lock:
            self._listeners[event_name].append(listener)

    def remove_listener(self, event_name: str, listener: Listener) -> None:
        with self._lock:
            try:
                self._listeners[event_name].remove(listener)
            except ValueError:
                pass

    def dispatch(self, event_name: str, event: Any) -> int:
        """Call every listener of ``event_name``. Returns how many were called."""
        with self._lock:
            # Copy listeners list to avoid mutation during iteration
            listeners = list(self._listeners.get(event_name, ()))

        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Listener %r failed on %s", listener, event_name)
        return len(listeners)
