"""Append-only state shared by all workers of one load test run."""

import threading
from collections.abc import Sequence
from dataclasses import dataclass, field

from scene_loadtest.models.result import ErrorLogEntry


@dataclass(kw_only=True)
class RunState:
    """Error log and log de-duplication set for a single run.

    Workers only ever append, so a single lock around each mutation is
    enough. It is a ``threading.Lock`` because workers may live in separate
    threads, each with its own event loop.
    """

    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _entries: list[ErrorLogEntry] = field(default_factory=list)
    _logged: set[tuple[str, str]] = field(default_factory=set)

    def record(self, entry: ErrorLogEntry) -> None:
        """Append an error log entry."""
        with self._lock:
            self._entries.append(entry)

    def first_report(self, scene: str, test_id: str) -> bool:
        """Return True the first time a (scene, test) pair is reported."""
        key = (scene, test_id)
        with self._lock:
            if key in self._logged:
                return False
            self._logged.add(key)
            return True

    @property
    def error_log(self) -> Sequence[ErrorLogEntry]:
        """Snapshot of all recorded entries."""
        with self._lock:
            return tuple(self._entries)
