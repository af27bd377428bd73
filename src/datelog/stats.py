"""
Thread-safe counters shared by the writer threads and the scheduler
"""

import threading
from typing import Dict

COUNTERS = (
    "lines_enqueued",
    "lines_written",
    "lines_dropped",
    "write_errors",
    "entries_opened",
    "entries_evicted",
    "files_archived",
    "files_deleted",
    "archive_errors",
    "delete_errors",
    "rotations",
)


class Stats:
    """Named integer counters"""

    def __init__(self):
        self._lock = threading.Lock()
        self._counters: Dict[str, int] = dict.fromkeys(COUNTERS, 0)

    def incr(self, name: str, amount: int = 1) -> None:
        with self._lock:
            self._counters[name] += amount

    def get(self, name: str) -> int:
        with self._lock:
            return self._counters[name]

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._counters)
