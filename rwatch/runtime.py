from __future__ import annotations

from threading import Lock

# Correlation id used by the supervisor and other process-level log lines.
PROCESS_CORRELATION_ID = 0


class RuntimeContext:
    """Process-wide in-memory state shared by the watcher components."""

    def __init__(self) -> None:
        self.lock = Lock()
        self._correlation = PROCESS_CORRELATION_ID

    def next_correlation_id(self) -> int:
        """Issue the next correlation id (1, 2, 3, ...), unique per call."""
        with self.lock:
            self._correlation += 1
            return self._correlation

    @property
    def last_correlation_id(self) -> int:
        with self.lock:
            return self._correlation
