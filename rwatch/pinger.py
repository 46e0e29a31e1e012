from __future__ import annotations

import time
from contextlib import closing
from threading import Event, Thread
from typing import Any, Callable

from .logs import format_exception, log
from .runtime import RuntimeContext
from .settings import settings
from .store import RedisStore, StoreHandle


def render_result(result: Any) -> str:
    if result is None:
        return ""
    if isinstance(result, bytes):
        return result.decode("utf-8", errors="replace")
    return str(result)


class HealthPinger:
    """Periodically opens a fresh connection and evaluates a trivial script.

    Ticks run one at a time on a single background thread. The schedule is
    fixed-rate; a tick that overruns its period is followed immediately by
    the next one and the schedule continues from there.
    """

    def __init__(
        self,
        connection_string: str,
        context: RuntimeContext,
        open_store: Callable[[str], StoreHandle] = RedisStore.open,
        initial_delay_s: float | None = None,
        interval_s: float | None = None,
        script: str | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.connection_string = connection_string
        self.context = context
        self.open_store = open_store
        self.initial_delay_s = max(0.0, settings.ping_initial_delay_s if initial_delay_s is None else float(initial_delay_s))
        self.interval_s = max(0.01, settings.ping_interval_s if interval_s is None else float(interval_s))
        self.script = script or settings.script
        self.clock = clock
        self._stop = Event()
        self._thr: Thread | None = None

    def start(self) -> None:
        if self._thr and self._thr.is_alive():
            return
        self._stop.clear()
        self._thr = Thread(target=self._loop, name="rwatch-pinger", daemon=True)
        self._thr.start()

    def stop(self, timeout: float | None = None) -> None:
        """Stop scheduling ticks; waits for a tick in flight to finish."""
        self._stop.set()
        if self._thr is not None:
            self._thr.join(timeout)
            self._thr = None

    def __enter__(self) -> "HealthPinger":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def _loop(self) -> None:
        next_due = self.clock() + self.initial_delay_s
        while not self._stop.wait(max(0.0, next_due - self.clock())):
            self.tick()
            next_due += self.interval_s
            now = self.clock()
            if next_due < now:
                next_due = now

    def tick(self) -> bool:
        """Run one health check. Never raises; returns True on success."""
        correlation_id = self.context.next_correlation_id()
        try:
            log("Connecting to Redis.", correlation_id)
            with closing(self.open_store(self.connection_string)) as store:
                log("Connected to Redis.", correlation_id)
                log("Executing script.", correlation_id)
                result = store.evaluate(self.script)
                log(f"Script evaluated successfully. Result: `{render_result(result)}`.", correlation_id)
            log("Connection to Redis closed.", correlation_id)
            return True
        except Exception as e:
            log(f"Exception thrown: {format_exception(e)}", correlation_id)
            return False
