from __future__ import annotations

import signal
import sys
from threading import Event
from typing import IO

from .connstr import describe
from .logs import log, setup_logging
from .pinger import HealthPinger
from .runtime import RuntimeContext
from .settings import CONNECTION_STRING_ENV, resolve_connection_string
from .store import RedisStore
from .supervisor import ConnectionSupervisor, StoreFactory

USAGE = (
    f"Please provide connection string in the `{CONNECTION_STRING_ENV}` environment variable "
    "or as the first parameter"
)


def _raise_interrupt(signum, frame) -> None:
    raise KeyboardInterrupt


def wait_for_stop(stdin: IO[str] | None = None) -> None:
    """Block until a line arrives on stdin.

    When stdin is closed (e.g. a detached container) keep blocking until the
    process is interrupted or terminated.
    """
    stdin = sys.stdin if stdin is None else stdin
    line = stdin.readline() if stdin is not None else ""
    if line:
        return
    Event().wait()


def main(
    argv: list[str] | None = None,
    stdin: IO[str] | None = None,
    open_store: StoreFactory = RedisStore.open,
) -> int:
    argv = sys.argv[1:] if argv is None else argv

    connection_string = resolve_connection_string(argv)
    if not connection_string:
        print(USAGE)
        print("Exiting")
        return 0

    setup_logging()
    prev_term = signal.signal(signal.SIGTERM, _raise_interrupt)
    context = RuntimeContext()
    supervisor = ConnectionSupervisor(open_store=open_store)
    try:
        log(f"Watching {describe(connection_string)}.")
        supervisor.connect_with_retry(connection_string)
        with HealthPinger(connection_string, context, open_store=open_store):
            wait_for_stop(stdin)
    except KeyboardInterrupt:
        log("Stop requested.")
    finally:
        # A second SIGTERM must not interrupt the shutdown itself.
        signal.signal(signal.SIGTERM, signal.SIG_IGN)
        supervisor.close()
        log("Exiting.")
        signal.signal(signal.SIGTERM, prev_term)
    return 0
