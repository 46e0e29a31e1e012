"""Redis handle with connectivity events.

redis-py reconnects transparently on the next command but does not report
connectivity changes, so `RedisStore` probes its own client on a background
thread and notifies listeners on every up/down transition.
"""
from __future__ import annotations

import socket
from dataclasses import dataclass
from enum import Enum
from threading import Event, Lock, Thread, current_thread
from typing import Any, Callable, Protocol

import redis
from redis.exceptions import (
    AuthenticationError,
    BusyLoadingError,
    ConnectionError,
    RedisError,
    TimeoutError,
)

from .connstr import is_url, parse_connection_string
from .logs import format_exception, log
from .settings import settings

CONNECTION_TYPE_INTERACTIVE = "Interactive"


class FailureType(str, Enum):
    NONE = "None"
    UNABLE_TO_CONNECT = "UnableToConnect"
    SOCKET_FAILURE = "SocketFailure"
    AUTHENTICATION_FAILURE = "AuthenticationFailure"
    TIMEOUT = "Timeout"
    LOADING = "Loading"
    INTERNAL_FAILURE = "InternalFailure"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ConnectionEvent:
    connection_type: str
    failure_type: FailureType
    exception: BaseException | None = None


Listener = Callable[[ConnectionEvent], None]


class StoreHandle(Protocol):
    """What the supervisor and the pinger need from a store connection."""

    @property
    def is_connected(self) -> bool: ...

    def ping(self) -> bool: ...

    def evaluate(self, script: str) -> Any: ...

    def close(self) -> None: ...

    def on_connection_lost(self, fn: Listener) -> None: ...

    def on_connection_restored(self, fn: Listener) -> None: ...


def classify_failure(exc: BaseException) -> FailureType:
    # Order matters: the specific redis errors subclass ConnectionError.
    if isinstance(exc, AuthenticationError):
        return FailureType.AUTHENTICATION_FAILURE
    if isinstance(exc, BusyLoadingError):
        return FailureType.LOADING
    if isinstance(exc, (TimeoutError, socket.timeout)):
        return FailureType.TIMEOUT
    if isinstance(exc, ConnectionError):
        return FailureType.SOCKET_FAILURE
    if isinstance(exc, OSError):
        return FailureType.UNABLE_TO_CONNECT
    return FailureType.INTERNAL_FAILURE


def create_client(connection_string: str) -> redis.Redis:
    """Build (but do not connect) a redis-py client for the connection string."""
    if is_url(connection_string):
        return redis.Redis.from_url(
            connection_string.strip(),
            decode_responses=True,
            socket_connect_timeout=settings.connect_timeout_ms / 1000.0,
            socket_timeout=settings.sync_timeout_ms / 1000.0,
        )
    opts = parse_connection_string(connection_string)
    return redis.Redis(decode_responses=True, **opts.redis_kwargs())


class RedisStore:
    """One live Redis session, owned by whoever opened it.

    Release with `close()` or use it as a context manager.
    """

    def __init__(self, client: redis.Redis, watch_interval_s: float | None = None):
        self.client = client
        self.watch_interval_s = max(0.01, float(watch_interval_s or settings.watch_interval_s))
        self._lock = Lock()
        self._connected = True
        self._lost: list[Listener] = []
        self._restored: list[Listener] = []
        self._stop = Event()
        self._thr: Thread | None = None

    @classmethod
    def open(cls, connection_string: str, watch_interval_s: float | None = None) -> "RedisStore":
        """Connect and verify with PING. Raises on failure."""
        client = create_client(connection_string)
        try:
            client.ping()
        except Exception:
            client.close()
            raise
        return cls(client, watch_interval_s=watch_interval_s)

    def __enter__(self) -> "RedisStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def is_connected(self) -> bool:
        with self._lock:
            return self._connected

    def ping(self) -> bool:
        return bool(self.client.ping())

    def evaluate(self, script: str) -> Any:
        return self.client.eval(script, 0)

    def close(self) -> None:
        self._stop.set()
        thr = self._thr
        if thr is not None and thr is not current_thread():
            thr.join(timeout=self.watch_interval_s + 1)
        self.client.close()

    # --- connectivity events ---

    def on_connection_lost(self, fn: Listener) -> None:
        with self._lock:
            self._lost.append(fn)
        self._ensure_watcher()

    def on_connection_restored(self, fn: Listener) -> None:
        with self._lock:
            self._restored.append(fn)
        self._ensure_watcher()

    def _ensure_watcher(self) -> None:
        with self._lock:
            if self._stop.is_set() or (self._thr and self._thr.is_alive()):
                return
            self._thr = Thread(target=self._watch, name="rwatch-connectivity", daemon=True)
            self._thr.start()

    def _watch(self) -> None:
        while not self._stop.wait(self.watch_interval_s):
            self.probe()

    def probe(self) -> bool:
        """Ping the client once and fire listeners if connectivity changed."""
        error: BaseException | None = None
        try:
            ok = self.ping()
        except (RedisError, OSError) as e:
            ok = False
            error = e

        with self._lock:
            prev = self._connected
            self._connected = ok
            lost = list(self._lost)
            restored = list(self._restored)

        if prev and not ok:
            failure = classify_failure(error) if error is not None else FailureType.INTERNAL_FAILURE
            self._fire(lost, ConnectionEvent(CONNECTION_TYPE_INTERACTIVE, failure, error))
        elif ok and not prev:
            self._fire(restored, ConnectionEvent(CONNECTION_TYPE_INTERACTIVE, FailureType.NONE))
        return ok

    def _fire(self, listeners: list[Listener], event: ConnectionEvent) -> None:
        for fn in listeners:
            try:
                fn(event)
            except Exception as e:
                log(f"Connection event listener failed: {format_exception(e)}")
