from __future__ import annotations

import time
from typing import Callable

from .logs import format_exception, log
from .runtime import PROCESS_CORRELATION_ID
from .settings import settings
from .store import ConnectionEvent, RedisStore, StoreHandle

StoreFactory = Callable[[str], StoreHandle]


class ConnectionSupervisor:
    """Owns the long-lived connection and reports its connectivity changes."""

    def __init__(
        self,
        open_store: StoreFactory = RedisStore.open,
        retry_delay_s: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.open_store = open_store
        self.retry_delay_s = settings.retry_delay_s if retry_delay_s is None else max(0.0, float(retry_delay_s))
        self.sleep = sleep
        self.store: StoreHandle | None = None
        self.attempts = 0

    def connect_with_retry(self, connection_string: str) -> StoreHandle:
        """Block until a connection is open, retrying forever at a fixed delay."""
        while True:
            self.attempts += 1
            try:
                log("Opening connection.", PROCESS_CORRELATION_ID)
                store = self.open_store(connection_string)
                log("Connection opened successfully.", PROCESS_CORRELATION_ID)
                break
            except Exception as e:
                log(f"Failed opening connection: {format_exception(e)}", PROCESS_CORRELATION_ID)
                self.sleep(self.retry_delay_s)

        log("Subscribing to events.", PROCESS_CORRELATION_ID)
        store.on_connection_lost(self._on_lost)
        store.on_connection_restored(self._on_restored)
        log("Subscribed to events.", PROCESS_CORRELATION_ID)

        self.store = store
        return store

    def close(self) -> None:
        store, self.store = self.store, None
        if store is None:
            return
        try:
            store.close()
            log("Connection closed.", PROCESS_CORRELATION_ID)
        except Exception as e:
            log(f"Failed closing connection: {format_exception(e)}", PROCESS_CORRELATION_ID)

    # Listeners run on the store's watcher thread and must never raise.

    def _on_lost(self, e: ConnectionEvent) -> None:
        try:
            log(
                f"Connection failed. Connection type: {e.connection_type}, "
                f"Failure type {e.failure_type}, Exception: {_describe(e.exception)}",
                PROCESS_CORRELATION_ID,
            )
        except Exception:
            pass

    def _on_restored(self, e: ConnectionEvent) -> None:
        try:
            store = self.store
            connected = store.is_connected if store is not None else False
            log(
                f"Connection restored. IsConnected: {connected}, Connection type: {e.connection_type}, "
                f"Failure type {e.failure_type}, Exception: {_describe(e.exception)}",
                PROCESS_CORRELATION_ID,
            )
        except Exception:
            pass


def _describe(exc: BaseException | None) -> str:
    if exc is None:
        return ""
    return format_exception(exc)
