from __future__ import annotations

import os
from dataclasses import dataclass

CONNECTION_STRING_ENV = "REDIS_CONNECTIONSTRING"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw


@dataclass(frozen=True)
class Settings:
    # Supervisor
    retry_delay_s: float = _env_float("RWATCH_RETRY_DELAY_S", 15.0)
    watch_interval_s: float = _env_float("RWATCH_WATCH_INTERVAL_S", 5.0)

    # Health pinger
    ping_initial_delay_s: float = _env_float("RWATCH_PING_INITIAL_DELAY_S", 1.0)
    ping_interval_s: float = _env_float("RWATCH_PING_INTERVAL_S", 15.0)
    script: str = _env_str("RWATCH_SCRIPT", "return 42")

    # Client defaults (milliseconds, same unit as the connection string options)
    connect_timeout_ms: int = _env_int("RWATCH_CONNECT_TIMEOUT_MS", 5000)
    sync_timeout_ms: int = _env_int("RWATCH_SYNC_TIMEOUT_MS", 5000)


settings = Settings()


def resolve_connection_string(argv: list[str]) -> str | None:
    """Environment variable first, then the first command-line argument.

    Blank values count as missing. Returns None when neither source is set.
    """
    value = os.getenv(CONNECTION_STRING_ENV)
    if (value is None or not value.strip()) and argv:
        value = argv[0]
    if value is None or not value.strip():
        return None
    return value.strip()
