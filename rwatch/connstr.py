"""Connection string parsing.

Two forms are accepted:

* a Redis URL (``redis://``, ``rediss://``, ``unix://``), handed to redis-py as is;
* a comma separated endpoint/option list as used by other Redis clients, e.g.
  ``cache.example.net:6380,password=secret,ssl=True,abortConnect=False``.
"""
from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from .settings import settings

URL_SCHEMES = ("redis://", "rediss://", "unix://")
_SECRET_OPTION_RE = re.compile(r"\b(password|user)=[^,]*", re.IGNORECASE)
DEFAULT_PORT = 6379


class ConnectionStringError(ValueError):
    pass


class ConnectionOptions(BaseModel):
    host: str = Field(..., min_length=1)
    port: int = Field(DEFAULT_PORT, ge=1, le=65535)
    username: str | None = None
    password: str | None = None
    ssl: bool = False
    db: int = Field(0, ge=0)
    connect_timeout_ms: int = Field(settings.connect_timeout_ms, gt=0)
    sync_timeout_ms: int = Field(settings.sync_timeout_ms, gt=0)
    client_name: str | None = None

    def redis_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for `redis.Redis`."""
        kwargs: dict[str, Any] = {
            "host": self.host,
            "port": self.port,
            "db": self.db,
            "ssl": self.ssl,
            "socket_connect_timeout": self.connect_timeout_ms / 1000.0,
            "socket_timeout": self.sync_timeout_ms / 1000.0,
        }
        if self.username:
            kwargs["username"] = self.username
        if self.password:
            kwargs["password"] = self.password
        if self.client_name:
            kwargs["client_name"] = self.client_name
        return kwargs


# option name (lower case) -> ConnectionOptions field
_OPTION_FIELDS = {
    "password": "password",
    "user": "username",
    "ssl": "ssl",
    "defaultdatabase": "db",
    "connecttimeout": "connect_timeout_ms",
    "synctimeout": "sync_timeout_ms",
    "name": "client_name",
}


def is_url(connection_string: str) -> bool:
    return connection_string.strip().lower().startswith(URL_SCHEMES)


def _split_endpoint(endpoint: str) -> tuple[str, int | str]:
    endpoint = endpoint.strip()
    if endpoint.startswith("["):
        # [ipv6]:port
        host, _, rest = endpoint[1:].partition("]")
        port = rest[1:] if rest.startswith(":") else DEFAULT_PORT
        return host, port
    if endpoint.count(":") == 1:
        host, _, port = endpoint.partition(":")
        return host, port
    return endpoint, DEFAULT_PORT


def parse_connection_string(connection_string: str) -> ConnectionOptions:
    """Parse the endpoint/option form into `ConnectionOptions`.

    Only the first endpoint is used. Unknown options are ignored.
    """
    endpoint: str | None = None
    values: dict[str, Any] = {}
    for part in connection_string.split(","):
        part = part.strip()
        if not part:
            continue
        if "=" in part:
            key, _, value = part.partition("=")
            field = _OPTION_FIELDS.get(key.strip().lower())
            if field:
                values[field] = value.strip()
            continue
        if endpoint is None:
            endpoint = part

    if endpoint is None:
        raise ConnectionStringError("No endpoint found in connection string.")

    host, port = _split_endpoint(endpoint)
    values["host"] = host
    values["port"] = port
    try:
        return ConnectionOptions(**values)
    except ValidationError as e:
        errors = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors())
        raise ConnectionStringError(f"Invalid connection string ({errors}).") from e


def describe(connection_string: str) -> str:
    """Short, password-free description of the target for log lines.

    Never raises: a string that does not parse is shown with its secrets masked
    and is reported later, when the connection is attempted.
    """
    if is_url(connection_string):
        scheme, _, rest = connection_string.strip().partition("://")
        rest = rest.split("?", 1)[0].split("#", 1)[0]
        return f"{scheme}://{rest.rpartition('@')[2]}"
    try:
        opts = parse_connection_string(connection_string)
    except ConnectionStringError:
        return _SECRET_OPTION_RE.sub(r"\1=***", connection_string.strip())
    return f"{opts.host}:{opts.port}"
