"""Console logging: one timestamped, correlation-tagged line per message.

Line format::

    2024-05-01 13:45:12.345 [0000000007] Script evaluated successfully. Result: `42`.
"""
from __future__ import annotations

import logging
import sys
from datetime import datetime
from typing import IO

from .runtime import PROCESS_CORRELATION_ID

LOGGER_NAME = "rwatch"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
CORRELATION_WIDTH = 10
_CORRELATION_MODULUS = 10**CORRELATION_WIDTH


def format_correlation_id(correlation_id: int) -> str:
    # Always exactly CORRELATION_WIDTH digits, even once the counter outgrows it.
    return f"{correlation_id % _CORRELATION_MODULUS:0{CORRELATION_WIDTH}d}"


class CorrelationFormatter(logging.Formatter):
    """Renders `yyyy-MM-dd HH:mm:ss.fff [NNNNNNNNNN] message`.

    The timestamp is local time and does not depend on the process locale.
    """

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        ts = datetime.fromtimestamp(record.created)
        return f"{ts.strftime(TIMESTAMP_FORMAT)}.{ts.microsecond // 1000:03d}"

    def format(self, record: logging.LogRecord) -> str:
        correlation_id = getattr(record, "correlation_id", PROCESS_CORRELATION_ID)
        message = record.getMessage()
        if record.exc_info:
            message = f"{message} {self.formatException(record.exc_info)}"
        # One call, one line.
        message = " ".join(message.splitlines())
        return f"{self.formatTime(record)} [{format_correlation_id(correlation_id)}] {message}"


def setup_logging(stream: IO[str] | None = None) -> logging.Logger:
    """Attach a stdout handler to the watcher logger (idempotent).

    Passing a stream replaces the existing handler; tests use this to capture
    output.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO)
    logger.propagate = False

    if logger.handlers and stream is None:
        return logger

    for h in list(logger.handlers):
        logger.removeHandler(h)
    handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    handler.setFormatter(CorrelationFormatter())
    logger.addHandler(handler)
    return logger


def log(message: str, correlation_id: int = PROCESS_CORRELATION_ID) -> None:
    logging.getLogger(LOGGER_NAME).info(message, extra={"correlation_id": correlation_id})


def format_exception(exc: BaseException) -> str:
    """`Type: message`, followed by each wrapped cause as ` ---> Type: message`."""
    parts = []
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        parts.append(f"{type(current).__name__}: {current}")
        if current.__cause__ is not None:
            current = current.__cause__
        elif current.__suppress_context__:
            current = None
        else:
            current = current.__context__
    return " ---> ".join(parts)
