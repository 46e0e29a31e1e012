import io
import sys

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

# Ensure project root is importable (so `import rwatch` works without installing the package)
import os as _os
_project_root = _os.path.dirname(_os.path.dirname(__file__))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from rwatch.logs import setup_logging  # noqa: E402


class FakeStore:
    """In-memory stand-in implementing the store handle interface."""

    def __init__(self, result=42, evaluate_error=None, close_error=None, on_evaluate=None, on_close=None):
        self.result = result
        self.evaluate_error = evaluate_error
        self.close_error = close_error
        self.on_evaluate = on_evaluate
        self.on_close = on_close
        self.is_connected = True
        self.closed = False
        self.scripts = []
        self.lost = []
        self.restored = []

    def ping(self):
        return True

    def evaluate(self, script):
        self.scripts.append(script)
        if self.on_evaluate:
            self.on_evaluate()
        if self.evaluate_error:
            raise self.evaluate_error
        return self.result

    def close(self):
        self.closed = True
        if self.on_close:
            self.on_close()
        if self.close_error:
            raise self.close_error

    def on_connection_lost(self, fn):
        self.lost.append(fn)

    def on_connection_restored(self, fn):
        self.restored.append(fn)


class FakeOpener:
    """Store factory failing the first `failures` calls."""

    def __init__(self, failures=0, error=None, **store_kwargs):
        self.failures = failures
        self.error = error or RedisConnectionError("Connection refused")
        self.store_kwargs = store_kwargs
        self.calls = []
        self.stores = []

    def __call__(self, connection_string):
        self.calls.append(connection_string)
        if len(self.calls) <= self.failures:
            raise self.error
        store = FakeStore(**self.store_kwargs)
        self.stores.append(store)
        return store


@pytest.fixture
def fake_opener_cls():
    return FakeOpener


@pytest.fixture(autouse=True)
def log_stream():
    """Route watcher log lines into a buffer for the duration of a test."""
    stream = io.StringIO()
    setup_logging(stream)
    return stream


@pytest.fixture
def log_lines(log_stream):
    return lambda: log_stream.getvalue().splitlines()
