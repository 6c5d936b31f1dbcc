"""
Shared fixtures: an in-memory object store instrumented for concurrency.
"""

import threading
import time
from pathlib import Path

import pytest


class FakeStore:
    """
    In-memory ObjectStore.

    ``failures`` maps a key to a list of exceptions raised by successive
    put attempts on that key before it succeeds.
    """

    def __init__(self, objects=None, failures=None, put_delay=0.0):
        self.objects = dict(objects or {})
        self.failures = {key: list(errors) for key, errors in (failures or {}).items()}
        self.put_delay = put_delay
        self.put_calls = []
        self.list_calls = []
        self.delete_calls = []
        self.closed = False
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def put_file(self, key, path, *, content_type, cache_control):
        with self._lock:
            self.put_calls.append(key)
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
            pending = self.failures.get(key)
            error = pending.pop(0) if pending else None
        try:
            if self.put_delay:
                time.sleep(self.put_delay)
            if error is not None:
                raise error
            with self._lock:
                self.objects[key] = {
                    "body": Path(path).read_bytes(),
                    "content_type": content_type,
                    "cache_control": cache_control,
                }
        finally:
            with self._lock:
                self.in_flight -= 1

    def iter_keys(self, prefix):
        self.list_calls.append(prefix)
        for key in sorted(self.objects):
            if key.startswith(prefix):
                yield key

    def delete_keys(self, keys):
        keys = list(keys)
        self.delete_calls.append(keys)
        for key in keys:
            self.objects.pop(key, None)
        return len(keys)

    def close(self):
        self.closed = True

    def keys_under(self, prefix):
        return {key for key in self.objects if key.startswith(prefix)}


@pytest.fixture
def fake_store():
    """A fresh empty FakeStore."""
    return FakeStore()


@pytest.fixture
def make_store():
    """Factory for FakeStore instances with preset objects/failures."""
    return FakeStore


@pytest.fixture
def sleeps():
    """Records requested backoff delays instead of sleeping."""
    return []


@pytest.fixture
def make_tree(tmp_path):
    """Create files (relative path -> content) under a directory and return it."""

    def _make(files, root=None):
        root = Path(root) if root is not None else tmp_path / "site"
        root.mkdir(parents=True, exist_ok=True)
        for relative, content in files.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
        return root

    return _make
