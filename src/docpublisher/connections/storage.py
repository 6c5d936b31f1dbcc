"""
Storage connection base class and the object-store protocol.

The uploader only depends on ObjectStore; S3Connection is the production
implementation and tests plug in in-memory fakes.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

# Most object stores (S3 included) cap a batch delete at 1000 keys
MAX_DELETE_BATCH = 1000


@runtime_checkable
class ObjectStore(Protocol):
    """
    Key-addressed blob store with put, list-by-prefix and batch delete.

    Implementations raise TransientStoreError / PermanentStoreError and must
    be safe to share across upload worker threads.
    """

    def put_file(self, key: str, path: Path, *, content_type: str, cache_control: str) -> None: ...

    def iter_keys(self, prefix: str) -> Iterator[str]: ...

    def delete_keys(self, keys: Iterable[str]) -> int: ...

    def close(self) -> None: ...


class BaseStorageConnection:
    """
    Base class for storage connections.

    Holds the connection name and its raw configuration dictionary.
    """

    def __init__(self, name: str, config: dict[str, Any]):
        """
        Initialize storage connection.

        Args:
            name: Connection name (used in log and error messages)
            config: Connection configuration dictionary
        """
        self.name = name
        self.config = config

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}')"


def chunked(keys: Iterable[str], size: int = MAX_DELETE_BATCH) -> Iterator[list[str]]:
    """Yield successive lists of at most ``size`` keys."""
    batch: list[str] = []
    for key in keys:
        batch.append(key)
        if len(batch) >= size:
            yield batch
            batch = []
    if batch:
        yield batch
