"""
Type definitions for upload jobs, per-file tasks, and outcomes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from docpublisher.core.retry.policy import BackoffPolicy
from docpublisher.exceptions import ConfigurationError

HTML_CONTENT_TYPE = "text/html; charset=utf-8"
DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class UploadJob:
    """
    One directory-to-prefix upload.

    ``cache_control`` is attached verbatim to every object. With
    ``sync_delete`` the remote objects under the prefix that have no local
    counterpart are removed once all uploads have drained.
    """

    bucket: str
    key_prefix: str
    source_directory: Path
    cache_control: str
    sync_delete: bool = False
    max_concurrency: int = 5
    backoff: BackoffPolicy = field(default_factory=BackoffPolicy)

    def __post_init__(self):
        if self.max_concurrency < 1:
            raise ConfigurationError("max_concurrency must be >= 1")
        # Reconciling against an empty prefix would list and prune the whole bucket
        if self.sync_delete and not self.key_prefix.replace("\\", "/").strip("/").strip():
            raise ConfigurationError(
                "sync_delete requires a non-empty key_prefix",
                details={"key_prefix": self.key_prefix},
            )

    @property
    def max_retries(self) -> int:
        return self.backoff.max_retries

    def key_for(self, relative_path: str) -> str:
        """Object key for a path relative to the source directory."""
        relative = relative_path.replace("\\", "/").lstrip("/")
        prefix = self.key_prefix.replace("\\", "/").strip("/")
        return f"{prefix}/{relative}" if prefix else relative


@dataclass(frozen=True)
class UploadSettings:
    """Concurrency and retry tuning shared by every job of a publish cycle."""

    max_concurrency: int = 5
    backoff: BackoffPolicy = field(default_factory=BackoffPolicy)

    def __post_init__(self):
        if self.max_concurrency < 1:
            raise ConfigurationError("max_concurrency must be >= 1")


@dataclass(frozen=True)
class FileUploadTask:
    """A discovered local file and where it goes."""

    path: Path
    key: str
    content_type: str

    @property
    def is_html(self) -> bool:
        return self.path.suffix.lower() == ".html"


@dataclass(frozen=True)
class UploadOutcome:
    """Aggregate result of one upload job."""

    succeeded: int = 0
    failed: int = 0
    deleted: int = 0
    failures: tuple[str, ...] = ()

    @property
    def total(self) -> int:
        return self.succeeded + self.failed

    @property
    def ok(self) -> bool:
        return self.failed == 0

    def to_dict(self) -> dict:
        return {
            "succeeded": self.succeeded,
            "failed": self.failed,
            "deleted": self.deleted,
            "failures": list(self.failures),
        }
