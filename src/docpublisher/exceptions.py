"""
docpublisher exception hierarchy.

All domain-specific exceptions inherit from DocPublisherError, so callers can
catch any publishing failure with a single base class while still handling
individual failure kinds where it matters.

Hierarchy::

    DocPublisherError
    ├── ConfigurationError        - missing/invalid settings, bad source dir
    ├── StoreError                - a single remote-store call failed
    │   ├── TransientStoreError   - throttling, timeouts, transport faults
    │   └── PermanentStoreError   - authorization, malformed request
    ├── UploadError               - one or more files failed after retries
    └── PublishError              - a publish phase failed
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from docpublisher.sync.types import UploadOutcome


class DocPublisherError(Exception):
    """Base exception for all docpublisher errors."""

    def __init__(self, message: str, *, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# --- Configuration -----------------------------------------------------------


class ConfigurationError(DocPublisherError):
    """Raised when configuration is missing, unreadable, or invalid."""


# --- Remote store ------------------------------------------------------------


class StoreError(DocPublisherError):
    """Raised when a single call against the object store fails.

    Carries the normalized error descriptor (HTTP status, service error code,
    and the ``Retry-After`` hint in seconds) so retry decisions never need to
    look at SDK-specific exception types.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        error_code: str | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(
            message,
            details={"status_code": status_code, "error_code": error_code, "retry_after": retry_after},
        )
        self.status_code = status_code
        self.error_code = error_code
        self.retry_after = retry_after


class TransientStoreError(StoreError):
    """Raised for throttling or transport failures that may succeed on retry."""


class PermanentStoreError(StoreError):
    """Raised for remote rejections that will not succeed on retry."""


# --- Aggregates --------------------------------------------------------------


class UploadError(DocPublisherError):
    """Raised when one or more files failed to upload after exhausting retries.

    Files that did upload stay uploaded; ``outcome`` holds the full tally.
    """

    def __init__(self, outcome: UploadOutcome, *, max_retries: int | None = None) -> None:
        first_error = outcome.failures[0] if outcome.failures else "Unknown error"
        attempts = f" after {max_retries} attempts" if max_retries is not None else ""
        message = (
            f"Upload failed: {outcome.failed} file(s) failed to upload{attempts} "
            f"({outcome.succeeded} succeeded). First error: {first_error}"
        )
        super().__init__(
            message,
            details={"succeeded": outcome.succeeded, "failed": outcome.failed, "first_error": first_error},
        )
        self.outcome = outcome
        self.succeeded = outcome.succeeded
        self.failed = outcome.failed
        self.first_error = first_error


class PublishError(DocPublisherError):
    """Raised when a publish phase fails; ``phase`` names which one."""

    def __init__(self, phase: str, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(f"Publishing {phase} documentation failed: {message}", details={"phase": phase})
        self.phase = phase
        if cause is not None:
            self.__cause__ = cause
