"""
Retry framework for per-file uploads.

Exponential backoff with jitter, Retry-After overrides, and error classification.
"""

from docpublisher.core.retry.classify import ErrorKind, classify, parse_retry_after
from docpublisher.core.retry.policy import DEFAULT_BACKOFF_POLICY, BackoffPolicy, RetryState

__all__ = [
    # Policy
    "BackoffPolicy",
    "RetryState",
    "DEFAULT_BACKOFF_POLICY",
    # Classification
    "ErrorKind",
    "classify",
    "parse_retry_after",
]
