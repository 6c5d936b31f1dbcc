"""
Transient vs. permanent classification of remote-store errors.

Works on a normalized descriptor (HTTP status + service error code) so that
connection adapters translate SDK exceptions once and the retry loop only
ever sees TransientStoreError / PermanentStoreError.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    TRANSIENT = "transient"
    PERMANENT = "permanent"


# Service error codes signalling throttling or a momentary server fault
TRANSIENT_ERROR_CODES = frozenset(
    {
        "SlowDown",
        "Throttling",
        "ThrottlingException",
        "ThrottledException",
        "TooManyRequests",
        "TooManyRequestsException",
        "RequestLimitExceeded",
        "RequestThrottled",
        "RequestTimeout",
        "RequestTimeoutException",
        "InternalError",
        "ServiceUnavailable",
    }
)

TRANSIENT_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})


def classify(status_code: Optional[int], error_code: Optional[str]) -> ErrorKind:
    """
    Classify a remote error.

    A missing status code means the request never got an HTTP answer
    (connection reset, DNS, timeout), which is treated as transient.

    Args:
        status_code: HTTP status of the failed response, if any
        error_code: Service error code (e.g. ``SlowDown``, ``AccessDenied``)

    Returns:
        ErrorKind.TRANSIENT or ErrorKind.PERMANENT
    """
    if error_code in TRANSIENT_ERROR_CODES:
        return ErrorKind.TRANSIENT
    if status_code is None:
        return ErrorKind.TRANSIENT
    if status_code in TRANSIENT_STATUS_CODES:
        return ErrorKind.TRANSIENT
    return ErrorKind.PERMANENT


def parse_retry_after(value: object) -> Optional[float]:
    """
    Parse a ``Retry-After`` header value given in whole seconds.

    HTTP-date values and garbage yield None so the caller falls back to
    exponential backoff.
    """
    if value is None:
        return None
    try:
        seconds = int(str(value).strip())
    except ValueError:
        return None
    if seconds < 0:
        return None
    return float(seconds)
