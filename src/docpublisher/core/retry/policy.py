"""
Backoff policy and per-file retry state for uploads.

Exponential backoff with additive jitter, capped at ``max_delay``, with an
explicit ``Retry-After`` hint taking precedence for the retry it came with.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Optional

from docpublisher.exceptions import ConfigurationError, TransientStoreError


@dataclass(frozen=True)
class BackoffPolicy:
    """
    Retry configuration for a single file upload.

    Examples:
        >>> policy = BackoffPolicy(max_retries=5, base_delay=2.0, max_delay=60.0, jitter_max=1.0)
        >>> delay = policy.get_delay(attempt=1)  # 2.0s plus up to 1.0s of jitter
        >>> policy.get_delay(attempt=3, retry_after=7)
        7.0
    """

    # Total attempts per file, the first real try included
    max_retries: int = 5

    # Delay after the first failed attempt (seconds)
    base_delay: float = 2.0

    # Cap on the exponential part of the delay (seconds)
    max_delay: float = 60.0

    # Uniform jitter in [0, jitter_max) added on top (seconds)
    jitter_max: float = 1.0

    def __post_init__(self):
        if self.max_retries < 1:
            raise ConfigurationError("max_retries must be >= 1")
        if self.base_delay < 0:
            raise ConfigurationError("base_delay must be >= 0")
        if self.max_delay < self.base_delay:
            raise ConfigurationError("max_delay must be >= base_delay")
        if self.jitter_max < 0:
            raise ConfigurationError("jitter_max must be >= 0")

    def should_retry(self, error: Exception, attempt: int) -> bool:
        """
        Decide whether another attempt follows the failed ``attempt`` (1-based).

        Only transient store errors are retried, and never past ``max_retries``.
        """
        if attempt >= self.max_retries:
            return False
        return isinstance(error, TransientStoreError)

    def backoff(self, attempt: int) -> float:
        """Exponential part of the delay after failed ``attempt`` (1-based), jitter excluded."""
        exponent = max(attempt - 1, 0)
        # Past 2**64 the product no longer fits a float
        if self.base_delay and exponent >= 64:
            return self.max_delay
        return min(self.max_delay, self.base_delay * (2**exponent))

    def get_delay(
        self,
        attempt: int,
        retry_after: Optional[float] = None,
        rng: Optional[random.Random] = None,
    ) -> float:
        """
        Delay in seconds before the retry that follows failed ``attempt``.

        Implements: min(max_delay, base_delay * 2^(attempt-1)) + uniform[0, jitter_max).
        A ``retry_after`` hint replaces the whole computation.
        """
        if retry_after is not None:
            return float(retry_after)

        delay = self.backoff(attempt)
        if self.jitter_max > 0:
            jitter = (rng or random).random() * self.jitter_max
            delay += jitter
        return delay


@dataclass
class RetryState:
    """
    Attempt bookkeeping for one file's upload.

    Lives only for the duration of that file's attempts.
    """

    key: str

    # Attempts made so far (0 before the first try)
    attempt: int = 0

    last_error: Optional[Exception] = None

    # Delays slept between attempts, in order
    delays: list = field(default_factory=list)

    def record_failure(self, error: Exception) -> None:
        self.attempt += 1
        self.last_error = error

    def record_success(self) -> None:
        self.attempt += 1
        self.last_error = None

    def record_delay(self, delay: float) -> None:
        self.delays.append(delay)


DEFAULT_BACKOFF_POLICY = BackoffPolicy()
