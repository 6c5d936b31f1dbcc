"""
Tests for the retry framework.

Covers the backoff policy, per-file retry state, and error classification.
"""

import random

import pytest

from docpublisher.core.retry import (
    DEFAULT_BACKOFF_POLICY,
    BackoffPolicy,
    ErrorKind,
    RetryState,
    classify,
    parse_retry_after,
)
from docpublisher.exceptions import ConfigurationError, PermanentStoreError, TransientStoreError


class TestBackoffPolicy:
    """Tests for BackoffPolicy configuration and delay math."""

    def test_default_values(self):
        """Test default policy values."""
        policy = BackoffPolicy()
        assert policy.max_retries == 5
        assert policy.base_delay == 2.0
        assert policy.max_delay == 60.0
        assert policy.jitter_max == 1.0
        assert DEFAULT_BACKOFF_POLICY == policy

    def test_validation_max_retries(self):
        with pytest.raises(ConfigurationError, match="max_retries must be >= 1"):
            BackoffPolicy(max_retries=0)

    def test_validation_base_delay(self):
        with pytest.raises(ConfigurationError, match="base_delay"):
            BackoffPolicy(base_delay=-1.0)

    def test_validation_max_delay_below_base(self):
        with pytest.raises(ConfigurationError, match="max_delay"):
            BackoffPolicy(base_delay=10.0, max_delay=5.0)

    def test_validation_jitter(self):
        with pytest.raises(ConfigurationError, match="jitter_max"):
            BackoffPolicy(jitter_max=-0.5)

    def test_exponential_backoff_without_jitter(self):
        """Test delay doubles each attempt until the cap."""
        policy = BackoffPolicy(base_delay=2.0, max_delay=60.0, jitter_max=0.0)
        delays = [policy.get_delay(attempt) for attempt in range(1, 8)]
        assert delays == [2.0, 4.0, 8.0, 16.0, 32.0, 60.0, 60.0]

    def test_delay_is_monotonic_and_capped(self):
        policy = BackoffPolicy(max_retries=20, base_delay=0.5, max_delay=10.0, jitter_max=0.0)
        delays = [policy.get_delay(attempt) for attempt in range(1, 20)]
        assert delays == sorted(delays)
        assert max(delays) == 10.0

    def test_huge_attempt_number_stays_capped(self):
        policy = BackoffPolicy(base_delay=2.0, max_delay=60.0, jitter_max=0.0)
        assert policy.get_delay(10_000) == 60.0

    def test_jitter_is_bounded(self):
        """Test jitter stays within [0, jitter_max)."""
        policy = BackoffPolicy(base_delay=2.0, max_delay=60.0, jitter_max=1.0)
        rng = random.Random(42)
        for _ in range(200):
            delay = policy.get_delay(1, rng=rng)
            assert 2.0 <= delay < 3.0

    def test_jitter_uses_given_rng(self):
        policy = BackoffPolicy(jitter_max=1.0)
        first = policy.get_delay(2, rng=random.Random(7))
        second = policy.get_delay(2, rng=random.Random(7))
        assert first == second

    def test_retry_after_replaces_computation(self):
        """Test a Retry-After hint is used verbatim, even above max_delay."""
        policy = BackoffPolicy(base_delay=2.0, max_delay=60.0, jitter_max=1.0)
        assert policy.get_delay(1, retry_after=7) == 7.0
        assert policy.get_delay(5, retry_after=120.0) == 120.0
        assert policy.get_delay(3, retry_after=0) == 0.0

    def test_should_retry_transient_only(self):
        policy = BackoffPolicy(max_retries=3)
        assert policy.should_retry(TransientStoreError("throttled", status_code=503), 1)
        assert not policy.should_retry(PermanentStoreError("denied", status_code=403), 1)
        assert not policy.should_retry(RuntimeError("bug"), 1)

    def test_should_retry_stops_at_max_retries(self):
        policy = BackoffPolicy(max_retries=3)
        error = TransientStoreError("throttled", status_code=503)
        assert policy.should_retry(error, 2)
        assert not policy.should_retry(error, 3)
        assert not policy.should_retry(error, 4)

    def test_single_attempt_policy_never_retries(self):
        policy = BackoffPolicy(max_retries=1)
        assert not policy.should_retry(TransientStoreError("throttled"), 1)


class TestRetryState:
    """Tests for RetryState tracking."""

    def test_initial_state(self):
        state = RetryState(key="site/v1/index.html")
        assert state.attempt == 0
        assert state.last_error is None
        assert state.delays == []

    def test_record_failure_then_success(self):
        state = RetryState(key="k")
        error = TransientStoreError("throttled")
        state.record_failure(error)
        assert state.attempt == 1
        assert state.last_error is error

        state.record_delay(2.5)
        state.record_success()
        assert state.attempt == 2
        assert state.last_error is None
        assert state.delays == [2.5]


class TestClassify:
    """Tests for transient/permanent classification."""

    @pytest.mark.parametrize(
        "status, code",
        [
            (503, "SlowDown"),
            (429, None),
            (500, "InternalError"),
            (502, None),
            (504, None),
            (408, None),
            (400, "RequestTimeout"),
            (400, "Throttling"),
            (None, "ReadTimeoutError"),
            (None, None),
        ],
    )
    def test_transient(self, status, code):
        assert classify(status, code) is ErrorKind.TRANSIENT

    @pytest.mark.parametrize(
        "status, code",
        [
            (403, "AccessDenied"),
            (404, "NoSuchBucket"),
            (400, "InvalidArgument"),
            (400, "EntityTooLarge"),
            (301, "PermanentRedirect"),
        ],
    )
    def test_permanent(self, status, code):
        assert classify(status, code) is ErrorKind.PERMANENT


class TestParseRetryAfter:
    """Tests for Retry-After header parsing."""

    @pytest.mark.parametrize("value, expected", [("5", 5.0), (" 30 ", 30.0), (0, 0.0), (12, 12.0)])
    def test_integer_seconds(self, value, expected):
        assert parse_retry_after(value) == expected

    @pytest.mark.parametrize("value", [None, "", "soon", "1.5", "-3", "Wed, 21 Oct 2026 07:28:00 GMT"])
    def test_unusable_values(self, value):
        assert parse_retry_after(value) is None
