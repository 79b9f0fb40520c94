"""
Property-based tests for error handling.

These tests verify retry and circuit breaker properties across randomly
generated configurations.
"""

import asyncio
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest
from hypothesis import given, settings, strategies as st

from foodshare_search.error_handling.circuit_breaker import CircuitBreaker, CircuitState
from foodshare_search.error_handling.error_handler import ErrorHandler, RetryConfig
from foodshare_search.error_handling.errors import (
    CircuitOpen,
    RateLimited,
    SearchFailed,
)


retry_counts = st.integers(min_value=1, max_value=8)
base_delays = st.floats(min_value=0.01, max_value=5.0)
multiplier_values = st.floats(min_value=1.1, max_value=3.0)
attempt_numbers = st.integers(min_value=0, max_value=8)


@given(base=base_delays, multiplier=multiplier_values, attempt=attempt_numbers)
@settings(max_examples=100)
def test_backoff_delay_exponential_growth(base, multiplier, attempt):
    """
    For any attempt, the backoff delay equals base * multiplier^attempt and
    strictly grows for the following attempt.
    """
    config = RetryConfig(backoff_base_seconds=base, backoff_multiplier=multiplier)

    delay = config.get_backoff_delay(attempt)

    assert delay == pytest.approx(base * (multiplier ** attempt))
    assert config.get_backoff_delay(attempt + 1) > delay


@given(max_retries=retry_counts)
@settings(max_examples=50, deadline=None)
def test_retry_exhaustion_termination(max_retries):
    """
    For any always-failing operation, the handler makes exactly max_retries
    attempts, sleeps between them, and re-raises the last error.
    """
    handler = ErrorHandler(RetryConfig(max_retries=max_retries))
    calls = []

    async def always_fails():
        calls.append(len(calls))
        raise ConnectionError(f"attempt {len(calls)}")

    with patch('asyncio.sleep', new=AsyncMock(return_value=None)) as sleep:
        with pytest.raises(ConnectionError) as exc_info:
            asyncio.run(handler.retry_with_backoff(always_fails))

    assert len(calls) == max_retries
    assert sleep.await_count == max_retries - 1
    assert str(exc_info.value) == f"attempt {max_retries}"


@given(
    max_retries=st.integers(min_value=2, max_value=8),
    success_on_attempt=st.integers(min_value=1, max_value=8)
)
@settings(max_examples=50, deadline=None)
def test_retry_succeeds_before_exhaustion(max_retries, success_on_attempt):
    """
    For any operation that succeeds before retries run out, the handler
    returns its result and stops retrying.
    """
    if success_on_attempt > max_retries:
        success_on_attempt = max_retries

    handler = ErrorHandler(RetryConfig(max_retries=max_retries))
    calls = []

    async def fails_then_succeeds():
        calls.append(len(calls))
        if len(calls) < success_on_attempt:
            raise TimeoutError("slow backend")
        return {"items": []}

    with patch('asyncio.sleep', new=AsyncMock(return_value=None)):
        result = asyncio.run(handler.retry_with_backoff(fails_then_succeeds))

    assert result == {"items": []}
    assert len(calls) == success_on_attempt


def test_zero_retries_still_attempts_once():
    handler = ErrorHandler(RetryConfig(max_retries=0))
    operation = AsyncMock(return_value="ok")

    assert asyncio.run(handler.retry_with_backoff(operation, 1, key="v")) == "ok"
    operation.assert_awaited_once_with(1, key="v")


def test_cancellation_is_not_retried():
    handler = ErrorHandler(RetryConfig(max_retries=3, backoff_base_seconds=0))
    operation = AsyncMock(side_effect=asyncio.CancelledError())

    with pytest.raises(asyncio.CancelledError):
        asyncio.run(handler.retry_with_backoff(operation))

    assert operation.await_count == 1


def test_failed_attempts_are_logged(caplog):
    handler = ErrorHandler(RetryConfig(max_retries=2, backoff_base_seconds=0))
    operation = AsyncMock(side_effect=[RuntimeError("rpc 500"), "ok"])

    asyncio.run(handler.retry_with_backoff(operation))

    assert "Attempt: 1/2" in caplog.text
    assert "RuntimeError: rpc 500" in caplog.text


@given(threshold=st.integers(min_value=1, max_value=10))
@settings(max_examples=30)
def test_circuit_opens_exactly_at_threshold(threshold):
    """
    For any threshold, the circuit stays closed for threshold - 1 consecutive
    failures and opens on the next one.
    """
    breaker = CircuitBreaker(failure_threshold=threshold, reset_seconds=60)

    for _ in range(threshold - 1):
        breaker.record_failure()
        breaker.check()
    assert breaker.state == CircuitState.CLOSED

    breaker.record_failure()
    assert breaker.state == CircuitState.OPEN
    with pytest.raises(CircuitOpen):
        breaker.check()


def test_success_resets_failure_count():
    breaker = CircuitBreaker(failure_threshold=3)

    breaker.record_failure()
    breaker.record_failure()
    breaker.record_success()
    breaker.record_failure()
    breaker.record_failure()

    assert breaker.state == CircuitState.CLOSED
    assert breaker.consecutive_failures == 2


def test_expired_circuit_goes_half_open_and_recloses():
    breaker = CircuitBreaker(failure_threshold=1, reset_seconds=30)
    breaker.record_failure()
    breaker.opened_until = datetime.now() - timedelta(seconds=1)

    breaker.check()
    assert breaker.state == CircuitState.HALF_OPEN

    breaker.record_success()
    assert breaker.state == CircuitState.CLOSED
    assert breaker.opened_until is None


def test_half_open_failure_reopens():
    breaker = CircuitBreaker(failure_threshold=5, reset_seconds=30)
    for _ in range(5):
        breaker.record_failure()
    breaker.opened_until = datetime.now() - timedelta(seconds=1)
    breaker.check()

    breaker.record_failure()

    assert breaker.state == CircuitState.OPEN
    with pytest.raises(CircuitOpen) as exc_info:
        breaker.check()
    assert exc_info.value.reset_in <= timedelta(seconds=30)


def test_error_messages():
    assert str(RateLimited(timedelta(seconds=41.6))) == "Rate limit exceeded. Please wait 42 seconds."
    failure = SearchFailed(ConnectionError("offline"), fallback_error=RuntimeError("rpc 500"))
    assert str(failure) == "Search failed: offline"
    assert isinstance(failure.fallback_error, RuntimeError)
