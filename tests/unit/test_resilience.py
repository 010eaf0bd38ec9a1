"""
Unit tests for retry and circuit breaker helpers.
"""

import asyncio

import pytest
from unittest.mock import AsyncMock, patch

from shared.circuit_breaker import CircuitBreaker, CircuitBreakerOpenException
from shared.retry import RetryConfig, RetryError, _calculate_delay, retry_async


class TestRetry:
    """Test cases for retry_async."""

    @pytest.fixture
    def config(self):
        return RetryConfig(max_attempts=3, base_delay=0, jitter=False)

    @pytest.mark.asyncio
    async def test_succeeds_after_failures(self, config):
        func = AsyncMock(side_effect=[ConnectionError("down"), ConnectionError("down"), "ok"])

        result = await retry_async(func, exceptions=(ConnectionError,), config=config, name="lookup")

        assert result == "ok"
        assert func.await_count == 3

    @pytest.mark.asyncio
    async def test_exhausted_attempts_raise_retry_error(self, config):
        last = ConnectionError("still down")
        func = AsyncMock(side_effect=[ConnectionError("down"), ConnectionError("down"), last])

        with pytest.raises(RetryError) as exc_info:
            await retry_async(func, exceptions=(ConnectionError,), config=config, name="lookup")

        assert exc_info.value.attempts == 3
        assert exc_info.value.last_exception is last

    @pytest.mark.asyncio
    async def test_other_exceptions_are_not_retried(self, config):
        func = AsyncMock(side_effect=ValueError("bad input"))

        with pytest.raises(ValueError):
            await retry_async(func, exceptions=(ConnectionError,), config=config)

        assert func.await_count == 1

    @pytest.mark.asyncio
    async def test_backs_off_between_attempts(self):
        config = RetryConfig(max_attempts=3, base_delay=0.5, jitter=False)
        func = AsyncMock(side_effect=[ConnectionError(), ConnectionError(), "ok"])

        with patch("shared.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await retry_async(func, exceptions=(ConnectionError,), config=config)

        assert [c.args[0] for c in sleep.await_args_list] == [0.5, 1.0]

    def test_delay_is_capped(self):
        config = RetryConfig(base_delay=1.0, max_delay=3.0, jitter=False)
        assert _calculate_delay(5, config) == 3.0

    def test_linear_backoff(self):
        config = RetryConfig(base_delay=0.2, jitter=False, backoff_strategy="linear")
        assert _calculate_delay(3, config) == pytest.approx(0.6)


class TestCircuitBreaker:
    """Test cases for CircuitBreaker."""

    @pytest.mark.asyncio
    async def test_opens_after_threshold(self):
        breaker = CircuitBreaker(failure_threshold=2, recovery_timeout=60,
                                 expected_exception=ConnectionError, name="test")
        failing = AsyncMock(side_effect=ConnectionError("down"))

        for _ in range(2):
            with pytest.raises(ConnectionError):
                await breaker.call(failing)

        assert breaker.is_open()
        with pytest.raises(CircuitBreakerOpenException):
            await breaker.call(failing)
        assert failing.await_count == 2

    @pytest.mark.asyncio
    async def test_unexpected_exceptions_do_not_count(self):
        breaker = CircuitBreaker(failure_threshold=1, expected_exception=ConnectionError)

        with pytest.raises(ValueError):
            await breaker.call(AsyncMock(side_effect=ValueError("bad")))

        assert not breaker.is_open()
        assert breaker.get_state()["failure_count"] == 0

    @pytest.mark.asyncio
    async def test_half_open_success_closes(self):
        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=0,
                                 expected_exception=ConnectionError)

        with pytest.raises(ConnectionError):
            await breaker.call(AsyncMock(side_effect=ConnectionError()))
        assert breaker.is_open()

        assert await breaker.call(AsyncMock(return_value="ok")) == "ok"
        assert breaker.get_state()["state"] == "closed"

    @pytest.mark.asyncio
    async def test_half_open_failure_reopens(self):
        breaker = CircuitBreaker(failure_threshold=3, recovery_timeout=0,
                                 expected_exception=ConnectionError)
        for _ in range(3):
            with pytest.raises(ConnectionError):
                await breaker.call(AsyncMock(side_effect=ConnectionError()))

        with pytest.raises(ConnectionError):
            await breaker.call(AsyncMock(side_effect=ConnectionError()))

        assert breaker.is_open()

    @pytest.mark.asyncio
    async def test_half_open_lets_a_single_call_through(self):
        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=0,
                                 expected_exception=ConnectionError)
        with pytest.raises(ConnectionError):
            await breaker.call(AsyncMock(side_effect=ConnectionError()))

        release = asyncio.Event()
        calls = 0

        async def slow_recovery():
            nonlocal calls
            calls += 1
            await release.wait()
            return "ok"

        first = asyncio.create_task(breaker.call(slow_recovery))
        await asyncio.sleep(0)
        results = await asyncio.gather(
            *(breaker.call(slow_recovery) for _ in range(4)), return_exceptions=True
        )
        release.set()

        assert await first == "ok"
        assert calls == 1
        assert all(isinstance(r, CircuitBreakerOpenException) for r in results)
        assert breaker.get_state()["state"] == "closed"

    @pytest.mark.asyncio
    async def test_unexpected_error_frees_the_trial_slot(self):
        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=0,
                                 expected_exception=ConnectionError)
        with pytest.raises(ConnectionError):
            await breaker.call(AsyncMock(side_effect=ConnectionError()))

        with pytest.raises(ValueError):
            await breaker.call(AsyncMock(side_effect=ValueError("caller bug")))

        assert await breaker.call(AsyncMock(return_value="ok")) == "ok"
        assert breaker.get_state()["state"] == "closed"
