"""
Tests for the retry, timeout and tracing decorators.
"""

import asyncio

import pytest

from refineflow.utils.decorators import async_retry, async_timeout, trace_context


class Flaky:
    def __init__(self, failures: int, error: Exception = ConnectionError("down")):
        self.failures = failures
        self.error = error
        self.calls = 0

    async def call(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return "ok"


class TestAsyncRetry:
    """Tests for async_retry."""

    async def test_retries_until_success(self) -> None:
        flaky = Flaky(failures=2)
        wrapped = async_retry(max_retries=3, retry_delay=0)(flaky.call)

        assert await wrapped() == "ok"
        assert flaky.calls == 3

    async def test_raises_last_error_when_exhausted(self) -> None:
        flaky = Flaky(failures=5)
        wrapped = async_retry(max_retries=2, retry_delay=0)(flaky.call)

        with pytest.raises(ConnectionError):
            await wrapped()
        assert flaky.calls == 3

    async def test_only_listed_errors_are_retried(self) -> None:
        flaky = Flaky(failures=1, error=KeyError("nope"))
        wrapped = async_retry(max_retries=3, retry_delay=0, retry_on=ConnectionError)(flaky.call)

        with pytest.raises(KeyError):
            await wrapped()
        assert flaky.calls == 1

    async def test_retry_if_can_veto(self) -> None:
        flaky = Flaky(failures=1)
        wrapped = async_retry(max_retries=3, retry_delay=0, retry_if=lambda e: False)(flaky.call)

        with pytest.raises(ConnectionError):
            await wrapped()
        assert flaky.calls == 1

    def test_negative_retries_rejected(self) -> None:
        with pytest.raises(ValueError):
            async_retry(max_retries=-1)


class TestAsyncTimeout:
    """Tests for async_timeout."""

    async def test_slow_call_times_out(self) -> None:
        @async_timeout(0.01)
        async def slow():
            await asyncio.sleep(1)

        with pytest.raises(TimeoutError, match="timed out"):
            await slow()

    async def test_fast_call_returns(self) -> None:
        @async_timeout(1)
        async def fast():
            return 7

        assert await fast() == 7

    def test_none_disables_the_limit(self) -> None:
        async def untouched():
            return None

        assert async_timeout(None)(untouched) is untouched


class TestTraceContext:
    """Tests for trace_context."""

    async def test_passes_result_and_errors_through(self) -> None:
        @trace_context(operation_type="demo", context_generator=lambda x: {"x": x})
        async def double(x):
            if x < 0:
                raise ValueError("negative")
            return x * 2

        assert await double(4) == 8
        with pytest.raises(ValueError):
            await double(-1)
