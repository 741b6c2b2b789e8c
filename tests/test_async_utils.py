"""비동기 유틸리티 테스트."""
import asyncio

import pytest

from backend.common.async_utils import (
    Outcome,
    async_with_fallback,
    gather_in_batches,
    timeout_with_default,
    with_timeout,
)


async def _value(v, delay=0.0):
    await asyncio.sleep(delay)
    return v


async def _boom():
    raise ValueError("boom")


class TestWithTimeout:
    @pytest.mark.asyncio
    async def test_success(self):
        outcome = await with_timeout(_value(3), 1)
        assert outcome == Outcome.success(3)
        assert outcome.ok

    @pytest.mark.asyncio
    async def test_timeout(self):
        outcome = await with_timeout(_value(3, delay=1), 0.01)
        assert outcome.timed_out
        assert not outcome.ok
        assert outcome.unwrap_or("default") == "default"

    @pytest.mark.asyncio
    async def test_failure_is_captured(self):
        outcome = await with_timeout(_boom(), 1)
        assert isinstance(outcome.error, ValueError)
        assert not outcome.timed_out

    @pytest.mark.asyncio
    async def test_timeout_with_default(self):
        assert await timeout_with_default(_value(1, delay=1), 0.01, default_value=[]) == []
        assert await timeout_with_default(_boom(), 1, default_value=0) == 0
        assert await timeout_with_default(_value("ok"), 1) == "ok"


class TestGatherInBatches:
    @pytest.mark.asyncio
    async def test_order_and_failures(self):
        async def worker(n):
            if n == 2:
                raise RuntimeError("two")
            return n * 10

        outcomes = await gather_in_batches([1, 2, 3], worker, batch_size=2)

        assert [o.value for o in outcomes] == [10, None, 30]
        assert isinstance(outcomes[1].error, RuntimeError)

    @pytest.mark.asyncio
    async def test_batch_settles_before_next(self):
        events = []

        async def worker(n):
            events.append(("start", n))
            await asyncio.sleep(0.01 * (3 - n % 3))
            events.append(("end", n))
            return n

        await gather_in_batches([0, 1, 2, 3], worker, batch_size=2)

        starts_of_second = events.index(("start", 2))
        assert ("end", 0) in events[:starts_of_second]
        assert ("end", 1) in events[:starts_of_second]

    @pytest.mark.asyncio
    async def test_invalid_batch_size(self):
        with pytest.raises(ValueError):
            await gather_in_batches([1], _value, batch_size=0)

    @pytest.mark.asyncio
    async def test_empty(self):
        assert await gather_in_batches([], _value, batch_size=3) == []


class TestAsyncWithFallback:
    @pytest.mark.asyncio
    async def test_returns_fallback_on_error(self):
        @async_with_fallback(fallback_value={"ok": False})
        async def flaky():
            raise RuntimeError("nope")

        assert await flaky() == {"ok": False}

    @pytest.mark.asyncio
    async def test_passes_result_through(self):
        @async_with_fallback(fallback_value=None)
        async def fine(x):
            return x + 1

        assert await fine(1) == 2
        assert fine.__name__ == "fine"
