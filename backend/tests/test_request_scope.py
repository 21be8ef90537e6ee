"""
SpotMap Backend: Request Scope Tests
=====================================

What:  Timeout, cancellation and closed-scope behavior of RequestScope.
"""

import asyncio

import pytest

from spotmap.exceptions import RequestCancelledError, RequestTimeoutError
from spotmap.services.request_scope import RequestScope


async def answer(value, delay=0.0):
    await asyncio.sleep(delay)
    return value


class TestRequestScope:

    @pytest.mark.asyncio
    async def test_run_returns_result(self):
        async with RequestScope() as scope:
            assert await scope.run(answer(42)) == 42
            assert scope.pending == 0

    @pytest.mark.asyncio
    async def test_errors_propagate(self):
        async def boom():
            raise ValueError("bad")

        async with RequestScope() as scope:
            with pytest.raises(ValueError):
                await scope.run(boom())

    @pytest.mark.asyncio
    async def test_timeout_cancels_the_call(self):
        finished = []

        async def slow():
            await asyncio.sleep(5)
            finished.append(True)

        async with RequestScope("detail") as scope:
            with pytest.raises(RequestTimeoutError) as exc_info:
                await scope.run(slow(), timeout=0.05)

        assert exc_info.value.timeout == 0.05
        assert exc_info.value.context["scope"] == "detail"
        assert finished == []

    @pytest.mark.asyncio
    async def test_fast_call_within_timeout(self):
        async with RequestScope() as scope:
            assert await scope.run(answer("ok", delay=0.01), timeout=1.0) == "ok"

    @pytest.mark.asyncio
    async def test_cancel_stops_outstanding_work(self):
        scope = RequestScope()
        started = asyncio.Event()

        async def waits_forever():
            started.set()
            await asyncio.sleep(60)

        runner = asyncio.ensure_future(scope.run(waits_forever()))
        await started.wait()

        assert scope.cancel() == 1
        with pytest.raises(asyncio.CancelledError):
            await runner
        assert scope.closed

    @pytest.mark.asyncio
    async def test_closed_scope_refuses_work(self):
        async with RequestScope() as scope:
            pass

        with pytest.raises(RequestCancelledError):
            await scope.run(answer(1))
