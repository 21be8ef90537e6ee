"""
SpotMap Backend: Request Scope
===============================

What:  Ties every backend call a view makes to the lifetime of the request
       that triggered it.
Why:   A page the client has left should stop costing backend work.
How:   run() wraps each awaitable in a tracked asyncio task and optionally
       bounds it with one timeout (asyncio.wait_for). Leaving the scope
       cancels whatever is still outstanding. Work submitted after that is
       refused with RequestCancelledError instead of being started.
Who:   ViewService; provided to view routes by the get_request_scope
       dependency.

Timeouts:
    The timeout belongs to the call itself. When it fires the task is
    cancelled before RequestTimeoutError is raised, so there is exactly one
    outcome per call: the result, the call's own error, or the timeout.
"""

import asyncio
import logging
from typing import AsyncGenerator, Awaitable, Optional, Set, TypeVar

from spotmap.exceptions import RequestCancelledError, RequestTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RequestScope:
    """
    A cancellation scope for one view request.

    Usage:
        async with RequestScope("detail") as scope:
            spot = await scope.run(load(), timeout=15)
    """

    def __init__(self, name: str = "view"):
        self.name = name
        self._tasks: Set[asyncio.Task] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def run(self, awaitable: Awaitable[T], timeout: Optional[float] = None) -> T:
        """
        Run `awaitable` inside the scope.

        Raises:
            RequestCancelledError: The scope was already closed
            RequestTimeoutError: `timeout` seconds passed first
            Whatever the awaitable itself raises
        """
        if self._closed:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise RequestCancelledError(context={"scope": self.name})

        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)
        try:
            if timeout is None:
                return await task
            return await asyncio.wait_for(task, timeout)
        except asyncio.TimeoutError:
            logger.warning("%s scope: call gave up after %.1fs", self.name, timeout)
            raise RequestTimeoutError(timeout=timeout, context={"scope": self.name})
        finally:
            self._tasks.discard(task)

    def cancel(self) -> int:
        """Close the scope and cancel outstanding tasks. Returns how many were cancelled."""
        self._closed = True
        cancelled = 0
        for task in list(self._tasks):
            if not task.done():
                task.cancel()
                cancelled += 1
        if cancelled:
            logger.info("%s scope closed with %d call(s) cancelled", self.name, cancelled)
        return cancelled

    async def __aenter__(self) -> "RequestScope":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        outstanding = list(self._tasks)
        self.cancel()
        if outstanding:
            await asyncio.gather(*outstanding, return_exceptions=True)


async def get_request_scope() -> AsyncGenerator[RequestScope, None]:
    """FastAPI dependency: one RequestScope per request, closed on teardown."""
    async with RequestScope() as scope:
        yield scope
