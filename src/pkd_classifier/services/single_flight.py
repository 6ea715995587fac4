"""Per-key deduplication of concurrent coroutine calls."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Hashable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SingleFlight:
    """Share one in-flight computation between concurrent callers of a key.

    The first caller for a key starts the computation as a task; callers
    arriving while it runs await the same task and receive the same result
    or exception. The key is forgotten as soon as the task finishes, so
    nothing is memoized.

    Each waiter awaits the task through asyncio.shield, so a cancelled
    request does not cancel the computation the other waiters depend on.

    Example:
        ```python
        flight = SingleFlight()
        result = await flight.do(("candidates", description), lambda: load(description))
        ```
    """

    def __init__(self) -> None:
        self._calls: dict[Hashable, asyncio.Task[Any]] = {}

    async def do(self, key: Hashable, fn: Callable[[], Awaitable[T]]) -> T:
        """Run fn for key, or join the run already in progress.

        Args:
            key: Identity of the computation
            fn: Zero-argument coroutine factory, only called by the first caller

        Returns:
            The result of the shared computation
        """
        task = self._calls.get(key)
        if task is None:
            task = asyncio.ensure_future(fn())
            self._calls[key] = task
            task.add_done_callback(lambda done, key=key: self._forget(key, done))
        else:
            logger.debug("Joining in-flight call | key=%r", key)
        return await asyncio.shield(task)

    def _forget(self, key: Hashable, task: asyncio.Task[Any]) -> None:
        if self._calls.get(key) is task:
            del self._calls[key]
        # mark the exception retrieved when every waiter was cancelled
        if not task.cancelled():
            task.exception()

    @property
    def in_flight(self) -> int:
        """Number of keys currently being computed."""
        return len(self._calls)
