"""
Request coalescer.

Merges concurrent requests for the same unit of work into one execution:
while an operation for a key is in flight, every caller with that key
awaits the same task and observes the same result or exception.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

from stockfeed.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class RequestCoalescer:
    """At most one in-flight execution per key.

    Keys are dropped as soon as their execution finishes, successfully or
    not, so the next call for the same key starts a fresh execution.
    """

    def __init__(self) -> None:
        self._pending: dict[str, asyncio.Task[Any]] = {}

    async def execute(self, key: str, operation: Callable[[], Awaitable[T]]) -> T:
        """Run ``operation`` for ``key``, or join the execution already running.

        Args:
            key: Identity of the unit of work (e.g. ``"acquire-image-AAPL"``).
            operation: Zero-argument coroutine factory. Only called when no
                execution for ``key`` is outstanding.

        Returns:
            The operation's result.

        Raises:
            Whatever the shared execution raised.
        """
        task = self._pending.get(key)
        if task is None:
            task = asyncio.ensure_future(self._run(key, operation))
            self._pending[key] = task
        else:
            logger.debug("Joining in-flight request: %s", key)

        # A cancelled waiter must not cancel the shared execution
        return await asyncio.shield(task)

    async def _run(self, key: str, operation: Callable[[], Awaitable[T]]) -> T:
        try:
            return await operation()
        finally:
            if self._pending.get(key) is asyncio.current_task():
                del self._pending[key]

    def is_pending(self, key: str) -> bool:
        """Return True if an execution for ``key`` is in flight."""
        return key in self._pending

    @property
    def pending_count(self) -> int:
        """Number of outstanding keys."""
        return len(self._pending)

    def pending_keys(self) -> list[str]:
        return list(self._pending)
