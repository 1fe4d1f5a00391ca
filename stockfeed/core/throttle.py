"""
Throttled execution.

Retry-with-backoff and rate-limited sequential iteration are the same idea:
run a step, then wait according to a delay policy before the next one.
``RetryExecutor`` applies an exponential policy between failed attempts;
``paced`` applies a fixed policy between items of a batch.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import (
    AsyncIterator,
    Awaitable,
    Callable,
    Protocol,
    Sequence,
    TypeVar,
)

from stockfeed.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[None]]


class DelayPolicy(Protocol):
    def delay_for(self, step: int) -> float:
        """Seconds to wait after step ``step`` (0-based)."""
        ...


@dataclass(frozen=True)
class FixedDelay:
    """The same delay after every step."""

    seconds: float

    def delay_for(self, step: int) -> float:
        return self.seconds


@dataclass(frozen=True)
class ExponentialBackoff:
    """``base_delay * 2**step``, optionally capped at ``max_delay``."""

    base_delay: float
    max_delay: float | None = None

    def delay_for(self, step: int) -> float:
        delay = self.base_delay * (2 ** step)
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return delay


class RetryExecutor:
    """Retries a failing async operation with exponential backoff.

    ``max_attempts`` counts retries, so an always-failing operation is
    attempted ``max_attempts + 1`` times before the last error is raised.

    Attributes:
        max_attempts: Default number of retries.
        base_delay: Default delay (seconds) before the first retry.
        retry_on: Exception types that trigger a retry; anything else
            propagates immediately.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        retry_on: tuple[type[BaseException], ...] = (Exception,),
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.retry_on = retry_on
        self._sleep = sleep

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        max_attempts: int | None = None,
        base_delay: float | None = None,
    ) -> T:
        """Run ``operation`` until it succeeds or retries are exhausted.

        Args:
            operation: Zero-argument coroutine factory, called once per attempt.
            max_attempts: Overrides the default retry count.
            base_delay: Overrides the default base delay.

        Returns:
            The first successful result.

        Raises:
            The last exception once ``max_attempts`` retries have failed.
        """
        retries = self.max_attempts if max_attempts is None else max_attempts
        policy = ExponentialBackoff(
            self.base_delay if base_delay is None else base_delay
        )

        attempt = 0
        while True:
            try:
                return await operation()
            except self.retry_on as exc:
                if attempt >= retries:
                    logger.error("All %d attempts failed: %s", retries + 1, exc)
                    raise
                delay = policy.delay_for(attempt)
                logger.warning(
                    "Attempt %d/%d failed: %s. Retrying in %.1fs",
                    attempt + 1, retries + 1, exc, delay,
                )
                await self._sleep(delay)
                attempt += 1


async def paced(
    items: Sequence[T],
    policy: DelayPolicy,
    sleep: SleepFunc = asyncio.sleep,
) -> AsyncIterator[T]:
    """Yield ``items`` one at a time, sleeping between consecutive items.

    The sleep runs when the consumer asks for the next item, i.e. after its
    loop body finished, whether that body succeeded or swallowed an error.
    No sleep follows the last item.
    """
    last = len(items) - 1
    for index, item in enumerate(items):
        yield item
        if index < last:
            await sleep(policy.delay_for(index))
