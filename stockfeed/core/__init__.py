"""Concurrency and error-handling primitives shared by the sync engine."""

from stockfeed.core.coalescer import RequestCoalescer
from stockfeed.core.exceptions import (
    NotFoundError,
    SessionClosedError,
    StockFeedError,
    UpstreamError,
    ValidationError,
)
from stockfeed.core.throttle import (
    ExponentialBackoff,
    FixedDelay,
    RetryExecutor,
    paced,
)

__all__ = [
    "ExponentialBackoff",
    "FixedDelay",
    "NotFoundError",
    "RequestCoalescer",
    "RetryExecutor",
    "SessionClosedError",
    "StockFeedError",
    "UpstreamError",
    "ValidationError",
    "paced",
]
