"""RequestCoalescer tests."""
import asyncio

import pytest

from stockfeed.core.coalescer import RequestCoalescer


async def test_concurrent_calls_share_one_execution():
    coalescer = RequestCoalescer()
    calls = 0
    release = asyncio.Event()

    async def operation():
        nonlocal calls
        calls += 1
        await release.wait()
        return "logo.png"

    waiters = [asyncio.create_task(coalescer.execute("acquire-image-AAPL", operation)) for _ in range(5)]
    await asyncio.sleep(0)
    assert coalescer.is_pending("acquire-image-AAPL")
    assert coalescer.pending_count == 1

    release.set()
    results = await asyncio.gather(*waiters)

    assert calls == 1
    assert results == ["logo.png"] * 5
    assert coalescer.pending_count == 0


async def test_all_waiters_see_the_same_error():
    coalescer = RequestCoalescer()
    calls = 0

    async def operation():
        nonlocal calls
        calls += 1
        await asyncio.sleep(0.01)
        raise RuntimeError("upstream down")

    results = await asyncio.gather(
        *(coalescer.execute("k", operation) for _ in range(3)),
        return_exceptions=True,
    )

    assert calls == 1
    assert all(isinstance(r, RuntimeError) for r in results)
    assert len({id(r) for r in results}) == 1
    assert not coalescer.is_pending("k")


async def test_key_is_released_after_completion():
    coalescer = RequestCoalescer()
    calls = 0

    async def operation():
        nonlocal calls
        calls += 1
        return calls

    assert await coalescer.execute("k", operation) == 1
    assert await coalescer.execute("k", operation) == 2
    assert coalescer.pending_keys() == []


async def test_key_is_released_after_failure():
    coalescer = RequestCoalescer()

    async def failing():
        raise ValueError("boom")

    async def ok():
        return "ok"

    with pytest.raises(ValueError):
        await coalescer.execute("k", failing)
    assert await coalescer.execute("k", ok) == "ok"


async def test_distinct_keys_run_independently():
    coalescer = RequestCoalescer()
    started: list[str] = []

    def make(name):
        async def operation():
            started.append(name)
            await asyncio.sleep(0.01)
            return name
        return operation

    results = await asyncio.gather(
        coalescer.execute("a", make("a")),
        coalescer.execute("b", make("b")),
    )
    assert results == ["a", "b"]
    assert sorted(started) == ["a", "b"]


async def test_cancelled_waiter_does_not_cancel_shared_execution():
    coalescer = RequestCoalescer()
    release = asyncio.Event()

    async def operation():
        await release.wait()
        return 42

    first = asyncio.create_task(coalescer.execute("k", operation))
    second = asyncio.create_task(coalescer.execute("k", operation))
    await asyncio.sleep(0)

    first.cancel()
    with pytest.raises(asyncio.CancelledError):
        await first

    release.set()
    assert await second == 42
