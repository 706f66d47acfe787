"""
Tests for running blocking calls off the event loop.
"""

import asyncio
import threading

import pytest

from anykv.concurrency import run_sync


@pytest.mark.asyncio
async def test_returns_result():
    assert await run_sync(lambda a, b=0: a + b, 1, b=2) == 3


@pytest.mark.asyncio
async def test_runs_on_pool_thread():
    name = await run_sync(lambda: threading.current_thread().name)
    assert name.startswith("anykv")


@pytest.mark.asyncio
async def test_propagates_exceptions():
    def fail():
        raise KeyError("missing")

    with pytest.raises(KeyError):
        await run_sync(fail)


@pytest.mark.asyncio
async def test_calls_run_concurrently():
    barrier = threading.Barrier(2, timeout=5)
    results = await asyncio.gather(run_sync(barrier.wait), run_sync(barrier.wait))
    assert sorted(results) == [0, 1]
