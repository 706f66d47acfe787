"""
Async concurrency helpers.

Every contract operation is a coroutine, but the sqlite backend talks to the
blocking ``sqlite3`` module. Its calls run on a shared thread pool off the
event loop.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Any, TypeVar

T = TypeVar("T")


def _default_max_workers() -> int:
    return min(32, (os.cpu_count() or 1) + 4)


_EXECUTOR = ThreadPoolExecutor(max_workers=_default_max_workers(), thread_name_prefix="anykv")


async def run_sync(func: Callable[..., T], /, *args: Any, **kwargs: Any) -> T:
    """
    Run a blocking callable on the shared pool and await its result.

    The concurrent future is polled from the loop every millisecond instead of
    being wrapped with ``loop.run_in_executor()``. Cancelling the awaiting task
    cancels the future if the call has not started yet.
    """
    future = _EXECUTOR.submit(partial(func, *args, **kwargs))
    try:
        while not future.done():
            await asyncio.sleep(0.001)
        return future.result()
    except asyncio.CancelledError:
        future.cancel()
        raise


__all__ = ["run_sync"]
