"""Dedicated worker pools for blocking LLM calls made from async stages."""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Callable, Iterator
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from typing import Any, TypeVar

T = TypeVar("T")


@contextmanager
def worker_pool(max_workers: int, *, name: str) -> Iterator[ThreadPoolExecutor]:
    """Yield a pool sized so every call in a fan-out starts immediately.

    On exit the pool is shut down without waiting: calls abandoned after a
    timeout keep their thread until they return, but never hold up the caller.
    """

    pool = ThreadPoolExecutor(max_workers=max(1, max_workers), thread_name_prefix=name)
    try:
        yield pool
    finally:
        pool.shutdown(wait=False, cancel_futures=True)


async def call_in_pool(
    pool: ThreadPoolExecutor,
    fn: Callable[..., T],
    *args: Any,
    timeout_seconds: float | None = None,
    **kwargs: Any,
) -> T:
    """Run ``fn`` on ``pool`` and await it, bounded by ``timeout_seconds``.

    Raises:
        TimeoutError: when the call does not finish in time.
    """

    loop = asyncio.get_running_loop()
    call = loop.run_in_executor(pool, functools.partial(fn, *args, **kwargs))
    if timeout_seconds is None:
        return await call
    return await asyncio.wait_for(call, timeout=timeout_seconds)
