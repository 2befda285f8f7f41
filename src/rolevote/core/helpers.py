from __future__ import annotations

import asyncio
import concurrent.futures
import inspect
from typing import Any, Awaitable, Callable, TypeVar

T = TypeVar("T")


async def maybe_await(x: Any) -> Any:
    """Await *x* if it is awaitable, otherwise return it unchanged."""
    if inspect.isawaitable(x):
        return await x
    return x


def run_sync(factory: Callable[[], Awaitable[T]]) -> T:
    """Run the coroutine produced by *factory* to completion from sync code.

    When the calling thread already runs an event loop, the coroutine is
    executed on a fresh loop in a helper thread so the caller's loop is not
    re-entered.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(_as_coroutine(factory))

    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
        return pool.submit(asyncio.run, _as_coroutine(factory)).result()


async def _as_coroutine(factory: Callable[[], Awaitable[T]]) -> T:
    return await factory()


__all__ = ["maybe_await", "run_sync"]
