"""Async utilities for bridging blocking Notion calls to async callers."""

import asyncio
from typing import Any, Callable, Coroutine, Iterable, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")


async def run_sync(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run a synchronous function in a thread pool without blocking the event loop.

    Args:
        func: Synchronous function to call
        *args: Positional arguments for func
        **kwargs: Keyword arguments for func

    Returns:
        Result of func(*args, **kwargs)

    Example:
        # In MCP tool handler:
        mappings = await run_sync(store.find_all)
    """
    return await asyncio.to_thread(func, *args, **kwargs)


async def gather_limited(
    coros: Sequence[Coroutine[Any, Any, T]],
) -> list[T]:
    """Run coroutines concurrently and return results in input order.

    Exceptions propagate from the first failure.
    """
    return list(await asyncio.gather(*coros))


async def map_limited(
    func: Callable[[R], T],
    items: Iterable[R],
    max_parallel: int,
) -> list[T]:
    """Apply blocking *func* to each item in worker threads.

    At most *max_parallel* calls are in flight at once.  Results keep the
    order of *items*; *func* is expected to handle its own errors.

    Args:
        func: Synchronous single-argument function.
        items: Inputs.
        max_parallel: Concurrency cap (>= 1).

    Returns:
        List of results in the same order as *items*.
    """
    semaphore = asyncio.Semaphore(max(1, max_parallel))

    async def run_one(item: R) -> T:
        async with semaphore:
            return await asyncio.to_thread(func, item)

    return await gather_limited([run_one(item) for item in items])
