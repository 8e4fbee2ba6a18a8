"""Async utilities for offloading blocking file and transform work."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable, TypeVar

T = TypeVar("T")
logger = logging.getLogger(__name__)

# Module-level semaphore, initialized once per process by the CLI or lifespan
_semaphore: asyncio.Semaphore | None = None


def init_semaphore(max_parallel: int = 16) -> None:
    """Initialize the concurrency semaphore. Call once at startup."""
    global _semaphore
    _semaphore = asyncio.Semaphore(max_parallel)
    logger.info(
        "File operation semaphore initialized: max_parallel=%d",
        max_parallel,
    )


async def run_sync(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run a blocking function in a thread pool without blocking the event loop.

    Bounded by the concurrency semaphore when it has been initialized,
    unbounded otherwise.

    Args:
        func: Synchronous function to call
        *args: Positional arguments for func
        **kwargs: Keyword arguments for func

    Returns:
        Result of func(*args, **kwargs)

    Example:
        content, _ = await run_sync(read_file_with_encoding, path)
    """
    if _semaphore is None:
        return await asyncio.to_thread(func, *args, **kwargs)
    async with _semaphore:
        return await asyncio.to_thread(func, *args, **kwargs)


async def gather_settled(
    aws: Iterable[Awaitable[T]],
) -> list[T | BaseException]:
    """Wait for every awaitable to settle, successful or not.

    This is the join barrier for a fan-out: it never returns before all
    awaitables have finished, and a failure in one never cancels its
    siblings.  Exceptions are returned in place of results and logged.

    Args:
        aws: Awaitables to run concurrently.

    Returns:
        Results (or the raised exceptions) in input order.
    """
    results = await asyncio.gather(*aws, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            logger.debug("Task settled with error: %r", result)
    return list(results)
