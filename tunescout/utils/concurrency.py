"""Shared concurrency primitives for the recommendation pipeline.

Provides a per-event-loop search semaphore that every candidate source shares to
limit concurrent calls to the external search service, plus two fan-out
helpers:

1. **throttled_gather** -- a drop-in replacement for ``asyncio.gather`` that
   wraps each awaitable in a semaphore acquire/release.

2. **parallel_search** -- the fan-out-then-collect pattern used by every
   candidate source: dispatch N search queries in parallel, log failures,
   and return one result slot per query (``None`` for a failed query) so
   callers can keep results paired with the seed that produced them.

3. **gather_with_deadline** -- runs named task factories concurrently under
   an overall deadline.  Tasks still running at the deadline are cancelled
   and reported as :class:`TimeoutError`; nothing is raised for them.
"""

from __future__ import annotations

import asyncio
import weakref
from typing import Any, Awaitable, Callable, TypeVar

import structlog

from tunescout.utils.logging import get_logger

_T = TypeVar("_T")

_SEARCH_CONCURRENCY = 8

# One semaphore per event loop, shared by all candidate sources across all
# concurrent requests on that loop.
_SEARCH_SEMAPHORES: weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, asyncio.Semaphore] = (
    weakref.WeakKeyDictionary()
)

_logger: structlog.BoundLogger = get_logger(__name__)


def search_semaphore() -> asyncio.Semaphore:
    """Return the search semaphore of the running event loop."""
    loop = asyncio.get_running_loop()
    semaphore = _SEARCH_SEMAPHORES.get(loop)
    if semaphore is None:
        semaphore = asyncio.Semaphore(_SEARCH_CONCURRENCY)
        _SEARCH_SEMAPHORES[loop] = semaphore
    return semaphore


async def throttled_gather(
    coros: list[Awaitable[_T]],
    semaphore: asyncio.Semaphore | None = None,
    return_exceptions: bool = True,
) -> list[_T | BaseException]:
    """Run awaitables concurrently with semaphore throttling.

    Parameters
    ----------
    coros:
        Awaitable objects to execute concurrently.
    semaphore:
        Optional semaphore for concurrency control.  Defaults to the
        search semaphore of the running loop.
    return_exceptions:
        If ``True``, exceptions are returned in the results list rather
        than being raised.  Mirrors ``asyncio.gather`` semantics.

    Returns
    -------
    list[_T | BaseException]
        Results in the same order as the input coroutines.
    """
    if semaphore is None:
        semaphore = search_semaphore()

    async def _wrapped(coro: Awaitable[_T]) -> _T:
        async with semaphore:
            return await coro

    tasks = [_wrapped(c) for c in coros]
    return await asyncio.gather(*tasks, return_exceptions=return_exceptions)


async def parallel_search(
    search_fn: Callable[..., Awaitable[list[Any]]],
    queries: list[dict[str, Any]],
    logger: structlog.BoundLogger | None = None,
    error_msg: str = "search_query_failed",
) -> list[list[Any] | None]:
    """Execute multiple search queries in parallel with throttling.

    Parameters
    ----------
    search_fn:
        The async search function, called as ``search_fn(**query)``.
    queries:
        List of keyword-argument dicts, one per search call.
    logger:
        Optional structured logger for warnings on failures.
    error_msg:
        Log event name for failed queries.

    Returns
    -------
    list[list[Any] | None]
        One entry per query, in query order.  Failed queries yield ``None``.
    """
    if logger is None:
        logger = _logger

    coros = [search_fn(**q) for q in queries]
    raw_results = await throttled_gather(coros, return_exceptions=True)

    results: list[list[Any] | None] = []
    for idx, result in enumerate(raw_results):
        if isinstance(result, asyncio.CancelledError):
            raise result
        if isinstance(result, BaseException):
            logger.warning(error_msg, query=queries[idx], error=str(result))
            results.append(None)
        else:
            results.append(list(result))
    return results


async def gather_with_deadline(
    factories: dict[str, Callable[[], Awaitable[_T]]],
    deadline: float,
    task_timeout: float | None = None,
    max_parallel: int = 8,
) -> dict[str, _T | BaseException]:
    """Run named task factories concurrently under an overall deadline.

    Each factory is invoked inside the worker so coroutines are only
    created once a parallelism slot is free.  A task exceeding
    ``task_timeout`` or still pending at ``deadline`` resolves to a
    :class:`TimeoutError` instance.  Any other exception is returned in
    place of the result.  Cancelling the caller cancels every task before
    the ``CancelledError`` propagates.

    Returns
    -------
    dict[str, _T | BaseException]
        Result or exception per task name, in the input order.
    """
    semaphore = asyncio.Semaphore(max_parallel)

    async def _run(factory: Callable[[], Awaitable[_T]]) -> _T:
        async with semaphore:
            if task_timeout is None:
                return await factory()
            return await asyncio.wait_for(factory(), timeout=task_timeout)

    running = {name: asyncio.ensure_future(_run(factory)) for name, factory in factories.items()}
    if not running:
        return {}

    try:
        _, pending = await asyncio.wait(running.values(), timeout=deadline)
    except asyncio.CancelledError:
        for task in running.values():
            task.cancel()
        await asyncio.gather(*running.values(), return_exceptions=True)
        raise

    for task in pending:
        task.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)

    results: dict[str, _T | BaseException] = {}
    for name, task in running.items():
        if task in pending or task.cancelled():
            results[name] = TimeoutError(f"{name} missed the {deadline:.1f}s deadline")
            continue
        exc = task.exception()
        if isinstance(exc, asyncio.TimeoutError):
            results[name] = TimeoutError(f"{name} exceeded its {task_timeout}s timeout")
        elif exc is not None:
            results[name] = exc
        else:
            results[name] = task.result()
    return results
