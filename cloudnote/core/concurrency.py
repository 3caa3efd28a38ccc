"""
Concurrency Infrastructure.

Thread pool and background task management for the application.
The pool is created lazily on first access and cleaned up during shutdown.

Pools:
    _io_pool    - TracedThreadPoolExecutor for blocking I/O (filesystem blobs)

Background tasks:
    spawn_background() schedules fire-and-forget coroutines (view count
    increments) without awaiting them. Strong references are held until
    each task completes, failures are logged and never reach the caller,
    and drain_background_tasks() lets shutdown (and tests) wait for them.

Usage:
    from cloudnote.core.concurrency import get_io_pool, spawn_background

    # Run blocking code in thread pool (preserves structlog context)
    result = await loop.run_in_executor(get_io_pool(), blocking_fn, arg)

    # Schedule work that must not delay the response
    spawn_background(store.increment_view_count(path), name="view-count")
"""

import asyncio
import contextvars
from collections.abc import Coroutine
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from cloudnote.core.logging import get_logger, log_with_source

logger = get_logger(__name__)

_io_pool: ThreadPoolExecutor | None = None
_background_tasks: set[asyncio.Task] = set()


class TracedThreadPoolExecutor(ThreadPoolExecutor):
    """ThreadPoolExecutor that propagates contextvars to worker threads.

    Standard ThreadPoolExecutor does not carry structlog context or
    request_id into worker threads. This subclass copies the current
    context before dispatching, so log records keep their correlation data.
    """

    def submit(self, fn, /, *args, **kwargs):
        ctx = contextvars.copy_context()
        return super().submit(ctx.run, fn, *args, **kwargs)


def get_io_pool() -> TracedThreadPoolExecutor:
    """Get the shared thread pool for blocking I/O operations.

    Creates the pool lazily on first call using config from concurrency.yaml.
    """
    global _io_pool
    if _io_pool is None:
        from cloudnote.core.config import get_app_config
        max_workers = get_app_config().concurrency.thread_pool.max_workers
        _io_pool = TracedThreadPoolExecutor(max_workers=max_workers)
        logger.info("Thread pool created", extra={"max_workers": max_workers})
    return _io_pool


def _on_background_done(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        log_with_source(
            logger,
            "tasks",
            "warning",
            "Background task failed",
            task=task.get_name(),
            error=str(exc),
            exception_type=type(exc).__name__,
        )


def spawn_background(coro: Coroutine[Any, Any, Any], name: str | None = None) -> asyncio.Task:
    """Schedule a coroutine without awaiting it.

    Args:
        coro: Coroutine to run on the current event loop
        name: Task name used in failure logs

    Returns:
        The scheduled task
    """
    task = asyncio.get_running_loop().create_task(coro, name=name)
    _background_tasks.add(task)
    task.add_done_callback(_on_background_done)
    return task


def pending_background_tasks() -> int:
    """Number of background tasks that have not finished yet."""
    return len(_background_tasks)


async def drain_background_tasks(timeout: float | None = None) -> None:
    """Wait for outstanding background tasks.

    Tasks spawned while draining are awaited too. Tasks still running
    when the timeout expires are cancelled.
    """
    loop = asyncio.get_running_loop()
    deadline = None if timeout is None else loop.time() + timeout

    while _background_tasks:
        pending = list(_background_tasks)
        remaining = None if deadline is None else max(deadline - loop.time(), 0)
        done, not_done = await asyncio.wait(pending, timeout=remaining)
        if not_done:
            for task in not_done:
                task.cancel()
            await asyncio.gather(*not_done, return_exceptions=True)
            logger.warning(
                "Background tasks cancelled at drain timeout",
                extra={"cancelled": len(not_done)},
            )
            break


async def shutdown_pools() -> None:
    """Shut down all pools gracefully. Called during application shutdown.

    Pool shutdown is blocking, so we run it in a thread to avoid stalling
    the event loop during graceful shutdown.
    """
    global _io_pool

    if _io_pool is not None:
        await asyncio.to_thread(_io_pool.shutdown, wait=True)
        logger.info("Thread pool shut down")
        _io_pool = None
