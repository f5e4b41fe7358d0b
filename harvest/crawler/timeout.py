"""Deadline wrapper for collaborator calls."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

import structlog

from harvest.errors import TaskTimeoutError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

DEFAULT_TASK_TIMEOUT = 15 * 60.0


async def with_timeout(
    task_fn: Callable[[], Awaitable[T]],
    timeout: float | None = DEFAULT_TASK_TIMEOUT,
    timeout_message: str = "Operation timed out",
) -> T:
    """Await ``task_fn()`` for at most ``timeout`` seconds.

    On deadline the task is cancelled; ``asyncio.wait_for`` waits for its
    ``finally``/``except CancelledError`` teardown before
    :class:`TaskTimeoutError` is raised here. Cancelling the caller cancels
    the task as well. ``timeout=None`` disables the deadline. A
    ``TimeoutError`` raised by the task itself before the deadline
    propagates unchanged.
    """

    loop = asyncio.get_running_loop()
    started = loop.time()
    try:
        return await asyncio.wait_for(task_fn(), timeout=timeout)
    except asyncio.TimeoutError as exc:
        if timeout is None or loop.time() - started < timeout:
            raise
        logger.warning("task timed out", timeout=timeout, message=timeout_message)
        raise TaskTimeoutError(timeout_message) from exc
