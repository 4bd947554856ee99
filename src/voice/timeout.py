"""Deadline guard for awaited pipeline stages."""

import asyncio
from typing import Awaitable, TypeVar

from utils.exceptions import StageTimeoutError
from utils.logger import logger

T = TypeVar("T")


def _consume_late_result(task: "asyncio.Future") -> None:
    """Retrieve the outcome of an abandoned stage so asyncio does not warn about it."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug(f"Abandoned stage finished with error after timeout: {exc}")


async def with_timeout(awaitable: Awaitable[T], timeout_ms: int, label: str) -> T:
    """Await ``awaitable`` for at most ``timeout_ms`` milliseconds.

    The underlying operation is not cancelled when the deadline wins; it keeps
    running and its late result (or error) is discarded. The deadline timer is
    released before this coroutine returns or raises.

    Args:
        awaitable: Coroutine or future to wait for
        timeout_ms: Deadline in milliseconds
        label: Stage name used in the timeout error (e.g. "download")

    Returns:
        The operation's result if it completes first

    Raises:
        StageTimeoutError: If the deadline elapses first
        Exception: Whatever the operation raised, if it failed first
    """
    task = asyncio.ensure_future(awaitable)
    done, _ = await asyncio.wait({task}, timeout=timeout_ms / 1000)
    if task in done:
        return task.result()

    task.add_done_callback(_consume_late_result)
    raise StageTimeoutError(label, timeout_ms)
