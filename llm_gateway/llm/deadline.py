"""
Race a single awaitable against a timer and an optional cancel signal.

Whichever settles first decides the outcome. The losing operation is
cancelled and allowed to unwind before the caller sees the result, so an
abandoned read never overlaps with cleanup of the stream it was reading.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

import structlog

from .exceptions import LLMTimeoutError, RequestCancelledError, TimeoutPhase

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def ensure_not_cancelled(cancel_event: asyncio.Event | None) -> None:
    """Fail fast when the caller's signal has already fired."""
    if cancel_event is not None and cancel_event.is_set():
        raise RequestCancelledError()


async def _abandon(future: asyncio.Future) -> None:
    """Cancel a pending future and wait until it has unwound."""
    if future.done():
        return
    future.cancel()
    await asyncio.wait({future})
    if not future.cancelled():
        # Retrieve to keep the loop from reporting it as unhandled.
        future.exception()


async def race_deadline(
    operation: Awaitable[T],
    *,
    timeout: float,
    phase: TimeoutPhase,
    cancel_event: asyncio.Event | None = None,
) -> T:
    """
    Await ``operation`` for at most ``timeout`` seconds.

    Args:
        operation: Coroutine or future to await
        timeout: Bound in seconds, measured from this call
        phase: Reported on the timeout error
        cancel_event: External cancellation signal

    Returns:
        The operation's result

    Raises:
        LLMTimeoutError: The timer fired first
        RequestCancelledError: The cancel signal fired first
    """
    if cancel_event is not None and cancel_event.is_set():
        if asyncio.iscoroutine(operation):
            operation.close()
        raise RequestCancelledError()

    task = asyncio.ensure_future(operation)
    watcher: asyncio.Future | None = None
    waiters: set[asyncio.Future] = {task}
    if cancel_event is not None:
        watcher = asyncio.ensure_future(cancel_event.wait())
        waiters.add(watcher)

    try:
        done, _ = await asyncio.wait(
            waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        # Covers outer task cancellation as well as a lost race.
        if watcher is not None:
            await _abandon(watcher)
        if not task.done():
            await _abandon(task)

    # The operation may settle while the watcher unwinds; its result still wins.
    if task.done() and not task.cancelled():
        return task.result()
    if watcher is not None and watcher in done:
        logger.info("Request cancelled", phase=phase.value)
        raise RequestCancelledError()
    logger.warning("Deadline expired", phase=phase.value, timeout=timeout)
    raise LLMTimeoutError(timeout, phase)
