from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, TypeVar

from .logging import log_event

T = TypeVar("T")


async def best_effort(
    action: Callable[[], Awaitable[T]],
    *,
    logger: logging.Logger,
    event: str,
    message: str,
    default: T | None = None,
    **fields: Any,
) -> T | None:
    """Await ``action()`` and return ``default`` instead of raising.

    For health checks and shutdown steps whose failure must not fail the caller.
    The error is logged as ``event`` at warning level. Cancellation still
    propagates.
    """
    try:
        return await action()
    except Exception as error:
        log_event(
            logger,
            level="warning",
            event=event,
            message=message,
            error=str(error),
            error_type=type(error).__name__,
            **fields,
        )
        return default


async def run_uncancellable(
    awaitable: Awaitable[T],
    *,
    logger: logging.Logger,
    event: str,
    message: str,
    **fields: Any,
) -> T:
    """Await ``awaitable`` to completion even if the calling task is cancelled.

    Used around transaction broadcast + confirmation: once a transaction may be
    on the wire, abandoning the wait would lose its outcome. The caller still
    sees ``CancelledError`` but only after the inner task has finished, and the
    outcome nobody will read is logged as ``event``.
    """
    task = asyncio.ensure_future(awaitable)
    try:
        return await asyncio.shield(task)
    except asyncio.CancelledError:
        if not task.done():
            await asyncio.wait({task})
        if task.cancelled():
            log_event(logger, level="warning", event=event, message=message, outcome="cancelled", **fields)
        elif (error := task.exception()) is not None:
            log_event(
                logger,
                level="warning",
                event=event,
                message=message,
                outcome="failed",
                error=str(error),
                error_type=type(error).__name__,
                **fields,
            )
        else:
            log_event(logger, level="warning", event=event, message=message, outcome="completed", **fields)
        raise
