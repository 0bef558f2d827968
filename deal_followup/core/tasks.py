"""Error boundary for work that runs after the response has been sent."""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)


async def run_in_background(
    name: str,
    func: Callable[..., Awaitable[Any]],
    *args: Any,
    **kwargs: Any,
) -> None:
    """
    Await `func` and log, never raise, whatever it fails with.

    Schedule it with BackgroundTasks.add_task(run_in_background, name, func, ...).
    Nobody is left to receive an exception once the request has been answered,
    so the log is the only place a failure is observable.
    """
    try:
        result = await func(*args, **kwargs)
        logger.debug(f"Background task {name} finished: {result!r}")
    except Exception as e:
        logger.exception(f"Background task {name} failed: {e}")
