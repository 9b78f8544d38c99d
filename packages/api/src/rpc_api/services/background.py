# This project was developed with assistance from AI tools.
"""Fire-and-forget side effects dispatched after a transition commits.

Tasks are retained in a module-level set until they finish so they are not
garbage-collected mid-flight, and every failure is logged instead of
propagating to the request that spawned it.
"""

import asyncio
import logging
from collections.abc import Awaitable

logger = logging.getLogger(__name__)

_background_tasks: set[asyncio.Task] = set()


async def _run_logged(awaitable: Awaitable, name: str) -> None:
    try:
        await awaitable
    except Exception:
        logger.exception("Background side effect '%s' failed", name)


def fire_and_forget(awaitable: Awaitable, *, name: str) -> asyncio.Task:
    """Schedule ``awaitable`` on the running loop and return its task."""
    task = asyncio.create_task(_run_logged(awaitable, name), name=name)
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


async def drain_background_tasks() -> None:
    """Wait for every pending side effect (shutdown and tests)."""
    if _background_tasks:
        await asyncio.gather(*list(_background_tasks), return_exceptions=True)
