"""Minimum-latency wrapper for asynchronous operations."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

T = TypeVar("T")

MERGE_STATUS_FLOOR_SECONDS = 0.5

Sleep = Callable[[float], Awaitable[object]]


def _discard_outcome(task: asyncio.Future[object]) -> None:
    if not task.cancelled():
        task.exception()


async def run_with_floor(
    operation: Callable[[], Awaitable[T]],
    floor_seconds: float,
    *,
    sleep: Sleep = asyncio.sleep,
) -> T:
    """Run ``operation`` and resolve no sooner than ``floor_seconds``.

    The operation starts right away and runs alongside the floor timer, so the
    total latency is ``max(operation, floor)``. Failures are re-raised only
    after the floor has elapsed.
    """
    if floor_seconds < 0:
        raise ValueError(f"Invalid floor: {floor_seconds}")

    task = asyncio.ensure_future(operation())
    try:
        if floor_seconds:
            await sleep(floor_seconds)
    except BaseException:
        # A failed operation can no longer be cancelled; mark its error as seen.
        task.add_done_callback(_discard_outcome)
        task.cancel()
        raise
    return await task
