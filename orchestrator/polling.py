# ============================================================================
# POLLING PRIMITIVE
# ============================================================================
# STATUS: Orchestrator - Cancellable interval polling
# PURPOSE: Wait for a condition without busy-spinning or recursion
# CREATED: 02 OCT 2026
# ============================================================================
"""
Polling

poll_immediate_until() evaluates an async condition right away and then
once per interval until it returns True. A set stop event ends the wait
early; the wait itself is asyncio.wait_for on the event, so shutdown does
not have to sit out a whole interval.
"""

import asyncio
from typing import Awaitable, Callable, Optional

Condition = Callable[[], Awaitable[bool]]


async def poll_immediate_until(
    condition: Condition,
    interval: float,
    stop_event: Optional[asyncio.Event] = None,
) -> bool:
    """
    Poll until the condition holds.

    Args:
        condition: Async predicate. Exceptions propagate to the caller.
        interval: Seconds between evaluations
        stop_event: Optional event that aborts the wait

    Returns:
        True when the condition held, False when the stop event was set first
    """
    while True:
        if stop_event is not None and stop_event.is_set():
            return False

        if await condition():
            return True

        if stop_event is None:
            await asyncio.sleep(interval)
            continue

        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval)
            return False
        except asyncio.TimeoutError:
            pass


__all__ = ["Condition", "poll_immediate_until"]
