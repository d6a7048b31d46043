"""Timeout-bounded, cancellable polling waits."""

import asyncio
import time
from typing import Awaitable, Callable


async def wait_until(
    predicate: Callable[[], Awaitable[bool]],
    timeout_ms: int,
    interval_ms: int = 100,
    cancel: asyncio.Event | None = None,
) -> bool:
    """
    Poll predicate until it returns True.

    Args:
        predicate: Async check, evaluated immediately and then every interval_ms
        timeout_ms: Give up after this long
        interval_ms: Poll interval
        cancel: Optional event that aborts the wait when set

    Returns:
        True once the predicate holds, False on timeout or cancellation
    """
    deadline = time.monotonic() + timeout_ms / 1000

    while True:
        if await predicate():
            return True
        if cancel is not None and cancel.is_set():
            return False

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return False

        delay = min(interval_ms / 1000, remaining)
        if cancel is None:
            await asyncio.sleep(delay)
        else:
            try:
                await asyncio.wait_for(cancel.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass
