"""Delay utilities used to pace scrolling and network calls."""

import asyncio
import random


class RateLimiter:
    """
    Produces fixed and randomized delays.

    Every delay accepts an optional cancel event; a set event ends the wait
    early so callers can react within one delay interval.
    """

    def __init__(self, min_delay_ms: int = 1000, max_delay_ms: int = 3000, rng: random.Random | None = None):
        """
        Args:
            min_delay_ms: Lower bound for random delays
            max_delay_ms: Upper bound for random delays (inclusive)
            rng: Random source, mainly for deterministic tests
        """
        if min_delay_ms > max_delay_ms:
            raise ValueError("min_delay_ms must not exceed max_delay_ms")
        self.min_delay_ms = min_delay_ms
        self.max_delay_ms = max_delay_ms
        self._rng = rng or random.Random()

    def pick_delay_ms(self, min_ms: int | None = None, max_ms: int | None = None) -> int:
        """Draw a delay uniformly from [min_ms, max_ms]."""
        low = self.min_delay_ms if min_ms is None else min_ms
        high = self.max_delay_ms if max_ms is None else max_ms
        return self._rng.randint(low, high)

    async def sleep(self, ms: int, cancel: asyncio.Event | None = None) -> bool:
        """
        Wait for ms milliseconds.

        Returns:
            False if the wait was cut short by the cancel event, True otherwise
        """
        if cancel is None:
            await asyncio.sleep(ms / 1000)
            return True
        if cancel.is_set():
            return False
        try:
            await asyncio.wait_for(cancel.wait(), timeout=ms / 1000)
        except asyncio.TimeoutError:
            return True
        return False

    async def random_delay(
        self,
        min_ms: int | None = None,
        max_ms: int | None = None,
        cancel: asyncio.Event | None = None,
    ) -> bool:
        """Sleep for a random duration between min_ms and max_ms."""
        return await self.sleep(self.pick_delay_ms(min_ms, max_ms), cancel)
