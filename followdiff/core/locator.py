"""Finds the scrollable element that holds the follower rows."""

import asyncio

from followdiff.core.page import ListPage, ScrollContainer
from followdiff.core.rate_limiter import RateLimiter
from followdiff.logging import get_logger


class ScrollContainerLocator:
    """
    Locates the overlay's scroll container.

    The overlay often renders before its list has content, so the lookup
    is retried a bounded number of times before giving up.
    """

    def __init__(
        self,
        page: ListPage,
        rate_limiter: RateLimiter | None = None,
        max_attempts: int = 20,
        interval_ms: int = 600,
    ):
        self.page = page
        self.rate_limiter = rate_limiter or RateLimiter()
        self.max_attempts = max_attempts
        self.interval_ms = interval_ms
        self._log = get_logger("locator")

    async def find(self) -> ScrollContainer | None:
        return await self.page.find_scroll_container()

    async def wait_for_container(self, cancel: asyncio.Event | None = None) -> ScrollContainer | None:
        """
        Poll until a container appears.

        Returns:
            The container, or None after max_attempts lookups or on cancellation
        """
        for attempt in range(1, self.max_attempts + 1):
            container = await self.find()
            if container is not None:
                self._log.debug("scroll_container_found", attempt=attempt)
                return container
            if attempt < self.max_attempts:
                if not await self.rate_limiter.sleep(self.interval_ms, cancel):
                    self._log.info("scroll_container_wait_cancelled", attempt=attempt)
                    return None

        self._log.warning("scroll_container_not_found", attempts=self.max_attempts)
        return None

    async def reset(self) -> bool:
        """Scroll an already-open overlay back to the top. Returns False if no container exists yet."""
        container = await self.find()
        if container is None:
            return False
        await container.set_scroll_top(0)
        return True
