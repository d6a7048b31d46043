"""Virtualized follower list scraper.

The overlay only keeps a small window of rows in the DOM and recycles them
as the list scrolls. Rows are therefore harvested into an accumulating map
before every scroll step; scrolling first would drop rows that were never
read. The end of the list is detected when the scroll offset stops
advancing for several consecutive cycles.
"""

import asyncio
import time
from datetime import datetime
from typing import Callable

from followdiff.config import TrackerConfig
from followdiff.core.assets import AssetResolver
from followdiff.core.extractor import RowExtractor
from followdiff.core.locator import ScrollContainerLocator
from followdiff.core.page import ListPage, ScrollContainer
from followdiff.core.rate_limiter import RateLimiter
from followdiff.core.waiting import wait_until
from followdiff.exceptions import ScanSetupError
from followdiff.logging import get_logger
from followdiff.models.follower import FollowerRecord
from followdiff.models.scan import ScanProgress, ScanResult, ScanState

ProgressListener = Callable[[ScanProgress], None]

ACTIVE_STATES = frozenset({ScanState.OPENING, ScanState.SCROLLING, ScanState.FINALIZING})


class ScanSession:
    """
    State of the single scan allowed per page context.

    Starting while a scan is active is read as a request to stop that scan.
    """

    def __init__(self):
        self.state = ScanState.IDLE
        self.collected: dict[str, FollowerRecord] = {}
        self.cancel_event = asyncio.Event()
        self.error: str | None = None

    @property
    def active(self) -> bool:
        return self.state in ACTIVE_STATES

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def begin(self) -> bool:
        """
        Claim the session for a new scan.

        Returns:
            True if a new scan may start, False if this call cancelled the running one
        """
        if self.active:
            self.cancel()
            return False
        self.state = ScanState.OPENING
        self.collected = {}
        self.cancel_event = asyncio.Event()
        self.error = None
        return True

    def cancel(self) -> None:
        self.cancel_event.set()

    def transition(self, state: ScanState) -> None:
        self.state = state

    def fail(self, reason: str) -> None:
        self.state = ScanState.FAILED
        self.error = reason


class OverlayWatcher:
    """Background task that cancels the scan once the overlay leaves the page."""

    def __init__(self, page: ListPage, session: ScanSession, interval_ms: int = 250):
        self.page = page
        self.session = session
        self.interval_ms = interval_ms
        self._task: asyncio.Task | None = None
        self._log = get_logger("overlay_watcher")

    def start(self) -> None:
        self.stop()
        self._task = asyncio.create_task(self._watch())

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _watch(self) -> None:
        while not self.session.cancelled:
            if not await self.page.overlay_attached():
                self._log.info("overlay_detached")
                self.session.cancel()
                return
            await asyncio.sleep(self.interval_ms / 1000)


class VirtualizedListScraper:
    """
    Drives one follower list scan on a ListPage.

    Example:
        scraper = VirtualizedListScraper(page, config)
        result = await scraper.scan()
        print(len(result.followers))
    """

    def __init__(
        self,
        page: ListPage,
        config: TrackerConfig | None = None,
        session: ScanSession | None = None,
        rate_limiter: RateLimiter | None = None,
        on_progress: ProgressListener | None = None,
    ):
        self.page = page
        self.config = config or TrackerConfig()
        self.session = session or ScanSession()
        self.rate_limiter = rate_limiter or RateLimiter(self.config.min_delay_ms, self.config.max_delay_ms)
        self.on_progress = on_progress
        self.extractor = RowExtractor(page.base_url)
        self.locator = ScrollContainerLocator(
            page,
            self.rate_limiter,
            max_attempts=self.config.container_attempts,
            interval_ms=self.config.container_interval_ms,
        )
        self.resolver = AssetResolver(page.fetch_asset, batch_size=self.config.asset_batch_size)
        self._log = get_logger("scraper")

    def _progress(self, status: str) -> None:
        if self.on_progress:
            self.on_progress(ScanProgress(count=len(self.session.collected), status=status))

    async def harvest(self) -> int:
        """Read the rows visible right now. Returns how many were new."""
        html = await self.page.overlay_html()
        if html is None:
            return 0
        return self.extractor.harvest(html, self.session.collected)

    async def scan(self) -> ScanResult | None:
        """
        Run a full scan.

        Returns:
            ScanResult for a complete or cancelled scan, or None when this call
            only cancelled a scan already in progress

        Raises:
            ScanSetupError: The overlay or its list never became available
        """
        if not self.session.begin():
            self._log.info("scan_toggle_cancel")
            return None
        return await self.run()

    async def run(self) -> ScanResult:
        """
        Scan using a session already claimed with ScanSession.begin().

        Raises:
            ScanSetupError: The overlay or its list never became available
        """
        start = time.monotonic()
        watcher = OverlayWatcher(self.page, self.session, self.config.watch_interval_ms)
        cancel = self.session.cancel_event

        try:
            await self._open_overlay()
            watcher.start()

            container = await self.locator.wait_for_container(cancel)
            if container is None:
                await self.harvest()
                if not self.session.cancelled:
                    raise ScanSetupError(
                        "Could not find scrollable container. Collected what was visible.",
                        partial=list(self.session.collected.values()),
                    )
                cycles = 0
            else:
                self.session.transition(ScanState.SCROLLING)
                self._progress("Scanning...")
                cycles = await self.scroll_until_stalled(container)

            self.session.transition(ScanState.FINALIZING)
            await self.harvest()

            inlined = 0
            if self.session.cancelled:
                count = len(self.session.collected)
                self._progress(f"Scan stopped. {count} collected.")
            elif self.config.inline_pictures:
                self._progress("Loading profile pictures...")
                inlined = await self.resolver.resolve(
                    self.session.collected,
                    cancel,
                    on_progress=lambda done, total: self._progress(f"Loading pictures... ({done}/{total})"),
                )

            status = ScanState.CANCELLED if self.session.cancelled else ScanState.COMPLETE
            self.session.transition(status)
            followers = list(self.session.collected.values())
            self._progress("Complete!")

            duration_ms = (time.monotonic() - start) * 1000
            self._log.info(
                "scan_finished",
                status=status.value,
                followers=len(followers),
                cycles=cycles,
                duration_ms=round(duration_ms),
            )
            return ScanResult(
                status=status,
                scanned_user=await self.page.scanned_user(),
                followers=followers,
                scroll_cycles=cycles,
                pictures_inlined=inlined,
                scanned_at=datetime.now(),
                duration_ms=duration_ms,
            )

        except ScanSetupError as e:
            self.session.fail(str(e))
            self._log.error("scan_setup_failed", error=str(e), partial=len(e.partial))
            raise
        finally:
            watcher.stop()
            if self.session.active:
                # Unexpected exception escaped mid-scan
                self.session.fail("Scan aborted")

    async def _open_overlay(self) -> None:
        self.session.transition(ScanState.OPENING)
        cancel = self.session.cancel_event

        if await self.page.overlay_present():
            self._log.info("overlay_reused")
            await self.locator.reset()
            await self.rate_limiter.sleep(self.config.reuse_settle_ms, cancel)
            return

        if not await self.page.open_overlay():
            raise ScanSetupError(
                "Could not find followers link. Please navigate to a profile page."
            )
        await self.rate_limiter.sleep(self.config.open_settle_ms, cancel)

        appeared = await wait_until(
            self.page.overlay_present,
            timeout_ms=self.config.overlay_timeout_ms,
            interval_ms=250,
            cancel=cancel,
        )
        if not appeared and self.session.cancelled:
            # run() finishes with whatever was collected, which here is nothing
            self._log.info("overlay_wait_cancelled")
            return
        if not appeared:
            raise ScanSetupError(
                "Could not open followers dialog. Please open it manually and try again."
            )
        self._log.info("overlay_opened")

    async def scroll_until_stalled(self, container: ScrollContainer) -> int:
        """
        Harvest, scroll, settle and compare offsets until the list stops growing.

        Returns:
            Number of scroll cycles performed
        """
        cancel = self.session.cancel_event
        no_advance = 0
        cycles = 0

        while not self.session.cancelled:
            await self.harvest()
            count = len(self.session.collected)
            self._progress(f"Scanning... ({count} found)")

            before = await container.get_scroll_top()
            await container.scroll_by(self.config.scroll_step_px)
            await self.rate_limiter.sleep(self.config.settle_delay_ms, cancel)
            after = await container.get_scroll_top()
            cycles += 1

            if abs(after - before) < self.config.stall_delta_px:
                no_advance += 1
                self._log.debug("scroll_stalled", offset=after, stalls=no_advance)
                if no_advance >= self.config.stall_threshold:
                    self._log.info("scroll_end_reached", offset=after, followers=count)
                    break
            else:
                no_advance = 0

        return cycles
