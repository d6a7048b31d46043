"""Pipeline orchestrator - coordinates scanning, snapshot storage and diffs."""

import asyncio
import uuid
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from typing import Any, Callable

from followdiff.config import TrackerConfig
from followdiff.core.browser import open_profile_page
from followdiff.core.diff import compute_diff, create_snapshot
from followdiff.core.exporter import export_snapshots
from followdiff.core.page import ListPage
from followdiff.core.rate_limiter import RateLimiter
from followdiff.core.scraper import ScanSession, VirtualizedListScraper
from followdiff.core.snapshot_store import SnapshotStore
from followdiff.exceptions import FollowdiffError, ScanSetupError, SnapshotNotFoundError
from followdiff.logging import bind_scan_context, clear_scan_context, configure_logging, get_logger
from followdiff.models.diff import DiffResult
from followdiff.models.follower import FollowerRecord
from followdiff.models.scan import ImportResult, ScanProgress, ScanResult
from followdiff.models.snapshot import Snapshot
from followdiff.storage import KeyValueStore, create_store

PageFactory = Callable[[str | None, TrackerConfig], AbstractAsyncContextManager[ListPage]]
EventListener = Callable[[dict], None]

# Push event types
SCAN_PROGRESS = "SCAN_FOLLOWERS_PROGRESS"
SCAN_COMPLETE = "SCAN_FOLLOWERS_COMPLETE"
SCAN_ERROR = "SCAN_FOLLOWERS_ERROR"


@dataclass
class CompletedScan:
    """A finished scan together with the snapshot it produced."""

    result: ScanResult
    snapshot: Snapshot
    total_snapshots: int


class FollowerTracker:
    """
    High-level interface: scan follower lists, keep snapshots, compare them.

    Example:
        async with FollowerTracker() as tracker:
            done = await tracker.scan("some.profile")
            snapshots = await tracker.list_snapshots()
            diff = await tracker.diff(snapshots[1].timestamp, snapshots[0].timestamp)
    """

    def __init__(
        self,
        config: TrackerConfig | None = None,
        store: KeyValueStore | None = None,
        page_factory: PageFactory | None = None,
    ):
        """
        Args:
            config: TrackerConfig instance, uses defaults if None
            store: Key-value store to use instead of the configured backend
            page_factory: Opens a ListPage for a profile, Playwright by default
        """
        self.config = config or TrackerConfig()
        self.session = ScanSession()
        self.last_progress: ScanProgress | None = None
        self._kv = store
        self._owns_kv = store is None
        self._store: SnapshotStore | None = None
        self._page_factory = page_factory or open_profile_page
        self._listeners: list[EventListener] = []
        self._scan_task: asyncio.Task | None = None
        self._stop_batch = asyncio.Event()
        self.rate_limiter = RateLimiter(self.config.min_delay_ms, self.config.max_delay_ms)
        self._log = get_logger("tracker")

    async def __aenter__(self) -> "FollowerTracker":
        """Async context manager entry - initialize resources."""
        configure_logging(self.config)
        if self._kv is None:
            self._kv = create_store(self.config)
        self._store = SnapshotStore(self._kv, self.config.max_snapshots)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit - stop any scan and release the store."""
        if self._scan_task is not None and not self._scan_task.done():
            self.session.cancel()
            await asyncio.gather(self._scan_task, return_exceptions=True)
        if self._kv is not None and self._owns_kv:
            await self._kv.close()
            self._kv = None

    @property
    def store(self) -> SnapshotStore:
        if self._store is None:
            raise FollowdiffError("FollowerTracker must be used as an async context manager")
        return self._store

    @property
    def scan_in_progress(self) -> bool:
        return self.session.active

    # Events

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        """Register a push-event listener. Returns a function that unregisters it."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _emit(self, event: dict) -> None:
        for listener in list(self._listeners):
            listener(event)

    def _on_progress(self, progress: ScanProgress) -> None:
        self.last_progress = progress
        self._emit({"type": SCAN_PROGRESS, "count": progress.count, "status": progress.status})

    # Scanning

    async def scan(self, target_user: str | None = None) -> CompletedScan | None:
        """
        Scan a profile's follower list and store the result as a snapshot.

        Cancelled scans still store what was collected.

        Args:
            target_user: Profile handle (without @)

        Returns:
            CompletedScan, or None if this call cancelled a scan already running

        Raises:
            ScanSetupError: The follower list could not be opened
        """
        if not self.session.begin():
            self._log.info("scan_toggle_cancel")
            return None
        return await self._run_claimed(target_user)

    async def scan_many(self, usernames: list[str]) -> list[CompletedScan]:
        """
        Scan several profiles one after another.

        Consecutive profiles are spaced by a random pause between
        min_delay_ms and max_delay_ms. A profile whose follower list cannot
        be opened is skipped (listeners get SCAN_ERROR). cancel_scan() keeps
        the current profile's partial snapshot and ends the batch.

        Returns:
            One CompletedScan per saved snapshot, in input order
        """
        self._stop_batch.clear()
        completed: list[CompletedScan] = []

        for i, username in enumerate(usernames):
            if i > 0 and not await self.rate_limiter.random_delay(cancel=self._stop_batch):
                break
            try:
                done = await self.scan(username)
            except ScanSetupError as e:
                self._log.warning("profile_skipped", username=username, error=str(e))
                continue
            if done is not None:
                completed.append(done)
            if self._stop_batch.is_set():
                self._log.info("batch_stopped", scanned=i + 1, remaining=len(usernames) - i - 1)
                break

        return completed

    def start_scan(self, target_user: str | None = None) -> dict:
        """
        Start a scan in the background.

        A start request while a scan runs cancels that scan instead.

        Returns:
            {"started": True} or {"cancelled": True}
        """
        # Claim the session before yielding so a quick second request sees it
        if not self.session.begin():
            self._log.info("scan_toggle_cancel")
            return {"cancelled": True}
        self._scan_task = asyncio.create_task(self._run_background(target_user))
        return {"started": True}

    async def _run_background(self, target_user: str | None) -> CompletedScan | None:
        """Run a claimed scan as a task. Failures were already pushed as SCAN_ERROR."""
        try:
            return await self._run_claimed(target_user)
        except ScanSetupError as e:
            self._log.warning("background_scan_failed", error=str(e))
            return None
        except Exception:
            self._log.exception("background_scan_crashed")
            return None

    async def _run_claimed(self, target_user: str | None) -> CompletedScan:
        if target_user:
            target_user = target_user.lstrip("@").lower()

        bind_scan_context(uuid.uuid4().hex[:8], target_user)
        self._log.info("scan_start")
        try:
            async with self._page_factory(target_user, self.config) as page:
                scraper = VirtualizedListScraper(
                    page,
                    self.config,
                    session=self.session,
                    on_progress=self._on_progress,
                )
                result = await scraper.run()

            snapshot, total = await self.complete_scan(
                result.followers,
                result.scanned_user or target_user or "",
            )
            return CompletedScan(result=result, snapshot=snapshot, total_snapshots=total)
        except Exception as e:
            reason = str(e) or type(e).__name__
            self.session.fail(reason)
            self._emit({"type": SCAN_ERROR, "error": reason})
            raise
        finally:
            if self.session.active:
                self.session.fail("Scan aborted")
            clear_scan_context()

    async def wait_for_scan(self) -> CompletedScan | None:
        """Wait for the background scan, if any, and return its outcome."""
        if self._scan_task is None:
            return None
        return await self._scan_task

    def cancel_scan(self) -> dict:
        """Stop the running scan, keeping what it collected, and any batch it belongs to."""
        self.session.cancel()
        self._stop_batch.set()
        return {"cancelled": True}

    def scan_status(self) -> dict:
        progress = self.last_progress
        return {
            "state": self.session.state.value,
            "count": progress.count if progress else len(self.session.collected),
            "status": progress.status if progress else "",
            "error": self.session.error,
        }

    async def complete_scan(self, followers: list[FollowerRecord], scanned_user: str = "") -> tuple[Snapshot, int]:
        """
        Turn a harvested follower list into a stored snapshot.

        Returns:
            (snapshot, number of snapshots now stored)
        """
        # The store may move the timestamp to keep it unique
        snapshots = await self.store.save(create_snapshot(followers, scanned_user))
        snapshot = snapshots[0]
        self._emit({
            "type": SCAN_COMPLETE,
            "snapshot": snapshot.to_storage(),
            "totalSnapshots": len(snapshots),
        })
        return snapshot, len(snapshots)

    # Snapshot history

    async def list_snapshots(self) -> list[Snapshot]:
        return await self.store.list_snapshots()

    async def get_snapshot(self, timestamp: int) -> Snapshot:
        snapshot = await self.store.get(timestamp)
        if snapshot is None:
            raise SnapshotNotFoundError(f"Snapshot {timestamp} not found.")
        return snapshot

    async def delete_snapshot(self, timestamp: int) -> list[Snapshot]:
        """
        Delete a snapshot.

        Raises:
            SnapshotNotFoundError: No snapshot has this timestamp
        """
        if await self.store.get(timestamp) is None:
            raise SnapshotNotFoundError(f"Snapshot {timestamp} not found.")
        return await self.store.delete(timestamp)

    async def diff(self, older_timestamp: int, newer_timestamp: int) -> DiffResult:
        """
        Compare two stored snapshots.

        Raises:
            SnapshotNotFoundError: Either snapshot is missing
        """
        snapshots = {s.timestamp: s for s in await self.store.list_snapshots()}
        older = snapshots.get(older_timestamp)
        newer = snapshots.get(newer_timestamp)
        if older is None or newer is None:
            raise SnapshotNotFoundError("One or both snapshots not found.")
        return compute_diff(older, newer)

    async def import_data(self, data: Any) -> ImportResult:
        """Merge an export file's snapshots into the store (see SnapshotStore.import_data)."""
        return await self.store.import_data(data)

    async def export(self, strip_images: bool = False) -> list[dict]:
        return export_snapshots(await self.store.list_snapshots(), strip_images)
