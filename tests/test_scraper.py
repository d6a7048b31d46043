"""Unit tests for the virtualized list scraper - simulated overlay, no browser."""

import asyncio

import pytest

from followdiff.core.scraper import OverlayWatcher, ScanSession, VirtualizedListScraper
from followdiff.exceptions import AssetFetchError, ScanSetupError
from followdiff.models.scan import ScanProgress, ScanState

from conftest import FakeListPage, make_rows, picture_url


class TestScanSession:
    """Test the single-scan state holder."""

    def test_starts_idle(self):
        session = ScanSession()
        assert session.state == ScanState.IDLE
        assert not session.active

    def test_begin_claims(self):
        session = ScanSession()
        assert session.begin() is True
        assert session.state == ScanState.OPENING
        assert session.active

    def test_begin_while_active_cancels(self):
        session = ScanSession()
        session.begin()
        assert session.begin() is False
        assert session.cancelled
        # Still the same scan, now asked to stop
        assert session.state == ScanState.OPENING

    def test_begin_after_finish_resets(self):
        session = ScanSession()
        session.begin()
        session.collected["old"] = None
        session.cancel()
        session.transition(ScanState.CANCELLED)

        assert session.begin() is True
        assert session.collected == {}
        assert not session.cancelled

    def test_fail_records_reason(self):
        session = ScanSession()
        session.begin()
        session.fail("boom")
        assert session.state == ScanState.FAILED
        assert session.error == "boom"
        assert not session.active


class TestOverlayWatcher:
    """Test overlay detachment detection."""

    @pytest.mark.asyncio
    async def test_cancels_when_overlay_detaches(self):
        page = FakeListPage(make_rows(5), overlay_open=True)
        session = ScanSession()
        session.begin()
        watcher = OverlayWatcher(page, session, interval_ms=1)

        watcher.start()
        page.attached = False
        task = watcher._task
        await task

        assert session.cancelled

    @pytest.mark.asyncio
    async def test_stop_leaves_session_alone(self):
        page = FakeListPage(make_rows(5), overlay_open=True)
        session = ScanSession()
        session.begin()
        watcher = OverlayWatcher(page, session, interval_ms=1)

        watcher.start()
        watcher.stop()
        page.attached = False
        await asyncio.sleep(0.01)

        assert not session.cancelled


class TestScrollLoop:
    """Test harvest-before-scroll and end-of-list detection."""

    @pytest.mark.asyncio
    async def test_collects_every_row(self, fast_config, forty_rows):
        page = FakeListPage(forty_rows)
        result = await VirtualizedListScraper(page, fast_config).scan()

        assert result.status == ScanState.COMPLETE
        assert {f.username for f in result.followers} == {u for u, _ in forty_rows}

    @pytest.mark.asyncio
    async def test_stops_after_stall_threshold(self, fast_config, forty_rows):
        # 40 rows * 50px - 600px viewport = 1400px: four advancing cycles, then five stalls
        page = FakeListPage(forty_rows)
        result = await VirtualizedListScraper(page, fast_config).scan()
        assert result.scroll_cycles == 9

    @pytest.mark.asyncio
    async def test_lazy_loading_list(self, fast_config):
        rows = make_rows(100)
        page = FakeListPage(rows, initial_loaded=20, grow_by=20)
        result = await VirtualizedListScraper(page, fast_config).scan()

        assert len(result.followers) == 100
        assert page.loaded == 100

    @pytest.mark.asyncio
    async def test_display_names_captured(self, fast_config, forty_rows):
        page = FakeListPage(forty_rows)
        fast_config.inline_pictures = False
        result = await VirtualizedListScraper(page, fast_config).scan()

        names = {f.username: f.full_name for f in result.followers}
        assert names["user007"] == "Person 007"
        assert result.followers[0].profile_pic_url == picture_url(result.followers[0].username)

    @pytest.mark.asyncio
    async def test_progress_reported(self, fast_config, forty_rows):
        updates: list[ScanProgress] = []
        page = FakeListPage(forty_rows)
        fast_config.inline_pictures = False

        await VirtualizedListScraper(page, fast_config, on_progress=updates.append).scan()

        statuses = [u.status for u in updates]
        assert "Scanning... (14 found)" in statuses
        assert statuses[-1] == "Complete!"
        assert updates[-1].count == 40

    @pytest.mark.asyncio
    async def test_scanned_user_from_page_path(self, fast_config, forty_rows):
        page = FakeListPage(forty_rows, profile="some.profile")
        result = await VirtualizedListScraper(page, fast_config).scan()
        assert result.scanned_user == "some.profile"


class TestOverlayOpening:
    """Test overlay opening, reuse and setup failures."""

    @pytest.mark.asyncio
    async def test_opens_overlay(self, fast_config, forty_rows):
        page = FakeListPage(forty_rows)
        await VirtualizedListScraper(page, fast_config).scan()
        assert page.open_calls == 1

    @pytest.mark.asyncio
    async def test_reuses_open_overlay_from_top(self, fast_config, forty_rows):
        page = FakeListPage(forty_rows, overlay_open=True)
        page.scroll_top = 800

        result = await VirtualizedListScraper(page, fast_config).scan()

        assert page.open_calls == 0
        assert len(result.followers) == 40

    @pytest.mark.asyncio
    async def test_no_followers_link(self, fast_config, forty_rows):
        page = FakeListPage(forty_rows, has_link=False)
        session = ScanSession()

        with pytest.raises(ScanSetupError, match="Could not find followers link"):
            await VirtualizedListScraper(page, fast_config, session=session).scan()
        assert session.state == ScanState.FAILED

    @pytest.mark.asyncio
    async def test_overlay_never_appears(self, fast_config, forty_rows):
        page = FakeListPage(forty_rows, opens_overlay=False)

        with pytest.raises(ScanSetupError) as exc_info:
            await VirtualizedListScraper(page, fast_config).scan()
        assert str(exc_info.value) == "Could not open followers dialog. Please open it manually and try again."

    @pytest.mark.asyncio
    async def test_container_found_after_retries(self, fast_config, forty_rows):
        page = FakeListPage(forty_rows, container_after_lookups=2)
        result = await VirtualizedListScraper(page, fast_config).scan()

        assert len(result.followers) == 40
        assert page.container_lookups >= 3

    @pytest.mark.asyncio
    async def test_no_container_keeps_visible_rows(self, fast_config):
        # Five rows fit in the viewport, so nothing scrolls
        page = FakeListPage(make_rows(5))
        session = ScanSession()

        with pytest.raises(ScanSetupError) as exc_info:
            await VirtualizedListScraper(page, fast_config, session=session).scan()

        assert str(exc_info.value) == "Could not find scrollable container. Collected what was visible."
        assert len(exc_info.value.partial) == 5
        assert page.container_lookups == fast_config.container_attempts
        assert session.error == str(exc_info.value)


class TestCancellation:
    """Test cancelled scans keep what was collected."""

    @pytest.mark.asyncio
    async def test_overlay_closed_mid_scan(self, fast_config):
        rows = make_rows(400)
        page = FakeListPage(rows, detach_after_scrolls=3)
        fast_config.settle_delay_ms = 5
        updates: list[ScanProgress] = []

        result = await VirtualizedListScraper(page, fast_config, on_progress=updates.append).scan()

        assert result.cancelled
        assert 0 < len(result.followers) < 400
        assert any(u.status.startswith("Scan stopped.") for u in updates)

    @pytest.mark.asyncio
    async def test_second_start_cancels(self, fast_config, forty_rows):
        page = FakeListPage(forty_rows)
        session = ScanSession()
        session.begin()

        scraper = VirtualizedListScraper(page, fast_config, session=session)
        assert await scraper.scan() is None
        assert session.cancelled

        result = await scraper.run()
        assert result.cancelled
        assert result.scroll_cycles == 0
        # The rows visible when the overlay opened are still captured
        assert len(result.followers) == 14

    @pytest.mark.asyncio
    async def test_cancel_while_waiting_for_overlay(self, fast_config, forty_rows):
        page = FakeListPage(forty_rows, opens_overlay=False)
        fast_config.overlay_timeout_ms = 5000
        session = ScanSession()
        session.begin()
        asyncio.get_running_loop().call_later(0.05, session.cancel)

        start = asyncio.get_running_loop().time()
        result = await VirtualizedListScraper(page, fast_config, session=session).run()
        elapsed = asyncio.get_running_loop().time() - start

        assert result.cancelled
        assert result.followers == []
        assert session.state == ScanState.CANCELLED
        assert elapsed < 1

    @pytest.mark.asyncio
    async def test_cancelled_scan_skips_pictures(self, fast_config, forty_rows):
        page = FakeListPage(forty_rows)
        session = ScanSession()
        session.begin()
        session.cancel()

        result = await VirtualizedListScraper(page, fast_config, session=session).run()

        assert result.pictures_inlined == 0
        assert page.fetched == []


class TestPictureInlining:
    """Test picture inlining at the end of a scan."""

    @pytest.mark.asyncio
    async def test_pictures_inlined(self, fast_config):
        rows = make_rows(20)
        assets = {picture_url(u): (b"\x89PNG", "image/png") for u, _ in rows}
        page = FakeListPage(rows, assets=assets)

        result = await VirtualizedListScraper(page, fast_config).scan()

        assert result.pictures_inlined == 20
        assert all(f.profile_pic_url.startswith("data:image/png;base64,") for f in result.followers)

    @pytest.mark.asyncio
    async def test_failed_downloads_keep_url(self, fast_config):
        rows = make_rows(20)
        assets = {picture_url(u): (b"jpg", "image/jpeg") for u, _ in rows}
        assets[picture_url("user003")] = None
        assets[picture_url("user004")] = AssetFetchError("reset")
        page = FakeListPage(rows, assets=assets)

        result = await VirtualizedListScraper(page, fast_config).scan()
        pictures = {f.username: f.profile_pic_url for f in result.followers}

        assert result.pictures_inlined == 18
        assert pictures["user003"] == picture_url("user003")
        assert pictures["user004"] == picture_url("user004")
        assert pictures["user005"].startswith("data:image/jpeg;base64,")

    @pytest.mark.asyncio
    async def test_inlining_disabled(self, fast_config, forty_rows):
        page = FakeListPage(forty_rows)
        fast_config.inline_pictures = False

        result = await VirtualizedListScraper(page, fast_config).scan()

        assert result.pictures_inlined == 0
        assert page.fetched == []
