"""Playwright-backed ListPage for live profile pages."""

from contextlib import asynccontextmanager
from typing import AsyncIterator
from urllib.parse import urlparse

from playwright.async_api import (
    async_playwright,
    Browser,
    BrowserContext,
    ElementHandle,
    Page,
    Error as PlaywrightError,
)

from followdiff.config import TrackerConfig
from followdiff.core.page import ListPage, ScrollContainer
from followdiff.exceptions import AssetFetchError, PageBlockedError, ProfileNotFoundError, ScanSetupError
from followdiff.logging import get_logger

# Selectors - centralized for easy updates when the site changes its DOM
SELECTORS = {
    "overlay": 'div[role="dialog"]',
    "followers_link": 'a[href*="/followers"]',
}

# Returns the first div inside the overlay that scrolls vertically and has
# clearly more content than fits (50px margin avoids false positives).
FIND_SCROLL_CONTAINER_JS = """
(selector) => {
    const dialog = document.querySelector(selector);
    if (!dialog) return null;
    for (const div of dialog.querySelectorAll("div")) {
        const style = window.getComputedStyle(div);
        const scrollable = style.overflowY === "auto" || style.overflowY === "scroll";
        if (scrollable && div.scrollHeight > div.clientHeight + 50) return div;
    }
    return null;
}
"""

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class PlaywrightScrollContainer(ScrollContainer):
    """Scroll container backed by a live element handle."""

    def __init__(self, handle: ElementHandle):
        self.handle = handle

    async def get_scroll_top(self) -> float:
        return await self.handle.evaluate("el => el.scrollTop")

    async def set_scroll_top(self, value: float) -> None:
        await self.handle.evaluate("(el, v) => { el.scrollTop = v; }", value)

    async def scroll_by(self, delta: float) -> None:
        await self.handle.evaluate("(el, d) => { el.scrollTop += d; }", delta)


class PlaywrightListPage(ListPage):
    """ListPage over a Playwright page that is already showing a profile."""

    def __init__(self, page: Page, base_url: str):
        self.page = page
        self.base_url = base_url
        self._overlay: ElementHandle | None = None

    async def overlay_present(self) -> bool:
        handle = await self.page.query_selector(SELECTORS["overlay"])
        if handle is not None:
            self._overlay = handle
        return handle is not None

    async def open_overlay(self) -> bool:
        link = await self.page.query_selector(SELECTORS["followers_link"])
        if link is None:
            return False
        await link.click()
        return True

    async def overlay_attached(self) -> bool:
        if self._overlay is None:
            return await self.overlay_present()
        try:
            return await self._overlay.evaluate("el => el.isConnected")
        except PlaywrightError:
            return False

    async def overlay_html(self) -> str | None:
        if self._overlay is None and not await self.overlay_present():
            return None
        try:
            return await self._overlay.evaluate("el => el.outerHTML")
        except PlaywrightError:
            return None

    async def find_scroll_container(self) -> ScrollContainer | None:
        handle = await self.page.evaluate_handle(FIND_SCROLL_CONTAINER_JS, SELECTORS["overlay"])
        element = handle.as_element()
        if element is None:
            await handle.dispose()
            return None
        return PlaywrightScrollContainer(element)

    async def fetch_asset(self, url: str) -> tuple[bytes, str] | None:
        # page.request shares cookies with the browser context
        try:
            response = await self.page.request.get(url)
            if not response.ok:
                return None
            return await response.body(), response.headers.get("content-type", "")
        except PlaywrightError as e:
            raise AssetFetchError(f"Failed to fetch {url}: {e}") from e

    async def current_path(self) -> str:
        return urlparse(self.page.url).path


@asynccontextmanager
async def open_profile_page(
    username: str | None,
    config: TrackerConfig | None = None,
) -> AsyncIterator[PlaywrightListPage]:
    """
    Launch a browser, open a profile page and yield it as a ListPage.

    Args:
        username: Profile handle (without @); None opens the site root
        config: TrackerConfig with browser settings

    Raises:
        ProfileNotFoundError: Profile page returned 404
        PageBlockedError: Blocked or rate limited
        ScanSetupError: Any other navigation failure
    """
    config = config or TrackerConfig()
    log = get_logger("browser")
    base_url = config.base_url.rstrip("/")
    url = f"{base_url}/{username}/" if username else f"{base_url}/"

    async with async_playwright() as p:
        launch_options = {"headless": config.headless}
        if config.proxy_url:
            launch_options["proxy"] = {"server": config.proxy_url}

        browser: Browser = await p.chromium.launch(**launch_options)

        try:
            context_options = {
                "viewport": {"width": 1366, "height": 900},
                "user_agent": config.user_agent or USER_AGENT,
            }
            if config.storage_state_path:
                context_options["storage_state"] = config.storage_state_path
            context: BrowserContext = await browser.new_context(**context_options)
            page: Page = await context.new_page()

            try:
                response = await page.goto(url, wait_until="domcontentloaded", timeout=config.browser_timeout_ms)
            except PlaywrightError as e:
                raise ScanSetupError(f"Browser error: {e}") from e

            if response is None:
                raise ScanSetupError("No response received")
            if response.status == 404:
                raise ProfileNotFoundError(f"Profile @{username} not found")
            if response.status in (403, 429):
                raise PageBlockedError(f"Blocked or rate limited (HTTP {response.status})")
            if response.status >= 400:
                raise ScanSetupError(f"HTTP {response.status}")

            log.info("profile_page_opened", url=url, status=response.status)
            yield PlaywrightListPage(page, base_url)
        finally:
            await browser.close()
