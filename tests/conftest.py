"""Shared fixtures: an in-memory stand-in for a profile page with a virtualized follower overlay."""

from contextlib import asynccontextmanager
from pathlib import Path

import pytest
import structlog

from followdiff.config import StoreBackend, TrackerConfig
from followdiff.core.page import ListPage, ScrollContainer
from followdiff.exceptions import AssetFetchError

FIXTURES_DIR = Path(__file__).parent / "fixtures"

BASE_URL = "https://www.example.test"
ROW_HEIGHT = 50
VIEWPORT = 600
# Rows rendered above and below the viewport, like a real virtualized list
RENDER_BUFFER = 100


def make_rows(count: int, prefix: str = "user") -> list[tuple[str, str]]:
    """(username, display name) pairs; usernames sort in creation order."""
    return [(f"{prefix}{i:03d}", f"Person {i:03d}") for i in range(count)]


def picture_url(username: str) -> str:
    return f"{BASE_URL}/pics/{username}.jpg"


class FakeScrollContainer(ScrollContainer):
    def __init__(self, page: "FakeListPage"):
        self.page = page

    async def get_scroll_top(self) -> float:
        return self.page.scroll_top

    async def set_scroll_top(self, value: float) -> None:
        self.page.set_scroll_top(value)


class FakeListPage(ListPage):
    """
    Simulated follower overlay.

    Only rows inside the viewport (plus a small buffer) are rendered into
    the overlay HTML, and with grow_by set, more rows load each time the
    list is scrolled to the bottom.
    """

    def __init__(
        self,
        rows: list[tuple[str, str]],
        *,
        profile: str = "target.user",
        overlay_open: bool = False,
        has_link: bool = True,
        opens_overlay: bool = True,
        initial_loaded: int | None = None,
        grow_by: int = 0,
        container_after_lookups: int = 0,
        detach_after_scrolls: int | None = None,
        assets: dict | None = None,
    ):
        self.base_url = BASE_URL
        self.rows = rows
        self.profile = profile
        self.overlay_open = overlay_open
        self.has_link = has_link
        self.opens_overlay = opens_overlay
        self.loaded = len(rows) if initial_loaded is None else initial_loaded
        self.grow_by = grow_by
        self.container_after_lookups = container_after_lookups
        self.detach_after_scrolls = detach_after_scrolls
        self.assets = assets or {}
        self.attached = overlay_open

        self.scroll_top = 0.0
        self.scroll_calls = 0
        self.open_calls = 0
        self.container_lookups = 0
        self.fetched: list[str] = []

    @property
    def max_scroll(self) -> float:
        return max(0, self.loaded * ROW_HEIGHT - VIEWPORT)

    def set_scroll_top(self, value: float) -> None:
        self.scroll_top = min(max(0.0, value), self.max_scroll)
        self.scroll_calls += 1
        if self.grow_by and self.scroll_top >= self.max_scroll and self.loaded < len(self.rows):
            self.loaded = min(len(self.rows), self.loaded + self.grow_by)
        if self.detach_after_scrolls is not None and self.scroll_calls >= self.detach_after_scrolls:
            self.attached = False

    def visible_rows(self) -> list[tuple[str, str]]:
        first = max(0, int(self.scroll_top - RENDER_BUFFER) // ROW_HEIGHT)
        last = min(self.loaded, -(-int(self.scroll_top + VIEWPORT + RENDER_BUFFER) // ROW_HEIGHT))
        return self.rows[first:last]

    def render(self) -> str:
        items = []
        for username, name in self.visible_rows():
            name_span = f"<span>{name}</span>" if name else ""
            items.append(
                '<div class="row">'
                f'<a href="/{username}/"><img src="/pics/{username}.jpg" alt=""></a>'
                f'<div><a href="/{username}/"><span>{username}</span></a>{name_span}</div>'
                "</div>"
            )
        return f'<div role="dialog"><div class="list">{"".join(items)}</div></div>'

    async def overlay_present(self) -> bool:
        return self.overlay_open and self.attached

    async def open_overlay(self) -> bool:
        self.open_calls += 1
        if not self.has_link:
            return False
        if self.opens_overlay:
            self.overlay_open = True
            self.attached = True
        return True

    async def overlay_attached(self) -> bool:
        return self.attached

    async def overlay_html(self) -> str | None:
        if not (self.overlay_open and self.attached):
            return None
        return self.render()

    async def find_scroll_container(self) -> ScrollContainer | None:
        self.container_lookups += 1
        if not self.overlay_open or self.container_lookups <= self.container_after_lookups:
            return None
        if self.loaded * ROW_HEIGHT <= VIEWPORT + 50:
            return None
        return FakeScrollContainer(self)

    async def fetch_asset(self, url: str) -> tuple[bytes, str] | None:
        self.fetched.append(url)
        if url not in self.assets:
            raise AssetFetchError(f"No route to {url}")
        response = self.assets[url]
        if isinstance(response, Exception):
            raise response
        return response

    async def current_path(self) -> str:
        return f"/{self.profile}/followers/"


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop logging config bound to streams captured by a previous test."""
    yield
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


def make_page_factory(page: FakeListPage):
    """Page factory for FollowerTracker that always yields the given fake page."""

    @asynccontextmanager
    async def factory(username, config):
        if username:
            page.profile = username
        yield page

    return factory


@pytest.fixture
def fast_config(tmp_path) -> TrackerConfig:
    """Config with every delay removed and in-memory storage."""
    return TrackerConfig(
        settle_delay_ms=0,
        open_settle_ms=0,
        reuse_settle_ms=0,
        overlay_timeout_ms=50,
        container_attempts=3,
        container_interval_ms=0,
        watch_interval_ms=1,
        min_delay_ms=0,
        max_delay_ms=0,
        store_backend=StoreBackend.MEMORY,
        sqlite_path=str(tmp_path / "followdiff.db"),
    )


@pytest.fixture
def forty_rows() -> list[tuple[str, str]]:
    return make_rows(40)


@pytest.fixture
def dialog_html() -> str:
    return (FIXTURES_DIR / "followers_dialog.html").read_text(encoding="utf-8")
