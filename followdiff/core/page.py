"""Capabilities the list scraper needs from the page hosting the follower overlay."""

from abc import ABC, abstractmethod


class ScrollContainer(ABC):
    """The scrollable element holding the virtualized rows."""

    @abstractmethod
    async def get_scroll_top(self) -> float:
        """Current vertical scroll offset in pixels."""
        ...

    @abstractmethod
    async def set_scroll_top(self, value: float) -> None:
        """Jump to an absolute scroll offset."""
        ...

    async def scroll_by(self, delta: float) -> None:
        """Advance the scroll offset; the host clamps at the end of content."""
        await self.set_scroll_top(await self.get_scroll_top() + delta)


class ListPage(ABC):
    """A profile page that can show a follower list overlay."""

    base_url: str = ""

    @abstractmethod
    async def overlay_present(self) -> bool:
        """True if the follower overlay is currently in the page."""
        ...

    @abstractmethod
    async def open_overlay(self) -> bool:
        """
        Trigger the action that opens the overlay.

        Returns:
            False if no opening trigger exists on the page
        """
        ...

    @abstractmethod
    async def overlay_attached(self) -> bool:
        """True while the overlay element found at open time is still attached."""
        ...

    @abstractmethod
    async def overlay_html(self) -> str | None:
        """Outer HTML of the overlay, or None if it is gone."""
        ...

    @abstractmethod
    async def find_scroll_container(self) -> ScrollContainer | None:
        """Single check for a scrollable element with overflowing content inside the overlay."""
        ...

    @abstractmethod
    async def fetch_asset(self, url: str) -> tuple[bytes, str] | None:
        """
        Download a resource with the page's own credentials.

        Returns:
            (body, content type), or None for a non-OK response

        Raises:
            AssetFetchError: If the request itself failed
        """
        ...

    @abstractmethod
    async def current_path(self) -> str:
        """Path component of the page URL."""
        ...

    async def scanned_user(self) -> str:
        """Profile handle taken from the first path segment of the page URL."""
        path = (await self.current_path()).strip("/")
        return path.split("/")[0] if path else ""
