"""Inlines remote profile pictures as data URLs."""

import asyncio
import base64
from typing import Awaitable, Callable

from followdiff.exceptions import AssetFetchError
from followdiff.logging import get_logger
from followdiff.models.follower import FollowerRecord

AssetFetcher = Callable[[str], Awaitable[tuple[bytes, str] | None]]
ProgressCallback = Callable[[int, int], None]

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def to_data_url(body: bytes, content_type: str | None) -> str:
    """Encode raw bytes as a base64 data URL."""
    mime = (content_type or DEFAULT_CONTENT_TYPE).split(";")[0].strip() or DEFAULT_CONTENT_TYPE
    return f"data:{mime};base64,{base64.b64encode(body).decode('ascii')}"


class AssetResolver:
    """
    Replaces remote picture URLs with self-contained data URLs.

    The CDN URLs are signed for the page session and cannot be loaded later
    from elsewhere, so the fetch must go through the page's own request
    context while the scan still holds it.
    """

    def __init__(self, fetch: AssetFetcher, batch_size: int = 10):
        """
        Args:
            fetch: Downloads a URL, returning (body, content type) or None
            batch_size: Number of downloads in flight at once
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.fetch = fetch
        self.batch_size = batch_size
        self._log = get_logger("assets")

    async def _inline(self, record: FollowerRecord) -> FollowerRecord | None:
        try:
            response = await self.fetch(record.profile_pic_url)
        except AssetFetchError as e:
            self._log.warning("asset_fetch_failed", username=record.username, error=str(e))
            return None
        if response is None:
            self._log.debug("asset_fetch_not_ok", username=record.username)
            return None
        body, content_type = response
        return record.model_copy(update={"profile_pic_url": to_data_url(body, content_type)})

    async def resolve(
        self,
        collected: dict[str, FollowerRecord],
        cancel: asyncio.Event | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> int:
        """
        Inline every remote picture in collected, in place.

        Failed downloads keep their original URL. Cancellation is honoured
        between batches.

        Returns:
            Number of records whose picture was inlined
        """
        pending = [r for r in collected.values() if r.has_remote_picture]
        done = 0
        inlined = 0

        for start in range(0, len(pending), self.batch_size):
            if cancel is not None and cancel.is_set():
                self._log.info("asset_resolve_cancelled", done=done, total=len(pending))
                break

            batch = pending[start:start + self.batch_size]
            results = await asyncio.gather(*(self._inline(r) for r in batch))

            for updated in results:
                if updated is not None:
                    collected[updated.username] = updated
                    inlined += 1
            done += len(batch)

            if on_progress:
                on_progress(done, len(pending))

        self._log.info("assets_resolved", inlined=inlined, total=len(pending))
        return inlined
