"""BeautifulSoup-based extraction of follower rows from the overlay HTML."""

import re
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from followdiff.models.follower import FollowerRecord

# Site pages that share the single-segment link shape of profile links
RESERVED_PATHS = frozenset({
    "explore",
    "reels",
    "stories",
    "p",
    "accounts",
    "directory",
    "about",
    "static",
})

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9._-]+$")

# How far up from a row link to look for the display name
NAME_SEARCH_DEPTH = 6


def username_from_href(href: str) -> str | None:
    """
    Map a row link target to an account identity.

    "/some.user/" -> "some.user"; anything that is not a single allowed
    path segment, or is a reserved site page, yields None.
    """
    if not href.startswith("/"):
        return None
    username = re.sub(r"^/|/$", "", href).lower()
    if not username or "/" in username:
        return None
    if username in RESERVED_PATHS:
        return None
    if not USERNAME_PATTERN.match(username):
        return None
    return username


def find_row_links(root: Tag) -> dict[str, Tag]:
    """
    Collect one canonical link per identity.

    Rows usually carry two links to the same profile (avatar and name label);
    the one wrapping an image wins.
    """
    links: dict[str, Tag] = {}
    for link in root.select('a[href^="/"]'):
        username = username_from_href(link.get("href", ""))
        if username is None:
            continue
        if username not in links or link.find("img") is not None:
            links[username] = link
    return links


def find_display_name(link: Tag, username: str) -> str:
    ancestor = link.parent
    for _ in range(NAME_SEARCH_DEPTH):
        if ancestor is None:
            break
        for span in ancestor.find_all("span"):
            text = span.get_text().strip()
            if text and text != username and len(text) > 1 and not text.isdigit():
                return text
        ancestor = ancestor.parent
    return ""


def find_picture(link: Tag, base_url: str = "") -> str:
    img = link.find("img")
    if img is None:
        row = link.find_parent("div")
        img = row.find("img") if row is not None else None
    if img is None:
        return ""
    src = img.get("src") or ""
    if src and base_url and not src.startswith("data:"):
        src = urljoin(base_url, src)
    return src


class RowExtractor:
    """Harvests the rows currently rendered in the overlay into an accumulating map."""

    def __init__(self, base_url: str = ""):
        self.base_url = base_url

    def parse(self, html: str) -> list[FollowerRecord]:
        """Extract every visible row from an overlay HTML fragment."""
        soup = BeautifulSoup(html, "lxml")
        return [
            FollowerRecord(
                username=username,
                full_name=find_display_name(link, username),
                profile_pic_url=find_picture(link, self.base_url),
            )
            for username, link in find_row_links(soup).items()
        ]

    def harvest(self, html: str, collected: dict[str, FollowerRecord]) -> int:
        """
        Merge visible rows into collected, first non-empty value per field wins.

        Returns:
            Number of identities seen for the first time
        """
        soup = BeautifulSoup(html, "lxml")
        added = 0

        for username, link in find_row_links(soup).items():
            existing = collected.get(username)
            if existing is not None and existing.is_complete:
                continue

            full_name = existing.full_name if existing else ""
            if not full_name:
                full_name = find_display_name(link, username)

            picture = existing.profile_pic_url if existing else ""
            if not picture:
                picture = find_picture(link, self.base_url)

            record = FollowerRecord(username=username, full_name=full_name, profile_pic_url=picture)
            if existing is None:
                added += 1
            collected[username] = record

        return added
