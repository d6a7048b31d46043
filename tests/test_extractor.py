"""Unit tests for follower row extraction - uses HTML fixtures, no internet."""

import pytest
from bs4 import BeautifulSoup

from followdiff.core.extractor import (
    RowExtractor,
    find_display_name,
    find_picture,
    find_row_links,
    username_from_href,
)
from followdiff.models.follower import FollowerRecord

BASE_URL = "https://www.example.test"


@pytest.fixture
def extractor() -> RowExtractor:
    return RowExtractor(BASE_URL)


class TestUsernameFromHref:
    """Test link target to identity mapping."""

    def test_plain_profile_link(self):
        assert username_from_href("/alice/") == "alice"

    def test_without_trailing_slash(self):
        assert username_from_href("/alice") == "alice"

    def test_lowercases(self):
        assert username_from_href("/Dave.Test/") == "dave.test"

    @pytest.mark.parametrize("href", ["/explore/", "/reels/", "/p/", "/accounts/", "/static/"])
    def test_reserved_paths_rejected(self, href):
        assert username_from_href(href) is None

    def test_multi_segment_rejected(self):
        assert username_from_href("/p/Cx12ab/") is None
        assert username_from_href("/alice/followers/") is None

    def test_root_rejected(self):
        assert username_from_href("/") is None

    def test_invalid_characters_rejected(self):
        assert username_from_href("/al ice/") is None
        assert username_from_href("/alice?x=1") is None

    def test_absolute_url_rejected(self):
        assert username_from_href("https://external.test/help") is None


class TestFindRowLinks:
    """Test canonical link selection."""

    def test_one_link_per_identity(self, dialog_html):
        links = find_row_links(BeautifulSoup(dialog_html, "lxml"))
        assert set(links) == {"alice", "carol_99", "dave.test", "erin", "frank"}

    def test_link_with_image_preferred(self, dialog_html):
        links = find_row_links(BeautifulSoup(dialog_html, "lxml"))
        assert links["alice"].find("img") is not None

    def test_image_link_wins_even_when_second(self):
        html = '<div><a href="/zed/"><span>zed</span></a><a href="/zed/"><img src="/z.jpg"></a></div>'
        links = find_row_links(BeautifulSoup(html, "lxml"))
        assert links["zed"].find("img") is not None


class TestFieldExtraction:
    """Test display name and picture lookup around a row link."""

    def test_display_name_skips_username_label(self, dialog_html):
        links = find_row_links(BeautifulSoup(dialog_html, "lxml"))
        assert find_display_name(links["alice"], "alice") == "Alice Smith"

    def test_display_name_skips_digits_and_single_chars(self, dialog_html):
        links = find_row_links(BeautifulSoup(dialog_html, "lxml"))
        assert find_display_name(links["carol_99"], "carol_99") == "Carol N."

    def test_display_name_missing(self):
        html = '<div><div><a href="/solo/"><img src="/s.jpg"></a><a href="/solo/"><span>solo</span></a></div></div>'
        links = find_row_links(BeautifulSoup(html, "lxml"))
        assert find_display_name(links["solo"], "solo") == ""

    def test_picture_from_link(self, dialog_html):
        links = find_row_links(BeautifulSoup(dialog_html, "lxml"))
        assert find_picture(links["alice"]) == "https://cdn.example.test/alice.jpg"

    def test_picture_from_enclosing_row(self, dialog_html):
        links = find_row_links(BeautifulSoup(dialog_html, "lxml"))
        assert find_picture(links["erin"]) == "https://cdn.example.test/erin.jpg"

    def test_relative_picture_resolved(self, dialog_html):
        links = find_row_links(BeautifulSoup(dialog_html, "lxml"))
        assert find_picture(links["carol_99"], BASE_URL) == f"{BASE_URL}/static/carol.jpg"

    def test_data_url_untouched(self, dialog_html):
        links = find_row_links(BeautifulSoup(dialog_html, "lxml"))
        assert find_picture(links["frank"], BASE_URL) == "data:image/png;base64,AAAA"

    def test_no_picture(self):
        html = '<p><a href="/bare/">bare</a></p>'
        links = find_row_links(BeautifulSoup(html, "lxml"))
        assert find_picture(links["bare"]) == ""


class TestRowExtractorParse:
    """Test full fragment parsing."""

    def test_parse_fixture(self, extractor, dialog_html):
        records = {r.username: r for r in extractor.parse(dialog_html)}

        assert len(records) == 5
        assert records["alice"].full_name == "Alice Smith"
        assert records["dave.test"].full_name == "Dave T"
        assert records["erin"].full_name == "Erin Example"
        assert records["erin"].profile_pic_url == "https://cdn.example.test/erin.jpg"

    def test_parse_empty(self, extractor):
        assert extractor.parse('<div role="dialog"></div>') == []


class TestRowExtractorHarvest:
    """Test merging visible rows into the accumulating map."""

    def test_counts_new_identities(self, extractor, dialog_html):
        collected: dict[str, FollowerRecord] = {}
        assert extractor.harvest(dialog_html, collected) == 5
        assert extractor.harvest(dialog_html, collected) == 0
        assert len(collected) == 5

    def test_keeps_existing_values(self, extractor, dialog_html):
        collected = {
            "alice": FollowerRecord(username="alice", full_name="Alice (first seen)", profile_pic_url=""),
        }
        extractor.harvest(dialog_html, collected)

        assert collected["alice"].full_name == "Alice (first seen)"
        # Empty field filled from the later sighting
        assert collected["alice"].profile_pic_url == "https://cdn.example.test/alice.jpg"

    def test_complete_records_untouched(self, extractor, dialog_html):
        original = FollowerRecord(username="frank", full_name="F", profile_pic_url="https://old.test/f.jpg")
        collected = {"frank": original}
        extractor.harvest(dialog_html, collected)
        assert collected["frank"] is original

    def test_later_sighting_fills_missing_name(self, extractor):
        bare = '<div><div><a href="/solo/"><img src="/s.jpg"></a></div></div>'
        named = '<div><div><a href="/solo/"><img src="/s.jpg"></a><span>Solo Person</span></div></div>'
        collected: dict[str, FollowerRecord] = {}

        extractor.harvest(bare, collected)
        assert collected["solo"].full_name == ""
        extractor.harvest(named, collected)
        assert collected["solo"].full_name == "Solo Person"
        assert collected["solo"].profile_pic_url == f"{BASE_URL}/s.jpg"
