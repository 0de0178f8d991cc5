"""Tests for preview metadata aggregation and page snapshots (pure, no I/O)."""

from __future__ import annotations

from bs4 import BeautifulSoup

from linkscope.scraper.metadata import (
    absolute_url,
    aggregate_metadata,
    collect_meta_tags,
    default_favicon,
    snapshot_from_html,
    youtube_video_id,
)
from linkscope.scraper.models import PageSnapshot, ReaderContentResult, ScrapeResult


class TestAggregateMetadata:
    def test_open_graph_wins_over_plain_meta(self) -> None:
        snapshot = PageSnapshot(
            url="https://example.com/post",
            title="Doc title",
            meta_tags={
                "og:title": "OG title",
                "title": "Plain title",
                "description": "Plain description",
                "og:description": "OG description",
                "og:image": "/cover.png",
            },
        )
        meta = aggregate_metadata(snapshot)

        assert meta.title == "OG title"
        assert meta.description == "OG description"
        assert meta.image == "https://example.com/cover.png"
        assert meta.favicon == "https://example.com/favicon.ico"

    def test_falls_back_to_document_title(self) -> None:
        meta = aggregate_metadata(PageSnapshot(url="https://example.com/", title="  Just   a title "))
        assert meta.title == "Just a title"
        assert meta.description == ""
        assert meta.image == ""

    def test_itemprop_and_twitter_dialects(self) -> None:
        snapshot = PageSnapshot(
            url="https://example.com/",
            meta_tags={
                "twitter:title": "Card title",
                "twitter:description": "Card description",
                "thumbnailurl": "https://img.example.com/thumb.jpg",
            },
        )
        meta = aggregate_metadata(snapshot)
        assert meta.title == "Card title"
        assert meta.description == "Card description"
        assert meta.image == "https://img.example.com/thumb.jpg"

    def test_youtube_thumbnail_is_derived(self) -> None:
        snapshot = PageSnapshot(
            url="https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            meta_tags={"og:title": "Video"},
        )
        meta = aggregate_metadata(snapshot)
        assert meta.image == "https://i.ytimg.com/vi/dQw4w9WgXcQ/maxresdefault.jpg"

    def test_logo_preferred_for_favicon(self) -> None:
        snapshot = PageSnapshot(
            url="https://example.com/a",
            meta_tags={"og:title": "T", "og:logo": "/logo.svg"},
            favicon_href="/favicon.png",
        )
        assert aggregate_metadata(snapshot).favicon == "https://example.com/logo.svg"

    def test_favicon_link_used_without_logo(self) -> None:
        snapshot = PageSnapshot(
            url="https://example.com/a",
            meta_tags={"og:title": "T"},
            favicon_href="//static.example.com/icon.ico",
        )
        assert aggregate_metadata(snapshot).favicon == "https://static.example.com/icon.ico"


class TestHelpers:
    def test_youtube_video_id_variants(self) -> None:
        assert youtube_video_id("https://youtu.be/dQw4w9WgXcQ") == "dQw4w9WgXcQ"
        assert youtube_video_id("https://www.youtube.com/shorts/dQw4w9WgXcQ") == "dQw4w9WgXcQ"
        assert youtube_video_id("https://youtube.com/embed/dQw4w9WgXcQ?start=3") == "dQw4w9WgXcQ"
        assert youtube_video_id("https://www.youtube.com/watch?v=short") is None
        assert youtube_video_id("https://example.com/watch?v=dQw4w9WgXcQ") is None

    def test_default_favicon(self) -> None:
        assert default_favicon("http://example.com:8080/x") == "http://example.com:8080/favicon.ico"
        assert default_favicon("not a url") == ""

    def test_absolute_url(self) -> None:
        assert absolute_url("", "https://example.com/") == ""
        assert absolute_url("img.png", "https://example.com/a/b") == "https://example.com/a/img.png"

    def test_collect_meta_tags_first_occurrence_wins(self) -> None:
        soup = BeautifulSoup(
            '<meta property="OG:Image" content="first.png">'
            '<meta property="og:image" content="second.png">'
            '<meta name="empty" content="  ">',
            "html.parser",
        )
        assert collect_meta_tags(soup) == {"og:image": "first.png"}

    def test_snapshot_from_html(self) -> None:
        html = (
            "<html><head><title>Hi</title>"
            '<link rel="shortcut icon" href="/fav.ico">'
            '<meta name="description" content="D"></head></html>'
        )
        snapshot = snapshot_from_html(html, "https://example.com/")
        assert snapshot.title == "Hi"
        assert snapshot.favicon_href == "/fav.ico"
        assert snapshot.meta_tags == {"description": "D"}


class TestPageSnapshotFromEvaluation:
    def test_coerces_untrusted_values(self) -> None:
        raw = {
            "title": " Page ",
            "metaTags": {"OG:TITLE": "x", "bad": 3, "og:title": "y"},
            "faviconHref": None,
            "url": "https://example.com/final",
            "extra": "ignored",
        }
        snapshot = PageSnapshot.from_evaluation(raw, "https://example.com/")
        assert snapshot.title == "Page"
        assert snapshot.meta_tags == {"og:title": "x"}
        assert snapshot.favicon_href == ""
        assert snapshot.url == "https://example.com/final"

    def test_non_dict_falls_back(self) -> None:
        snapshot = PageSnapshot.from_evaluation(None, "https://example.com/")
        assert snapshot == PageSnapshot(url="https://example.com/")


class TestResultSerialisation:
    def test_scrape_result_to_dict_uses_camel_case(self) -> None:
        payload = ScrapeResult.blocked().to_dict()
        assert payload == {
            "title": "",
            "description": "",
            "image": "",
            "favicon": "",
            "scrapeStatus": "blocked",
        }

    def test_reader_result_to_dict(self) -> None:
        payload = ReaderContentResult.failed("boom").to_dict()
        assert payload["status"] == "failed"
        assert payload["error"] == "boom"
        assert payload["textContent"] == ""
        assert "siteName" in payload
