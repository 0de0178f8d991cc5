"""Data models for the scraper pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

ScrapeStatus = Literal["success", "blocked", "failed"]


@dataclass(frozen=True)
class ScrapeResult:
    """Link-preview metadata for a single URL."""

    title: str
    description: str
    image: str
    favicon: str
    scrape_status: ScrapeStatus

    @classmethod
    def failed(cls) -> ScrapeResult:
        return cls(title="", description="", image="", favicon="", scrape_status="failed")

    @classmethod
    def blocked(cls) -> ScrapeResult:
        return cls(title="", description="", image="", favicon="", scrape_status="blocked")

    def to_dict(self) -> dict[str, str]:
        """Serialise to the camelCase payload stored as a link's preview data."""
        return {
            "title": self.title,
            "description": self.description,
            "image": self.image,
            "favicon": self.favicon,
            "scrapeStatus": self.scrape_status,
        }


@dataclass(frozen=True)
class ReaderContentResult:
    """Full readable article distilled from a page.

    ``content`` is sanitised HTML whose paragraphs carry stable ids and whose
    links are absolute; ``text_content`` is the plain-text equivalent.
    """

    title: str
    byline: str | None
    content: str
    text_content: str
    site_name: str | None
    status: ScrapeStatus
    error: str | None = None

    @classmethod
    def failed(cls, error: str) -> ReaderContentResult:
        return cls(
            title="",
            byline=None,
            content="",
            text_content="",
            site_name=None,
            status="failed",
            error=error,
        )

    @classmethod
    def blocked(cls, error: str = "Access blocked (403)") -> ReaderContentResult:
        return cls(
            title="",
            byline=None,
            content="",
            text_content="",
            site_name=None,
            status="blocked",
            error=error,
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "title": self.title,
            "byline": self.byline,
            "content": self.content,
            "textContent": self.text_content,
            "siteName": self.site_name,
            "status": self.status,
        }
        if self.error is not None:
            payload["error"] = self.error
        return payload


@dataclass(frozen=True)
class FastPathOutcome:
    """Result of the browser-free fast path.

    ``data`` is ``None`` whenever the page failed an acceptance criterion;
    ``reason`` then says which one (used to diagnose the fallback rate).
    """

    data: ScrapeResult | None
    reason: str | None = None


@dataclass
class PageSnapshot:
    """The head-level view of a page that preview extraction works from.

    This is the only shape allowed across the browser boundary: whatever the
    in-page script returns is coerced into these four fields.
    """

    url: str
    title: str = ""
    meta_tags: dict[str, str] = field(default_factory=dict)
    favicon_href: str = ""

    @classmethod
    def from_evaluation(cls, raw: Any, fallback_url: str) -> PageSnapshot:
        """Build a snapshot from an untrusted ``page.evaluate`` result."""
        if not isinstance(raw, dict):
            return cls(url=fallback_url)

        meta_tags: dict[str, str] = {}
        raw_meta = raw.get("metaTags")
        if isinstance(raw_meta, dict):
            for key, value in raw_meta.items():
                if isinstance(key, str) and isinstance(value, str) and value.strip():
                    meta_tags.setdefault(key.strip().lower(), value.strip())

        def _text(key: str) -> str:
            value = raw.get(key)
            return value.strip() if isinstance(value, str) else ""

        return cls(
            url=_text("url") or fallback_url,
            title=_text("title"),
            meta_tags=meta_tags,
            favicon_href=_text("faviconHref"),
        )


@dataclass(frozen=True)
class DownloadLink:
    """An outbound file-hosting / direct-download link found on a page."""

    href: str
    text: str
    provider: str
