"""Preview metadata aggregation across the common tag dialects.

Pages describe themselves through several overlapping vocabularies: Open
Graph (``og:*``), Twitter Cards (``twitter:*``), schema.org microdata
(``itemprop``) and plain ``<meta name=...>`` tags, plus a few platform
conventions.  :func:`aggregate_metadata` reduces a :class:`PageSnapshot` to a
single title / description / image / favicon, trying each dialect in a fixed
priority order.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import parse_qs, urljoin, urlparse

from bs4 import BeautifulSoup

from linkscope.scraper.models import PageSnapshot

_TITLE_KEYS = ("og:title", "twitter:title", "sailthru.title", "name", "title")
_DESCRIPTION_KEYS = (
    "og:description",
    "twitter:description",
    "description",
    "sailthru.description",
)
_IMAGE_KEYS = (
    "og:image:secure_url",
    "og:image",
    "og:image:url",
    "twitter:image",
    "twitter:image:src",
    "image",
    "thumbnailurl",
    "sailthru.image.full",
)
_LOGO_KEYS = ("og:logo", "logo")

_ICON_RELS = ("icon", "shortcut icon", "apple-touch-icon")

_YOUTUBE_ID = re.compile(r"^[A-Za-z0-9_-]{11}$")


@dataclass(frozen=True)
class PreviewMetadata:
    title: str
    description: str
    image: str
    favicon: str


def _first(meta_tags: dict[str, str], keys: tuple[str, ...]) -> str:
    for key in keys:
        value = meta_tags.get(key, "").strip()
        if value:
            return value
    return ""


def absolute_url(url: str, base: str) -> str:
    if not url:
        return ""
    if url.startswith("//"):
        return f"{urlparse(base).scheme or 'https'}:{url}"
    return urljoin(base, url)


def default_favicon(url: str) -> str:
    """Return ``<origin>/favicon.ico`` for *url*, or empty string."""
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        return ""
    return f"{parsed.scheme}://{parsed.netloc}/favicon.ico"


def youtube_video_id(url: str) -> str | None:
    """Extract the video id from a YouTube watch / short / embed URL."""
    parsed = urlparse(url)
    host = (parsed.hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]

    candidate = None
    if host == "youtu.be":
        candidate = parsed.path.lstrip("/").split("/")[0]
    elif host in ("youtube.com", "m.youtube.com", "music.youtube.com"):
        if parsed.path == "/watch":
            candidate = parse_qs(parsed.query).get("v", [None])[0]
        else:
            parts = [p for p in parsed.path.split("/") if p]
            if len(parts) >= 2 and parts[0] in ("embed", "shorts", "live", "v"):
                candidate = parts[1]

    if candidate and _YOUTUBE_ID.match(candidate):
        return candidate
    return None


# ---------------------------------------------------------------------------
# Static HTML → snapshot
# ---------------------------------------------------------------------------

def collect_meta_tags(soup: BeautifulSoup) -> dict[str, str]:
    """Map lower-cased ``name`` / ``property`` / ``itemprop`` keys to content.

    The first occurrence of a key wins, matching how crawlers treat repeated
    ``og:image`` tags (the first is the primary image).
    """
    tags: dict[str, str] = {}
    for el in soup.find_all("meta"):
        key = el.get("name") or el.get("property") or el.get("itemprop")
        content = el.get("content")
        if key and content and content.strip():
            tags.setdefault(key.strip().lower(), content.strip())
    return tags


def find_favicon_href(soup: BeautifulSoup) -> str:
    for link in soup.find_all("link", href=True):
        rels = link.get("rel") or []
        if isinstance(rels, str):
            rels = rels.split()
        rel = " ".join(r.lower() for r in rels)
        if rel in _ICON_RELS:
            return link["href"].strip()
    return ""


def snapshot_from_html(html: str, url: str) -> PageSnapshot:
    """Build a :class:`PageSnapshot` from raw HTML (no script execution)."""
    soup = BeautifulSoup(html, "html.parser")
    title_tag = soup.find("title")
    return PageSnapshot(
        url=url,
        title=title_tag.get_text(strip=True) if title_tag else "",
        meta_tags=collect_meta_tags(soup),
        favicon_href=find_favicon_href(soup),
    )


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def aggregate_metadata(snapshot: PageSnapshot) -> PreviewMetadata:
    """Normalise a snapshot into preview fields.

    All URLs in the result are absolute.  The document ``<title>`` is used
    when no tag dialect supplies a title.
    """
    meta = snapshot.meta_tags
    base = snapshot.url

    title = _first(meta, _TITLE_KEYS) or snapshot.title
    description = _first(meta, _DESCRIPTION_KEYS)

    image = _first(meta, _IMAGE_KEYS)
    video_id = youtube_video_id(base)
    if video_id and not image:
        image = f"https://i.ytimg.com/vi/{video_id}/maxresdefault.jpg"

    favicon = _first(meta, _LOGO_KEYS) or snapshot.favicon_href
    favicon = absolute_url(favicon, base) if favicon else default_favicon(base)

    return PreviewMetadata(
        title=" ".join(title.split()),
        description=" ".join(description.split()),
        image=absolute_url(image, base),
        favicon=favicon,
    )
