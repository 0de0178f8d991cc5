"""Reader-mode distillation: turns a rendered page into a :class:`ReaderContentResult`.

Everything here works on HTML strings, so it runs (and is tested) without a
browser.  :func:`distill_article` is the entry point; the reader extractor
feeds it the rendered DOM, the final URL and the body's rendered text.

Pipeline:

1. Strip navigation/related/share/ad noise from a copy of the page.
2. Run readability (``readability-lxml``) for the article body and
   ``trafilatura`` for title / byline / site name.
3. Post-process the article fragment: sanitise, give every paragraph a
   stable id, absolutise links, drop social-share links, flag download links.
4. Scan the *original* page for download links and a ``Password: X`` hint
   and append a "Download Links" section when any are found.
"""

from __future__ import annotations

import hashlib
import re
from urllib.parse import urljoin, urlparse

import trafilatura
from bs4 import BeautifulSoup, Tag
from lxml.html import defs
from lxml_html_clean import Cleaner
from readability import Document

from linkscope.scraper.models import DownloadLink, ReaderContentResult

NOISE_SELECTORS = (
    ".related",
    "#recommended",
    ".read-more",
    ".js-related-posts",
    ".wp-block-related-posts",
    ".entry-related",
    ".post-navigation",
    ".social-share",
    ".author-box",
    ".newsletter-signup",
    ".comments-area",
    "aside",
    "nav",
    ".widget",
    ".ads",
    ".ad-unit",
)

SOCIAL_DOMAINS = (
    "facebook.com",
    "twitter.com",
    "x.com",
    "pinterest.com",
    "whatsapp.com",
    "linkedin.com",
    "reddit.com",
    "instagram.com",
    "t.me",
    "telegram.me",
    "discord.com",
)

_CLEANER = Cleaner(
    scripts=True,
    javascript=True,
    comments=True,
    style=True,
    inline_style=True,
    embedded=True,
    frames=True,
    forms=True,
    kill_tags=("noscript",),
    safe_attrs_only=True,
    safe_attrs=defs.safe_attrs | {"data-src"},
)

_DOWNLOAD_HREF_PATTERNS = (
    re.compile(r"\.(zip|7z|rar|iso|exe|dmg|pkg|apk|pdf)$", re.IGNORECASE),
    re.compile(
        r"mega\.nz|mediafire\.com|terabox|drive\.google|pixeldrain|doodrive|gdrive"
        r"|1drv\.ms|dropbox\.com",
        re.IGNORECASE,
    ),
    re.compile(r"zippyshare|krakenfiles|workupload|gofile\.io|anonfiles|bayfiles", re.IGNORECASE),
)

_DOWNLOAD_TEXT_PATTERNS = (
    re.compile(r"download", re.IGNORECASE),
    re.compile(r"get\s+(?:it|now|here)", re.IGNORECASE),
    re.compile(r"\bmega\b", re.IGNORECASE),
    re.compile(r"gdrive|google\s*drive", re.IGNORECASE),
    re.compile(r"pixeldrain|mirrored|zippyshare|doodrive|terabox", re.IGNORECASE),
)

_PROVIDERS = (
    ("mega.nz", "mega"),
    ("mediafire.com", "mediafire"),
    ("terabox", "terabox"),
    ("drive.google", "google-drive"),
    ("google.com/drive", "google-drive"),
    ("pixeldrain.com", "pixeldrain"),
    ("doodrive.com", "doodrive"),
    ("1drv.ms", "onedrive"),
    ("onedrive", "onedrive"),
    ("zippyshare.com", "zippyshare"),
)

_RELATED_MARKER = re.compile(r"related|read|more|recommended", re.IGNORECASE)
_PASSWORD = re.compile(r"Password\s*:\s*(\S+)", re.IGNORECASE)
_LABEL_JUNK = re.compile(r"^[|\s\-_/]+")
_URL_JUNK = re.compile(r"[\x00-\x20]+")

MAX_DOWNLOAD_LINKS = 25


# ---------------------------------------------------------------------------
# Link heuristics
# ---------------------------------------------------------------------------

def is_download_link(href: str, text: str = "") -> bool:
    """Return ``True`` if *href* / its anchor *text* look like a file download."""
    path = urlparse(href).path or href
    if _DOWNLOAD_HREF_PATTERNS[0].search(path):
        return True
    if any(p.search(href) for p in _DOWNLOAD_HREF_PATTERNS[1:]):
        return True
    return any(p.search(text) for p in _DOWNLOAD_TEXT_PATTERNS)


def download_provider(href: str) -> str:
    lowered = href.lower()
    for needle, provider in _PROVIDERS:
        if needle in lowered:
            return provider
    return "direct"


def _is_social(url: str) -> bool:
    host = (urlparse(url).hostname or "").lower()
    return any(host == d or host.endswith("." + d) for d in SOCIAL_DOMAINS)


# ---------------------------------------------------------------------------
# Noise removal
# ---------------------------------------------------------------------------

def strip_noise(soup: BeautifulSoup) -> None:
    """Remove related-posts, share bars, ads and similar chrome in place."""
    for selector in NOISE_SELECTORS:
        for el in soup.select(selector):
            el.decompose()

    # Link-dense blocks labelled as "related" / "read more" lists.
    for el in soup.find_all(["div", "section", "article"]):
        if el.decomposed:
            continue
        text_length = len(el.get_text(strip=True))
        if text_length < 100:
            continue
        density = len(el.find_all("a")) * 20 / text_length
        marker = " ".join(el.get("class") or []) + (el.get("id") or "")
        if density > 0.4 and _RELATED_MARKER.search(marker):
            el.decompose()


def sanitise_fragment(fragment: str) -> BeautifulSoup:
    """Run an article fragment through the allowlist cleaner.

    Unknown tags are unwrapped, script-capable elements dropped, and only
    lxml's safe attributes survive (so no event handlers, no SVG
    animation targets).  Obfuscated ``javascript:`` URLs are emptied.
    """
    cleaned = _CLEANER.clean_html(f"<div>{fragment}</div>")
    return BeautifulSoup(cleaned, "html.parser")


# ---------------------------------------------------------------------------
# Fragment post-processing
# ---------------------------------------------------------------------------

def _paragraph_digest(p: Tag) -> str:
    text = " ".join(p.get_text(" ").split())
    return hashlib.sha1(text.encode("utf-8")).hexdigest()[:10]


def assign_paragraph_ids(container: BeautifulSoup) -> list[str]:
    """Give every ``<p>`` a unique id derived from its text.

    Identical input always yields identical ids.  Repeated paragraph text
    gets a ``-2``, ``-3``... suffix; an id already present in the page is
    kept unless it would clash.

    Returns:
        The assigned ids in document order.
    """
    seen: set[str] = set()
    ids: list[str] = []
    for p in container.find_all("p"):
        existing = p.get("id")
        if existing and existing not in seen:
            pid = existing
        else:
            base = f"p-{_paragraph_digest(p)}"
            pid, n = base, 1
            while pid in seen:
                n += 1
                pid = f"{base}-{n}"
        seen.add(pid)
        ids.append(pid)
        p["id"] = pid
        p["data-paragraph"] = "true"
    return ids


def absolutize_links(container: BeautifulSoup, base_url: str) -> None:
    """Rewrite links and images against *base_url* and tag download links.

    Links to social networks (share buttons that survived readability) are
    removed entirely.
    """
    for a in container.find_all("a"):
        href = (a.get("href") or "").strip()
        if _URL_JUNK.sub("", href).lower().startswith("javascript:"):
            del a["href"]
            continue
        if href and not href.startswith("#"):
            absolute = urljoin(base_url, href)
            if _is_social(absolute):
                a.decompose()
                continue
            a["href"] = absolute
            if is_download_link(absolute, a.get_text(" ", strip=True)):
                a["data-download"] = "true"
            a["target"] = "_blank"
            a["rel"] = "noopener noreferrer"

    for img in container.find_all("img"):
        src = (img.get("src") or img.get("data-src") or "").strip()
        if src:
            img["src"] = urljoin(base_url, src)


# ---------------------------------------------------------------------------
# Whole-page scans
# ---------------------------------------------------------------------------

def find_download_links(soup: BeautifulSoup, base_url: str) -> list[DownloadLink]:
    """Collect download links from the full, unfiltered page."""
    links: list[DownloadLink] = []
    seen: set[str] = set()
    for a in soup.find_all("a", href=True):
        href = urljoin(base_url, a["href"].strip())
        if not href.startswith(("http://", "https://")) or href in seen:
            continue
        text = " ".join(a.get_text(" ").split())
        if not is_download_link(href, text):
            continue
        label = _LABEL_JUNK.sub("", text).upper()
        if not 0 < len(label) < 100:
            continue
        seen.add(href)
        links.append(DownloadLink(href=href, text=label, provider=download_provider(href)))
        if len(links) >= MAX_DOWNLOAD_LINKS:
            break
    return links


def find_password(text: str) -> str | None:
    match = _PASSWORD.search(text or "")
    return match.group(1) if match else None


def render_download_section(links: list[DownloadLink], password: str | None = None) -> str:
    """Build the appended "Download Links" block (all values HTML-escaped)."""
    soup = BeautifulSoup("", "html.parser")
    section = soup.new_tag("div", attrs={"class": "download-section"})

    header = soup.new_tag("div", attrs={"class": "download-header"})
    heading = soup.new_tag("h3")
    heading.string = "Download Links"
    header.append(heading)
    section.append(header)

    grid = soup.new_tag("div", attrs={"class": "download-grid"})
    for link in links:
        anchor = soup.new_tag(
            "a",
            attrs={
                "href": link.href,
                "target": "_blank",
                "rel": "noopener noreferrer",
                "data-download": "true",
                "data-provider": link.provider,
            },
        )
        label = soup.new_tag("span", attrs={"class": "link-label"})
        label.string = link.text
        anchor.append(label)
        grid.append(anchor)
    section.append(grid)

    if password:
        box = soup.new_tag("div", attrs={"class": "password-container"})
        caption = soup.new_tag("span", attrs={"class": "password-label"})
        caption.string = "Password:"
        value = soup.new_tag("code", attrs={"class": "password-value"})
        value.string = password
        box.append(caption)
        box.append(value)
        section.append(box)

    return str(section)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _fallback_container(soup: BeautifulSoup) -> Tag | None:
    """Prefer structural content containers when readability finds nothing."""
    return soup.find("main") or soup.find("article") or soup.body


def _text_content(container: BeautifulSoup) -> str:
    text = container.get_text()
    lines = [" ".join(line.split()) for line in text.splitlines()]
    return re.sub(r"\n{3,}", "\n\n", "\n".join(lines)).strip()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def distill_article(html: str, url: str, body_text: str | None = None) -> ReaderContentResult:
    """Extract a readable article from rendered *html*.

    Args:
        html: Serialised DOM of the rendered page.
        url: Final (post-redirect) page URL; relative links resolve against it.
        body_text: The page body's rendered text, used for the password
            scan.  Derived from *html* when omitted.

    Returns:
        ``status="success"`` with processed content, or ``status="failed"``
        with ``error`` when no title / readable content could be found.
    """
    original = BeautifulSoup(html, "html.parser")

    cleaned = BeautifulSoup(html, "html.parser")
    strip_noise(cleaned)
    cleaned_html = str(cleaned)

    doc = Document(cleaned_html, url=url)
    meta = trafilatura.extract_metadata(html, default_url=url)

    title = (getattr(meta, "title", None) or doc.short_title() or "").strip()
    if not title:
        return ReaderContentResult.failed("No readable content")

    fragment = doc.summary(html_partial=True)
    if not BeautifulSoup(fragment, "html.parser").get_text(strip=True):
        fallback = _fallback_container(cleaned)
        if fallback is None or not fallback.get_text(strip=True):
            return ReaderContentResult.failed("No readable content")
        fragment = fallback.decode_contents()

    article = sanitise_fragment(fragment)
    assign_paragraph_ids(article)
    absolutize_links(article, url)
    text_content = _text_content(article)
    content = str(article)

    links = find_download_links(original, url)
    if links:
        password = find_password(body_text if body_text is not None else original.get_text("\n"))
        content += render_download_section(links, password)

    return ReaderContentResult(
        title=title,
        byline=(getattr(meta, "author", None) or None),
        content=content,
        text_content=text_content,
        site_name=(getattr(meta, "sitename", None) or None),
        status="success",
    )
