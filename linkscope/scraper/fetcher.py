"""Fast-path preview fetcher: plain HTTP GET + static tag parsing.

No JavaScript runs and the shared browser is never touched, so any number of
these can be in flight at once.  Only explicit social-preview tags count:
the document ``<title>`` is deliberately ignored here, a page without
``og:title`` / ``twitter:title`` goes to the browser path instead.
"""

from __future__ import annotations

import asyncio

import httpx
from bs4 import BeautifulSoup

from linkscope.config import settings
from linkscope.errors import PrivateAddressError
from linkscope.proxy.transport import GuardedTransport
from linkscope.scraper.metadata import (
    absolute_url,
    collect_meta_tags,
    default_favicon,
    find_favicon_href,
)
from linkscope.scraper.models import FastPathOutcome, ScrapeResult

BROWSER_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/121.0.0.0 Safari/537.36"
)

_DEFAULT_HEADERS = {
    "User-Agent": BROWSER_UA,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

_HTML_TYPES = ("text/html", "application/xhtml+xml")


def _pick(meta: dict[str, str], *keys: str) -> str:
    for key in keys:
        if meta.get(key):
            return meta[key]
    return ""


def parse_preview_tags(html: str, url: str) -> FastPathOutcome:
    """Apply the fast-path acceptance rules to *html* fetched from *url*.

    Accepted only with a title AND at least one of image / description.
    """
    soup = BeautifulSoup(html, "html.parser")
    meta = collect_meta_tags(soup)

    title = _pick(meta, "og:title", "twitter:title")
    if not title:
        return FastPathOutcome(data=None, reason="Missing og:title")

    description = _pick(meta, "og:description", "twitter:description", "description")
    image = _pick(
        meta,
        "og:image:secure_url",
        "og:image",
        "og:image:url",
        "twitter:image",
        "twitter:image:src",
    )
    if not image and not description:
        return FastPathOutcome(data=None, reason="Missing image AND description")

    favicon_href = find_favicon_href(soup)
    favicon = absolute_url(favicon_href, url) if favicon_href else default_favicon(url)

    return FastPathOutcome(
        data=ScrapeResult(
            title=title,
            description=description,
            image=absolute_url(image, url),
            favicon=favicon,
            scrape_status="success",
        )
    )


class _TooLarge(Exception):
    pass


async def _fetch(client: httpx.AsyncClient, url: str, max_bytes: int) -> FastPathOutcome:
    async with client.stream("GET", url) as response:
        if response.status_code >= 400:
            return FastPathOutcome(data=None, reason=f"HTTP {response.status_code}")

        content_type = response.headers.get("content-type", "").lower()
        if content_type and not content_type.startswith(_HTML_TYPES):
            return FastPathOutcome(
                data=None, reason=f"Non-HTML content type: {content_type.split(';')[0]}"
            )

        body = bytearray()
        async for chunk in response.aiter_bytes():
            body.extend(chunk)
            if len(body) > max_bytes:
                raise _TooLarge()

        html = bytes(body).decode(response.encoding or "utf-8", errors="replace")
        return parse_preview_tags(html, str(response.url))


async def simple_scrape(
    url: str,
    timeout: float | None = None,
    *,
    max_bytes: int | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastPathOutcome:
    """Fetch *url* and extract preview metadata without a browser.

    Never raises: every failure is reported through ``FastPathOutcome.reason``.

    Args:
        url: Page to fetch.
        timeout: Hard timeout in seconds for the whole request, body
            included (defaults to ``settings.fast_path_timeout``).
        max_bytes: Body size cap (defaults to ``settings.fast_path_max_bytes``).
        transport: Transport override; defaults to a fresh
            :class:`~linkscope.proxy.transport.GuardedTransport`, so private
            addresses are refused.
    """
    timeout = settings.fast_path_timeout if timeout is None else timeout
    max_bytes = settings.fast_path_max_bytes if max_bytes is None else max_bytes
    try:
        async with httpx.AsyncClient(
            headers=_DEFAULT_HEADERS,
            timeout=timeout,
            follow_redirects=True,
            transport=transport or GuardedTransport(),
        ) as client:
            return await asyncio.wait_for(_fetch(client, url, max_bytes), timeout)
    except (asyncio.TimeoutError, httpx.TimeoutException):
        return FastPathOutcome(data=None, reason=f"Timeout after {timeout:g}s")
    except _TooLarge:
        return FastPathOutcome(data=None, reason=f"Response larger than {max_bytes} bytes")
    except PrivateAddressError:
        return FastPathOutcome(data=None, reason="Private address")
    except httpx.HTTPError as exc:
        return FastPathOutcome(data=None, reason=f"HTTP error: {exc!r:.200}")
