"""SSRF-safe image proxy.

Fetches a remote image on behalf of a client and hands back the byte stream
with its content type.  Requests can never reach loopback, private,
link-local or metadata addresses: literal IPs are rejected up front and
every connection (including each redirect hop) goes through
:class:`~linkscope.proxy.transport.GuardedTransport`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable
from urllib.parse import urlparse

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from linkscope.config import Settings, settings as default_settings
from linkscope.errors import (
    InvalidProtocolError,
    InvalidUrlError,
    PrivateAddressError,
    UpstreamFetchError,
)
from linkscope.proxy.addresses import is_private_ip, parse_ip
from linkscope.proxy.transport import GuardedTransport

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)
IMAGE_ACCEPT = "image/avif,image/webp,image/apng,image/svg+xml,image/*,*/*;q=0.8"
DEFAULT_CONTENT_TYPE = "image/png"

RETRY_STATUSES = frozenset({502, 503, 504})
# 1 s, then 2 s.
RETRY_WAIT = wait_exponential(multiplier=1, min=1, max=2)


class _RetryableUpstream(Exception):
    def __init__(self, status_code: int) -> None:
        super().__init__(f"Upstream returned {status_code}")
        self.status_code = status_code


@dataclass
class ProxiedImage:
    """A live upstream image response.

    Iterate :attr:`stream` to forward the body; the upstream connection is
    released once the stream is exhausted or :meth:`aclose` is called.
    """

    stream: AsyncIterator[bytes]
    content_type: str
    _close: Callable[[], Awaitable[None]] = field(repr=False)

    async def aclose(self) -> None:
        await self._close()

    async def read(self) -> bytes:
        """Consume the whole body (convenience for small images and tests)."""
        chunks = [chunk async for chunk in self.stream]
        return b"".join(chunks)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def validate_image_url(url: str) -> httpx.URL:
    """Parse *url* and reject anything the proxy must not fetch.

    Raises:
        InvalidUrlError: Unparseable, relative or host-less URL.
        InvalidProtocolError: Scheme other than http/https.
        PrivateAddressError: Literal private IP or ``localhost``.
    """
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError) as exc:
        raise InvalidUrlError() from exc

    if not parsed.scheme:
        raise InvalidUrlError()
    if parsed.scheme not in ("http", "https"):
        raise InvalidProtocolError()
    if not parsed.host:
        raise InvalidUrlError()

    host = parsed.host.lower()
    if host == "localhost" or host.endswith(".localhost"):
        raise PrivateAddressError()
    literal = parse_ip(host)
    if literal is not None and is_private_ip(literal):
        raise PrivateAddressError()
    return parsed


def _request_headers(url: httpx.URL) -> dict[str, str]:
    parts = urlparse(str(url))
    return {
        "User-Agent": USER_AGENT,
        "Accept": IMAGE_ACCEPT,
        "Accept-Language": "en-US,en;q=0.9",
        "Referer": f"{parts.scheme}://{parts.netloc}/",
    }


# ---------------------------------------------------------------------------
# Fetching
# ---------------------------------------------------------------------------

async def _send(client: httpx.AsyncClient, url: httpx.URL) -> httpx.Response:
    response = await client.send(client.build_request("GET", url), stream=True)
    if response.status_code in RETRY_STATUSES:
        await response.aclose()
        raise _RetryableUpstream(response.status_code)
    if response.status_code >= 400:
        await response.aclose()
        logger.warning("[ImageProxy] Upstream %d for %s", response.status_code, url)
        raise UpstreamFetchError()
    return response


async def _open(client: httpx.AsyncClient, url: httpx.URL, cfg: Settings) -> httpx.Response:
    retrying = AsyncRetrying(
        stop=stop_after_attempt(cfg.proxy_max_retries + 1),
        wait=RETRY_WAIT,
        retry=retry_if_exception_type((httpx.TimeoutException, _RetryableUpstream)),
        reraise=True,
    )
    try:
        async for attempt in retrying:
            with attempt:
                response = await _send(client, url)
    except (httpx.HTTPError, _RetryableUpstream) as exc:
        logger.warning("[ImageProxy] Fetch failed for %s: %s", url, exc)
        raise UpstreamFetchError() from exc
    return response


async def proxy_image(
    url: str,
    *,
    cfg: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ProxiedImage:
    """Fetch the image at *url* through the SSRF guard.

    Args:
        url: Absolute http(s) image URL supplied by the client.
        cfg: Settings to use (defaults to the module-level singleton).
        transport: Transport override; defaults to a fresh
            :class:`GuardedTransport`.

    Raises:
        ImageProxyError: One of its subclasses; ``status_code`` and
            ``detail`` map straight onto an HTTP error response.
    """
    cfg = cfg or default_settings
    target = validate_image_url(url)

    client = httpx.AsyncClient(
        transport=transport or GuardedTransport(),
        headers=_request_headers(target),
        timeout=cfg.proxy_timeout,
        follow_redirects=True,
        max_redirects=cfg.proxy_max_redirects,
    )
    try:
        response = await _open(client, target, cfg)
    except BaseException:
        await client.aclose()
        raise

    content_type = response.headers.get("content-type", "")
    if not content_type.lower().startswith("image/"):
        content_type = DEFAULT_CONTENT_TYPE

    async def _close() -> None:
        await response.aclose()
        await client.aclose()

    async def _stream() -> AsyncIterator[bytes]:
        try:
            async for chunk in response.aiter_bytes():
                yield chunk
        finally:
            await _close()

    logger.debug("[ImageProxy] Streaming %s (%s)", url, content_type)
    return ProxiedImage(stream=_stream(), content_type=content_type, _close=_close)
