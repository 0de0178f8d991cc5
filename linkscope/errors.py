"""Exception hierarchy for LinkScope.

Scrape entry points never raise these to their callers; failures are folded
into the result's status field.  The image proxy does raise them, because its
caller is a request handler that has to pick an HTTP status; every
:class:`ImageProxyError` therefore carries ``status_code`` and ``detail``.
"""

from __future__ import annotations


class LinkScopeError(Exception):
    """Base exception for LinkScope."""


class ScrapeError(LinkScopeError):
    """Scraping related errors."""


class QueueTimeoutError(ScrapeError):
    """A queued extraction task exceeded its deadline."""

    def __init__(self, timeout: float) -> None:
        super().__init__(f"Task timed out after {timeout:g}s")
        self.timeout = timeout


class ImageProxyError(LinkScopeError):
    """Base class for image proxy failures that map onto an HTTP status."""

    status_code: int = 500
    detail: str = "Image proxy error"

    def __init__(self, detail: str | None = None) -> None:
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class InvalidUrlError(ImageProxyError):
    status_code = 400
    detail = "Invalid URL"


class InvalidProtocolError(ImageProxyError):
    status_code = 400
    detail = "Invalid protocol"


class PrivateAddressError(ImageProxyError):
    """The target (or a redirect hop) resolves to an internal address."""

    status_code = 400
    detail = "Access to private IP denied"


class UpstreamFetchError(ImageProxyError):
    status_code = 502
    detail = "Failed to fetch image"
