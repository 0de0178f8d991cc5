"""Request-blocking policy for browser-rendered pages.

Policy (what to block) is kept separate from the Playwright route handler
(how to block) so it can be tested as a plain predicate.
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlparse

# Trackers, ad networks and analytics; subdomains match too.
BLOCKED_DOMAIN_PATTERNS: tuple[str, ...] = (
    "googletagmanager.com",
    "google-analytics.com",
    "facebook.net",
    "connect.facebook.net",
    "twitter.com",
    "platform.twitter.com",
    "linkedin.com",
    "bing.com",
    "yandex.ru",
    "doubleclick.net",
    "adnxs.com",
    "adsystem.com",
    "adrolling.com",
    "hotjar.com",
    "segment.io",
    "amplitude.com",
    "mixpanel.com",
    "sentry.io",
    "intercom.io",
    "disqus.com",
    "disquscdn.com",
    "gravatar.com",
    "fontawesome.com",
    "typekit.net",
    "googlesyndication.com",
    "taboola.com",
    "outbrain.com",
    "criteo.com",
    "amazon-adsystem.com",
    "scorecardresearch.com",
)


def _blocked_pattern(url: str) -> str | None:
    host = (urlparse(url).hostname or "").lower()
    for d in BLOCKED_DOMAIN_PATTERNS:
        if host == d or host.endswith("." + d):
            return d
    return None


def is_blocked_domain(url: str) -> bool:
    """Return ``True`` if the host of *url* is (a subdomain of) a blocked domain."""
    return _blocked_pattern(url) is not None


@dataclass(frozen=True)
class RequestFilter:
    """Decides which sub-requests a rendered page may issue.

    Attributes:
        blocked_types: Playwright ``resource_type`` values to abort.
        block_trackers: Also abort requests matching the blocked domains.
    """

    blocked_types: frozenset[str]
    block_trackers: bool = True

    def should_block(
        self, url: str, resource_type: str = "other", page_url: str | None = None
    ) -> bool:
        if resource_type in self.blocked_types:
            return True
        # Documents are the pages being scraped, whatever their host.
        if resource_type == "document" or not self.block_trackers:
            return False
        pattern = _blocked_pattern(url)
        if pattern is None:
            return False
        # A listed site loading its own assets is not tracking.
        return not (page_url and _blocked_pattern(page_url) == pattern)


# Preview extraction only needs the document head.
METADATA_FILTER = RequestFilter(
    blocked_types=frozenset({"image", "font", "stylesheet", "media"}),
)

# Reader mode keeps images; the article renders with them.
READER_FILTER = RequestFilter(
    blocked_types=frozenset({"font", "stylesheet", "media"}),
)


async def install_request_filter(page, request_filter: RequestFilter) -> None:
    """Route every request of *page* through *request_filter*."""

    async def _handle(route) -> None:
        request = route.request
        if request_filter.should_block(request.url, request.resource_type, page.url):
            await route.abort()
        else:
            await route.continue_()

    await page.route("**/*", _handle)
