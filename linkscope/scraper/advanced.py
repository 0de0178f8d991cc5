"""Browser-rendered preview extraction for JavaScript-heavy pages.

Used when the fast path comes back empty.  Runs inside a queue task, drives
an isolated context on the shared browser, and reads only the document head:
images, fonts, stylesheets, media and trackers are never downloaded.
"""

from __future__ import annotations

import logging

from linkscope.config import Settings, settings as default_settings
from linkscope.scraper.blocklist import METADATA_FILTER, install_request_filter
from linkscope.scraper.browser import BrowserManager
from linkscope.scraper.challenge import settle_challenge
from linkscope.scraper.metadata import aggregate_metadata
from linkscope.scraper.models import PageSnapshot, ScrapeResult
from linkscope.scraper.stealth import apply_stealth, random_context_options

logger = logging.getLogger(__name__)

# Returns exactly the PageSnapshot schema: {title, metaTags, faviconHref, url}.
SNAPSHOT_JS = """() => {
    const metaTags = {};
    document.querySelectorAll('meta').forEach((el) => {
        const key = el.getAttribute('name')
            || el.getAttribute('property')
            || el.getAttribute('itemprop');
        const content = el.getAttribute('content');
        if (key && content && !(key.toLowerCase() in metaTags)) {
            metaTags[key.toLowerCase()] = content;
        }
    });
    const icon = document.querySelector(
        'link[rel="icon"], link[rel="shortcut icon"], link[rel="apple-touch-icon"]'
    );
    return {
        title: document.title || '',
        metaTags,
        faviconHref: icon ? icon.href : '',
        url: window.location.href,
    };
}"""


class AdvancedExtractor:
    """Render a page in the shared browser and extract preview metadata."""

    def __init__(self, browser: BrowserManager, cfg: Settings | None = None) -> None:
        self._browser = browser
        self._settings = cfg or default_settings

    async def extract(self, url: str) -> ScrapeResult:
        """Return preview metadata for *url*.  Never raises."""
        try:
            async with self._browser.new_context(**random_context_options()) as context:
                req_id = self._browser.request_count
                logger.info("[Scraper:Advanced] Starting scrape [Req #%d] for %s", req_id, url)
                result = await self._scrape(context, url)
                if result.scrape_status == "success":
                    logger.info("[Scraper:Advanced] SUCCESS [Req #%d] for %s", req_id, url)
                return result
        except Exception as exc:
            logger.error("[Scraper:Advanced] FAILED for %s: %s", url, exc)
            return ScrapeResult.failed()

    async def _scrape(self, context, url: str) -> ScrapeResult:
        await apply_stealth(context)
        page = await context.new_page()
        await install_request_filter(page, METADATA_FILTER)

        response = await page.goto(
            url,
            wait_until="domcontentloaded",
            timeout=self._settings.advanced_nav_timeout_ms,
        )
        if response is not None and response.status == 403:
            logger.warning("[Scraper:Advanced] BLOCKED (403) for %s", url)
            return ScrapeResult.blocked()

        if not await settle_challenge(page):
            logger.warning("[Scraper:Advanced] Blocked by bot wall for %s", url)
            return ScrapeResult.blocked()

        snapshot = PageSnapshot.from_evaluation(await page.evaluate(SNAPSHOT_JS), url)
        metadata = aggregate_metadata(snapshot)
        if not metadata.title:
            logger.warning("[Scraper:Advanced] No title found for %s", url)
            return ScrapeResult.failed()

        return ScrapeResult(
            title=metadata.title,
            description=metadata.description,
            image=metadata.image,
            favicon=metadata.favicon,
            scrape_status="success",
        )
