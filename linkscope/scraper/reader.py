"""Reader-mode extraction: full article content from a rendered page."""

from __future__ import annotations

import logging

from linkscope.config import Settings, settings as default_settings
from linkscope.scraper.blocklist import READER_FILTER, install_request_filter
from linkscope.scraper.browser import BrowserManager
from linkscope.scraper.challenge import settle_challenge
from linkscope.scraper.extractor import distill_article
from linkscope.scraper.models import ReaderContentResult
from linkscope.scraper.stealth import apply_stealth, random_context_options

logger = logging.getLogger(__name__)

# Tried in order; the first one to resolve ends the wait.
READINESS_CHECKS = (
    "() => !!document.querySelector('article, .post-content, .entry-content, main')",
    "() => document.querySelectorAll('p').length > 10",
    """() => {
        const text = (document.body && document.body.innerText) || '';
        return text.length > 800 && !text.includes('Loading...');
    }""",
)

_BODY_TEXT_JS = "() => (document.body && document.body.innerText) || ''"


class ReaderExtractor:
    """Render *url* in the shared browser and distil it into an article."""

    def __init__(self, browser: BrowserManager, cfg: Settings | None = None) -> None:
        self._browser = browser
        self._settings = cfg or default_settings

    async def extract(self, url: str) -> ReaderContentResult:
        """Return reader content for *url*.  Never raises."""
        try:
            async with self._browser.new_context(**random_context_options()) as context:
                logger.info(
                    "[Scraper:Reader] Starting reader scrape [Req #%d] for %s",
                    self._browser.request_count,
                    url,
                )
                result = await self._scrape(context, url)
                if result.status == "success":
                    logger.info("[Scraper:Reader] SUCCESS for %s", url)
                return result
        except Exception as exc:
            logger.error("[Scraper:Reader] FAILED for %s: %s", url, exc)
            return ReaderContentResult.failed(str(exc) or type(exc).__name__)

    async def _scrape(self, context, url: str) -> ReaderContentResult:
        await apply_stealth(context)
        page = await context.new_page()
        await install_request_filter(page, READER_FILTER)

        response = await page.goto(
            url,
            wait_until="domcontentloaded",
            timeout=self._settings.reader_nav_timeout_ms,
        )
        if response is not None and response.status == 403:
            logger.warning("[Scraper:Reader] BLOCKED (403) for %s", url)
            return ReaderContentResult.blocked()

        if not await settle_challenge(page):
            logger.warning("[Scraper:Reader] Blocked by bot wall for %s", url)
            return ReaderContentResult.blocked("Blocked by bot protection")

        await self._wait_until_ready(page)

        html = await page.content()
        final_url = page.url or url
        body_text = await page.evaluate(_BODY_TEXT_JS)

        result = distill_article(html, final_url, body_text if isinstance(body_text, str) else None)
        if result.status != "success":
            logger.warning("[Scraper:Reader] %s for %s", result.error, url)
        return result

    async def _wait_until_ready(self, page) -> None:
        timeout = self._settings.reader_ready_timeout_ms
        for check in READINESS_CHECKS:
            try:
                await page.wait_for_function(check, timeout=timeout)
                return
            except Exception:
                continue
        logger.debug("[Scraper:Reader] No readiness signal, extracting as-is")
