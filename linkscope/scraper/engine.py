"""Scrape orchestration: fast path first, browser-rendered fallback second.

:class:`ScrapeEngine` wires one :class:`BrowserManager` to one
:class:`TaskQueue` and the two browser-driven extractors.  Every browser
task goes through the queue; the fast path never does.

The module-level helpers (:func:`smart_scrape`, :func:`reader_scrape`,
:func:`shutdown`) operate on a lazily created process-wide engine.
"""

from __future__ import annotations

import logging
from urllib.parse import urlparse

from linkscope.config import Settings, settings as default_settings
from linkscope.errors import QueueTimeoutError
from linkscope.scraper.advanced import AdvancedExtractor
from linkscope.scraper.browser import BrowserManager
from linkscope.scraper.fetcher import simple_scrape
from linkscope.scraper.models import ReaderContentResult, ScrapeResult
from linkscope.scraper.queue import TaskQueue
from linkscope.scraper.reader import ReaderExtractor

logger = logging.getLogger(__name__)


def is_scrapable_url(url: str) -> bool:
    """Only absolute http(s) URLs are ever fetched or rendered."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.hostname)


class ScrapeEngine:
    """Two-tier preview extraction plus reader mode over a shared browser.

    Args:
        cfg: Settings to use (defaults to the module-level singleton).
        browser: Browser manager; built from *cfg* when omitted.
        queue: Task queue; built from *cfg* when omitted.
    """

    def __init__(
        self,
        cfg: Settings | None = None,
        *,
        browser: BrowserManager | None = None,
        queue: TaskQueue | None = None,
    ) -> None:
        self.settings = cfg or default_settings
        self.browser = browser or BrowserManager.from_settings(self.settings)
        self.queue = queue or TaskQueue(
            concurrency=self.settings.scrape_queue_concurrency,
            timeout=self.settings.scrape_task_timeout,
        )
        self.advanced = AdvancedExtractor(self.browser, self.settings)
        self.reader = ReaderExtractor(self.browser, self.settings)

    async def __aenter__(self) -> ScrapeEngine:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Preview metadata
    # ------------------------------------------------------------------
    async def smart_scrape(self, url: str) -> ScrapeResult:
        """Return preview metadata for *url*.  Never raises."""
        if not is_scrapable_url(url):
            logger.warning("[Scraper] Refusing non-http(s) URL: %s", url)
            return ScrapeResult.failed()

        try:
            outcome = await simple_scrape(url, timeout=self.settings.fast_path_timeout)
        except Exception as exc:
            logger.error("[Scraper] Fast path crashed for %s: %s", url, exc)
            outcome = None

        if outcome is not None and outcome.data is not None:
            logger.info("[Scraper] Fast path hit for %s", url)
            return outcome.data

        reason = outcome.reason if outcome is not None else "fast path error"
        logger.info("[Scraper] Fast path miss for %s (%s), falling back to browser", url, reason)
        return await self.advanced_scrape(url)

    async def advanced_scrape(self, url: str) -> ScrapeResult:
        """Render *url* in the shared browser (through the queue).  Never raises."""
        if not is_scrapable_url(url):
            return ScrapeResult.failed()
        try:
            return await self.queue.submit(lambda: self.advanced.extract(url))
        except QueueTimeoutError as exc:
            logger.error("[Scraper:Advanced] TIMED OUT in queue for %s: %s", url, exc)
        except Exception as exc:
            logger.error("[Scraper:Advanced] Queue error for %s: %s", url, exc)
        return ScrapeResult.failed()

    # ------------------------------------------------------------------
    # Reader mode
    # ------------------------------------------------------------------
    async def reader_scrape(self, url: str) -> ReaderContentResult:
        """Return the readable article at *url*.  Never raises."""
        if not is_scrapable_url(url):
            logger.warning("[Scraper:Reader] Refusing non-http(s) URL: %s", url)
            return ReaderContentResult.failed("Invalid URL")
        try:
            return await self.queue.submit(lambda: self.reader.extract(url))
        except QueueTimeoutError as exc:
            logger.error("[Scraper:Reader] TIMED OUT in queue for %s: %s", url, exc)
            return ReaderContentResult.failed(str(exc))
        except Exception as exc:
            logger.error("[Scraper:Reader] Queue error for %s: %s", url, exc)
            return ReaderContentResult.failed(str(exc) or type(exc).__name__)

    async def aclose(self) -> None:
        await self.browser.close()


# ---------------------------------------------------------------------------
# Process-wide engine
# ---------------------------------------------------------------------------

_engine: ScrapeEngine | None = None


def get_engine() -> ScrapeEngine:
    """Return the shared engine, creating it on first use."""
    global _engine
    if _engine is None:
        _engine = ScrapeEngine()
    return _engine


async def smart_scrape(url: str) -> ScrapeResult:
    return await get_engine().smart_scrape(url)


async def reader_scrape(url: str) -> ReaderContentResult:
    return await get_engine().reader_scrape(url)


async def shutdown() -> None:
    """Close the shared engine's browser, if one was ever created."""
    global _engine
    if _engine is not None:
        engine, _engine = _engine, None
        await engine.aclose()
