"""Scraper package: link previews and reader-mode extraction."""

from linkscope.scraper.engine import (
    ScrapeEngine,
    get_engine,
    reader_scrape,
    shutdown,
    smart_scrape,
)
from linkscope.scraper.fetcher import simple_scrape
from linkscope.scraper.models import ReaderContentResult, ScrapeResult

__all__ = [
    "ScrapeEngine",
    "get_engine",
    "smart_scrape",
    "reader_scrape",
    "simple_scrape",
    "shutdown",
    "ScrapeResult",
    "ReaderContentResult",
]
