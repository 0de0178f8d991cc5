"""LinkScope: link previews, reader mode and image proxying for social links.

Public entry points::

    from linkscope import smart_scrape, reader_scrape, proxy_image
"""

from linkscope.proxy import ProxiedImage, proxy_image
from linkscope.scraper import (
    ReaderContentResult,
    ScrapeResult,
    reader_scrape,
    shutdown,
    smart_scrape,
)

__all__ = [
    "smart_scrape",
    "reader_scrape",
    "proxy_image",
    "shutdown",
    "ScrapeResult",
    "ReaderContentResult",
    "ProxiedImage",
]
