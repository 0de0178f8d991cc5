"""Centralised settings for the LinkScope extraction engine.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).

Durations follow the unit in the variable name: ``*_MS`` values are
milliseconds, everything else is seconds.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (one level up from this package)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Headless browser
    # ------------------------------------------------------------------
    browser_executable_path: str | None = field(
        default_factory=lambda: os.environ.get("BROWSER_EXECUTABLE_PATH") or None
    )
    browser_idle_close_ms: int = field(
        default_factory=lambda: int(os.environ.get("BROWSER_IDLE_CLOSE_MS", "300000"))
    )
    browser_max_requests: int = field(
        default_factory=lambda: int(os.environ.get("BROWSER_MAX_REQUESTS", "20"))
    )

    # ------------------------------------------------------------------
    # Scrape queue
    # ------------------------------------------------------------------
    scrape_queue_concurrency: int = field(
        default_factory=lambda: int(os.environ.get("SCRAPE_QUEUE_CONCURRENCY", "4"))
    )
    scrape_task_timeout_ms: int = field(
        default_factory=lambda: int(os.environ.get("SCRAPE_TASK_TIMEOUT_MS", "60000"))
    )

    # ------------------------------------------------------------------
    # Extractors
    # ------------------------------------------------------------------
    fast_path_timeout: float = field(
        default_factory=lambda: float(os.environ.get("FAST_PATH_TIMEOUT", "5.0"))
    )
    fast_path_max_bytes: int = field(
        default_factory=lambda: int(os.environ.get("FAST_PATH_MAX_BYTES", str(2 * 1024 * 1024)))
    )
    advanced_nav_timeout_ms: int = field(
        default_factory=lambda: int(os.environ.get("ADVANCED_NAV_TIMEOUT_MS", "15000"))
    )
    reader_nav_timeout_ms: int = field(
        default_factory=lambda: int(os.environ.get("READER_NAV_TIMEOUT_MS", "45000"))
    )
    reader_ready_timeout_ms: int = field(
        default_factory=lambda: int(os.environ.get("READER_READY_TIMEOUT_MS", "2000"))
    )

    # ------------------------------------------------------------------
    # Image proxy
    # ------------------------------------------------------------------
    proxy_timeout: float = field(
        default_factory=lambda: float(os.environ.get("PROXY_TIMEOUT", "10.0"))
    )
    proxy_max_redirects: int = field(
        default_factory=lambda: int(os.environ.get("PROXY_MAX_REDIRECTS", "5"))
    )
    proxy_max_retries: int = field(
        default_factory=lambda: int(os.environ.get("PROXY_MAX_RETRIES", "2"))
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = field(
        default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO")
    )

    @property
    def scrape_task_timeout(self) -> float:
        """Per-task queue timeout in seconds."""
        return self.scrape_task_timeout_ms / 1000

    @property
    def browser_idle_close(self) -> float:
        """Browser idle-close delay in seconds."""
        return self.browser_idle_close_ms / 1000


# Module-level singleton, import this everywhere:
#   from linkscope.config import settings
settings = Settings()
