"""Shared fixtures."""

from __future__ import annotations

import pytest

from fakes import FakeLauncher
from linkscope.config import Settings


@pytest.fixture()
def launcher() -> FakeLauncher:
    return FakeLauncher()


@pytest.fixture()
def test_settings() -> Settings:
    """Settings with short timeouts, independent of the environment."""
    return Settings(
        browser_executable_path=None,
        browser_idle_close_ms=300000,
        browser_max_requests=20,
        scrape_queue_concurrency=4,
        scrape_task_timeout_ms=5000,
        fast_path_timeout=1.0,
        advanced_nav_timeout_ms=15000,
        reader_nav_timeout_ms=45000,
        reader_ready_timeout_ms=10,
        proxy_timeout=2.0,
        proxy_max_redirects=5,
        proxy_max_retries=2,
        log_level="INFO",
    )
