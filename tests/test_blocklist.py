"""Tests for request-blocking policy, stealth options and bot-wall detection."""

from __future__ import annotations

import random
from unittest.mock import AsyncMock, MagicMock

from fakes import FakePage
from linkscope.scraper.blocklist import (
    METADATA_FILTER,
    READER_FILTER,
    install_request_filter,
    is_blocked_domain,
)
from linkscope.scraper.challenge import settle_challenge
from linkscope.scraper.stealth import LAUNCH_ARGS, STEALTH_SCRIPT, apply_stealth, random_context_options


class TestBlockedDomains:
    def test_tracker_hosts_and_subdomains(self) -> None:
        assert is_blocked_domain("https://www.googletagmanager.com/gtm.js")
        assert is_blocked_domain("https://stats.g.doubleclick.net/collect")

    def test_lookalike_hosts_are_not_blocked(self) -> None:
        assert not is_blocked_domain("https://notdoubleclick.net.example.com/")
        assert not is_blocked_domain("https://example.com/?ref=hotjar.com")


class TestRequestFilter:
    def test_metadata_filter_blocks_heavy_resources(self) -> None:
        for resource_type in ("image", "font", "stylesheet", "media"):
            assert METADATA_FILTER.should_block("https://example.com/x", resource_type)
        assert not METADATA_FILTER.should_block("https://example.com/app.js", "script")

    def test_reader_filter_keeps_images(self) -> None:
        assert not READER_FILTER.should_block("https://example.com/a.jpg", "image")
        assert READER_FILTER.should_block("https://example.com/a.woff2", "font")

    def test_trackers_blocked_regardless_of_type(self) -> None:
        assert READER_FILTER.should_block("https://www.google-analytics.com/analytics.js", "script")

    def test_documents_are_never_domain_blocked(self) -> None:
        assert not METADATA_FILTER.should_block("https://twitter.com/someone/status/1", "document")

    def test_listed_site_may_load_its_own_assets(self) -> None:
        page = "https://twitter.com/someone/status/1"
        assert not READER_FILTER.should_block("https://platform.twitter.com/widgets.js", "script", page)
        assert not READER_FILTER.should_block("https://api.twitter.com/graphql", "xhr", page)
        assert READER_FILTER.should_block("https://www.google-analytics.com/collect", "xhr", page)

    def test_listed_site_is_still_blocked_from_other_pages(self) -> None:
        page = "https://example.com/post"
        assert READER_FILTER.should_block("https://platform.twitter.com/widgets.js", "script", page)

    async def test_route_handler_aborts_or_continues(self) -> None:
        page = FakePage()
        await install_request_filter(page, METADATA_FILTER)

        blocked = MagicMock()
        blocked.request.url = "https://example.com/big.png"
        blocked.request.resource_type = "image"
        blocked.abort = AsyncMock()
        blocked.continue_ = AsyncMock()

        allowed = MagicMock()
        allowed.request.url = "https://example.com/"
        allowed.request.resource_type = "document"
        allowed.abort = AsyncMock()
        allowed.continue_ = AsyncMock()

        await page.route_handler(blocked)
        await page.route_handler(allowed)

        blocked.abort.assert_awaited_once()
        blocked.continue_.assert_not_awaited()
        allowed.continue_.assert_awaited_once()
        allowed.abort.assert_not_awaited()

    async def test_route_handler_uses_the_page_url(self) -> None:
        page = FakePage(url="https://www.linkedin.com/in/someone")
        await install_request_filter(page, READER_FILTER)

        own = MagicMock()
        own.request.url = "https://static.linkedin.com/app.js"
        own.request.resource_type = "script"
        own.abort = AsyncMock()
        own.continue_ = AsyncMock()

        await page.route_handler(own)

        own.continue_.assert_awaited_once()
        own.abort.assert_not_awaited()


class TestStealth:
    def test_launch_args_hide_automation(self) -> None:
        assert "--disable-blink-features=AutomationControlled" in LAUNCH_ARGS
        assert "--disable-dev-shm-usage" in LAUNCH_ARGS

    def test_context_options_are_randomised_but_complete(self) -> None:
        options = random_context_options(random.Random(7))
        assert options["bypass_csp"] is True
        assert options["service_workers"] == "block"
        assert set(options["viewport"]) == {"width", "height"}
        assert "Sec-Ch-Ua" in options["extra_http_headers"]

    def test_context_options_are_deterministic_for_seed(self) -> None:
        assert random_context_options(random.Random(1)) == random_context_options(random.Random(1))

    async def test_apply_stealth_registers_init_script(self) -> None:
        context = MagicMock()
        context.add_init_script = AsyncMock()
        await apply_stealth(context)
        context.add_init_script.assert_awaited_once_with(script=STEALTH_SCRIPT)


class TestSettleChallenge:
    async def test_clean_page(self) -> None:
        assert await settle_challenge(FakePage()) is True

    async def test_captcha_is_not_waited_on(self) -> None:
        page = FakePage(challenge={"cloudflare": True, "captcha": True})
        assert await settle_challenge(page) is False
        assert page.wait_calls == []

    async def test_cloudflare_check_that_clears(self) -> None:
        page = FakePage(challenge={"cloudflare": True})
        assert await settle_challenge(page, timeout_ms=10) is True
        assert len(page.wait_calls) == 1

    async def test_cloudflare_check_that_never_clears(self) -> None:
        page = FakePage(challenge={"cloudflare": True}, ready=False)
        assert await settle_challenge(page, timeout_ms=10) is False

    async def test_other_walls_are_blocked(self) -> None:
        assert await settle_challenge(FakePage(challenge={"sucuri": True})) is False
        assert await settle_challenge(FakePage(challenge={"ddosGuard": True})) is False
