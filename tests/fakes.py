"""Fakes for the Playwright objects the extractors drive.

No test launches a real browser: :class:`FakeBrowser` / :class:`FakeContext`
/ :class:`FakePage` implement just the async surface the code uses, and
record what was called so tests can assert on teardown.
"""

from __future__ import annotations

from typing import Any, Callable

from linkscope.scraper.advanced import SNAPSHOT_JS
from linkscope.scraper.challenge import _DETECT_JS


class FakeResponse:
    def __init__(self, status: int = 200) -> None:
        self.status = status


class FakePage:
    """Scriptable stand-in for ``playwright.async_api.Page``.

    Attributes mirror what a test wants the page to "render".
    """

    def __init__(
        self,
        *,
        status: int = 200,
        snapshot: dict | None = None,
        html: str = "<html><body></body></html>",
        body_text: str = "",
        challenge: dict | None = None,
        url: str = "",
        goto_error: Exception | None = None,
        ready: bool = True,
    ) -> None:
        self.status = status
        self.snapshot = snapshot or {}
        self.html = html
        self.body_text = body_text
        self.challenge = challenge or {}
        self.url = url
        self.goto_error = goto_error
        self.ready = ready

        self.route_handler: Callable | None = None
        self.goto_calls: list[tuple[str, dict]] = []
        self.wait_calls: list[str] = []

    async def route(self, pattern: str, handler: Callable) -> None:
        self.route_handler = handler

    async def goto(self, url: str, **kwargs: Any) -> FakeResponse:
        self.goto_calls.append((url, kwargs))
        if self.goto_error is not None:
            raise self.goto_error
        if not self.url:
            self.url = url
        return FakeResponse(self.status)

    async def evaluate(self, script: str) -> Any:
        if script == _DETECT_JS:
            return self.challenge
        if script == SNAPSHOT_JS:
            return self.snapshot
        return self.body_text

    async def wait_for_function(self, script: str, timeout: float | None = None) -> None:
        self.wait_calls.append(script)
        if not self.ready:
            raise TimeoutError("wait_for_function timed out")

    async def content(self) -> str:
        return self.html


class FakeContext:
    def __init__(self, page: FakePage, options: dict) -> None:
        self.page = page
        self.options = options
        self.init_scripts: list[str] = []
        self.closed = False

    async def add_init_script(self, script: str | None = None, **kwargs: Any) -> None:
        self.init_scripts.append(script or "")

    async def new_page(self) -> FakePage:
        return self.page

    async def close(self) -> None:
        self.closed = True


class FakeBrowser:
    """Stand-in for ``playwright.async_api.Browser``."""

    def __init__(self, page_factory: Callable[[], FakePage]) -> None:
        self._page_factory = page_factory
        self.contexts: list[FakeContext] = []
        self.handlers: dict[str, list[Callable]] = {}
        self.close_calls = 0

    def on(self, event: str, handler: Callable) -> None:
        self.handlers.setdefault(event, []).append(handler)

    def emit(self, event: str) -> None:
        for handler in self.handlers.get(event, []):
            handler(self)

    async def new_context(self, **options: Any) -> FakeContext:
        context = FakeContext(self._page_factory(), options)
        self.contexts.append(context)
        return context

    async def close(self) -> None:
        self.close_calls += 1


class FakeLauncher:
    """Injectable ``launcher`` for :class:`BrowserManager`; records launches."""

    def __init__(self, page_factory: Callable[[], FakePage] | None = None) -> None:
        self.page_factory = page_factory or FakePage
        self.launched: list[FakeBrowser] = []
        self.fail_next = 0

    async def __call__(self) -> FakeBrowser:
        if self.fail_next:
            self.fail_next -= 1
            raise RuntimeError("Chromium failed to start")
        browser = FakeBrowser(self.page_factory)
        self.launched.append(browser)
        return browser


