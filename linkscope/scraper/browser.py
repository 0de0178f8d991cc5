"""Shared headless-browser lifecycle: lazy launch, idle close, recycling.

One Chromium process serves every browser-driven extraction in the process.
Extractors never hold the browser itself; they take a *lease*
(:meth:`BrowserManager.lease` / :meth:`BrowserManager.new_context`) and close
only their own browsing context.  The manager uses the lease count to decide
when the browser is idle:

* **Idle close**: each :meth:`acquire` restarts a countdown; when it fires
  with no lease outstanding the browser is closed to free memory.
* **Recycling**: once ``max_requests`` leases have been handed out, the
  next :meth:`acquire` that finds no other lease outstanding closes the old
  browser and launches a fresh one.  A browser with work in flight is never
  recycled.
* **Disconnects**: if Chromium dies, the ``disconnected`` event clears the
  reference so the next :meth:`acquire` relaunches.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Awaitable, Callable

from linkscope.config import Settings, settings as default_settings
from linkscope.scraper.stealth import LAUNCH_ARGS

logger = logging.getLogger(__name__)

Launcher = Callable[[], Awaitable[Any]]


class BrowserManager:
    """Owns the process-wide browser instance.

    Args:
        idle_close_seconds: Close the browser after this long without an
            :meth:`acquire` while no lease is active.
        max_requests: Recycle the browser after this many leases.
        executable_path: Optional Chromium binary; ignored if missing.
        launcher: Coroutine factory returning a browser.  Defaults to
            launching Playwright Chromium; tests inject fakes.
    """

    def __init__(
        self,
        *,
        idle_close_seconds: float = 300.0,
        max_requests: int = 20,
        executable_path: str | None = None,
        launcher: Launcher | None = None,
    ) -> None:
        self._idle_close_seconds = idle_close_seconds
        self._max_requests = max_requests
        self._executable_path = executable_path
        self._launcher = launcher or self._launch_chromium

        self._browser: Any | None = None
        self._playwright: Any | None = None
        self._request_count = 0
        self._active = 0
        self._lock = asyncio.Lock()
        self._idle_timer: asyncio.TimerHandle | None = None
        self._idle_task: asyncio.Task | None = None

    @classmethod
    def from_settings(cls, cfg: Settings | None = None) -> BrowserManager:
        cfg = cfg or default_settings
        return cls(
            idle_close_seconds=cfg.browser_idle_close,
            max_requests=cfg.browser_max_requests,
            executable_path=cfg.browser_executable_path,
        )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def browser(self) -> Any | None:
        return self._browser

    @property
    def request_count(self) -> int:
        return self._request_count

    @property
    def active(self) -> int:
        """Number of leases currently held."""
        return self._active

    # ------------------------------------------------------------------
    # Leasing
    # ------------------------------------------------------------------
    async def acquire(self) -> Any:
        """Return the shared browser, launching or recycling it first if needed.

        Every successful call must be paired with :meth:`release`.  Launch
        errors propagate; the manager stays clean for the next attempt.
        """
        async with self._lock:
            self._arm_idle_timer()

            if (
                self._browser is not None
                and self._request_count >= self._max_requests
                and self._active == 0
            ):
                logger.info(
                    "[Browser] Request limit (%d) reached. Recycling browser...",
                    self._max_requests,
                )
                await self._close_browser()

            if self._browser is None:
                self._browser = await self._start_browser()

            self._active += 1
            self._request_count += 1
            return self._browser

    def release(self) -> None:
        """Give back a lease taken with :meth:`acquire`."""
        if self._active > 0:
            self._active -= 1
        if self._active == 0 and self._browser is not None:
            self._arm_idle_timer()

    @asynccontextmanager
    async def lease(self) -> AsyncIterator[Any]:
        browser = await self.acquire()
        try:
            yield browser
        finally:
            self.release()

    @asynccontextmanager
    async def new_context(self, **options: Any) -> AsyncIterator[Any]:
        """Open an isolated browsing context on the shared browser.

        The context is always closed on exit, whatever happened inside.
        """
        async with self.lease() as browser:
            context = await browser.new_context(**options)
            try:
                yield context
            finally:
                try:
                    await context.close()
                except Exception as exc:
                    logger.warning("[Browser] Error closing context: %s", exc)

    # ------------------------------------------------------------------
    # Launch / close
    # ------------------------------------------------------------------
    async def _launch_chromium(self) -> Any:
        from playwright.async_api import async_playwright  # noqa: PLC0415

        if self._playwright is None:
            self._playwright = await async_playwright().start()

        launch_options: dict[str, Any] = {"headless": True, "args": LAUNCH_ARGS}
        if self._executable_path and Path(self._executable_path).exists():
            launch_options["executable_path"] = self._executable_path

        return await self._playwright.chromium.launch(**launch_options)

    async def _start_browser(self) -> Any:
        logger.info("[Browser] Launching new browser instance...")
        browser = await self._launcher()
        browser.on("disconnected", self._on_disconnected)
        self._request_count = 0
        return browser

    def _on_disconnected(self, browser: Any = None) -> None:
        if browser is not None and browser is not self._browser:
            return
        logger.info("[Browser] Browser disconnected.")
        self._browser = None
        self._request_count = 0

    async def _close_browser(self) -> None:
        browser, self._browser = self._browser, None
        self._request_count = 0
        if browser is None:
            return
        logger.info("[Browser] Closing browser instance...")
        try:
            await browser.close()
        except Exception as exc:
            logger.error("[Browser] Error closing browser: %s", exc)

    async def close(self) -> None:
        """Close the browser and stop the Playwright driver."""
        self._cancel_idle_timer()
        async with self._lock:
            await self._close_browser()
            if self._playwright is not None:
                playwright, self._playwright = self._playwright, None
                await playwright.stop()

    # ------------------------------------------------------------------
    # Idle timer
    # ------------------------------------------------------------------
    def _arm_idle_timer(self) -> None:
        self._cancel_idle_timer()
        loop = asyncio.get_running_loop()
        self._idle_timer = loop.call_later(self._idle_close_seconds, self._on_idle_timeout)

    def _cancel_idle_timer(self) -> None:
        if self._idle_timer is not None:
            self._idle_timer.cancel()
            self._idle_timer = None

    def _on_idle_timeout(self) -> None:
        self._idle_timer = None
        if self._active == 0 and self._browser is not None:
            self._idle_task = asyncio.ensure_future(self._close_if_idle())

    async def _close_if_idle(self) -> None:
        async with self._lock:
            if self._active == 0 and self._browser is not None:
                logger.info("[Browser] Idle timeout reached, shutting down browser...")
                await self._close_browser()
