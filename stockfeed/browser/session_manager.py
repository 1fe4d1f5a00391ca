"""
Shared headless browser session.

One Chromium instance is launched lazily and reused for the life of the
process; callers get short-lived pages from it and must hand them back via
``release_page``. The manager is constructed explicitly and injected into
its consumers, and ``shutdown`` is wired to the process termination signals
in ``stockfeed.main``.
"""

from __future__ import annotations

import enum
from typing import Any, Awaitable, Callable

from stockfeed.core.coalescer import RequestCoalescer
from stockfeed.core.exceptions import SessionClosedError
from stockfeed.utils.logger import get_logger

logger = get_logger(__name__)

_LAUNCH_ARGS: list[str] = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--disable-software-rasterizer",
]

_INIT_KEY = "browser-session-init"

Launcher = Callable[[], Awaitable[Any]]


class SessionState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    CLOSED = "closed"


class BrowserSessionManager:
    """Owns the single shared browser and issues isolated pages from it.

    Attributes:
        headless: Launch Chromium headless.
        launch_timeout: Browser launch timeout in seconds.
        viewport: Viewport applied to every page.
    """

    def __init__(
        self,
        headless: bool = True,
        launch_timeout: float = 30.0,
        viewport_width: int = 1920,
        viewport_height: int = 1080,
        launcher: Launcher | None = None,
    ) -> None:
        self.headless = headless
        self.launch_timeout = launch_timeout
        self.viewport = {"width": viewport_width, "height": viewport_height}
        self._launcher = launcher
        self._playwright: Any = None
        self._browser: Any = None
        self._state = SessionState.UNINITIALIZED
        # Concurrent get_session() calls share one launch
        self._init = RequestCoalescer()

    @classmethod
    def from_settings(cls, settings: Any) -> "BrowserSessionManager":
        return cls(
            headless=settings.browser_headless,
            launch_timeout=settings.browser_launch_timeout,
            viewport_width=settings.browser_viewport_width,
            viewport_height=settings.browser_viewport_height,
        )

    @property
    def state(self) -> SessionState:
        return self._state

    def is_ready(self) -> bool:
        """True if a connected browser is available right now."""
        return (
            self._state == SessionState.READY
            and self._browser is not None
            and self._browser.is_connected()
        )

    async def get_session(self) -> Any:
        """Return the shared browser, launching it first if needed.

        A browser that has disconnected is discarded and relaunched.

        Raises:
            SessionClosedError: ``shutdown`` has already run.
            Exception: The launch failed; every concurrent waiter sees it.
        """
        if self._state == SessionState.CLOSED:
            raise SessionClosedError()

        if self.is_ready():
            return self._browser

        if self._state == SessionState.READY:
            logger.warning("Browser disconnected, re-initializing")
            self._browser = None
            self._state = SessionState.UNINITIALIZED

        return await self._init.execute(_INIT_KEY, self._initialize)

    async def _initialize(self) -> Any:
        self._state = SessionState.INITIALIZING
        logger.info("Initializing browser instance...")
        try:
            browser = await self._launch()
        except Exception as exc:
            logger.error("Error initializing browser: %s", exc)
            if self._state != SessionState.CLOSED:
                self._state = SessionState.UNINITIALIZED
            raise

        if self._state == SessionState.CLOSED:
            # shutdown() ran while the launch was in flight
            await self._close_browser(browser)
            raise SessionClosedError()

        self._browser = browser
        self._state = SessionState.READY
        logger.info("Browser initialized successfully")
        return browser

    async def _launch(self) -> Any:
        if self._launcher is not None:
            return await self._launcher()

        from playwright.async_api import async_playwright

        if self._playwright is None:
            self._playwright = await async_playwright().start()
        try:
            return await self._playwright.chromium.launch(
                headless=self.headless,
                args=_LAUNCH_ARGS,
                timeout=self.launch_timeout * 1000,
            )
        except Exception:
            await self._stop_playwright()
            raise

    async def create_page(self) -> Any:
        """Open a new isolated page on the shared browser."""
        browser = await self.get_session()
        return await browser.new_page(viewport=self.viewport)

    async def release_page(self, page: Any) -> None:
        """Close ``page``. Already-closed pages and close errors are tolerated."""
        if page is None:
            return
        try:
            if not page.is_closed():
                await page.close()
        except Exception as exc:
            logger.warning("Error closing page: %s", exc)

    async def shutdown(self) -> None:
        """Close the browser and the Playwright driver. Safe to call twice."""
        if self._state == SessionState.CLOSED:
            return
        self._state = SessionState.CLOSED

        browser, self._browser = self._browser, None
        if browser is not None:
            logger.info("Closing browser instance...")
            await self._close_browser(browser)
        await self._stop_playwright()

    @staticmethod
    async def _close_browser(browser: Any) -> None:
        try:
            if browser.is_connected():
                await browser.close()
        except Exception as exc:
            logger.warning("Error closing browser: %s", exc)

    async def _stop_playwright(self) -> None:
        playwright, self._playwright = self._playwright, None
        if playwright is None:
            return
        try:
            await playwright.stop()
        except Exception as exc:
            logger.warning("Error stopping playwright: %s", exc)
