"""Patchright-backed Session Driver.

Lifecycle rules:
  - Browser + context are created lazily on the first open() and reused.
  - Every open() hands out a fresh page; the caller closes it.
  - close() tears the browser down and is a no-op when nothing is open.
  - User agent and viewport are fixed per driver (fingerprint normalization).
"""

import asyncio
import logging
from typing import Any

from patchright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright
from patchright.async_api import TimeoutError as PatchrightTimeoutError

from ucc_scraper.core.config import BrowserConfig

logger = logging.getLogger(__name__)


class PatchrightSession:
    """Wraps a single patchright page behind the Session protocol."""

    def __init__(self, page: Page) -> None:
        self._page = page

    async def navigate(self, url: str, *, wait_until: str = "networkidle", timeout_ms: int) -> None:
        await self._page.goto(url, wait_until=wait_until, timeout=timeout_ms)  # type: ignore[arg-type]

    async def wait_for_any(self, selectors: tuple[str, ...], timeout_ms: int) -> str | None:
        """Wait until one of the selectors is present; return it, or None on timeout."""
        if not selectors:
            return None
        try:
            await self._page.wait_for_selector(", ".join(selectors), timeout=timeout_ms)
        except PatchrightTimeoutError:
            return None
        for selector in selectors:
            if await self._page.query_selector(selector) is not None:
                return selector
        return None

    async def evaluate(self, script: str) -> Any:
        return await self._page.evaluate(script)

    async def close(self) -> None:
        await self._page.close()


class PatchrightDriver:
    """Owns one patchright browser + context; hands out pages as sessions.

    Usage::

        driver = PatchrightDriver(BrowserConfig())
        session = await driver.open()
        try:
            await session.navigate("https://...", timeout_ms=30000)
        finally:
            await session.close()
        await driver.close()
    """

    def __init__(self, config: BrowserConfig) -> None:
        self._config = config
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        return self._context is not None

    async def open(self) -> PatchrightSession:
        context = await self._ensure_context()
        page = await context.new_page()
        return PatchrightSession(page)

    async def close(self) -> None:
        """Close context, browser and playwright. Safe when never opened."""
        async with self._lock:
            if self._playwright is None:
                return
            context, browser, pw = self._context, self._browser, self._playwright
            self._context = None
            self._browser = None
            self._playwright = None

            for name, closer in (
                ("context", context.close if context else None),
                ("browser", browser.close if browser else None),
                ("playwright", pw.stop),
            ):
                if closer is None:
                    continue
                try:
                    await closer()
                except Exception as e:
                    logger.warning("Error closing %s: %s", name, e)
            logger.info("Browser closed")

    async def _ensure_context(self) -> BrowserContext:
        async with self._lock:
            if self._context is not None:
                return self._context

            pw = await async_playwright().start()
            self._playwright = pw
            try:
                self._browser = await pw.chromium.launch(
                    headless=self._config.headless,
                    args=self._config.launch_args,
                )
                self._context = await self._browser.new_context(
                    user_agent=self._config.user_agent,
                    viewport={
                        "width": self._config.viewport_width,
                        "height": self._config.viewport_height,
                    },
                )
            except Exception:
                # Half-launched state must not leak into the next attempt.
                if self._browser is not None:
                    try:
                        await self._browser.close()
                    except Exception as close_err:
                        logger.warning("Error closing browser after failed launch: %s", close_err)
                    self._browser = None
                self._playwright = None
                await pw.stop()
                raise

            self._context.set_default_timeout(self._config.timeout_ms)
            logger.info(
                "Browser launched (headless=%s, viewport=%dx%d)",
                self._config.headless,
                self._config.viewport_width,
                self._config.viewport_height,
            )
            return self._context
