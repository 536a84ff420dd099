"""
Playwright browser session for Prospector.

One Chromium instance is shared by every source in a run; each request
gets its own page which is closed afterwards.

Example:
    async with BrowserSession(get_settings().browser) as browser:
        async with browser.page() as page:
            await page.goto("https://example.com")
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from prospector.collect.errors import BrowserUnavailableError
from prospector.utils.config import BrowserConfig
from prospector.utils.logging import get_logger

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Page, Playwright

logger = get_logger(__name__)


class BrowserSession:
    """Lazily launched Chromium with one desktop-like context."""

    def __init__(self, config: BrowserConfig | None = None):
        self._config = config or BrowserConfig()
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None

    async def __aenter__(self) -> BrowserSession:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def is_started(self) -> bool:
        return self._context is not None

    async def start(self) -> None:
        """Launch the browser.

        Raises:
            BrowserUnavailableError: Playwright or Chromium cannot start.
        """
        if self._context is not None:
            return

        try:
            from playwright.async_api import async_playwright

            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self._config.headless,
                args=list(self._config.launch_args),
            )
            self._context = await self._browser.new_context(
                user_agent=self._config.user_agent,
                viewport={
                    "width": self._config.viewport_width,
                    "height": self._config.viewport_height,
                },
            )
        except Exception as e:
            await self.close()
            raise BrowserUnavailableError(f"Browser launch failed: {e}") from e

        logger.info(
            "Browser launched",
            headless=self._config.headless,
            viewport=f"{self._config.viewport_width}x{self._config.viewport_height}",
        )

    @asynccontextmanager
    async def page(self) -> AsyncIterator[Page]:
        """Open a fresh page, closing it when the block exits."""
        await self.start()
        assert self._context is not None  # Guaranteed by start()

        page = await self._context.new_page()
        try:
            yield page
        finally:
            if not page.is_closed():
                await page.close()

    async def close(self) -> None:
        """Close browser and cleanup."""
        try:
            if self._context is not None:
                await self._context.close()
            if self._browser is not None:
                await self._browser.close()
            if self._playwright is not None:
                await self._playwright.stop()
        except Exception as e:
            logger.warning("Error during browser cleanup", error=str(e))
        finally:
            self._context = None
            self._browser = None
            self._playwright = None
