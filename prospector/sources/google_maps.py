"""
Google Maps source adapter.

Maps shows search results in an infinitely scrolling feed. collect() scrolls
the feed until the ConvergenceDetector says it has stopped growing, yielding
each newly revealed card as soon as it appears. enrich() opens a place page
for phone, website and full address.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING
from urllib.parse import quote

from playwright.async_api import Error as PlaywrightError

from prospector.collect.convergence import ConvergenceConfig, ConvergenceDetector
from prospector.collect.errors import SourceUnavailable
from prospector.collect.rate_governor import RateGovernor
from prospector.collect.records import Record, record_url
from prospector.sources.base import Location, SourceAdapter
from prospector.sources.parsers.maps import (
    CARD_SELECTOR,
    FEED_SELECTOR,
    parse_place_details,
    parse_result_cards,
)
from prospector.utils.logging import get_logger

if TYPE_CHECKING:
    from playwright.async_api import Page

    from prospector.crawler.browser import BrowserSession

logger = get_logger(__name__)

MAPS_SEARCH_URL = "https://www.google.com/maps/search/{query}"

_SCROLL_FEED_JS = """
(selector) => {
    const element = document.querySelector(selector);
    if (element) {
        element.scrollTop = element.scrollHeight;
    }
}
"""


class GoogleMapsAdapter(SourceAdapter):
    """Feed-style source driven by the convergence detector."""

    SUPPORTS_ENRICHMENT = True
    PLATFORM = "Google Maps"

    def __init__(
        self,
        browser: BrowserSession,
        governor: RateGovernor | None = None,
        convergence: ConvergenceConfig | None = None,
        navigation_timeout: float = 60.0,
        selector_timeout: float = 30.0,
        detail_timeout: float = 30.0,
        name: str = PLATFORM,
    ):
        super().__init__(
            name,
            browser,
            governor=governor,
            navigation_timeout=navigation_timeout,
            selector_timeout=selector_timeout,
        )
        self._convergence = convergence or ConvergenceConfig()
        self._detail_timeout = detail_timeout

    @staticmethod
    def build_search_url(query: str, location: Location) -> str:
        terms = " ".join(part for part in (query, location.city, location.country) if part)
        return MAPS_SEARCH_URL.format(query=quote(terms))

    async def collect(self, query: str, location: Location, remaining: int) -> AsyncIterator[Record]:
        url = self.build_search_url(query, location)

        async with self._browser.page() as page:
            await self._navigate(page, url)
            await self._wait_for_container(page, FEED_SELECTOR)

            detector = ConvergenceDetector(remaining, self._convergence)

            async def count_cards() -> int:
                return await self._count_cards(page)

            async def scroll_feed() -> None:
                await self._scroll_feed(page)

            async for start, end in detector.drive(count_cards, scroll_feed, self._settle):
                cards = parse_result_cards(await page.content())
                for card in cards[start:end]:
                    card["platform"] = self.PLATFORM
                    yield card

            logger.info(
                "Maps feed converged",
                cards=detector.last_count,
                reason=detector.reason,
                observations=detector.observations,
                reveals=detector.reveals,
            )

    async def enrich(self, record: Record) -> Record:
        url = record_url(record)
        if url is None:
            return {}

        async with self._browser.page() as page:
            await self._navigate(page, url, timeout=self._detail_timeout)
            return parse_place_details(await page.content())

    async def _settle(self) -> None:
        """Wait for the revealed batch; never shorter than the rate interval."""
        delay = max(self._convergence.settle_seconds, self._governor.delay_for(self._name))
        await asyncio.sleep(delay)

    async def _count_cards(self, page: Page) -> int:
        try:
            return await page.locator(CARD_SELECTOR).count()
        except PlaywrightError as e:
            raise SourceUnavailable(self._name, f"could not count result cards: {e}") from e

    async def _scroll_feed(self, page: Page) -> None:
        try:
            await page.evaluate(_SCROLL_FEED_JS, FEED_SELECTOR)
        except PlaywrightError as e:
            raise SourceUnavailable(self._name, f"feed scroll failed: {e}") from e
