"""
Source adapter abstraction for Prospector.

A source adapter is the only per-source code: it knows how to navigate one
site and turn what it sees into partial records. The orchestrator drives
every adapter through the same two operations:

    collect(query, location, remaining) -> async stream of partial records
    enrich(record) -> extra fields from a detail page (optional capability)

Both raise SourceUnavailable when the site cannot be read.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from playwright.async_api import Error as PlaywrightError

from prospector.collect.errors import SourceUnavailable
from prospector.collect.rate_governor import RateGovernor
from prospector.collect.records import Record
from prospector.utils.logging import get_logger

if TYPE_CHECKING:
    from playwright.async_api import Page

    from prospector.crawler.browser import BrowserSession

logger = get_logger(__name__)


@dataclass(frozen=True)
class Location:
    """Free-text search location."""

    city: str
    country: str = ""

    def __str__(self) -> str:
        return ", ".join(part for part in (self.city, self.country) if part)


class SourceAdapter(ABC):
    """
    Abstract base class for source adapters.

    Subclasses implement collect(); adapters that can read a detail page
    override enrich() and set SUPPORTS_ENRICHMENT.
    """

    SUPPORTS_ENRICHMENT = False

    def __init__(
        self,
        name: str,
        browser: BrowserSession,
        governor: RateGovernor | None = None,
        navigation_timeout: float = 60.0,
        selector_timeout: float = 30.0,
    ):
        """
        Args:
            name: Display name, also the provenance label.
            browser: Shared browser session that hands out pages.
            governor: Spacing between this adapter's own page requests.
            navigation_timeout: Seconds allowed for page navigation.
            selector_timeout: Seconds allowed for an expected container.
        """
        self._name = name
        self._browser = browser
        self._governor = governor or RateGovernor(0.0)
        self._navigation_timeout = navigation_timeout
        self._selector_timeout = selector_timeout

    @property
    def name(self) -> str:
        return self._name

    @property
    def supports_enrichment(self) -> bool:
        return self.SUPPORTS_ENRICHMENT

    @abstractmethod
    def collect(self, query: str, location: Location, remaining: int) -> AsyncIterator[Record]:
        """Stream partial records for a query.

        Implementations are async generators. The stream is finite; the
        consumer may stop pulling at any point.

        Args:
            query: Free-text entity query (profession, business type).
            location: Where to search.
            remaining: Records still wanted by the session.

        Raises:
            SourceUnavailable: Navigation failed or the page layout is not
                the expected one.
        """

    async def enrich(self, record: Record) -> Record:
        """Fetch extra fields for a record from its detail page."""
        raise NotImplementedError(f"{self._name} does not support enrichment")

    async def close(self) -> None:
        """Release adapter resources. Pages are closed per request."""
        logger.debug("Source adapter closed", source=self._name)

    async def _pace(self) -> None:
        await self._governor.wait(self._name)

    async def _navigate(
        self,
        page: Page,
        url: str,
        *,
        timeout: float | None = None,
        wait_until: Any = "networkidle",
    ) -> None:
        """Navigate, translating browser errors into SourceUnavailable."""
        seconds = timeout if timeout is not None else self._navigation_timeout
        try:
            await page.goto(url, wait_until=wait_until, timeout=seconds * 1000)
        except PlaywrightError as e:
            raise SourceUnavailable(self._name, f"navigation failed for {url}: {e}") from e

    async def _wait_for_container(self, page: Page, selector: str) -> None:
        """Wait for the structural container this source depends on."""
        try:
            await page.wait_for_selector(selector, timeout=self._selector_timeout * 1000)
        except PlaywrightError as e:
            raise SourceUnavailable(self._name, f"container {selector!r} not found") from e


@dataclass(frozen=True)
class SourceDescriptor:
    """A named adapter in a search plan."""

    name: str
    adapter: SourceAdapter
