"""
Search-results source adapter.

Most sources (LinkedIn profiles, directories, social pages, yellow pages) are
reached through targeted Google queries. Each source is a SerpSourceSpec:
query templates plus how a result becomes a record. The adapter pages through
the results of every template until a page brings nothing new or the page cap
is reached.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from urllib.parse import urlencode

from prospector.collect.errors import SourceUnavailable
from prospector.collect.pagination import PaginationConfig, PaginationContext, PaginationStrategy
from prospector.collect.rate_governor import RateGovernor
from prospector.collect.records import Record
from prospector.sources.base import Location, SourceAdapter
from prospector.sources.parsers.base import truncate
from prospector.sources.parsers.serp import (
    DEFAULT_LINK_SELECTOR,
    ParsedResult,
    parse_search_results,
)
from prospector.utils.logging import get_logger

if TYPE_CHECKING:
    from prospector.crawler.browser import BrowserSession

logger = get_logger(__name__)

GOOGLE_SEARCH_URL = "https://www.google.com/search"
DESCRIPTION_MAX_CHARS = 200


@dataclass(frozen=True)
class SerpSourceSpec:
    """How one search-backed source builds queries and records.

    Templates are str.format patterns over {query}, {city} and {country}.
    With profile_snippets the result snippet is the profession title
    (profile pages such as LinkedIn); otherwise the searched query and city
    fill profession_title/location and the snippet becomes a description.
    """

    platform: str
    query_templates: tuple[str, ...]
    link_selector: str = DEFAULT_LINK_SELECTOR
    required_domain: str | None = None
    profile_snippets: bool = False
    extra_fields: dict[str, str] = field(default_factory=dict)

    def build_queries(self, query: str, location: Location) -> list[str]:
        return [
            template.format(query=query, city=location.city, country=location.country).strip()
            for template in self.query_templates
        ]


def build_search_url(search: str, page_number: int, per_page: int) -> str:
    """Google results URL for a 1-based page number."""
    params = {"q": search, "num": per_page}
    if page_number > 1:
        params["start"] = (page_number - 1) * per_page
    return f"{GOOGLE_SEARCH_URL}?{urlencode(params)}"


class SerpSourceAdapter(SourceAdapter):
    """Paginated-list source backed by Google search result pages."""

    def __init__(
        self,
        spec: SerpSourceSpec,
        browser: BrowserSession,
        governor: RateGovernor | None = None,
        pagination: PaginationConfig | None = None,
        results_per_page: int = 50,
        navigation_timeout: float = 60.0,
        selector_timeout: float = 30.0,
    ):
        super().__init__(
            spec.platform,
            browser,
            governor=governor,
            navigation_timeout=navigation_timeout,
            selector_timeout=selector_timeout,
        )
        self.spec = spec
        self._pagination = PaginationStrategy(pagination)
        self._results_per_page = results_per_page

    def to_record(self, result: ParsedResult, query: str, location: Location) -> Record:
        record: Record = {
            "name": result.display_name,
            "profile_url": result.url,
        }
        if self.spec.profile_snippets:
            record["profession_title"] = result.snippet
            record["location"] = ""
        else:
            record["profession_title"] = query
            record["location"] = location.city
            record["source_type"] = self.spec.platform
            record["description"] = truncate(result.snippet, DESCRIPTION_MAX_CHARS)
        record.update(self.spec.extra_fields)
        record["platform"] = self.spec.platform
        return record

    async def collect(self, query: str, location: Location, remaining: int) -> AsyncIterator[Record]:
        searches = self.spec.build_queries(query, location)
        seen_urls: set[str] = set()
        failed_queries = 0

        async with self._browser.page() as page:
            for search in searches:
                page_number = 0
                while True:
                    page_number += 1
                    url = build_search_url(search, page_number, self._results_per_page)
                    try:
                        await self._navigate(page, url)
                        html = await page.content()
                    except SourceUnavailable as e:
                        logger.warning(
                            "Search query failed",
                            source=self.name,
                            search=search,
                            page=page_number,
                            error=e.reason,
                        )
                        self._governor.record_failure(self.name)
                        if page_number == 1:
                            failed_queries += 1
                        await self._pace()
                        break

                    self._governor.record_success(self.name)

                    results = parse_search_results(
                        html,
                        link_selector=self.spec.link_selector,
                        required_domain=self.spec.required_domain,
                    )
                    page_urls = [r.url for r in results]
                    novelty = self._pagination.calculate_novelty_rate(page_urls, seen_urls)
                    fresh = [r for r in results if r.url not in seen_urls]
                    seen_urls.update(page_urls)

                    logger.debug(
                        "Search page parsed",
                        source=self.name,
                        page=page_number,
                        results=len(results),
                        new=len(fresh),
                    )

                    for result in fresh:
                        yield self.to_record(result, query, location)

                    await self._pace()

                    context = PaginationContext(
                        current_page=page_number,
                        new_items_in_page=len(fresh),
                        novelty_rate=novelty,
                    )
                    if not self._pagination.should_fetch_next(context):
                        break

        if searches and failed_queries == len(searches):
            raise SourceUnavailable(self.name, f"all {len(searches)} queries failed")
