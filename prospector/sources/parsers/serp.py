"""
Google search results page parser.
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlparse

from bs4 import Tag

from prospector.sources.parsers.base import (
    clean_google_url,
    extract_text,
    make_soup,
    normalize_url,
    select_text,
)

GOOGLE_BASE_URL = "https://www.google.com"

RESULT_CONTAINER_SELECTOR = ".g, .tF2Cxc"
DEFAULT_LINK_SELECTOR = 'a[href^="http"], a[href^="/url?"]'
_SNIPPET_SELECTOR = ".VwiC3b, .s3v9rd"

_GOOGLE_DOMAINS = (
    "google.com",
    "google.co.uk",
    "google.fr",
    "gstatic.com",
    "googleapis.com",
)


@dataclass
class ParsedResult:
    """A single organic search result."""

    title: str
    url: str
    snippet: str = ""
    rank: int = 0

    @property
    def display_name(self) -> str:
        """Title up to the first "|" separator ("Jane Doe | LinkedIn" -> "Jane Doe")."""
        return self.title.split("|")[0].strip()


def _is_internal_url(url: str) -> bool:
    netloc = urlparse(url).netloc.lower()
    return any(netloc == domain or netloc.endswith("." + domain) for domain in _GOOGLE_DOMAINS)


def _extract_single_result(
    container: Tag,
    link_selector: str,
    required_domain: str | None,
) -> ParsedResult | None:
    title_elem = container.select_one("h3")
    if title_elem is None:
        return None

    link = container.select_one(link_selector)
    if link is None:
        return None

    href = link.get("href")
    url = normalize_url(
        clean_google_url(href) if isinstance(href, str) else None,
        GOOGLE_BASE_URL,
    )
    if not url or _is_internal_url(url):
        return None
    if required_domain and required_domain not in url:
        return None

    return ParsedResult(
        title=extract_text(title_elem),
        url=url,
        snippet=select_text(container, _SNIPPET_SELECTOR),
    )


def parse_search_results(
    html: str,
    link_selector: str = DEFAULT_LINK_SELECTOR,
    required_domain: str | None = None,
) -> list[ParsedResult]:
    """Extract organic results from a Google results page.

    Nested containers (.g wrapping .tF2Cxc) would report the same link
    twice; only the first occurrence of a URL is kept.

    Args:
        html: Page HTML.
        link_selector: CSS selector for the result link inside a container.
        required_domain: Keep only results whose URL contains this domain.

    Returns:
        Results in page order with 1-based ranks.
    """
    soup = make_soup(html)
    results: list[ParsedResult] = []
    seen: set[str] = set()

    for container in soup.select(RESULT_CONTAINER_SELECTOR):
        result = _extract_single_result(container, link_selector, required_domain)
        if result is None or result.url in seen:
            continue
        seen.add(result.url)
        result.rank = len(results) + 1
        results.append(result)

    return results
