"""
Pagination strategy for paginated result lists.

Decides when to stop requesting the next page:
- Fixed maximum pages limit
- Exhaustion (a page that yields no new items)
- Saturation (novelty rate below a floor)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


@dataclass
class PaginationConfig:
    """Configuration for pagination strategy."""

    max_pages: int = 3  # Absolute maximum pages to fetch
    min_novelty_rate: float = 0.0  # Continue only while novelty rate is above this
    strategy: Literal["fixed", "auto"] = "auto"


@dataclass
class PaginationContext:
    """Context for pagination decision making."""

    current_page: int
    new_items_in_page: int = 0
    novelty_rate: float | None = None  # new_items / items_in_page


class PaginationStrategy:
    """
    Determines when to stop fetching additional pages.

    "fixed" only honours max_pages. "auto" also stops on a page
    without new items and on saturation.
    """

    def __init__(self, config: PaginationConfig | None = None):
        self.config = config or PaginationConfig()

    def should_fetch_next(self, context: PaginationContext) -> bool:
        """
        Determine if next page should be fetched.

        Args:
            context: Current pagination context.

        Returns:
            True if next page should be fetched, False otherwise.
        """
        if context.current_page >= self.config.max_pages:
            return False

        if self.config.strategy == "fixed":
            return True

        if context.new_items_in_page == 0:
            return False

        if context.novelty_rate is not None and self.config.min_novelty_rate > 0:
            if context.novelty_rate < self.config.min_novelty_rate:
                return False

        return True

    def calculate_novelty_rate(self, page_urls: list[str], seen_urls: set[str]) -> float:
        """
        Calculate novelty rate (share of URLs on this page not seen before).

        Args:
            page_urls: URLs found in current page.
            seen_urls: URLs already seen in previous pages.

        Returns:
            Novelty rate (0.0-1.0). 0.0 for an empty page.
        """
        if not page_urls:
            return 0.0

        if not seen_urls:
            return 1.0

        new_count = sum(1 for url in page_urls if url not in seen_urls)
        return new_count / len(page_urls)
