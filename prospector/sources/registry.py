"""
Depth tiers and the built-in source catalogue.

Each tier is an ordered list of source keys; every tier contains the one
before it. build_sources() turns a tier into SourceDescriptors bound to the
shared browser session.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from prospector.collect.convergence import ConvergenceConfig
from prospector.collect.pagination import PaginationConfig
from prospector.collect.rate_governor import build_rate_governor
from prospector.sources.base import SourceAdapter, SourceDescriptor
from prospector.sources.google_maps import GoogleMapsAdapter
from prospector.sources.serp import SerpSourceAdapter, SerpSourceSpec
from prospector.utils.config import Settings, get_settings
from prospector.utils.logging import get_logger

if TYPE_CHECKING:
    from prospector.crawler.browser import BrowserSession

logger = get_logger(__name__)

GOOGLE_MAPS = "google_maps"
LINKEDIN = "linkedin"
DIRECTORIES = "directories"
GOOGLE_SEARCH = "google_search"
FACEBOOK = "facebook"
LOCAL = "local"
YELLOW_PAGES = "yellow_pages"
MEDICAL = "medical"

DEFAULT_DEPTH = "comprehensive"

DEPTH_TIERS: dict[str, tuple[str, ...]] = {
    "quick": (GOOGLE_MAPS, GOOGLE_SEARCH),
    "comprehensive": (GOOGLE_MAPS, LINKEDIN, DIRECTORIES, GOOGLE_SEARCH),
    "deep": (GOOGLE_MAPS, LINKEDIN, DIRECTORIES, GOOGLE_SEARCH, FACEBOOK, LOCAL),
    "ultra": (
        GOOGLE_MAPS,
        LINKEDIN,
        DIRECTORIES,
        GOOGLE_SEARCH,
        FACEBOOK,
        LOCAL,
        YELLOW_PAGES,
        MEDICAL,
    ),
}

SERP_SOURCES: dict[str, SerpSourceSpec] = {
    LINKEDIN: SerpSourceSpec(
        platform="LinkedIn",
        query_templates=(
            'site:linkedin.com/in "{query}" "{city}"',
            'site:linkedin.com/in "{query}" "{country}"',
        ),
        link_selector='a[href*="linkedin.com"]',
        required_domain="linkedin.com",
        profile_snippets=True,
    ),
    DIRECTORIES: SerpSourceSpec(
        platform="Professional Directories",
        query_templates=(
            '"{query}" directory "{city}" "{country}"',
            '"{query}" association members "{city}"',
        ),
    ),
    GOOGLE_SEARCH: SerpSourceSpec(
        platform="Google Search",
        query_templates=('"{query}" "{city}" "{country}"',),
    ),
    FACEBOOK: SerpSourceSpec(
        platform="Facebook Business",
        query_templates=('site:facebook.com "{query}" "{city}"',),
        required_domain="facebook.com",
    ),
    LOCAL: SerpSourceSpec(
        platform="Local Business Sites",
        query_templates=('"{query}" "{city}" contact phone',),
    ),
    YELLOW_PAGES: SerpSourceSpec(
        platform="Yellow Pages",
        query_templates=(
            'site:yellowpages.com "{query}" "{city}"',
            'site:yelp.com "{query}" "{city}"',
        ),
    ),
    MEDICAL: SerpSourceSpec(
        platform="Medical Directories",
        query_templates=(
            'site:healthgrades.com "{query}" "{city}"',
            'site:zocdoc.com "{query}" "{city}"',
        ),
    ),
}


def resolve_depth(depth: str) -> tuple[str, ...]:
    """Source keys for a depth tier; unknown tiers fall back to the default."""
    if depth not in DEPTH_TIERS:
        logger.warning("Unknown search depth, using default", depth=depth, default=DEFAULT_DEPTH)
        return DEPTH_TIERS[DEFAULT_DEPTH]
    return DEPTH_TIERS[depth]


def build_adapter(key: str, browser: BrowserSession, settings: Settings) -> SourceAdapter:
    """Instantiate the adapter for one source key."""
    governor = build_rate_governor(settings.rate, settings.rate.query_interval_seconds)

    if key == GOOGLE_MAPS:
        conv = settings.convergence
        return GoogleMapsAdapter(
            browser,
            governor=governor,
            convergence=ConvergenceConfig(
                stagnation_threshold=conv.stagnation_threshold,
                expected_per_cycle=conv.expected_per_cycle,
                fixed_slack=conv.fixed_slack,
                settle_seconds=conv.settle_seconds,
            ),
            navigation_timeout=settings.browser.navigation_timeout_seconds,
            selector_timeout=settings.browser.selector_timeout_seconds,
            detail_timeout=settings.browser.detail_timeout_seconds,
        )

    spec = SERP_SOURCES.get(key)
    if spec is None:
        raise KeyError(f"Unknown source: {key}")

    pagination = settings.pagination
    return SerpSourceAdapter(
        spec,
        browser,
        governor=governor,
        pagination=PaginationConfig(
            max_pages=pagination.max_pages,
            min_novelty_rate=pagination.min_novelty_rate,
            strategy=pagination.strategy,
        ),
        results_per_page=pagination.results_per_page,
        navigation_timeout=settings.browser.navigation_timeout_seconds,
        selector_timeout=settings.browser.selector_timeout_seconds,
    )


def build_sources(
    depth: str,
    browser: BrowserSession,
    settings: Settings | None = None,
) -> list[SourceDescriptor]:
    """Ordered source plan for a depth tier.

    Args:
        depth: quick, comprehensive, deep or ultra.
        browser: Shared browser session.
        settings: Settings (defaults to get_settings()).
    """
    settings = settings or get_settings()
    sources = []
    for key in resolve_depth(depth):
        adapter = build_adapter(key, browser, settings)
        sources.append(SourceDescriptor(name=adapter.name, adapter=adapter))

    logger.debug("Source plan built", depth=depth, sources=[s.name for s in sources])
    return sources
