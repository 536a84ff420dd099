"""
Pytest fixtures and configuration for Prospector tests.

Markers:
- @pytest.mark.unit: Single class/function, no external dependencies.
  DEFAULT: Tests without marker are auto-classified as unit.
- @pytest.mark.integration: Several components together, browser mocked.
- @pytest.mark.e2e: Real browser and network. Excluded unless requested
  with `pytest -m e2e`.

Mock strategy:
- Playwright is never launched; FakeBrowser/FakePage stand in for it.
- File I/O uses tmp_path.
- Delays use zero intervals or a patched asyncio.sleep.
"""

import os
from collections.abc import AsyncIterator, Callable, Iterable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import pytest

# Set test environment before importing anything else
os.environ["PROSPECTOR_CONFIG_DIR"] = str(Path(__file__).parent.parent / "config")
os.environ["PROSPECTOR_GENERAL__LOG_LEVEL"] = "DEBUG"

from playwright.async_api import Error as PlaywrightError  # noqa: E402

from prospector.collect.records import Record  # noqa: E402
from prospector.sources.base import Location, SourceAdapter, SourceDescriptor  # noqa: E402
from prospector.utils.config import get_settings  # noqa: E402


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests with no external dependencies")
    config.addinivalue_line(
        "markers", "integration: Integration tests with mocked external dependencies"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests requiring a real browser (excluded by default)"
    )


def pytest_collection_modifyitems(config, items):
    """Default unmarked tests to unit; skip e2e unless selected with -m."""
    selected = config.getoption("-m") or ""
    skip_e2e = pytest.mark.skip(reason="E2E tests need a real browser. Run with: pytest -m e2e")

    for item in items:
        has_classification = any(
            marker.name in ("unit", "integration", "e2e") for marker in item.iter_markers()
        )
        if not has_classification:
            item.add_marker(pytest.mark.unit)

        if "e2e" in item.keywords and "e2e" not in selected:
            item.add_marker(skip_e2e)


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Each test sees settings loaded from the current environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# =============================================================================
# Browser fakes
# =============================================================================


class FakeLocator:
    def __init__(self, page: "FakePage", selector: str):
        self._page = page
        self._selector = selector

    async def count(self) -> int:
        return self._page.next_count()


class FakePage:
    """Minimal async stand-in for playwright.async_api.Page.

    Args:
        content: HTML returned by content(), or a callable (page -> HTML)
            for pages whose content changes as counts advance.
        counts: Values returned by successive locator(...).count() calls;
            the last value repeats once the sequence is exhausted.
        fail_urls: URL substrings whose navigation raises a Playwright error.
        missing_selectors: Selectors whose wait_for_selector times out.
    """

    def __init__(
        self,
        content: str | Callable[["FakePage"], str] = "<html></html>",
        counts: Iterable[int] = (),
        fail_urls: Iterable[str] = (),
        missing_selectors: Iterable[str] = (),
    ):
        self._content = content
        self._counts = list(counts)
        self._fail_urls = list(fail_urls)
        self._missing = set(missing_selectors)
        self.visited: list[str] = []
        self.evaluations: list[tuple[str, Any]] = []
        self.count_calls = 0
        self.current_count = 0
        self.closed = False

    async def goto(self, url: str, wait_until: str | None = None, timeout: float | None = None):
        self.visited.append(url)
        if any(fragment in url for fragment in self._fail_urls):
            raise PlaywrightError(f"net::ERR_TIMED_OUT at {url}")
        return None

    async def wait_for_selector(self, selector: str, timeout: float | None = None):
        if selector in self._missing:
            raise PlaywrightError(f"Timeout {timeout}ms exceeded waiting for {selector}")
        return object()

    def locator(self, selector: str) -> FakeLocator:
        return FakeLocator(self, selector)

    def next_count(self) -> int:
        if self.count_calls < len(self._counts):
            self.current_count = self._counts[self.count_calls]
        self.count_calls += 1
        return self.current_count

    async def evaluate(self, expression: str, arg: Any = None):
        self.evaluations.append((expression, arg))
        return None

    async def content(self) -> str:
        if callable(self._content):
            return self._content(self)
        return self._content

    def is_closed(self) -> bool:
        return self.closed

    async def close(self) -> None:
        self.closed = True


class FakeBrowser:
    """Stand-in for BrowserSession handing out FakePages in order.

    The last page is reused once the list runs out.
    """

    def __init__(self, *pages: FakePage):
        self.pages = list(pages) or [FakePage()]
        self.opened: list[FakePage] = []

    @asynccontextmanager
    async def page(self) -> AsyncIterator[FakePage]:
        index = min(len(self.opened), len(self.pages) - 1)
        page = self.pages[index]
        self.opened.append(page)
        try:
            yield page
        finally:
            await page.close()


# =============================================================================
# Scripted source adapters
# =============================================================================


class ScriptedAdapter(SourceAdapter):
    """Adapter yielding a fixed list of records, optionally failing.

    Args:
        name: Source name.
        records: Records to yield in order.
        error: Exception raised after `fail_after` records have been yielded.
        fail_after: Number of records yielded before raising `error`.
        enrichment: Mapping of record name -> extra fields (enables enrich()).
        enrich_error: Exception raised by enrich().
    """

    def __init__(
        self,
        name: str,
        records: Iterable[Record] = (),
        error: BaseException | None = None,
        fail_after: int = 0,
        enrichment: dict[str, Record] | None = None,
        enrich_error: BaseException | None = None,
    ):
        super().__init__(name, browser=FakeBrowser())  # type: ignore[arg-type]
        self._records = [dict(r) for r in records]
        self._error = error
        self._fail_after = fail_after
        self._enrichment = enrichment
        self._enrich_error = enrich_error
        self.collect_calls: list[tuple[str, Location, int]] = []
        self.pulled = 0
        self.enriched: list[str] = []
        self.stream_closed = False
        self.close_calls = 0

    @property
    def supports_enrichment(self) -> bool:
        return self._enrichment is not None or self._enrich_error is not None

    async def collect(self, query: str, location: Location, remaining: int):
        self.collect_calls.append((query, location, remaining))
        try:
            for position, record in enumerate(self._records):
                if self._error is not None and position == self._fail_after:
                    raise self._error
                self.pulled += 1
                yield dict(record)
            if self._error is not None and self._fail_after >= len(self._records):
                raise self._error
        finally:
            self.stream_closed = True

    async def enrich(self, record: Record) -> Record:
        self.enriched.append(record.get("name", ""))
        if self._enrich_error is not None:
            raise self._enrich_error
        return dict((self._enrichment or {}).get(record.get("name", ""), {}))

    async def close(self) -> None:
        self.close_calls += 1


def make_record(name: str, url: str | None = None, **fields: Any) -> Record:
    record: Record = {"name": name, "source_url": url or f"https://example.com/{name}"}
    record.update(fields)
    return record


def descriptor(adapter: SourceAdapter) -> SourceDescriptor:
    return SourceDescriptor(name=adapter.name, adapter=adapter)


@pytest.fixture
def location() -> Location:
    return Location("Lyon", "France")
