"""
Shared helpers for HTML -> partial record extraction.

Parsers are pure functions of page HTML. They never navigate, wait or
raise on a missing field: an absent element simply leaves that field
empty, and identity filtering happens downstream.
"""

from __future__ import annotations

from urllib.parse import parse_qs, urljoin, urlparse

from bs4 import BeautifulSoup, Tag


def make_soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def extract_text(element: Tag | None, default: str = "") -> str:
    """Safely extract stripped text from element."""
    if element is None:
        return default
    return element.get_text(" ", strip=True) or default


def select_text(parent: Tag, selector: str) -> str:
    """Text of the first element matching selector, or ""."""
    return extract_text(parent.select_one(selector))


def clean_google_url(url: str) -> str:
    """Unwrap Google /url?q=... redirect links."""
    if "/url?" in url:
        params = parse_qs(urlparse(url).query)
        if "q" in params:
            return params["q"][0]
        if "url" in params:
            return params["url"][0]
    return url


def normalize_url(url: str | None, base_url: str = "") -> str | None:
    """Absolute http(s) URL, or None for javascript:/mailto:/fragments."""
    if not url:
        return None

    if url.startswith(("javascript:", "mailto:", "tel:", "#")):
        return None

    if not url.startswith(("http://", "https://")):
        if not base_url:
            return None
        url = urljoin(base_url, url)

    return url


def truncate(text: str, max_len: int) -> str:
    return text if len(text) <= max_len else text[:max_len]
