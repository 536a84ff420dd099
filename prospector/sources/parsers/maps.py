"""
Google Maps result feed and place detail parsers.
"""

from __future__ import annotations

import re

from prospector.collect.records import Record
from prospector.sources.parsers.base import make_soup, normalize_url, select_text

MAPS_BASE_URL = "https://www.google.com/maps"

FEED_SELECTOR = 'div[role="feed"]'
CARD_SELECTOR = ".Nv2PK"

_NAME_SELECTOR = ".qBF1Pd, .fontHeadlineSmall"
_LINK_SELECTOR = "a.hfpxzc"
_CATEGORY_SELECTOR = ".W4Efsd"
_ADDRESS_SELECTOR = ".W4Efsd:last-child"
_RATING_SELECTOR = ".MW4etd"

_PHONE_SELECTORS = (
    '[data-item-id*="phone"]',
    'button[data-item-id*="phone"]',
    '[aria-label*="Phone"]',
)
_WEBSITE_SELECTOR = '[data-item-id*="authority"], a[href*="http"]:not([href*="google.com"])'
_FULL_ADDRESS_SELECTOR = '[data-item-id*="address"]'
_PHONE_PREFIX = re.compile(r"Phone:?\s*", re.IGNORECASE)
_MIN_PHONE_LENGTH = 6


def parse_result_cards(html: str) -> list[Record]:
    """Extract one partial record per result card, in feed order.

    The list index matches the card's position in the feed, so callers
    can slice out the cards revealed by the latest scroll.
    """
    soup = make_soup(html)
    records: list[Record] = []

    for card in soup.select(CARD_SELECTOR):
        link = card.select_one(_LINK_SELECTOR)
        href = link.get("href") if link is not None else None
        records.append(
            {
                "name": select_text(card, _NAME_SELECTOR),
                "profile_url": normalize_url(
                    href if isinstance(href, str) else None, MAPS_BASE_URL
                )
                or "",
                "profession_title": select_text(card, _CATEGORY_SELECTOR),
                "location": select_text(card, _ADDRESS_SELECTOR),
                "rating": select_text(card, _RATING_SELECTOR),
            }
        )

    return records


def parse_place_details(html: str) -> Record:
    """Extract phone, website and full address from a place page."""
    soup = make_soup(html)
    details: Record = {}

    for selector in _PHONE_SELECTORS:
        element = soup.select_one(selector)
        if element is None:
            continue
        raw = element.get_text(" ", strip=True)
        if not raw:
            label = element.get("aria-label")
            raw = label if isinstance(label, str) else ""
        phone = _PHONE_PREFIX.sub("", raw).strip()
        if len(phone) >= _MIN_PHONE_LENGTH:
            details["phone"] = phone
            break

    website = soup.select_one(_WEBSITE_SELECTOR)
    if website is not None:
        href = website.get("href")
        if isinstance(href, str) and href:
            details["website"] = href

    address = select_text(soup, _FULL_ADDRESS_SELECTOR)
    if address:
        details["full_address"] = address

    return details
