"""
Pure HTML parsers for the built-in sources.

- maps: Google Maps result cards and place details
- serp: Google organic search results
"""

from prospector.sources.parsers.maps import parse_place_details, parse_result_cards
from prospector.sources.parsers.serp import ParsedResult, parse_search_results

__all__ = [
    "ParsedResult",
    "parse_place_details",
    "parse_result_cards",
    "parse_search_results",
]
