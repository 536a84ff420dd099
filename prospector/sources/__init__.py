"""
Source adapters.

Adapters implement the SourceAdapter interface (see base.py). registry.py
maps depth tiers to ordered source plans.
"""

from prospector.sources.base import Location, SourceAdapter, SourceDescriptor
from prospector.sources.google_maps import GoogleMapsAdapter
from prospector.sources.registry import DEPTH_TIERS, build_sources
from prospector.sources.serp import SerpSourceAdapter, SerpSourceSpec

__all__ = [
    "DEPTH_TIERS",
    "GoogleMapsAdapter",
    "Location",
    "SerpSourceAdapter",
    "SerpSourceSpec",
    "SourceAdapter",
    "SourceDescriptor",
    "build_sources",
]
