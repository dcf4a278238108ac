"""
Event source adapters.

Each source implements:
- extract_*(payload) -> list[Event], a pure mapping from raw payload
- fetch_*(client, settings) -> (list[Event], FetchStats)
"""

from .structured_api import extract_primary_events, fetch_primary_events
from .partner_api import extract_partner_events, fetch_partner_events
from .listing_page import extract_listing_events, fetch_listing_events
from .detail_fetch import (
    DETAIL_SOURCES,
    extract_detail_event,
    fetch_club_b_events,
    fetch_club_c_events,
    fetch_detail_events,
)

__all__ = [
    "extract_primary_events",
    "fetch_primary_events",
    "extract_partner_events",
    "fetch_partner_events",
    "extract_listing_events",
    "fetch_listing_events",
    "DETAIL_SOURCES",
    "extract_detail_event",
    "fetch_detail_events",
    "fetch_club_b_events",
    "fetch_club_c_events",
]
