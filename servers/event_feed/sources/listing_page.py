"""
Association listing page (CLUB_A).

Every event card on the listing page links to ``/events/<id>``. The card
text is read line by line with a small label-driven scanner: the first
title-like line is the title, the line after ``Event start time`` /
``Event end time`` is a dotted date, a currency line is the price and a
known category word becomes the classification. Only free events are kept.
"""

from datetime import datetime, tzinfo
from enum import Enum
from typing import Optional, Union
import re

import httpx
from bs4 import BeautifulSoup, Tag
from pydantic import BaseModel, ValidationError

from ..config.settings import Settings
from ..dates import get_timezone, parse_dotted_date
from ..http import SOURCE_ENDPOINTS, fetch_text
from ..models import (
    Classification,
    Event,
    EventContent,
    EventSource,
    FetchStats,
    ListingExtra,
    Organizer,
    TimeWindow,
)
from .base import FREE_WORDS, PRICE_PATTERN, drop, parse_price, run_source, text_lines

SOURCE = EventSource.CLUB_A
ORGANIZER = Organizer(name="Verein der Informatik Studierenden", short_name="VIS")

EVENT_LINK_PATTERN = re.compile(r"/events/(\d+)(?:[/?#]|$)")

START_LABELS = {"event start time", "start time", "start"}
END_LABELS = {"event end time", "end time", "end"}
PRICE_LABELS = {"price"}
# Labels whose value line is not needed
OTHER_LABELS = {
    "registration start", "registration end", "registration start time",
    "registration end time", "places", "free places", "location",
}
CATEGORY_LABELS = {
    "party", "culture", "sport", "excursion", "education",
    "company", "info event", "workshop", "game night",
}
MIN_TITLE_LENGTH = 4
# Card search climbs at most this many ancestors from the anchor
MAX_CARD_DEPTH = 3


class _ScanState(Enum):
    SCAN = "scan"
    START_VALUE = "start_value"
    END_VALUE = "end_value"
    PRICE_VALUE = "price_value"
    SKIP_VALUE = "skip_value"


class ListingCandidate(BaseModel):
    """What the scanner recovered from one card."""

    title: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    price: float = 0.0
    category: Optional[str] = None

    @property
    def is_paid(self) -> bool:
        return self.price > 0


async def fetch_listing_events(
    client: httpx.AsyncClient,
    settings: Settings,
) -> tuple[list[Event], FetchStats]:
    """Scrape the listing page and return the free events on it."""
    endpoint = SOURCE_ENDPOINTS[SOURCE]

    async def pipeline() -> list[Event]:
        html = await fetch_text(
            client, endpoint.request_url(proxy_base=settings.proxy_base), settings.retry_attempts
        )
        return extract_listing_events(
            html,
            base_url=endpoint.origin,
            exclude_paid=settings.exclude_paid,
            zone=get_timezone(settings.timezone),
        )

    return await run_source(SOURCE, pipeline())


def extract_listing_events(
    html: Union[str, BeautifulSoup],
    base_url: str = SOURCE_ENDPOINTS[SOURCE].origin,
    exclude_paid: bool = True,
    zone: Optional[tzinfo] = None,
) -> list[Event]:
    """
    Extract canonical events from a listing page.

    Args:
        html: Page markup or an already parsed document
        base_url: Origin used to absolutize event links
        exclude_paid: Drop events whose price is above zero
        zone: Timezone for the dotted dates

    Returns:
        One event per unique event id
    """
    soup = html if isinstance(html, BeautifulSoup) else BeautifulSoup(html, "html.parser")

    events: list[Event] = []
    seen: set[str] = set()
    for anchor in soup.find_all("a", href=EVENT_LINK_PATTERN):
        href = anchor.get("href", "")
        match = EVENT_LINK_PATTERN.search(href)
        if not match or match.group(1) in seen:
            continue
        event_id = match.group(1)
        seen.add(event_id)

        candidate = scan_card(_card_for(anchor), zone)
        event = _build_event(event_id, href, candidate, base_url, exclude_paid)
        if event:
            events.append(event)

    return events


def _card_for(anchor: Tag) -> Tag:
    """The anchor itself, or the nearest ancestor holding a start label."""
    node = anchor
    for _ in range(MAX_CARD_DEPTH + 1):
        lines = {line.lower() for line in text_lines(node.get_text("\n"))}
        if lines & START_LABELS:
            return node
        if node.parent is None or node.parent.name in ("body", "html", "[document]"):
            break
        node = node.parent
    return anchor


def scan_card(card: Tag, zone: Optional[tzinfo] = None) -> ListingCandidate:
    """Run the label scanner over a card's text lines."""
    candidate = ListingCandidate()
    state = _ScanState.SCAN

    for line in text_lines(card.get_text("\n")):
        lowered = line.lower().rstrip(":")

        if state is _ScanState.START_VALUE:
            candidate.start = parse_dotted_date(line, zone)
            state = _ScanState.SCAN
            continue
        if state is _ScanState.END_VALUE:
            candidate.end = parse_dotted_date(line, zone)
            state = _ScanState.SCAN
            continue
        if state is _ScanState.PRICE_VALUE:
            _add_price(candidate, line)
            state = _ScanState.SCAN
            continue
        if state is _ScanState.SKIP_VALUE:
            state = _ScanState.SCAN
            continue

        if lowered in START_LABELS:
            state = _ScanState.START_VALUE
        elif lowered in END_LABELS:
            state = _ScanState.END_VALUE
        elif lowered in PRICE_LABELS:
            state = _ScanState.PRICE_VALUE
        elif lowered in OTHER_LABELS:
            state = _ScanState.SKIP_VALUE
        elif lowered in CATEGORY_LABELS:
            candidate.category = candidate.category or line
        elif _looks_like_price(line):
            _add_price(candidate, line)
        elif (
            candidate.title is None
            and len(line) >= MIN_TITLE_LENGTH
            and parse_dotted_date(line, zone) is None
        ):
            candidate.title = line

    return candidate


def _add_price(candidate: ListingCandidate, line: str) -> None:
    price = parse_price(line)
    if price is not None:
        candidate.price = max(candidate.price, price)


def _looks_like_price(line: str) -> bool:
    return bool(PRICE_PATTERN.search(line)) or line.lower() in FREE_WORDS


def _build_event(
    event_id: str,
    href: str,
    candidate: ListingCandidate,
    base_url: str,
    exclude_paid: bool,
) -> Optional[Event]:
    if not candidate.title or candidate.start is None or candidate.end is None:
        drop(SOURCE, "incomplete_card", id=event_id)
        return None
    if exclude_paid and candidate.is_paid:
        drop(SOURCE, "paid", id=event_id, price=candidate.price)
        return None
    if candidate.end < candidate.start:
        drop(SOURCE, "inverted_dates", id=event_id)
        return None

    link = href if href.startswith("http") else base_url.rstrip("/") + "/" + href.lstrip("/")
    try:
        return Event(
            id=event_id,
            source=SOURCE,
            content=EventContent(title=candidate.title, link_url=link),
            time_windows=[TimeWindow(start=candidate.start, end=candidate.end)],
            classification=(
                Classification(type_label=candidate.category) if candidate.category else None
            ),
            organizer=ORGANIZER,
            source_extra=ListingExtra(price=candidate.price, category=candidate.category),
        )
    except ValidationError as e:
        drop(SOURCE, "invalid_card", id=event_id, error=str(e))
        return None
