"""
Two-phase association sources (CLUB_B, CLUB_C).

Phase 1 collects event slugs from the listing page. Phase 2 requests each
detail page through a DetailFetchQueue (one request at a time) and reads
its label/value rows: title, description, date, duration, location and two
price fields. Only events where both prices are zero or absent are kept.

The two sites differ only in their labels, detail path and date format,
captured by DetailSourceConfig.
"""

from datetime import datetime, tzinfo
from typing import Literal, Optional, Union
import re

import httpx
from bs4 import BeautifulSoup
from pydantic import BaseModel, ValidationError

from ..config.settings import Settings
from ..dates import get_timezone, parse_abbreviated_month, parse_verbose_weekday_range
from ..http import SOURCE_ENDPOINTS, fetch_text
from ..models import (
    DetailExtra,
    Event,
    EventContent,
    EventSource,
    FetchStats,
    Location,
    Organizer,
    TimeWindow,
)
from ..resilience.queue import DetailFetchQueue
from .base import clean_text, drop, parse_price, run_source


class DetailSourceConfig(BaseModel):
    """Site-specific details of a two-phase source."""

    source: EventSource
    organizer: Organizer
    link_pattern: str
    detail_path: str
    date_format: Literal["verbose_weekday", "abbreviated_month"]
    title_labels: frozenset[str] = frozenset({"title", "event", "event name", "name"})
    description_labels: frozenset[str] = frozenset({"description", "details", "about"})
    date_labels: frozenset[str] = frozenset({"date", "when", "date and time"})
    duration_labels: frozenset[str] = frozenset({"duration"})
    location_labels: frozenset[str] = frozenset({"location", "where", "place", "address"})
    price_labels: frozenset[str] = frozenset({"price"})
    member_price_labels: frozenset[str] = frozenset({"member price"})

    def compiled_pattern(self) -> re.Pattern:
        return re.compile(self.link_pattern)


DETAIL_SOURCES: dict[EventSource, DetailSourceConfig] = {
    EventSource.CLUB_B: DetailSourceConfig(
        source=EventSource.CLUB_B,
        organizer=Organizer(name="Erasmus Student Network Zurich", short_name="ESN Zurich"),
        link_pattern=r"/events/([a-z0-9][a-z0-9-]*)/?(?:[?#]|$)",
        detail_path="/events/{slug}",
        date_format="verbose_weekday",
        member_price_labels=frozenset(
            {"price with esncard", "esncard price", "price (esncard)", "member price"}
        ),
    ),
    EventSource.CLUB_C: DetailSourceConfig(
        source=EventSource.CLUB_C,
        organizer=Organizer(name="Verein der Mathematik- und Physikstudierenden", short_name="VMP"),
        link_pattern=r"/(?:en/)?events/([a-z0-9][a-z0-9-]*)/?(?:[?#]|$)",
        detail_path="/en/events/{slug}/",
        date_format="abbreviated_month",
        date_labels=frozenset({"start", "date", "begin", "when"}),
        price_labels=frozenset({"price", "price non-members", "price (non-members)"}),
        member_price_labels=frozenset({"price members", "price (members)", "member price"}),
    ),
}


class DetailCandidate(BaseModel):
    """Fields recovered from one detail page."""

    slug: str
    title: Optional[str] = None
    description: str = ""
    date_text: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    location: Optional[str] = None
    price: Optional[float] = None
    member_price: Optional[float] = None
    # A price row was present but its amount couldn't be read
    price_unclear: bool = False

    @property
    def is_free(self) -> bool:
        return not self.price_unclear and not self.price and not self.member_price


async def fetch_detail_events(
    client: httpx.AsyncClient,
    settings: Settings,
    source: EventSource,
) -> tuple[list[Event], FetchStats]:
    """
    Collect slugs from the listing page, then fetch detail pages one by one.

    Returns:
        Tuple of (events, fetch_stats)
    """
    config = DETAIL_SOURCES[source]
    endpoint = SOURCE_ENDPOINTS[source]
    zone = get_timezone(settings.timezone)

    async def fetch_one(slug: str) -> Optional[Event]:
        path = config.detail_path.format(slug=slug)
        html = await fetch_text(
            client, endpoint.request_url(path, proxy_base=settings.proxy_base), settings.retry_attempts
        )
        return extract_detail_event(
            html,
            config,
            slug,
            link=endpoint.public_url(path),
            exclude_paid=settings.exclude_paid,
            zone=zone,
        )

    async def pipeline() -> list[Event]:
        listing = await fetch_text(
            client, endpoint.request_url(proxy_base=settings.proxy_base), settings.retry_attempts
        )
        slugs = collect_detail_slugs(listing, config)
        queue = DetailFetchQueue(concurrency=1, name=source.value)
        return await queue.map(slugs, fetch_one)

    return await run_source(source, pipeline())


async def fetch_club_b_events(client: httpx.AsyncClient, settings: Settings) -> tuple[list[Event], FetchStats]:
    return await fetch_detail_events(client, settings, EventSource.CLUB_B)


async def fetch_club_c_events(client: httpx.AsyncClient, settings: Settings) -> tuple[list[Event], FetchStats]:
    return await fetch_detail_events(client, settings, EventSource.CLUB_C)


def collect_detail_slugs(html: Union[str, BeautifulSoup], config: DetailSourceConfig) -> list[str]:
    """Unique event slugs linked from the listing page, in page order."""
    soup = html if isinstance(html, BeautifulSoup) else BeautifulSoup(html, "html.parser")
    pattern = config.compiled_pattern()

    slugs: list[str] = []
    for anchor in soup.find_all("a", href=pattern):
        match = pattern.search(anchor.get("href", ""))
        if match and match.group(1) not in slugs:
            slugs.append(match.group(1))
    return slugs


def label_rows(soup: BeautifulSoup) -> list[tuple[str, str]]:
    """Label/value pairs from table rows and definition lists."""
    rows: list[tuple[str, str]] = []

    for row in soup.find_all("tr"):
        cells = row.find_all(["th", "td"])
        if len(cells) < 2:
            continue
        label = clean_text(cells[0].get_text(" "))
        value = clean_text(cells[1].get_text(" "))
        if label:
            rows.append((_normalize_label(label), value or ""))

    for term in soup.find_all("dt"):
        definition = term.find_next_sibling("dd")
        label = clean_text(term.get_text(" "))
        if label and definition is not None:
            rows.append((_normalize_label(label), clean_text(definition.get_text(" ")) or ""))

    return rows


def _normalize_label(label: str) -> str:
    return label.lower().rstrip(":").strip()


def parse_detail_page(
    html: Union[str, BeautifulSoup],
    config: DetailSourceConfig,
    slug: str,
    zone: Optional[tzinfo] = None,
) -> Optional[DetailCandidate]:
    """
    Read a detail page into a candidate record.

    Returns:
        The candidate, or None if no title or no parseable date was found
    """
    soup = html if isinstance(html, BeautifulSoup) else BeautifulSoup(html, "html.parser")
    candidate = DetailCandidate(slug=slug)
    duration_text: Optional[str] = None

    for label, value in label_rows(soup):
        if label in config.title_labels and not candidate.title and value:
            candidate.title = value
        elif label in config.description_labels and not candidate.description:
            candidate.description = value
        elif label in config.date_labels and not candidate.date_text:
            candidate.date_text = value
        elif label in config.duration_labels:
            duration_text = value
        elif label in config.location_labels and not candidate.location:
            candidate.location = value or None
        elif label in config.member_price_labels:
            candidate.member_price = _read_price(value, candidate)
        elif label in config.price_labels:
            candidate.price = _read_price(value, candidate)

    if not candidate.title:
        heading = soup.find(["h1", "h2"])
        candidate.title = clean_text(heading.get_text(" ")) if heading else None

    if config.date_format == "verbose_weekday":
        window = parse_verbose_weekday_range(candidate.date_text, zone)
    else:
        window = parse_abbreviated_month(candidate.date_text, duration_text, zone)

    if not candidate.title or window is None:
        drop(config.source, "incomplete_detail", slug=slug, date_text=candidate.date_text)
        return None

    candidate.start, candidate.end = window
    return candidate


def _read_price(value: str, candidate: DetailCandidate) -> Optional[float]:
    if not value or value in ("-", "–"):
        return None
    amount = parse_price(value)
    if amount is None:
        candidate.price_unclear = True
    return amount


def extract_detail_event(
    html: Union[str, BeautifulSoup],
    config: DetailSourceConfig,
    slug: str,
    link: Optional[str] = None,
    exclude_paid: bool = True,
    zone: Optional[tzinfo] = None,
) -> Optional[Event]:
    """Parse one detail page into a canonical event, or None if dropped."""
    candidate = parse_detail_page(html, config, slug, zone)
    if candidate is None:
        return None
    if exclude_paid and not candidate.is_free:
        drop(config.source, "paid", slug=slug, price=candidate.price, member_price=candidate.member_price)
        return None

    try:
        return Event(
            id=slug,
            source=config.source,
            content=EventContent(
                title=candidate.title,
                description=candidate.description,
                link_url=link,
            ),
            location=Location(area_description=candidate.location) if candidate.location else None,
            time_windows=[TimeWindow(start=candidate.start, end=candidate.end)],
            organizer=config.organizer,
            source_extra=DetailExtra(
                source=config.source,
                price=candidate.price or 0.0,
                member_price=candidate.member_price or 0.0,
                date_text=candidate.date_text,
            ),
        )
    except ValidationError as e:
        drop(config.source, "invalid_detail", slug=slug, error=str(e))
        return None
