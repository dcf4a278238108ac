"""
Central events API (PRIMARY).

The API returns every published entry in one JSON document
(``entry-array``); nested fields map onto the canonical event directly.
"""

from datetime import tzinfo
from typing import Any, Optional

import httpx
from bs4 import BeautifulSoup
from pydantic import ValidationError

from ..config.settings import Settings
from ..dates import get_timezone, parse_iso_datetime
from ..http import SOURCE_ENDPOINTS, SourcePayloadError, fetch_json
from ..models import (
    Classification,
    Event,
    EventContent,
    EventSource,
    FetchStats,
    Location,
    Organizer,
    PrimaryExtra,
    TimeWindow,
)
from .base import clean_text, drop, run_source

SOURCE = EventSource.PRIMARY


async def fetch_primary_events(
    client: httpx.AsyncClient,
    settings: Settings,
) -> tuple[list[Event], FetchStats]:
    """
    Fetch and normalize all entries from the central events API.

    Returns:
        Tuple of (events, fetch_stats)
    """
    endpoint = SOURCE_ENDPOINTS[SOURCE]

    async def pipeline() -> list[Event]:
        url = endpoint.request_url(proxy_base=settings.proxy_base)
        data = await fetch_json(client, url, SOURCE, settings.retry_attempts)
        return extract_primary_events(data, zone=get_timezone(settings.timezone))

    return await run_source(SOURCE, pipeline())


def extract_primary_events(payload: Any, zone: Optional[tzinfo] = None) -> list[Event]:
    """
    Map an API document onto canonical events.

    Raises:
        SourcePayloadError: If the document has no entry array
    """
    if not isinstance(payload, dict):
        raise SourcePayloadError(SOURCE, "expected a JSON object")
    entries = payload.get("entry-array") or []
    if not isinstance(entries, list):
        raise SourcePayloadError(SOURCE, "entry-array is not a list")

    events: list[Event] = []
    for entry in entries:
        try:
            event = _parse_entry(entry, zone)
        except (ValidationError, ValueError, TypeError, AttributeError) as e:
            drop(SOURCE, "invalid_entry", error=str(e))
            continue
        if event:
            events.append(event)
    return events


def _parse_entry(entry: dict, zone: Optional[tzinfo]) -> Optional[Event]:
    entry_id = clean_text(entry.get("id"))
    content = entry.get("content") or {}
    title = clean_text(content.get("title"))
    if not entry_id or not title:
        drop(SOURCE, "missing_id_or_title", id=entry_id)
        return None

    link = content.get("link") or {}

    return Event(
        id=entry_id,
        source=SOURCE,
        content=EventContent(
            title=title,
            description=_plain_text(content.get("description")),
            link_url=clean_text(link.get("url")),
            link_label=clean_text(link.get("label")),
        ),
        location=_parse_location(entry.get("location")),
        time_windows=_parse_windows(entry.get("date-time-indication"), zone),
        classification=_parse_classification(entry.get("classification")),
        organizer=_parse_organizer(entry.get("organizers")),
        source_extra=PrimaryExtra(
            language=clean_text(entry.get("lang")),
            image_url=clean_text((entry.get("image") or {}).get("url")),
        ),
    )


def _plain_text(value: Any) -> str:
    """Descriptions may contain markup; keep the text only."""
    text = clean_text(value)
    if not text:
        return ""
    if "<" in text:
        text = clean_text(BeautifulSoup(text, "html.parser").get_text(" ")) or ""
    return text


def _parse_location(data: Any) -> Optional[Location]:
    if not isinstance(data, dict):
        return None
    location = Location(
        area_description=clean_text(data.get("area-desc")),
        building=clean_text(data.get("building")),
        room=clean_text(data.get("room")),
        addition=clean_text(data.get("addition")),
    )
    return None if location.is_empty() else location


def _parse_windows(indication: Any, zone: Optional[tzinfo]) -> list[TimeWindow]:
    """Occurrences from the time-range array, else one opening-hours range."""
    if not isinstance(indication, dict):
        return []

    windows: list[TimeWindow] = []
    for time_range in indication.get("in-progress-timerange-array") or []:
        start = parse_iso_datetime(time_range.get("date-time-from"), zone)
        if start is None:
            drop(SOURCE, "unparseable_time_range", value=time_range.get("date-time-from"))
            continue
        end = parse_iso_datetime(time_range.get("date-time-to"), zone) or start
        if end < start:
            drop(SOURCE, "inverted_time_range")
            continue
        windows.append(TimeWindow(start=start, end=end))

    opening_hours = indication.get("opening-hours")
    if not windows and isinstance(opening_hours, dict):
        start = parse_iso_datetime(opening_hours.get("date-from"), zone)
        end = parse_iso_datetime(opening_hours.get("date-to"), zone)
        if start and end and start <= end:
            windows.append(TimeWindow(start=start, end=end, kind="opening_hours"))

    windows.sort(key=lambda window: window.start)
    return windows


def _parse_classification(data: Any) -> Optional[Classification]:
    if not isinstance(data, dict):
        return None
    type_label = clean_text(data.get("type-desc"))
    calendar_label = clean_text(data.get("cal-desc"))
    if not type_label and not calendar_label:
        return None
    return Classification(
        type_label=type_label or calendar_label,
        target_group_label=clean_text(data.get("target-group-desc")),
        registration_required=bool(data.get("registration-required", False)),
        calendar_label=calendar_label,
    )


def _parse_organizer(data: Any) -> Optional[Organizer]:
    if not isinstance(data, dict):
        return None
    units = data.get("ou-array") or []
    if not units:
        return None
    first = units[0]
    name = clean_text(first.get("name"))
    short_name = clean_text(first.get("name-short"))
    if not name and not short_name:
        return None
    return Organizer(name=name, short_name=short_name)
