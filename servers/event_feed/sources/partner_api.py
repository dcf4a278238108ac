"""
Partner events API (PARTNER_A).

Flat JSON records under ``events``: start and end arrive as epoch
millisecond strings, the room is split across several fields, and purely
virtual events are flagged with ``is_virtual``.
"""

from datetime import tzinfo
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from ..config.settings import Settings
from ..dates import get_timezone, parse_epoch_millis
from ..http import SOURCE_ENDPOINTS, SourcePayloadError, fetch_json
from ..models import Event, EventContent, EventSource, FetchStats, Location, PartnerExtra, TimeWindow
from .base import clean_text, drop, run_source, to_bool

SOURCE = EventSource.PARTNER_A

REQUIRED_FIELDS = ("id", "dtstart", "dtend", "title")


async def fetch_partner_events(
    client: httpx.AsyncClient,
    settings: Settings,
) -> tuple[list[Event], FetchStats]:
    """Fetch and normalize events from the partner API."""
    endpoint = SOURCE_ENDPOINTS[SOURCE]

    async def pipeline() -> list[Event]:
        url = endpoint.request_url(proxy_base=settings.proxy_base)
        data = await fetch_json(client, url, SOURCE, settings.retry_attempts)
        return extract_partner_events(data, zone=get_timezone(settings.timezone))

    return await run_source(SOURCE, pipeline())


def extract_partner_events(payload: Any, zone: Optional[tzinfo] = None) -> list[Event]:
    """
    Map the partner payload onto canonical events.

    Records missing a required field, with unparseable or inverted dates, or
    with no physical attendance are dropped.

    Raises:
        SourcePayloadError: If there is no ``events`` array
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("events"), list):
        raise SourcePayloadError(SOURCE, "expected an object with an events array")

    events: list[Event] = []
    for item in payload["events"]:
        try:
            event = _parse_item(item, zone)
        except (ValidationError, ValueError, TypeError, AttributeError) as e:
            drop(SOURCE, "invalid_item", error=str(e))
            continue
        if event:
            events.append(event)
    return events


def _parse_item(item: dict, zone: Optional[tzinfo]) -> Optional[Event]:
    missing = [field for field in REQUIRED_FIELDS if not clean_text(item.get(field))]
    if missing:
        drop(SOURCE, "missing_fields", id=item.get("id"), fields=missing)
        return None

    start = parse_epoch_millis(clean_text(item["dtstart"]), zone)
    end = parse_epoch_millis(clean_text(item["dtend"]), zone)
    if start is None or end is None or end < start:
        drop(SOURCE, "invalid_dates", id=item.get("id"))
        return None

    if to_bool(item.get("is_virtual")):
        drop(SOURCE, "virtual_only", id=item.get("id"))
        return None

    return Event(
        id=clean_text(item["id"]),
        source=SOURCE,
        content=EventContent(
            title=clean_text(item["title"]),
            description=clean_text(item.get("description")),
            link_url=clean_text(item.get("more")),
        ),
        location=_parse_location(item),
        time_windows=[TimeWindow(start=start, end=end)],
        source_extra=PartnerExtra(speaker=clean_text(item.get("speaker"))),
    )


def _parse_location(item: dict) -> Optional[Location]:
    # "HG" + "F" + "1" -> building HG, room "F 1"
    room_parts = [clean_text(item.get("room")), clean_text(item.get("room_nr"))]
    room = " ".join(part for part in room_parts if part) or None
    location = Location(
        area_description=clean_text(item.get("address")),
        building=clean_text(item.get("bldg")),
        room=room,
    )
    return None if location.is_empty() else location
