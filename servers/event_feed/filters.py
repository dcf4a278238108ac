"""
Filtering, grouping and ordering of aggregated events.

Filters:
- Time window: occurrences starting within the horizon, or opening-hours
  ranges overlapping it
- Food: keyword match on title + description, or an always-food source
"""

from datetime import datetime, timedelta, tzinfo
from typing import Iterable, Optional

from dateutil import tz
from pydantic import BaseModel

from .keywords import FOOD_KEYWORDS, Lexicon, first_match_in
from .models import Event, EventSource


DEFAULT_HORIZON = timedelta(days=14)

# Club sources rarely mention food in text but always provide it
ALWAYS_FOOD_SOURCES = frozenset({EventSource.CLUB_A, EventSource.CLUB_B, EventSource.CLUB_C})

OTHER_LABEL = "Other"
DATE_TBD = "Date TBD"


class FilterOptions(BaseModel):
    """Options for filter_events; both filters are on by default."""

    next_two_weeks: bool = True
    food_only: bool = True
    horizon: timedelta = DEFAULT_HORIZON
    always_food_sources: frozenset[EventSource] = ALWAYS_FOOD_SOURCES
    lexicon: Optional[dict[str, list[str]]] = None


def _now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(tz.UTC)
    if now.tzinfo is None:
        return now.replace(tzinfo=tz.gettz())
    return now


def in_time_window(event: Event, now: Optional[datetime] = None, horizon: timedelta = DEFAULT_HORIZON) -> bool:
    """Check whether an event happens between now and now + horizon."""
    now = _now(now)
    limit = now + horizon

    for window in event.time_windows:
        if window.kind == "opening_hours":
            if window.start <= limit and window.end >= now:
                return True
        elif now <= window.start <= limit:
            return True
    return False


def filter_time_window(
    events: Iterable[Event],
    now: Optional[datetime] = None,
    horizon: timedelta = DEFAULT_HORIZON,
) -> list[Event]:
    """Keep events with a window inside [now, now + horizon]; undated events are dropped."""
    now = _now(now)
    return [event for event in events if in_time_window(event, now, horizon)]


def food_match(event: Event, lexicon: Optional[Lexicon] = None) -> Optional[str]:
    """First food keyword in the event's title or description."""
    return first_match_in([event.content.title, event.content.description], lexicon or FOOD_KEYWORDS)


def has_food(
    event: Event,
    lexicon: Optional[Lexicon] = None,
    always_food_sources: Iterable[EventSource] = ALWAYS_FOOD_SOURCES,
) -> bool:
    if event.source in set(always_food_sources):
        return True
    return food_match(event, lexicon) is not None


def filter_food(
    events: Iterable[Event],
    lexicon: Optional[Lexicon] = None,
    always_food_sources: Iterable[EventSource] = ALWAYS_FOOD_SOURCES,
) -> list[Event]:
    """Keep events that likely offer food or refreshments."""
    allowed = frozenset(always_food_sources)
    return [event for event in events if has_food(event, lexicon, allowed)]


def filter_events(
    events: Iterable[Event],
    options: Optional[FilterOptions] = None,
    now: Optional[datetime] = None,
) -> list[Event]:
    """Apply the enabled filters in order: time window, then food."""
    options = options or FilterOptions()
    filtered = list(events)

    if options.next_two_weeks:
        filtered = filter_time_window(filtered, now=now, horizon=options.horizon)

    if options.food_only:
        filtered = filter_food(
            filtered,
            lexicon=options.lexicon,
            always_food_sources=options.always_food_sources,
        )

    return filtered


def source_label(event: Event) -> str:
    """Organizer short name, organizer name, calendar label, or 'Other'."""
    if event.organizer:
        label = event.organizer.short_name or event.organizer.name
        if label:
            return label
    if event.classification and event.classification.calendar_label:
        return event.classification.calendar_label
    return OTHER_LABEL


def group_by_source_label(events: Iterable[Event]) -> dict[str, list[Event]]:
    grouped: dict[str, list[Event]] = {}
    for event in events:
        grouped.setdefault(source_label(event), []).append(event)
    return grouped


def next_start(event: Event, now: Optional[datetime] = None) -> Optional[datetime]:
    """Earliest window start that is not in the past."""
    now = _now(now)
    upcoming = [window.start for window in event.time_windows if window.start >= now]
    return min(upcoming) if upcoming else None


def sort_chronologically(events: Iterable[Event], now: Optional[datetime] = None) -> list[Event]:
    """Sort by next start; events without a future start go last, ties keep input order."""
    now = _now(now)
    keyed = [(next_start(event, now), event) for event in events]
    dated = [item for item in keyed if item[0] is not None]
    undated = [event for start, event in keyed if start is None]
    dated.sort(key=lambda item: item[0])
    return [event for _, event in dated] + undated


def format_event_date(event: Event, zone: Optional[tzinfo] = None) -> str:
    """Human readable date for cards."""
    if not event.time_windows:
        return DATE_TBD

    first = event.time_windows[0]
    start = first.start.astimezone(zone) if zone else first.start
    if first.kind == "opening_hours":
        end = first.end.astimezone(zone) if zone else first.end
        return f"{_short_date(start)} - {_short_date(end)}"

    return f"{start.strftime('%a')}, {_short_date(start)}, {start.strftime('%I:%M %p')}"


def _short_date(value: datetime) -> str:
    return f"{value.strftime('%b')} {value.day}, {value.year}"
