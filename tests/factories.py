"""Builders for test events."""

from datetime import datetime, timedelta
from typing import Sequence

from servers.event_feed.models import Event, EventContent, EventSource, TimeWindow


def make_event(
    event_id: str = "1",
    source: EventSource = EventSource.PRIMARY,
    title: str = "Seminar",
    description: str = "",
    starts: Sequence[datetime] = (),
    duration: timedelta = timedelta(hours=1),
    **kwargs,
) -> Event:
    """Build an event with one occurrence window per start."""
    return Event(
        id=event_id,
        source=source,
        content=EventContent(title=title, description=description),
        time_windows=[TimeWindow(start=start, end=start + duration) for start in starts],
        **kwargs,
    )
