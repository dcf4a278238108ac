"""
Service facade used by the presentation layer.

The UI calls load() on start, refresh() from its reload button and the
view/registration methods while rendering. Results are returned as plain
dicts, like tool results.
"""

from datetime import datetime, timedelta
from typing import Any, Optional

import structlog

from .aggregator import EventAggregator
from .config.settings import Settings, load_settings
from .dates import get_timezone
from .filters import (
    FilterOptions,
    filter_events,
    food_match,
    format_event_date,
    group_by_source_label,
    sort_chronologically,
)
from .keywords import highlight
from .models import Event, FetchResult
from .registration import JsonFileStorage, MemoryStorage, RegistrationStore

logger = structlog.get_logger()


class EventFeedService:
    """Holds the latest aggregation run and the registration store."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        aggregator: Optional[EventAggregator] = None,
        registrations: Optional[RegistrationStore] = None,
    ):
        self.settings = settings or load_settings()
        self.aggregator = aggregator or EventAggregator(self.settings)
        if registrations is None:
            storage = (
                JsonFileStorage(self.settings.registration_path)
                if self.settings.registration_path
                else MemoryStorage()
            )
            registrations = RegistrationStore(storage)
        self.registrations = registrations
        self.tools = {
            "load": self.load,
            "refresh": self.refresh,
            "visible_events": self.visible_events,
            "grouped_events": self.grouped_events,
            "toggle_registration": self.toggle_registration,
            "registered_ids": self.registered_ids,
            "health": self.health,
        }
        self._result: Optional[FetchResult] = None

    @property
    def events(self) -> list[Event]:
        return self._result.events if self._result else []

    async def load(self) -> dict:
        """Fetch events once; later calls reuse the loaded run."""
        if self._result is None:
            return await self.refresh()
        return self._summary()

    async def refresh(self) -> dict:
        """Run a fresh aggregation, replacing the previous events."""
        self._result = await self.aggregator.fetch_all()
        return self._summary()

    def _summary(self) -> dict:
        result = self._result
        return {
            "total": result.total,
            "stats": [stats.model_dump(mode="json") for stats in result.stats],
            "failed_sources": [source.value for source in result.failed_sources],
        }

    def _options(self, food_only: bool, next_two_weeks: bool) -> FilterOptions:
        return FilterOptions(
            food_only=food_only,
            next_two_weeks=next_two_weeks,
            horizon=timedelta(days=self.settings.horizon_days),
            always_food_sources=self.settings.always_food_sources,
        )

    def visible_events(
        self,
        food_only: bool = True,
        next_two_weeks: bool = True,
        now: Optional[datetime] = None,
    ) -> list[dict[str, Any]]:
        """Filtered events in chronological order, ready for cards."""
        filtered = filter_events(self.events, self._options(food_only, next_two_weeks), now=now)
        return [self._card(event) for event in sort_chronologically(filtered, now=now)]

    def grouped_events(
        self,
        food_only: bool = True,
        next_two_weeks: bool = True,
        now: Optional[datetime] = None,
    ) -> dict[str, list[dict[str, Any]]]:
        """Filtered events grouped by organizer/calendar label."""
        filtered = filter_events(self.events, self._options(food_only, next_two_weeks), now=now)
        return {
            label: [self._card(event) for event in sort_chronologically(group, now=now)]
            for label, group in group_by_source_label(filtered).items()
        }

    def _card(self, event: Event) -> dict[str, Any]:
        card = event.model_dump(mode="json")
        card["date_label"] = format_event_date(event, get_timezone(self.settings.timezone))
        card["food_keyword"] = food_match(event)
        card["title_html"] = str(highlight(event.content.title))
        card["description_html"] = str(highlight(event.content.description))
        card["registered"] = self.registrations.is_registered(event.key)
        return card

    def toggle_registration(self, event_key: str) -> dict:
        registered = self.registrations.toggle(event_key)
        return {"event": event_key, "registered": registered}

    def registered_ids(self) -> list[str]:
        return self.registrations.list_all()

    def health(self) -> dict:
        return self.aggregator.health.get_status()
