"""
Aggregation across all event sources.

All enabled sources are fetched concurrently. A source that fails
contributes no events and an error stat; the aggregate always resolves.
Results keep the fixed EventSource order and are never de-duplicated
across sources.
"""

import asyncio
from typing import Awaitable, Callable, Optional

import httpx
import structlog

from .config.settings import Settings, load_settings
from .http import create_client
from .models import Event, EventSource, FetchResult, FetchStats
from .resilience.health import HealthMonitor
from .sources import (
    fetch_club_b_events,
    fetch_club_c_events,
    fetch_listing_events,
    fetch_partner_events,
    fetch_primary_events,
)

logger = structlog.get_logger()

SourceFetcher = Callable[[httpx.AsyncClient, Settings], Awaitable[tuple[list[Event], FetchStats]]]

SOURCE_FETCHERS: dict[EventSource, SourceFetcher] = {
    EventSource.PRIMARY: fetch_primary_events,
    EventSource.PARTNER_A: fetch_partner_events,
    EventSource.CLUB_A: fetch_listing_events,
    EventSource.CLUB_B: fetch_club_b_events,
    EventSource.CLUB_C: fetch_club_c_events,
}


class EventAggregator:
    """Run every source pipeline and merge the results."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
        fetchers: Optional[dict[EventSource, SourceFetcher]] = None,
        health: Optional[HealthMonitor] = None,
    ):
        """
        Args:
            settings: Runtime settings (loaded from defaults/env if omitted)
            client: Shared HTTP client; one is created per run if omitted
            fetchers: Source pipelines, defaults to SOURCE_FETCHERS
            health: Monitor receiving per-source outcomes
        """
        self.settings = settings or load_settings()
        self.client = client
        self.fetchers = fetchers if fetchers is not None else dict(SOURCE_FETCHERS)
        self.health = health or HealthMonitor()

    async def fetch_all(self) -> FetchResult:
        """Fetch all enabled sources concurrently."""
        enabled = [
            source
            for source in EventSource
            if source in self.settings.enabled_sources and source in self.fetchers
        ]
        skipped = [
            FetchStats(source=source, count=0, status="skipped", error_message="source disabled")
            for source in EventSource
            if source not in enabled
        ]

        owns_client = self.client is None
        client = self.client or create_client(self.settings.timeout_seconds)
        try:
            results = await asyncio.gather(*(self._run_source(source, client) for source in enabled))
        finally:
            if owns_client:
                await client.aclose()

        all_events: list[Event] = []
        all_stats: list[FetchStats] = []
        failed: list[EventSource] = []
        for events, stats in results:
            all_events.extend(events)
            all_stats.append(stats)
            if stats.status == "error":
                failed.append(stats.source)

        logger.info(
            "aggregation_complete",
            total=len(all_events),
            sources=len(enabled),
            failed=[source.value for source in failed],
        )

        return FetchResult(
            events=all_events,
            stats=all_stats + skipped,
            total=len(all_events),
            failed_sources=failed,
        )

    async def fetch_all_events(self) -> list[Event]:
        """Concatenated events of all sources."""
        result = await self.fetch_all()
        return result.events

    async def _run_source(
        self, source: EventSource, client: httpx.AsyncClient
    ) -> tuple[list[Event], FetchStats]:
        try:
            events, stats = await self.fetchers[source](client, self.settings)
        except Exception as e:
            # Fetchers report their own failures; this catches anything they let through
            logger.error("source_pipeline_crashed", source=source.value, error=str(e))
            events, stats = [], FetchStats(
                source=source, count=0, status="error", error_message=str(e) or type(e).__name__
            )

        self.health.record(stats)
        return events, stats
