"""Per-source health of the latest aggregation runs."""

from datetime import datetime
from typing import Any, Optional

import structlog
from pydantic import BaseModel, Field

from ..models import EventSource, FetchStats

logger = structlog.get_logger()


class SourceHealth(BaseModel):
    """Outcome of the most recent fetch of one source."""

    healthy: bool
    last_check: datetime = Field(default_factory=datetime.now)
    event_count: int = 0
    consecutive_failures: int = 0
    last_error: Optional[str] = None
    duration_ms: Optional[int] = None


class HealthMonitor:
    """Track which sources contributed to the feed and which failed.

    The aggregator records every FetchStats here; the presentation layer reads
    get_status() to explain a partially empty feed.
    """

    def __init__(self):
        self.sources: dict[EventSource, SourceHealth] = {}

    def record_success(
        self, source: EventSource, event_count: int, duration_ms: Optional[int] = None
    ) -> None:
        self.sources[source] = SourceHealth(
            healthy=True, event_count=event_count, duration_ms=duration_ms
        )
        logger.debug("source_healthy", source=source.value, event_count=event_count)

    def record_failure(self, source: EventSource, error: str) -> None:
        previous = self.sources.get(source)
        consecutive = (previous.consecutive_failures if previous else 0) + 1

        self.sources[source] = SourceHealth(
            healthy=False, consecutive_failures=consecutive, last_error=error
        )
        logger.warning(
            "source_unhealthy",
            source=source.value,
            consecutive_failures=consecutive,
            error=error,
        )

    def record(self, stats: FetchStats) -> None:
        """Record the outcome of one source pipeline. Skipped sources are ignored."""
        if stats.status == "error":
            self.record_failure(stats.source, stats.error_message or "unknown error")
        elif stats.status == "success":
            self.record_success(stats.source, stats.count, stats.duration_ms)

    def is_healthy(self, source: EventSource) -> bool:
        """Sources never fetched count as healthy."""
        health = self.sources.get(source)
        return health is None or health.healthy

    def get_source_status(self, source: EventSource) -> Optional[dict[str, Any]]:
        health = self.sources.get(source)
        return health.model_dump(mode="json") if health else None

    def get_status(self) -> dict[str, Any]:
        """Summary counts plus the status of every fetched source.

        Returns:
            Dict with timestamp, summary and per-source status keyed by source value
        """
        healthy = sum(1 for health in self.sources.values() if health.healthy)

        return {
            "timestamp": datetime.now().isoformat(),
            "summary": {
                "healthy": healthy,
                "unhealthy": len(self.sources) - healthy,
                "total": len(self.sources),
            },
            "sources": {
                source.value: health.model_dump(mode="json")
                for source, health in self.sources.items()
            },
        }

    def get_unhealthy_sources(self) -> list[EventSource]:
        return [source for source, health in self.sources.items() if not health.healthy]

    def reset(self, source: Optional[EventSource] = None) -> None:
        if source:
            self.sources.pop(source, None)
        else:
            self.sources.clear()
