"""Shared pytest fixtures for event feed tests."""

import json
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from dateutil import tz

from servers.event_feed.config.settings import Settings
from servers.event_feed.models import Classification, Event, EventSource, Organizer
from tests.factories import make_event

ZURICH = tz.gettz("Europe/Zurich")


@pytest.fixture
def zone():
    """Feed timezone."""
    return ZURICH


@pytest.fixture
def now() -> datetime:
    """Fixed reference instant."""
    return datetime(2025, 12, 1, 12, 0, tzinfo=ZURICH)


@pytest.fixture
def settings() -> Settings:
    """Settings without retries so failing fakes fail fast."""
    return Settings(retry_attempts=1, timeout_seconds=5.0)


@pytest.fixture
def sample_events(now: datetime) -> list[Event]:
    """A mix of sources, dates and food cues."""
    return [
        make_event(
            "ev-1",
            title="Apéro Reception",
            description="Join us after the lecture",
            starts=[now + timedelta(days=3)],
            organizer=Organizer(name="Department of Computer Science", short_name="D-INFK"),
        ),
        make_event(
            "ev-2",
            title="Board Meeting",
            starts=[now + timedelta(days=2)],
            classification=Classification(type_label="Meeting", calendar_label="Staff"),
        ),
        make_event(
            "42",
            source=EventSource.CLUB_A,
            title="Game Night",
            starts=[now + timedelta(days=1)],
            organizer=Organizer(name="Verein der Informatik Studierenden", short_name="VIS"),
        ),
        make_event("ev-3", title="Conference Dinner", starts=[now + timedelta(days=20)]),
        make_event("ev-4", title="Coffee and Cake"),
    ]


@pytest.fixture
def fixtures_path() -> Path:
    """Path to test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def primary_payload(fixtures_path: Path) -> dict:
    return json.loads((fixtures_path / "primary_entries.json").read_text(encoding="utf-8"))


@pytest.fixture
def partner_payload(fixtures_path: Path) -> dict:
    return json.loads((fixtures_path / "partner_events.json").read_text(encoding="utf-8"))


@pytest.fixture
def listing_html(fixtures_path: Path) -> str:
    return (fixtures_path / "listing_page.html").read_text(encoding="utf-8")
