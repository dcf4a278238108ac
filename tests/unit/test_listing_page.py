"""Tests for the listing page scraper."""

from datetime import datetime

import httpx
import pytest
from bs4 import BeautifulSoup

from servers.event_feed.config.settings import Settings
from servers.event_feed.models import EventSource, ListingExtra
from servers.event_feed.sources.listing_page import (
    extract_listing_events,
    fetch_listing_events,
    scan_card,
)


def _card(html: str):
    return BeautifulSoup(html, "html.parser").find("div")


class TestExtractListingEvents:
    """Tests for extract_listing_events."""

    def test_keeps_free_complete_cards(self, listing_html: str, zone):
        events = extract_listing_events(listing_html, zone=zone)
        assert [event.id for event in events] == ["102", "103"]

    def test_paid_card_kept_when_not_excluded(self, listing_html: str, zone):
        events = extract_listing_events(listing_html, exclude_paid=False, zone=zone)
        assert [event.id for event in events] == ["101", "102", "103", "105"]
        assert events[0].source_extra.price == 15.0
        assert events[3].source_extra.price == 12.0

    def test_card_fields(self, listing_html: str, zone):
        event = extract_listing_events(listing_html, zone=zone)[0]

        assert event.source == EventSource.CLUB_A
        assert event.title == "Board Game Evening"
        assert event.content.link_url == "https://vis.ethz.ch/en/events/102/"
        assert event.organizer.short_name == "VIS"
        assert event.classification.type_label == "Culture"
        assert isinstance(event.source_extra, ListingExtra)
        assert event.source_extra.price == 0.0
        window = event.time_windows[0]
        assert window.start == datetime(2025, 12, 4, 19, 0, tzinfo=zone)
        assert window.end == datetime(2025, 12, 4, 22, 0, tzinfo=zone)

    def test_card_found_from_nested_anchor(self, listing_html: str, zone):
        event = extract_listing_events(listing_html, zone=zone)[1]
        assert event.title == "Coding Workshop"
        assert event.time_windows[0].start == datetime(2025, 12, 9, 0, 0, tzinfo=zone)
        assert event.time_windows[0].end == datetime(2025, 12, 9, 17, 0, tzinfo=zone)

    def test_inverted_dates_dropped(self, zone):
        html = """
        <div><a href="/en/events/7/">
          <h3>Backwards Event</h3>
          <p>Event start time</p><p>5.12.2025 20:00</p>
          <p>Event end time</p><p>5.12.2025 18:00</p>
        </a></div>
        """
        assert extract_listing_events(html, zone=zone) == []

    def test_page_without_events(self):
        assert extract_listing_events("<html><body><p>No events</p></body></html>") == []


class TestScanCard:
    """Tests for the label scanner."""

    def test_labels_and_price(self, zone):
        card = _card(
            """
            <div>
              <span>Sport</span>
              <h3>Climbing Session</h3>
              <p>Start time:</p><p>3.12.2025 17:00</p>
              <p>End time:</p><p>3.12.2025 20:00</p>
              <p>Places</p><p>20</p>
              <p>Fr. 10.-</p>
            </div>
            """
        )
        candidate = scan_card(card, zone)

        assert candidate.title == "Climbing Session"
        assert candidate.category == "Sport"
        assert candidate.start == datetime(2025, 12, 3, 17, 0, tzinfo=zone)
        assert candidate.end == datetime(2025, 12, 3, 20, 0, tzinfo=zone)
        assert candidate.price == 10.0
        assert candidate.is_paid

    def test_price_under_label(self, zone):
        card = _card(
            """
            <div>
              <h3>Winter Ball</h3>
              <dl>
                <dt>Event start time</dt><dd>2.12.2025 18:00</dd>
                <dt>Event end time</dt><dd>2.12.2025 23:00</dd>
                <dt>Price</dt><dd>CHF 15.00</dd>
              </dl>
            </div>
            """
        )
        candidate = scan_card(card, zone)
        assert candidate.price == 15.0
        assert candidate.is_paid

    def test_labelled_paid_card_dropped(self, zone):
        html = """
        <div><a href="/en/events/201/">
          <h3>Winter Ball</h3>
          <p>Event start time</p><p>2.12.2025 18:00</p>
          <p>Event end time</p><p>2.12.2025 23:00</p>
          <p>Price</p><p>CHF 15.00</p>
        </a></div>
        """
        assert extract_listing_events(html, zone=zone) == []

    def test_free_word_in_title_is_not_a_price(self, zone):
        card = _card("<div><h3>Free Pizza Friday</h3><p>Free</p></div>")
        candidate = scan_card(card, zone)
        assert candidate.title == "Free Pizza Friday"
        assert candidate.price == 0.0

    def test_short_lines_not_titles(self, zone):
        card = _card("<div><p>New</p><h3>Hackathon</h3></div>")
        assert scan_card(card, zone).title == "Hackathon"


class TestFetchListingEvents:
    """Tests for the fetch pipeline."""

    @pytest.mark.asyncio
    async def test_success(self, listing_html: str, settings: Settings):
        def handler(request: httpx.Request) -> httpx.Response:
            assert str(request.url) == "https://vis.ethz.ch/en/events/"
            return httpx.Response(200, text=listing_html)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            events, stats = await fetch_listing_events(client, settings)

        assert [event.id for event in events] == ["102", "103"]
        assert stats.status == "success"

    @pytest.mark.asyncio
    async def test_not_found(self, settings: Settings):
        transport = httpx.MockTransport(lambda request: httpx.Response(404))
        async with httpx.AsyncClient(transport=transport) as client:
            events, stats = await fetch_listing_events(client, settings)

        assert events == []
        assert stats.error_message == "HTTP 404"
