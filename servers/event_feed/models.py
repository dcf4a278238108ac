"""
Pydantic models for event data structures.

These models define the core data types used throughout the feed:
- EventSource: The fixed set of origins events are fetched from
- Event: Canonical event record every source adapter produces
- FetchStats / FetchResult: Outcome of one aggregation run
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union
import re

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator


DEFAULT_LINK_LABEL = "More information"


class EventSource(str, Enum):
    """Origins of events, in aggregation order."""

    PRIMARY = "primary"  # Central events API
    PARTNER_A = "partner_a"  # Partner JSON API
    CLUB_A = "club_a"  # Listing page, scraped in place
    CLUB_B = "club_b"  # Listing + detail pages, weekday dates
    CLUB_C = "club_c"  # Listing + detail pages, abbreviated month dates


class EventContent(BaseModel):
    """Displayable text of an event."""

    title: str
    description: str = ""
    link_url: Optional[str] = None
    link_label: str = DEFAULT_LINK_LABEL

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be empty")
        return value

    @field_validator("description", mode="before")
    @classmethod
    def _description_default(cls, value: Optional[str]) -> str:
        return (value or "").strip()

    @field_validator("link_label", mode="before")
    @classmethod
    def _link_label_default(cls, value: Optional[str]) -> str:
        return value or DEFAULT_LINK_LABEL


class Location(BaseModel):
    """Structured location; every part is optional."""

    area_description: Optional[str] = None
    building: Optional[str] = None
    room: Optional[str] = None
    addition: Optional[str] = None

    def is_empty(self) -> bool:
        return not any((self.area_description, self.building, self.room, self.addition))


class TimeWindow(BaseModel):
    """A (start, end) instant pair.

    ``occurrence`` windows are single sessions; an ``opening_hours`` window
    is one wide from/to range for ongoing entries such as exhibitions.
    """

    start: datetime
    end: datetime
    kind: Literal["occurrence", "opening_hours"] = "occurrence"

    @model_validator(mode="after")
    def _start_before_end(self) -> "TimeWindow":
        if self.start > self.end:
            raise ValueError("time window start must not be after its end")
        return self


class Classification(BaseModel):
    """Event type and audience as published by the source."""

    type_label: str
    target_group_label: Optional[str] = None
    registration_required: bool = False
    calendar_label: Optional[str] = None


class Organizer(BaseModel):
    """Organizing unit."""

    name: Optional[str] = None
    short_name: Optional[str] = None


class PrimaryExtra(BaseModel):
    source: Literal[EventSource.PRIMARY] = EventSource.PRIMARY
    language: Optional[str] = None
    image_url: Optional[str] = None


class PartnerExtra(BaseModel):
    source: Literal[EventSource.PARTNER_A] = EventSource.PARTNER_A
    speaker: Optional[str] = None
    is_virtual: bool = False


class ListingExtra(BaseModel):
    source: Literal[EventSource.CLUB_A] = EventSource.CLUB_A
    price: float = 0.0
    category: Optional[str] = None


class DetailExtra(BaseModel):
    source: Literal[EventSource.CLUB_B, EventSource.CLUB_C]
    price: float = 0.0
    member_price: float = 0.0
    date_text: Optional[str] = None


SourceExtra = Annotated[
    Union[PrimaryExtra, PartnerExtra, ListingExtra, DetailExtra],
    Field(discriminator="source"),
]


class Event(BaseModel):
    """Canonical event record shared by all sources."""

    model_config = ConfigDict(validate_assignment=True)

    # Identity (scoped per source)
    id: str
    source: EventSource = Field(frozen=True)

    content: EventContent
    location: Optional[Location] = None

    # Ordered occurrences, or one opening-hours range
    time_windows: list[TimeWindow] = Field(default_factory=list)

    classification: Optional[Classification] = None
    organizer: Optional[Organizer] = None

    # Source-specific details, consumed only by presentation
    source_extra: Optional[SourceExtra] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_not_blank(cls, value) -> str:
        value = str(value).strip() if value is not None else ""
        if not value:
            raise ValueError("id must not be empty")
        return value

    @model_validator(mode="after")
    def _extra_matches_source(self) -> "Event":
        if self.source_extra is not None and self.source_extra.source != self.source:
            raise ValueError(
                f"source_extra for {self.source_extra.source.value} attached to {self.source.value} event"
            )
        return self

    @computed_field
    @property
    def key(self) -> str:
        """Identity across sources."""
        return f"{self.source.value}:{self.id}"

    @computed_field
    @property
    def slug(self) -> str:
        """URL-safe identifier for building detail links."""
        source_part = self.source.value.replace("_", "-")
        id_part = re.sub(r"[^a-z0-9]+", "-", self.id.lower()).strip("-")
        return f"{source_part}-{id_part or 'event'}"

    @property
    def title(self) -> str:
        return self.content.title

    def earliest_start(self) -> Optional[datetime]:
        if not self.time_windows:
            return None
        return min(window.start for window in self.time_windows)


class FetchStats(BaseModel):
    """Statistics from a fetch operation."""

    source: EventSource
    count: int
    status: str  # success, error, skipped
    duration_ms: Optional[int] = None
    error_message: Optional[str] = None


class FetchResult(BaseModel):
    """Result of fetching events from all sources."""

    events: list[Event]
    stats: list[FetchStats]
    total: int
    failed_sources: list[EventSource] = Field(default_factory=list)
