"""
Date/time parsers for the source formats.

Every parser returns None for input it cannot read, so adapters can drop a
single record instead of aborting a batch. Wall-clock values are localized
to the feed timezone (Europe/Zurich unless configured otherwise).
"""

from datetime import datetime, timedelta, tzinfo
from typing import Optional, Union
import re

from dateutil import parser as date_parser
from dateutil import tz

DEFAULT_TIMEZONE = "Europe/Zurich"
DEFAULT_DURATION = timedelta(hours=2)

EPOCH = datetime(1970, 1, 1, tzinfo=tz.UTC)

MONTHS = [
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
]

WEEKDAYS = [
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
]

DOTTED_PATTERN = re.compile(
    r"^\s*(\d{1,2})\.(\d{1,2})\.(\d{4})(?:\s+(\d{1,2})(?::(\d{2}))?)?\s*$"
)

_VERBOSE_DAY = r"([A-Za-z]+),?\s+(\d{1,2})\.\s*([A-Za-z]+)\s+(\d{4})"
VERBOSE_SAME_DAY_PATTERN = re.compile(
    rf"^\s*{_VERBOSE_DAY}\s+(\d{{1,2}}):(\d{{2}})\s*[-–]\s*(\d{{1,2}}):(\d{{2}})\s*$"
)
VERBOSE_CROSS_DAY_PATTERN = re.compile(
    rf"^\s*{_VERBOSE_DAY}\s+(\d{{1,2}}):(\d{{2}})\s*[-–]\s*{_VERBOSE_DAY}\s+(\d{{1,2}}):(\d{{2}})\s*$"
)

ABBREVIATED_PATTERN = re.compile(
    r"^\s*([A-Za-z]+)\.?\s+(\d{1,2}),\s*(\d{4}),\s*"
    r"(?:(\d{1,2})(?::(\d{2}))?\s*(a\.m\.|p\.m\.)|(noon|midnight))\s*$",
    re.IGNORECASE,
)

DURATION_PATTERN = re.compile(r"^\s*(\d+):(\d{2}):(\d{2})\s*$")


def get_timezone(name: Optional[str] = None) -> tzinfo:
    """Resolve a timezone name, falling back to UTC for unknown names."""
    zone = tz.gettz(name or DEFAULT_TIMEZONE)
    return zone if zone is not None else tz.UTC


def _localize(value: datetime, zone: Optional[tzinfo]) -> datetime:
    return value.replace(tzinfo=zone or get_timezone())


def _month_number(token: str) -> Optional[int]:
    """Match full names and abbreviations such as 'Dec' or 'Sept'."""
    token = token.lower().rstrip(".")
    if len(token) < 3:
        return None
    for index, name in enumerate(MONTHS):
        if name.startswith(token):
            return index + 1
    return None


def _is_weekday(token: str) -> bool:
    token = token.lower().rstrip(",.")
    return len(token) >= 3 and any(day.startswith(token) for day in WEEKDAYS)


def parse_epoch_millis(
    value: Union[str, int, None],
    zone: Optional[tzinfo] = None,
) -> Optional[datetime]:
    """
    Parse milliseconds since the Unix epoch.

    Args:
        value: Integer or string of digits
        zone: Timezone of the returned instant (UTC if omitted)

    Returns:
        Aware datetime, or None if the value is not an integer or out of range
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        text = value.strip()
        if not re.fullmatch(r"-?\d+", text):
            return None
        millis = int(text)
    elif isinstance(value, int):
        millis = value
    else:
        return None

    try:
        instant = EPOCH + timedelta(milliseconds=millis)
        return instant.astimezone(zone) if zone else instant
    except (OverflowError, ValueError):
        return None


def parse_dotted_date(text: Optional[str], zone: Optional[tzinfo] = None) -> Optional[datetime]:
    """Parse ``D.M.YYYY[ H[:MM]]``; a missing time means midnight."""
    if not text:
        return None
    match = DOTTED_PATTERN.match(text)
    if not match:
        return None

    day, month, year, hour, minute = match.groups()
    try:
        value = datetime(int(year), int(month), int(day), int(hour or 0), int(minute or 0))
    except ValueError:
        return None
    return _localize(value, zone)


def _verbose_day(
    weekday: str, day: str, month: str, year: str, hour: str, minute: str
) -> Optional[datetime]:
    if not _is_weekday(weekday):
        return None
    month_number = _month_number(month)
    if month_number is None:
        return None
    try:
        return datetime(int(year), month_number, int(day), int(hour), int(minute))
    except ValueError:
        return None


def parse_verbose_weekday_range(
    text: Optional[str], zone: Optional[tzinfo] = None
) -> Optional[tuple[datetime, datetime]]:
    """
    Parse ``Tuesday 2. December 2025 18:00 - 22:00`` and the cross-day form
    ``Friday 5. December 2025 20:00 - Saturday 6. December 2025 02:00``.

    Returns:
        (start, end) or None if the shape or weekday/month tokens don't resolve
    """
    if not text:
        return None

    cross = VERBOSE_CROSS_DAY_PATTERN.match(text)
    if cross:
        groups = cross.groups()
        start = _verbose_day(*groups[:6])
        end = _verbose_day(*groups[6:])
        if start is None or end is None or end < start:
            return None
        return _localize(start, zone), _localize(end, zone)

    same = VERBOSE_SAME_DAY_PATTERN.match(text)
    if not same:
        return None
    groups = same.groups()
    start = _verbose_day(*groups[:6])
    if start is None:
        return None
    try:
        end = start.replace(hour=int(groups[6]), minute=int(groups[7]))
    except ValueError:
        return None
    if end < start:
        # Ends after midnight
        end += timedelta(days=1)
    return _localize(start, zone), _localize(end, zone)


def parse_duration(text: Optional[str]) -> Optional[timedelta]:
    """Parse ``H:MM:SS``."""
    if not text:
        return None
    match = DURATION_PATTERN.match(text)
    if not match:
        return None
    hours, minutes, seconds = (int(part) for part in match.groups())
    if minutes >= 60 or seconds >= 60:
        return None
    return timedelta(hours=hours, minutes=minutes, seconds=seconds)


def parse_abbreviated_month(
    text: Optional[str],
    duration: Optional[str] = None,
    zone: Optional[tzinfo] = None,
) -> Optional[tuple[datetime, datetime]]:
    """
    Parse ``Dec. 2, 2025, 6:30 p.m.`` (also ``noon``/``midnight``) plus an
    ``H:MM:SS`` duration for the end; the duration defaults to two hours.
    """
    if not text:
        return None
    match = ABBREVIATED_PATTERN.match(text)
    if not match:
        return None

    month_token, day, year, hour, minute, meridiem, special = match.groups()
    month = _month_number(month_token)
    if month is None:
        return None

    if special:
        hour_24, minute_value = (12, 0) if special.lower() == "noon" else (0, 0)
    else:
        hour_value = int(hour)
        if not 1 <= hour_value <= 12:
            return None
        hour_24 = hour_value % 12
        if meridiem.lower() == "p.m.":
            hour_24 += 12
        minute_value = int(minute or 0)

    try:
        start = datetime(int(year), month, int(day), hour_24, minute_value)
    except ValueError:
        return None

    end = start + (parse_duration(duration) or DEFAULT_DURATION)
    return _localize(start, zone), _localize(end, zone)


def parse_iso_datetime(text: Optional[str], zone: Optional[tzinfo] = None) -> Optional[datetime]:
    """Parse ISO-8601; naive values are taken as local wall time."""
    if not text or not isinstance(text, str):
        return None
    try:
        value = date_parser.isoparse(text.strip())
    except (ValueError, OverflowError):
        return None
    if value.tzinfo is None:
        return _localize(value, zone)
    return value
