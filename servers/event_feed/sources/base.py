"""Shared helpers for source adapters."""

from datetime import datetime
from typing import Any, Awaitable, Optional
import re

import httpx
import structlog

from ..models import Event, EventSource, FetchStats

logger = structlog.get_logger()

PRICE_PATTERN = re.compile(
    r"(?:CHF|SFr\.?|Fr\.|€|EUR)\s*(\d+(?:[.,]\d{1,2})?)"
    r"|(\d+(?:[.,]\d{1,2})?)\s*(?:CHF|Fr\.)",
    re.IGNORECASE,
)
FREE_WORDS = ("free", "gratis", "kostenlos", "gratuit")


async def run_source(
    source: EventSource,
    pipeline: Awaitable[list[Event]],
) -> tuple[list[Event], FetchStats]:
    """
    Await a source pipeline and describe the outcome.

    Transport and parse errors become an error FetchStats with no events,
    so one broken source never affects the others.
    """
    start_time = datetime.now()

    try:
        events = await pipeline
    except httpx.HTTPStatusError as e:
        return [], _error(source, f"HTTP {e.response.status_code}")
    except httpx.RequestError as e:
        return [], _error(source, f"Request failed: {type(e).__name__}: {e}")
    except Exception as e:
        return [], _error(source, str(e) or type(e).__name__)

    duration_ms = int((datetime.now() - start_time).total_seconds() * 1000)
    logger.info("source_fetched", source=source.value, count=len(events), duration_ms=duration_ms)

    return events, FetchStats(
        source=source,
        count=len(events),
        status="success",
        duration_ms=duration_ms,
    )


def _error(source: EventSource, message: str) -> FetchStats:
    logger.warning("source_failed", source=source.value, error=message)
    return FetchStats(
        source=source,
        count=0,
        status="error",
        error_message=message,
    )


def clean_text(value: Any) -> Optional[str]:
    """Collapse whitespace; empty and non-string values become None."""
    if value is None:
        return None
    text = re.sub(r"\s+", " ", str(value)).strip()
    return text or None


def text_lines(text: str) -> list[str]:
    """Non-empty, whitespace-normalized lines."""
    lines = []
    for line in text.splitlines():
        cleaned = clean_text(line)
        if cleaned:
            lines.append(cleaned)
    return lines


def to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "y", "on")
    return bool(value)


def parse_price(text: Optional[str]) -> Optional[float]:
    """
    Extract a price amount from text such as ``CHF 15.00`` or ``10.- Fr.``.

    Returns:
        The amount, 0.0 for free wording, or None if no price is present
    """
    if not text:
        return None
    match = PRICE_PATTERN.search(text)
    if match:
        amount = (match.group(1) or match.group(2)).replace(",", ".")
        try:
            return float(amount)
        except ValueError:
            return None
    lowered = text.lower()
    if any(word in lowered for word in FREE_WORDS):
        return 0.0
    bare = re.fullmatch(r"\s*(\d+(?:[.,]\d{1,2})?)\s*(?:\.-)?\s*", text)
    if bare:
        return float(bare.group(1).replace(",", "."))
    return None


def drop(source: EventSource, reason: str, **context: Any) -> None:
    """Log a dropped record."""
    logger.debug("record_dropped", source=source.value, reason=reason, **context)
