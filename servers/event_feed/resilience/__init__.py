"""Resilience patterns for event source fetching."""

from .health import HealthMonitor
from .queue import DetailFetchQueue
from .retry import call_with_retry, is_transient, retry_transient

__all__ = [
    "call_with_retry",
    "is_transient",
    "retry_transient",
    "DetailFetchQueue",
    "HealthMonitor",
]
