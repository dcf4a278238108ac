"""
Configuration for the event feed.

Settings are layered:
- get_default_config(): built-in defaults
- a user supplied dict (e.g. loaded from a JSON file)
- EVENT_FEED_* environment variables
"""

import os
from typing import Any, Optional

import structlog
from pydantic import BaseModel, Field

from ..models import EventSource

log = structlog.get_logger(__name__)

ENV_PREFIX = "EVENT_FEED_"

# Environment variable -> (config key, type)
ENV_OVERRIDES = {
    "PROXY_BASE": ("proxy_base", str),
    "TIMEOUT": ("timeout_seconds", float),
    "HORIZON_DAYS": ("horizon_days", int),
    "TIMEZONE": ("timezone", str),
    "REGISTRATION_PATH": ("registration_path", str),
    "RETRY_ATTEMPTS": ("retry_attempts", int),
}


class Settings(BaseModel):
    """Validated runtime settings."""

    timezone: str = "Europe/Zurich"
    timeout_seconds: float = 30.0
    retry_attempts: int = 2
    # Route requests through the dev proxy, e.g. "http://localhost:5173"
    proxy_base: Optional[str] = None
    horizon_days: int = 14
    exclude_paid: bool = True
    always_food_sources: frozenset[EventSource] = frozenset(
        {EventSource.CLUB_A, EventSource.CLUB_B, EventSource.CLUB_C}
    )
    enabled_sources: list[EventSource] = Field(default_factory=lambda: list(EventSource))
    registration_path: Optional[str] = None


def get_default_config() -> dict[str, Any]:
    """Return default config as a plain dict."""
    return Settings().model_dump(mode="json")


def validate_config(config: dict[str, Any]) -> list[str]:
    """
    Validate config and return list of errors.

    Returns:
        List of error messages (empty if valid)
    """
    errors: list[str] = []

    timeout = config.get("timeout_seconds", 30.0)
    if not isinstance(timeout, (int, float)) or timeout <= 0:
        errors.append(f"Invalid timeout_seconds: {timeout} (must be > 0)")

    horizon = config.get("horizon_days", 14)
    if not isinstance(horizon, int) or horizon < 0:
        errors.append(f"Invalid horizon_days: {horizon} (must be >= 0)")

    attempts = config.get("retry_attempts", 2)
    if not isinstance(attempts, int) or attempts < 1:
        errors.append(f"Invalid retry_attempts: {attempts} (must be >= 1)")

    known = {source.value for source in EventSource}
    for key in ("enabled_sources", "always_food_sources"):
        for value in config.get(key, []) or []:
            name = value.value if isinstance(value, EventSource) else value
            if name not in known:
                errors.append(f"Unknown source in {key}: {name}")

    proxy_base = config.get("proxy_base")
    if proxy_base and not str(proxy_base).startswith(("http://", "https://")):
        errors.append(f"proxy_base must be an http(s) URL, got {proxy_base}")

    return errors


def _env_overrides(environ: dict[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for suffix, (key, cast) in ENV_OVERRIDES.items():
        raw = environ.get(ENV_PREFIX + suffix)
        if raw is None or raw == "":
            continue
        try:
            overrides[key] = cast(raw)
        except ValueError:
            log.warning("invalid_env_override", variable=ENV_PREFIX + suffix, value=raw)
    return overrides


def load_settings(
    config: Optional[dict[str, Any]] = None,
    environ: Optional[dict[str, str]] = None,
) -> Settings:
    """
    Build Settings from defaults, a config dict and the environment.

    Args:
        config: Optional user config overriding defaults
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Validated Settings

    Raises:
        ValueError: If the merged config is invalid
    """
    merged = get_default_config()
    if config:
        merged.update(config)
    merged.update(_env_overrides(dict(os.environ) if environ is None else environ))

    errors = validate_config(merged)
    if errors:
        log.error("invalid_config", errors=errors)
        raise ValueError("; ".join(errors))

    return Settings(**merged)
