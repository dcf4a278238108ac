"""Settings loading and validation."""

from .settings import Settings, get_default_config, load_settings, validate_config

__all__ = ["Settings", "get_default_config", "load_settings", "validate_config"]
