"""
Persistent set of events the user registered for.

The store reads its id list from a key-value backend on first access and
keeps it in memory for the rest of the session. A missing or corrupted
value is treated as "nothing registered"; it never raises.
"""

import json
from pathlib import Path
from typing import Any, Optional, Protocol, Union

import structlog

log = structlog.get_logger(__name__)

STORAGE_KEY = "registeredEvents"


class KeyValueStorage(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStorage:
    """In-memory backend for tests and throwaway sessions."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self.values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value


class JsonFileStorage:
    """Key-value backend stored as one JSON object file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _read_all(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            log.warning("storage_unreadable", path=str(self.path), error=str(e))
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str) -> Optional[str]:
        value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")


def _decode_ids(raw: Optional[str]) -> list[str]:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        log.warning("registration_state_corrupt", reason="invalid_json")
        return []
    if not isinstance(value, list):
        log.warning("registration_state_corrupt", reason="not_a_list")
        return []

    ids: list[str] = []
    for item in value:
        if isinstance(item, str) and item and item not in ids:
            ids.append(item)
    return ids


class RegistrationStore:
    """is_registered / toggle / list_all over a persisted id list."""

    def __init__(self, storage: Optional[KeyValueStorage] = None, key: str = STORAGE_KEY):
        self.storage = storage if storage is not None else MemoryStorage()
        self.key = key
        self._ids: Optional[list[str]] = None

    def _loaded(self) -> list[str]:
        if self._ids is None:
            self._ids = _decode_ids(self.storage.get(self.key))
        return self._ids

    def is_registered(self, event_id: str) -> bool:
        return event_id in self._loaded()

    def toggle(self, event_id: str) -> bool:
        """Flip registration for an event and return the new state."""
        ids = self._loaded()
        if event_id in ids:
            ids.remove(event_id)
            registered = False
        else:
            ids.append(event_id)
            registered = True

        self.storage.set(self.key, json.dumps(ids))
        log.debug("registration_toggled", event_id=event_id, registered=registered)
        return registered

    def list_all(self) -> list[str]:
        return list(self._loaded())
