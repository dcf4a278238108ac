"""Tests for the registration store."""

import json
from pathlib import Path

import pytest

from servers.event_feed.registration import (
    STORAGE_KEY,
    JsonFileStorage,
    MemoryStorage,
    RegistrationStore,
)


class CountingStorage(MemoryStorage):
    """MemoryStorage that counts reads."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.reads = 0

    def get(self, key):
        self.reads += 1
        return super().get(key)


class TestRegistrationStore:
    """Tests for is_registered / toggle / list_all."""

    def test_toggle_twice_restores_state(self):
        store = RegistrationStore()
        assert store.toggle("primary:1001") is True
        assert store.is_registered("primary:1001")
        assert store.toggle("primary:1001") is False
        assert not store.is_registered("primary:1001")
        assert store.list_all() == []

    def test_toggle_persists_json_array(self):
        storage = MemoryStorage()
        store = RegistrationStore(storage)
        store.toggle("primary:1")
        store.toggle("club_a:42")
        assert json.loads(storage.values[STORAGE_KEY]) == ["primary:1", "club_a:42"]

    def test_state_survives_new_store(self):
        storage = MemoryStorage()
        RegistrationStore(storage).toggle("club_b:fondue")
        assert RegistrationStore(storage).is_registered("club_b:fondue")

    def test_loads_once(self):
        storage = CountingStorage({STORAGE_KEY: '["a"]'})
        store = RegistrationStore(storage)
        assert storage.reads == 0

        store.is_registered("a")
        store.toggle("b")
        store.list_all()
        assert storage.reads == 1

    def test_list_all_is_a_copy(self):
        store = RegistrationStore(MemoryStorage({STORAGE_KEY: '["a"]'}))
        store.list_all().append("b")
        assert store.list_all() == ["a"]

    @pytest.mark.parametrize(
        "raw",
        ["not json", '{"a": 1}', '"a"', "null", "", "[1, 2]"],
    )
    def test_corrupt_state_is_empty(self, raw):
        store = RegistrationStore(MemoryStorage({STORAGE_KEY: raw}))
        assert store.list_all() == []

    def test_invalid_members_dropped(self):
        store = RegistrationStore(MemoryStorage({STORAGE_KEY: '["a", 3, "a", "", "b"]'}))
        assert store.list_all() == ["a", "b"]

    def test_custom_key(self):
        storage = MemoryStorage()
        RegistrationStore(storage, key="other").toggle("x")
        assert STORAGE_KEY not in storage.values
        assert storage.values["other"] == '["x"]'


class TestJsonFileStorage:
    """Tests for the file backend."""

    def test_round_trip(self, tmp_path: Path):
        path = tmp_path / "state" / "registrations.json"
        store = RegistrationStore(JsonFileStorage(path))
        store.toggle("primary:1001")

        assert path.exists()
        assert RegistrationStore(JsonFileStorage(path)).list_all() == ["primary:1001"]

    def test_missing_file(self, tmp_path: Path):
        storage = JsonFileStorage(tmp_path / "missing.json")
        assert storage.get(STORAGE_KEY) is None

    def test_unreadable_file_is_empty(self, tmp_path: Path):
        path = tmp_path / "broken.json"
        path.write_text("{ not json", encoding="utf-8")
        assert RegistrationStore(JsonFileStorage(path)).list_all() == []

    def test_keeps_other_keys(self, tmp_path: Path):
        path = tmp_path / "state.json"
        path.write_text(json.dumps({"theme": "dark"}), encoding="utf-8")

        JsonFileStorage(path).set(STORAGE_KEY, "[]")

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data == {"theme": "dark", STORAGE_KEY: "[]"}
