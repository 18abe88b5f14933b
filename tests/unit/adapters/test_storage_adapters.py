"""Tests for the key-value store backends in `adapters/storage/`."""

import asyncio
import json
from pathlib import Path

import pytest

from adapters.storage import InMemoryKeyValueStore, JsonFileKeyValueStore
from journal.domain.models import GlucoseReading
from journal.services.gateway import PersistenceGateway
from journal.services.repository import GlucoseRepository


class TestInMemoryStore:
    async def test_get_missing_key(self) -> None:
        assert await InMemoryKeyValueStore().get("nothing") is None

    async def test_set_replaces_value(self) -> None:
        store = InMemoryKeyValueStore({"a": "1"})
        await store.set("a", "2")
        await store.set("b", "3")
        assert await store.get("a") == "2"
        assert store.keys() == ["a", "b"]

    async def test_initial_data_is_copied(self) -> None:
        initial = {"a": "1"}
        store = InMemoryKeyValueStore(initial)
        await store.set("a", "2")
        assert initial == {"a": "1"}


class TestJsonFileStore:
    @pytest.fixture
    def path(self, tmp_path: Path) -> Path:
        return tmp_path / "nested" / "journal.json"

    async def test_missing_file_reads_as_empty(self, path: Path) -> None:
        assert await JsonFileKeyValueStore(path).get("weight_readings") is None

    async def test_values_survive_a_new_instance(self, path: Path) -> None:
        await JsonFileKeyValueStore(path).set("weight_readings", "[]")
        await JsonFileKeyValueStore(path).set("activity_entries", '[{"x": 1}]')

        store = JsonFileKeyValueStore(path)

        assert await store.get("weight_readings") == "[]"
        assert await store.get("activity_entries") == '[{"x": 1}]'
        assert json.loads(path.read_text())["weight_readings"] == "[]"

    async def test_no_temp_files_left_behind(self, path: Path) -> None:
        store = JsonFileKeyValueStore(path)
        for i in range(3):
            await store.set(f"k{i}", str(i))
        assert [p.name for p in path.parent.iterdir()] == ["journal.json"]

    async def test_non_string_values_read_as_missing(self, path: Path) -> None:
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps({"weight_readings": [1, 2]}))
        assert await JsonFileKeyValueStore(path).get("weight_readings") is None

    async def test_non_object_file_is_an_error(self, path: Path) -> None:
        path.parent.mkdir(parents=True)
        path.write_text("[1, 2, 3]")
        with pytest.raises(ValueError):
            await JsonFileKeyValueStore(path).get("weight_readings")

    async def test_concurrent_writers_to_different_keys(self, path: Path) -> None:
        store = JsonFileKeyValueStore(path)
        await asyncio.gather(*(store.set(f"key{i}", str(i)) for i in range(10)))
        data = json.loads(path.read_text())
        assert data == {f"key{i}": str(i) for i in range(10)}

    async def test_backs_a_repository(self, path: Path) -> None:
        repository = GlucoseRepository(PersistenceGateway(JsonFileKeyValueStore(path)))
        saved = (await repository.save({"value": 97, "mealContext": "fasting"})).unwrap()

        reopened = GlucoseRepository(PersistenceGateway(JsonFileKeyValueStore(path)))

        assert await reopened.get_all() == [saved]
        assert isinstance((await reopened.get_all())[0], GlucoseReading)
