import asyncio
import json

import pytest

from error_handling import StorageError
from storage.persistent_store import SESSIONS_KEY, SLOT_LIST_KEY, InMemoryStore, JsonFileStore


class TestInMemoryStore:
    async def test_set_merges_keys(self):
        store = InMemoryStore({SLOT_LIST_KEY: []})
        await store.set({SESSIONS_KEY: [{"name": "Work"}]})

        assert await store.get_all() == {SLOT_LIST_KEY: [], SESSIONS_KEY: [{"name": "Work"}]}
        assert store.write_count == 1

    async def test_reads_are_copies(self):
        store = InMemoryStore()
        await store.set({SLOT_LIST_KEY: [{"url": "https://a.test"}]})

        snapshot = await store.get(SLOT_LIST_KEY)
        snapshot.append({"url": "https://b.test"})

        assert await store.get(SLOT_LIST_KEY) == [{"url": "https://a.test"}]

    async def test_get_default_and_get_many(self):
        store = InMemoryStore({"a": 1})
        assert await store.get("missing", "fallback") == "fallback"
        assert await store.get_many(["a", "missing"]) == {"a": 1}


class TestJsonFileStore:
    async def test_missing_file_reads_empty(self, tmp_path):
        store = JsonFileStore(tmp_path / "state.json")
        assert await store.get_all() == {}

    async def test_writes_survive_a_new_instance(self, tmp_path):
        path = tmp_path / "nested" / "state.json"
        await JsonFileStore(path).set({SLOT_LIST_KEY: [{"url": "https://a.test", "slot": 1}]})
        await JsonFileStore(path).set({SESSIONS_KEY: []})

        reopened = JsonFileStore(path)
        assert await reopened.get(SLOT_LIST_KEY) == [{"url": "https://a.test", "slot": 1}]
        assert await reopened.get(SESSIONS_KEY) == []
        assert json.loads(path.read_text(encoding="utf-8"))[SESSIONS_KEY] == []
        assert [p.name for p in path.parent.iterdir()] == ["state.json"]

    async def test_corrupt_file_raises_storage_error(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(StorageError):
            await JsonFileStore(path).get_all()

    async def test_non_object_file_raises_storage_error(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("[1, 2]", encoding="utf-8")

        with pytest.raises(StorageError, match="JSON object"):
            await JsonFileStore(path).get(SLOT_LIST_KEY)

    async def test_unserializable_write_keeps_previous_state(self, tmp_path):
        path = tmp_path / "state.json"
        store = JsonFileStore(path)
        await store.set({SLOT_LIST_KEY: [{"url": "https://a.test"}]})

        with pytest.raises(StorageError, match="Could not write"):
            await store.set({SESSIONS_KEY: [object()]})

        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]
        assert await store.get_all() == {SLOT_LIST_KEY: [{"url": "https://a.test"}]}

    async def test_concurrent_writes_all_land(self, tmp_path):
        store = JsonFileStore(tmp_path / "state.json")

        await asyncio.gather(*(store.set({f"key{i}": i}) for i in range(5)))

        assert await store.get_all() == {f"key{i}": i for i in range(5)}
