from storage.migrations import (
    STORAGE_SCHEMA_VERSION,
    migrate_storage_if_needed,
    migrate_storage_snapshot,
    normalize_sessions,
    normalize_slot_list,
)
from storage.persistent_store import SCHEMA_VERSION_KEY, SESSIONS_KEY, SLOT_LIST_KEY, InMemoryStore


def test_slot_list_is_cleaned_and_renumbered():
    raw = [
        {"tab_handle": 3, "url": "https://a.test", "title": "A", "scroll_y": "120", "slot": 9},
        {"tab_handle": 4, "url": ""},
        "junk",
        {"tab_handle": -1, "url": "https://b.test", "scroll_x": -5, "closed": "yes"},
    ]

    assert normalize_slot_list(raw) == [
        {"tab_handle": 3, "url": "https://a.test", "title": "A", "scroll_x": 0, "scroll_y": 120,
         "slot": 1, "closed": False},
        {"tab_handle": None, "url": "https://b.test", "title": "", "scroll_x": 0, "scroll_y": 0,
         "slot": 2, "closed": False},
    ]


def test_slot_list_is_capped():
    raw = [{"url": f"https://{i}.test"} for i in range(6)]
    assert len(normalize_slot_list(raw)) == 4
    assert normalize_slot_list("not a list") is None


def test_sessions_drop_empty_and_duplicate_names():
    raw = [
        {"name": " Work ", "entries": [{"url": "https://a.test"}], "saved_at": 10},
        {"name": "work", "entries": [{"url": "https://b.test"}]},
        {"name": "Empty", "entries": [{"url": ""}]},
        {"name": "", "entries": [{"url": "https://c.test"}]},
    ]

    normalized = normalize_sessions(raw)

    assert [s["name"] for s in normalized] == ["Work"]
    assert normalized[0]["entries"] == [{"url": "https://a.test", "title": "", "scroll_x": 0, "scroll_y": 0}]


def test_v0_snapshot_is_upgraded():
    snapshot = {SLOT_LIST_KEY: [{"url": "https://a.test", "slot": 4}]}

    result = migrate_storage_snapshot(snapshot)

    assert result.from_version == 0
    assert result.to_version == STORAGE_SCHEMA_VERSION
    assert result.changed
    assert result.migrated_storage[SCHEMA_VERSION_KEY] == STORAGE_SCHEMA_VERSION
    assert result.migrated_storage[SLOT_LIST_KEY][0]["slot"] == 1
    assert snapshot == {SLOT_LIST_KEY: [{"url": "https://a.test", "slot": 4}]}


def test_newer_snapshot_is_left_alone():
    snapshot = {SCHEMA_VERSION_KEY: STORAGE_SCHEMA_VERSION + 1, SLOT_LIST_KEY: "future format"}

    result = migrate_storage_snapshot(snapshot)

    assert not result.changed
    assert result.migrated_storage == snapshot


async def test_store_is_written_only_when_needed():
    store = InMemoryStore({SESSIONS_KEY: [{"name": "Work", "entries": [{"url": "https://a.test"}]}]})

    first = await migrate_storage_if_needed(store)
    writes = store.write_count
    second = await migrate_storage_if_needed(store)

    assert first.changed and writes == 1
    assert not second.changed
    assert store.write_count == writes
    assert (await store.get(SESSIONS_KEY))[0]["saved_at"] == 0
