"""
Storage schema migrations.

State written by older builds may be missing fields, carry junk records, or
exceed the current caps. Migrations bring a raw snapshot up to
STORAGE_SCHEMA_VERSION by normalising each record; a snapshot from a newer
build is left alone.
"""
from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from organizer_config import MAX_SESSIONS, MAX_SLOTS
from utils.event_logger import EventType, get_event_logger

from .persistent_store import (
    SCHEMA_VERSION_KEY,
    SESSIONS_KEY,
    SLOT_LIST_KEY,
    PersistentStore,
)

STORAGE_SCHEMA_VERSION = 1


@dataclass
class StorageMigrationResult:
    from_version: int
    to_version: int
    changed: bool
    migrated_storage: Dict[str, Any] = field(default_factory=dict)


def _to_non_negative_number(value: Any, fallback: float = 0) -> float:
    if isinstance(value, bool):
        return fallback
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(number):
        return fallback
    number = max(0.0, number)
    return int(number) if number.is_integer() else number


def _to_positive_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    rounded = math.floor(number)
    return rounded if rounded > 0 else None


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _read_schema_version(storage: Dict[str, Any]) -> int:
    return _to_positive_int(storage.get(SCHEMA_VERSION_KEY)) or 0


def normalize_slot_list(raw_value: Any, max_slots: int = MAX_SLOTS) -> Optional[List[Dict[str, Any]]]:
    """Drop url-less records, coerce numbers, renumber densely, cap at max_slots"""
    if not isinstance(raw_value, list):
        return None

    normalized: List[Dict[str, Any]] = []
    for raw_entry in raw_value:
        if not isinstance(raw_entry, dict):
            continue
        url = _as_str(raw_entry.get("url"))
        if not url:
            continue
        normalized.append({
            "tab_handle": _to_positive_int(raw_entry.get("tab_handle")),
            "url": url,
            "title": _as_str(raw_entry.get("title")),
            "scroll_x": _to_non_negative_number(raw_entry.get("scroll_x")),
            "scroll_y": _to_non_negative_number(raw_entry.get("scroll_y")),
            "slot": len(normalized) + 1,
            "closed": raw_entry.get("closed") is True,
        })
        if len(normalized) >= max_slots:
            break
    return normalized


def normalize_sessions(raw_value: Any, max_sessions: int = MAX_SESSIONS) -> Optional[List[Dict[str, Any]]]:
    """Drop nameless, empty and duplicate-name sessions, cap at max_sessions"""
    if not isinstance(raw_value, list):
        return None

    normalized: List[Dict[str, Any]] = []
    seen_names = set()
    for raw_session in raw_value:
        if not isinstance(raw_session, dict):
            continue
        name = _as_str(raw_session.get("name")).strip()
        if not name or name.lower() in seen_names:
            continue

        raw_entries = raw_session.get("entries")
        entries = []
        for raw_entry in raw_entries if isinstance(raw_entries, list) else []:
            if not isinstance(raw_entry, dict):
                continue
            url = _as_str(raw_entry.get("url"))
            if not url:
                continue
            entries.append({
                "url": url,
                "title": _as_str(raw_entry.get("title")),
                "scroll_x": _to_non_negative_number(raw_entry.get("scroll_x")),
                "scroll_y": _to_non_negative_number(raw_entry.get("scroll_y")),
            })
        if not entries:
            continue

        normalized.append({
            "name": name,
            "entries": entries,
            "saved_at": _to_non_negative_number(raw_session.get("saved_at")),
        })
        seen_names.add(name.lower())
        if len(normalized) >= max_sessions:
            break
    return normalized


def _normalize_key(storage: Dict[str, Any], key: str, normalizer: Callable[[Any], Optional[Any]]) -> bool:
    if key not in storage:
        return False
    normalized = normalizer(storage[key])
    if normalized is None:
        return False
    if json.dumps(storage[key], sort_keys=True) == json.dumps(normalized, sort_keys=True):
        return False
    storage[key] = normalized
    return True


def _migrate_v0_to_v1(storage: Dict[str, Any]) -> bool:
    changed = _normalize_key(storage, SLOT_LIST_KEY, normalize_slot_list)
    changed = _normalize_key(storage, SESSIONS_KEY, normalize_sessions) or changed
    return changed


_MIGRATIONS = {
    0: _migrate_v0_to_v1,
}


def migrate_storage_snapshot(snapshot: Dict[str, Any]) -> StorageMigrationResult:
    """
    Bring a raw storage snapshot up to the current schema version.

    Pure function: the input is not modified.
    """
    migrated = dict(snapshot)
    from_version = _read_schema_version(snapshot)

    # Never downgrade data written by a newer build
    if from_version > STORAGE_SCHEMA_VERSION:
        return StorageMigrationResult(from_version, from_version, False, migrated)

    changed = False
    version = from_version
    while version < STORAGE_SCHEMA_VERSION:
        step = _MIGRATIONS.get(version)
        if step is None:
            break
        changed = step(migrated) or changed
        version += 1

    if migrated.get(SCHEMA_VERSION_KEY) != version:
        migrated[SCHEMA_VERSION_KEY] = version
        changed = True

    return StorageMigrationResult(from_version, version, changed, migrated)


async def migrate_storage_if_needed(store: PersistentStore) -> StorageMigrationResult:
    """Run migrations against a store and write back only when something changed"""
    snapshot = await store.get_all()
    result = migrate_storage_snapshot(snapshot)
    if result.changed:
        await store.set(result.migrated_storage)
        get_event_logger().emit(
            EventType.STORAGE_MIGRATED,
            f"Storage migration applied ({result.from_version} -> {result.to_version})",
            "INFO",
            from_version=result.from_version,
            to_version=result.to_version,
        )
    return result
