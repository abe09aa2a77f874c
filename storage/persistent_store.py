"""
Durable key/value storage for organizer state.

Each top-level key holds one independent record (the slot list, the session
list, the schema version). Stores are pure storage; they hold no logic about
what the records mean.
"""
from __future__ import annotations

import asyncio
import copy
import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

from error_handling import StorageError

SLOT_LIST_KEY = "slot_list"
SESSIONS_KEY = "sessions"
SCHEMA_VERSION_KEY = "schema_version"


class PersistentStore(ABC):
    """
    Abstract key/value store.

    Values are JSON-compatible. get() returns deep copies so callers can not
    mutate stored state by accident.
    """

    @abstractmethod
    async def get_all(self) -> Dict[str, Any]:
        """Snapshot of every key"""

    @abstractmethod
    async def set(self, values: Dict[str, Any]) -> None:
        """Write the given keys, leaving others untouched"""

    async def get(self, key: str, default: Any = None) -> Any:
        snapshot = await self.get_all()
        return snapshot.get(key, default)

    async def get_many(self, keys: Iterable[str]) -> Dict[str, Any]:
        snapshot = await self.get_all()
        return {key: snapshot[key] for key in keys if key in snapshot}


class InMemoryStore(PersistentStore):
    """Store that lives as long as the object; useful for tests and dry runs"""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self.write_count = 0

    async def get_all(self) -> Dict[str, Any]:
        return copy.deepcopy(self._data)

    async def set(self, values: Dict[str, Any]) -> None:
        self._data.update(copy.deepcopy(values))
        self.write_count += 1


class JsonFileStore(PersistentStore):
    """
    Store backed by a single JSON file.

    File access runs in a worker thread so the event loop keeps serving tab
    events. Writes go to a temporary file in the same directory which then
    replaces the original, so a crash mid-write leaves the previous state
    intact.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._write_lock = asyncio.Lock()

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Could not read state file {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"State file {self.path} does not hold a JSON object")
        return data

    def _write(self, data: Dict[str, Any]) -> None:
        temp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as f:
                temp_name = f.name
                json.dump(data, f, indent=2)
            os.replace(temp_name, self.path)
            temp_name = None
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Could not write state file {self.path}: {e}") from e
        finally:
            if temp_name is not None:
                Path(temp_name).unlink(missing_ok=True)

    def _merge(self, values: Dict[str, Any]) -> None:
        data = self._read()
        data.update(values)
        self._write(data)

    async def get_all(self) -> Dict[str, Any]:
        return await asyncio.to_thread(self._read)

    async def set(self, values: Dict[str, Any]) -> None:
        # One read-modify-write at a time
        async with self._write_lock:
            await asyncio.to_thread(self._merge, values)
