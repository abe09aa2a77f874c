"""
SessionStore - Named snapshots of the slot list.

The store owns the sessions key of the persistent store. It never keeps a copy
of the live slot list: it reads and replaces it through the tab manager's
state accessor, so the tab manager stays the single writer of slot state.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from error_handling import ErrorHandler
from operation_result import OperationResult
from organizer_config import SessionConfig
from storage.persistent_store import SESSIONS_KEY, PersistentStore
from tab_management.slot_entry import SlotEntry
from tab_management.tab_host import HostTab, TabHost
from tab_management.tab_manager import TabManagerState
from utils.event_logger import EventType, get_event_logger
from utils.url_utils import normalize_url_for_match, urls_match

from .session_models import (
    ReuseMatch,
    Session,
    SessionEntry,
    SessionLoadSummary,
    SlotDiff,
)

SESSION_NOT_FOUND = "Session not found"


@dataclass
class _ReusePlan:
    """Per session entry, the open tab to reuse (None means open a new tab)"""
    reuse_tabs: List[Optional[HostTab]] = field(default_factory=list)
    open_count: int = 0
    reuse_count: int = 0


def _plan_reuse(entries: List[SessionEntry], open_tabs: List[HostTab]) -> _ReusePlan:
    # Each open tab can back at most one session entry
    pools: Dict[str, List[HostTab]] = {}
    for tab in open_tabs:
        if tab.handle is None:
            continue
        normalized = normalize_url_for_match(tab.url)
        if normalized:
            pools.setdefault(normalized, []).append(tab)

    plan = _ReusePlan()
    for entry in entries:
        pool = pools.get(normalize_url_for_match(entry.url))
        if pool:
            plan.reuse_tabs.append(pool.pop(0))
            plan.reuse_count += 1
        else:
            plan.reuse_tabs.append(None)
            plan.open_count += 1
    return plan


def _diff_slots(current: List[SlotEntry], incoming: List[SessionEntry]) -> List[SlotDiff]:
    diffs = []
    for index in range(max(len(current), len(incoming))):
        now = current[index] if index < len(current) else None
        new = incoming[index] if index < len(incoming) else None
        if now is not None and new is not None:
            change = "=" if urls_match(now.url, new.url) else "~"
        elif new is not None:
            change = "+"
        else:
            change = "-"
        diffs.append(SlotDiff(
            slot=index + 1,
            change=change,
            current_url=now.url if now else None,
            current_title=now.title if now else None,
            incoming_url=new.url if new else None,
            incoming_title=new.title if new else None,
        ))
    return diffs


class SessionStore:
    """
    Save, list, preview, load, update, rename, replace and delete sessions.

    Every user-facing operation returns an OperationResult; failures are
    reported with a reason and leave stored sessions untouched.
    """

    def __init__(
        self,
        state: TabManagerState,
        host: TabHost,
        store: PersistentStore,
        config: Optional[SessionConfig] = None,
        max_slots: int = 4,
        error_handler: Optional[ErrorHandler] = None,
    ):
        self.state = state
        self.host = host
        self.store = store
        self.config = config or SessionConfig()
        self.max_slots = max_slots
        self.error_handler = error_handler or ErrorHandler()

    # ----------------- storage -----------------

    async def _read(self) -> List[Session]:
        raw = await self.store.get(SESSIONS_KEY, [])
        if not isinstance(raw, list):
            return []
        return [Session.from_dict(item) for item in raw if isinstance(item, dict)]

    async def _write(self, sessions: List[Session]) -> None:
        await self.store.set({SESSIONS_KEY: [session.to_dict() for session in sessions]})

    @staticmethod
    def _index_of(sessions: List[Session], name: str) -> int:
        wanted = name.strip().lower()
        for index, session in enumerate(sessions):
            if session.name.lower() == wanted:
                return index
        return -1

    def _clean_name(self, name: Optional[str]) -> Tuple[str, Optional[str]]:
        """Trim a user-supplied name. Returns (name, reason-if-invalid)."""
        cleaned = (name or "").strip()
        if not cleaned:
            return cleaned, "Name cannot be empty"
        if len(cleaned) > self.config.max_name_length:
            return cleaned, f"Name too long (max {self.config.max_name_length} characters)"
        return cleaned, None

    def _snapshot_entries(self) -> List[SessionEntry]:
        return [SessionEntry.from_slot(entry) for entry in self.state.get_list()]

    async def _open_tabs(self) -> List[HostTab]:
        try:
            return await self.host.query_tabs()
        except Exception as e:
            self.error_handler.record(e, operation="query tabs")
            get_event_logger().best_effort_failed("tab query for session load", error=e)
            return []

    def _reject(self, name: str, reason: str) -> OperationResult:
        get_event_logger().session_event(
            EventType.SESSION_REJECTED, name, f"Session '{name}' rejected: {reason}", "WARNING", reason=reason
        )
        return OperationResult.failure(reason)

    # ----------------- operations -----------------

    async def save(self, name: str) -> OperationResult:
        """Snapshot the current slot list under a new name"""
        await self.state.ensure_loaded()
        if not self.state.get_list():
            return self._reject(name or "", "Cannot save empty tab manager list")

        cleaned, reason = self._clean_name(name)
        if reason:
            return self._reject(cleaned, reason)

        sessions = await self._read()
        if self._index_of(sessions, cleaned) != -1:
            return self._reject(cleaned, f'"{cleaned}" already exists')
        if len(sessions) >= self.config.max_sessions:
            return self._reject(cleaned, f"Max {self.config.max_sessions} sessions - delete one first")

        entries = self._snapshot_entries()
        urls = [entry.url for entry in entries]
        for existing in sessions:
            if existing.urls == urls:
                return self._reject(cleaned, f'Identical to "{existing.name}"')

        sessions.append(Session(name=cleaned, entries=entries, saved_at=time.time()))
        await self._write(sessions)
        get_event_logger().session_event(
            EventType.SESSION_SAVED, cleaned, f"Saved session '{cleaned}' ({len(entries)} tabs)", "SUCCESS",
            count=len(entries),
        )
        return OperationResult.success(name=cleaned, count=len(entries))

    async def list(self) -> List[Session]:
        """All sessions, most recently saved first"""
        sessions = await self._read()
        return sorted(sessions, key=lambda session: session.saved_at, reverse=True)

    async def load_plan(self, name: str) -> OperationResult:
        """
        Preview a load against the current slot list and open tabs.

        Pure: nothing is written and no tab is touched. The summary is
        returned under data["summary"].
        """
        await self.state.ensure_loaded()
        sessions = await self._read()
        index = self._index_of(sessions, name or "")
        if index == -1:
            return OperationResult.failure(SESSION_NOT_FOUND)

        session = sessions[index]
        entries = session.entries[:self.max_slots]
        current = list(self.state.get_list())
        reuse = _plan_reuse(entries, await self._open_tabs())

        matches = [
            ReuseMatch(
                slot=position,
                tab_handle=tab.handle,
                session_url=entry.url,
                session_title=entry.title,
                open_tab_url=tab.url,
                open_tab_title=tab.title,
            )
            for position, (entry, tab) in enumerate(zip(entries, reuse.reuse_tabs), start=1)
            if tab is not None
        ]
        summary = SessionLoadSummary(
            session_name=session.name,
            total_count=len(entries),
            replace_count=len(current),
            open_count=reuse.open_count,
            reuse_count=reuse.reuse_count,
            slot_diffs=_diff_slots(current, entries),
            reuse_matches=matches,
        )
        return OperationResult.success(summary=summary)

    async def load(self, name: str) -> OperationResult:
        """
        Replace the slot list with the named session.

        The plan is recomputed here from live state; a preview obtained
        earlier may be stale. Entries whose tab can not be opened are skipped.
        """
        await self.state.ensure_loaded()
        logger = get_event_logger()
        sessions = await self._read()
        index = self._index_of(sessions, name or "")
        if index == -1:
            return OperationResult.failure(SESSION_NOT_FOUND)

        session = sessions[index]
        entries = session.entries[:self.max_slots]
        replace_count = len(self.state.get_list())
        reuse = _plan_reuse(entries, await self._open_tabs())

        new_list: List[SlotEntry] = []
        opened = 0
        reused = 0
        for entry, candidate in zip(entries, reuse.reuse_tabs):
            if candidate is not None:
                tab = await self._still_open(candidate.handle)
                if tab is not None:
                    new_list.append(SlotEntry(
                        tab_handle=tab.handle,
                        url=tab.url or entry.url,
                        title=tab.title or entry.title,
                        scroll_x=entry.scroll_x,
                        scroll_y=entry.scroll_y,
                        slot=len(new_list) + 1,
                    ))
                    reused += 1
                    continue
                # The reusable tab closed since planning; open a fresh one

            try:
                tab = await self.host.create_tab(entry.url, active=False)
            except Exception as e:
                self.error_handler.record(e, operation="open session tab", url=entry.url)
                logger.best_effort_failed("open session tab", error=e, url=entry.url)
                continue
            if tab.handle is None:
                continue
            new_list.append(SlotEntry(
                tab_handle=tab.handle,
                url=entry.url,
                title=entry.title,
                scroll_x=entry.scroll_x,
                scroll_y=entry.scroll_y,
                slot=len(new_list) + 1,
            ))
            opened += 1

        self.state.set_list(new_list)
        self.state.recompact_slots()
        await self.state.save()

        for slot_entry in new_list:
            if slot_entry.scroll_x or slot_entry.scroll_y:
                self.state.queue_scroll_restore(slot_entry.tab_handle, slot_entry.scroll_x, slot_entry.scroll_y)

        if new_list:
            try:
                await self.host.activate_tab(new_list[0].tab_handle)
            except Exception as e:
                self.error_handler.record(e, tab_handle=new_list[0].tab_handle, operation="focus first slot")
                logger.best_effort_failed("focus first slot", tab_handle=new_list[0].tab_handle, error=e)

        logger.session_event(
            EventType.SESSION_LOADED, session.name,
            f"Loaded session '{session.name}' ({len(new_list)} tabs, {reused} reused)", "SUCCESS",
            count=len(new_list), open_count=opened, reuse_count=reused,
        )
        return OperationResult.success(
            name=session.name,
            count=len(new_list),
            replace_count=replace_count,
            open_count=opened,
            reuse_count=reused,
        )

    async def _still_open(self, tab_handle: Optional[int]) -> Optional[HostTab]:
        if tab_handle is None:
            return None
        try:
            tab = await self.host.get_tab(tab_handle)
        except Exception as e:
            self.error_handler.record(e, tab_handle=tab_handle, operation="reuse tab")
            return None
        return tab if tab.handle is not None else None

    async def update(self, name: str) -> OperationResult:
        """Overwrite an existing session with the current slot list"""
        await self.state.ensure_loaded()
        if not self.state.get_list():
            return self._reject(name or "", "Cannot update: tab manager list is empty")

        sessions = await self._read()
        index = self._index_of(sessions, name or "")
        if index == -1:
            return OperationResult.failure(SESSION_NOT_FOUND)

        session = sessions[index]
        session.entries = self._snapshot_entries()
        session.saved_at = time.time()
        await self._write(sessions)
        get_event_logger().session_event(
            EventType.SESSION_UPDATED, session.name, f"Overwrote session '{session.name}'", "SUCCESS",
            count=len(session.entries),
        )
        return OperationResult.success(name=session.name, count=len(session.entries))

    async def rename(self, old_name: str, new_name: str) -> OperationResult:
        cleaned, reason = self._clean_name(new_name)
        if reason:
            return self._reject(cleaned, reason)

        sessions = await self._read()
        index = self._index_of(sessions, old_name or "")
        if index == -1:
            return OperationResult.failure(SESSION_NOT_FOUND)
        taken = self._index_of(sessions, cleaned)
        if taken not in (-1, index):
            return self._reject(cleaned, f'"{cleaned}" already exists')

        previous = sessions[index].name
        sessions[index].name = cleaned
        await self._write(sessions)
        get_event_logger().session_event(
            EventType.SESSION_RENAMED, cleaned, f"Renamed session '{previous}' to '{cleaned}'", "INFO",
            previous=previous,
        )
        return OperationResult.success(name=cleaned)

    async def replace(self, old_name: str, new_name: str) -> OperationResult:
        """Overwrite the session old_name with the current slot list, stored as new_name"""
        await self.state.ensure_loaded()
        if not self.state.get_list():
            return self._reject(new_name or "", "Cannot replace: tab manager list is empty")

        cleaned, reason = self._clean_name(new_name)
        if reason:
            return self._reject(cleaned, reason)

        sessions = await self._read()
        index = self._index_of(sessions, old_name or "")
        if index == -1:
            return OperationResult.failure(SESSION_NOT_FOUND)
        taken = self._index_of(sessions, cleaned)
        if taken not in (-1, index):
            return self._reject(cleaned, f'"{cleaned}" already exists')

        replaced = sessions[index].name
        sessions[index] = Session(name=cleaned, entries=self._snapshot_entries(), saved_at=time.time())
        await self._write(sessions)
        get_event_logger().session_event(
            EventType.SESSION_UPDATED, cleaned, f"Saved session '{cleaned}' (replaced '{replaced}')", "SUCCESS",
            replaced=replaced,
        )
        return OperationResult.success(name=cleaned, replaced=replaced)

    async def delete(self, name: str) -> OperationResult:
        """Remove a session; deleting a missing name is not an error"""
        sessions = await self._read()
        index = self._index_of(sessions, name or "")
        if index == -1:
            return OperationResult.success()

        removed = sessions.pop(index)
        await self._write(sessions)
        get_event_logger().session_event(
            EventType.SESSION_DELETED, removed.name, f"Deleted session '{removed.name}'", "INFO"
        )
        return OperationResult.success()

    async def has_sessions(self) -> bool:
        return bool(await self._read())
