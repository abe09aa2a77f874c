"""
TabManagerDomain - Owns the pinned slot list and keeps it in step with live tabs.

The slot list is the only canonical copy of pinned-tab state. It is loaded
lazily from the persistent store (once per process; every public operation
calls ensure_loaded() first, which is cheap after the first time), mirrored
back to the store after each mutation, and reconciled against the host's live
tab set before decisions that depend on it.

Tab handles are host-assigned and ephemeral. A handle in the list is only a
hint; every host call that can fail because the tab vanished is caught and
turned into a state correction (mark closed, drop entry) rather than an error.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Union

from error_handling import ErrorHandler
from operation_result import OperationResult
from organizer_config import TabManagerConfig
from storage.persistent_store import SLOT_LIST_KEY, PersistentStore
from utils.event_logger import EventType, get_event_logger
from utils.url_utils import normalize_url_for_match

from .scroll_restore import ScrollRestoreCoordinator
from .slot_entry import ScrollPosition, SlotEntry
from .tab_host import HostTab, TabEvent, TabHost, TabUpdate


async def _noop_hook(tab_handle: int) -> None:
    return None


@dataclass
class TabManagerHooks:
    """External bookkeeping invoked from the lifecycle listeners"""
    on_tab_closed: Callable[[int], Awaitable[None]] = _noop_hook
    on_tab_activated: Callable[[int], Awaitable[None]] = _noop_hook


def _scroll_from_response(response: Any) -> ScrollPosition:
    if not isinstance(response, dict):
        return ScrollPosition()

    def coerce(value: Any) -> int:
        try:
            return max(0, int(round(float(value or 0))))
        except (TypeError, ValueError):
            return 0

    return ScrollPosition(coerce(response.get("scrollX")), coerce(response.get("scrollY")))


class TabManagerState:
    """
    Accessor handed to the session store.

    It reads and replaces the domain's live list instead of keeping a copy, so
    there is exactly one writer of canonical slot state.
    """

    def __init__(self, domain: "TabManagerDomain"):
        self._domain = domain

    def get_list(self) -> List[SlotEntry]:
        return self._domain._entries

    def set_list(self, entries: List[SlotEntry]) -> None:
        self._domain._entries = list(entries)

    def recompact_slots(self) -> bool:
        return self._domain.recompact_slots()

    async def save(self) -> None:
        await self._domain.save()

    async def ensure_loaded(self) -> None:
        await self._domain.ensure_loaded()

    def queue_scroll_restore(self, tab_handle: int, scroll_x: int, scroll_y: int) -> None:
        self._domain.scroll_restore.schedule(tab_handle, scroll_x, scroll_y)


class TabManagerDomain:
    """
    Pinned slot list: add, remove, jump, cycle, reorder and reconcile.

    After every mutating operation:
    - slot numbers are exactly 1..N in list order
    - at most config.max_slots entries
    - no two open entries share a tab handle
    """

    def __init__(
        self,
        host: TabHost,
        store: PersistentStore,
        config: Optional[TabManagerConfig] = None,
        scroll_restore: Optional[ScrollRestoreCoordinator] = None,
        error_handler: Optional[ErrorHandler] = None,
    ):
        """
        Args:
            host: Tab host used for queries, focus, creation and messages
            store: Durable store; this domain is the only writer of the slot list key
            config: Tab manager settings (defaults when omitted)
            scroll_restore: Coordinator to use; one is built over host when omitted
            error_handler: Sink for absorbed best-effort failures
        """
        self.host = host
        self.store = store
        self.config = config or TabManagerConfig()
        self.error_handler = error_handler or ErrorHandler()
        self.scroll_restore = scroll_restore or ScrollRestoreCoordinator(
            self._deliver_scroll_restore, self.config.scroll_restore_delays
        )
        self.state = TabManagerState(self)

        self._entries: List[SlotEntry] = []
        self._loaded = False
        self._load_lock = asyncio.Lock()
        self._last_active_handle: Optional[int] = None
        self._update_save_task: Optional[asyncio.Task] = None
        self._hooks = TabManagerHooks()

    # ----------------- state & persistence -----------------

    @property
    def max_slots(self) -> int:
        return self.config.max_slots

    async def ensure_loaded(self) -> None:
        """Load the slot list from the store once per process; later calls are no-ops"""
        if self._loaded:
            return
        async with self._load_lock:
            if self._loaded:
                return
            raw = await self.store.get(SLOT_LIST_KEY, [])
            records = raw if isinstance(raw, list) else []
            self._entries = [SlotEntry.from_dict(r) for r in records if isinstance(r, dict)]
            self.recompact_slots()
            self._loaded = True

    async def save(self) -> None:
        await self.store.set({SLOT_LIST_KEY: [entry.to_dict() for entry in self._entries]})

    def recompact_slots(self) -> bool:
        """Renumber slots 1..N in list order. Returns True if any number changed."""
        changed = False
        for index, entry in enumerate(self._entries, start=1):
            if entry.slot != index:
                entry.slot = index
                changed = True
        return changed

    def list(self) -> List[SlotEntry]:
        """Ordered entries (the list is a copy; the entries are live)"""
        return list(self._entries)

    def get_entry(self, slot: int) -> Optional[SlotEntry]:
        for entry in self._entries:
            if entry.slot == slot:
                return entry
        return None

    def _find_open_by_handle(self, tab_handle: Optional[int]) -> Optional[SlotEntry]:
        if tab_handle is None:
            return None
        for entry in self._entries:
            if entry.tab_handle == tab_handle and not entry.closed:
                return entry
        return None

    def _contains(self, entry: SlotEntry) -> bool:
        return any(candidate is entry for candidate in self._entries)

    def _drop(self, entry: SlotEntry) -> None:
        self._entries = [candidate for candidate in self._entries if candidate is not entry]
        self.recompact_slots()

    # ----------------- best-effort tab round trips -----------------

    async def send_best_effort(self, tab_handle: int, message: Dict[str, Any], operation: str) -> bool:
        """Deliver a non-critical message. Failure is logged, never raised."""
        try:
            await asyncio.wait_for(
                self.host.send_message(tab_handle, message),
                timeout=self.config.tab_message_timeout_seconds,
            )
            return True
        except Exception as e:
            self.error_handler.record(e, tab_handle=tab_handle, operation=operation)
            get_event_logger().best_effort_failed(operation, tab_handle=tab_handle, error=e)
            return False

    async def _read_scroll(self, tab_handle: int) -> Optional[ScrollPosition]:
        """Ask the tab for its scroll offset; None when it does not answer"""
        try:
            response = await asyncio.wait_for(
                self.host.send_message(tab_handle, {"type": "GET_SCROLL"}),
                timeout=self.config.tab_message_timeout_seconds,
            )
        except Exception as e:
            # Listener may be unavailable on restricted pages
            self.error_handler.record(e, tab_handle=tab_handle, operation="get scroll")
            get_event_logger().best_effort_failed("get scroll", tab_handle=tab_handle, error=e)
            return None
        return _scroll_from_response(response)

    async def _deliver_scroll_restore(self, tab_handle: int, position: ScrollPosition) -> None:
        await asyncio.wait_for(
            self.host.send_message(tab_handle, {
                "type": "SET_SCROLL",
                "scrollX": position.x,
                "scrollY": position.y,
            }),
            timeout=self.config.tab_message_timeout_seconds,
        )

    async def active_tab(self) -> Optional[HostTab]:
        """The focused tab, or None when there is none or the host query fails"""
        try:
            return await self.host.get_active_tab()
        except Exception as e:
            get_event_logger().best_effort_failed("active tab query", error=e)
            return None

    async def _capture_tracked_scroll(self, tab_handle: int) -> bool:
        """
        Refresh the stored scroll offset of an open tracked tab.

        Returns:
            True if the stored offset changed (caller decides when to save)
        """
        entry = self._find_open_by_handle(tab_handle)
        if entry is None:
            return False
        position = await self._read_scroll(tab_handle)
        if position is None:
            return False
        # The entry may have closed or been replaced while we waited
        if not self._contains(entry) or entry.closed or entry.tab_handle != tab_handle:
            return False
        changed = entry.update_scroll(position)
        if changed:
            get_event_logger().scroll_captured(tab_handle, position.x, position.y, slot=entry.slot)
        return changed

    # ----------------- operations -----------------

    async def reconcile(self) -> bool:
        """
        Mark entries whose tab is gone as closed and renumber slots.

        Reconciliation never reopens anything: a closed entry only comes back
        through add() or jump(). Never raises.

        Returns:
            True if the list changed (and was saved)
        """
        logger = get_event_logger()
        try:
            await self.ensure_loaded()
            tabs = await self.host.query_tabs()
            live_handles = {tab.handle for tab in tabs if tab.handle is not None}

            changed = False
            for entry in self._entries:
                if not entry.closed and entry.tab_handle not in live_handles:
                    entry.closed = True
                    changed = True
            changed = self.recompact_slots() or changed

            if changed:
                await self.save()
            logger.slots_reconciled(
                total=len(self._entries),
                closed=sum(1 for entry in self._entries if entry.closed),
                changed=changed,
            )
            return changed
        except Exception as e:
            logger.system_error("Slot reconciliation failed", error=e)
            return False

    async def add(self, tab: Optional[HostTab]) -> OperationResult:
        """
        Pin a tab to the next free slot.

        A tab that matches an existing entry (same handle, or same normalized
        URL) is reported as already present; if that entry was closed it is
        revived in place with the new handle instead of being duplicated.
        """
        if tab is None or tab.handle is None:
            return OperationResult.failure("Active tab unavailable.")

        await self.reconcile()
        logger = get_event_logger()

        existing = self._match_existing(tab)
        if existing is not None:
            revived = False
            if existing.closed:
                existing.revive(tab.handle, title=tab.title)
                if tab.url:
                    existing.url = tab.url
                revived = True
                await self.save()
                logger.slot_revived(existing.slot, tab.handle, url=existing.url)
            await self.send_best_effort(tab.handle, {
                "type": "TAB_MANAGER_ADDED_FEEDBACK",
                "slot": existing.slot,
                "title": tab.title,
                "alreadyAdded": True,
            }, "added feedback")
            return OperationResult.failure(
                "Tab already in Tab Manager list.", slot=existing.slot, revived=revived
            )

        if len(self._entries) >= self.max_slots:
            return await self._reject_full(tab.handle)

        position = await self._read_scroll(tab.handle) or ScrollPosition()

        # The list may have changed while the tab answered
        if self._match_existing(tab) is not None:
            return OperationResult.failure("Tab already in Tab Manager list.")
        if len(self._entries) >= self.max_slots:
            return await self._reject_full(tab.handle)

        entry = SlotEntry(
            tab_handle=tab.handle,
            url=tab.url or "",
            title=tab.title or "",
            scroll_x=position.x,
            scroll_y=position.y,
            slot=len(self._entries) + 1,
        )
        self._entries.append(entry)
        self.recompact_slots()
        await self.save()
        logger.slot_added(entry.slot, tab.handle, url=entry.url)

        await self.send_best_effort(tab.handle, {
            "type": "TAB_MANAGER_ADDED_FEEDBACK",
            "slot": entry.slot,
            "title": tab.title,
        }, "added feedback")
        return OperationResult.success(slot=entry.slot)

    def _match_existing(self, tab: HostTab) -> Optional[SlotEntry]:
        normalized = normalize_url_for_match(tab.url or "")

        def matches(entry: SlotEntry) -> bool:
            if entry.tab_handle is not None and entry.tab_handle == tab.handle:
                return True
            return bool(normalized) and normalize_url_for_match(entry.url) == normalized

        # Prefer an open match so reviving can never duplicate an open handle
        open_match = next((e for e in self._entries if not e.closed and matches(e)), None)
        if open_match is not None:
            return open_match
        return next((e for e in self._entries if e.closed and matches(e)), None)

    async def _reject_full(self, tab_handle: int) -> OperationResult:
        get_event_logger().slot_list_full(self.max_slots, tab_handle=tab_handle)
        await self.send_best_effort(tab_handle, {
            "type": "TAB_MANAGER_FULL_FEEDBACK",
            "max": self.max_slots,
        }, "full feedback")
        return OperationResult.failure(f"Tab Manager list is full (max {self.max_slots}).")

    async def remove(self, tab_handle: Optional[int]) -> bool:
        """
        Unpin every entry bound to tab_handle and renumber.

        Returns:
            True if anything was removed
        """
        await self.ensure_loaded()
        if tab_handle is None:
            return False

        self.scroll_restore.clear(tab_handle)
        remaining = [entry for entry in self._entries if entry.tab_handle != tab_handle]
        removed = len(self._entries) - len(remaining)
        if not removed:
            return False

        self._entries = remaining
        self.recompact_slots()
        await self.save()
        get_event_logger().slot_removed(tab_handle, removed)
        return True

    async def remove_slot(self, slot: int) -> bool:
        """Unpin by slot number; works for closed entries that lost their handle"""
        await self.ensure_loaded()
        entry = self.get_entry(slot)
        if entry is None:
            return False
        if entry.tab_handle is not None:
            self.scroll_restore.clear(entry.tab_handle)
        self._drop(entry)
        await self.save()
        get_event_logger().emit(EventType.SLOT_REMOVED, f"Removed slot {slot}", "INFO", slot=slot)
        return True

    async def jump(self, slot: int, _retried: bool = False) -> OperationResult:
        """
        Focus the tab pinned at slot, reopening it from its URL if it is closed.

        If the host says an open entry's handle is gone (it closed after the last
        reconciliation), the entry is marked closed and the jump is retried once
        through the reopen path.
        """
        await self.ensure_loaded()
        entry = self.get_entry(slot)
        if entry is None:
            return OperationResult.failure(f"No tab in slot {slot}.")

        if not _retried:
            await self._capture_focused_before_jump(entry)
            if not self._contains(entry):
                return OperationResult.failure(f"No tab in slot {slot}.")

        if entry.closed or entry.tab_handle is None:
            return await self._reopen(entry)

        tab_handle = entry.tab_handle
        try:
            await self.host.activate_tab(tab_handle)
        except Exception as e:
            self.error_handler.record(e, tab_handle=tab_handle, operation="activate tab")
            entry.closed = True
            await self.save()
            get_event_logger().slot_closed(entry.slot, tab_handle, reason="stale handle on jump")
            if _retried:
                return OperationResult.failure(f"Tab in slot {slot} is gone.")
            return await self.jump(slot, _retried=True)

        self.scroll_restore.schedule(tab_handle, entry.scroll_x, entry.scroll_y)
        get_event_logger().slot_jump(entry.slot, tab_handle)
        return OperationResult.success(slot=entry.slot)

    async def _capture_focused_before_jump(self, target: SlotEntry) -> None:
        active = await self.active_tab()
        if active is None or active.handle is None:
            return
        if active.handle == target.tab_handle:
            return
        if await self._capture_tracked_scroll(active.handle):
            await self.save()

    async def _reopen(self, entry: SlotEntry) -> OperationResult:
        slot = entry.slot
        logger = get_event_logger()
        try:
            tab = await self.host.create_tab(entry.url, active=True)
        except Exception as e:
            # A URL the host refuses to open would fail forever; drop the entry
            self.error_handler.record(e, operation="create tab", url=entry.url)
            if self._contains(entry):
                self._drop(entry)
                await self.save()
            logger.slot_dropped(slot, entry.url, reason=str(e))
            return OperationResult.failure(f"Could not reopen {entry.url}; slot removed.")

        if tab.handle is None:
            return OperationResult.failure(f"Could not reopen {entry.url}.")
        if not self._contains(entry):
            return OperationResult.failure(f"Slot {slot} changed while reopening.")

        entry.revive(tab.handle)
        await self.save()
        self.scroll_restore.schedule(tab.handle, entry.scroll_x, entry.scroll_y)
        logger.slot_jump(entry.slot, tab.handle, reopened=True)
        return OperationResult.success(slot=entry.slot, reopened=True)

    async def cycle(self, direction: str) -> OperationResult:
        """Jump to the next or previous slot, wrapping around"""
        await self.ensure_loaded()
        if direction not in ("next", "prev"):
            return OperationResult.failure(f"Unknown direction: {direction}")
        if not self._entries:
            return OperationResult.failure("Tab Manager list is empty.")

        active = await self.active_tab()
        current_index = -1
        if active is not None and active.handle is not None:
            for index, entry in enumerate(self._entries):
                if entry.tab_handle == active.handle:
                    current_index = index
                    break

        count = len(self._entries)
        if current_index == -1:
            target_index = 0 if direction == "next" else count - 1
        elif direction == "next":
            target_index = (current_index + 1) % count
        else:
            target_index = (current_index - 1) % count

        return await self.jump(self._entries[target_index].slot)

    async def save_current_tab_scroll(self) -> bool:
        """Capture the focused tab's scroll offset if it is a tracked open entry"""
        await self.ensure_loaded()
        active = await self.active_tab()
        if active is None or active.handle is None:
            return False
        if await self._capture_tracked_scroll(active.handle):
            await self.save()
            return True
        return False

    async def reorder(self, new_list: Iterable[Union[SlotEntry, Dict[str, Any]]]) -> OperationResult:
        """Replace the list wholesale (manual reorder from the UI) and renumber"""
        await self.ensure_loaded()
        entries = [item if isinstance(item, SlotEntry) else SlotEntry.from_dict(item) for item in new_list]

        if len(entries) > self.max_slots:
            return OperationResult.failure(f"Tab Manager list is full (max {self.max_slots}).")
        open_handles = [e.tab_handle for e in entries if not e.closed and e.tab_handle is not None]
        if len(open_handles) != len(set(open_handles)):
            return OperationResult.failure("Duplicate tab in reordered list.")

        self._entries = entries
        self.recompact_slots()
        await self.save()
        get_event_logger().emit(EventType.SLOTS_REORDERED, "Reordered slots", "INFO", total=len(entries))
        return OperationResult.success()

    async def clear_all(self) -> None:
        await self.ensure_loaded()
        for entry in self._entries:
            if entry.tab_handle is not None:
                self.scroll_restore.clear(entry.tab_handle)
        self._entries = []
        await self.save()
        get_event_logger().emit(EventType.SLOTS_CLEARED, "Cleared slot list", "INFO")

    async def discard_stale_handles(self) -> bool:
        """
        Forget every stored handle after a host restart.

        Entries stay in place, closed, so they can still be reopened by jump.
        """
        await self.ensure_loaded()
        changed = False
        for entry in self._entries:
            if entry.tab_handle is not None or not entry.closed:
                entry.tab_handle = None
                entry.closed = True
                changed = True
        if changed:
            await self.save()
        return changed

    def consume_pending_scroll_restore(self, tab_handle: int) -> Optional[ScrollPosition]:
        return self.scroll_restore.consume(tab_handle)

    async def deliver_scroll_once(self, tab_handle: int, position: ScrollPosition) -> bool:
        """Single best-effort restore, used when a tab announces its listener"""
        return await self.send_best_effort(tab_handle, {
            "type": "SET_SCROLL",
            "scrollX": position.x,
            "scrollY": position.y,
        }, "scroll restore on ready")

    async def capture_initial_active_tab(self) -> None:
        active = await self.active_tab()
        if active is not None and active.handle is not None:
            self._last_active_handle = active.handle

    async def flush(self) -> None:
        """Write any debounced url/title refresh now"""
        task = self._update_save_task
        if task is not None and not task.done():
            task.cancel()
            self._update_save_task = None
            await self.save()

    # ----------------- lifecycle listeners -----------------

    def register_lifecycle_listeners(self, hooks: Optional[TabManagerHooks] = None) -> None:
        """Subscribe to the host's tab-closed, tab-updated and tab-activated events"""
        self._hooks = hooks or TabManagerHooks()
        self.host.add_listener(TabEvent.REMOVED, self.handle_tab_removed)
        self.host.add_listener(TabEvent.UPDATED, self.handle_tab_updated)
        self.host.add_listener(TabEvent.ACTIVATED, self.handle_tab_activated)

    async def handle_tab_removed(self, tab_handle: int) -> None:
        try:
            await self.ensure_loaded()
            self.scroll_restore.clear(tab_handle)
            entry = self._find_open_by_handle(tab_handle)
            if entry is not None and entry.mark_closed():
                await self.save()
                get_event_logger().slot_closed(entry.slot, tab_handle)
        except Exception as e:
            get_event_logger().system_error("Tab-closed bookkeeping failed", error=e, tab_handle=tab_handle)

        try:
            await self._hooks.on_tab_closed(tab_handle)
        except Exception as e:
            get_event_logger().system_error("Tab-closed hook failed", error=e, tab_handle=tab_handle)

    async def handle_tab_updated(self, tab_handle: int, update: TabUpdate) -> None:
        try:
            await self.ensure_loaded()
            entry = self._find_open_by_handle(tab_handle)
            if entry is None:
                return

            changed = False
            if update.url and update.url != entry.url:
                entry.url = update.url
                changed = True
            if update.title and update.title != entry.title:
                entry.title = update.title
                changed = True
            if changed:
                self._schedule_debounced_save()
        except Exception as e:
            get_event_logger().system_error("Tab-updated bookkeeping failed", error=e, tab_handle=tab_handle)

    def _schedule_debounced_save(self) -> None:
        if self._update_save_task is not None and not self._update_save_task.done():
            self._update_save_task.cancel()
        self._update_save_task = asyncio.get_running_loop().create_task(self._debounced_save())

    async def _debounced_save(self) -> None:
        await asyncio.sleep(self.config.update_debounce_seconds)
        self._update_save_task = None
        try:
            await self.save()
        except Exception as e:
            get_event_logger().system_error("Debounced slot save failed", error=e)

    async def handle_tab_activated(self, tab_handle: int) -> None:
        previous = self._last_active_handle
        self._last_active_handle = tab_handle

        try:
            await self._hooks.on_tab_activated(tab_handle)
        except Exception as e:
            get_event_logger().system_error("Tab-activated hook failed", error=e, tab_handle=tab_handle)

        if previous is None or previous == tab_handle:
            return
        try:
            await self.ensure_loaded()
            if await self._capture_tracked_scroll(previous):
                await self.save()
        except Exception as e:
            get_event_logger().system_error("Scroll capture on tab switch failed", error=e, tab_handle=previous)
