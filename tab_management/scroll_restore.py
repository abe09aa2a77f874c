"""
ScrollRestoreCoordinator - Retried, supersedable scroll restore delivery.

Right after a tab is created its tab-side listener usually is not running yet,
so a restore instruction is retried on a short increasing schedule. Every call
to schedule() takes a fresh token from a monotonically increasing sequence and
records it as the latest token for that tab handle. A retry loop only keeps
going, and only commits its success, while its token is still the latest one
for its handle; a newer schedule() for the same handle silently retires it.
"""
from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Set

from utils.event_logger import EventType, get_event_logger

from .slot_entry import ScrollPosition

DEFAULT_RETRY_DELAYS = (0.0, 0.08, 0.22, 0.42)

DeliverFn = Callable[[int, ScrollPosition], Awaitable[Any]]


class ScrollRestoreCoordinator:
    """
    Delivers scroll restores to tabs, one live request per tab handle.

    Pending restores are ephemeral: they are never persisted, and they are
    dropped on successful delivery, on supersession, or when the tab closes.
    """

    def __init__(self, deliver: DeliverFn, retry_delays: Iterable[float] = DEFAULT_RETRY_DELAYS):
        """
        Args:
            deliver: Coroutine that sends one SET_SCROLL to a tab; raises on failure
            retry_delays: Wait before each attempt, in seconds
        """
        self._deliver = deliver
        self._retry_delays = tuple(retry_delays)
        self._pending: Dict[int, ScrollPosition] = {}
        self._tokens: Dict[int, int] = {}
        self._sequence = 0
        self._tasks: Set[asyncio.Task] = set()

    def schedule(self, tab_handle: int, scroll_x: int, scroll_y: int) -> Optional[asyncio.Task]:
        """
        Start delivering a restore to tab_handle.

        A (0, 0) offset has nothing to restore: it just clears whatever was
        pending for the handle.

        Returns:
            The retry task, or None when nothing was scheduled
        """
        if not scroll_x and not scroll_y:
            self.clear(tab_handle)
            return None

        position = ScrollPosition(scroll_x, scroll_y)
        self._pending[tab_handle] = position
        self._sequence += 1
        token = self._sequence
        self._tokens[tab_handle] = token
        get_event_logger().scroll_restore(
            EventType.SCROLL_RESTORE_SCHEDULED, tab_handle, token, scroll_x=scroll_x, scroll_y=scroll_y
        )

        task = asyncio.get_running_loop().create_task(self._run(tab_handle, position, token))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def is_current(self, tab_handle: int, token: int) -> bool:
        return self._tokens.get(tab_handle) == token

    def latest_token(self, tab_handle: int) -> Optional[int]:
        return self._tokens.get(tab_handle)

    def pending(self, tab_handle: int) -> Optional[ScrollPosition]:
        return self._pending.get(tab_handle)

    def consume(self, tab_handle: int) -> Optional[ScrollPosition]:
        """
        Take the pending restore for a tab whose listener just announced itself.

        Consuming also retires any retry loop still running for the handle.
        """
        position = self._pending.pop(tab_handle, None)
        if position is not None:
            self._tokens.pop(tab_handle, None)
        return position

    def clear(self, tab_handle: int) -> None:
        """Forget a tab's pending restore (tab closed, slot removed, nothing to restore)"""
        self._pending.pop(tab_handle, None)
        self._tokens.pop(tab_handle, None)

    async def drain(self) -> None:
        """Wait for every in-flight retry loop to finish"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def cancel_all(self) -> None:
        for task in list(self._tasks):
            task.cancel()

    async def _run(self, tab_handle: int, position: ScrollPosition, token: int) -> bool:
        logger = get_event_logger()

        for attempt, delay in enumerate(self._retry_delays, start=1):
            if not self.is_current(tab_handle, token):
                logger.scroll_restore(EventType.SCROLL_RESTORE_SUPERSEDED, tab_handle, token, attempt=attempt)
                return False
            if delay > 0:
                await asyncio.sleep(delay)
                if not self.is_current(tab_handle, token):
                    logger.scroll_restore(EventType.SCROLL_RESTORE_SUPERSEDED, tab_handle, token, attempt=attempt)
                    return False

            try:
                await self._deliver(tab_handle, position)
            except Exception as e:
                # Listener not ready yet; keep retrying
                logger.best_effort_failed("scroll restore", tab_handle=tab_handle, error=e, attempt=attempt)
                continue

            if not self.is_current(tab_handle, token):
                logger.scroll_restore(EventType.SCROLL_RESTORE_SUPERSEDED, tab_handle, token, attempt=attempt)
                return False
            self._pending.pop(tab_handle, None)
            self._tokens.pop(tab_handle, None)
            logger.scroll_restore(EventType.SCROLL_RESTORE_DELIVERED, tab_handle, token, attempt=attempt)
            return True

        logger.scroll_restore(EventType.SCROLL_RESTORE_EXHAUSTED, tab_handle, token)
        return False
