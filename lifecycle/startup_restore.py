"""
LifecycleReconciler - Host restart handling.

Tab handles from a previous run mean nothing after the host restarts, and a
new host may hand the same numbers to unrelated tabs. Without sessions the
slot list is kept but its handles are forgotten, so every entry reopens by
URL. When sessions exist, the slot list is cleared right away and the user is
offered a session restore in the focused tab; the offer is retried for a
while because the tab-side listener in that tab may still be starting.
"""
from __future__ import annotations

import asyncio
from typing import Optional

from organizer_config import StartupRestoreConfig
from sessions.session_store import SessionStore
from tab_management.tab_host import TabHost
from tab_management.tab_manager import TabManagerDomain
from utils.event_logger import get_event_logger

SHOW_SESSION_RESTORE = {"type": "SHOW_SESSION_RESTORE"}


class LifecycleReconciler:
    """
    Runs once per host startup.

    Example:
        >>> reconciler = LifecycleReconciler(tab_manager, session_store, host)
        >>> task = await reconciler.on_startup()
    """

    def __init__(
        self,
        tab_manager: TabManagerDomain,
        session_store: SessionStore,
        host: TabHost,
        config: Optional[StartupRestoreConfig] = None,
    ):
        self.tab_manager = tab_manager
        self.session_store = session_store
        self.host = host
        self.config = config or StartupRestoreConfig()
        self._generation = 0
        self._prompt_task: Optional[asyncio.Task] = None

    async def on_startup(self) -> Optional[asyncio.Task]:
        """
        Handle the host's startup signal.

        Returns:
            The prompt delivery task, or None when there is nothing to restore
        """
        logger = get_event_logger()
        if not await self.session_store.has_sessions():
            if self.config.discard_stale_handles:
                await self.tab_manager.discard_stale_handles()
            logger.startup_restore("No saved sessions; nothing to restore", "DEBUG")
            return None

        # An empty list beats a list of dangling handles
        await self.tab_manager.clear_all()
        logger.startup_restore("Cleared slot list after restart; offering session restore")

        self._generation += 1
        self._prompt_task = asyncio.get_running_loop().create_task(
            self.deliver_restore_prompt(self._generation)
        )
        return self._prompt_task

    async def deliver_restore_prompt(self, generation: Optional[int] = None) -> bool:
        """
        Try to show the restore prompt in the focused tab.

        Never raises: running out of attempts only means the user has to open
        the session menu themselves.

        Returns:
            True once a tab accepted the prompt
        """
        if generation is None:
            self._generation += 1
            generation = self._generation
        logger = get_event_logger()
        timeout = self.tab_manager.config.tab_message_timeout_seconds

        await asyncio.sleep(self.config.initial_delay_seconds)
        for attempt in range(1, self.config.max_attempts + 1):
            if generation != self._generation:
                return False

            tab = None
            try:
                tab = await self.host.get_active_tab()
            except Exception as e:
                logger.best_effort_failed("active tab query", error=e, attempt=attempt)

            if tab is not None and tab.handle is not None:
                try:
                    await asyncio.wait_for(self.host.send_message(tab.handle, dict(SHOW_SESSION_RESTORE)), timeout)
                    logger.startup_restore(f"Session restore prompt shown in tab {tab.handle}", "SUCCESS",
                                           attempt=attempt)
                    return True
                except Exception as e:
                    logger.best_effort_failed("restore prompt", tab_handle=tab.handle, error=e, attempt=attempt)

            if attempt < self.config.max_attempts:
                await asyncio.sleep(self.config.retry_interval_seconds)

        logger.startup_restore("Restore prompt not delivered; session menu still available", "WARNING")
        return False

    async def wait(self) -> Optional[bool]:
        """Wait for the current prompt delivery, if any"""
        if self._prompt_task is None:
            return None
        return await self._prompt_task
