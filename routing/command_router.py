"""
CommandRouter - Maps keyboard shortcut commands to slot operations.
"""
from __future__ import annotations

from typing import Dict, Optional

from operation_result import OperationResult
from tab_management.tab_manager import TabManagerDomain
from utils.event_logger import get_event_logger

SLOT_COMMANDS: Dict[str, int] = {
    "tab-manager-tab-1": 1,
    "tab-manager-tab-2": 2,
    "tab-manager-tab-3": 3,
    "tab-manager-tab-4": 4,
}

CYCLE_COMMANDS: Dict[str, str] = {
    "tab-manager-next": "next",
    "tab-manager-prev": "prev",
}

# Commands that only ask the focused tab to open some UI
PANEL_COMMANDS: Dict[str, str] = {
    "open-tab-manager": "OPEN_TAB_MANAGER",
    "open-search-current": "OPEN_SEARCH_CURRENT_PAGE",
}


class CommandRouter:
    """
    Dispatches shortcut commands. Unknown commands are ignored.

    Example:
        >>> router = CommandRouter(tab_manager)
        >>> await router.handle("tab-manager-tab-2")
    """

    def __init__(self, tab_manager: TabManagerDomain):
        self.tab_manager = tab_manager

    async def handle(self, command: str) -> Optional[OperationResult]:
        get_event_logger().command_received(command)
        tm = self.tab_manager

        active = await tm.active_tab()
        if active is None or active.handle is None:
            return None

        if command in PANEL_COMMANDS:
            delivered = await tm.send_best_effort(active.handle, {"type": PANEL_COMMANDS[command]}, command)
            return OperationResult(ok=delivered)

        if command == "tab-manager-add":
            return await tm.add(active)

        if command in SLOT_COMMANDS:
            return await tm.jump(SLOT_COMMANDS[command])

        if command in CYCLE_COMMANDS:
            return await tm.cycle(CYCLE_COMMANDS[command])

        return None
