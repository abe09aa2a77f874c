"""
Tab Management - Pinned slots, tab host adapters and scroll restore.

Provides the slot list domain and the host abstraction it runs against.
"""
from .slot_entry import ScrollPosition, SlotEntry
from .tab_host import HostTab, TabEvent, TabHost, TabUpdate
from .scroll_restore import ScrollRestoreCoordinator
from .tab_manager import TabManagerDomain, TabManagerHooks, TabManagerState

__all__ = [
    "ScrollPosition",
    "SlotEntry",
    "HostTab",
    "TabEvent",
    "TabHost",
    "TabUpdate",
    "ScrollRestoreCoordinator",
    "TabManagerDomain",
    "TabManagerHooks",
    "TabManagerState",
]
