"""
Tab host abstraction.

The organizer never talks to a browser directly. It goes through a TabHost,
which answers tab queries, opens and focuses tabs, delivers messages to the
tab-side listener, and reports tab lifecycle events back through listeners.
Handles are whatever integers the host hands out; they are only valid for the
lifetime of the host process.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from utils.event_logger import get_event_logger

Listener = Callable[..., Awaitable[Any]]


class TabEvent(str, Enum):
    """Events a host reports to its listeners"""
    REMOVED = "removed"            # (handle)
    UPDATED = "updated"            # (handle, TabUpdate)
    ACTIVATED = "activated"        # (handle)
    COMMAND = "command"            # (command_name)
    MESSAGE = "message"            # (message_dict, sender_handle) -> response


@dataclass(frozen=True)
class HostTab:
    """Snapshot of a live tab as the host reports it"""
    handle: Optional[int]
    url: str = ""
    title: str = ""
    active: bool = False


@dataclass(frozen=True)
class TabUpdate:
    """Fields that changed on a tab; None means unchanged"""
    url: Optional[str] = None
    title: Optional[str] = None


class TabHost(ABC):
    """
    Abstract base class for tab hosts.

    Implementations must raise TabNotFoundError for unknown handles,
    TabCreationError when a tab cannot be opened, and MessageDeliveryError when
    the tab-side listener does not answer.
    """

    def __init__(self):
        self._listeners: Dict[TabEvent, List[Listener]] = defaultdict(list)

    def add_listener(self, event: TabEvent, callback: Listener) -> None:
        """Register an async callback for a host event"""
        if callback not in self._listeners[event]:
            self._listeners[event].append(callback)

    def remove_listener(self, event: TabEvent, callback: Listener) -> None:
        if callback in self._listeners[event]:
            self._listeners[event].remove(callback)

    async def dispatch(self, event: TabEvent, *args) -> Any:
        """
        Invoke every listener for an event, in registration order.

        A failing listener is logged and skipped; later listeners still run.

        Returns:
            The first non-None listener result (used for MESSAGE replies)
        """
        result = None
        for callback in list(self._listeners[event]):
            try:
                value = await callback(*args)
            except Exception as e:
                get_event_logger().system_error(f"Listener for {event.value} failed", error=e)
                continue
            if result is None and value is not None:
                result = value
        return result

    @abstractmethod
    async def query_tabs(self) -> List[HostTab]:
        """All live tabs in the focused window"""

    @abstractmethod
    async def get_active_tab(self) -> Optional[HostTab]:
        """The focused tab, or None when the window has none"""

    @abstractmethod
    async def get_tab(self, handle: int) -> HostTab:
        """Look up one tab (raises TabNotFoundError)"""

    @abstractmethod
    async def activate_tab(self, handle: int) -> HostTab:
        """Focus a tab (raises TabNotFoundError)"""

    @abstractmethod
    async def create_tab(self, url: str, active: bool = True) -> HostTab:
        """Open a tab at url (raises TabCreationError)"""

    @abstractmethod
    async def send_message(self, handle: int, message: Dict[str, Any]) -> Any:
        """Deliver a message to the tab-side listener (raises MessageDeliveryError)"""
