"""
Shared pytest fixtures for all tests.
"""
import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set, Tuple

import pytest

from error_handling import MessageDeliveryError, TabCreationError, TabNotFoundError
from organizer_config import SessionConfig, StartupRestoreConfig, TabManagerConfig
from sessions.session_store import SessionStore
from storage.persistent_store import InMemoryStore
from tab_management.tab_host import HostTab, TabEvent, TabHost, TabUpdate
from tab_management.tab_manager import TabManagerDomain
from utils.event_logger import EventLogger, set_event_logger


@dataclass
class FakeTab:
    handle: int
    url: str
    title: str = ""
    scroll_x: int = 0
    scroll_y: int = 0
    listener_ready: bool = True


class FakeTabHost(TabHost):
    """
    In-memory tab host.

    Knobs:
        failing_urls: create_tab raises TabCreationError for these
        fail_sends: per-handle count of upcoming send_message calls that fail
        new_tabs_ready: whether tabs opened by create_tab answer messages at once
        send_delay: seconds every send_message waits before answering
        fail_active_query: get_active_tab raises instead of answering
    """

    def __init__(self, first_handle: int = 100):
        super().__init__()
        self.tabs: Dict[int, FakeTab] = {}
        self.active_handle: Optional[int] = None
        self.sent: List[Tuple[int, Dict[str, Any]]] = []
        self.created: List[Tuple[str, bool]] = []
        self.failing_urls: Set[str] = set()
        self.fail_sends: Dict[int, int] = {}
        self.new_tabs_ready = True
        self.send_delay = 0.0
        self.fail_active_query = False
        self._next_handle = first_handle

    # ----------------- test helpers -----------------

    def open_tab(self, url: str, title: str = "", active: bool = True,
                 scroll: Tuple[int, int] = (0, 0)) -> HostTab:
        """Open a tab without firing any event (as if it existed before)"""
        handle = self._next_handle
        self._next_handle += 1
        self.tabs[handle] = FakeTab(handle, url, title, scroll[0], scroll[1])
        if active:
            self.active_handle = handle
        return self._snapshot(handle)

    async def close_tab(self, handle: int) -> None:
        self.tabs.pop(handle, None)
        if self.active_handle == handle:
            self.active_handle = None
        await self.dispatch(TabEvent.REMOVED, handle)

    def forget_tab(self, handle: int) -> None:
        """Drop a tab silently, as when the close event has not arrived yet"""
        self.tabs.pop(handle, None)
        if self.active_handle == handle:
            self.active_handle = None

    async def navigate(self, handle: int, url: str, title: Optional[str] = None) -> None:
        tab = self.tabs[handle]
        tab.url = url
        if title is not None:
            tab.title = title
        await self.dispatch(TabEvent.UPDATED, handle, TabUpdate(url=url, title=title))

    async def focus(self, handle: int) -> None:
        self.active_handle = handle
        await self.dispatch(TabEvent.ACTIVATED, handle)

    def messages_to(self, handle: int, message_type: Optional[str] = None) -> List[Dict[str, Any]]:
        return [
            message for target, message in self.sent
            if target == handle and (message_type is None or message.get("type") == message_type)
        ]

    def _snapshot(self, handle: int) -> HostTab:
        tab = self.tabs[handle]
        return HostTab(handle=handle, url=tab.url, title=tab.title, active=handle == self.active_handle)

    # ----------------- TabHost -----------------

    async def query_tabs(self) -> List[HostTab]:
        return [self._snapshot(handle) for handle in self.tabs]

    async def get_active_tab(self) -> Optional[HostTab]:
        if self.fail_active_query:
            raise RuntimeError("host unavailable")
        if self.active_handle is None or self.active_handle not in self.tabs:
            return None
        return self._snapshot(self.active_handle)

    async def get_tab(self, handle: int) -> HostTab:
        if handle not in self.tabs:
            raise TabNotFoundError(f"No tab {handle}", tab_handle=handle)
        return self._snapshot(handle)

    async def activate_tab(self, handle: int) -> HostTab:
        if handle not in self.tabs:
            raise TabNotFoundError(f"No tab {handle}", tab_handle=handle)
        self.active_handle = handle
        return self._snapshot(handle)

    async def create_tab(self, url: str, active: bool = True) -> HostTab:
        self.created.append((url, active))
        if url in self.failing_urls:
            raise TabCreationError(f"Refusing to open {url}", url=url)
        handle = self._next_handle
        self._next_handle += 1
        self.tabs[handle] = FakeTab(handle, url, listener_ready=self.new_tabs_ready)
        if active:
            self.active_handle = handle
        return self._snapshot(handle)

    async def send_message(self, handle: int, message: Dict[str, Any]) -> Any:
        if self.send_delay:
            await asyncio.sleep(self.send_delay)
        tab = self.tabs.get(handle)
        if tab is None:
            raise TabNotFoundError(f"No tab {handle}", tab_handle=handle)
        if self.fail_sends.get(handle, 0) > 0:
            self.fail_sends[handle] -= 1
            raise MessageDeliveryError("listener not ready", tab_handle=handle)
        if not tab.listener_ready:
            raise MessageDeliveryError("listener not ready", tab_handle=handle)

        self.sent.append((handle, dict(message)))
        if message.get("type") == "GET_SCROLL":
            return {"scrollX": tab.scroll_x, "scrollY": tab.scroll_y}
        if message.get("type") == "SET_SCROLL":
            tab.scroll_x = message["scrollX"]
            tab.scroll_y = message["scrollY"]
        return {"ok": True}


@pytest.fixture(autouse=True)
def event_logger():
    """Quiet logger per test; tests can inspect its history"""
    logger = EventLogger(debug_mode=False)
    set_event_logger(logger)
    yield logger


@pytest.fixture
def host():
    return FakeTabHost()


@pytest.fixture
def make_host():
    """Builds further hosts, as after a browser restart"""
    return FakeTabHost


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def tab_manager_config():
    return TabManagerConfig(
        scroll_restore_delays=[0.0, 0.005, 0.01, 0.02],
        update_debounce_seconds=0.01,
        tab_message_timeout_seconds=0.5,
    )


@pytest.fixture
def startup_config():
    return StartupRestoreConfig(initial_delay_seconds=0.0, max_attempts=3, retry_interval_seconds=0.01)


@pytest.fixture
def tab_manager(host, store, tab_manager_config):
    return TabManagerDomain(host, store, tab_manager_config)


@pytest.fixture
def session_store(tab_manager, host, store):
    return SessionStore(tab_manager.state, host, store, SessionConfig())


@pytest.fixture
def pin(host, tab_manager):
    """Open a live tab and pin it; returns the tab"""
    async def _pin(url: str, title: str = "", scroll: Tuple[int, int] = (0, 0)) -> HostTab:
        tab = host.open_tab(url, title=title, scroll=scroll)
        result = await tab_manager.add(tab)
        assert result.ok, result.reason
        return tab
    return _pin
