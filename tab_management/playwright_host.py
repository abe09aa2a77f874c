"""
PlaywrightTabHost - TabHost backed by a Playwright BrowserContext.

Every page of the context is a tab. Handles are integers handed out in the
order pages are first seen, counting up from a random per-process base so a
restarted host does not reuse the previous run's numbers. The tab-side
listener is installed with add_init_script (and evaluated once into pages that
already exist), and it reports back through a context-wide binding.
"""
from __future__ import annotations

import asyncio
import random
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit

from playwright.async_api import BrowserContext, Frame, Page
from playwright.async_api import Error as PlaywrightError

from error_handling import MessageDeliveryError, TabCreationError, TabNotFoundError
from utils.event_logger import get_event_logger

from .content_script import BINDING_NAME, CONTENT_SCRIPT, DELIVER_EXPRESSION
from .tab_host import HostTab, TabEvent, TabHost, TabUpdate

# Schemes a page may be navigated to; anything else is refused like a
# browser refuses to open privileged pages from an extension
OPENABLE_SCHEMES = ("http", "https", "file", "about", "data")

# Random handle bases stay below this so handles fit in 31 bits
HANDLE_BASE_LIMIT = 1 << 30


class PlaywrightTabHost(TabHost):
    """
    Tab host over a live browser context.

    Example:
        >>> context = await provider.get_context()
        >>> host = PlaywrightTabHost(context)
        >>> await host.start()
        >>> tabs = await host.query_tabs()
    """

    def __init__(self, context: BrowserContext, first_handle: Optional[int] = None):
        super().__init__()
        self.context = context
        self._pages: Dict[int, Page] = {}
        self._handles: Dict[Page, int] = {}
        self._next_handle = first_handle if first_handle is not None else random.randrange(1, HANDLE_BASE_LIMIT)
        self._pending_creates = 0
        self._active_handle: Optional[int] = None
        self._started = False

    async def start(self) -> None:
        """Install the binding and listener and adopt the pages already open"""
        if self._started:
            return
        self._started = True

        await self.context.expose_binding(BINDING_NAME, self._on_binding)
        await self.context.add_init_script(script=CONTENT_SCRIPT)
        self.context.on("page", self._on_page)

        for page in list(self.context.pages):
            self._register(page)
            try:
                await page.evaluate(CONTENT_SCRIPT)
            except PlaywrightError as e:
                get_event_logger().best_effort_failed(
                    "listener install", tab_handle=self._handles.get(page), error=e
                )

        if self._active_handle is None and self._pages:
            self._active_handle = next(iter(self._pages))

    # ----------------- page bookkeeping -----------------

    def _register(self, page: Page) -> int:
        existing = self._handles.get(page)
        if existing is not None:
            return existing

        handle = self._next_handle
        self._next_handle += 1
        self._pages[handle] = page
        self._handles[page] = handle

        page.on("close", self._on_close)
        page.on("framenavigated", self._on_frame_navigated)
        page.on("load", self._on_load)
        return handle

    def _handle_for(self, page: Page) -> Optional[int]:
        return self._handles.get(page)

    def _require(self, handle: int) -> Page:
        page = self._pages.get(handle)
        if page is None or page.is_closed():
            raise TabNotFoundError(f"No tab with handle {handle}", tab_handle=handle)
        return page

    async def _set_active(self, handle: Optional[int]) -> None:
        if handle is None or handle == self._active_handle:
            return
        self._active_handle = handle
        await self.dispatch(TabEvent.ACTIVATED, handle)

    async def _on_page(self, page: Page) -> None:
        if page in self._handles or self._pending_creates:
            # create_tab decides whether its own page takes focus
            self._register(page)
            return
        handle = self._register(page)
        # Browsers focus newly opened tabs
        await self._set_active(handle)

    async def _on_close(self, page: Page) -> None:
        handle = self._handles.pop(page, None)
        if handle is None:
            return
        self._pages.pop(handle, None)
        if self._active_handle == handle:
            self._active_handle = None
        await self.dispatch(TabEvent.REMOVED, handle)

    async def _on_frame_navigated(self, frame: Frame) -> None:
        if frame.parent_frame is not None:
            return
        handle = self._handle_for(frame.page)
        if handle is not None:
            await self.dispatch(TabEvent.UPDATED, handle, TabUpdate(url=frame.url))

    async def _on_load(self, page: Page) -> None:
        handle = self._handle_for(page)
        if handle is None:
            return
        try:
            title = await page.title()
        except PlaywrightError:
            return
        await self.dispatch(TabEvent.UPDATED, handle, TabUpdate(url=page.url, title=title))

    async def _on_binding(self, source: Dict[str, Any], payload: Any) -> Any:
        if not isinstance(payload, dict):
            return None
        handle = self._handle_for(source.get("page"))
        kind = payload.get("kind")

        if kind == "command":
            await self.dispatch(TabEvent.COMMAND, str(payload.get("command", "")))
            return None
        if kind == "activated":
            await self._set_active(handle)
            return None
        if kind == "message":
            return await self.dispatch(TabEvent.MESSAGE, payload.get("message") or {}, handle)
        return None

    async def _snapshot(self, handle: int, page: Page) -> HostTab:
        try:
            title = await page.title()
        except PlaywrightError:
            title = ""
        return HostTab(handle=handle, url=page.url, title=title, active=handle == self._active_handle)

    # ----------------- TabHost -----------------

    async def query_tabs(self) -> List[HostTab]:
        return [
            await self._snapshot(handle, page)
            for handle, page in list(self._pages.items())
            if not page.is_closed()
        ]

    async def get_active_tab(self) -> Optional[HostTab]:
        handle = self._active_handle
        if handle is None or handle not in self._pages:
            return None
        return await self._snapshot(handle, self._pages[handle])

    async def get_tab(self, handle: int) -> HostTab:
        return await self._snapshot(handle, self._require(handle))

    async def activate_tab(self, handle: int) -> HostTab:
        page = self._require(handle)
        try:
            await page.bring_to_front()
        except PlaywrightError as e:
            raise TabNotFoundError(f"Could not focus tab {handle}: {e}", tab_handle=handle) from e
        await self._set_active(handle)
        return await self._snapshot(handle, page)

    async def create_tab(self, url: str, active: bool = True) -> HostTab:
        scheme = urlsplit(url).scheme.lower()
        if scheme not in OPENABLE_SCHEMES:
            raise TabCreationError(f"Refusing to open {url!r}", url=url)

        previous = self._active_handle
        self._pending_creates += 1
        try:
            page = await self.context.new_page()
            handle = self._register(page)
        except PlaywrightError as e:
            raise TabCreationError(f"Could not open a tab for {url}: {e}", url=url) from e
        finally:
            self._pending_creates -= 1

        if active:
            await self._set_active(handle)

        try:
            await page.goto(url, wait_until="commit")
        except PlaywrightError as e:
            # The tab exists even if the page failed to load, as in a browser
            get_event_logger().best_effort_failed("navigate new tab", tab_handle=handle, error=e, url=url)

        if not active and previous in self._pages:
            await self.activate_tab(previous)
        return HostTab(handle=handle, url=page.url or url, title="", active=active)

    async def send_message(self, handle: int, message: Dict[str, Any]) -> Any:
        page = self._require(handle)
        try:
            result = await page.evaluate(DELIVER_EXPRESSION, message)
        except PlaywrightError as e:
            raise MessageDeliveryError(f"Tab {handle} did not take {message.get('type')}: {e}",
                                       tab_handle=handle) from e
        if isinstance(result, dict) and result.get("__noListener"):
            raise MessageDeliveryError(f"Tab {handle} has no listener yet", tab_handle=handle)
        return result

    async def close_tab(self, handle: int) -> None:
        page = self._require(handle)
        await page.close()
        # Let the close event run before returning
        await asyncio.sleep(0)
