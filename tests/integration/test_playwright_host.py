"""
Integration tests for PlaywrightTabHost against a real headless Chromium.

Tests:
- Tab-side listener answers GET_SCROLL / SET_SCROLL
- Messages from the page reach the MESSAGE listener with the sender's handle
- Refused schemes raise TabCreationError
- Closing a page reports REMOVED
"""
import asyncio

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from error_handling import MessageDeliveryError, TabCreationError
from tab_management.content_script import BINDING_NAME
from tab_management.playwright_host import PlaywrightTabHost
from tab_management.tab_host import TabEvent

pytestmark = pytest.mark.browser

TALL_PAGE = "data:text/html,<title>Tall</title><body style='height:5000px;width:3000px'>tall</body>"


@pytest.fixture
async def host():
    """Headless context with the organizer host started"""
    async with async_playwright() as p:
        try:
            browser = await p.chromium.launch(headless=True)
        except PlaywrightError as e:
            pytest.skip(f"Chromium not available: {e}")
        context = await browser.new_context(viewport={"width": 800, "height": 600})
        tab_host = PlaywrightTabHost(context)
        await tab_host.start()
        yield tab_host
        await browser.close()


async def send_when_ready(host, handle, message, attempts=20):
    """The listener installs on document start; retry briefly like the organizer does"""
    for _ in range(attempts - 1):
        try:
            return await host.send_message(handle, message)
        except MessageDeliveryError:
            await asyncio.sleep(0.05)
    return await host.send_message(handle, message)


async def test_scroll_round_trip(host):
    tab = await host.create_tab(TALL_PAGE)
    await host._pages[tab.handle].wait_for_load_state("load")

    await send_when_ready(host, tab.handle, {"type": "SET_SCROLL", "scrollX": 0, "scrollY": 900})
    position = await send_when_ready(host, tab.handle, {"type": "GET_SCROLL"})

    assert position["scrollY"] == 900
    assert (await host.get_active_tab()).handle == tab.handle


async def test_page_messages_reach_router(host):
    received = []

    async def on_message(message, sender_handle):
        received.append((message, sender_handle))
        return {"ok": True, "echo": message.get("type")}

    host.add_listener(TabEvent.MESSAGE, on_message)
    tab = await host.create_tab(TALL_PAGE)
    page = host._pages[tab.handle]
    await send_when_ready(host, tab.handle, {"type": "GET_SCROLL"})

    reply = await page.evaluate(
        f"() => window.{BINDING_NAME}({{kind: 'message', message: {{type: 'TAB_MANAGER_LIST'}}}})"
    )

    assert reply == {"ok": True, "echo": "TAB_MANAGER_LIST"}
    assert ({"type": "TAB_MANAGER_LIST"}, tab.handle) in received


async def test_background_tab_keeps_focus(host):
    activated = []

    async def on_activated(handle):
        activated.append(handle)

    host.add_listener(TabEvent.ACTIVATED, on_activated)
    first = await host.create_tab(TALL_PAGE)
    second = await host.create_tab(TALL_PAGE, active=False)

    assert second.handle != first.handle
    assert activated == [first.handle]
    assert (await host.get_active_tab()).handle == first.handle
    assert {t.handle for t in await host.query_tabs()} >= {first.handle, second.handle}


@pytest.mark.parametrize("url", ["chrome://settings", "javascript:alert(1)"])
async def test_privileged_urls_are_refused(host, url):
    with pytest.raises(TabCreationError):
        await host.create_tab(url)


async def test_close_reports_removed(host):
    removed = []

    async def on_removed(handle):
        removed.append(handle)

    host.add_listener(TabEvent.REMOVED, on_removed)
    tab = await host.create_tab("about:blank")

    await host.close_tab(tab.handle)
    for _ in range(20):
        if removed:
            break
        await asyncio.sleep(0.05)

    assert removed == [tab.handle]
    assert tab.handle not in {t.handle for t in await host.query_tabs()}
