"""
Tests for the LifecycleReconciler startup path.
"""
from lifecycle.startup_restore import SHOW_SESSION_RESTORE, LifecycleReconciler
from organizer_config import StartupRestoreConfig
from sessions.session_models import Session, SessionEntry
from sessions.session_store import SessionStore
from storage.persistent_store import SESSIONS_KEY, SLOT_LIST_KEY, InMemoryStore
from tab_management.slot_entry import SlotEntry
from tab_management.tab_manager import TabManagerDomain


def stale_slots():
    return [
        SlotEntry(tab_handle=7, url="https://a.test", title="A", slot=1).to_dict(),
        SlotEntry(tab_handle=8, url="https://b.test", title="B", slot=2, scroll_y=90).to_dict(),
    ]


def build(host, tab_manager_config, startup_config, initial):
    store = InMemoryStore(initial)
    tab_manager = TabManagerDomain(host, store, tab_manager_config)
    sessions = SessionStore(tab_manager.state, host, store)
    reconciler = LifecycleReconciler(tab_manager, sessions, host, startup_config)
    return store, tab_manager, reconciler


async def test_no_sessions_can_keep_handles(host, tab_manager_config):
    config = StartupRestoreConfig(initial_delay_seconds=0.0, discard_stale_handles=False)
    store, tab_manager, reconciler = build(
        host, tab_manager_config, config, {SLOT_LIST_KEY: stale_slots()}
    )

    assert await reconciler.on_startup() is None

    await tab_manager.ensure_loaded()
    assert [e.tab_handle for e in tab_manager.list()] == [7, 8]
    assert store.write_count == 0
    assert host.sent == []


async def test_no_sessions_discards_stale_handles(host, tab_manager_config, startup_config):
    store, tab_manager, reconciler = build(
        host, tab_manager_config, startup_config, {SLOT_LIST_KEY: stale_slots()}
    )

    assert await reconciler.on_startup() is None

    entries = tab_manager.list()
    assert [e.url for e in entries] == ["https://a.test", "https://b.test"]
    assert all(e.tab_handle is None and e.closed for e in entries)
    stored = await store.get(SLOT_LIST_KEY)
    assert stored[1]["tab_handle"] is None


async def test_sessions_clear_list_and_prompt_focused_tab(host, tab_manager_config, startup_config):
    session = Session("Work", [SessionEntry("https://a.test")])
    store, tab_manager, reconciler = build(
        host, tab_manager_config, startup_config,
        {SLOT_LIST_KEY: stale_slots(), SESSIONS_KEY: [session.to_dict()]},
    )
    tab = host.open_tab("https://start.test")

    task = await reconciler.on_startup()

    assert task is not None
    assert tab_manager.list() == []
    assert await store.get(SLOT_LIST_KEY) == []
    assert await reconciler.wait() is True
    assert host.messages_to(tab.handle, "SHOW_SESSION_RESTORE") == [SHOW_SESSION_RESTORE]
    assert len(await store.get(SESSIONS_KEY)) == 1


async def test_prompt_retries_while_listener_starts(host, tab_manager, session_store, startup_config, pin):
    await pin("https://a.test")
    await session_store.save("Work")
    tab = host.open_tab("https://fresh.test")
    host.fail_sends[tab.handle] = 2
    reconciler = LifecycleReconciler(tab_manager, session_store, host, startup_config)

    await reconciler.on_startup()

    assert await reconciler.wait() is True
    assert len(host.messages_to(tab.handle, "SHOW_SESSION_RESTORE")) == 1


async def test_prompt_gives_up_after_max_attempts(host, tab_manager, session_store, startup_config, pin):
    await pin("https://a.test")
    await session_store.save("Work")
    tab = host.open_tab("https://fresh.test")
    host.fail_sends[tab.handle] = 10
    reconciler = LifecycleReconciler(tab_manager, session_store, host, startup_config)

    await reconciler.on_startup()

    assert await reconciler.wait() is False
    assert host.fail_sends[tab.handle] == 10 - startup_config.max_attempts
    assert host.messages_to(tab.handle, "SHOW_SESSION_RESTORE") == []


async def test_prompt_without_focused_tab(host, tab_manager, session_store, startup_config, pin):
    tab = await pin("https://a.test")
    await session_store.save("Work")
    host.forget_tab(tab.handle)
    reconciler = LifecycleReconciler(tab_manager, session_store, host, startup_config)

    await reconciler.on_startup()

    assert await reconciler.wait() is False
    assert all(message["type"] != "SHOW_SESSION_RESTORE" for _, message in host.sent)


async def test_second_startup_retires_first_prompt(host, tab_manager, session_store, pin):
    await pin("https://a.test")
    await session_store.save("Work")
    tab = host.open_tab("https://fresh.test")
    host.fail_sends[tab.handle] = 100
    config = StartupRestoreConfig(initial_delay_seconds=0.0, max_attempts=50, retry_interval_seconds=0.01)
    reconciler = LifecycleReconciler(tab_manager, session_store, host, config)

    first = await reconciler.on_startup()
    second = await reconciler.on_startup()
    host.fail_sends[tab.handle] = 0

    assert await first is False
    assert await second is True
    assert len(host.messages_to(tab.handle, "SHOW_SESSION_RESTORE")) == 1
