#!/usr/bin/env python3
"""
Tab Slot Organizer - Main Entry Point

Launches a browser through Playwright, wires the organizer into it and keeps
running until the browser is closed.

Usage:
    python main.py --state-file ~/.tab_organizer.json
    python main.py --config organizer.json --headless
"""
from __future__ import annotations

import argparse
import asyncio
import sys
from dataclasses import dataclass
from typing import Optional

from browser_provider import create_browser_provider
from error_handling import ConfigurationError, ErrorHandler
from lifecycle.startup_restore import LifecycleReconciler
from organizer_config import OrganizerConfig
from routing.command_router import CommandRouter
from routing.message_router import (
    MessageRouter,
    MiscMessageHandler,
    SessionMessageHandler,
    TabManagerMessageHandler,
)
from sessions.session_store import SessionStore
from storage.migrations import migrate_storage_if_needed
from storage.persistent_store import JsonFileStore, PersistentStore
from tab_management.playwright_host import PlaywrightTabHost
from tab_management.tab_host import TabEvent, TabHost
from tab_management.tab_manager import TabManagerDomain, TabManagerHooks
from utils.event_logger import EventLogger, get_event_logger, set_event_logger


@dataclass
class OrganizerRuntime:
    """Everything bootstrap_runtime wired together"""
    config: OrganizerConfig
    host: TabHost
    store: PersistentStore
    tab_manager: TabManagerDomain
    session_store: SessionStore
    reconciler: LifecycleReconciler
    command_router: CommandRouter
    message_router: MessageRouter
    error_handler: ErrorHandler
    startup_task: Optional[asyncio.Task] = None

    async def shutdown(self) -> None:
        """Flush pending writes, stop background retries and report absorbed failures"""
        await self.tab_manager.flush()
        self.tab_manager.scroll_restore.cancel_all()
        if self.startup_task is not None and not self.startup_task.done():
            self.startup_task.cancel()

        summary = self.error_handler.get_error_summary()
        if summary["total_errors"]:
            counts = ", ".join(f"{name} x{count}" for name, count in sorted(summary["error_counts"].items()))
            get_event_logger().system_warning(
                f"{summary['total_errors']} best-effort failures this run ({counts})",
                error_summary=summary,
            )


async def bootstrap_runtime(
    host: TabHost,
    config: Optional[OrganizerConfig] = None,
    store: Optional[PersistentStore] = None,
    hooks: Optional[TabManagerHooks] = None,
) -> OrganizerRuntime:
    """
    Build the organizer over a host and run the startup sequence.

    Args:
        host: Started tab host
        config: Organizer configuration (defaults when omitted)
        store: Persistent store; a JsonFileStore at config.storage.path when omitted
        hooks: Bookkeeping to run on tab close/activation

    Returns:
        OrganizerRuntime with every component wired in
    """
    config = config or OrganizerConfig()
    store = store or JsonFileStore(config.storage.path)
    error_handler = ErrorHandler()

    await migrate_storage_if_needed(store)

    tab_manager = TabManagerDomain(host, store, config.tab_manager, error_handler=error_handler)
    session_store = SessionStore(
        tab_manager.state,
        host,
        store,
        config.sessions,
        max_slots=config.tab_manager.max_slots,
        error_handler=error_handler,
    )
    tab_manager.register_lifecycle_listeners(hooks)

    command_router = CommandRouter(tab_manager)
    host.add_listener(TabEvent.COMMAND, command_router.handle)

    message_router = MessageRouter([
        TabManagerMessageHandler(tab_manager),
        SessionMessageHandler(session_store),
        MiscMessageHandler(host),
    ])
    host.add_listener(TabEvent.MESSAGE, message_router.route)

    await tab_manager.capture_initial_active_tab()
    await tab_manager.ensure_loaded()

    reconciler = LifecycleReconciler(tab_manager, session_store, host, config.startup)
    startup_task = await reconciler.on_startup()
    if startup_task is None:
        await tab_manager.reconcile()

    get_event_logger().system_info(f"Organizer ready ({len(tab_manager.list())} pinned slots)")
    return OrganizerRuntime(
        config=config,
        host=host,
        store=store,
        tab_manager=tab_manager,
        session_store=session_store,
        reconciler=reconciler,
        command_router=command_router,
        message_router=message_router,
        error_handler=error_handler,
        startup_task=startup_task,
    )


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Keyboard-driven pinned tab slots for a Playwright browser")
    parser.add_argument("--config", help="JSON configuration file")
    parser.add_argument("--state-file", help="Where to keep slots and sessions (overrides config)")
    parser.add_argument("--headless", action="store_true", help="Run the browser headless")
    return parser.parse_args(argv)


def load_config(args: argparse.Namespace) -> OrganizerConfig:
    config = OrganizerConfig.from_file(args.config) if args.config else OrganizerConfig()
    if args.state_file:
        config.storage.path = args.state_file
    if args.headless:
        config.browser.headless = True
    return config


async def run(config: OrganizerConfig) -> None:
    set_event_logger(EventLogger(debug_mode=config.logging.debug_mode))
    logger = get_event_logger()

    provider = create_browser_provider(config.browser)
    context = await provider.get_context()
    closed = asyncio.Event()
    context.on("close", lambda _: closed.set())

    host = PlaywrightTabHost(context)
    await host.start()
    if not context.pages:
        await host.create_tab("about:blank")

    runtime = await bootstrap_runtime(host, config)
    logger.system_info("🚀 Browser running - close it to exit")
    try:
        await closed.wait()
    finally:
        await runtime.shutdown()
        await provider.close()
        logger.system_info("👋 Organizer stopped")


def main(argv=None) -> int:
    args = parse_args(argv)
    try:
        config = load_config(args)
    except ConfigurationError as e:
        print(f"❌ {e}")
        return 2

    try:
        asyncio.run(run(config))
    except KeyboardInterrupt:
        print("\n👋 Interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
