"""
Runtime message routing.

A MessageRouter holds an ordered chain of handlers. Each handler either
answers a message or returns UNHANDLED to pass it along; the first answer wins.

Example:
    >>> router = MessageRouter()
    >>> router.use(TabManagerMessageHandler(tab_manager))
    >>> router.use(SessionMessageHandler(session_store))
    >>> await router.route({"type": "TAB_MANAGER_LIST"}, sender_handle=3)
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from sessions.session_store import SessionStore
from tab_management.tab_host import TabHost
from tab_management.tab_manager import TabManagerDomain
from utils.event_logger import get_event_logger

from . import messages as m


class _Unhandled:
    def __repr__(self) -> str:
        return "UNHANDLED"


UNHANDLED = _Unhandled()


class MessageHandler(ABC):
    """
    Base class for runtime message handlers.

    Example:
        >>> class PingHandler(MessageHandler):
        ...     async def handle(self, message, sender_handle):
        ...         return {"ok": True}
    """

    @abstractmethod
    async def handle(self, message: m.RuntimeMessage, sender_handle: Optional[int]) -> Any:
        """
        Answer a message or decline it.

        Returns:
            The response, or UNHANDLED to let the next handler try
        """


class MessageRouter:
    """Validates inbound messages and runs them through the handler chain"""

    def __init__(self, handlers: Optional[List[MessageHandler]] = None):
        self.handlers: List[MessageHandler] = list(handlers or [])

    def use(self, handler: MessageHandler) -> None:
        self.handlers.append(handler)

    async def route(self, raw: Any, sender_handle: Optional[int] = None) -> Any:
        """
        Route one message.

        Returns:
            The first handler's answer; None for unknown or unhandled types;
            {"ok": False, "reason": ...} for a known type with bad fields
        """
        logger = get_event_logger()
        message_type = raw.get("type") if isinstance(raw, dict) else None
        if message_type not in m.KNOWN_MESSAGE_TYPES:
            logger.message_received(str(message_type), handled=False, sender=sender_handle)
            return None

        logger.message_received(message_type, sender=sender_handle)
        try:
            message = m.parse_message(raw)
        except ValidationError as e:
            errors = "; ".join(
                f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            return {"ok": False, "reason": f"Invalid {message_type}: {errors}"}

        for handler in self.handlers:
            result = await handler.handle(message, sender_handle)
            if result is not UNHANDLED:
                return result
        return None


class TabManagerMessageHandler(MessageHandler):
    """Slot list messages plus the tab-side readiness announcement"""

    def __init__(self, tab_manager: TabManagerDomain):
        self.tab_manager = tab_manager

    async def handle(self, message: m.RuntimeMessage, sender_handle: Optional[int]) -> Any:
        tm = self.tab_manager

        if isinstance(message, m.TabManagerAdd):
            tab = await tm.active_tab()
            if tab is None:
                return {"ok": False, "reason": "No active tab"}
            return (await tm.add(tab)).to_dict()

        if isinstance(message, m.TabManagerRemove):
            if message.tab_handle is not None:
                await tm.remove(message.tab_handle)
            else:
                await tm.remove_slot(message.slot)
            return {"ok": True}

        if isinstance(message, m.TabManagerList):
            await tm.reconcile()
            return [entry.to_dict() for entry in tm.list()]

        if isinstance(message, m.TabManagerJump):
            return (await tm.jump(message.slot)).to_dict()

        if isinstance(message, m.TabManagerCycle):
            return (await tm.cycle(message.direction)).to_dict()

        if isinstance(message, m.TabManagerSaveScroll):
            await tm.save_current_tab_scroll()
            return {"ok": True}

        if isinstance(message, m.TabManagerReorder):
            return (await tm.reorder(message.entries)).to_dict()

        if isinstance(message, m.ContentScriptReady):
            if sender_handle is None:
                return {"ok": True}
            position = tm.consume_pending_scroll_restore(sender_handle)
            if position is None:
                return {"ok": True}
            await tm.deliver_scroll_once(sender_handle, position)
            return {"ok": True, "scrollX": position.x, "scrollY": position.y}

        return UNHANDLED


class SessionMessageHandler(MessageHandler):
    def __init__(self, session_store: SessionStore):
        self.session_store = session_store

    async def handle(self, message: m.RuntimeMessage, sender_handle: Optional[int]) -> Any:
        store = self.session_store

        if isinstance(message, m.SessionSave):
            return (await store.save(message.name)).to_dict()

        if isinstance(message, m.SessionList):
            return {"sessions": [session.to_dict() for session in await store.list()]}

        if isinstance(message, m.SessionLoadPlan):
            result = await store.load_plan(message.name)
            if not result:
                return result.to_dict()
            return {"ok": True, "summary": result.data["summary"].to_dict()}

        if isinstance(message, m.SessionLoad):
            return (await store.load(message.name)).to_dict()

        if isinstance(message, m.SessionDelete):
            return (await store.delete(message.name)).to_dict()

        if isinstance(message, m.SessionRename):
            return (await store.rename(message.old_name, message.new_name)).to_dict()

        if isinstance(message, m.SessionUpdate):
            return (await store.update(message.name)).to_dict()

        if isinstance(message, m.SessionReplace):
            return (await store.replace(message.old_name, message.new_name)).to_dict()

        return UNHANDLED


class MiscMessageHandler(MessageHandler):
    def __init__(self, host: TabHost):
        self.host = host

    async def handle(self, message: m.RuntimeMessage, sender_handle: Optional[int]) -> Any:
        if isinstance(message, m.GetCurrentTab):
            try:
                tab = await self.host.get_active_tab()
            except Exception as e:
                get_event_logger().best_effort_failed("active tab query", error=e)
                return None
            return _tab_to_dict(tab) if tab is not None else None

        if isinstance(message, m.SwitchToTab):
            try:
                await self.host.activate_tab(message.tab_handle)
            except Exception as e:
                get_event_logger().best_effort_failed("switch to tab", tab_handle=message.tab_handle, error=e)
            return {"ok": True}

        return UNHANDLED


def _tab_to_dict(tab) -> Dict[str, Any]:
    return {"handle": tab.handle, "url": tab.url, "title": tab.title, "active": tab.active}
