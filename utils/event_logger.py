"""
Simple, robust event-driven logging system for the tab slot organizer.

Design principles:
- Non-blocking: logging errors never break the organizer
- Simple: minimal API surface
- Flexible: easy to customize output via callbacks
"""
from enum import Enum
from typing import Any, Dict, List, Optional, Callable
from dataclasses import dataclass, field
from datetime import datetime
import time


class EventType(str, Enum):
    """All event types that can be logged"""
    # Slot events
    SLOT_ADDED = "slot_added"
    SLOT_REVIVED = "slot_revived"
    SLOT_REMOVED = "slot_removed"
    SLOT_CLOSED = "slot_closed"
    SLOT_DROPPED = "slot_dropped"
    SLOTS_RECONCILED = "slots_reconciled"
    SLOTS_REORDERED = "slots_reordered"
    SLOTS_CLEARED = "slots_cleared"
    SLOT_JUMP = "slot_jump"
    SLOT_LIST_FULL = "slot_list_full"

    # Scroll events
    SCROLL_CAPTURED = "scroll_captured"
    SCROLL_RESTORE_SCHEDULED = "scroll_restore_scheduled"
    SCROLL_RESTORE_DELIVERED = "scroll_restore_delivered"
    SCROLL_RESTORE_SUPERSEDED = "scroll_restore_superseded"
    SCROLL_RESTORE_EXHAUSTED = "scroll_restore_exhausted"

    # Session events
    SESSION_SAVED = "session_saved"
    SESSION_UPDATED = "session_updated"
    SESSION_LOADED = "session_loaded"
    SESSION_DELETED = "session_deleted"
    SESSION_RENAMED = "session_renamed"
    SESSION_REJECTED = "session_rejected"

    # Lifecycle events
    STARTUP_RESTORE = "startup_restore"
    STORAGE_MIGRATED = "storage_migrated"

    # Routing events
    COMMAND_RECEIVED = "command_received"
    MESSAGE_RECEIVED = "message_received"

    # Best-effort failures
    BEST_EFFORT_FAILED = "best_effort_failed"

    # System events
    SYSTEM_INFO = "system_info"
    SYSTEM_WARNING = "system_warning"
    SYSTEM_ERROR = "system_error"
    SYSTEM_DEBUG = "system_debug"


@dataclass
class OrganizerEvent:
    """Structured event data"""
    event_type: EventType
    message: str
    timestamp: float = field(default_factory=time.time)
    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, SUCCESS
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            "event_type": self.event_type.value,
            "message": self.message,
            "timestamp": self.timestamp,
            "timestamp_iso": datetime.fromtimestamp(self.timestamp).isoformat(),
            "level": self.level,
            "details": self.details
        }


class EventLogger:
    """
    Simple, robust event logger.

    In debug mode: prints directly to console
    In normal mode: only calls callbacks (no prints)
    """

    def __init__(self, debug_mode: bool = True, max_history: int = 1000):
        self.debug_mode = debug_mode
        self._callbacks: List[Callable[[OrganizerEvent], None]] = []
        self._event_history: List[OrganizerEvent] = []
        self._max_history = max_history

    def register_callback(self, callback: Callable[[OrganizerEvent], None]) -> None:
        """Register a callback for all events"""
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def unregister_callback(self, callback: Callable[[OrganizerEvent], None]) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def history(self, event_type: Optional[EventType] = None) -> List[OrganizerEvent]:
        """Return recorded events, optionally filtered by type"""
        if event_type is None:
            return list(self._event_history)
        return [event for event in self._event_history if event.event_type == event_type]

    def clear_history(self) -> None:
        self._event_history.clear()

    def _safe_emit(self, event: OrganizerEvent) -> None:
        """Safely emit an event - never raises exceptions"""
        # Store in history
        try:
            self._event_history.append(event)
            if len(self._event_history) > self._max_history:
                self._event_history.pop(0)
        except Exception:
            pass  # Ignore history errors

        # Debug mode: print directly
        if self.debug_mode:
            try:
                self._print_event(event)
            except Exception:
                pass  # Ignore print errors

        # Call callbacks (normal mode or in addition to debug prints)
        for callback in list(self._callbacks):
            try:
                callback(event)
            except Exception:
                pass  # Ignore callback errors

    def _print_event(self, event: OrganizerEvent) -> None:
        """Print event in debug mode"""
        level_emoji = {
            "DEBUG": "🔍",
            "INFO": "ℹ️",
            "WARNING": "⚠️",
            "ERROR": "❌",
            "SUCCESS": "✅"
        }
        emoji = level_emoji.get(event.level, "•")
        print(f"{emoji} {event.message}")

        # Print important details
        if event.details:
            for key, value in event.details.items():
                if value is not None and isinstance(value, (str, int, float, bool)):
                    print(f"   {key}: {value}")

    def emit(self, event_type: EventType, message: str, level: str = "INFO", **details) -> None:
        """Emit an event - safe wrapper that never raises"""
        try:
            event = OrganizerEvent(
                event_type=event_type,
                message=message,
                level=level,
                details=details
            )
            self._safe_emit(event)
        except Exception:
            # Last resort: if even creating the event fails, try to print in debug mode
            if self.debug_mode:
                try:
                    print(f"⚠️ Event logger error: {message}")
                except Exception:
                    pass

    # Convenience methods - emit() already swallows errors
    def slot_added(self, slot: int, tab_handle: int, url: str = None, **details):
        msg = f"Pinned tab {tab_handle} to slot {slot}"
        if url:
            msg += f" ({url})"
        self.emit(EventType.SLOT_ADDED, msg, "SUCCESS", slot=slot, tab_handle=tab_handle, url=url, **details)

    def slot_revived(self, slot: int, tab_handle: int, url: str = None, **details):
        self.emit(EventType.SLOT_REVIVED, f"Revived slot {slot} with tab {tab_handle}", "INFO",
                  slot=slot, tab_handle=tab_handle, url=url, **details)

    def slot_removed(self, tab_handle: int, removed: int, **details):
        self.emit(EventType.SLOT_REMOVED, f"Removed {removed} slot(s) for tab {tab_handle}", "INFO",
                  tab_handle=tab_handle, removed=removed, **details)

    def slot_closed(self, slot: int, tab_handle: int, **details):
        self.emit(EventType.SLOT_CLOSED, f"Slot {slot} lost its tab {tab_handle}", "DEBUG",
                  slot=slot, tab_handle=tab_handle, **details)

    def slot_dropped(self, slot: int, url: str, reason: str = None, **details):
        msg = f"Dropped slot {slot} ({url})"
        if reason:
            msg += f" - {reason}"
        self.emit(EventType.SLOT_DROPPED, msg, "WARNING", slot=slot, url=url, reason=reason, **details)

    def slots_reconciled(self, total: int, closed: int, changed: bool, **details):
        self.emit(EventType.SLOTS_RECONCILED, f"Reconciled {total} slot(s), {closed} closed", "DEBUG",
                  total=total, closed=closed, changed=changed, **details)

    def slot_list_full(self, max_slots: int, **details):
        self.emit(EventType.SLOT_LIST_FULL, f"Slot list is full (max {max_slots})", "WARNING",
                  max_slots=max_slots, **details)

    def slot_jump(self, slot: int, tab_handle: Optional[int], reopened: bool = False, **details):
        action = "Reopened" if reopened else "Jumped to"
        self.emit(EventType.SLOT_JUMP, f"{action} slot {slot} (tab {tab_handle})", "INFO",
                  slot=slot, tab_handle=tab_handle, reopened=reopened, **details)

    def scroll_captured(self, tab_handle: int, scroll_x: int, scroll_y: int, **details):
        self.emit(EventType.SCROLL_CAPTURED, f"Captured scroll ({scroll_x}, {scroll_y}) for tab {tab_handle}",
                  "DEBUG", tab_handle=tab_handle, scroll_x=scroll_x, scroll_y=scroll_y, **details)

    def scroll_restore(self, event_type: EventType, tab_handle: int, token: int, **details):
        messages = {
            EventType.SCROLL_RESTORE_SCHEDULED: "Scheduled scroll restore",
            EventType.SCROLL_RESTORE_DELIVERED: "Delivered scroll restore",
            EventType.SCROLL_RESTORE_SUPERSEDED: "Abandoned superseded scroll restore",
            EventType.SCROLL_RESTORE_EXHAUSTED: "Gave up on scroll restore",
        }
        msg = f"{messages.get(event_type, 'Scroll restore')} for tab {tab_handle} [token {token}]"
        self.emit(event_type, msg, "DEBUG", tab_handle=tab_handle, token=token, **details)

    def session_event(self, event_type: EventType, name: str, message: str, level: str = "INFO", **details):
        self.emit(event_type, message, level, name=name, **details)

    def startup_restore(self, message: str, level: str = "INFO", **details):
        self.emit(EventType.STARTUP_RESTORE, message, level, **details)

    def best_effort_failed(self, operation: str, tab_handle: Optional[int] = None, error: Exception = None, **details):
        msg = f"Best-effort {operation} failed"
        if tab_handle is not None:
            msg += f" for tab {tab_handle}"
        if error:
            msg += f" - {error}"
        self.emit(EventType.BEST_EFFORT_FAILED, msg, "DEBUG", operation=operation,
                  tab_handle=tab_handle, error=str(error) if error else None, **details)

    def command_received(self, command: str, **details):
        self.emit(EventType.COMMAND_RECEIVED, f"Command: {command}", "DEBUG", command=command, **details)

    def message_received(self, message_type: str, **details):
        self.emit(EventType.MESSAGE_RECEIVED, f"Message: {message_type}", "DEBUG",
                  message_type=message_type, **details)

    def system_info(self, message: str, **details):
        self.emit(EventType.SYSTEM_INFO, message, "INFO", **details)

    def system_warning(self, message: str, **details):
        self.emit(EventType.SYSTEM_WARNING, message, "WARNING", **details)

    def system_error(self, message: str, error: Exception = None, **details):
        msg = message
        if error:
            msg += f" - {str(error)}"
        self.emit(EventType.SYSTEM_ERROR, msg, "ERROR", error=str(error) if error else None, **details)

    def system_debug(self, message: str, **details):
        self.emit(EventType.SYSTEM_DEBUG, message, "DEBUG", **details)


# Global instance
_global_event_logger: Optional[EventLogger] = None

def get_event_logger() -> EventLogger:
    """Get the global event logger instance"""
    global _global_event_logger
    if _global_event_logger is None:
        _global_event_logger = EventLogger(debug_mode=True)
    return _global_event_logger

def set_event_logger(logger: EventLogger) -> None:
    """Set the global event logger instance"""
    global _global_event_logger
    _global_event_logger = logger
