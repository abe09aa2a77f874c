"""
Tests for the small shared types: SlotEntry, OperationResult, ErrorHandler, EventLogger.
"""
from error_handling import (
    ErrorHandler,
    MessageDeliveryError,
    RecoveryStrategy,
    StorageError,
    TabCreationError,
)
from operation_result import OperationResult
from tab_management.slot_entry import ScrollPosition, SlotEntry
from utils.event_logger import EventLogger, EventType


class TestSlotEntry:
    def test_from_dict_coerces_bad_values(self):
        entry = SlotEntry.from_dict({"tab_handle": "12", "url": "https://a.test", "scroll_y": "33.9",
                                     "scroll_x": -4, "slot": None})
        assert entry.tab_handle == 12
        assert (entry.scroll_x, entry.scroll_y) == (0, 33)
        assert entry.slot == 0
        assert entry.closed is False

    def test_dict_round_trip_keeps_closed_entries(self):
        entry = SlotEntry(tab_handle=None, url="https://a.test", title="A", scroll_y=10, slot=2, closed=True)
        assert SlotEntry.from_dict(entry.to_dict()) == entry

    def test_mark_closed_and_revive(self):
        entry = SlotEntry(tab_handle=1, url="https://a.test", title="Old")
        assert entry.mark_closed()
        assert not entry.mark_closed()

        entry.revive(7, title="New")
        assert (entry.tab_handle, entry.closed, entry.title) == (7, False, "New")

    def test_update_scroll_reports_change(self):
        entry = SlotEntry(tab_handle=1, url="https://a.test")
        assert entry.update_scroll(ScrollPosition(0, 50))
        assert not entry.update_scroll(ScrollPosition(0, 50))
        assert entry.scroll == ScrollPosition(0, 50)
        assert ScrollPosition().is_origin


class TestOperationResult:
    def test_success_payload(self):
        result = OperationResult.success(slot=2, reopened=True)
        assert result
        assert result.to_dict() == {"ok": True, "slot": 2, "reopened": True}

    def test_failure_payload(self):
        result = OperationResult.failure("No tab in slot 3.")
        assert not result
        assert result.to_dict() == {"ok": False, "reason": "No tab in slot 3."}
        assert "❌" in repr(result)


class TestErrorHandler:
    def test_records_context_and_strategy(self):
        handler = ErrorHandler()

        strategy = handler.record(TabCreationError("nope", url="chrome://x"), operation="create tab")
        assert strategy == RecoveryStrategy.SKIP
        assert handler.errors[0].url == "chrome://x"
        assert handler.errors[0].metadata == {"operation": "create tab"}

        assert handler.record(MessageDeliveryError("late"), tab_handle=4) == RecoveryStrategy.RETRY
        assert handler.errors[1].tab_handle == 4

        assert handler.record(ValueError("plain")) == RecoveryStrategy.RETRY
        assert handler.record(StorageError("disk")) == RecoveryStrategy.ABORT

        summary = handler.get_error_summary()
        assert summary["total_errors"] == 4
        assert summary["error_counts"]["TabCreationError"] == 1

    def test_history_is_bounded(self):
        handler = ErrorHandler(max_history=2)
        for index in range(3):
            handler.record(ValueError(str(index)))
        assert [e.message for e in handler.errors] == ["1", "2"]


class TestEventLogger:
    def test_callbacks_and_history(self):
        logger = EventLogger(debug_mode=False)
        seen = []
        logger.register_callback(seen.append)

        logger.slot_added(1, 42, url="https://a.test")
        logger.system_warning("careful")

        assert [e.event_type for e in seen] == [EventType.SLOT_ADDED, EventType.SYSTEM_WARNING]
        assert logger.history(EventType.SLOT_ADDED)[0].details["tab_handle"] == 42
        assert seen[0].to_dict()["event_type"] == "slot_added"

        logger.unregister_callback(seen.append)
        logger.system_info("quiet")
        assert len(seen) == 2

    def test_broken_callback_does_not_raise(self):
        logger = EventLogger(debug_mode=False)

        def broken(event):
            raise RuntimeError("boom")

        logger.register_callback(broken)
        logger.system_info("still fine")
        assert len(logger.history()) == 1

    def test_debug_mode_prints(self, capsys):
        EventLogger(debug_mode=True).slot_list_full(4)
        assert "Slot list is full (max 4)" in capsys.readouterr().out
