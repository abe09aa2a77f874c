"""
SlotEntry - One pinned tab in the slot list.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional


def _non_negative(value: Any) -> int:
    try:
        number = int(float(value))
    except (TypeError, ValueError):
        return 0
    return max(0, number)


@dataclass(frozen=True)
class ScrollPosition:
    """A captured scroll offset."""
    x: int = 0
    y: int = 0

    @property
    def is_origin(self) -> bool:
        return not self.x and not self.y

    def to_dict(self) -> Dict[str, int]:
        return {"scroll_x": self.x, "scroll_y": self.y}


@dataclass
class SlotEntry:
    """
    A pinned tab.

    Attributes:
        tab_handle: Host-assigned handle of the live tab (None once discarded)
        url: Last known URL of the page
        title: Last known title (advisory)
        scroll_x: Last captured horizontal scroll offset
        scroll_y: Last captured vertical scroll offset
        slot: 1-based position, always dense across the list
        closed: True when tab_handle no longer refers to a live tab
    """
    tab_handle: Optional[int]
    url: str
    title: str = ""
    scroll_x: int = 0
    scroll_y: int = 0
    slot: int = 0
    closed: bool = False

    @property
    def scroll(self) -> ScrollPosition:
        return ScrollPosition(self.scroll_x, self.scroll_y)

    def mark_closed(self) -> bool:
        """Flag the entry as closed. Returns True if that changed anything."""
        if self.closed:
            return False
        self.closed = True
        return True

    def revive(self, tab_handle: int, title: Optional[str] = None) -> None:
        """Attach a live tab to this entry again"""
        self.tab_handle = tab_handle
        self.closed = False
        if title:
            self.title = title

    def update_scroll(self, position: ScrollPosition) -> bool:
        """Store a new scroll offset. Returns True if it differed."""
        if self.scroll_x == position.x and self.scroll_y == position.y:
            return False
        self.scroll_x = position.x
        self.scroll_y = position.y
        return True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted record shape"""
        return {
            "tab_handle": self.tab_handle,
            "url": self.url,
            "title": self.title,
            "scroll_x": self.scroll_x,
            "scroll_y": self.scroll_y,
            "slot": self.slot,
            "closed": self.closed,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SlotEntry":
        """Build an entry from a persisted or router-supplied record"""
        handle = data.get("tab_handle")
        return cls(
            tab_handle=int(handle) if handle is not None else None,
            url=str(data.get("url") or ""),
            title=str(data.get("title") or ""),
            scroll_x=_non_negative(data.get("scroll_x", 0)),
            scroll_y=_non_negative(data.get("scroll_y", 0)),
            slot=_non_negative(data.get("slot", 0)),
            closed=bool(data.get("closed", False)),
        )
