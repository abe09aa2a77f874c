"""
Session records and load-plan summaries.
"""
from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from tab_management.slot_entry import SlotEntry


@dataclass
class SessionEntry:
    """One saved slot: the portable part of a SlotEntry (no handle, no closed flag)"""
    url: str
    title: str = ""
    scroll_x: int = 0
    scroll_y: int = 0

    @classmethod
    def from_slot(cls, entry: SlotEntry) -> "SessionEntry":
        return cls(url=entry.url, title=entry.title, scroll_x=entry.scroll_x, scroll_y=entry.scroll_y)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionEntry":
        return cls(
            url=str(data.get("url") or ""),
            title=str(data.get("title") or ""),
            scroll_x=int(data.get("scroll_x") or 0),
            scroll_y=int(data.get("scroll_y") or 0),
        )


@dataclass
class Session:
    """
    A named snapshot of the slot list.

    Attributes:
        name: User-given name, unique case-insensitively
        entries: Saved slots in slot order
        saved_at: Unix timestamp of the last save/update
    """
    name: str
    entries: List[SessionEntry] = field(default_factory=list)
    saved_at: float = field(default_factory=time.time)

    @property
    def urls(self) -> List[str]:
        return [entry.url for entry in self.entries]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "entries": [entry.to_dict() for entry in self.entries],
            "saved_at": self.saved_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Session":
        raw_entries = data.get("entries") or []
        return cls(
            name=str(data.get("name") or ""),
            entries=[SessionEntry.from_dict(e) for e in raw_entries if isinstance(e, dict)],
            saved_at=float(data.get("saved_at") or 0),
        )


@dataclass
class SlotDiff:
    """
    How one slot position changes if a session is loaded.

    change is one of:
        "=" same normalized URL on both sides
        "~" both sides have an entry but the URLs differ
        "+" only the session has an entry at this position
        "-" only the current list has an entry at this position
    """
    slot: int
    change: str
    current_url: Optional[str] = None
    current_title: Optional[str] = None
    incoming_url: Optional[str] = None
    incoming_title: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}


@dataclass
class ReuseMatch:
    """A session entry that will be bound to an already-open tab instead of a new one"""
    slot: int
    tab_handle: int
    session_url: str
    session_title: str
    open_tab_url: str
    open_tab_title: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SessionLoadSummary:
    """Side-effect-free preview of what load() would do against current state"""
    session_name: str
    total_count: int
    replace_count: int
    open_count: int
    reuse_count: int
    slot_diffs: List[SlotDiff] = field(default_factory=list)
    reuse_matches: List[ReuseMatch] = field(default_factory=list)

    @property
    def unchanged(self) -> bool:
        return all(diff.change == "=" for diff in self.slot_diffs)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_name": self.session_name,
            "total_count": self.total_count,
            "replace_count": self.replace_count,
            "open_count": self.open_count,
            "reuse_count": self.reuse_count,
            "slot_diffs": [diff.to_dict() for diff in self.slot_diffs],
            "reuse_matches": [match.to_dict() for match in self.reuse_matches],
        }
