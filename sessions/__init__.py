"""
Sessions - Named snapshots of the pinned slot list.
"""
from .session_models import ReuseMatch, Session, SessionEntry, SessionLoadSummary, SlotDiff
from .session_store import SESSION_NOT_FOUND, SessionStore

__all__ = [
    "ReuseMatch",
    "Session",
    "SessionEntry",
    "SessionLoadSummary",
    "SlotDiff",
    "SESSION_NOT_FOUND",
    "SessionStore",
]
