"""
Utility modules for the tab slot organizer.
"""
from .event_logger import EventLogger, EventType, get_event_logger, set_event_logger
from .url_utils import normalize_url_for_match, urls_match

__all__ = [
    "EventLogger",
    "EventType",
    "get_event_logger",
    "set_event_logger",
    "normalize_url_for_match",
    "urls_match",
]
