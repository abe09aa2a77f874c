"""
Routing - Shortcut commands and runtime messages into the organizer.
"""
from .command_router import CommandRouter
from .message_router import (
    UNHANDLED,
    MessageHandler,
    MessageRouter,
    MiscMessageHandler,
    SessionMessageHandler,
    TabManagerMessageHandler,
)
from .messages import KNOWN_MESSAGE_TYPES, parse_message

__all__ = [
    "CommandRouter",
    "UNHANDLED",
    "MessageHandler",
    "MessageRouter",
    "MiscMessageHandler",
    "SessionMessageHandler",
    "TabManagerMessageHandler",
    "KNOWN_MESSAGE_TYPES",
    "parse_message",
]
