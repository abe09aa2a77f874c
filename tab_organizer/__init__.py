"""
Public package surface for the tab slot organizer.

This module re-exports the primary classes and helpers so consumers can simply:

    from tab_organizer import bootstrap_runtime, OrganizerConfig, PlaywrightTabHost
"""

# Runtime
from main import OrganizerRuntime, bootstrap_runtime

# Configuration
from organizer_config import (
    MAX_SESSIONS,
    MAX_SLOTS,
    DebugConfig,
    OrganizerConfig,
    SessionConfig,
    StartupRestoreConfig,
    StorageConfig,
    TabManagerConfig,
)

# Browser provider
from browser_provider import (
    BrowserConfig,
    BrowserProvider,
    LocalPlaywrightProvider,
    create_browser_provider,
)

# Domain
from tab_management import (
    HostTab,
    ScrollPosition,
    ScrollRestoreCoordinator,
    SlotEntry,
    TabEvent,
    TabHost,
    TabManagerDomain,
    TabManagerHooks,
    TabUpdate,
)
from tab_management.playwright_host import PlaywrightTabHost
from sessions import Session, SessionEntry, SessionLoadSummary, SessionStore
from lifecycle import LifecycleReconciler
from routing import CommandRouter, MessageRouter, UNHANDLED

# Storage
from storage import InMemoryStore, JsonFileStore, PersistentStore, migrate_storage_if_needed

# Results
from operation_result import OperationResult

# Errors
from error_handling import (
    ConfigurationError,
    ErrorContext,
    ErrorHandler,
    ErrorSeverity,
    MessageDeliveryError,
    OrganizerError,
    RecoveryStrategy,
    StorageError,
    TabCreationError,
    TabNotFoundError,
)

# Utilities
from utils import EventLogger, EventType, get_event_logger, normalize_url_for_match, set_event_logger

__all__ = [
    "OrganizerRuntime",
    "bootstrap_runtime",
    "MAX_SESSIONS",
    "MAX_SLOTS",
    "DebugConfig",
    "OrganizerConfig",
    "SessionConfig",
    "StartupRestoreConfig",
    "StorageConfig",
    "TabManagerConfig",
    "BrowserConfig",
    "BrowserProvider",
    "LocalPlaywrightProvider",
    "create_browser_provider",
    "HostTab",
    "ScrollPosition",
    "ScrollRestoreCoordinator",
    "SlotEntry",
    "TabEvent",
    "TabHost",
    "TabManagerDomain",
    "TabManagerHooks",
    "TabUpdate",
    "PlaywrightTabHost",
    "Session",
    "SessionEntry",
    "SessionLoadSummary",
    "SessionStore",
    "LifecycleReconciler",
    "CommandRouter",
    "MessageRouter",
    "UNHANDLED",
    "InMemoryStore",
    "JsonFileStore",
    "PersistentStore",
    "migrate_storage_if_needed",
    "OperationResult",
    "ConfigurationError",
    "ErrorContext",
    "ErrorHandler",
    "ErrorSeverity",
    "MessageDeliveryError",
    "OrganizerError",
    "RecoveryStrategy",
    "StorageError",
    "TabCreationError",
    "TabNotFoundError",
    "EventLogger",
    "EventType",
    "get_event_logger",
    "normalize_url_for_match",
    "set_event_logger",
]
