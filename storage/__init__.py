"""
Storage - durable state and its schema migrations.
"""
from .persistent_store import (
    SCHEMA_VERSION_KEY,
    SESSIONS_KEY,
    SLOT_LIST_KEY,
    InMemoryStore,
    JsonFileStore,
    PersistentStore,
)
from .migrations import (
    STORAGE_SCHEMA_VERSION,
    StorageMigrationResult,
    migrate_storage_if_needed,
    migrate_storage_snapshot,
)

__all__ = [
    "SCHEMA_VERSION_KEY",
    "SESSIONS_KEY",
    "SLOT_LIST_KEY",
    "InMemoryStore",
    "JsonFileStore",
    "PersistentStore",
    "STORAGE_SCHEMA_VERSION",
    "StorageMigrationResult",
    "migrate_storage_if_needed",
    "migrate_storage_snapshot",
]
