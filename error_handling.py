"""
Structured error handling for the tab slot organizer.

Provides custom exception types, error context, and recovery strategies.
Host adapters raise these; the tab manager and session store catch them at
their boundaries and turn them into structured results or state corrections.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorSeverity(Enum):
    """Error severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RecoveryStrategy(Enum):
    """Error recovery strategies."""
    RETRY = "retry"
    SKIP = "skip"
    ABORT = "abort"
    FALLBACK = "fallback"


@dataclass
class ErrorContext:
    """
    Context information about an error.

    Captures everything needed to understand and debug an error.
    """

    error_type: str
    message: str
    timestamp: datetime = field(default_factory=datetime.now)

    # Tab state
    tab_handle: Optional[int] = None
    url: Optional[str] = None

    # Additional metadata
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'error_type': self.error_type,
            'message': self.message,
            'timestamp': self.timestamp.isoformat(),
            'tab_handle': self.tab_handle,
            'url': self.url,
            'metadata': self.metadata
        }


class OrganizerError(Exception):
    """
    Base exception for all organizer errors.

    All custom exceptions should inherit from this.
    """

    severity: ErrorSeverity = ErrorSeverity.MEDIUM
    recovery_strategy: RecoveryStrategy = RecoveryStrategy.RETRY

    def __init__(
        self,
        message: str,
        context: Optional[ErrorContext] = None,
        **kwargs
    ):
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext(
            error_type=self.__class__.__name__,
            message=message
        )

        # Allow overriding context fields
        for key, value in kwargs.items():
            if hasattr(self.context, key):
                setattr(self.context, key, value)


class TabNotFoundError(OrganizerError):
    """The host no longer knows the tab handle."""
    severity = ErrorSeverity.LOW
    recovery_strategy = RecoveryStrategy.FALLBACK


class TabCreationError(OrganizerError):
    """The host refused to open a tab (disallowed URL, browser closing, ...)."""
    severity = ErrorSeverity.MEDIUM
    recovery_strategy = RecoveryStrategy.SKIP


class MessageDeliveryError(OrganizerError):
    """The tab-side listener is missing, not ready yet, or blocked."""
    severity = ErrorSeverity.LOW
    recovery_strategy = RecoveryStrategy.RETRY


class StorageError(OrganizerError):
    """The persistent state file could not be read or written."""
    severity = ErrorSeverity.CRITICAL
    recovery_strategy = RecoveryStrategy.ABORT


class ConfigurationError(OrganizerError):
    """Invalid configuration."""
    severity = ErrorSeverity.CRITICAL
    recovery_strategy = RecoveryStrategy.ABORT


@dataclass
class ErrorHandler:
    """
    Records errors that were absorbed by best-effort paths.

    Nothing here re-raises; it exists so background failures stay inspectable.
    """

    max_history: int = 100
    errors: List[ErrorContext] = field(default_factory=list)

    def record(self, error: Exception, tab_handle: Optional[int] = None, **metadata) -> RecoveryStrategy:
        """
        Store an error and return the recovery strategy it implies.

        Args:
            error: The exception that occurred
            tab_handle: Tab the failing call targeted, if any
            **metadata: Extra context (operation name, url, ...)

        Returns:
            RecoveryStrategy to use
        """
        if isinstance(error, OrganizerError):
            context = error.context
        else:
            context = ErrorContext(
                error_type=type(error).__name__,
                message=str(error)
            )

        if tab_handle is not None and context.tab_handle is None:
            context.tab_handle = tab_handle
        if metadata:
            context.metadata.update(metadata)

        self.errors.append(context)
        if len(self.errors) > self.max_history:
            self.errors.pop(0)

        if isinstance(error, OrganizerError):
            return error.recovery_strategy
        return RecoveryStrategy.RETRY

    def get_error_summary(self) -> Dict[str, Any]:
        """Get summary of all errors."""
        error_counts: Dict[str, int] = {}
        for error in self.errors:
            error_counts[error.error_type] = error_counts.get(error.error_type, 0) + 1

        return {
            'total_errors': len(self.errors),
            'error_counts': error_counts,
            'recent_errors': [e.to_dict() for e in self.errors[-5:]]
        }
