"""
Configuration models for the tab slot organizer.

This module provides structured, type-safe configuration using Pydantic models.
Settings are grouped by the component that consumes them, so the tab manager,
session store, startup reconciler and browser launcher each receive only their
own block.

Example:
    >>> from organizer_config import OrganizerConfig, TabManagerConfig
    >>> config = OrganizerConfig(
    ...     tab_manager=TabManagerConfig(tab_message_timeout_seconds=1.0),
    ... )
    >>> config.sessions.max_sessions
    4
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from browser_provider import BrowserConfig
from error_handling import ConfigurationError

MAX_SLOTS = 4
MAX_SESSIONS = 4


class TabManagerConfig(BaseModel):
    """Pinned slot list behaviour."""

    max_slots: int = Field(
        default=MAX_SLOTS,
        ge=1,
        le=MAX_SLOTS,
        description="Maximum number of pinned slots"
    )
    update_debounce_seconds: float = Field(
        default=0.5,
        ge=0.0,
        description="Delay used to coalesce url/title refreshes into one write"
    )
    tab_message_timeout_seconds: float = Field(
        default=3.0,
        gt=0.0,
        description="Upper bound for best-effort round trips to the tab-side listener"
    )
    scroll_restore_delays: List[float] = Field(
        default_factory=lambda: [0.0, 0.08, 0.22, 0.42],
        description="Delay before each scroll restore delivery attempt, in seconds"
    )

    @field_validator("scroll_restore_delays")
    @classmethod
    def _delays_not_empty(cls, value: List[float]) -> List[float]:
        if not value:
            raise ValueError("scroll_restore_delays needs at least one attempt")
        if any(delay < 0 for delay in value):
            raise ValueError("scroll_restore_delays cannot contain negative delays")
        return value


class SessionConfig(BaseModel):
    """Named session storage limits."""

    max_sessions: int = Field(
        default=MAX_SESSIONS,
        ge=1,
        le=MAX_SESSIONS,
        description="Maximum number of stored sessions"
    )
    max_name_length: int = Field(
        default=30,
        ge=1,
        description="Maximum length of a session name"
    )


class StartupRestoreConfig(BaseModel):
    """Delivery schedule for the 'restore available' prompt after a restart."""

    initial_delay_seconds: float = Field(
        default=1.5,
        ge=0.0,
        description="Wait before the first attempt so a tab can finish loading"
    )
    max_attempts: int = Field(
        default=5,
        ge=1,
        description="Number of delivery attempts"
    )
    retry_interval_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Wait between failed attempts"
    )
    discard_stale_handles: bool = Field(
        default=True,
        description="With no saved sessions, keep the slot list but forget its handles; "
                    "turn off only when the host outlives the organizer process"
    )


class StorageConfig(BaseModel):
    """Durable state location."""

    path: str = Field(
        default="tab_organizer_state.json",
        description="JSON file holding the slot list and sessions"
    )


class DebugConfig(BaseModel):
    """Debugging and logging configuration."""

    debug_mode: bool = Field(
        default=True,
        description="Print events to the console as they happen"
    )


class OrganizerConfig(BaseModel):
    """
    Main configuration object for the organizer runtime.

    Example:
        >>> config = OrganizerConfig.from_file("organizer.json")
        >>> runtime = await bootstrap_runtime(host, config)
    """

    tab_manager: TabManagerConfig = Field(
        default_factory=TabManagerConfig,
        description="Pinned slot configuration"
    )
    sessions: SessionConfig = Field(
        default_factory=SessionConfig,
        description="Session storage configuration"
    )
    startup: StartupRestoreConfig = Field(
        default_factory=StartupRestoreConfig,
        description="Startup restore prompt configuration"
    )
    storage: StorageConfig = Field(
        default_factory=StorageConfig,
        description="Persistent store configuration"
    )
    logging: DebugConfig = Field(
        default_factory=DebugConfig,
        description="Debug and logging configuration"
    )
    browser: BrowserConfig = Field(
        default_factory=BrowserConfig,
        description="Browser launch configuration"
    )

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> OrganizerConfig:
        """
        Load and validate a configuration file.

        Args:
            path: JSON file with any subset of the configuration tree

        Returns:
            OrganizerConfig with defaults filled in

        Raises:
            ConfigurationError: If the file is missing, not JSON, or invalid
        """
        config_path = Path(path)
        try:
            raw = json.loads(config_path.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise ConfigurationError(f"Config file not found: {config_path}") from e
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Config file is not valid JSON: {e}") from e

        try:
            return cls.model_validate(raw)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    @classmethod
    def headless(cls, state_path: Optional[str] = None) -> OrganizerConfig:
        """Configuration for unattended runs: headless browser, quiet logging."""
        storage = StorageConfig(path=state_path) if state_path else StorageConfig()
        return cls(
            storage=storage,
            logging=DebugConfig(debug_mode=False),
            browser=BrowserConfig(headless=True),
        )
