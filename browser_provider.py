"""
Browser Provider Pattern for the tab slot organizer.

This module provides an abstraction layer between the organizer and the browser
it drives. A provider owns the Playwright lifecycle and hands out one
BrowserContext; the context's pages are the tabs the organizer pins.

Example:
    >>> from browser_provider import LocalPlaywrightProvider, BrowserConfig
    >>> provider = LocalPlaywrightProvider(BrowserConfig(headless=True))
    >>> context = await provider.get_context()
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from playwright.async_api import Browser, BrowserContext, Playwright, async_playwright
from pydantic import BaseModel, ConfigDict, Field


class BrowserConfig(BaseModel):
    """Configuration for browser providers."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    provider_type: str = Field(
        default="local",
        description="Browser provider type: 'local', 'remote', 'persistent', 'mock'"
    )

    # Local browser settings
    headless: bool = Field(
        default=False,
        description="Run browser in headless mode"
    )
    viewport_width: int = Field(
        default=1280,
        ge=100,
        description="Browser viewport width"
    )
    viewport_height: int = Field(
        default=800,
        ge=100,
        description="Browser viewport height"
    )
    user_data_dir: Optional[str] = Field(
        default=None,
        description="User data directory for persistent context"
    )
    channel: Optional[str] = Field(
        default=None,
        description="Browser channel: 'chrome', 'msedge', ... (None uses bundled Chromium)"
    )

    # Remote browser settings
    remote_cdp_url: Optional[str] = Field(
        default=None,
        description="CDP endpoint URL for remote browser (e.g., Browserless)"
    )

    # Browser args
    extra_args: list[str] = Field(
        default_factory=lambda: [
            "--disable-dev-shm-usage",
            "--disable-infobars",
        ],
        description="Additional browser launch arguments"
    )

    def window_args(self) -> list[str]:
        args = self.extra_args.copy()
        args.extend([
            "--window-position=0,0",
            f"--window-size={self.viewport_width},{self.viewport_height}",
        ])
        return args

    def viewport(self) -> dict:
        return {"width": self.viewport_width, "height": self.viewport_height}


class BrowserProvider(ABC):
    """
    Abstract base class for browser providers.

    Implementations must provide a Playwright BrowserContext and handle cleanup.
    """

    def __init__(self, config: BrowserConfig):
        self.config = config
        self._context: Optional[BrowserContext] = None
        self._browser: Optional[Browser] = None
        self._playwright: Optional[Playwright] = None

    @abstractmethod
    async def get_context(self) -> BrowserContext:
        """
        Get or create the browser context whose pages are the organizer's tabs.

        Returns:
            BrowserContext: Context ready for use
        """

    async def close(self) -> None:
        """Cleanup resources (close context and browser, stop playwright)"""
        if self._context is not None:
            try:
                await self._context.close()
            except Exception:
                pass
            self._context = None

        if self._browser is not None:
            try:
                await self._browser.close()
            except Exception:
                pass
            self._browser = None

        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception:
                pass
            self._playwright = None

    def is_ready(self) -> bool:
        return self._context is not None


class LocalPlaywrightProvider(BrowserProvider):
    """
    Default provider: launches a local Chromium with a throwaway profile.

    Example:
        >>> config = BrowserConfig(headless=True, viewport_width=1920)
        >>> provider = LocalPlaywrightProvider(config)
        >>> context = await provider.get_context()
    """

    async def get_context(self) -> BrowserContext:
        if self._context is not None:
            return self._context

        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self.config.headless,
            args=self.config.window_args(),
            channel=self.config.channel,
        )
        self._context = await self._browser.new_context(viewport=self.config.viewport())
        return self._context


class RemoteBrowserProvider(BrowserProvider):
    """
    Browser provider that connects to a remote browser via CDP.

    Example:
        >>> config = BrowserConfig(
        ...     provider_type="remote",
        ...     remote_cdp_url="ws://localhost:9222/devtools/browser/..."
        ... )
        >>> context = await RemoteBrowserProvider(config).get_context()
    """

    async def get_context(self) -> BrowserContext:
        if self._context is not None:
            return self._context

        if not self.config.remote_cdp_url:
            raise ValueError("remote_cdp_url is required for RemoteBrowserProvider")

        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.connect_over_cdp(self.config.remote_cdp_url)

        # Reuse the default context so the user's existing tabs are visible
        contexts = self._browser.contexts
        if contexts:
            self._context = contexts[0]
        else:
            self._context = await self._browser.new_context(viewport=self.config.viewport())
        return self._context

    async def close(self) -> None:
        """Disconnect without closing the remote user's context"""
        self._context = None
        await super().close()


class PersistentContextProvider(BrowserProvider):
    """
    Browser provider that reuses an existing browser profile.

    Useful for keeping cookies and logins across organizer runs.

    Example:
        >>> config = BrowserConfig(
        ...     provider_type="persistent",
        ...     user_data_dir="/path/to/profile"
        ... )
        >>> context = await PersistentContextProvider(config).get_context()
    """

    async def get_context(self) -> BrowserContext:
        if self._context is not None:
            return self._context

        if not self.config.user_data_dir:
            raise ValueError("user_data_dir is required for PersistentContextProvider")

        self._playwright = await async_playwright().start()
        self._context = await self._playwright.chromium.launch_persistent_context(
            user_data_dir=self.config.user_data_dir,
            viewport=self.config.viewport(),
            headless=self.config.headless,
            args=self.config.window_args(),
            channel=self.config.channel,
        )
        return self._context


class MockBrowserProvider(BrowserProvider):
    """
    Mock browser provider for testing.

    Returns a caller-supplied context object instead of launching a browser.

    Example:
        >>> provider = MockBrowserProvider(BrowserConfig(provider_type="mock"), mock_context=fake)
        >>> context = await provider.get_context()
    """

    def __init__(self, config: BrowserConfig, mock_context: Optional[BrowserContext] = None):
        super().__init__(config)
        self._mock_context = mock_context

    async def get_context(self) -> BrowserContext:
        if self._mock_context is not None:
            return self._mock_context

        raise NotImplementedError(
            "MockBrowserProvider requires a mock_context to be provided. "
            "Use: MockBrowserProvider(config, mock_context=your_mock)"
        )

    async def close(self) -> None:
        """No-op for mock provider."""


def create_browser_provider(config: BrowserConfig) -> BrowserProvider:
    """
    Factory function to create appropriate browser provider from config.

    Args:
        config: Browser configuration

    Returns:
        BrowserProvider: Appropriate provider implementation
    """
    if config.provider_type == "local":
        return LocalPlaywrightProvider(config)
    elif config.provider_type == "remote":
        return RemoteBrowserProvider(config)
    elif config.provider_type == "persistent":
        return PersistentContextProvider(config)
    elif config.provider_type == "mock":
        return MockBrowserProvider(config)
    else:
        raise ValueError(
            f"Unknown provider_type: {config.provider_type}. "
            f"Must be one of: local, remote, persistent, mock"
        )
