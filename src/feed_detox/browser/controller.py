"""
Browser Controller

Manages the Playwright browser instance owned by a single detox run.
The browser is visible by default and is released exactly once.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Iterable, Optional

from playwright.async_api import (
    async_playwright,
    Browser,
    BrowserContext,
    Page,
    Playwright,
)

from ..errors import EngineLaunchFailure
from .cookies import CredentialEntry

logger = logging.getLogger(__name__)


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)

DEFAULT_LAUNCH_ARGS = ("--no-sandbox", "--disable-setuid-sandbox")


@dataclass
class BrowserConfig:
    """
    Configuration for the run's browser instance.

    Reads from environment variables with sensible defaults.
    """

    # Visible browser unless explicitly overridden
    headless: bool = False

    # Viewport size
    viewport_width: int = 1280
    viewport_height: int = 720

    # Slow motion delay in ms
    slow_mo: int = 50

    user_agent: str = DEFAULT_USER_AGENT

    # Sandbox is unavailable in most container launch environments
    launch_args: tuple[str, ...] = field(default_factory=lambda: DEFAULT_LAUNCH_ARGS)

    @classmethod
    def from_env(cls) -> "BrowserConfig":
        """
        Create BrowserConfig from environment variables.

        Environment variables:
            BROWSER_HEADLESS: true/false (default: false)
            BROWSER_VIEWPORT_WIDTH: int (default: 1280)
            BROWSER_VIEWPORT_HEIGHT: int (default: 720)
            BROWSER_SLOW_MO: int in ms (default: 50)
            BROWSER_USER_AGENT: user agent string
        """
        headless_str = os.getenv("BROWSER_HEADLESS", "false").lower()
        headless = headless_str in ("true", "1", "yes")

        return cls(
            headless=headless,
            viewport_width=int(os.getenv("BROWSER_VIEWPORT_WIDTH", "1280")),
            viewport_height=int(os.getenv("BROWSER_VIEWPORT_HEIGHT", "720")),
            slow_mo=int(os.getenv("BROWSER_SLOW_MO", "50")),
            user_agent=os.getenv("BROWSER_USER_AGENT", DEFAULT_USER_AGENT),
        )


class BrowserController:
    """
    Owns one Playwright browser for the duration of a run.

    Usage:
        >>> async with BrowserController(config) as browser:
        ...     await browser.add_cookies(entries)
        ...     await browser.page.goto("https://www.youtube.com/")
    """

    def __init__(self, config: Optional[BrowserConfig] = None):
        """
        Initialize browser controller.

        Args:
            config: Browser configuration (uses env if None)
        """
        self.config = config or BrowserConfig.from_env()

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None
        self._closed = False

    @property
    def is_initialized(self) -> bool:
        """Check if browser is initialized."""
        return self._page is not None

    @property
    def page(self) -> Page:
        """The single page all navigation happens on."""
        if self._page is None:
            raise RuntimeError("Browser not initialized")
        return self._page

    async def initialize(self) -> None:
        """
        Start Playwright, launch the browser and open the working page.

        Raises:
            EngineLaunchFailure: if any launch step fails; partially
                acquired resources are released before raising.
        """
        if self._playwright is not None:
            return

        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.config.headless,
                slow_mo=self.config.slow_mo,
                args=list(self.config.launch_args),
            )
            self._context = await self._browser.new_context(
                user_agent=self.config.user_agent,
                viewport={
                    "width": self.config.viewport_width,
                    "height": self.config.viewport_height,
                },
            )
            self._page = await self._context.new_page()
        except Exception as e:
            await self.close()
            raise EngineLaunchFailure(f"Browser launch failed: {e!s}") from e

        logger.info(
            "Launched chromium "
            f"({'headless' if self.config.headless else 'visible'})"
        )

    async def add_cookies(self, entries: Iterable[CredentialEntry]) -> None:
        """
        Load normalized cookies into the browser context.

        Must run before the first navigation.

        Raises:
            EngineLaunchFailure: if the engine rejects the cookies
        """
        if self._context is None:
            raise RuntimeError("Browser not initialized")

        cookies = [entry.to_engine_cookie() for entry in entries]
        try:
            await self._context.add_cookies(cookies)
        except Exception as e:
            raise EngineLaunchFailure(f"Browser rejected session cookies: {e!s}") from e

    async def close(self) -> None:
        """Close the browser and cleanup resources. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True

        if self._context:
            try:
                await self._context.close()
            except Exception as e:
                logger.debug(f"Context close failed: {e}")
            self._context = None
            self._page = None

        if self._browser:
            try:
                await self._browser.close()
            except Exception as e:
                logger.debug(f"Browser close failed: {e}")
            self._browser = None

        if self._playwright:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.debug(f"Playwright stop failed: {e}")
            self._playwright = None

        logger.info("Browser closed")

    async def __aenter__(self) -> "BrowserController":
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
