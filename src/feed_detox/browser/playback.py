"""
Playback Driver

Verifies the YouTube login and plays the resolved videos one after
another on a single page, holding each for a capped dwell time until
the session budget is spent.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from playwright.async_api import Page, TimeoutError as PlaywrightTimeout

from ..config import DetoxConfig
from ..errors import NavigationFailure, NavigationTimeout
from ..events import RunEvents, StatusEvent
from ..session import PlaybackSession

logger = logging.getLogger(__name__)


HOME_URL = "https://www.youtube.com/"
WATCH_URL = "https://www.youtube.com/watch?v={video_id}"

# Avatar link in the top bar, only rendered for a signed-in user
LOGIN_INDICATOR_SELECTOR = 'ytd-topbar-menu-button-renderer a[href*="channel"]'

Sleep = Callable[[float], Awaitable[None]]


@dataclass
class PlaybackConfig:
    """Timing for the watch loop, in milliseconds."""

    watch_cap_ms: int = 30000
    home_timeout_ms: int = 30000
    video_timeout_ms: int = 60000

    @classmethod
    def from_config(cls, config: DetoxConfig) -> "PlaybackConfig":
        return cls(
            watch_cap_ms=config.watch_cap_ms,
            home_timeout_ms=config.home_timeout_ms,
            video_timeout_ms=config.video_timeout_ms,
        )


def video_url(video_id: str) -> str:
    return WATCH_URL.format(video_id=video_id)


def compute_dwell(watched_ms: int, total_ms: int, cap_ms: int) -> int:
    """Time to hold the next video: the cap, or whatever budget is left."""
    return max(min(cap_ms, total_ms - watched_ms), 0)


def format_seconds(ms: int) -> str:
    """Milliseconds as seconds with one decimal, e.g. 65000 -> "65.0"."""
    return f"{ms / 1000:.1f}"


class PlaybackDriver:
    """
    Drives the run's single page.

    All browser operations are awaited in sequence; nothing else touches
    the page while the driver runs.
    """

    def __init__(
        self,
        page: Page,
        events: RunEvents,
        config: Optional[PlaybackConfig] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        """
        Initialize the playback driver.

        Args:
            page: Page owned by the run's browser
            events: Event stream for the run's subscriber
            config: Watch loop timing (defaults if None)
            sleep: Awaitable delay in seconds, injectable for tests
        """
        self.page = page
        self.events = events
        self.config = config or PlaybackConfig()
        self._sleep = sleep

    async def navigate(self, url: str, timeout: int) -> None:
        """
        Load a URL and wait for the network to go idle.

        Raises:
            NavigationTimeout: page did not settle within timeout ms
            NavigationFailure: any other navigation error
        """
        try:
            await self.page.goto(url, wait_until="networkidle", timeout=timeout)
        except PlaywrightTimeout as e:
            raise NavigationTimeout(
                f"Navigation timeout after {timeout}ms: {url}", url=url
            ) from e
        except Exception as e:
            raise NavigationFailure(f"Navigation failed: {e!s}", url=url) from e

    async def verify_login(self) -> bool:
        """
        Open the YouTube home page and look for the signed-in avatar.

        A missing avatar is reported as a warning only; the run goes on.

        Returns:
            True if the login indicator was found
        """
        await self.navigate(HOME_URL, self.config.home_timeout_ms)

        indicator = await self.page.query_selector(LOGIN_INDICATOR_SELECTOR)
        if indicator is None:
            logger.warning("Login indicator not found on YouTube home page")
            await self.events.warning(
                "WARNING: Login verification failed. Cookies may be expired."
            )
            return False

        await self.events.success("SUCCESS: Login confirmed.")
        return True

    async def watch(self, session: PlaybackSession) -> int:
        """
        Play session.video_ids in order until the budget is spent.

        Each video is held for min(cap, remaining budget). A navigation
        error ends the loop by propagating; videos are never skipped
        or retried.

        Returns:
            Total milliseconds watched
        """
        total = len(session.video_ids)

        for index, video_id in enumerate(session.video_ids, start=1):
            if session.budget_spent:
                break

            dwell_ms = compute_dwell(
                session.watched_ms, session.total_ms, self.config.watch_cap_ms
            )

            await self.navigate(video_url(video_id), self.config.video_timeout_ms)
            session.visited.append(video_id)

            dwell_seconds = format_seconds(dwell_ms)
            await self.events.emit(
                StatusEvent.progress(
                    f"Watching video {index}/{total} for {dwell_seconds}s.",
                    index=index,
                    total=total,
                    video_id=video_id,
                    dwell_seconds=float(dwell_seconds),
                )
            )

            await self._sleep(dwell_ms / 1000)
            session.watched_ms += dwell_ms

        logger.info(
            f"Watched {len(session.visited)}/{total} videos "
            f"for {format_seconds(session.watched_ms)}s"
        )
        return session.watched_ms
