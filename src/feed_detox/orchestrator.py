"""
Session Orchestrator

Runs one detox session end to end: cookie validation, content lookup,
browser launch, login check and the watch loop. Every run ends with
exactly one terminal event (detoxComplete or detoxError) and the browser
is closed on every exit path.
"""

import asyncio
import logging
import math
from typing import Callable, Optional

from .browser.controller import BrowserConfig, BrowserController
from .browser.cookies import normalize_credentials
from .browser.playback import PlaybackConfig, PlaybackDriver, Sleep, format_seconds
from .config import DetoxConfig
from .content.resolver import ContentResolver, create_resolver
from .errors import InvalidDuration, NoContentFound
from .events import EventReporter, RunEvents
from .session import PlaybackSession, RunState

logger = logging.getLogger(__name__)


BrowserFactory = Callable[[], BrowserController]


def duration_to_ms(seconds: float) -> int:
    """
    Session budget in whole milliseconds, never negative.

    Raises:
        InvalidDuration: if seconds is not a finite number
    """
    try:
        value = float(seconds)
    except (TypeError, ValueError) as e:
        raise InvalidDuration(f"Invalid session duration: {seconds!r}") from e
    if not math.isfinite(value):
        raise InvalidDuration(f"Invalid session duration: {seconds!r}")
    return max(int(round(value * 1000)), 0)


class SessionOrchestrator:
    """
    Composes the resolver, browser and reporter into supervised runs.

    Runs share no mutable state: each gets its own PlaybackSession,
    event stream and browser, so concurrent runs are independent.
    """

    def __init__(
        self,
        resolver: ContentResolver,
        reporter: EventReporter,
        browser_factory: Optional[BrowserFactory] = None,
        config: Optional[DetoxConfig] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        """
        Initialize the orchestrator.

        Args:
            resolver: Topic to video id lookup
            reporter: Push channel for status events
            browser_factory: Builds an uninitialized browser per run
            config: Service configuration (uses env if None)
            sleep: Awaitable delay used for dwell time
        """
        self.resolver = resolver
        self.reporter = reporter
        self.browser_factory = browser_factory or (lambda: BrowserController(BrowserConfig.from_env()))
        self.config = config or DetoxConfig.from_env()
        self.playback_config = PlaybackConfig.from_config(self.config)
        self._sleep = sleep
        self._tasks: set[asyncio.Task] = set()

    @property
    def active_runs(self) -> int:
        return len(self._tasks)

    def start(
        self,
        topic: str,
        total_duration_seconds: Optional[float],
        raw_credentials: str,
        subscriber_id: str,
    ) -> asyncio.Task:
        """
        Spawn a run in the background and return immediately.

        The caller is acknowledged, not completed; the outcome is only
        reported through the push channel.
        """
        task = asyncio.create_task(
            self.run(topic, total_duration_seconds, raw_credentials, subscriber_id),
            name=f"detox-{subscriber_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_idle(self) -> None:
        """Wait for all spawned runs to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def run(
        self,
        topic: str,
        total_duration_seconds: Optional[float],
        raw_credentials: Optional[str],
        subscriber_id: str,
    ) -> PlaybackSession:
        """
        Execute one detox run.

        Never raises for run failures: they are logged and reported as a
        single detoxError event.

        Args:
            topic: Search topic for videos
            total_duration_seconds: Session budget (default from config if None)
            raw_credentials: JSON cookie export
            subscriber_id: Push channel id receiving the events

        Returns:
            The finished PlaybackSession
        """
        if total_duration_seconds is None:
            total_duration_seconds = self.config.default_duration_seconds

        session = PlaybackSession(subscriber_id=subscriber_id, topic=topic, total_ms=0)
        events = RunEvents(self.reporter, subscriber_id)

        try:
            session.total_ms = duration_to_ms(total_duration_seconds)
            logger.info(
                f'Starting detox for topic "{topic}" '
                f"({format_seconds(session.total_ms)}s, subscriber {subscriber_id})"
            )
            await self._execute(session, events, raw_credentials)
        except Exception as e:
            logger.exception(f"Detox run failed in state {session.state.value}: {e}")
            session.error = str(e)
            if not session.state.is_terminal:
                session.advance(RunState.FAILED)
            await events.fail(str(e))

        return session

    async def _execute(
        self,
        session: PlaybackSession,
        events: RunEvents,
        raw_credentials: Optional[str],
    ) -> None:
        session.advance(RunState.VALIDATING_CREDENTIALS)
        await events.log("Validating authentication data...")
        credentials = normalize_credentials(raw_credentials)
        await events.log("Cookies parsed and normalized. Fetching video list...")

        session.advance(RunState.RESOLVING_CONTENT)
        session.video_ids = list(await self.resolver.resolve(session.topic))
        if not session.video_ids:
            raise NoContentFound("Could not find relevant long-form videos for this topic.")
        await events.log(
            f"Found {len(session.video_ids)} videos. Initiating browser automation..."
        )

        session.advance(RunState.LAUNCHING)
        async with self.browser_factory() as browser:
            session.browser = browser
            try:
                await events.log("Applying user session cookies...")
                await browser.add_cookies(credentials)
                await events.log("Cookies set. Navigating to YouTube...")

                session.advance(RunState.VERIFYING_LOGIN)
                driver = PlaybackDriver(
                    browser.page, events, self.playback_config, sleep=self._sleep
                )
                await driver.verify_login()

                session.advance(RunState.WATCHING)
                watched_ms = await driver.watch(session)

                session.advance(RunState.COMPLETED)
                await events.complete(
                    "Detox session finished. Total time simulated: "
                    f"{format_seconds(watched_ms)}s.",
                    watched_seconds=watched_ms / 1000,
                    videos_watched=len(session.visited),
                )
            finally:
                session.browser = None


def create_orchestrator(
    reporter: EventReporter,
    config: Optional[DetoxConfig] = None,
    browser_config: Optional[BrowserConfig] = None,
    resolver: Optional[ContentResolver] = None,
) -> SessionOrchestrator:
    """
    Factory function wiring the default YouTube resolver and browser.

    Args:
        reporter: Push channel for status events
        config: Service configuration (uses env if None)
        browser_config: Browser configuration (uses env if None)
        resolver: Content resolver (YouTube if None)
    """
    config = config or DetoxConfig.from_env()
    browser_config = browser_config or BrowserConfig.from_env()

    return SessionOrchestrator(
        resolver=resolver or create_resolver(config),
        reporter=reporter,
        browser_factory=lambda: BrowserController(browser_config),
        config=config,
    )
