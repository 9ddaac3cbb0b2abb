"""
Shared test doubles.

The orchestrator and playback driver are exercised against an in-memory
browser, reporter and resolver so no real browser or network is needed.
"""

import json
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from feed_detox.config import DetoxConfig
from feed_detox.content.resolver import ContentResolver
from feed_detox.events import EventReporter, StatusEvent
from feed_detox.orchestrator import SessionOrchestrator


class RecordingReporter(EventReporter):
    """Collects every emitted event in order."""

    def __init__(self):
        self.events: list[tuple[str, StatusEvent]] = []

    async def emit(self, subscriber_id: str, event: StatusEvent) -> None:
        self.events.append((subscriber_id, event))

    @property
    def wire(self) -> list[tuple[str, dict]]:
        return [event.to_wire() for _, event in self.events]

    def named(self, name: str) -> list[dict]:
        return [data for event_name, data in self.wire if event_name == name]

    @property
    def terminal(self) -> list[StatusEvent]:
        return [event for _, event in self.events if event.terminal]


class StaticResolver(ContentResolver):
    def __init__(self, video_ids: Optional[list[str]] = None, error: Optional[Exception] = None):
        self.video_ids = video_ids or []
        self.error = error
        self.topics: list[str] = []

    async def resolve(self, topic: str) -> list[str]:
        self.topics.append(topic)
        if self.error:
            raise self.error
        return list(self.video_ids)


class FakeBrowser:
    """Stands in for BrowserController inside ``async with``."""

    def __init__(self, page, launch_error: Optional[Exception] = None):
        self.page = page
        self.launch_error = launch_error
        self.cookies: list = []
        self.close_calls = 0

    async def __aenter__(self):
        if self.launch_error:
            raise self.launch_error
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.close_calls += 1

    async def add_cookies(self, entries):
        self.cookies = list(entries)


def make_page(logged_in: bool = True, goto_side_effect=None) -> MagicMock:
    page = MagicMock()
    page.goto = AsyncMock(side_effect=goto_side_effect)
    page.query_selector = AsyncMock(return_value=MagicMock() if logged_in else None)
    return page


def visited_urls(page: MagicMock) -> list[str]:
    return [c.args[0] for c in page.goto.await_args_list]


class SleepRecorder:
    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


SAMPLE_COOKIES = [
    {
        "domain": ".youtube.com",
        "expirationDate": 1790000000.5,
        "hostOnly": False,
        "httpOnly": True,
        "name": "SID",
        "path": "/",
        "sameSite": "no_restriction",
        "secure": True,
        "session": False,
        "storeId": "0",
        "value": "abc123",
        "id": 1,
    },
    {
        "domain": "www.youtube.com",
        "expirationDate": 1790000000,
        "hostOnly": True,
        "httpOnly": False,
        "name": "PREF",
        "path": "/",
        "sameSite": "unspecified",
        "secure": False,
        "session": True,
        "storeId": "0",
        "value": "f6=40000000",
        "id": 2,
    },
]


@pytest.fixture
def raw_cookies() -> str:
    return json.dumps(SAMPLE_COOKIES)


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def sleep() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def detox_config() -> DetoxConfig:
    return DetoxConfig(youtube_api_key="test-key", echo_events=False)


@pytest.fixture
def build_orchestrator(reporter, sleep, detox_config):
    """Returns a builder wiring fakes into a SessionOrchestrator."""

    def _build(resolver: ContentResolver, browser: FakeBrowser):
        factory = MagicMock(return_value=browser)
        orchestrator = SessionOrchestrator(
            resolver=resolver,
            reporter=reporter,
            browser_factory=factory,
            config=detox_config,
            sleep=sleep,
        )
        return orchestrator, factory

    return _build
