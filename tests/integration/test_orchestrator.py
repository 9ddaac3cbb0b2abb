"""
Integration tests for the session orchestrator.

Runs the full pipeline (cookie normalization, resolution, browser,
login check, watch loop, reporting) against in-memory fakes.
"""

import asyncio
import json
import math

import pytest

from feed_detox.browser.playback import HOME_URL, video_url
from feed_detox.errors import EngineLaunchFailure, ResolutionFailed
from feed_detox.session import RunState
from conftest import FakeBrowser, StaticResolver, make_page, visited_urls

FIVE_VIDEOS = ["v1", "v2", "v3", "v4", "v5"]


class TestSuccessfulRun:
    @pytest.mark.asyncio
    async def test_65_seconds_watches_three_videos(self, build_orchestrator, reporter, sleep, raw_cookies):
        page = make_page()
        browser = FakeBrowser(page)
        orchestrator, _ = build_orchestrator(StaticResolver(FIVE_VIDEOS), browser)

        session = await orchestrator.run("Rust programming", 65, raw_cookies, "sub-1")

        assert session.state is RunState.COMPLETED
        assert sleep.calls == [30.0, 30.0, 5.0]
        assert visited_urls(page) == [HOME_URL] + [video_url(v) for v in FIVE_VIDEOS[:3]]
        assert reporter.named("detoxComplete") == [
            {"success": True, "message": "Detox session finished. Total time simulated: 65.0s."}
        ]
        assert reporter.named("detoxError") == []
        assert browser.close_calls == 1

    @pytest.mark.asyncio
    async def test_event_sequence(self, build_orchestrator, reporter, raw_cookies):
        orchestrator, _ = build_orchestrator(StaticResolver(["v1"]), FakeBrowser(make_page()))

        await orchestrator.run("rust", 10, raw_cookies, "sub-1")

        assert reporter.wire == [
            ("log", {"message": "Validating authentication data...", "type": "status-in-progress"}),
            ("log", {"message": "Cookies parsed and normalized. Fetching video list...", "type": "status-in-progress"}),
            ("log", {"message": "Found 1 videos. Initiating browser automation...", "type": "status-in-progress"}),
            ("log", {"message": "Applying user session cookies...", "type": "status-in-progress"}),
            ("log", {"message": "Cookies set. Navigating to YouTube...", "type": "status-in-progress"}),
            ("log", {"message": "SUCCESS: Login confirmed.", "type": "status-success"}),
            ("log", {"message": "Watching video 1/1 for 10.0s.", "type": "status-in-progress"}),
            ("detoxComplete", {"success": True, "message": "Detox session finished. Total time simulated: 10.0s."}),
        ]
        assert {sid for sid, _ in reporter.events} == {"sub-1"}

    @pytest.mark.asyncio
    async def test_zero_duration(self, build_orchestrator, reporter, sleep, raw_cookies):
        page = make_page()
        orchestrator, _ = build_orchestrator(StaticResolver(FIVE_VIDEOS), FakeBrowser(page))

        session = await orchestrator.run("rust", 0, raw_cookies, "sub-1")

        assert session.visited == []
        assert sleep.calls == []
        assert visited_urls(page) == [HOME_URL]
        assert reporter.named("detoxComplete") == [
            {"success": True, "message": "Detox session finished. Total time simulated: 0.0s."}
        ]

    @pytest.mark.asyncio
    async def test_default_duration_is_60_seconds(self, build_orchestrator, sleep, raw_cookies):
        orchestrator, _ = build_orchestrator(StaticResolver(FIVE_VIDEOS), FakeBrowser(make_page()))

        session = await orchestrator.run("rust", None, raw_cookies, "sub-1")

        assert session.total_ms == 60000
        assert sleep.calls == [30.0, 30.0]

    @pytest.mark.asyncio
    async def test_cookies_injected_normalized(self, build_orchestrator, raw_cookies):
        browser = FakeBrowser(make_page())
        orchestrator, _ = build_orchestrator(StaticResolver(["v1"]), browser)

        await orchestrator.run("rust", 1, raw_cookies, "sub-1")

        sid, pref = browser.cookies
        assert sid.same_site == "None"
        assert pref.same_site is None
        assert pref.expiration_date is None

    @pytest.mark.asyncio
    async def test_unverified_login_still_watches(self, build_orchestrator, reporter, raw_cookies):
        page = make_page(logged_in=False)
        orchestrator, _ = build_orchestrator(StaticResolver(["v1", "v2"]), FakeBrowser(page))

        session = await orchestrator.run("rust", 40, raw_cookies, "sub-1")

        assert session.state is RunState.COMPLETED
        assert session.visited == ["v1", "v2"]
        assert {
            "message": "WARNING: Login verification failed. Cookies may be expired.",
            "type": "status-error",
        } in reporter.named("log")
        assert len(reporter.named("detoxComplete")) == 1


class TestFailedRun:
    @pytest.mark.asyncio
    async def test_empty_resolution_never_launches(self, build_orchestrator, reporter, raw_cookies):
        orchestrator, factory = build_orchestrator(StaticResolver([]), FakeBrowser(make_page()))

        session = await orchestrator.run("obscure", 60, raw_cookies, "sub-1")

        factory.assert_not_called()
        assert session.state is RunState.FAILED
        assert reporter.named("detoxError") == [
            {"message": "Could not find relevant long-form videos for this topic."}
        ]
        assert reporter.named("detoxComplete") == []

    @pytest.mark.asyncio
    async def test_resolution_error(self, build_orchestrator, reporter, raw_cookies):
        resolver = StaticResolver(error=ResolutionFailed("Failed to fetch videos from YouTube."))
        orchestrator, factory = build_orchestrator(resolver, FakeBrowser(make_page()))

        await orchestrator.run("rust", 60, raw_cookies, "sub-1")

        factory.assert_not_called()
        assert reporter.named("detoxError") == [{"message": "Failed to fetch videos from YouTube."}]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", [None, "", "not json"])
    async def test_invalid_cookies_stop_before_resolution(self, build_orchestrator, reporter, raw):
        resolver = StaticResolver(FIVE_VIDEOS)
        orchestrator, factory = build_orchestrator(resolver, FakeBrowser(make_page()))

        session = await orchestrator.run("rust", 60, raw, "sub-1")

        assert resolver.topics == []
        factory.assert_not_called()
        assert session.state is RunState.FAILED
        [error] = reporter.named("detoxError")
        assert error["message"].startswith("User authentication failed")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("duration", [math.inf, -math.inf, math.nan])
    async def test_non_finite_duration_fails_run(self, build_orchestrator, reporter, raw_cookies, duration):
        resolver = StaticResolver(FIVE_VIDEOS)
        orchestrator, factory = build_orchestrator(resolver, FakeBrowser(make_page()))

        session = await orchestrator.start("rust", duration, raw_cookies, "sub-1")

        assert resolver.topics == []
        factory.assert_not_called()
        assert session.state is RunState.FAILED
        assert len(reporter.terminal) == 1
        [error] = reporter.named("detoxError")
        assert error["message"].startswith("Invalid session duration")
        assert reporter.named("detoxComplete") == []

    @pytest.mark.asyncio
    async def test_navigation_failure_on_second_of_five(self, build_orchestrator, reporter, sleep, raw_cookies):
        page = make_page(goto_side_effect=[None, None, RuntimeError("net::ERR_CONNECTION_RESET")])
        browser = FakeBrowser(page)
        orchestrator, _ = build_orchestrator(StaticResolver(FIVE_VIDEOS), browser)

        session = await orchestrator.run("rust", 300, raw_cookies, "sub-1")

        assert session.state is RunState.FAILED
        assert visited_urls(page) == [HOME_URL, video_url("v1"), video_url("v2")]
        assert session.visited == ["v1"]
        assert sleep.calls == [30.0]
        assert browser.close_calls == 1
        assert reporter.named("detoxError") == [
            {"message": "Navigation failed: net::ERR_CONNECTION_RESET"}
        ]
        assert reporter.named("detoxComplete") == []

    @pytest.mark.asyncio
    async def test_home_page_failure_closes_browser(self, build_orchestrator, reporter, raw_cookies):
        page = make_page(goto_side_effect=RuntimeError("net::ERR_NAME_NOT_RESOLVED"))
        browser = FakeBrowser(page)
        orchestrator, _ = build_orchestrator(StaticResolver(FIVE_VIDEOS), browser)

        session = await orchestrator.run("rust", 60, raw_cookies, "sub-1")

        assert session.state is RunState.FAILED
        assert browser.close_calls == 1
        assert len(reporter.terminal) == 1

    @pytest.mark.asyncio
    async def test_launch_failure(self, build_orchestrator, reporter, raw_cookies):
        browser = FakeBrowser(make_page(), launch_error=EngineLaunchFailure("Browser launch failed: no display"))
        orchestrator, _ = build_orchestrator(StaticResolver(FIVE_VIDEOS), browser)

        session = await orchestrator.run("rust", 60, raw_cookies, "sub-1")

        assert session.state is RunState.FAILED
        assert reporter.named("detoxError") == [{"message": "Browser launch failed: no display"}]


class TestRunLifecycle:
    @pytest.mark.asyncio
    async def test_exactly_one_terminal_event(self, build_orchestrator, reporter, raw_cookies):
        orchestrator, _ = build_orchestrator(StaticResolver(FIVE_VIDEOS), FakeBrowser(make_page()))

        await orchestrator.run("rust", 95, raw_cookies, "sub-1")

        names = [name for name, _ in reporter.wire]
        assert names.count("log") > 1
        assert len(reporter.terminal) == 1
        assert names[-1] == "detoxComplete"

    @pytest.mark.asyncio
    async def test_start_is_fire_and_forget(self, build_orchestrator, reporter, raw_cookies):
        orchestrator, _ = build_orchestrator(StaticResolver(["v1"]), FakeBrowser(make_page()))

        task = orchestrator.start("rust", 5, raw_cookies, "sub-1")
        assert orchestrator.active_runs == 1

        session = await task
        await asyncio.sleep(0)

        assert session.state is RunState.COMPLETED
        assert orchestrator.active_runs == 0
        assert len(reporter.terminal) == 1

    @pytest.mark.asyncio
    async def test_concurrent_runs_are_independent(self, reporter, sleep, detox_config, raw_cookies):
        from unittest.mock import MagicMock
        from feed_detox.orchestrator import SessionOrchestrator

        browsers = [FakeBrowser(make_page()), FakeBrowser(make_page(goto_side_effect=RuntimeError("down")))]
        orchestrator = SessionOrchestrator(
            resolver=StaticResolver(["v1", "v2"]),
            reporter=reporter,
            browser_factory=MagicMock(side_effect=browsers),
            config=detox_config,
            sleep=sleep,
        )

        orchestrator.start("rust", 30, raw_cookies, "ok")
        orchestrator.start("rust", 30, raw_cookies, "broken")
        await orchestrator.wait_idle()

        by_subscriber = {}
        for sid, event in reporter.events:
            if event.terminal:
                by_subscriber.setdefault(sid, []).append(event.name)

        assert by_subscriber == {"ok": ["detoxComplete"], "broken": ["detoxError"]}
        assert [b.close_calls for b in browsers] == [1, 1]

    @pytest.mark.asyncio
    async def test_unreachable_subscriber_does_not_break_run(self, build_orchestrator, raw_cookies):
        from feed_detox.push.hub import ConnectionHub

        orchestrator, _ = build_orchestrator(StaticResolver(["v1"]), FakeBrowser(make_page()))
        orchestrator.reporter = ConnectionHub()

        session = await orchestrator.run("rust", 5, raw_cookies, "never-connected")

        assert session.state is RunState.COMPLETED


class TestEndToEnd:
    """HTTP start request to WebSocket frames, through the real app."""

    def test_events_stream_to_websocket(self, detox_config, sleep, raw_cookies):
        from fastapi.testclient import TestClient

        from feed_detox.orchestrator import SessionOrchestrator
        from feed_detox.push.hub import ConnectionHub
        from feed_detox.server import create_app

        hub = ConnectionHub()
        orchestrator = SessionOrchestrator(
            resolver=StaticResolver(["v1", "v2"]),
            reporter=hub,
            browser_factory=lambda: FakeBrowser(make_page()),
            config=detox_config,
            sleep=sleep,
        )
        app = create_app(config=detox_config, orchestrator=orchestrator, hub=hub)

        with TestClient(app) as client:
            with client.websocket_connect("/ws") as websocket:
                subscriber_id = websocket.receive_json()["data"]["id"]

                response = client.post(
                    "/detox/start",
                    json={
                        "topic": "rust",
                        "duration": 45,
                        "userCookies": raw_cookies,
                        "socketId": subscriber_id,
                    },
                )
                assert response.status_code == 200

                frames = []
                while True:
                    frame = websocket.receive_json()
                    frames.append(frame)
                    if frame["event"] in ("detoxComplete", "detoxError"):
                        break

        assert frames[-1] == {
            "event": "detoxComplete",
            "data": {"success": True, "message": "Detox session finished. Total time simulated: 45.0s."},
        }
        assert [f["data"]["message"] for f in frames if f["event"] == "log"][-2:] == [
            "Watching video 1/2 for 30.0s.",
            "Watching video 2/2 for 15.0s.",
        ]
