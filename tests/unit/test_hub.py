"""
Unit tests for the WebSocket connection hub.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from feed_detox.events import StatusEvent
from feed_detox.push.hub import ConnectionHub


def _websocket():
    websocket = MagicMock()
    websocket.accept = AsyncMock()
    websocket.send_json = AsyncMock()
    return websocket


class TestConnectionHub:
    @pytest.mark.asyncio
    async def test_connect_announces_id(self):
        hub = ConnectionHub()
        websocket = _websocket()

        subscriber_id = await hub.connect(websocket)

        websocket.accept.assert_awaited_once()
        websocket.send_json.assert_awaited_once_with(
            {"event": "connect", "data": {"id": subscriber_id}}
        )
        assert subscriber_id in hub
        assert len(hub) == 1

    @pytest.mark.asyncio
    async def test_failed_connect_frame_unregisters(self):
        hub = ConnectionHub()
        websocket = _websocket()
        websocket.send_json.side_effect = RuntimeError("client gone")

        with pytest.raises(RuntimeError, match="client gone"):
            await hub.connect(websocket)

        assert len(hub) == 0

    @pytest.mark.asyncio
    async def test_emit_sends_wire_frames(self):
        hub = ConnectionHub()
        websocket = _websocket()
        subscriber_id = await hub.connect(websocket)

        await hub.emit(subscriber_id, StatusEvent.progress("Fetching video list..."))
        await hub.emit(subscriber_id, StatusEvent.completed("done"))

        frames = [c.args[0] for c in websocket.send_json.await_args_list[1:]]
        assert frames == [
            {"event": "log", "data": {"message": "Fetching video list...", "type": "status-in-progress"}},
            {"event": "detoxComplete", "data": {"success": True, "message": "done"}},
        ]

    @pytest.mark.asyncio
    async def test_unknown_subscriber_is_dropped(self):
        hub = ConnectionHub()
        await hub.emit("nobody", StatusEvent.failed("boom"))

    @pytest.mark.asyncio
    async def test_send_failure_disconnects(self):
        hub = ConnectionHub()
        websocket = _websocket()
        subscriber_id = await hub.connect(websocket)
        websocket.send_json.side_effect = RuntimeError("socket closed")

        await hub.emit(subscriber_id, StatusEvent.progress("x"))

        assert subscriber_id not in hub

    @pytest.mark.asyncio
    async def test_subscribers_are_isolated(self):
        hub = ConnectionHub()
        first, second = _websocket(), _websocket()
        first_id = await hub.connect(first)
        await hub.connect(second)

        await hub.emit(first_id, StatusEvent.progress("only first"))

        assert first.send_json.await_count == 2
        assert second.send_json.await_count == 1

    def test_disconnect_unknown_is_noop(self):
        ConnectionHub().disconnect("missing")
