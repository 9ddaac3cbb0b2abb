"""
Connection Hub

Tracks open WebSocket subscribers and delivers status events to them.

Each connection gets an opaque id on connect; clients pass that id as
socketId when starting a run. Frames are JSON objects:
    {"event": "<name>", "data": {...}}
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional

from fastapi import WebSocket

from ..events import EventReporter, StatusEvent

logger = logging.getLogger(__name__)


CONNECT_EVENT = "connect"


@dataclass
class Subscriber:
    id: str
    websocket: WebSocket
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class ConnectionHub(EventReporter):
    """
    Registry of live subscribers.

    Delivery is best effort: events for unknown or disconnected
    subscribers are dropped, never queued.
    """

    def __init__(self):
        self._subscribers: dict[str, Subscriber] = {}

    def __contains__(self, subscriber_id: str) -> bool:
        return subscriber_id in self._subscribers

    def __len__(self) -> int:
        return len(self._subscribers)

    async def connect(self, websocket: WebSocket) -> str:
        """
        Accept a WebSocket and announce its subscriber id.

        Returns:
            The id the client must send as socketId
        """
        await websocket.accept()
        subscriber = Subscriber(id=uuid.uuid4().hex, websocket=websocket)
        self._subscribers[subscriber.id] = subscriber

        try:
            await self._send(subscriber, CONNECT_EVENT, {"id": subscriber.id})
        except Exception:
            # Unannounced ids are never disconnected by the channel
            self._subscribers.pop(subscriber.id, None)
            raise
        logger.info(f"Subscriber connected: {subscriber.id}")
        return subscriber.id

    def disconnect(self, subscriber_id: str) -> None:
        if self._subscribers.pop(subscriber_id, None) is not None:
            logger.info(f"Subscriber disconnected: {subscriber_id}")

    async def emit(self, subscriber_id: str, event: StatusEvent) -> None:
        subscriber = self._subscribers.get(subscriber_id)
        if subscriber is None:
            logger.debug(f"No subscriber {subscriber_id}; dropping {event.name}")
            return

        name, data = event.to_wire()
        try:
            await self._send(subscriber, name, data)
        except Exception as e:
            logger.warning(f"Send to {subscriber_id} failed, dropping subscriber: {e}")
            self.disconnect(subscriber_id)

    async def _send(self, subscriber: Subscriber, name: str, data: Optional[dict[str, Any]]) -> None:
        async with subscriber.lock:
            await subscriber.websocket.send_json({"event": name, "data": data})
