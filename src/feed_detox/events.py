"""
Status Events and Reporting

Defines the events a detox run pushes to its subscriber and the narrow
reporting capability the orchestrator depends on.

Wire mapping:
- non-terminal events -> "log" {message, type}
- terminal success    -> "detoxComplete" {success: true, message}
- terminal error      -> "detoxError" {message}
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

logger = logging.getLogger(__name__)


EventKind = Literal["progress", "success", "error"]
LogType = Literal["status-in-progress", "status-success", "status-error"]

LOG_EVENT = "log"
COMPLETE_EVENT = "detoxComplete"
ERROR_EVENT = "detoxError"

LOG_TYPES: dict[str, LogType] = {
    "progress": "status-in-progress",
    "success": "status-success",
    "error": "status-error",
}


class StatusEvent(BaseModel):
    """A single immutable status update for one run."""

    model_config = ConfigDict(frozen=True)

    kind: EventKind
    message: str
    terminal: bool = False
    payload: Optional[dict[str, Any]] = None
    created_at: datetime = Field(default_factory=datetime.now)

    @model_validator(mode="after")
    def _terminal_has_outcome(self) -> "StatusEvent":
        if self.terminal and self.kind == "progress":
            raise ValueError("terminal events must be success or error")
        return self

    @classmethod
    def progress(cls, message: str, **payload: Any) -> "StatusEvent":
        return cls(kind="progress", message=message, payload=payload or None)

    @classmethod
    def success(cls, message: str) -> "StatusEvent":
        return cls(kind="success", message=message)

    @classmethod
    def warning(cls, message: str) -> "StatusEvent":
        """Non-fatal problem; shown to the subscriber as an error-styled log line."""
        return cls(kind="error", message=message)

    @classmethod
    def completed(cls, message: str, **payload: Any) -> "StatusEvent":
        return cls(kind="success", message=message, terminal=True, payload=payload or None)

    @classmethod
    def failed(cls, message: str) -> "StatusEvent":
        return cls(kind="error", message=message, terminal=True)

    @property
    def name(self) -> str:
        """Push channel event name."""
        if not self.terminal:
            return LOG_EVENT
        return COMPLETE_EVENT if self.kind == "success" else ERROR_EVENT

    def to_wire(self) -> tuple[str, dict[str, Any]]:
        """Return the (event name, data) pair sent to the subscriber."""
        if not self.terminal:
            return LOG_EVENT, {"message": self.message, "type": LOG_TYPES[self.kind]}
        if self.kind == "success":
            return COMPLETE_EVENT, {"success": True, "message": self.message}
        return ERROR_EVENT, {"message": self.message}


class EventReporter(ABC):
    """
    Fire-and-forget delivery of status events to a subscriber.

    Implementations never acknowledge, buffer or replay events.
    """

    @abstractmethod
    async def emit(self, subscriber_id: str, event: StatusEvent) -> None:
        """Push one event to the subscriber identified by subscriber_id."""


class FanoutReporter(EventReporter):
    """Sends every event to several reporters in order."""

    def __init__(self, *reporters: EventReporter):
        self.reporters = list(reporters)

    async def emit(self, subscriber_id: str, event: StatusEvent) -> None:
        for reporter in self.reporters:
            await reporter.emit(subscriber_id, event)


class RunEvents:
    """
    Event stream for one run, bound to its subscriber.

    Emits sequentially so events reach the reporter in production order,
    and allows at most one terminal event.
    """

    def __init__(self, reporter: EventReporter, subscriber_id: str):
        self.reporter = reporter
        self.subscriber_id = subscriber_id
        self.terminal_event: Optional[StatusEvent] = None

    @property
    def finished(self) -> bool:
        return self.terminal_event is not None

    async def emit(self, event: StatusEvent) -> None:
        if event.terminal:
            if self.finished:
                logger.warning(
                    f"Dropping second terminal event for {self.subscriber_id}: {event.message}"
                )
                return
            self.terminal_event = event

        try:
            await self.reporter.emit(self.subscriber_id, event)
        except Exception as e:
            # Subscriber may be gone; the run carries on
            logger.warning(f"Event delivery to {self.subscriber_id} failed: {e}")

    async def log(self, message: str) -> None:
        await self.emit(StatusEvent.progress(message))

    async def success(self, message: str) -> None:
        await self.emit(StatusEvent.success(message))

    async def warning(self, message: str) -> None:
        await self.emit(StatusEvent.warning(message))

    async def complete(self, message: str, **payload: Any) -> None:
        await self.emit(StatusEvent.completed(message, **payload))

    async def fail(self, message: str) -> None:
        await self.emit(StatusEvent.failed(message))
