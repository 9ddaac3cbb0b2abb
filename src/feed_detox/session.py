"""
Per-run session state.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class RunState(str, Enum):
    """Lifecycle of a single detox run."""

    START = "start"
    VALIDATING_CREDENTIALS = "validating_credentials"
    RESOLVING_CONTENT = "resolving_content"
    LAUNCHING = "launching"
    VERIFYING_LOGIN = "verifying_login"
    WATCHING = "watching"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (RunState.COMPLETED, RunState.FAILED)


@dataclass
class PlaybackSession:
    """
    Ephemeral state for one run, owned by the orchestrator.

    Budgets and counters are in milliseconds.
    """

    subscriber_id: str
    topic: str
    total_ms: int
    state: RunState = RunState.START
    browser: Optional[Any] = None
    video_ids: list[str] = field(default_factory=list)
    watched_ms: int = 0
    visited: list[str] = field(default_factory=list)
    error: Optional[str] = None
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None

    @property
    def remaining_ms(self) -> int:
        return max(self.total_ms - self.watched_ms, 0)

    @property
    def budget_spent(self) -> bool:
        return self.watched_ms >= self.total_ms

    def advance(self, state: RunState) -> None:
        if self.state.is_terminal:
            raise RuntimeError(f"Run already {self.state.value}")
        self.state = state
        if state.is_terminal:
            self.finished_at = datetime.now()
