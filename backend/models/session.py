from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel


class PollState(str, Enum):
    IDLE = "idle"
    SUBMITTED = "submitted"
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (PollState.SUCCEEDED, PollState.FAILED, PollState.TIMED_OUT)


@dataclass
class PollSession:
    """Mutable state of one poll chain. Owned and mutated by a single OperationPoller."""

    generation: int = 0                    # bumped on every start(); stale chains compare against it
    state: PollState = PollState.IDLE
    operation_name: str | None = None
    attempts: int = 0
    message: str = "Awaiting prompt"
    video_uri: str | None = None
    error: str | None = None
    next_delay: float | None = None
    delays: list[float] = field(default_factory=list)
    handle: Any = None                     # ScheduledCall for the pending poll, if any
    started_at: datetime | None = None
    finished_at: datetime | None = None

    def reset(self) -> None:
        self.generation += 1
        self.state = PollState.IDLE
        self.operation_name = None
        self.attempts = 0
        self.video_uri = None
        self.error = None
        self.next_delay = None
        self.delays = []
        self.handle = None
        self.started_at = datetime.now(timezone.utc)
        self.finished_at = None

    def snapshot(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "operation_name": self.operation_name,
            "attempts": self.attempts,
            "message": self.message,
            "video_uri": self.video_uri,
            "error": self.error,
            "next_delay": self.next_delay,
        }


@dataclass
class GenerationSession:
    id: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    poller: Any = None                     # OperationPoller bound to this session
    playback_url: str | None = None


class SessionStatusResponse(BaseModel):
    """Session status for polling. GET /api/sessions/{id} and the status WebSocket."""

    session_id: str
    state: PollState
    operation_name: str | None = None
    attempts: int = 0
    message: str
    video_uri: str | None = None
    playback_url: str | None = None
    error: str | None = None
    next_delay: float | None = None
