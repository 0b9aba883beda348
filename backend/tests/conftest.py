from __future__ import annotations

from typing import Any

import pytest

from models import GenerationRequest, Operation, PollSession
from services.errors import ProviderError
from services.poller import PollObserver
from services.provider import VideoProvider
from services.scheduler import ManualScheduler
from services.store import sessions


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class ScriptedProvider(VideoProvider):
    """
    Provider whose answers are scripted up front.

    `responses` are consumed one per query; an Exception entry is raised. Once
    exhausted, queries keep answering "not done".
    """

    name = "scripted"

    def __init__(
        self,
        submit_result: Operation | Exception | None = None,
        responses: list[Operation | Exception] | None = None,
    ) -> None:
        self.submit_result = submit_result or Operation("operations/op-1")
        self.responses = list(responses or [])
        self.submitted: list[GenerationRequest] = []
        self.queries: list[str] = []

    async def submit(self, request: GenerationRequest) -> Operation:
        self.submitted.append(request)
        if isinstance(self.submit_result, Exception):
            raise self.submit_result
        return self.submit_result

    async def query(self, operation_name: str) -> Operation:
        self.queries.append(operation_name)
        if self.responses:
            answer = self.responses.pop(0)
        else:
            answer = Operation(operation_name)
        if isinstance(answer, Exception):
            raise answer
        return answer


class RecordingObserver(PollObserver):
    def __init__(self) -> None:
        self.events: list[tuple[str, str, str | None]] = []

    def _record(self, kind: str, message: str, session: PollSession) -> None:
        self.events.append((kind, message, session.operation_name))

    def on_progress(self, message: str, session: PollSession) -> None:
        self._record("progress", message, session)

    def on_success(self, video_uri: str, session: PollSession) -> None:
        self._record("success", video_uri, session)

    def on_failure(self, message: str, session: PollSession) -> None:
        self._record("failure", message, session)

    def on_timeout(self, message: str, session: PollSession) -> None:
        self._record("timeout", message, session)

    def on_cancel(self, message: str, session: PollSession) -> None:
        self._record("cancel", message, session)

    def kinds(self) -> list[str]:
        return [kind for kind, _, _ in self.events]


def pending(name: str = "operations/op-1", throttle: float | None = None) -> Operation:
    return Operation(name, done=False, throttle_seconds=throttle)


def finished(name: str = "operations/op-1", uri: str = "https://cdn.example/video.mp4") -> Operation:
    return Operation(name, done=True, video_uris=(uri,))


def transport_error(message: str = "connection reset by peer") -> ProviderError:
    return ProviderError(message)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture(autouse=True)
def clear_sessions() -> Any:
    """Isolate tests by clearing the in-memory session store."""
    sessions.clear()
    yield
    sessions.clear()
