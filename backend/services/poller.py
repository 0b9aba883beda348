"""
Operation poller: drives one remote generation job to a terminal state.

States: submitted -> polling -> succeeded | failed | timed_out.

Pacing: the first poll waits for the submission's throttle hint (default 6s),
later polls wait for the last response's hint (default 8s). A hint is never
shortened; only invalid hints fall back to the default, and everything is
floored at `min_delay`. Timeout is an attempt ceiling, not wall-clock time.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import math
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from models import GenerationRequest, Operation, PollSession, PollState
from services.errors import TimeoutExceeded
from services.normalizer import normalize_request
from services.provider import VideoProvider
from services.scheduler import AsyncioScheduler, Scheduler

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 24
INITIAL_DELAY_SECONDS = 6.0
DEFAULT_DELAY_SECONDS = 8.0
MIN_DELAY_SECONDS = 1.0

MSG_DISPATCHING = "Dispatching prompt to Veo orchestration..."
MSG_AWAITING = "Awaiting Veo render completion..."
MSG_RENDERING = "Rendering sequence in Veo cloud..."
MSG_COMPLETED = "Completed, download ready."
MSG_FAILED = "Generation failed"
MSG_TIMED_OUT = "Timed out waiting for Veo"
MSG_CANCELLED = "Generation cancelled"


class PollObserver:
    """Receives lifecycle notifications. All hooks are no-ops by default."""

    def on_progress(self, message: str, session: PollSession) -> None:
        pass

    def on_success(self, video_uri: str, session: PollSession) -> None:
        pass

    def on_failure(self, message: str, session: PollSession) -> None:
        pass

    def on_timeout(self, message: str, session: PollSession) -> None:
        pass

    def on_cancel(self, message: str, session: PollSession) -> None:
        pass


class LoggingObserver(PollObserver):
    def on_progress(self, message: str, session: PollSession) -> None:
        logger.info("[poller] %s (operation=%s attempts=%d)", message, session.operation_name, session.attempts)

    def on_success(self, video_uri: str, session: PollSession) -> None:
        logger.info(
            "[poller] Render complete after %d polls (%.0fs scheduled wait): %s",
            session.attempts,
            sum(session.delays),
            video_uri,
        )

    def on_failure(self, message: str, session: PollSession) -> None:
        logger.error("[poller] Render failed: %s", message)

    def on_timeout(self, message: str, session: PollSession) -> None:
        logger.warning("[poller] %s", message)

    def on_cancel(self, message: str, session: PollSession) -> None:
        logger.info("[poller] %s (operation=%s)", message, session.operation_name)


class OperationPoller:
    """
    Tracks at most one operation at a time.

    Starting a new generation cancels the pending poll of the previous one, and
    every callback checks the chain's generation number so a superseded chain
    can never publish a status update.
    """

    def __init__(
        self,
        provider: VideoProvider,
        *,
        scheduler: Scheduler | None = None,
        observer: PollObserver | None = None,
        max_attempts: int = MAX_ATTEMPTS,
        initial_delay: float = INITIAL_DELAY_SECONDS,
        default_delay: float = DEFAULT_DELAY_SECONDS,
        min_delay: float = MIN_DELAY_SECONDS,
        session: PollSession | None = None,
    ) -> None:
        self._provider = provider
        self._scheduler = scheduler or AsyncioScheduler()
        self._observer = observer or LoggingObserver()
        self._max_attempts = max_attempts
        self._initial_delay = initial_delay
        self._default_delay = default_delay
        self._min_delay = min_delay
        self._session = session or PollSession()
        self._finished: asyncio.Event | None = None

    @property
    def session(self) -> PollSession:
        return self._session

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def status(self) -> dict[str, Any]:
        return self._session.snapshot()

    def _is_current(self, generation: int) -> bool:
        return generation == self._session.generation

    def _notify(self, hook: str, *args: Any) -> None:
        try:
            getattr(self._observer, hook)(*args, self._session)
        except Exception:  # noqa: BLE001
            logger.error("[poller] Observer %s hook failed", hook, exc_info=True)

    def _begin_chain(self) -> int:
        self._cancel_pending()
        if self._finished is not None:
            self._finished.set()
        self._session.reset()
        self._finished = asyncio.Event()
        return self._session.generation

    def _cancel_pending(self) -> None:
        handle = self._session.handle
        if handle is not None:
            handle.cancel()
            self._session.handle = None

    def next_delay(self, suggested: float | None, default: float) -> float:
        """Delay before the next poll: the provider's hint if usable, else `default`, floored."""
        if suggested is None or not math.isfinite(suggested) or suggested < 0:
            delay = default
        else:
            delay = suggested
        return max(delay, self._min_delay)

    async def submit(self, raw: Mapping[str, Any] | GenerationRequest) -> PollSession:
        """Normalize then start. ValidationError propagates before the provider is touched."""
        request = normalize_request(raw)
        return await self.start(request)

    async def start(self, request: GenerationRequest) -> PollSession:
        generation = self._begin_chain()
        session = self._session
        session.state = PollState.SUBMITTED
        session.message = MSG_DISPATCHING
        self._notify("on_progress", MSG_DISPATCHING)

        try:
            operation = await self._provider.submit(request)
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            if self._is_current(generation):
                logger.error("[poller] Submission failed: %s", exc, exc_info=True)
                self._fail(str(exc) or "Failed to start generation")
            return session

        if self._is_current(generation):
            self._track(operation, generation)
        return session

    def _track(self, operation: Operation, generation: int) -> None:
        session = self._session
        session.operation_name = operation.operation_name

        if operation.has_output:
            self._succeed(operation.primary_uri)
            return
        if operation.error is not None:
            self._fail(operation.error)
            return

        if not operation.is_pending:
            logger.warning("[poller] Submission %s reported done without output", operation.operation_name)
        session.state = PollState.SUBMITTED
        session.message = MSG_AWAITING
        self._notify("on_progress", MSG_AWAITING)
        self._schedule(self.next_delay(operation.throttle_seconds, self._initial_delay), generation)

    def _schedule(self, delay: float, generation: int) -> None:
        session = self._session
        session.next_delay = delay
        session.delays.append(delay)
        session.handle = self._scheduler.call_later(delay, functools.partial(self._poll, generation))

    async def _poll(self, generation: int) -> None:
        if not self._is_current(generation):
            return
        session = self._session
        session.handle = None
        session.next_delay = None
        session.state = PollState.POLLING

        try:
            operation = await self._provider.query(session.operation_name)
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            if self._is_current(generation):
                logger.error("[poller] Status check failed for %s: %s", session.operation_name, exc)
                self._fail(str(exc) or "Failed to poll Veo status")
            return

        if not self._is_current(generation):
            return

        session.attempts += 1
        session.message = MSG_RENDERING
        self._notify("on_progress", MSG_RENDERING)

        if operation.has_output:
            self._succeed(operation.primary_uri)
        elif operation.error is not None:
            self._fail(operation.error)
        elif session.attempts > self._max_attempts:
            self._time_out()
        else:
            if operation.is_anomalous:
                logger.warning(
                    "[poller] Operation %s reported done without output; polling again",
                    operation.operation_name,
                )
            self._schedule(self.next_delay(operation.throttle_seconds, self._default_delay), generation)

    def _finish(self, state: PollState, message: str) -> None:
        session = self._session
        session.state = state
        session.message = message
        session.next_delay = None
        session.handle = None
        session.finished_at = datetime.now(timezone.utc)
        if self._finished is not None:
            self._finished.set()

    def _succeed(self, video_uri: str) -> None:
        self._session.video_uri = video_uri
        self._finish(PollState.SUCCEEDED, MSG_COMPLETED)
        self._notify("on_success", video_uri)

    def _fail(self, error: str) -> None:
        self._session.error = error
        self._finish(PollState.FAILED, MSG_FAILED)
        self._notify("on_failure", error)

    def _time_out(self) -> None:
        error = str(TimeoutExceeded(self._session.attempts))
        self._session.error = error
        self._finish(PollState.TIMED_OUT, MSG_TIMED_OUT)
        self._notify("on_timeout", error)

    def cancel(self) -> None:
        """Cancel the pending poll. Observers get on_cancel; the cancelled chain emits nothing else."""
        self._cancel_pending()
        session = self._session
        session.generation += 1
        if session.state in (PollState.SUBMITTED, PollState.POLLING):
            session.state = PollState.CANCELLED
            session.message = MSG_CANCELLED
            session.next_delay = None
            session.finished_at = datetime.now(timezone.utc)
            self._notify("on_cancel", MSG_CANCELLED)
        if self._finished is not None:
            self._finished.set()

    async def wait(self, timeout: float | None = None) -> PollSession:
        """Block until the current chain ends (terminal or cancelled)."""
        if self._finished is not None:
            await asyncio.wait_for(self._finished.wait(), timeout=timeout)
        return self._session
