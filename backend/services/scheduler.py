"""
Delayed-task schedulers for the operation poller.

The poller never sleeps itself: it asks a scheduler to run a coroutine after a
delay and keeps the returned handle so the pending call can be cancelled.
Production uses AsyncioScheduler; tests drive ManualScheduler's virtual clock.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from typing import Any, Awaitable, Callable, Protocol

logger = logging.getLogger(__name__)

Callback = Callable[[], Awaitable[Any]]


class ScheduledCall(Protocol):
    def cancel(self) -> None: ...

    @property
    def cancelled(self) -> bool: ...

    @property
    def done(self) -> bool: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callback) -> ScheduledCall: ...


class _TaskCall:
    def __init__(self, task: asyncio.Task[Any]) -> None:
        self._task = task
        self._cancel_requested = False

    def cancel(self) -> None:
        self._cancel_requested = True
        self._task.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancel_requested or self._task.cancelled()

    @property
    def done(self) -> bool:
        return self._task.done()


class AsyncioScheduler:
    """Runs callbacks on the running event loop after a real delay."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    def call_later(self, delay: float, callback: Callback) -> _TaskCall:
        async def _run() -> None:
            await asyncio.sleep(max(delay, 0.0))
            try:
                await callback()
            except asyncio.CancelledError:
                raise
            except Exception:  # noqa: BLE001
                logger.error("[scheduler] Scheduled callback failed", exc_info=True)

        task = asyncio.get_running_loop().create_task(_run())
        # Keep a strong reference until the task finishes.
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return _TaskCall(task)

    @property
    def pending_count(self) -> int:
        return len(self._tasks)

    async def aclose(self) -> None:
        """Cancel every scheduled call and wait for the tasks to unwind."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)


class _ManualCall:
    def __init__(self, due: float, seq: int, callback: Callback) -> None:
        self.due = due
        self.seq = seq
        self.callback = callback
        self._cancelled = False
        self._done = False

    def __lt__(self, other: "_ManualCall") -> bool:
        return (self.due, self.seq) < (other.due, other.seq)

    def cancel(self) -> None:
        if not self._done:
            self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def done(self) -> bool:
        return self._done


class ManualScheduler:
    """
    Virtual-clock scheduler. Nothing runs until the test advances time.

    `now` only moves forward, and callbacks fire in (due time, insertion) order.
    """

    def __init__(self) -> None:
        self.now = 0.0
        self._heap: list[_ManualCall] = []
        self._seq = itertools.count()

    def call_later(self, delay: float, callback: Callback) -> _ManualCall:
        call = _ManualCall(self.now + max(delay, 0.0), next(self._seq), callback)
        heapq.heappush(self._heap, call)
        return call

    @property
    def pending(self) -> list[_ManualCall]:
        return sorted(c for c in self._heap if not c.cancelled and not c.done)

    def _pop_next(self, until: float | None = None) -> _ManualCall | None:
        while self._heap:
            call = self._heap[0]
            if call.cancelled:
                heapq.heappop(self._heap)
                continue
            if until is not None and call.due > until:
                return None
            return heapq.heappop(self._heap)
        return None

    async def _fire(self, call: _ManualCall) -> None:
        self.now = max(self.now, call.due)
        call._done = True
        await call.callback()

    async def run_next(self) -> bool:
        """Jump to the next pending call and run it. False when nothing is pending."""
        call = self._pop_next()
        if call is None:
            return False
        await self._fire(call)
        return True

    async def advance(self, seconds: float) -> int:
        """Move the clock forward, running every call that falls due. Returns how many ran."""
        target = self.now + seconds
        ran = 0
        while True:
            call = self._pop_next(until=target)
            if call is None:
                break
            await self._fire(call)
            ran += 1
        self.now = target
        return ran

    async def run_until_idle(self, max_steps: int = 1000) -> int:
        ran = 0
        while ran < max_steps and await self.run_next():
            ran += 1
        return ran
