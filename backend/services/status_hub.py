from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import Any


class StatusHub:
    """
    In-memory pubsub for streaming generation status snapshots to WebSocket subscribers.

    Late subscribers immediately receive the most recent snapshot for the session.
    Each subscriber queue is small; when full the oldest snapshot is dropped.
    """

    def __init__(self, *, queue_size: int = 16) -> None:
        self._lock = asyncio.Lock()
        self._queue_size = queue_size
        self._subscribers: dict[str, set[asyncio.Queue[dict[str, Any]]]] = defaultdict(set)
        self._latest: dict[str, dict[str, Any]] = {}
        self._tasks: set[asyncio.Task[None]] = set()

    async def subscribe(self, session_id: str) -> asyncio.Queue[dict[str, Any]]:
        q: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=self._queue_size)
        async with self._lock:
            self._subscribers[session_id].add(q)
            latest = self._latest.get(session_id)
        if latest is not None:
            q.put_nowait(latest)
        return q

    async def unsubscribe(self, session_id: str, q: asyncio.Queue[dict[str, Any]]) -> None:
        async with self._lock:
            subs = self._subscribers.get(session_id)
            if not subs:
                return
            subs.discard(q)
            if not subs:
                self._subscribers.pop(session_id, None)

    async def publish(self, session_id: str, payload: dict[str, Any]) -> None:
        self._latest[session_id] = payload
        await self._fan_out(session_id, payload)

    async def _fan_out(self, session_id: str, payload: dict[str, Any]) -> None:
        async with self._lock:
            subs = list(self._subscribers.get(session_id, set()))
        for q in subs:
            if q.full():
                try:
                    _ = q.get_nowait()
                except asyncio.QueueEmpty:
                    pass
            try:
                q.put_nowait(payload)
            except asyncio.QueueFull:
                # Raced between full-check and put; drop.
                pass

    def publish_nowait(self, session_id: str, payload: dict[str, Any]) -> None:
        """
        Fire-and-forget helper for sync contexts (poller observer hooks).

        The latest snapshot is recorded immediately; only delivery to subscriber
        queues is deferred to a task.
        """
        self._latest[session_id] = payload
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No running loop: nothing to deliver to.
            return
        task = loop.create_task(self._fan_out(session_id, payload))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def forget(self, session_id: str) -> None:
        self._latest.pop(session_id, None)


status_hub = StatusHub()
