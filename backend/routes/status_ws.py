from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from services.status_hub import status_hub

router = APIRouter(tags=["status"])
logger = logging.getLogger(__name__)


@router.websocket("/ws/sessions/{session_id}/status")
async def ws_session_status(websocket: WebSocket, session_id: str) -> None:
    """
    Stream status snapshots for a generation session.

    Payload schema (same as GET /api/sessions/{id}):
      {
        "session_id": str,
        "state": "idle" | "submitted" | "polling" | "succeeded" | "failed" | "timed_out" | "cancelled",
        "operation_name": str | None,
        "attempts": int,
        "message": str,
        "video_uri": str | None,
        "playback_url": str | None,
        "error": str | None,
        "next_delay": float | None,
      }
    """
    logger.info("[status_ws] Client connecting for session_id=%r", session_id)
    await websocket.accept()
    q = await status_hub.subscribe(session_id)
    try:
        while True:
            payload: dict[str, Any] = await q.get()
            await websocket.send_json(payload)
    except WebSocketDisconnect:
        return
    finally:
        await status_hub.unsubscribe(session_id, q)
