"""Session API: server-side polling, one tracked generation per session."""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response

from models import PollState, SessionStatusResponse
from routes.deps import get_provider, get_scheduler
from services.errors import ValidationError
from services.provider import VideoProvider
from services.scheduler import Scheduler
from services.store import create_session, discard_session, session_status, sessions

router = APIRouter(tags=["sessions"])
logger = logging.getLogger(__name__)


def _not_found() -> JSONResponse:
    return JSONResponse({"error": "Session not found"}, status_code=404)


@router.post("/sessions", response_model=SessionStatusResponse, status_code=201)
async def open_session(
    provider: VideoProvider = Depends(get_provider),
    scheduler: Scheduler = Depends(get_scheduler),
) -> SessionStatusResponse:
    """Create a generation session. Its status starts as idle."""
    session = create_session(provider, scheduler=scheduler)
    return session_status(session)


@router.get("/sessions/{session_id}", response_model=SessionStatusResponse)
async def read_session(session_id: str) -> SessionStatusResponse | JSONResponse:
    """Current status snapshot. Frontends poll this or subscribe to the status WebSocket."""
    session = sessions.get(session_id)
    if session is None:
        return _not_found()
    return session_status(session)


@router.post("/sessions/{session_id}/generate", response_model=SessionStatusResponse, status_code=202)
async def generate_in_session(session_id: str, request: Request) -> SessionStatusResponse | JSONResponse:
    """
    Submit a generation in this session, cancelling any poll still pending from
    an earlier one. Returns 202 with the snapshot once the job is submitted.
    """
    session = sessions.get(session_id)
    if session is None:
        return _not_found()
    try:
        body = await request.json()
    except ValueError:
        return JSONResponse({"error": "Request body must be valid JSON"}, status_code=400)

    try:
        poll = await session.poller.submit(body)
    except ValidationError as exc:
        logger.info("[sessions] Rejected request for session_id=%s: %s", session_id, exc)
        return JSONResponse({"error": str(exc)}, status_code=400)

    if poll.state is PollState.FAILED and poll.operation_name is None:
        return JSONResponse({"error": poll.error or "Unknown error"}, status_code=500)
    logger.info(
        "[sessions] Generation submitted: session_id=%s operation=%s state=%s",
        session_id,
        poll.operation_name,
        poll.state.value,
    )
    return session_status(session)


@router.post("/sessions/{session_id}/cancel", response_model=SessionStatusResponse)
async def cancel_generation(session_id: str) -> SessionStatusResponse | JSONResponse:
    session = sessions.get(session_id)
    if session is None:
        return _not_found()
    session.poller.cancel()
    logger.info("[sessions] Generation cancelled: session_id=%s", session_id)
    return session_status(session)


@router.delete("/sessions/{session_id}", status_code=204)
async def close_session(session_id: str) -> Response:
    if not discard_session(session_id):
        return _not_found()
    return Response(status_code=204)
