"""In-memory generation session store. Keyed by session ID; nothing is persisted."""

from __future__ import annotations

import logging
import secrets
from typing import Any

from models import GenerationSession, PollSession, SessionStatusResponse
from services.gcs import resolve_playback_url
from services.poller import LoggingObserver, OperationPoller
from services.provider import VideoProvider
from services.scheduler import Scheduler
from services.settings import Settings, get_settings
from services.status_hub import StatusHub, status_hub

logger = logging.getLogger(__name__)

# No 0/O or 1/I/l.
_SESSION_ALPHABET = "23456789abcdefghjkmnpqrstuvwxyz"
_SESSION_ID_LENGTH = 12

sessions: dict[str, GenerationSession] = {}


def generate_session_id() -> str:
    return "".join(secrets.choice(_SESSION_ALPHABET) for _ in range(_SESSION_ID_LENGTH))


def session_status(session: GenerationSession) -> SessionStatusResponse:
    return SessionStatusResponse(
        session_id=session.id,
        playback_url=session.playback_url,
        **session.poller.status(),
    )


def session_payload(session: GenerationSession) -> dict[str, Any]:
    return session_status(session).model_dump(mode="json")


class SessionObserver(LoggingObserver):
    """Logs, records the playback URL, and publishes every transition on the status hub."""

    def __init__(self, session: GenerationSession, *, hub: StatusHub, settings: Settings) -> None:
        self._session = session
        self._hub = hub
        self._settings = settings

    def _publish(self) -> None:
        self._hub.publish_nowait(self._session.id, session_payload(self._session))

    def on_progress(self, message: str, poll: PollSession) -> None:
        super().on_progress(message, poll)
        self._session.playback_url = None
        self._publish()

    def on_success(self, video_uri: str, poll: PollSession) -> None:
        super().on_success(video_uri, poll)
        try:
            self._session.playback_url = resolve_playback_url(
                video_uri,
                sign=self._settings.sign_gcs_uris,
                expiration_seconds=self._settings.gcs_url_expiration,
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("[sessions] Could not sign %s, returning raw URI: %s", video_uri, exc)
            self._session.playback_url = video_uri
        self._publish()

    def on_failure(self, message: str, poll: PollSession) -> None:
        super().on_failure(message, poll)
        self._publish()

    def on_timeout(self, message: str, poll: PollSession) -> None:
        super().on_timeout(message, poll)
        self._publish()

    def on_cancel(self, message: str, poll: PollSession) -> None:
        super().on_cancel(message, poll)
        self._publish()


def create_session(
    provider: VideoProvider,
    *,
    scheduler: Scheduler | None = None,
    hub: StatusHub | None = None,
    settings: Settings | None = None,
) -> GenerationSession:
    """Register a new session with its own poller."""
    settings = settings or get_settings()
    session = GenerationSession(id=generate_session_id())
    session.poller = OperationPoller(
        provider,
        scheduler=scheduler,
        observer=SessionObserver(session, hub=hub or status_hub, settings=settings),
        max_attempts=settings.poll_max_attempts,
        initial_delay=settings.poll_initial_delay,
        default_delay=settings.poll_default_delay,
        min_delay=settings.poll_min_delay,
    )
    sessions[session.id] = session
    logger.info("[sessions] Session created: session_id=%s", session.id)
    return session


def discard_session(session_id: str) -> bool:
    session = sessions.pop(session_id, None)
    if session is None:
        return False
    session.poller.cancel()
    status_hub.forget(session_id)
    logger.info("[sessions] Session discarded: session_id=%s", session_id)
    return True
