"""
In-memory provider for local development and tests.

Jobs complete after a fixed number of status queries with a sample video URL.
"""

from __future__ import annotations

import itertools
import logging

from models import GenerationRequest, Operation
from services.errors import ProviderError
from services.provider import VideoProvider

logger = logging.getLogger(__name__)

SAMPLE_VIDEO_URL = "https://storage.googleapis.com/gtv-videos-bucket/sample/BigBuckBunny.mp4"


class MockProvider(VideoProvider):
    name = "mock"

    def __init__(
        self,
        *,
        polls_until_done: int = 2,
        throttle_seconds: float | None = 1.0,
        video_url: str = SAMPLE_VIDEO_URL,
    ) -> None:
        self._polls_until_done = polls_until_done
        self._throttle_seconds = throttle_seconds
        self._video_url = video_url
        self._ids = itertools.count(1)
        self._remaining: dict[str, int] = {}

    async def submit(self, request: GenerationRequest) -> Operation:
        operation_name = f"operations/mock-{next(self._ids)}"
        logger.info("[mock] Created %s for prompt: %.50s...", operation_name, request.prompt)
        if self._polls_until_done <= 0:
            return Operation(operation_name, done=True, video_uris=(self._video_url,))
        self._remaining[operation_name] = self._polls_until_done
        return Operation(operation_name, throttle_seconds=self._throttle_seconds)

    async def query(self, operation_name: str) -> Operation:
        if operation_name not in self._remaining:
            raise ProviderError(f"Operation {operation_name} not found", status_code=404)
        self._remaining[operation_name] -= 1
        if self._remaining[operation_name] > 0:
            return Operation(operation_name, throttle_seconds=self._throttle_seconds)
        del self._remaining[operation_name]
        return Operation(operation_name, done=True, video_uris=(self._video_url,))
