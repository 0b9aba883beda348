"""Video provider interface and factory."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from models import GenerationRequest, Operation
from services.settings import Settings, get_settings

logger = logging.getLogger(__name__)


class VideoProvider(ABC):
    """
    Remote asynchronous video generation service.

    Implementations raise ProviderError for anything that goes wrong on the
    wire: unreachable service, HTTP errors, malformed responses.
    """

    name = "provider"

    @abstractmethod
    async def submit(self, request: GenerationRequest) -> Operation:
        """Start a generation job and return its operation handle."""

    @abstractmethod
    async def query(self, operation_name: str) -> Operation:
        """Fetch the current state of a previously submitted operation."""

    async def aclose(self) -> None:
        """Release network resources. No-op by default."""


def get_video_provider(settings: Settings | None = None) -> VideoProvider:
    """
    Build the provider named by VIDEO_PROVIDER ("veo" or "mock").

    Unknown names fall back to Veo with a warning.
    """
    from services.mock_provider import MockProvider
    from services.veo import VeoProvider

    settings = settings or get_settings()
    provider_name = settings.video_provider

    if provider_name == "mock":
        return MockProvider()
    if provider_name != "veo":
        logger.warning("[provider] Unknown provider %r, defaulting to Veo", provider_name)
    settings.validate_veo_required()
    return VeoProvider(
        api_key=settings.gemini_api_key,
        model=settings.veo_model,
        base_url=settings.veo_api_base,
        timeout=settings.request_timeout,
    )
