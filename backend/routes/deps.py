"""Shared FastAPI dependencies."""

from functools import lru_cache

from services.provider import VideoProvider, get_video_provider
from services.scheduler import AsyncioScheduler


@lru_cache(maxsize=1)
def get_provider() -> VideoProvider:
    """Process-wide provider, built on first use so a missing API key fails the request, not the import."""
    return get_video_provider()


@lru_cache(maxsize=1)
def get_scheduler() -> AsyncioScheduler:
    return AsyncioScheduler()
