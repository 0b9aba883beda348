"""Environment-driven configuration."""

import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from services.errors import ConfigurationError

load_dotenv()

DEFAULT_VEO_MODEL = "veo-3.1-generate-preview"
DEFAULT_VEO_API_BASE = "https://generativelanguage.googleapis.com/v1beta"


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


class Settings(BaseModel):
    """Application settings, read from the environment (and .env) at construction time."""

    gemini_api_key: str = Field(
        default_factory=lambda: (
            os.environ.get("GEMINI_API_KEY", "").strip()
            or os.environ.get("GOOGLE_API_KEY", "").strip()
        ),
        description="Gemini API key used for Veo requests",
    )
    video_provider: str = Field(
        default_factory=lambda: os.environ.get("VIDEO_PROVIDER", "veo").strip().lower() or "veo",
    )
    veo_model: str = Field(
        default_factory=lambda: os.environ.get("VEO_MODEL", "").strip() or DEFAULT_VEO_MODEL,
    )
    veo_api_base: str = Field(
        default_factory=lambda: os.environ.get("VEO_API_BASE", "").strip() or DEFAULT_VEO_API_BASE,
    )
    request_timeout: float = Field(default_factory=lambda: _env_float("VEO_REQUEST_TIMEOUT", 60.0))

    poll_max_attempts: int = Field(default_factory=lambda: _env_int("POLL_MAX_ATTEMPTS", 24))
    poll_initial_delay: float = Field(default_factory=lambda: _env_float("POLL_INITIAL_DELAY", 6.0))
    poll_default_delay: float = Field(default_factory=lambda: _env_float("POLL_DEFAULT_DELAY", 8.0))
    poll_min_delay: float = Field(default_factory=lambda: _env_float("POLL_MIN_DELAY", 1.0))

    sign_gcs_uris: bool = Field(default_factory=lambda: _env_bool("SIGN_GCS_URIS"))
    gcs_url_expiration: int = Field(default_factory=lambda: _env_int("GCS_URL_EXPIRATION", 48 * 3600))

    log_level: str = Field(default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO")
    cors_allow_origins: list[str] = Field(
        default_factory=lambda: [
            origin.strip()
            for origin in os.environ.get("CORS_ALLOW_ORIGINS", "*").split(",")
            if origin.strip()
        ],
    )

    def validate_veo_required(self) -> None:
        """Raise ConfigurationError when the Veo provider cannot authenticate."""
        if not self.gemini_api_key:
            raise ConfigurationError(
                "GEMINI_API_KEY (or GOOGLE_API_KEY) is not set. "
                "Set it in backend/.env or the environment."
            )
        if self.poll_max_attempts < 1:
            raise ConfigurationError("POLL_MAX_ATTEMPTS must be at least 1")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
