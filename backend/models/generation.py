from __future__ import annotations

import base64
import binascii
from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator

ASPECT_RATIOS = ("16:9", "21:9", "9:16", "1:1")
CAMERA_STYLES = (
    "cinematic-dolly",
    "drone-aerial",
    "steadicam-tracking",
    "handheld-documentary",
    "virtual-crane",
)
VISUAL_STYLES = (
    "hollywood-epic",
    "neo-noir",
    "natural-cine",
    "hyper-real",
    "dreamlike",
)
FPS_OPTIONS = (24, 30, 60, 120)

DEFAULT_DURATION_SECONDS = 12
DEFAULT_ASPECT_RATIO = "16:9"
DEFAULT_CAMERA_STYLE = "cinematic-dolly"
DEFAULT_VISUAL_STYLE = "hollywood-epic"
DEFAULT_FPS = 24

# Documented, not enforced.
DURATION_RANGE = (5, 60)

AspectRatio = Literal["16:9", "21:9", "9:16", "1:1"]


class GenerationRequest(BaseModel):
    """
    Canonical generation request. Accepts camelCase wire keys or snake_case names.

    Null optionals are dropped before validation so they pick up their defaults.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    prompt: str
    duration_seconds: int = Field(DEFAULT_DURATION_SECONDS, alias="durationSeconds")
    aspect_ratio: AspectRatio = Field(DEFAULT_ASPECT_RATIO, alias="aspectRatio")
    camera_style: str = Field(DEFAULT_CAMERA_STYLE, alias="cameraStyle")
    visual_style: str = Field(DEFAULT_VISUAL_STYLE, alias="visualStyle")
    fps: int = DEFAULT_FPS
    reference_image_base64: str | None = Field(None, alias="referenceImageBase64")
    storyboard: Any = None

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, Mapping):
            return {key: value for key, value in data.items() if value is not None}
        return data

    @field_validator("prompt")
    @classmethod
    def _require_prompt(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Prompt is required")
        return value

    @field_validator("duration_seconds", "fps", mode="before")
    @classmethod
    def _reject_bool(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("must be a number, not a boolean")
        return value

    @field_validator("camera_style", "visual_style")
    @classmethod
    def _style_or_default(cls, value: str, info: ValidationInfo) -> str:
        return value.strip() or cls.model_fields[info.field_name].default

    @field_validator("reference_image_base64")
    @classmethod
    def _check_reference_image(cls, value: str | None) -> str | None:
        """Strip an optional data: URL prefix and check the payload decodes as base64."""
        if value is None:
            return None
        data = value.strip()
        if data.startswith("data:") and "," in data:
            data = data.split(",", 1)[1]
        if not data:
            return None
        try:
            base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError("referenceImageBase64 is not valid base64") from exc
        return data

    def to_payload(self) -> dict[str, Any]:
        """Wire form (camelCase). Absent optionals are omitted."""
        return self.model_dump(by_alias=True, exclude_none=True)


class GenerationDefaults(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    duration_seconds: int = Field(DEFAULT_DURATION_SECONDS, alias="durationSeconds")
    aspect_ratio: str = Field(DEFAULT_ASPECT_RATIO, alias="aspectRatio")
    camera_style: str = Field(DEFAULT_CAMERA_STYLE, alias="cameraStyle")
    visual_style: str = Field(DEFAULT_VISUAL_STYLE, alias="visualStyle")
    fps: int = DEFAULT_FPS


class GenerationOptionsResponse(BaseModel):
    """Enumerations the UI offers, with the defaults the normalizer applies."""

    model_config = ConfigDict(populate_by_name=True)

    aspect_ratios: list[str] = Field(default_factory=lambda: list(ASPECT_RATIOS), alias="aspectRatios")
    camera_styles: list[str] = Field(default_factory=lambda: list(CAMERA_STYLES), alias="cameraStyles")
    visual_styles: list[str] = Field(default_factory=lambda: list(VISUAL_STYLES), alias="visualStyles")
    fps_options: list[int] = Field(default_factory=lambda: list(FPS_OPTIONS), alias="fpsOptions")
    duration_range: list[int] = Field(default_factory=lambda: list(DURATION_RANGE), alias="durationRange")
    defaults: GenerationDefaults = Field(default_factory=GenerationDefaults)
