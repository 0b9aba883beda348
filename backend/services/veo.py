"""Google Veo client over the Gemini API long-running prediction endpoints."""

from __future__ import annotations

import base64
import json
import logging
from typing import Any

import httpx

from models import GenerationRequest, Operation
from services.errors import ProviderError
from services.provider import VideoProvider
from services.settings import DEFAULT_VEO_API_BASE, DEFAULT_VEO_MODEL

logger = logging.getLogger(__name__)

# Magic-byte prefixes for reference image sniffing.
_IMAGE_SIGNATURES: tuple[tuple[bytes, str], ...] = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"RIFF", "image/webp"),
)


def sniff_image_mime_type(data_base64: str) -> str:
    head = base64.b64decode(data_base64[:64] + "=" * (-len(data_base64[:64]) % 4))
    for signature, mime_type in _IMAGE_SIGNATURES:
        if head.startswith(signature):
            return mime_type
    return "image/png"


def _humanize(tag: str) -> str:
    return tag.replace("-", " ").replace("_", " ").strip()


def _storyboard_lines(storyboard: Any) -> list[str]:
    if storyboard is None:
        return []
    if isinstance(storyboard, str):
        return [storyboard.strip()] if storyboard.strip() else []
    scenes = storyboard.get("scenes") if isinstance(storyboard, dict) else storyboard
    if isinstance(scenes, list):
        lines = []
        for index, scene in enumerate(scenes, start=1):
            if isinstance(scene, dict):
                text = scene.get("description") or scene.get("prompt") or scene.get("title")
            else:
                text = scene
            if text:
                lines.append(f"Scene {index}: {str(text).strip()}")
        return lines
    return [json.dumps(storyboard, sort_keys=True)]


def compose_prompt(request: GenerationRequest) -> str:
    """Fold the cinematic parameters Veo has no native field for into the prompt text."""
    parts = [
        request.prompt,
        "",
        f"Camera: {_humanize(request.camera_style)}.",
        f"Visual style: {_humanize(request.visual_style)}.",
        f"Target frame rate: {request.fps} fps.",
    ]
    scene_lines = _storyboard_lines(request.storyboard)
    if scene_lines:
        parts.append("Storyboard:")
        parts.extend(scene_lines)
    return "\n".join(parts)


def build_predict_body(request: GenerationRequest) -> dict[str, Any]:
    instance: dict[str, Any] = {"prompt": compose_prompt(request)}
    if request.reference_image_base64:
        instance["image"] = {
            "bytesBase64Encoded": request.reference_image_base64,
            "mimeType": sniff_image_mime_type(request.reference_image_base64),
        }
    return {
        "instances": [instance],
        "parameters": {
            "aspectRatio": request.aspect_ratio,
            "durationSeconds": request.duration_seconds,
        },
    }


def _retry_after(response: httpx.Response) -> float | None:
    raw = response.headers.get("retry-after")
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


def _video_uris(result: dict[str, Any]) -> list[str]:
    uris: list[str] = []
    generated = result.get("generateVideoResponse") or {}
    for sample in generated.get("generatedSamples") or []:
        uri = (sample.get("video") or {}).get("uri")
        if uri:
            uris.append(uri)
    for video in result.get("videos") or []:
        uri = video.get("gcsUri") or video.get("uri")
        if uri:
            uris.append(uri)
    return uris


def parse_operation(data: Any, *, throttle_seconds: float | None = None) -> Operation:
    """Map a google.longrunning Operation JSON body onto Operation."""
    if not isinstance(data, dict):
        raise ProviderError("Malformed operation response from Veo")
    name = data.get("name")
    if not isinstance(name, str) or not name:
        raise ProviderError("Veo response did not include an operation name")

    metadata = data.get("metadata") or {}
    if throttle_seconds is None and isinstance(metadata.get("throttleSeconds"), (int, float)):
        throttle_seconds = float(metadata["throttleSeconds"])

    done = bool(data.get("done", False))
    error: str | None = None
    uris: list[str] = []
    if isinstance(data.get("error"), dict):
        error = data["error"].get("message") or "Veo reported an unknown error"
        done = True
    elif done:
        result = data.get("response") or {}
        uris = _video_uris(result)
        filtered = (result.get("generateVideoResponse") or {}).get("raiMediaFilteredReasons")
        if not uris and filtered:
            error = "; ".join(str(reason) for reason in filtered)

    return Operation(
        operation_name=name,
        done=done,
        video_uris=tuple(uris),
        throttle_seconds=throttle_seconds,
        error=error,
    )


class VeoProvider(VideoProvider):
    """
    Veo over the Gemini API.

    - submit(): POST models/{model}:predictLongRunning
    - query(): GET {operation name}
    Every HTTP or decoding failure is raised as ProviderError with the
    underlying message preserved.
    """

    name = "veo"

    def __init__(
        self,
        api_key: str,
        *,
        model: str = DEFAULT_VEO_MODEL,
        base_url: str = DEFAULT_VEO_API_BASE,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._model = model
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/",
            timeout=timeout,
            headers={"x-goog-api-key": api_key, "Content-Type": "application/json"},
            transport=transport,
        )

    @property
    def model(self) -> str:
        return self._model

    async def _request(self, method: str, path: str, **kwargs: Any) -> tuple[Any, float | None]:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise ProviderError(f"Veo request failed: {exc}") from exc

        if response.status_code >= 400:
            message = response.text
            try:
                body = response.json()
                message = body.get("error", {}).get("message") or message
            except (ValueError, AttributeError):
                pass
            raise ProviderError(
                f"Veo returned HTTP {response.status_code}: {message}",
                status_code=response.status_code,
            )
        try:
            return response.json(), _retry_after(response)
        except ValueError as exc:
            raise ProviderError("Veo returned a non-JSON response") from exc

    async def submit(self, request: GenerationRequest) -> Operation:
        logger.info(
            "[veo] Submitting generation: model=%s aspect=%s duration=%ss",
            self._model,
            request.aspect_ratio,
            request.duration_seconds,
        )
        logger.debug("[veo] Prompt: %.100s...", request.prompt)
        data, retry_after = await self._request(
            "POST",
            f"models/{self._model}:predictLongRunning",
            json=build_predict_body(request),
        )
        operation = parse_operation(data, throttle_seconds=retry_after)
        logger.info("[veo] Operation started: %s done=%s", operation.operation_name, operation.done)
        return operation

    async def query(self, operation_name: str) -> Operation:
        data, retry_after = await self._request("GET", operation_name.lstrip("/"))
        operation = parse_operation(data, throttle_seconds=retry_after)
        logger.debug(
            "[veo] Operation %s done=%s uris=%d",
            operation.operation_name,
            operation.done,
            len(operation.video_uris),
        )
        return operation

    async def aclose(self) -> None:
        await self._client.aclose()
