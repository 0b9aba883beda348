import base64
import json

import httpx
import pytest

from models import GenerationRequest
from services.errors import ProviderError
from services.veo import VeoProvider, compose_prompt, parse_operation, sniff_image_mime_type

JPEG_BASE64 = base64.b64encode(b"\xff\xd8\xff\xe0" + b"\x00" * 20).decode()
OPERATION_NAME = "models/veo-3.1-generate-preview/operations/abc123"


def _provider(handler) -> VeoProvider:
    return VeoProvider(
        "test-key",
        base_url="https://veo.test/v1beta",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.anyio
async def test_submit_posts_predict_long_running() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["api_key"] = request.headers.get("x-goog-api-key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"name": OPERATION_NAME}, headers={"Retry-After": "7"})

    provider = _provider(handler)
    request = GenerationRequest(
        prompt="Rain-soaked neon street",
        duration_seconds=8,
        aspect_ratio="9:16",
        reference_image_base64=JPEG_BASE64,
    )
    operation = await provider.submit(request)
    await provider.aclose()

    assert seen["method"] == "POST"
    assert seen["url"] == "https://veo.test/v1beta/models/veo-3.1-generate-preview:predictLongRunning"
    assert seen["api_key"] == "test-key"
    instance = seen["body"]["instances"][0]
    assert instance["prompt"].startswith("Rain-soaked neon street")
    assert instance["image"] == {"bytesBase64Encoded": JPEG_BASE64, "mimeType": "image/jpeg"}
    assert seen["body"]["parameters"] == {"aspectRatio": "9:16", "durationSeconds": 8}

    assert operation.operation_name == OPERATION_NAME
    assert operation.done is False
    assert operation.throttle_seconds == 7.0


@pytest.mark.anyio
async def test_query_extracts_generated_video_uris() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == f"/v1beta/{OPERATION_NAME}"
        return httpx.Response(
            200,
            json={
                "name": OPERATION_NAME,
                "done": True,
                "response": {
                    "generateVideoResponse": {
                        "generatedSamples": [
                            {"video": {"uri": "https://veo.test/files/one.mp4"}},
                            {"video": {"uri": "https://veo.test/files/two.mp4"}},
                        ]
                    }
                },
            },
        )

    provider = _provider(handler)
    operation = await provider.query(OPERATION_NAME)
    await provider.aclose()

    assert operation.has_output
    assert operation.video_uris == ("https://veo.test/files/one.mp4", "https://veo.test/files/two.mp4")


@pytest.mark.anyio
async def test_http_error_becomes_provider_error_with_message() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json={"error": {"code": 429, "message": "Resource has been exhausted"}})

    provider = _provider(handler)
    with pytest.raises(ProviderError, match="Resource has been exhausted") as excinfo:
        await provider.query(OPERATION_NAME)
    await provider.aclose()
    assert excinfo.value.status_code == 429


@pytest.mark.anyio
async def test_network_failure_becomes_provider_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    provider = _provider(handler)
    with pytest.raises(ProviderError, match="connection refused"):
        await provider.submit(GenerationRequest(prompt="x"))
    await provider.aclose()


@pytest.mark.anyio
async def test_non_json_body_becomes_provider_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>gateway</html>")

    provider = _provider(handler)
    with pytest.raises(ProviderError, match="non-JSON"):
        await provider.query(OPERATION_NAME)
    await provider.aclose()


def test_parse_operation_error_field_is_terminal() -> None:
    operation = parse_operation({"name": OPERATION_NAME, "error": {"code": 3, "message": "Invalid prompt"}})
    assert operation.done is True
    assert operation.error == "Invalid prompt"
    assert not operation.has_output


def test_parse_operation_rai_filter_is_an_error() -> None:
    operation = parse_operation(
        {
            "name": OPERATION_NAME,
            "done": True,
            "response": {"generateVideoResponse": {"raiMediaFilteredReasons": ["Unsafe content detected"]}},
        }
    )
    assert operation.error == "Unsafe content detected"


def test_parse_operation_vertex_style_videos() -> None:
    operation = parse_operation(
        {"name": OPERATION_NAME, "done": True, "response": {"videos": [{"gcsUri": "gs://bucket/out/0.mp4"}]}}
    )
    assert operation.video_uris == ("gs://bucket/out/0.mp4",)


def test_parse_operation_metadata_throttle() -> None:
    operation = parse_operation({"name": OPERATION_NAME, "metadata": {"throttleSeconds": 12}})
    assert operation.throttle_seconds == 12.0
    assert operation.is_pending


@pytest.mark.parametrize("body", [[], {"done": False}, {"name": ""}])
def test_parse_operation_rejects_malformed_bodies(body) -> None:
    with pytest.raises(ProviderError):
        parse_operation(body)


def test_compose_prompt_folds_in_cinematic_parameters() -> None:
    request = GenerationRequest(
        prompt="Alpine dawn hyperlapse",
        camera_style="drone-aerial",
        visual_style="natural-cine",
        fps=60,
        storyboard={"scenes": [{"description": "Clouds roll over the ridge"}, "Sun breaks the horizon"]},
    )
    prompt = compose_prompt(request)
    assert prompt.startswith("Alpine dawn hyperlapse\n")
    assert "Camera: drone aerial." in prompt
    assert "Visual style: natural cine." in prompt
    assert "60 fps" in prompt
    assert "Scene 1: Clouds roll over the ridge" in prompt
    assert "Scene 2: Sun breaks the horizon" in prompt


def test_sniff_image_mime_type_defaults_to_png() -> None:
    assert sniff_image_mime_type(JPEG_BASE64) == "image/jpeg"
    assert sniff_image_mime_type(base64.b64encode(b"unknown-bytes").decode()) == "image/png"
