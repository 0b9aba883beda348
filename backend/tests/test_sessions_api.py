"""Tests for the session API: server-side polling with one tracked generation per session."""

import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from app.main import app
from conftest import ScriptedProvider, finished, pending
from routes.deps import get_provider, get_scheduler
from services.errors import ProviderError
from services.scheduler import ManualScheduler
from services.status_hub import status_hub
from services.store import sessions


@pytest.fixture
def provider():
    return ScriptedProvider(submit_result=pending("operations/s-1"))


@pytest.fixture
def wired(provider, scheduler):
    app.dependency_overrides[get_provider] = lambda: provider
    app.dependency_overrides[get_scheduler] = lambda: scheduler
    yield provider, scheduler
    app.dependency_overrides.clear()


def _client() -> httpx.AsyncClient:
    transport = httpx.ASGITransport(app=app)
    return httpx.AsyncClient(transport=transport, base_url="http://test")


@pytest.mark.anyio
async def test_create_session_starts_idle(wired) -> None:
    async with _client() as client:
        response = await client.post("/api/sessions")
    assert response.status_code == 201
    body = response.json()
    assert body["state"] == "idle"
    assert body["operation_name"] is None
    assert body["session_id"] in sessions


@pytest.mark.anyio
async def test_read_unknown_session_is_404(wired) -> None:
    async with _client() as client:
        response = await client.get("/api/sessions/nonexistent")
    assert response.status_code == 404
    assert response.json() == {"error": "Session not found"}


@pytest.mark.anyio
async def test_generate_then_poll_to_success(wired) -> None:
    provider, scheduler = wired
    provider.responses = [pending("operations/s-1"), finished("operations/s-1", uri="https://cdn.example/s1.mp4")]

    async with _client() as client:
        session_id = (await client.post("/api/sessions")).json()["session_id"]
        submitted = await client.post(f"/api/sessions/{session_id}/generate", json={"prompt": "Hypercar drone chase"})
        assert submitted.status_code == 202
        assert submitted.json()["state"] == "submitted"
        assert submitted.json()["operation_name"] == "operations/s-1"
        assert submitted.json()["next_delay"] == 6.0

        await scheduler.run_until_idle()
        final = await client.get(f"/api/sessions/{session_id}")

    body = final.json()
    assert body["state"] == "succeeded"
    assert body["attempts"] == 2
    assert body["video_uri"] == "https://cdn.example/s1.mp4"
    assert body["playback_url"] == "https://cdn.example/s1.mp4"


@pytest.mark.anyio
async def test_generate_validation_error_is_400(wired) -> None:
    provider, _ = wired
    async with _client() as client:
        session_id = (await client.post("/api/sessions")).json()["session_id"]
        response = await client.post(f"/api/sessions/{session_id}/generate", json={"prompt": " "})
    assert response.status_code == 400
    assert response.json() == {"error": "Prompt is required"}
    assert provider.submitted == []


@pytest.mark.anyio
async def test_generate_unknown_session_is_404(wired) -> None:
    async with _client() as client:
        response = await client.post("/api/sessions/missing/generate", json={"prompt": "x"})
    assert response.status_code == 404


@pytest.mark.anyio
async def test_generate_submission_failure_is_500(wired) -> None:
    provider, _ = wired
    provider.submit_result = ProviderError("Veo returned HTTP 403: API key not valid")
    async with _client() as client:
        session_id = (await client.post("/api/sessions")).json()["session_id"]
        response = await client.post(f"/api/sessions/{session_id}/generate", json={"prompt": "x"})
        snapshot = await client.get(f"/api/sessions/{session_id}")
    assert response.status_code == 500
    assert response.json() == {"error": "Veo returned HTTP 403: API key not valid"}
    assert snapshot.json()["state"] == "failed"


@pytest.mark.anyio
async def test_new_generation_replaces_pending_one(wired) -> None:
    provider, scheduler = wired
    async with _client() as client:
        session_id = (await client.post("/api/sessions")).json()["session_id"]
        await client.post(f"/api/sessions/{session_id}/generate", json={"prompt": "First take"})
        provider.submit_result = pending("operations/s-2")
        provider.responses = [finished("operations/s-2")]
        await client.post(f"/api/sessions/{session_id}/generate", json={"prompt": "Second take"})

        assert len(scheduler.pending) == 1
        await scheduler.run_until_idle()
        body = (await client.get(f"/api/sessions/{session_id}")).json()

    assert provider.queries == ["operations/s-2"]
    assert body["operation_name"] == "operations/s-2"
    assert body["state"] == "succeeded"


@pytest.mark.anyio
async def test_cancel_and_close_session(wired) -> None:
    _, scheduler = wired
    async with _client() as client:
        session_id = (await client.post("/api/sessions")).json()["session_id"]
        await client.post(f"/api/sessions/{session_id}/generate", json={"prompt": "x"})
        cancelled = await client.post(f"/api/sessions/{session_id}/cancel")
        assert cancelled.json()["state"] == "cancelled"
        assert scheduler.pending == []

        closed = await client.delete(f"/api/sessions/{session_id}")
        assert closed.status_code == 204
        gone = await client.get(f"/api/sessions/{session_id}")
    assert gone.status_code == 404


def test_sessions_use_isolated_pollers() -> None:
    scheduler = ManualScheduler()
    provider = ScriptedProvider()
    app.dependency_overrides[get_provider] = lambda: provider
    app.dependency_overrides[get_scheduler] = lambda: scheduler
    try:
        client = TestClient(app)
        first = client.post("/api/sessions").json()["session_id"]
        second = client.post("/api/sessions").json()["session_id"]
    finally:
        app.dependency_overrides.clear()
    assert first != second
    assert sessions[first].poller is not sessions[second].poller


async def _drain_states(queue: asyncio.Queue) -> list[str]:
    await asyncio.sleep(0.01)
    states = []
    while not queue.empty():
        states.append(queue.get_nowait()["state"])
    return states


@pytest.mark.anyio
async def test_cancel_is_streamed_to_status_subscribers(wired) -> None:
    async with _client() as client:
        session_id = (await client.post("/api/sessions")).json()["session_id"]
        await client.post(f"/api/sessions/{session_id}/generate", json={"prompt": "Steadicam through a market"})
        queue = await status_hub.subscribe(session_id)
        try:
            await client.post(f"/api/sessions/{session_id}/cancel")
            states = await _drain_states(queue)
        finally:
            await status_hub.unsubscribe(session_id, queue)

        polled = (await client.get(f"/api/sessions/{session_id}")).json()
    assert states[0] == "submitted"
    assert states[-1] == "cancelled"
    assert polled["state"] == "cancelled"


@pytest.mark.anyio
async def test_closing_a_session_tells_subscribers_and_drops_its_snapshot(wired) -> None:
    async with _client() as client:
        session_id = (await client.post("/api/sessions")).json()["session_id"]
        await client.post(f"/api/sessions/{session_id}/generate", json={"prompt": "x"})
        queue = await status_hub.subscribe(session_id)
        try:
            await client.delete(f"/api/sessions/{session_id}")
            states = await _drain_states(queue)
        finally:
            await status_hub.unsubscribe(session_id, queue)

    assert states[-1] == "cancelled"
    late = await status_hub.subscribe(session_id)
    assert late.empty()
    await status_hub.unsubscribe(session_id, late)
