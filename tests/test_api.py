"""Tests for the render HTTP and WebSocket API."""

import time
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from ayah_shorts.main import app
from ayah_shorts.render.executor import RenderCompletedEvent, RenderProgressEvent
from ayah_shorts.services.job_manager import RenderJobManager


class StubExecutor:
    async def stream(self, plan):
        yield RenderProgressEvent(50, 1000)
        yield RenderProgressEvent(100, 2000)
        yield RenderCompletedEvent(plan.output_path)


def _payload(**overrides):
    data = {
        "audio_paths": ["/audio/001001.mp3", "/audio/001002.mp3"],
        "video_path": "/video/bg.mp4",
        "aspect_ratio": "9:16",
        "resolution": "low",
        "captions": {
            "enabled": True,
            "segments": [{"primary": "a", "secondary": "A"}, {"primary": "b"}],
        },
    }
    data.update(overrides)
    return data


@pytest.fixture
def client():
    with patch(
        "ayah_shorts.render.timeline.probe_duration_async",
        AsyncMock(return_value=1.0),
    ), patch(
        "ayah_shorts.services.job_manager.get_video_dimensions",
        return_value=(1920, 1080),
    ):
        with TestClient(app) as test_client:
            registry = app.state.registry
            app.state.job_manager = RenderJobManager(registry, StubExecutor())
            yield test_client


def _wait_for_status(client, job_id, statuses=("completed", "failed"), timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        body = client.get(f"/api/renders/{job_id}").json()
        if body["status"] in statuses:
            return body
        time.sleep(0.02)
    raise AssertionError(f"job {job_id} did not reach {statuses}")


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestRenderRoutes:
    """Tests for /api/renders."""

    def test_submit_and_complete(self, client):
        response = client.post("/api/renders", json=_payload())

        assert response.status_code == 202
        job = response.json()
        assert job["status"] in ("queued", "processing", "completed")

        final = _wait_for_status(client, job["id"])
        assert final["status"] == "completed"
        assert final["progress"] == 100
        assert final["output_file_path"].endswith(".mp4")
        assert final["processing_time"] is not None

        listed = client.get("/api/renders").json()
        assert [j["id"] for j in listed] == [job["id"]]

    @pytest.mark.parametrize(
        "overrides",
        [
            {"audio_paths": []},
            {"aspect_ratio": "21:9"},
            {"resolution": "ultra"},
            {"captions": {"enabled": True, "segments": [{"primary": "only one"}]}},
            {"captions": {"enabled": True, "font_size": 100}},
        ],
    )
    def test_invalid_request(self, client, overrides):
        response = client.post("/api/renders", json=_payload(**overrides))
        assert response.status_code == 422

    def test_get_unknown(self, client):
        response = client.get("/api/renders/nope")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "RENDER_JOB_NOT_FOUND"

    def test_cancel_unknown(self, client):
        assert client.post("/api/renders/nope/cancel").status_code == 404

    def test_cancel_finished_job(self, client):
        job = client.post("/api/renders", json=_payload()).json()
        _wait_for_status(client, job["id"])

        response = client.post(f"/api/renders/{job['id']}/cancel")

        assert response.status_code == 200
        assert response.json() == {"cancelled": False}


class TestRenderWebSocket:
    """Tests for /api/ws/renders/{job_id}."""

    def test_unknown_job_closes(self, client):
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/api/ws/renders/nope") as ws:
                ws.receive_json()

    def test_initial_snapshot(self, client):
        job = client.post("/api/renders", json=_payload()).json()
        _wait_for_status(client, job["id"])

        with client.websocket_connect(f"/api/ws/renders/{job['id']}") as ws:
            message = ws.receive_json()

        assert message["type"] == "status"
        assert message["job"]["id"] == job["id"]
        assert message["job"]["status"] == "completed"
