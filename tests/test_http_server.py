from unittest import mock

import pytest
from fastapi.testclient import TestClient

from transcript_studio.errors import (
    AssetNotFoundError, CloudNotConfiguredError, InvalidScreenshotError, TranscriptionError,
)
from transcript_studio.http_server import create_app, status_code_for
from transcript_studio.service import StudioService

from .conftest import FakeEngine, fake_extract_audio, make_png_base64


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def service(config, store, engine):
    svc = StudioService(config=config, store=store, local_engine=engine)
    svc.initialize()
    return svc


@pytest.fixture
def client(service):
    return TestClient(create_app(service), raise_server_exceptions=False)


@pytest.fixture(autouse=True)
def fake_ffmpeg():
    with mock.patch("transcript_studio.processor.extract_audio", side_effect=fake_extract_audio):
        yield


def test_status_codes():
    assert status_code_for(AssetNotFoundError("x")) == 404
    assert status_code_for(CloudNotConfiguredError("refine")) == 400
    assert status_code_for(InvalidScreenshotError("No image")) == 400
    assert status_code_for(TranscriptionError("boom")) == 500


def test_health(client):
    assert client.get("/healthz").json()["ok"] is True


def test_process_and_read_text(client, add_video):
    add_video("demo.mp4")

    videos = client.get("/api/videos").json()
    assert [(v["id"], v["fileName"], v["status"]) for v in videos] == [("demo", "demo.mp4", "unprocessed")]

    response = client.post("/api/process/demo")
    assert response.status_code == 200
    assert response.json()["ok"] is True
    assert response.json()["metrics"]["status"] == "ready"

    text = client.get("/api/text/demo").json()
    assert text["videoId"] == "demo"
    assert text["transcript"] == [{"start": 0.0, "end": 2.5, "text": "hello world"}]
    assert text["markers"] == []

    srt = client.get("/api/text/demo/srt")
    assert srt.status_code == 200
    assert srt.text.startswith("1\n00:00:00,000 --> 00:00:02,500\nhello world")


def test_unknown_video(client):
    response = client.post("/api/process/ghost")
    assert response.status_code == 404
    assert response.json() == {"error": "Video not found: ghost"}


def test_missing_text(client):
    response = client.get("/api/text/ghost")
    assert response.status_code == 404
    assert response.json() == {"error": "Text not found: ghost"}


def test_pipeline_failure_is_500(client, add_video, engine):
    add_video("demo.mp4")
    engine.error = TranscriptionError("engine crashed")

    response = client.post("/api/process/demo")

    assert response.status_code == 500
    assert "engine crashed" in response.json()["error"]


def test_put_text_replaces_document(client):
    payload = {"videoId": "demo", "transcript": [{"start": 0, "end": 1, "text": "edited"}], "markers": []}

    assert client.put("/api/text/demo", json=payload).json() == {"ok": True}

    stored = client.get("/api/text/demo").json()
    assert stored["transcript"] == [{"start": 0.0, "end": 1.0, "text": "edited"}]
    assert stored["updatedAt"].endswith("Z")


def test_out_of_range_times_stay_readable(client):
    payload = {"transcript": [{"start": "1e999", "end": "-inf", "text": "huge"}]}
    assert client.put("/api/text/demo", json=payload).status_code == 200

    text = client.get("/api/text/demo")
    assert text.status_code == 200
    assert text.json()["transcript"] == [{"start": 0.0, "end": 0.0, "text": "huge"}]

    srt = client.get("/api/text/demo/srt")
    assert srt.status_code == 200
    assert "00:00:00,000 --> 00:00:00,000" in srt.text


def test_refine_without_key_is_400(client):
    client.put("/api/text/demo", json={"transcript": []})
    response = client.post("/api/refine/demo", json={"instruction": "tidy"})
    assert response.status_code == 400
    assert "OPENAI_API_KEY" in response.json()["error"]


def test_screenshot(client):
    response = client.post("/api/screenshot/demo", json={"imageBase64": make_png_base64(), "time": 3.0})

    assert response.status_code == 200
    url = response.json()["url"]
    assert url.startswith("/files/screenshots/demo-")
    assert client.get("/api/text/demo").json()["markers"][0]["url"] == url


def test_screenshot_without_image(client):
    response = client.post("/api/screenshot/demo", json={"time": 1.0})
    assert response.status_code == 400
    assert response.json() == {"error": "No image"}


def test_history_endpoints(client, add_video):
    add_video("demo.mp4")
    client.get("/api/videos")

    history = client.get("/api/history").json()
    assert history[0]["type"] == "scan"
    event_id = history[0]["id"]

    assert client.delete(f"/api/history/{event_id}").json() == {"ok": True, "deleted": True}
    assert client.delete(f"/api/history/{event_id}").json() == {"ok": True, "deleted": False}

    client.post("/api/process/demo")
    assert client.get("/api/history").json()
    assert client.delete("/api/history").json() == {"ok": True}
    assert client.get("/api/history").json() == []


def test_stats(client):
    stats = client.get("/stats").json()
    assert stats["config"]["storage_type"] == "local"
    assert stats["orchestrator"]["jobs_processed"] == 0
