import io
import base64
import logging
from pathlib import Path

import pytest
from PIL import Image

from transcript_studio.adapters.local_adapter import LocalDocumentStore
from transcript_studio.config import StudioConfig
from transcript_studio.event_log import EventLog
from transcript_studio.models import Segment
from transcript_studio.registry import AssetRegistry
from transcript_studio.transcript import TranscriptRepository


class FakeEngine:
    """Stands in for a transcription engine"""

    def __init__(self, name="whisper", model="small", segments=None, error=None):
        self.name = name
        self.model = model
        self.segments = segments if segments is not None else [Segment(0.0, 2.5, "hello world")]
        self.error = error
        self.calls = []

    def transcribe(self, audio_path):
        self.calls.append(audio_path)
        if self.error is not None:
            raise self.error
        return list(self.segments)


def fake_extract_audio(video_path, audio_path, timeout=None):
    Path(audio_path).parent.mkdir(parents=True, exist_ok=True)
    Path(audio_path).write_bytes(b"ID3fake-mp3")
    return audio_path


def make_png_base64(data_url=True):
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), color=(200, 10, 10)).save(buffer, format="PNG")
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/png;base64,{encoded}" if data_url else encoded


@pytest.fixture(autouse=True)
def _reset_logger():
    yield
    logger = logging.getLogger("transcript_studio")
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture
def config(tmp_path):
    cfg = StudioConfig(DATA_DIR=str(tmp_path / "data"), TOOL_TIMEOUT_SEC=5.0)
    cfg.ensure_dirs()
    return cfg


@pytest.fixture
def store(config):
    s = LocalDocumentStore(config.DATA_DIR)
    s.connect()
    return s


@pytest.fixture
def event_log(store):
    return EventLog(store)


@pytest.fixture
def registry(config, store, event_log):
    return AssetRegistry(config, store, event_log)


@pytest.fixture
def transcripts(store, event_log):
    return TranscriptRepository(store, event_log)


@pytest.fixture
def add_video(config):
    def _add(file_name, size=16):
        path = Path(config.videos_dir) / file_name
        path.write_bytes(b"\0" * size)
        return path
    return _add
