import json
import subprocess
from pathlib import Path
from types import SimpleNamespace
from unittest import mock

import pytest

from transcript_studio.errors import ExternalToolError, TranscriptionError
from transcript_studio.models import Segment
from transcript_studio.pipeline.transcribe import (
    END_SENTINEL, LocalWhisperEngine, OpenAITranscriptionEngine, TranscriptionService, coerce_segments,
)

from .conftest import FakeEngine


@pytest.fixture
def engine(tmp_path):
    return LocalWhisperEngine(command="whisper", model="small", output_dir=str(tmp_path / "whisper"), timeout=5)


@pytest.fixture
def audio(tmp_path):
    path = tmp_path / "demo.mp3"
    path.write_bytes(b"ID3")
    return str(path)


def _whisper_writes(engine, payload, returncode=0, stderr=""):
    def fake_run(cmd, **kwargs):
        if payload is not None:
            out = Path(engine.output_dir) / "demo.json"
            out.write_text(payload if isinstance(payload, str) else json.dumps(payload), encoding="utf-8")
        return subprocess.CompletedProcess(cmd, returncode, stdout="", stderr=stderr)
    return fake_run


def test_coerce_segments_defaults_malformed_numbers_and_trims():
    raw = [
        {"start": "1.5", "end": 3, "text": "  hello "},
        {"start": "nan?", "end": None, "text": None},
        SimpleNamespace(start=4.0, end=5.0, text=" obj "),
    ]
    assert coerce_segments(raw) == [
        Segment(1.5, 3.0, "hello"),
        Segment(0.0, 0.0, ""),
        Segment(4.0, 5.0, "obj"),
    ]


@pytest.mark.parametrize("value", ["inf", "-inf", "1e999", float("nan"), float("inf")])
def test_non_finite_times_become_zero(value):
    assert coerce_segments([{"start": value, "end": value, "text": "x"}]) == [Segment(0.0, 0.0, "x")]
    assert Segment.from_dict({"start": value, "end": 2, "text": "x"}).start == 0.0


class TestLocalWhisperEngine:
    def test_command_shape(self, engine, audio):
        assert engine.build_command(audio) == [
            "whisper", audio, "--model", "small", "--task", "transcribe", "--fp16", "False",
            "--output_format", "json", "--output_dir", engine.output_dir,
        ]

    def test_segments_are_parsed(self, engine, audio):
        payload = {"text": "a b", "segments": [
            {"id": 0, "start": 0.0, "end": 1.2, "text": " a"},
            {"id": 1, "start": "bad", "end": 2.4, "text": "b "},
        ]}
        with mock.patch("subprocess.run", side_effect=_whisper_writes(engine, payload)) as run:
            segments = engine.transcribe(audio)

        assert segments == [Segment(0.0, 1.2, "a"), Segment(0.0, 2.4, "b")]
        assert run.call_args.kwargs["timeout"] == 5
        assert run.call_args.kwargs["encoding"] == "utf-8"
        assert run.call_args.kwargs["errors"] == "replace"

    def test_whole_text_becomes_sentinel_segment(self, engine, audio):
        with mock.patch("subprocess.run", side_effect=_whisper_writes(engine, {"text": "  all of it  "})):
            segments = engine.transcribe(audio)
        assert segments == [Segment(0.0, END_SENTINEL, "all of it")]

    def test_stale_output_is_removed_before_running(self, engine, audio):
        Path(engine.output_dir).mkdir(parents=True)
        stale = Path(engine.output_dir) / "demo.json"
        stale.write_text(json.dumps({"text": "stale"}), encoding="utf-8")

        with mock.patch("subprocess.run", side_effect=_whisper_writes(engine, None)):
            with pytest.raises(ExternalToolError, match="without a JSON result"):
                engine.transcribe(audio)

    def test_non_zero_exit_carries_stderr(self, engine, audio):
        with mock.patch("subprocess.run", side_effect=_whisper_writes(engine, None, returncode=1, stderr="CUDA boom\n")):
            with pytest.raises(ExternalToolError) as exc_info:
                engine.transcribe(audio)
        assert str(exc_info.value) == "CUDA boom"
        assert exc_info.value.stderr == "CUDA boom"

    def test_malformed_output(self, engine, audio):
        with mock.patch("subprocess.run", side_effect=_whisper_writes(engine, "{truncated")):
            with pytest.raises(ExternalToolError):
                engine.transcribe(audio)

    def test_missing_binary(self, engine, audio):
        with mock.patch("subprocess.run", side_effect=FileNotFoundError("whisper")):
            with pytest.raises(ExternalToolError, match="not found"):
                engine.transcribe(audio)

    def test_timeout(self, engine, audio):
        with mock.patch("subprocess.run", side_effect=subprocess.TimeoutExpired("whisper", 5)):
            with pytest.raises(ExternalToolError, match="timed out"):
                engine.transcribe(audio)


class TestOpenAITranscriptionEngine:
    def _engine(self, response):
        client = mock.MagicMock()
        client.audio.transcriptions.create.return_value = response
        return OpenAITranscriptionEngine(api_key="sk-test", model="gpt-4o-mini-transcribe", client=client), client

    def test_segmented_response(self, audio):
        engine, client = self._engine({"text": "x", "segments": [{"start": 0, "end": 1.5, "text": " x "}]})

        assert engine.transcribe(audio) == [Segment(0.0, 1.5, "x")]
        kwargs = client.audio.transcriptions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini-transcribe"
        assert kwargs["response_format"] == "verbose_json"

    def test_flat_text_response(self, audio):
        engine, _ = self._engine(SimpleNamespace(text="flat text", segments=None))
        assert engine.transcribe(audio) == [Segment(0.0, END_SENTINEL, "flat text")]


class TestTranscriptionService:
    def test_primary_success(self, event_log):
        local = FakeEngine()
        service = TranscriptionService(local, None, event_log)

        assert service.transcribe("a.mp3") == [Segment(0.0, 2.5, "hello world")]

        events = event_log.list()
        assert [e.type for e in events] == ["transcribe"]
        assert events[0].details == {"engine": "whisper", "model": "small"}

    def test_fallback_to_cloud(self, event_log):
        local = FakeEngine(error=ExternalToolError("whisper exploded"))
        cloud = FakeEngine(name="openai", model="gpt-4o-mini-transcribe", segments=[Segment(0.0, 1.0, "cloud")])
        service = TranscriptionService(local, cloud, event_log)

        assert service.transcribe("a.mp3") == [Segment(0.0, 1.0, "cloud")]

        chronological = list(reversed(event_log.list()))
        assert [(e.type, e.details["engine"]) for e in chronological] == [
            ("error", "whisper"),
            ("transcribe", "openai"),
        ]
        assert chronological[0].details["error"] == "whisper exploded"
        assert chronological[1].details["model"] == "gpt-4o-mini-transcribe"

    def test_fallback_unavailable(self, event_log):
        local = FakeEngine(error=ExternalToolError("whisper exploded"))
        service = TranscriptionService(local, None, event_log)

        with pytest.raises(TranscriptionError) as exc_info:
            service.transcribe("a.mp3")

        message = str(exc_info.value)
        assert "whisper exploded" in message
        assert "fallback unavailable" in message
        assert isinstance(exc_info.value.__cause__, ExternalToolError)
        assert [e.type for e in event_log.list()] == ["error"]

    def test_both_engines_fail(self, event_log):
        local = FakeEngine(error=ExternalToolError("local broke"))
        cloud = FakeEngine(name="openai", model="gpt-4o-mini-transcribe", error=RuntimeError("429 quota"))
        service = TranscriptionService(local, cloud, event_log)

        with pytest.raises(TranscriptionError) as exc_info:
            service.transcribe("a.mp3")

        assert "local broke" in str(exc_info.value)
        assert "429 quota" in str(exc_info.value)
        chronological = list(reversed(event_log.list()))
        assert [(e.type, e.details["engine"]) for e in chronological] == [("error", "whisper"), ("error", "openai")]
