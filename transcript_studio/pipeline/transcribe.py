"""
Transcription engines and the fallback policy between them.

The local engine drives the whisper CLI; the cloud engine calls the OpenAI
transcription API. TranscriptionService tries local first and falls back
to the cloud only when an API key is configured. Every transition is
recorded in the event log, which is the only record of which engine
produced a transcript.
"""

import os
import json
import logging
import subprocess
from typing import List, Dict, Any, Optional, Iterable

from openai import OpenAI

from .util import to_number
from ..errors import ExternalToolError, TranscriptionError
from ..event_log import EventLog
from ..models import Segment

logger = logging.getLogger("transcript_studio")

# End time of a segment synthesized from whole-text output
END_SENTINEL = 999999.0


def coerce_segments(raw_segments: Iterable[Any]) -> List[Segment]:
    """Convert engine segments (mappings or objects) into Segment values"""
    segments = []
    for raw in raw_segments:
        if isinstance(raw, dict):
            start, end, text = raw.get('start'), raw.get('end'), raw.get('text')
        else:
            start = getattr(raw, 'start', None)
            end = getattr(raw, 'end', None)
            text = getattr(raw, 'text', None)
        segments.append(Segment(
            start=to_number(start),
            end=to_number(end),
            text=str(text or '').strip()
        ))
    return segments


def whole_text_segment(text: Optional[str]) -> List[Segment]:
    """Single segment spanning the whole recording"""
    return [Segment(start=0.0, end=END_SENTINEL, text=str(text or '').strip())]


class LocalWhisperEngine:
    """Runs the openai-whisper command line tool against an audio file"""

    name = "whisper"

    def __init__(self, command: str, model: str, output_dir: str, timeout: float = 3600.0):
        self.command = command
        self.model = model
        self.output_dir = output_dir
        self.timeout = timeout

    def build_command(self, audio_path: str) -> List[str]:
        return [
            self.command,
            audio_path,
            '--model', self.model,
            '--task', 'transcribe',
            '--fp16', 'False',
            '--output_format', 'json',
            '--output_dir', self.output_dir,
        ]

    def output_path(self, audio_path: str) -> str:
        base_name = os.path.splitext(os.path.basename(audio_path))[0]
        return os.path.join(self.output_dir, f"{base_name}.json")

    def transcribe(self, audio_path: str) -> List[Segment]:
        os.makedirs(self.output_dir, exist_ok=True)
        result_path = self.output_path(audio_path)

        # A stale result from an earlier run must never be mistaken for this one
        if os.path.exists(result_path):
            os.unlink(result_path)

        logger.info(f"Transcribing with whisper ({self.model}): {audio_path}")

        try:
            proc = subprocess.run(
                self.build_command(audio_path),
                capture_output=True,
                encoding='utf-8',
                errors='replace',
                timeout=self.timeout,
                check=False
            )
        except FileNotFoundError as e:
            raise ExternalToolError(f"{self.command} not found: {e}") from e
        except subprocess.TimeoutExpired as e:
            raise ExternalToolError(f"{self.command} timed out after {self.timeout:.0f}s") from e

        if proc.returncode != 0:
            stderr = (proc.stderr or '').strip()
            raise ExternalToolError(stderr or f"{self.command} failed with code {proc.returncode}", stderr=stderr)

        try:
            with open(result_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise ExternalToolError("Whisper finished without a JSON result") from e

        if not isinstance(data, dict):
            raise ExternalToolError("Whisper produced an unexpected JSON result")

        segments = data.get('segments')
        if isinstance(segments, list) and segments:
            return coerce_segments(segments)
        return whole_text_segment(data.get('text'))


class OpenAITranscriptionEngine:
    """Cloud transcription through the OpenAI audio API"""

    name = "openai"

    def __init__(self, api_key: str, model: str = "gpt-4o-mini-transcribe", timeout: float = 3600.0,
                 client: Optional[OpenAI] = None):
        self.model = model
        self.client = client or OpenAI(api_key=api_key, timeout=timeout)

    def transcribe(self, audio_path: str) -> List[Segment]:
        logger.info(f"Transcribing with OpenAI ({self.model}): {audio_path}")

        with open(audio_path, 'rb') as audio_file:
            response = self.client.audio.transcriptions.create(
                model=self.model,
                file=audio_file,
                response_format="verbose_json"
            )

        # Parse response
        if hasattr(response, 'model_dump'):
            response_dict = response.model_dump()
        elif isinstance(response, dict):
            response_dict = response
        else:
            response_dict = {
                'text': getattr(response, 'text', ''),
                'segments': getattr(response, 'segments', None)
            }

        segments = response_dict.get('segments')
        if segments:
            return coerce_segments(segments)
        return whole_text_segment(response_dict.get('text'))


class TranscriptionService:
    """Local-first transcription with an optional cloud fallback"""

    def __init__(self, local: LocalWhisperEngine, cloud: Optional[OpenAITranscriptionEngine], event_log: EventLog):
        self.local = local
        self.cloud = cloud
        self.event_log = event_log

    def transcribe(self, audio_path: str) -> List[Segment]:
        """
        Transcribe an audio file.

        Returns:
            Ordered list of segments

        Raises:
            TranscriptionError: the local engine failed and the fallback was
                unavailable or failed as well
        """
        try:
            segments = self.local.transcribe(audio_path)
        except Exception as primary_error:
            logger.warning(f"Local whisper transcription failed: {primary_error}")
            self.event_log.add(
                'error',
                'Local Whisper transcription failed, trying OpenAI fallback',
                {'engine': self.local.name, 'model': self.local.model, 'error': str(primary_error)}
            )
            return self._fallback(audio_path, primary_error)

        self.event_log.add(
            'transcribe',
            f'Transcription finished with Whisper ({self.local.model})',
            {'engine': self.local.name, 'model': self.local.model}
        )
        logger.info(f"Whisper produced {len(segments)} segments for {audio_path}")
        return segments

    def _fallback(self, audio_path: str, primary_error: Exception) -> List[Segment]:
        if self.cloud is None:
            raise TranscriptionError(
                f"Whisper unavailable and fallback unavailable (OPENAI_API_KEY not set): {primary_error}"
            ) from primary_error

        try:
            segments = self.cloud.transcribe(audio_path)
        except Exception as cloud_error:
            logger.error(f"OpenAI fallback transcription failed: {cloud_error}")
            self.event_log.add(
                'error',
                'OpenAI fallback transcription failed',
                {'engine': self.cloud.name, 'model': self.cloud.model, 'error': str(cloud_error)}
            )
            raise TranscriptionError(
                f"Whisper failed ({primary_error}) and OpenAI fallback failed ({cloud_error})"
            ) from cloud_error

        self.event_log.add(
            'transcribe',
            f'Transcription finished with OpenAI fallback ({self.cloud.model})',
            {'engine': self.cloud.name, 'model': self.cloud.model}
        )
        logger.info(f"OpenAI produced {len(segments)} segments for {audio_path}")
        return segments
