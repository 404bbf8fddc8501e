"""
Domain models for the transcript studio.

Defines the core data structures used throughout the system. Every model
serializes to the camelCase keys of the persisted JSON documents.
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List
from datetime import datetime, timezone

from .pipeline.util import to_number


# Asset lifecycle states, derived by reconciliation only
STATUS_NEW = "new"
STATUS_UNPROCESSED = "unprocessed"
STATUS_AUDIO_READY = "audio_ready"
STATUS_READY = "ready"

EVENT_TYPES = (
    "scan", "upload", "process", "transcribe",
    "edit", "refine", "screenshot", "error",
)


def utc_now_iso() -> str:
    """Current time as an ISO-8601 UTC string with millisecond precision"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class VideoAsset:
    """One source video file and references to its derived artifacts"""
    id: str
    file_name: str
    created_at: str
    status: str = STATUS_NEW
    video_size_bytes: Optional[int] = None
    audio_file: Optional[str] = None
    audio_size_bytes: Optional[int] = None
    transcript_file: Optional[str] = None
    transcript_size_bytes: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "fileName": self.file_name,
            "createdAt": self.created_at,
            "status": self.status,
            "videoSizeBytes": self.video_size_bytes,
            "audioFile": self.audio_file,
            "audioSizeBytes": self.audio_size_bytes,
            "transcriptFile": self.transcript_file,
            "transcriptSizeBytes": self.transcript_size_bytes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VideoAsset":
        return cls(
            id=data["id"],
            file_name=data.get("fileName", ""),
            created_at=data.get("createdAt") or utc_now_iso(),
            status=data.get("status", STATUS_NEW),
            video_size_bytes=data.get("videoSizeBytes"),
            audio_file=data.get("audioFile"),
            audio_size_bytes=data.get("audioSizeBytes"),
            transcript_file=data.get("transcriptFile"),
            transcript_size_bytes=data.get("transcriptSizeBytes"),
        )


@dataclass
class Segment:
    """A timestamped span of transcript text"""
    start: float
    end: float
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {"start": self.start, "end": self.end, "text": self.text}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Segment":
        return cls(
            start=to_number(data.get("start")),
            end=to_number(data.get("end")),
            text=str(data.get("text") or ""),
        )


@dataclass
class Marker:
    """A captured still frame tied to a playback time"""
    time: float
    file_name: str
    url: str

    def to_dict(self) -> Dict[str, Any]:
        return {"time": self.time, "fileName": self.file_name, "url": self.url}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Marker":
        return cls(
            time=to_number(data.get("time")),
            file_name=str(data.get("fileName") or ""),
            url=str(data.get("url") or ""),
        )


@dataclass(frozen=True)
class HistoryEvent:
    """Immutable entry of the event log"""
    id: str
    at: str
    type: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "at": self.at,
            "type": self.type,
            "message": self.message,
            "details": dict(self.details),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryEvent":
        return cls(
            id=str(data.get("id", "")),
            at=str(data.get("at", "")),
            type=str(data.get("type", "")),
            message=str(data.get("message", "")),
            details=dict(data.get("details") or {}),
        )


@dataclass
class ProcessingResult:
    """Represents the result of processing one asset"""
    success: bool
    stages_completed: List[str]
    error: Optional[str] = None
    metrics: Dict[str, Any] = field(default_factory=dict)
