"""
Transcript documents: ordered segments plus screenshot markers.

Documents are always written whole. Callers load, mutate and save; there
is no partial update. Segment order by start time is re-established after
every marker insertion.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List

from .adapters.base import DocumentStore
from .errors import TranscriptNotFoundError
from .event_log import EventLog
from .models import Segment, Marker, utc_now_iso
from .pipeline.util import transcript_document_name, format_timecode

logger = logging.getLogger("transcript_studio")


def render_marker_text(time: float, url: str) -> str:
    return f"[Screenshot @ {time:.2f} s]({url})"


@dataclass
class TranscriptDocument:
    """Transcript of one asset"""
    video_id: str
    updated_at: str = field(default_factory=utc_now_iso)
    transcript: List[Segment] = field(default_factory=list)
    markers: List[Marker] = field(default_factory=list)

    @classmethod
    def empty(cls, video_id: str) -> "TranscriptDocument":
        return cls(video_id=video_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "videoId": self.video_id,
            "updatedAt": self.updated_at,
            "transcript": [segment.to_dict() for segment in self.transcript],
            "markers": [marker.to_dict() for marker in self.markers],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], video_id: Optional[str] = None) -> "TranscriptDocument":
        return cls(
            video_id=str(data.get("videoId") or video_id or ""),
            updated_at=data.get("updatedAt") or utc_now_iso(),
            transcript=[Segment.from_dict(s) for s in data.get("transcript") or [] if isinstance(s, dict)],
            markers=[Marker.from_dict(m) for m in data.get("markers") or [] if isinstance(m, dict)],
        )

    def replace(self, other: "TranscriptDocument") -> None:
        """Whole-document overwrite"""
        self.video_id = other.video_id
        self.updated_at = other.updated_at
        self.transcript = list(other.transcript)
        self.markers = list(other.markers)

    def sort_segments(self) -> None:
        # list.sort is stable: ties keep insertion order
        self.transcript.sort(key=lambda segment: segment.start)

    def insert_marker(self, time: float, file_name: str, url: str) -> Marker:
        """Add a marker and its synthetic one-second segment"""
        marker = Marker(time=time, file_name=file_name, url=url)
        self.markers.append(marker)
        self.transcript.append(Segment(start=time, end=time + 1, text=render_marker_text(time, url)))
        self.sort_segments()
        self.updated_at = utc_now_iso()
        return marker


def to_srt(document: TranscriptDocument) -> str:
    """Render the document's segments as SubRip subtitles"""
    lines = []
    for i, segment in enumerate(document.transcript, 1):
        lines.append(str(i))
        lines.append(f"{format_timecode(segment.start)} --> {format_timecode(segment.end)}")
        lines.append(segment.text)
        lines.append("")
    return "\n".join(lines)


class TranscriptRepository:
    """Loads and saves transcript documents through the artifact store"""

    def __init__(self, store: DocumentStore, event_log: EventLog):
        self.store = store
        self.event_log = event_log

    def exists(self, asset_id: str) -> bool:
        return self.store.document_exists(transcript_document_name(asset_id))

    def load(self, asset_id: str) -> TranscriptDocument:
        data = self.store.read_document(transcript_document_name(asset_id), None)
        if not isinstance(data, dict):
            raise TranscriptNotFoundError(asset_id)
        return TranscriptDocument.from_dict(data, video_id=asset_id)

    def load_or_empty(self, asset_id: str) -> TranscriptDocument:
        try:
            return self.load(asset_id)
        except TranscriptNotFoundError:
            return TranscriptDocument.empty(asset_id)

    def save(self, document: TranscriptDocument) -> None:
        document.updated_at = utc_now_iso()
        self.store.write_document(transcript_document_name(document.video_id), document.to_dict())

    def edit(self, asset_id: str, payload: Dict[str, Any]) -> TranscriptDocument:
        """Replace the stored document with a caller-edited one"""
        document = TranscriptDocument.from_dict(payload, video_id=asset_id)
        document.video_id = asset_id
        self.save(document)
        self.event_log.add('edit', f'Text edited for {asset_id}', {'videoId': asset_id})
        return document

    def add_marker(self, asset_id: str, time: float, file_name: str, url: str) -> TranscriptDocument:
        """Read-modify-write: append a marker to the current (or an empty) document"""
        document = self.load_or_empty(asset_id)
        document.insert_marker(time, file_name, url)
        self.save(document)
        self.event_log.add(
            'screenshot',
            f'Screenshot for {asset_id} @ {time:.2f} s',
            {'videoId': asset_id, 'fileName': file_name}
        )
        logger.info(f"Marker added to {asset_id} at {time:.2f}s")
        return document
