"""
Asset registry and its reconciliation against the video directory.

The registry document is the single owner of VideoAsset records. Every
read goes through reconcile(), which rescans storage, refreshes file
sizes and artifact references, and re-derives each asset's status.
"""

import os
import logging
import threading
from typing import Dict, List, Optional, Tuple

from .adapters.base import DocumentStore
from .config import StudioConfig
from .errors import AssetNotFoundError, AssetIdCollisionError
from .event_log import EventLog
from .models import (
    VideoAsset, utc_now_iso,
    STATUS_NEW, STATUS_UNPROCESSED, STATUS_AUDIO_READY, STATUS_READY,
)
from .pipeline.util import asset_id_for, audio_name_for, transcript_name_for, transcript_document_name

logger = logging.getLogger("transcript_studio")

REGISTRY_DOCUMENT = "meta/videos.json"

VIDEO_EXTENSIONS = frozenset({'.mp4', '.mov', '.mkv', '.webm', '.avi', '.m4v'})


def is_video_file(file_name: str) -> bool:
    return os.path.splitext(file_name)[1].lower() in VIDEO_EXTENSIONS


def derive_status(has_audio: bool, has_transcript: bool) -> str:
    """Lifecycle status as a pure function of artifact presence"""
    if has_audio and has_transcript:
        return STATUS_READY
    if has_audio:
        return STATUS_AUDIO_READY
    return STATUS_UNPROCESSED


class AssetRegistry:
    """Persisted registry of video assets, kept in line with the video directory"""

    def __init__(self, config: StudioConfig, store: DocumentStore, event_log: EventLog):
        self.config = config
        self.store = store
        self.event_log = event_log
        self._lock = threading.Lock()
        self._collisions: Dict[str, List[str]] = {}

    def ensure_document(self) -> None:
        """Seed an empty registry document if none exists"""
        if not self.store.document_exists(REGISTRY_DOCUMENT):
            self.store.write_document(REGISTRY_DOCUMENT, {"videos": {}})

    def _load(self) -> Dict[str, VideoAsset]:
        data = self.store.read_document(REGISTRY_DOCUMENT, {"videos": {}})
        videos = data.get("videos") if isinstance(data, dict) else None
        if not isinstance(videos, dict):
            return {}

        registry = {}
        for asset_id, entry in videos.items():
            if not isinstance(entry, dict):
                logger.warning(f"Dropping malformed registry entry {asset_id}")
                continue
            entry = dict(entry)
            entry.setdefault("id", asset_id)
            registry[asset_id] = VideoAsset.from_dict(entry)
        return registry

    def _save(self, registry: Dict[str, VideoAsset]) -> None:
        self.store.write_document(
            REGISTRY_DOCUMENT,
            {"videos": {asset_id: asset.to_dict() for asset_id, asset in registry.items()}}
        )

    def _scan_video_files(self) -> Tuple[Dict[str, str], Dict[str, List[str]]]:
        """
        Map asset id -> file name for every video in storage.

        Returns:
            Tuple of (unique ids to file names, colliding ids to all their file names)
        """
        # An unreadable directory is fatal to the call
        entries = sorted(os.listdir(self.config.videos_dir))

        by_id: Dict[str, List[str]] = {}
        for file_name in entries:
            if not is_video_file(file_name):
                continue
            by_id.setdefault(asset_id_for(file_name), []).append(file_name)

        files = {asset_id: names[0] for asset_id, names in by_id.items() if len(names) == 1}
        collisions = {asset_id: names for asset_id, names in by_id.items() if len(names) > 1}
        return files, collisions

    def _report_collisions(self, collisions: Dict[str, List[str]]) -> None:
        """Record each newly seen id collision once in the event log"""
        for asset_id, file_names in collisions.items():
            logger.warning(f"Skipping video id '{asset_id}', shared by: {', '.join(file_names)}")
            if self._collisions.get(asset_id) == file_names:
                continue
            self.event_log.add(
                'error',
                f'Video files share the id {asset_id}: {", ".join(file_names)}',
                {'videoId': asset_id, 'files': list(file_names)}
            )
        self._collisions = collisions

    @staticmethod
    def _size_or_none(path: str) -> Optional[int]:
        try:
            return os.path.getsize(path)
        except OSError:
            return None

    def reconcile(self) -> Dict[str, VideoAsset]:
        """
        Align the persisted registry with the video directory.

        New files get a registry entry and a 'scan' event; every listed file
        has its sizes, artifact references and status refreshed. Entries whose
        video has disappeared are kept as they are. Ids shared by several
        files are skipped and reported; the other assets are unaffected.

        Returns:
            The full registry keyed by asset id
        """
        with self._lock:
            files, collisions = self._scan_video_files()
            self._report_collisions(collisions)
            registry = self._load()

            for asset_id, file_name in files.items():
                video_size = self._size_or_none(os.path.join(self.config.videos_dir, file_name))
                if video_size is None:
                    logger.warning(f"Video {file_name} vanished during reconciliation")
                    continue

                asset = registry.get(asset_id)
                if asset is None:
                    asset = VideoAsset(
                        id=asset_id,
                        file_name=file_name,
                        created_at=utc_now_iso(),
                        status=STATUS_NEW
                    )
                    registry[asset_id] = asset
                    logger.info(f"Discovered new video {file_name}")
                    self.event_log.add('scan', f'New video discovered: {file_name}', {'videoId': asset_id})

                audio_name = audio_name_for(asset_id)
                audio_size = self._size_or_none(os.path.join(self.config.audio_dir, audio_name))
                transcript_size = self.store.document_size(transcript_document_name(asset_id))

                asset.file_name = file_name
                asset.video_size_bytes = video_size
                asset.audio_file = audio_name if audio_size is not None else None
                asset.audio_size_bytes = audio_size
                asset.transcript_file = transcript_name_for(asset_id) if transcript_size is not None else None
                asset.transcript_size_bytes = transcript_size
                asset.status = derive_status(audio_size is not None, transcript_size is not None)

            self._save(registry)
            return registry

    def get(self, asset_id: str) -> VideoAsset:
        """Look up an asset in a freshly reconciled registry"""
        registry = self.reconcile()
        if asset_id in self._collisions:
            raise AssetIdCollisionError(asset_id, self._collisions[asset_id])
        asset = registry.get(asset_id)
        if asset is None:
            raise AssetNotFoundError(asset_id)
        return asset

    def list_assets(self) -> List[VideoAsset]:
        """Reconciled assets, most recently discovered first"""
        registry = self.reconcile()
        return sorted(registry.values(), key=lambda asset: asset.created_at, reverse=True)

    def video_path(self, asset: VideoAsset) -> str:
        return os.path.join(self.config.videos_dir, asset.file_name)

    def audio_path(self, asset_id: str) -> str:
        return os.path.join(self.config.audio_dir, audio_name_for(asset_id))
