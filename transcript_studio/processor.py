"""
Per-asset processing pipeline.

Drives one asset through extraction -> transcription -> persist. There is
no branching beyond success and failure: a failure at any stage is
recorded in the event log and re-raised to the caller, and nothing that
was already written is rolled back.
"""

import time
import logging
from typing import Optional

from .config import StudioConfig
from .event_log import EventLog
from .logging_setup import log_exception
from .models import ProcessingResult
from .pipeline.audio import extract_audio
from .pipeline.transcribe import TranscriptionService
from .registry import AssetRegistry
from .transcript import TranscriptDocument, TranscriptRepository

logger = logging.getLogger("transcript_studio")


class AssetProcessor:
    """Handles the extract/transcribe/persist pipeline for a single asset"""

    def __init__(self, config: StudioConfig, registry: AssetRegistry, transcription: TranscriptionService,
                 transcripts: TranscriptRepository, event_log: EventLog):
        self.config = config
        self.registry = registry
        self.transcription = transcription
        self.transcripts = transcripts
        self.event_log = event_log

    def process(self, asset_id: str) -> ProcessingResult:
        """
        Process a single asset through the complete pipeline.

        Reprocessing replaces the transcript document wholesale: earlier
        manual edits and screenshot markers are discarded.

        Args:
            asset_id: ID of the asset to process

        Returns:
            ProcessingResult with the completed stages and metrics

        Raises:
            AssetNotFoundError: the asset is not in the reconciled registry
            AudioExtractionError, TranscriptionError: a stage failed
        """
        start_time = time.time()
        stages_completed = []

        asset = self.registry.get(asset_id)
        video_path = self.registry.video_path(asset)
        audio_path = self.registry.audio_path(asset_id)

        try:
            logger.info(f"PROCESS: Starting pipeline for video {asset_id}")
            self.event_log.add('process', f'Processing started for {asset.file_name}', {'videoId': asset_id})

            # Step 1: Extract audio
            logger.info(f"EXTRACT: Extracting audio for video {asset_id}")
            self._extract_audio(video_path, audio_path)
            stages_completed.append("extract")

            # Step 2: Transcribe audio
            logger.info(f"TRANSCRIBE: Starting transcription for video {asset_id}")
            segments = self.transcription.transcribe(audio_path)
            stages_completed.append("transcribe")

            # Step 3: Replace the transcript document
            document = self.transcripts.load_or_empty(asset_id)
            if document.markers:
                logger.warning(
                    f"Reprocessing {asset_id} discards {len(document.markers)} markers and any manual edits"
                )
            document.replace(TranscriptDocument(video_id=asset_id, transcript=segments, markers=[]))
            self.transcripts.save(document)
            stages_completed.append("persist")

            # Artifact references and status are only ever derived by reconciliation
            asset = self.registry.get(asset_id)

            self.event_log.add('process', f'Processing finished for {asset.file_name}', {'videoId': asset_id})

        except Exception as e:
            error_msg = f"Pipeline failed for video {asset_id}: {str(e)}"
            log_exception(logger, error_msg)
            self.event_log.add(
                'error',
                f'Processing failed for {asset.file_name}',
                {'videoId': asset_id, 'error': str(e)}
            )
            raise

        processing_time = time.time() - start_time
        logger.info(f"READY: Pipeline completed for video {asset_id} in {processing_time:.2f}s")

        return ProcessingResult(
            success=True,
            stages_completed=stages_completed,
            metrics={
                'processing_time_sec': processing_time,
                'transcript_segments': len(segments),
                'status': asset.status
            }
        )

    def _extract_audio(self, video_path: str, audio_path: str) -> str:
        """Extract the audio track of the source video"""
        return extract_audio(video_path, audio_path, timeout=self.config.TOOL_TIMEOUT_SEC)
