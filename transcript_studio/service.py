"""
Main studio service.

Wires configuration, the artifact store, event log, registry, transcription
engines and processor together behind one facade, and is the only place
that knows which concrete adapters are in use.
"""

import sys
import signal
import logging
from typing import Optional, Dict, Any, List

from .config import StudioConfig
from .adapters.base import DocumentStore
from .adapters.local_adapter import LocalDocumentStore
from .adapters.s3_adapter import S3DocumentStore
from .errors import CloudNotConfiguredError
from .event_log import EventLog
from .logging_setup import setup_logging, log_exception
from .models import HistoryEvent, ProcessingResult, VideoAsset
from .orchestrator import AssetLocks, ProcessingOrchestrator
from .pipeline.refine import TranscriptRefiner
from .pipeline.transcribe import LocalWhisperEngine, OpenAITranscriptionEngine, TranscriptionService
from .processor import AssetProcessor
from .registry import AssetRegistry
from .screenshots import ScreenshotService
from .transcript import TranscriptDocument, TranscriptRepository, to_srt

logger = logging.getLogger("transcript_studio")


def create_document_store(config: StudioConfig) -> DocumentStore:
    """Create the artifact store based on configuration"""

    if config.STORAGE_TYPE == "local":
        return LocalDocumentStore(config.DATA_DIR)

    elif config.STORAGE_TYPE == "s3":
        storage_config = config.STORAGE_CONFIG
        return S3DocumentStore(
            bucket=storage_config["bucket"],
            region=storage_config.get("region", "us-east-1"),
            prefix=storage_config.get("prefix", "transcript-studio/")
        )

    else:
        raise ValueError(f"Unsupported storage type: {config.STORAGE_TYPE}")


class StudioService:
    """Facade over the processing pipeline and the transcript documents"""

    def __init__(self, config: Optional[StudioConfig] = None, store: Optional[DocumentStore] = None,
                 local_engine: Optional[LocalWhisperEngine] = None,
                 cloud_engine: Optional[OpenAITranscriptionEngine] = None,
                 refiner: Optional[TranscriptRefiner] = None):
        self.config = config or StudioConfig.from_env()
        self.store = store or create_document_store(self.config)

        self.event_log = EventLog(self.store)
        self.registry = AssetRegistry(self.config, self.store, self.event_log)
        self.transcripts = TranscriptRepository(self.store, self.event_log)
        self.screenshots = ScreenshotService(self.config, self.transcripts)

        self.local_engine = local_engine or LocalWhisperEngine(
            command=self.config.WHISPER_CMD,
            model=self.config.WHISPER_MODEL,
            output_dir=self.config.whisper_output_dir,
            timeout=self.config.TOOL_TIMEOUT_SEC
        )
        if cloud_engine is None and self.config.cloud_enabled:
            cloud_engine = OpenAITranscriptionEngine(
                api_key=self.config.OPENAI_API_KEY,
                model=self.config.CLOUD_TRANSCRIBE_MODEL,
                timeout=self.config.TOOL_TIMEOUT_SEC
            )
        self.cloud_engine = cloud_engine

        if refiner is None and self.config.cloud_enabled:
            refiner = TranscriptRefiner(api_key=self.config.OPENAI_API_KEY, model=self.config.REFINE_MODEL)
        self.refiner = refiner

        self.transcription = TranscriptionService(self.local_engine, self.cloud_engine, self.event_log)
        self.processor = AssetProcessor(self.config, self.registry, self.transcription,
                                        self.transcripts, self.event_log)
        self.locks = AssetLocks(enabled=self.config.SERIALIZE_ASSET_WRITES)
        self.orchestrator = ProcessingOrchestrator(self.config, self.processor, self.locks)

    def initialize(self) -> None:
        """Prepare storage and run the first reconciliation"""
        try:
            setup_logging(self.config.LOG_LEVEL, self.config.meta_dir)

            self.config.validate()
            self.config.ensure_dirs()

            self.store.connect()
            self.registry.ensure_document()
            self.event_log.ensure_document()

            # Unreadable storage is fatal at startup
            assets = self.registry.reconcile()

            engines = "whisper + openai fallback" if self.cloud_engine else "whisper only"
            logger.info(f"Studio initialized: {len(assets)} videos, {self.config.STORAGE_TYPE} storage, {engines}")

        except Exception as e:
            log_exception(logger, f"Failed to initialize studio service: {e}")
            raise

    def close(self) -> None:
        self.store.close()
        logger.info("Studio service stopped")

    # Assets

    def list_assets(self) -> List[VideoAsset]:
        return self.registry.list_assets()

    def process(self, asset_id: str) -> ProcessingResult:
        return self.orchestrator.process(asset_id)

    # Transcripts

    def get_transcript(self, asset_id: str) -> TranscriptDocument:
        return self.transcripts.load(asset_id)

    def export_srt(self, asset_id: str) -> str:
        return to_srt(self.transcripts.load(asset_id))

    def save_transcript(self, asset_id: str, payload: Dict[str, Any]) -> TranscriptDocument:
        with self.locks.hold(asset_id):
            return self.transcripts.edit(asset_id, payload)

    def refine(self, asset_id: str, instruction: Optional[str] = None) -> TranscriptDocument:
        """Replace the segments with an LLM rewrite of them"""
        with self.locks.hold(asset_id):
            document = self.transcripts.load(asset_id)
            if self.refiner is None:
                raise CloudNotConfiguredError("transcript refinement")

            document.transcript = self.refiner.refine(document.transcript, instruction)
            self.transcripts.save(document)
            self.event_log.add('refine', f'LLM refinement of text for {asset_id}', {'videoId': asset_id})
            return document

    def capture_screenshot(self, asset_id: str, image_base64: str, time_sec: float) -> str:
        with self.locks.hold(asset_id):
            return self.screenshots.capture(asset_id, image_base64, time_sec)

    # History

    def history(self) -> List[HistoryEvent]:
        return self.event_log.list()

    def delete_history_event(self, event_id: str) -> bool:
        return self.event_log.delete(event_id)

    def clear_history(self) -> None:
        self.event_log.clear()

    def get_stats(self) -> Dict[str, Any]:
        """Get studio statistics"""
        return {
            'config': {
                'storage_type': self.config.STORAGE_TYPE,
                'whisper_model': self.config.WHISPER_MODEL,
                'cloud_enabled': self.config.cloud_enabled,
                'serialize_asset_writes': self.config.SERIALIZE_ASSET_WRITES
            },
            'orchestrator': self.orchestrator.get_stats(),
            'storage': self.store.get_stats()
        }


def signal_handler(signum, frame):
    """Handle shutdown signals"""
    logger.info(f"Received signal {signum}, shutting down...")
    sys.exit(0)


def main():
    """Main entry point"""
    from .http_server import StudioHttpServer

    # Setup signal handlers
    signal.signal(signal.SIGTERM, signal_handler)

    service = StudioService()

    try:
        service.initialize()
        StudioHttpServer(service).run()
    except Exception as e:
        log_exception(logger, f"Studio failed to start: {str(e)}")
        sys.exit(1)
    finally:
        service.close()


if __name__ == "__main__":
    main()
