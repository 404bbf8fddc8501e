"""
Processing orchestration and per-asset serialization.

Every read-modify-write of an asset's documents (processing, manual edits,
refinement, marker insertion) runs under that asset's lock, so two
operations on the same asset cannot silently discard each other's writes.
Different assets proceed independently. With SERIALIZE_ASSET_WRITES off
the relaxed last-writer-wins behaviour applies.
"""

import time
import logging
import threading
from contextlib import contextmanager
from typing import Dict, Any, Iterator
from datetime import datetime

from .config import StudioConfig
from .errors import AssetNotFoundError, AssetIdCollisionError
from .models import ProcessingResult
from .processor import AssetProcessor

logger = logging.getLogger("transcript_studio")


class _LockEntry:
    __slots__ = ('lock', 'users')

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class AssetLocks:
    """One mutex per asset id, dropped once nobody holds or waits for it"""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._locks: Dict[str, _LockEntry] = {}
        self._guard = threading.Lock()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, asset_id: str) -> Iterator[None]:
        if not self.enabled:
            yield
            return

        with self._guard:
            entry = self._locks.get(asset_id)
            if entry is None:
                entry = self._locks[asset_id] = _LockEntry()
            entry.users += 1

        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._locks[asset_id]

    def is_held(self, asset_id: str) -> bool:
        with self._guard:
            entry = self._locks.get(asset_id)
        return entry is not None and entry.lock.locked()


class ProcessingOrchestrator:
    """Runs the processor under the asset lock and tracks statistics"""

    def __init__(self, config: StudioConfig, processor: AssetProcessor, locks: AssetLocks):
        self.config = config
        self.processor = processor
        self.locks = locks
        self._stats_lock = threading.Lock()
        self.reset_stats()

    def process(self, asset_id: str) -> ProcessingResult:
        """
        Process one asset.

        Blocks until any other write to the same asset has finished. Errors
        from the processor propagate unchanged; unknown or ambiguous ids
        are not counted as failed jobs.
        """
        start_time = time.time()

        with self.locks.hold(asset_id):
            try:
                result = self.processor.process(asset_id)
            except (AssetNotFoundError, AssetIdCollisionError):
                # Lookup failures are not processing attempts
                raise
            except Exception:
                with self._stats_lock:
                    self.stats['jobs_failed'] += 1
                    self.stats['total_processing_time'] += time.time() - start_time
                raise

        with self._stats_lock:
            self.stats['jobs_processed'] += 1
            self.stats['total_processing_time'] += time.time() - start_time

        logger.info(f"Processing completed successfully for {asset_id}")
        return result

    def get_stats(self) -> Dict[str, Any]:
        """Get orchestrator statistics"""
        with self._stats_lock:
            stats = dict(self.stats)

        uptime = (datetime.now() - stats['start_time']).total_seconds()
        attempts = stats['jobs_processed'] + stats['jobs_failed']

        return {
            'jobs_processed': stats['jobs_processed'],
            'jobs_failed': stats['jobs_failed'],
            'total_processing_time': stats['total_processing_time'],
            'average_processing_time': stats['total_processing_time'] / attempts if attempts > 0 else 0,
            'uptime_seconds': uptime,
            'success_rate': stats['jobs_processed'] / attempts if attempts > 0 else 0
        }

    def reset_stats(self) -> None:
        """Reset orchestrator statistics"""
        with self._stats_lock:
            self.stats = {
                'jobs_processed': 0,
                'jobs_failed': 0,
                'total_processing_time': 0.0,
                'start_time': datetime.now()
            }
        logger.info("Orchestrator statistics reset")
