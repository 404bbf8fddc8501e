"""
Append-only history of operational events.

Entries are prepended (newest first) to a single JSON document and are
never updated once written; only single-entry deletion and a full clear
are supported.
"""

import time
import random
import string
import logging
import threading
from typing import Optional, Dict, Any, List

from .adapters.base import DocumentStore
from .models import HistoryEvent, EVENT_TYPES, utc_now_iso

logger = logging.getLogger("transcript_studio")

HISTORY_DOCUMENT = "meta/history.json"

_ID_ALPHABET = string.digits + string.ascii_lowercase


def new_event_id() -> str:
    """Millisecond timestamp plus a random base36 suffix"""
    suffix = "".join(random.choices(_ID_ALPHABET, k=6))
    return f"{int(time.time() * 1000)}-{suffix}"


class EventLog:
    """Event log persisted as {"history": [...]}"""

    def __init__(self, store: DocumentStore, name: str = HISTORY_DOCUMENT):
        self.store = store
        self.name = name
        self._lock = threading.Lock()

    def _load(self) -> List[Dict[str, Any]]:
        data = self.store.read_document(self.name, {"history": []})
        history = data.get("history") if isinstance(data, dict) else None
        return history if isinstance(history, list) else []

    def _save(self, history: List[Dict[str, Any]]) -> None:
        self.store.write_document(self.name, {"history": history})

    def ensure_document(self) -> None:
        """Seed an empty history document if none exists"""
        with self._lock:
            if not self.store.document_exists(self.name):
                self._save([])

    def add(self, event_type: str, message: str, details: Optional[Dict[str, Any]] = None) -> HistoryEvent:
        """Prepend a new event and persist the log"""
        if event_type not in EVENT_TYPES:
            raise ValueError(f"Unknown event type: {event_type}")

        event = HistoryEvent(
            id=new_event_id(),
            at=utc_now_iso(),
            type=event_type,
            message=message,
            details=dict(details or {}),
        )

        with self._lock:
            history = self._load()
            history.insert(0, event.to_dict())
            self._save(history)

        logger.debug(f"History [{event_type}] {message}")
        return event

    def list(self) -> List[HistoryEvent]:
        """All events, newest first"""
        return [HistoryEvent.from_dict(item) for item in self._load() if isinstance(item, dict)]

    def delete(self, event_id: str) -> bool:
        """Remove a single event; returns False when no such event exists"""
        with self._lock:
            history = self._load()
            remaining = [item for item in history if not (isinstance(item, dict) and item.get("id") == event_id)]
            if len(remaining) == len(history):
                return False
            self._save(remaining)
        return True

    def clear(self) -> None:
        with self._lock:
            self._save([])
        logger.info("History cleared")
