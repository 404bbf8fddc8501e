"""
Local filesystem adapter for the artifact store.

Documents live as pretty-printed JSON files below a root directory.
"""

import os
import json
import logging
import tempfile
from typing import Optional, Dict, Any

from .base import DocumentStore

logger = logging.getLogger("transcript_studio")


class LocalDocumentStore(DocumentStore):
    """Local directory implementation of the document store"""

    def __init__(self, root: str):
        self.root = root

    def connect(self):
        os.makedirs(self.root, exist_ok=True)
        logger.info(f"Local document store ready at {os.path.abspath(self.root)}")

    def path_for(self, name: str) -> str:
        return os.path.join(self.root, name)

    def read_document(self, name: str, fallback: Any = None) -> Any:
        path = self.path_for(name)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except FileNotFoundError:
            return fallback
        except (OSError, ValueError) as e:
            logger.warning(f"Unreadable document {name}, using fallback: {e}")
            return fallback

    def write_document(self, name: str, document: Any) -> None:
        path = self.path_for(name)
        directory = os.path.dirname(path) or "."
        os.makedirs(directory, exist_ok=True)

        payload = json.dumps(document, indent=2, ensure_ascii=False)

        # Write a sibling then swap it in so readers never see half a document
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(payload)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def document_size(self, name: str) -> Optional[int]:
        try:
            return os.path.getsize(self.path_for(name))
        except OSError:
            return None

    def delete_document(self, name: str) -> None:
        try:
            os.unlink(self.path_for(name))
        except FileNotFoundError:
            pass

    def get_stats(self) -> Dict[str, Any]:
        total_files = 0
        total_size = 0
        for dirpath, _dirnames, filenames in os.walk(self.root):
            for filename in filenames:
                if not filename.endswith(".json"):
                    continue
                try:
                    total_size += os.path.getsize(os.path.join(dirpath, filename))
                    total_files += 1
                except OSError:
                    continue
        return {'total_documents': total_files, 'total_size_bytes': total_size}
