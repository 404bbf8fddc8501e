"""
Abstract base class for artifact stores.

Defines the interface every document store must implement, enabling
easy swapping between storage backends (local directory, S3).
"""

from abc import ABC, abstractmethod
from typing import Optional, Dict, Any


class DocumentStore(ABC):
    """Persistence of JSON documents under relative names such as 'meta/videos.json'"""

    def connect(self) -> None:
        """Prepare the backend for use"""

    def close(self) -> None:
        """Release backend resources"""

    @abstractmethod
    def read_document(self, name: str, fallback: Any = None) -> Any:
        """
        Read and parse a JSON document.

        Args:
            name: Document name relative to the store root
            fallback: Value returned when the document is missing or malformed

        Returns:
            Parsed document, or fallback. A fallback result means "no prior
            state", never an error.
        """
        pass

    @abstractmethod
    def write_document(self, name: str, document: Any) -> None:
        """
        Overwrite a document with pretty-printed JSON.

        Args:
            name: Document name relative to the store root
            document: JSON-serializable value
        """
        pass

    @abstractmethod
    def document_size(self, name: str) -> Optional[int]:
        """
        Get the stored size of a document.

        Returns:
            Size in bytes, or None when the document is absent or cannot be stat'ed
        """
        pass

    @abstractmethod
    def delete_document(self, name: str) -> None:
        """Delete a document if it exists"""
        pass

    def document_exists(self, name: str) -> bool:
        return self.document_size(name) is not None

    def get_stats(self) -> Dict[str, Any]:
        """Get storage statistics for monitoring"""
        return {}
