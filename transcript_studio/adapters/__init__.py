"""
Artifact store implementations.

This module provides the abstract document store and concrete
implementations for a local data directory and for S3.
"""

from .base import DocumentStore
from .local_adapter import LocalDocumentStore

__all__ = [
    'DocumentStore',
    'LocalDocumentStore',
]
