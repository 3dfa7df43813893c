# src/goalsync/documents/__init__.py
"""
Document stores: where tracked notes are read from and watched.
"""

from .base import ChangeCallback, DocumentStore, Subscription
from .filesystem import FileSystemDocumentStore

__all__ = [
    "ChangeCallback",
    "DocumentStore",
    "FileSystemDocumentStore",
    "Subscription",
]
