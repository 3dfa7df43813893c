# src/goalsync/documents/base.py
"""
Abstract Base Class for document stores.

A document store is how the service reaches the user's notes: read a
document by path, find a document that is located by day rather than
by a fixed path, and subscribe to changes of a document.
"""

import abc
from typing import Callable, Optional

from ..models import DayStamp, DocumentSource

ChangeCallback = Callable[[str], None]


class Subscription:
    """Handle returned by :meth:`DocumentStore.on_change`."""

    def __init__(self, path: str, cancel: Callable[[], None]):
        self.path = path
        self._cancel = cancel
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if self._active:
            self._active = False
            self._cancel()


class DocumentStore(abc.ABC):
    """Interface the service uses to read tracked documents."""

    @abc.abstractmethod
    async def read(self, path: str) -> str:
        """
        Return the full text of the document at ``path``.

        Raises:
            DocumentNotFoundError: If the document does not exist.
            DocumentError: For any other read failure.
        """
        pass

    @abc.abstractmethod
    async def resolve_dynamic(self, source: DocumentSource, day: DayStamp) -> Optional[str]:
        """
        Locate a document that depends on the day, e.g. the daily note.

        Returns:
            The document path, or ``None`` if no such document exists.
        """
        pass

    @abc.abstractmethod
    def on_change(self, path: str, callback: ChangeCallback) -> Subscription:
        """Call ``callback(path)`` whenever the document at ``path`` changes."""
        pass

    async def close(self) -> None:
        """Stop watching and release resources. Default: nothing to release."""
        return None
