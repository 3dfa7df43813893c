# src/goalsync/documents/filesystem.py
"""
File-system document store.

Documents live under a vault root directory and are addressed by
vault-relative paths (absolute paths inside the root are accepted too).
Reads use aiofiles.  Change notification polls modification times on a
background asyncio task, so no platform file-watching API is needed.

Daily notes are resolved as ``{daily_notes_folder}/{day:format}.md``,
where ``format`` is a ``strftime`` pattern (default ``%Y-%m-%d``).
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import aiofiles
import aiofiles.os as aios

from ..exceptions import DocumentError, DocumentNotFoundError
from ..models import DayStamp, DocumentSource
from .base import ChangeCallback, DocumentStore, Subscription

logger = logging.getLogger(__name__)

_Stamp = Optional[Tuple[float, int]]


class FileSystemDocumentStore(DocumentStore):
    """
    Reads Markdown notes from a vault directory.

    Args:
        root: Vault root directory. Tilde and environment variables are
            expanded.
        daily_notes_folder: Vault-relative folder holding daily notes.
        daily_note_format: ``strftime`` pattern of a daily note's stem.
        watch_interval: Seconds between modification-time polls.
    """

    def __init__(
        self,
        root: str = ".",
        daily_notes_folder: str = "",
        daily_note_format: str = "%Y-%m-%d",
        watch_interval: float = 5.0,
    ):
        self._root = Path(os.path.expandvars(os.path.expanduser(root))).resolve()
        self._daily_notes_folder = daily_notes_folder.strip("/")
        self._daily_note_format = daily_note_format
        self._watch_interval = watch_interval

        self._watchers: Dict[str, List[ChangeCallback]] = {}
        self._stamps: Dict[str, _Stamp] = {}
        self._watch_task: Optional[asyncio.Task] = None
        logger.debug(f"FileSystemDocumentStore rooted at {self._root}")

    @property
    def root(self) -> Path:
        return self._root

    def full_path(self, path: str) -> Path:
        """
        Map a vault path to an absolute path inside the root.

        Raises:
            DocumentError: If the path escapes the vault root.
        """
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self._root / candidate
        candidate = candidate.resolve()
        try:
            candidate.relative_to(self._root)
        except ValueError:
            raise DocumentError(f"Path '{path}' is outside the vault root {self._root}")
        return candidate

    async def read(self, path: str) -> str:
        full = self.full_path(path)
        try:
            async with aiofiles.open(full, mode="r", encoding="utf-8") as f:
                return await f.read()
        except FileNotFoundError:
            raise DocumentNotFoundError(path)
        except IsADirectoryError:
            raise DocumentError(f"Path '{path}' is a directory, not a document")
        except (OSError, UnicodeDecodeError) as e:
            raise DocumentError(f"Failed to read '{path}': {e}")

    def daily_note_path(self, day: DayStamp) -> str:
        """Vault-relative path the daily note of ``day`` would have."""
        name = f"{day.day.strftime(self._daily_note_format)}.md"
        return f"{self._daily_notes_folder}/{name}" if self._daily_notes_folder else name

    async def resolve_dynamic(self, source: DocumentSource, day: DayStamp) -> Optional[str]:
        if source != DocumentSource.DAILY_NOTE:
            raise DocumentError(f"Cannot resolve document source '{source}' dynamically")
        path = self.daily_note_path(day)
        if await aios.path.isfile(self.full_path(path)):
            return path
        logger.debug(f"Daily note for {day} not found at {path}")
        return None

    # -- change notification -------------------------------------------------

    async def _stat(self, path: str) -> _Stamp:
        try:
            st = await aios.stat(self.full_path(path))
        except (FileNotFoundError, DocumentError):
            return None
        return (st.st_mtime, st.st_size)

    def _baseline(self, path: str) -> _Stamp:
        # Subscribing is synchronous, so the baseline is taken in place.
        try:
            st = self.full_path(path).stat()
        except (FileNotFoundError, DocumentError):
            return None
        return (st.st_mtime, st.st_size)

    def on_change(self, path: str, callback: ChangeCallback) -> Subscription:
        """
        Subscribe to changes of ``path``.

        Must be called from within a running event loop; the polling task
        starts with the first subscription.
        """
        callbacks = self._watchers.setdefault(path, [])
        if not callbacks:
            self._stamps[path] = self._baseline(path)
        callbacks.append(callback)
        self._ensure_watching()
        logger.debug(f"Watching '{path}' for changes")

        def _cancel() -> None:
            registered = self._watchers.get(path, [])
            if callback in registered:
                registered.remove(callback)
            if not registered:
                self._watchers.pop(path, None)
                self._stamps.pop(path, None)

        return Subscription(path, _cancel)

    def _ensure_watching(self) -> None:
        if self._watch_task is None or self._watch_task.done():
            self._watch_task = asyncio.get_running_loop().create_task(
                self._watch_loop(), name="goalsync-document-watch"
            )

    async def poll_changes(self) -> List[str]:
        """Check every watched path once and notify subscribers of changes."""
        changed: List[str] = []
        for path in list(self._watchers):
            stamp = await self._stat(path)
            if path not in self._watchers or stamp == self._stamps.get(path):
                continue
            self._stamps[path] = stamp
            changed.append(path)
            for callback in list(self._watchers.get(path, [])):
                try:
                    callback(path)
                except Exception as e:
                    logger.error(f"Change callback for '{path}' failed: {e}")
        return changed

    async def _watch_loop(self) -> None:
        while self._watchers:
            try:
                await asyncio.sleep(self._watch_interval)
                await self.poll_changes()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Document watch loop error: {e}")

    async def close(self) -> None:
        self._watchers.clear()
        self._stamps.clear()
        if self._watch_task:
            self._watch_task.cancel()
            try:
                await self._watch_task
            except asyncio.CancelledError:
                pass
            self._watch_task = None
        logger.debug("FileSystemDocumentStore closed")
