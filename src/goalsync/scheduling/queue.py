# src/goalsync/scheduling/queue.py
"""
FIFO work queue of pending triggers.

Multiple producers (timers, manual commands, change notifications, or
host threads) may enqueue at any time; a single consumer, the
scheduler's drain loop, dequeues.  Duplicate goal references are allowed.
"""

import threading
from collections import deque
from typing import Deque, List, Optional

from ..models import PendingTrigger


class WorkQueue:
    """A ``deque`` guarded by a lock."""

    def __init__(self) -> None:
        self._elements: Deque[PendingTrigger] = deque()
        self._lock = threading.Lock()

    def enqueue(self, trigger: PendingTrigger) -> None:
        with self._lock:
            self._elements.append(trigger)

    def dequeue(self) -> Optional[PendingTrigger]:
        """Remove and return the oldest trigger, or ``None`` when empty."""
        with self._lock:
            return self._elements.popleft() if self._elements else None

    def peek(self) -> Optional[PendingTrigger]:
        with self._lock:
            return self._elements[0] if self._elements else None

    def is_empty(self) -> bool:
        with self._lock:
            return not self._elements

    def clear(self) -> int:
        """Drop every pending trigger and return how many were dropped."""
        with self._lock:
            dropped = len(self._elements)
            self._elements.clear()
            return dropped

    def snapshot(self) -> List[str]:
        """Goal slugs currently queued, oldest first."""
        with self._lock:
            return [trigger.goal_slug for trigger in self._elements]

    def __len__(self) -> int:
        with self._lock:
            return len(self._elements)
