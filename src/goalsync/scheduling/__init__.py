# src/goalsync/scheduling/__init__.py
"""
Trigger scheduling: per-goal timers, the shared work queue and the
single-worker drain loop.
"""

from .queue import WorkQueue
from .scheduler import Processor, TriggerScheduler
from .timers import GoalTimer, TimerRegistry

__all__ = [
    "GoalTimer",
    "Processor",
    "TimerRegistry",
    "TriggerScheduler",
    "WorkQueue",
]
