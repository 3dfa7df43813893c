# src/goalsync/core/__init__.py
"""
Pure reconciliation core: day boundaries, metric extraction, and the
engine that turns both into remote writes.
"""

from .daystamp import (
    DayBoundary,
    cutoff_zone,
    day_stamp,
    format_cutoff,
    parse_cutoff,
    resolve_timezone,
)
from .metrics import (
    count_completed_tasks,
    count_uncompleted_tasks,
    count_words,
    extract,
)
from .reconcile import ReconciliationEngine, UpdatePolicy, build_comment, describe

__all__ = [
    "DayBoundary",
    "cutoff_zone",
    "day_stamp",
    "format_cutoff",
    "parse_cutoff",
    "resolve_timezone",
    "count_completed_tasks",
    "count_uncompleted_tasks",
    "count_words",
    "extract",
    "ReconciliationEngine",
    "UpdatePolicy",
    "build_comment",
    "describe",
]
