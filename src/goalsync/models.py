# src/goalsync/models.py
"""
Core data models for the goalsync library.

Configuration-side models (``Goal``, ``PollingInterval``) are frozen
pydantic models: the service hands an immutable snapshot of them to
every reconciliation.  Runtime values (``DayStamp``, ``PendingTrigger``)
are small frozen dataclasses.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# =============================================================================
# Enumerations
# =============================================================================


class MetricKind(str, Enum):
    """What number is derived from a tracked document."""

    WORD_COUNT = "word_count"
    COMPLETED_TASKS = "completed_tasks"
    UNCOMPLETED_TASKS = "uncompleted_tasks"

    @classmethod
    def _missing_(cls, value: object) -> Optional["MetricKind"]:
        if isinstance(value, str):
            return _METRIC_KIND_ALIASES.get(value)
        return None


_METRIC_KIND_ALIASES: Dict[str, MetricKind] = {
    "wordCount": MetricKind.WORD_COUNT,
    "word-count": MetricKind.WORD_COUNT,
    "completedTasks": MetricKind.COMPLETED_TASKS,
    "completed-task-count": MetricKind.COMPLETED_TASKS,
    "uncompletedTasks": MetricKind.UNCOMPLETED_TASKS,
    "uncompleted-task-count": MetricKind.UNCOMPLETED_TASKS,
}


class DocumentSource(str, Enum):
    """How a goal's tracked document is located."""

    FIXED = "fixed"
    """Use ``Goal.file_path`` as-is."""

    DAILY_NOTE = "daily_note"
    """Resolve the daily note belonging to the current day-stamp."""


class TriggerSource(str, Enum):
    """Where a pending trigger came from."""

    MANUAL = "manual"
    PERIODIC = "periodic"
    CONTENT_CHANGE = "content_change"


class ReconcileAction(str, Enum):
    """Outcome of a single reconciliation."""

    CREATED = "created"
    UPDATED = "updated"
    NOOP_SAME_VALUE = "noop_same_value"


# =============================================================================
# DayStamp
# =============================================================================

_DAYSTAMP_RE = re.compile(r"^(\d{4})-?(\d{2})-?(\d{2})$")


@dataclass(frozen=True, order=True)
class DayStamp:
    """
    Calendar-day identifier used as the remote service's time bucket.

    Equality and ordering are by calendar date, so the service's compact
    ``YYYYMMDD`` form and the canonical ``YYYY-MM-DD`` form compare equal.

    Example:
        >>> DayStamp.parse("20240229") == DayStamp.parse("2024-02-29")
        True
        >>> str(DayStamp(date(2024, 2, 29)))
        '2024-02-29'
    """

    day: date

    @classmethod
    def parse(cls, value: str) -> "DayStamp":
        """Parse ``YYYYMMDD`` or ``YYYY-MM-DD``."""
        match = _DAYSTAMP_RE.match(value.strip())
        if not match:
            raise ValueError(f"Not a day-stamp: {value!r}")
        year, month, day = (int(part) for part in match.groups())
        return cls(date(year, month, day))

    @property
    def compact(self) -> str:
        return self.day.strftime("%Y%m%d")

    def shift(self, days: int) -> "DayStamp":
        return DayStamp(self.day + timedelta(days=days))

    def __str__(self) -> str:
        return self.day.isoformat()


# =============================================================================
# Goal configuration
# =============================================================================

_INTERVAL_RE = re.compile(r"^\s*(\d+):(\d{1,2}):(\d{1,2})\s*$")


class PollingInterval(BaseModel):
    """
    Period between automatic submissions for one goal.

    A zero interval disables periodic firing even when auto-submit is on.
    Accepts an ``"HH:MM:SS"`` string wherever a mapping is expected.
    """

    model_config = ConfigDict(frozen=True)

    hours: int = Field(default=0, ge=0)
    minutes: int = Field(default=5, ge=0)
    seconds: int = Field(default=0, ge=0)

    @model_validator(mode="before")
    @classmethod
    def parse_clock_string(cls, data: Any) -> Any:
        if isinstance(data, str):
            match = _INTERVAL_RE.match(data)
            if not match:
                raise ValueError(f"Polling interval must look like HH:MM:SS, got {data!r}")
            hours, minutes, seconds = (int(part) for part in match.groups())
            return {"hours": hours, "minutes": minutes, "seconds": seconds}
        return data

    @property
    def total_seconds(self) -> int:
        return self.hours * 3600 + self.minutes * 60 + self.seconds

    @property
    def is_disabled(self) -> bool:
        return self.total_seconds == 0

    def as_timedelta(self) -> timedelta:
        return timedelta(seconds=self.total_seconds)

    def __str__(self) -> str:
        return f"{self.hours:02d}:{self.minutes:02d}:{self.seconds:02d}"


class Goal(BaseModel):
    """
    One tracked series on the remote service plus how to compute its value.

    Goals are configuration: they are owned by whoever edits the settings
    and are read-only to the scheduler and the reconciliation engine.

    Attributes:
        slug: Remote goal identifier; unique among scheduled goals.
        metric_kind: Which number to derive from the document.
        file_path: Vault-relative path of the tracked document.
        document_source: ``fixed`` to use ``file_path``, ``daily_note``
            to track the note of the current day-stamp.
        auto_submit: Arm a recurring timer for this goal.
        polling_interval: Timer period; zero disables the timer.
        timezone: Optional per-goal override of the global timezone.
        day_end: Optional per-goal override of the global day-end time.
    """

    model_config = ConfigDict(frozen=True)

    slug: str = Field(min_length=1)
    metric_kind: MetricKind = MetricKind.WORD_COUNT
    file_path: str = ""
    document_source: DocumentSource = DocumentSource.FIXED
    auto_submit: bool = False
    polling_interval: PollingInterval = Field(default_factory=PollingInterval)
    timezone: Optional[str] = None
    day_end: Optional[str] = None

    @field_validator("slug")
    @classmethod
    def strip_slug(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Goal slug must not be empty")
        return v

    @field_validator("metric_kind", mode="before")
    @classmethod
    def normalize_metric_kind(cls, v: Any) -> MetricKind:
        return MetricKind(v)

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, v: Optional[str]) -> Optional[str]:
        if v:
            from .core.daystamp import resolve_timezone

            resolve_timezone(v)
        return v or None

    @field_validator("day_end")
    @classmethod
    def check_day_end(cls, v: Optional[str]) -> Optional[str]:
        if v:
            from .core.daystamp import format_cutoff, parse_cutoff

            return format_cutoff(parse_cutoff(v))
        return None

    @model_validator(mode="after")
    def check_document(self) -> "Goal":
        if self.document_source == DocumentSource.FIXED and not self.file_path.strip():
            raise ValueError(f"Goal '{self.slug}' tracks a fixed document but has no file_path")
        return self

    @property
    def timer_enabled(self) -> bool:
        """True if this goal should own a recurring timer."""
        return self.auto_submit and not self.polling_interval.is_disabled


# =============================================================================
# Remote state
# =============================================================================


class RemoteDatapoint(BaseModel):
    """
    The remote service's record of one datapoint.

    An empty ``id`` means "no datapoint exists yet"; see :meth:`none`.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    id: str = ""
    value: float = 0.0
    daystamp: Optional[DayStamp] = None
    comment: str = ""

    @field_validator("daystamp", mode="before")
    @classmethod
    def parse_daystamp(cls, v: Any) -> Optional[DayStamp]:
        if v is None or v == "":
            return None
        if isinstance(v, DayStamp):
            return v
        if isinstance(v, date):
            return DayStamp(v)
        return DayStamp.parse(str(v))

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @classmethod
    def none(cls) -> "RemoteDatapoint":
        """Sentinel for a goal without any datapoint."""
        return cls()

    @property
    def exists(self) -> bool:
        return bool(self.id)


# =============================================================================
# Triggers and results
# =============================================================================


@dataclass(frozen=True)
class PendingTrigger:
    """A queued request to reconcile one goal. Consumed exactly once."""

    goal_slug: str
    source: TriggerSource = TriggerSource.MANUAL
    enqueued_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class ReconcileResult:
    """What a reconciliation did for one goal."""

    action: ReconcileAction
    goal_slug: str
    value: int
    daystamp: DayStamp
    datapoint: Optional[RemoteDatapoint] = None
    comment: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a plain dict for logging and status output."""
        return {
            "action": self.action.value,
            "goal_slug": self.goal_slug,
            "value": self.value,
            "daystamp": str(self.daystamp),
            "datapoint_id": self.datapoint.id if self.datapoint else None,
            "comment": self.comment,
        }
