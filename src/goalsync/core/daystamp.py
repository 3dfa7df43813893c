# src/goalsync/core/daystamp.py
"""
Day-Boundary Calculator.

Maps a wall-clock instant to the calendar day it counts towards when the
user's day does not end at midnight.

Two kinds of day-end ("cutoff") time are allowed:

    * **Night owl** (00:00-06:00): the day technically ends after
      midnight, so activity before the cutoff still belongs to
      *yesterday*.
    * **Early bird** (07:00-23:59): the day ends before midnight, so
      activity at or after the cutoff already belongs to *tomorrow*.

Cutoffs strictly between 06:00 and 07:00 are ambiguous and rejected when
the configuration is built, never at evaluation time.

Example:
    >>> from datetime import datetime, timezone
    >>> day_stamp(datetime(2024, 3, 1, 2, 0, tzinfo=timezone.utc), "UTC", "06:00")
    DayStamp(day=datetime.date(2024, 2, 29))
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, time, tzinfo
from functools import lru_cache
from typing import Literal, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..exceptions import InvalidCutoffError, InvalidTimezoneError, ValidationError
from ..models import DayStamp

CutoffLike = Union[str, time, Tuple[int, int]]
TimezoneLike = Union[str, tzinfo, None]

NIGHT_OWL_LATEST = time(6, 0)
EARLY_BIRD_EARLIEST = time(7, 0)

_CUTOFF_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")


def parse_cutoff(value: CutoffLike) -> time:
    """
    Validate a day-end time.

    Args:
        value: ``"HH:MM"``, a :class:`datetime.time`, or ``(hour, minute)``.

    Returns:
        The cutoff as a naive :class:`datetime.time`.

    Raises:
        InvalidCutoffError: If the value is malformed or falls strictly
            between 06:00 and 07:00.
    """
    if isinstance(value, time):
        cutoff = value.replace(tzinfo=None)
    elif isinstance(value, tuple):
        try:
            hour, minute = value
            cutoff = time(int(hour), int(minute))
        except (TypeError, ValueError):
            raise InvalidCutoffError(value)
    elif isinstance(value, str):
        match = _CUTOFF_RE.match(value)
        if not match:
            raise InvalidCutoffError(value)
        try:
            cutoff = time(int(match.group(1)), int(match.group(2)))
        except ValueError:
            raise InvalidCutoffError(value)
    else:
        raise InvalidCutoffError(value)

    if NIGHT_OWL_LATEST < cutoff < EARLY_BIRD_EARLIEST:
        raise InvalidCutoffError(value)
    return cutoff


def format_cutoff(cutoff: time) -> str:
    return cutoff.strftime("%H:%M")


def cutoff_zone(cutoff: time) -> Literal["night_owl", "early_bird"]:
    """Classify an already validated cutoff."""
    return "night_owl" if cutoff <= NIGHT_OWL_LATEST else "early_bird"


@lru_cache(maxsize=64)
def _zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise InvalidTimezoneError(name)


def resolve_timezone(value: TimezoneLike) -> tzinfo:
    """Return a tzinfo for an IANA name; empty or ``None`` means UTC."""
    if value is None or value == "":
        return _zone("UTC")
    if isinstance(value, tzinfo):
        return value
    return _zone(str(value).strip())


def day_stamp(now: datetime, timezone: TimezoneLike, cutoff: CutoffLike) -> DayStamp:
    """
    Compute the day-stamp that ``now`` counts towards.

    Pure function of its inputs: the caller supplies ``now``.

    Args:
        now: Timezone-aware instant.
        timezone: IANA zone name or tzinfo the cutoff is expressed in.
        cutoff: Day-end time (see :func:`parse_cutoff`).

    Returns:
        The :class:`DayStamp` for ``now``.

    Raises:
        ValidationError: If ``now`` is naive.
        InvalidCutoffError: If ``cutoff`` is not a valid day-end time.
        InvalidTimezoneError: If ``timezone`` is unknown.
    """
    if now.tzinfo is None or now.utcoffset() is None:
        raise ValidationError("day_stamp() needs a timezone-aware datetime")

    cutoff_time = parse_cutoff(cutoff)
    local = now.astimezone(resolve_timezone(timezone))
    today = DayStamp(local.date())

    # Wall-clock comparison against the boundary on the local date.
    before_boundary = local.time() < cutoff_time

    if cutoff_zone(cutoff_time) == "night_owl":
        return today.shift(-1) if before_boundary else today
    return today if before_boundary else today.shift(1)


@dataclass(frozen=True)
class DayBoundary:
    """
    A validated ``(timezone, cutoff)`` pair.

    Building one is the configuration-time check; :meth:`stamp` then
    cannot fail for a valid aware ``now``.
    """

    timezone: str = "UTC"
    cutoff: str = "00:00"

    def __post_init__(self) -> None:
        resolve_timezone(self.timezone)
        object.__setattr__(self, "cutoff", format_cutoff(parse_cutoff(self.cutoff)))

    @property
    def zone(self) -> tzinfo:
        return resolve_timezone(self.timezone)

    @property
    def kind(self) -> Literal["night_owl", "early_bird"]:
        return cutoff_zone(parse_cutoff(self.cutoff))

    def local_now(self, now: datetime) -> datetime:
        return now.astimezone(self.zone)

    def boundary(self, now: datetime) -> datetime:
        """The cutoff instant on ``now``'s local calendar date."""
        local = self.local_now(now)
        return datetime.combine(local.date(), parse_cutoff(self.cutoff), tzinfo=self.zone)

    def stamp(self, now: datetime) -> DayStamp:
        return day_stamp(now, self.zone, self.cutoff)
