# src/goalsync/scheduling/timers.py
"""
Per-goal recurring timers.

Each auto-submit goal owns one asyncio task that sleeps for the goal's
polling interval and then calls the fire callback with the goal slug.
Timers are keyed by slug; arming a slug that already has a timer replaces
it.

All arm/disarm operations are synchronous: cancelling a sleeping task
guarantees its callback never runs again, and no other coroutine can run
between the disarm and the rearm inside :meth:`TimerRegistry.rearm`.

Example:
    registry = TimerRegistry()
    registry.arm("writing", timedelta(minutes=5), scheduler.on_timer)
    ...
    registry.disarm_all()
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..models import Goal

logger = logging.getLogger(__name__)

FireCallback = Callable[[str], None]


@dataclass
class GoalTimer:
    """
    One armed recurring timer.

    Attributes:
        slug: Goal the timer fires for
        interval: Time between fires
        callback: Called with ``slug`` on every fire
        armed_at: When the timer was armed
        last_fired: When the timer last fired
        fire_count: Number of fires so far
        error_count: Callback failures so far
    """

    slug: str
    interval: timedelta
    callback: FireCallback

    armed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_fired: Optional[datetime] = None
    fire_count: int = 0
    error_count: int = 0

    _task: Optional[asyncio.Task] = field(default=None, repr=False)

    @property
    def is_armed(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name=f"goalsync-timer-{self.slug}"
        )

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()
        self._task = None

    async def _run(self) -> None:
        seconds = self.interval.total_seconds()
        while True:
            await asyncio.sleep(seconds)
            self.last_fired = datetime.now(timezone.utc)
            self.fire_count += 1
            try:
                self.callback(self.slug)
            except Exception as e:
                self.error_count += 1
                logger.error(f"Timer callback for goal '{self.slug}' failed: {e}")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "slug": self.slug,
            "interval_seconds": self.interval.total_seconds(),
            "armed": self.is_armed,
            "armed_at": self.armed_at.isoformat(),
            "last_fired": self.last_fired.isoformat() if self.last_fired else None,
            "fire_count": self.fire_count,
            "error_count": self.error_count,
        }


class TimerRegistry:
    """Registry of :class:`GoalTimer` keyed by goal slug."""

    def __init__(self) -> None:
        self._timers: Dict[str, GoalTimer] = {}

    def arm(self, slug: str, interval: timedelta, callback: FireCallback) -> GoalTimer:
        """
        Arm (or re-arm) the timer for ``slug``.

        Must be called from within a running event loop.

        Raises:
            ValueError: If ``interval`` is not positive.
        """
        if interval.total_seconds() <= 0:
            raise ValueError(f"Timer interval for '{slug}' must be positive")
        self.disarm(slug)
        timer = GoalTimer(slug=slug, interval=interval, callback=callback)
        timer.start()
        self._timers[slug] = timer
        logger.info(f"Armed timer for goal '{slug}' (every {interval.total_seconds()}s)")
        return timer

    def disarm(self, slug: str) -> bool:
        timer = self._timers.pop(slug, None)
        if timer is None:
            return False
        timer.cancel()
        logger.debug(f"Disarmed timer for goal '{slug}'")
        return True

    def disarm_all(self) -> int:
        count = len(self._timers)
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        if count:
            logger.info(f"Disarmed {count} goal timer(s)")
        return count

    def rearm(self, goals: Iterable[Goal], callback: FireCallback) -> List[str]:
        """
        Replace every timer with one per timer-enabled goal.

        Returns:
            Slugs that now own a timer.
        """
        self.disarm_all()
        armed: List[str] = []
        for goal in goals:
            if goal.timer_enabled:
                self.arm(goal.slug, goal.polling_interval.as_timedelta(), callback)
                armed.append(goal.slug)
        return armed

    def get(self, slug: str) -> Optional[GoalTimer]:
        return self._timers.get(slug)

    def armed(self) -> List[str]:
        return list(self._timers.keys())

    def __len__(self) -> int:
        return len(self._timers)

    def to_dict(self) -> Dict[str, Any]:
        return {slug: timer.to_dict() for slug, timer in self._timers.items()}
