# src/goalsync/scheduling/scheduler.py
"""
Trigger Scheduler.

Collects triggers from three sources into one FIFO queue and drains it
with a single worker so that at most one reconciliation runs at any time,
across all goals:

    - periodic: one recurring timer per auto-submit goal
    - manual: :meth:`TriggerScheduler.enqueue` / :meth:`trigger_all`
    - content change: :meth:`TriggerScheduler.notify_changed`, debounced
      by the settle delay so editors that save in bursts are read once

The drain loop wakes every ``tick_interval``.  On each tick, if nothing
is in flight and the queue is non-empty, exactly one trigger is dequeued
and processed to completion.  Two reconciliations of the same goal can
therefore never interleave their read-modify-write of the remote state.

Example:
    scheduler = TriggerScheduler(processor=service.process,
                                 tick_interval=timedelta(seconds=10))
    scheduler.configure(config.goals)
    await scheduler.start()
    scheduler.enqueue("writing")        # returns immediately
    ...
    await scheduler.stop()
"""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple

from ..models import Goal, PendingTrigger, TriggerSource
from .queue import WorkQueue
from .timers import TimerRegistry

logger = logging.getLogger(__name__)

Processor = Callable[[PendingTrigger], Awaitable[Any]]


class TriggerScheduler:
    """
    Per-goal timers plus a serialized work queue.

    Args:
        processor: Async callable that handles one :class:`PendingTrigger`.
            Exceptions it raises are logged and the trigger is dropped.
        tick_interval: How often the drain loop checks the queue.
        settle_delay: Debounce applied to content-change triggers before
            they are enqueued. Zero enqueues immediately.
    """

    def __init__(
        self,
        processor: Processor,
        tick_interval: timedelta = timedelta(seconds=10),
        settle_delay: timedelta = timedelta(seconds=3),
    ):
        self._processor = processor
        self.tick_interval = tick_interval
        self.settle_delay = settle_delay

        self._queue = WorkQueue()
        self._timers = TimerRegistry()
        self._goals: Tuple[Goal, ...] = ()

        self._running = False
        self._in_flight = False
        self._loop_task: Optional[asyncio.Task] = None
        self._current: Optional[asyncio.Future] = None
        self._debounce: Dict[str, asyncio.TimerHandle] = {}

        self._processed_count = 0
        self._error_count = 0

    # -- properties ----------------------------------------------------------

    @property
    def queue(self) -> WorkQueue:
        return self._queue

    @property
    def timers(self) -> TimerRegistry:
        return self._timers

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def in_flight(self) -> bool:
        """True while a trigger is being processed."""
        return self._in_flight

    # -- configuration -------------------------------------------------------

    def configure(self, goals: Iterable[Goal]) -> List[str]:
        """
        Install a new goal list.

        While running, every existing timer is disarmed and timers are
        re-armed from ``goals`` without yielding to the event loop, so no
        stale timer can fire in between.  Pending content-change debounces
        for goals that disappeared are cancelled.

        Returns:
            Slugs that own a timer after the call (empty when stopped).
        """
        self._goals = tuple(goals)
        known = {goal.slug for goal in self._goals}
        for slug in [s for s in self._debounce if s not in known]:
            self._debounce.pop(slug).cancel()

        if not self._running:
            return []
        armed = self._timers.rearm(self._goals, self._on_timer)
        logger.info(f"Scheduler reconfigured: {len(self._goals)} goal(s), {len(armed)} timer(s)")
        return armed

    # -- trigger sources -----------------------------------------------------

    def enqueue(self, goal_slug: str, source: TriggerSource = TriggerSource.MANUAL) -> PendingTrigger:
        """Queue one goal and return immediately."""
        trigger = PendingTrigger(goal_slug=goal_slug, source=source)
        self._queue.enqueue(trigger)
        logger.debug(f"Enqueued '{goal_slug}' ({source.value}); queue length {len(self._queue)}")
        return trigger

    def trigger_all(
        self,
        slugs: Optional[Iterable[str]] = None,
        source: TriggerSource = TriggerSource.MANUAL,
    ) -> List[PendingTrigger]:
        """Queue every configured goal (or the given slugs) in order."""
        targets = list(slugs) if slugs is not None else [goal.slug for goal in self._goals]
        return [self.enqueue(slug, source) for slug in targets]

    def notify_changed(self, goal_slug: str) -> None:
        """
        Debounced content-change trigger.

        Every call restarts the settle delay for ``goal_slug``; the goal is
        enqueued once the document has been quiet for the whole delay.
        Must be called from the event loop thread.
        """
        delay = self.settle_delay.total_seconds()
        if delay <= 0:
            self.enqueue(goal_slug, TriggerSource.CONTENT_CHANGE)
            return

        pending = self._debounce.pop(goal_slug, None)
        if pending is not None:
            pending.cancel()
        loop = asyncio.get_running_loop()
        self._debounce[goal_slug] = loop.call_later(delay, self._settled, goal_slug)

    def _settled(self, goal_slug: str) -> None:
        self._debounce.pop(goal_slug, None)
        self.enqueue(goal_slug, TriggerSource.CONTENT_CHANGE)

    def _on_timer(self, goal_slug: str) -> None:
        logger.info(f"Auto-submitting datapoint for goal: {goal_slug}")
        self.enqueue(goal_slug, TriggerSource.PERIODIC)

    # -- draining ------------------------------------------------------------

    async def tick(self) -> Optional[PendingTrigger]:
        """
        Process at most one queued trigger.

        Returns:
            The processed trigger, or ``None`` when the queue was empty or
            another trigger was already in flight.
        """
        if self._in_flight:
            return None
        trigger = self._queue.dequeue()
        if trigger is None:
            return None

        # No await between the check above and this point.
        self._in_flight = True
        self._current = asyncio.ensure_future(self._process(trigger))
        self._current.add_done_callback(self._clear_in_flight)
        await asyncio.shield(self._current)
        return trigger

    def _clear_in_flight(self, _future: asyncio.Future) -> None:
        self._in_flight = False
        self._current = None

    async def _process(self, trigger: PendingTrigger) -> Any:
        try:
            logger.debug(f"Processing trigger for '{trigger.goal_slug}' ({trigger.source.value})")
            result = await self._processor(trigger)
            self._processed_count += 1
            return result
        except Exception as e:
            self._error_count += 1
            logger.error(f"Trigger for goal '{trigger.goal_slug}' failed and was dropped: {e}", exc_info=True)
            return None

    async def drain(self) -> int:
        """Process queued triggers one after another until the queue is empty."""
        processed = 0
        while not self._queue.is_empty():
            if await self.tick() is None:
                break
            processed += 1
        return processed

    async def _drain_loop(self) -> None:
        """Main drain loop."""
        while self._running:
            try:
                await self.tick()
                await asyncio.sleep(self.tick_interval.total_seconds())
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Drain loop error: {e}")
                await asyncio.sleep(self.tick_interval.total_seconds())

    # -- lifecycle -----------------------------------------------------------

    async def start(self) -> None:
        """
        Arm timers for the configured goals and start the drain loop.

        Idempotent; calling it again while running does nothing.
        """
        if self._running:
            return
        self._running = True
        armed = self._timers.rearm(self._goals, self._on_timer)
        self._loop_task = asyncio.create_task(self._drain_loop(), name="goalsync-drain")
        logger.info(
            f"Scheduler started (tick: {self.tick_interval.total_seconds()}s, "
            f"{len(armed)} timer(s))"
        )

    async def stop(self) -> None:
        """
        Disarm every timer, cancel pending debounces and stop the loop.

        An in-flight reconciliation is allowed to finish; no timer fires
        after this returns.
        """
        self._running = False
        self._timers.disarm_all()
        for handle in self._debounce.values():
            handle.cancel()
        self._debounce.clear()

        if self._loop_task:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None

        await self.wait_idle()
        logger.info("Scheduler stopped")

    async def wait_idle(self) -> None:
        """Wait for the in-flight reconciliation, if any, to finish."""
        current = self._current
        if current is not None and not current.done():
            logger.info("Waiting for in-flight reconciliation to finish")
            await asyncio.shield(current)

    def get_status(self) -> Dict[str, Any]:
        """
        Get current scheduler status.

        Returns:
            Status dictionary with running state, queue and timer info
        """
        return {
            "running": self._running,
            "in_flight": self._in_flight,
            "tick_interval_seconds": self.tick_interval.total_seconds(),
            "settle_delay_seconds": self.settle_delay.total_seconds(),
            "queue_length": len(self._queue),
            "queued": self._queue.snapshot(),
            "processed_count": self._processed_count,
            "error_count": self._error_count,
            "pending_changes": sorted(self._debounce),
            "timers": self._timers.to_dict(),
        }
