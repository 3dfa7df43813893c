# src/goalsync/core/reconcile.py
"""
Reconciliation Engine.

Compares the metric derived from a local document with the remote
service's last datapoint and issues the corrective write:

    1. ``value = extract(text, goal.metric_kind)``
    2. ``today = day_stamp(now, timezone, day_end)``
    3. ``last = client.fetch_last(goal.slug)`` (never cached)
    4. ``last`` belongs to ``today`` -> ``update`` it in place
    5. otherwise                    -> ``create`` a datapoint for ``today``

Updates are issued even when the value did not change, because a
document's metric may go down (unchecking a task) and the remote value
must follow.  ``UpdatePolicy.SKIP_IF_UNCHANGED`` trades that for fewer
API calls.

Remote errors propagate to the caller; the engine never retries.
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Optional

from ..models import DayStamp, Goal, ReconcileAction, ReconcileResult
from ..remote.base import BaseGoalClient
from .daystamp import DayBoundary
from .metrics import extract

logger = logging.getLogger(__name__)


class UpdatePolicy(str, Enum):
    """What to do when today's datapoint already exists."""

    ALWAYS_OVERWRITE = "always_overwrite"
    SKIP_IF_UNCHANGED = "skip_if_unchanged"


def build_comment(source_path: str, local_now: datetime, timezone: str) -> str:
    """Provenance comment stored with every datapoint."""
    source = source_path or "unknown document"
    return f"Updated from {source} by goalsync at {local_now.strftime('%H:%M:%S')} {timezone}"


class ReconciliationEngine:
    """
    Decides between create, update and no-op for one goal at a time.

    The engine holds no mutable state besides its collaborators, so a
    new engine is built whenever the configuration changes.

    Args:
        client: Remote goal service.
        timezone: Global IANA timezone, used when a goal has none.
        day_end: Global day-end time, used when a goal has none.
        update_policy: Behaviour when today's datapoint already exists.

    Example:
        engine = ReconciliationEngine(client, timezone="Europe/Berlin", day_end="03:00")
        result = await engine.reconcile(goal, text, datetime.now(timezone.utc))
    """

    def __init__(
        self,
        client: BaseGoalClient,
        *,
        timezone: str = "UTC",
        day_end: str = "00:00",
        update_policy: UpdatePolicy = UpdatePolicy.ALWAYS_OVERWRITE,
    ):
        self._client = client
        self._default_boundary = DayBoundary(timezone=timezone, cutoff=day_end)
        self._update_policy = UpdatePolicy(update_policy)

    @property
    def update_policy(self) -> UpdatePolicy:
        return self._update_policy

    def boundary_for(self, goal: Goal) -> DayBoundary:
        """The goal's own timezone/day-end, falling back to the global ones."""
        if goal.timezone is None and goal.day_end is None:
            return self._default_boundary
        return DayBoundary(
            timezone=goal.timezone or self._default_boundary.timezone,
            cutoff=goal.day_end or self._default_boundary.cutoff,
        )

    def day_stamp_for(self, goal: Goal, now: datetime) -> DayStamp:
        return self.boundary_for(goal).stamp(now)

    async def reconcile(
        self,
        goal: Goal,
        document_text: str,
        now: datetime,
        source_path: str = "",
    ) -> ReconcileResult:
        """
        Push the document's metric for ``now``'s day to the remote goal.

        Args:
            goal: Goal configuration snapshot.
            document_text: Current content of the tracked document.
            now: Timezone-aware instant of the reconciliation.
            source_path: Document path recorded in the comment.

        Returns:
            A :class:`ReconcileResult` describing what was done.

        Raises:
            UnsupportedMetricKind: Before any remote call.
            RemoteError: Any failure of the remote client.
        """
        value = extract(document_text, goal.metric_kind)
        boundary = self.boundary_for(goal)
        today = boundary.stamp(now)
        comment = build_comment(source_path, boundary.local_now(now), boundary.timezone)

        last = await self._client.fetch_last(goal.slug)
        logger.debug(
            f"Reconciling '{goal.slug}': value={value} today={today} "
            f"last=(id={last.id or '-'}, value={last.value}, daystamp={last.daystamp})"
        )

        if last.exists and last.daystamp == today:
            if self._update_policy == UpdatePolicy.SKIP_IF_UNCHANGED and last.value == value:
                logger.info(f"No update needed for '{goal.slug}' on {today}. Current value: {value}")
                return ReconcileResult(
                    action=ReconcileAction.NOOP_SAME_VALUE,
                    goal_slug=goal.slug,
                    value=value,
                    daystamp=today,
                    datapoint=last,
                    comment=comment,
                )
            datapoint = await self._client.update(goal.slug, last.id, value, comment)
            action = ReconcileAction.UPDATED
        else:
            datapoint = await self._client.create(goal.slug, value, today, comment)
            action = ReconcileAction.CREATED

        logger.info(f"Goal '{goal.slug}' {action.value} for {today} with value {value}")
        return ReconcileResult(
            action=action,
            goal_slug=goal.slug,
            value=value,
            daystamp=today,
            datapoint=datapoint,
            comment=comment,
        )


def describe(result: Optional[ReconcileResult]) -> str:
    """One-line human summary of a reconciliation outcome."""
    if result is None:
        return "skipped"
    return f"{result.goal_slug}: {result.action.value} {result.value} on {result.daystamp}"
