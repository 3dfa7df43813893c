# tests/core/test_reconcile.py
"""
Tests for the reconciliation engine.

Uses the in-memory goal client to check which remote calls are issued
for each combination of remote state and local metric.
"""

from datetime import datetime, timezone

import pytest

from goalsync.core.reconcile import ReconciliationEngine, UpdatePolicy, build_comment, describe
from goalsync.exceptions import AuthError, NetworkFailure, UnsupportedMetricKind
from goalsync.models import DayStamp, Goal, ReconcileAction

MORNING = datetime(2024, 3, 1, 7, 0, tzinfo=timezone.utc)
TODAY = DayStamp.parse("2024-03-01")


@pytest.fixture
def engine(client):
    return ReconciliationEngine(client, timezone="UTC", day_end="06:00")


class TestReconcileCreate:

    @pytest.mark.asyncio
    async def test_creates_when_goal_has_no_data(self, engine, client, writing_goal):
        result = await engine.reconcile(writing_goal, "one two three", MORNING)

        assert result.action == ReconcileAction.CREATED
        assert result.value == 3
        assert result.daystamp == TODAY
        assert client.operations() == ["fetch_last", "create"]
        assert client.calls[1] == ("create", "writing", 3, TODAY)

    @pytest.mark.asyncio
    async def test_creates_when_last_datapoint_is_older(self, engine, client, writing_goal):
        client.seed("writing", 10, "20240229", datapoint_id="old")

        result = await engine.reconcile(writing_goal, "one two", MORNING)

        assert result.action == ReconcileAction.CREATED
        assert client.operations() == ["fetch_last", "create"]
        assert len(client.datapoints["writing"]) == 2

    @pytest.mark.asyncio
    async def test_night_owl_writes_to_yesterday(self, engine, client, writing_goal):
        client.seed("writing", 10, "20240229", datapoint_id="yesterday")
        early = datetime(2024, 3, 1, 2, 0, tzinfo=timezone.utc)

        result = await engine.reconcile(writing_goal, "a b c d", early)

        assert result.action == ReconcileAction.UPDATED
        assert result.daystamp == DayStamp.parse("2024-02-29")
        assert client.calls[1] == ("update", "writing", "yesterday", 4)


class TestReconcileUpdate:

    @pytest.mark.asyncio
    async def test_second_run_updates_same_datapoint(self, engine, client, writing_goal):
        first = await engine.reconcile(writing_goal, "one two three", MORNING)
        second = await engine.reconcile(writing_goal, "one two three", MORNING)

        assert first.action == ReconcileAction.CREATED
        assert second.action == ReconcileAction.UPDATED
        assert second.datapoint.id == first.datapoint.id
        assert client.operations() == ["fetch_last", "create", "fetch_last", "update"]
        assert len(client.datapoints["writing"]) == 1

    @pytest.mark.asyncio
    async def test_decreasing_value_is_pushed(self, engine, client, writing_goal):
        await engine.reconcile(writing_goal, "a b c d e", MORNING)
        result = await engine.reconcile(writing_goal, "a b c", MORNING)

        assert result.action == ReconcileAction.UPDATED
        assert client.datapoints["writing"][0].value == 3

    @pytest.mark.asyncio
    async def test_compact_remote_daystamp_matches_today(self, engine, client, writing_goal):
        client.seed("writing", 5, "20240301", datapoint_id="dp-today")

        result = await engine.reconcile(writing_goal, "x y z", MORNING)

        assert result.action == ReconcileAction.UPDATED
        assert client.calls[1] == ("update", "writing", "dp-today", 3)

    @pytest.mark.asyncio
    async def test_skip_policy_returns_noop(self, client, writing_goal):
        engine = ReconciliationEngine(
            client, timezone="UTC", day_end="06:00", update_policy=UpdatePolicy.SKIP_IF_UNCHANGED
        )
        client.seed("writing", 3, "20240301", datapoint_id="dp-today")

        result = await engine.reconcile(writing_goal, "one two three", MORNING)

        assert result.action == ReconcileAction.NOOP_SAME_VALUE
        assert client.operations() == ["fetch_last"]

    @pytest.mark.asyncio
    async def test_skip_policy_still_updates_changed_value(self, client, writing_goal):
        engine = ReconciliationEngine(client, update_policy="skip_if_unchanged")
        client.seed("writing", 1, "20240301", datapoint_id="dp-today")

        result = await engine.reconcile(writing_goal, "one two three", MORNING)

        assert result.action == ReconcileAction.UPDATED


class TestReconcileErrors:

    @pytest.mark.asyncio
    async def test_remote_errors_propagate(self, engine, client, writing_goal):
        client.fail_with = NetworkFailure("writing", "boom")

        with pytest.raises(NetworkFailure):
            await engine.reconcile(writing_goal, "text", MORNING)

    @pytest.mark.asyncio
    async def test_write_failure_propagates(self, engine, client, writing_goal):
        await engine.reconcile(writing_goal, "text", MORNING)

        async def failing_update(*args, **kwargs):
            raise AuthError("writing")

        client.update = failing_update
        with pytest.raises(AuthError):
            await engine.reconcile(writing_goal, "text", MORNING)

    @pytest.mark.asyncio
    async def test_unsupported_kind_makes_no_remote_call(self, engine, client):
        goal = Goal.model_construct(slug="weird", metric_kind="sentences", file_path="a.md",
                                    timezone=None, day_end=None)

        with pytest.raises(UnsupportedMetricKind):
            await engine.reconcile(goal, "text", MORNING)
        assert client.calls == []


class TestGoalOverrides:

    def test_goal_timezone_and_day_end_win(self, client):
        engine = ReconciliationEngine(client, timezone="UTC", day_end="00:00")
        goal = Goal(slug="late", file_path="a.md", timezone="Asia/Tokyo", day_end="03:00")

        # 17:30 UTC is 02:30 the next day in Tokyo, before the 03:00 cutoff.
        now = datetime(2024, 3, 1, 17, 30, tzinfo=timezone.utc)
        assert engine.day_stamp_for(goal, now) == DayStamp.parse("2024-03-01")

    def test_global_boundary_used_without_overrides(self, client, writing_goal):
        engine = ReconciliationEngine(client, timezone="UTC", day_end="06:00")
        assert engine.boundary_for(writing_goal).cutoff == "06:00"


class TestComment:

    def test_build_comment(self):
        comment = build_comment("notes/draft.md", MORNING, "UTC")
        assert comment == "Updated from notes/draft.md by goalsync at 07:00:00 UTC"

    @pytest.mark.asyncio
    async def test_comment_uses_local_time(self, client, writing_goal):
        engine = ReconciliationEngine(client, timezone="Europe/Berlin")
        result = await engine.reconcile(writing_goal, "a", MORNING, source_path="notes/draft.md")
        assert result.comment.endswith("at 08:00:00 Europe/Berlin")

    def test_describe(self):
        assert describe(None) == "skipped"
