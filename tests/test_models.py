# tests/test_models.py
"""Tests for goalsync data models."""

from datetime import date

import pytest

from goalsync.models import (
    DayStamp,
    MetricKind,
    PendingTrigger,
    PollingInterval,
    ReconcileAction,
    ReconcileResult,
    RemoteDatapoint,
    TriggerSource,
)


class TestMetricKind:

    @pytest.mark.parametrize(
        "alias,kind",
        [
            ("wordCount", MetricKind.WORD_COUNT),
            ("word-count", MetricKind.WORD_COUNT),
            ("completedTasks", MetricKind.COMPLETED_TASKS),
            ("uncompleted-task-count", MetricKind.UNCOMPLETED_TASKS),
        ],
    )
    def test_aliases(self, alias, kind):
        assert MetricKind(alias) is kind

    def test_unknown(self):
        with pytest.raises(ValueError):
            MetricKind("characters")


class TestPollingInterval:

    def test_default_is_five_minutes(self):
        assert PollingInterval().total_seconds == 300

    def test_disabled(self):
        interval = PollingInterval(hours=0, minutes=0, seconds=0)
        assert interval.is_disabled is True
        assert interval.as_timedelta().total_seconds() == 0

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            PollingInterval(minutes=-1)


class TestRemoteDatapoint:

    def test_none_sentinel(self):
        none = RemoteDatapoint.none()
        assert none.exists is False
        assert none.daystamp is None

    def test_coerces_service_fields(self):
        datapoint = RemoteDatapoint(id=None, value=2, daystamp="20240301")
        assert datapoint.id == ""
        assert datapoint.daystamp == DayStamp(date(2024, 3, 1))

    def test_accepts_date(self):
        assert RemoteDatapoint(id="x", daystamp=date(2024, 3, 1)).daystamp == DayStamp.parse("2024-03-01")


class TestTriggersAndResults:

    def test_pending_trigger_defaults(self):
        trigger = PendingTrigger("writing")
        assert trigger.source == TriggerSource.MANUAL
        assert trigger.enqueued_at.tzinfo is not None

    def test_result_to_dict(self):
        result = ReconcileResult(
            action=ReconcileAction.UPDATED,
            goal_slug="writing",
            value=3,
            daystamp=DayStamp.parse("20240301"),
            datapoint=RemoteDatapoint(id="dp1", value=3),
            comment="c",
        )
        assert result.to_dict() == {
            "action": "updated",
            "goal_slug": "writing",
            "value": 3,
            "daystamp": "2024-03-01",
            "datapoint_id": "dp1",
            "comment": "c",
        }
