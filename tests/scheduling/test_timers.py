# tests/scheduling/test_timers.py
"""Tests for per-goal timers and the timer registry."""

import asyncio
from datetime import timedelta

import pytest

from goalsync.models import Goal
from goalsync.scheduling import GoalTimer, TimerRegistry


class TestGoalTimer:

    @pytest.mark.asyncio
    async def test_fires_repeatedly(self):
        fired = []
        timer = GoalTimer(slug="a", interval=timedelta(milliseconds=10), callback=fired.append)

        timer.start()
        await asyncio.sleep(0.055)
        timer.cancel()

        assert len(fired) >= 3
        assert set(fired) == {"a"}
        assert timer.fire_count == len(fired)
        assert timer.last_fired is not None

    @pytest.mark.asyncio
    async def test_cancel_stops_firing(self):
        fired = []
        timer = GoalTimer(slug="a", interval=timedelta(milliseconds=10), callback=fired.append)
        timer.start()
        timer.cancel()

        await asyncio.sleep(0.03)

        assert fired == []
        assert timer.is_armed is False

    @pytest.mark.asyncio
    async def test_callback_errors_keep_timer_alive(self):
        def explode(slug):
            raise RuntimeError("boom")

        timer = GoalTimer(slug="a", interval=timedelta(milliseconds=5), callback=explode)
        timer.start()
        await asyncio.sleep(0.03)

        assert timer.error_count >= 2
        assert timer.is_armed is True
        timer.cancel()

    def test_to_dict(self):
        timer = GoalTimer(slug="a", interval=timedelta(minutes=5), callback=lambda s: None)
        data = timer.to_dict()
        assert data["slug"] == "a"
        assert data["interval_seconds"] == 300
        assert data["armed"] is False
        assert data["last_fired"] is None


class TestTimerRegistry:

    @pytest.mark.asyncio
    async def test_arm_replaces_existing(self):
        registry = TimerRegistry()
        first = registry.arm("a", timedelta(seconds=60), lambda s: None)
        second = registry.arm("a", timedelta(seconds=30), lambda s: None)

        assert registry.get("a") is second
        assert first.is_armed is False
        assert len(registry) == 1
        registry.disarm_all()

    @pytest.mark.asyncio
    async def test_arm_rejects_non_positive_interval(self):
        registry = TimerRegistry()
        with pytest.raises(ValueError):
            registry.arm("a", timedelta(0), lambda s: None)

    @pytest.mark.asyncio
    async def test_disarm(self):
        registry = TimerRegistry()
        registry.arm("a", timedelta(seconds=60), lambda s: None)

        assert registry.disarm("a") is True
        assert registry.disarm("a") is False
        assert registry.armed() == []

    @pytest.mark.asyncio
    async def test_rearm_from_goals(self):
        registry = TimerRegistry()
        registry.arm("stale", timedelta(seconds=60), lambda s: None)
        goals = [
            Goal(slug="a", file_path="a.md", auto_submit=True, polling_interval="00:01:00"),
            Goal(slug="b", file_path="b.md", auto_submit=False),
            Goal(slug="c", file_path="c.md", auto_submit=True, polling_interval="00:00:00"),
        ]

        armed = registry.rearm(goals, lambda s: None)

        assert armed == ["a"]
        assert registry.armed() == ["a"]
        assert registry.get("a").interval == timedelta(minutes=1)
        assert registry.disarm_all() == 1

    @pytest.mark.asyncio
    async def test_to_dict(self):
        registry = TimerRegistry()
        registry.arm("a", timedelta(seconds=60), lambda s: None)
        assert registry.to_dict()["a"]["armed"] is True
        registry.disarm_all()
