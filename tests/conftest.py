# tests/conftest.py
"""
Shared fixtures for goalsync tests.

Provides an in-memory goal client that records every call, an in-memory
document store, fixed clocks and ready-made goals and configurations.
"""

from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

import pytest

from goalsync.config import SyncConfig
from goalsync.documents.base import ChangeCallback, DocumentStore, Subscription
from goalsync.exceptions import DocumentNotFoundError
from goalsync.models import DayStamp, DocumentSource, Goal, RemoteDatapoint
from goalsync.remote.base import BaseGoalClient


class InMemoryGoalClient(BaseGoalClient):
    """
    Remote goal service kept in a dict of datapoint lists.

    ``calls`` records ``(operation, slug, ...)`` tuples in call order.
    Assign an exception to ``fail_with`` to make the next operation raise.
    """

    def __init__(self) -> None:
        self.datapoints: Dict[str, List[RemoteDatapoint]] = {}
        self.calls: List[Tuple] = []
        self.fail_with: Optional[Exception] = None
        self.closed = False
        self._next_id = 0

    def get_name(self) -> str:
        return "in_memory"

    def _maybe_fail(self) -> None:
        if self.fail_with is not None:
            error, self.fail_with = self.fail_with, None
            raise error

    async def fetch_last(self, goal_slug: str) -> RemoteDatapoint:
        self.calls.append(("fetch_last", goal_slug))
        self._maybe_fail()
        points = self.datapoints.get(goal_slug, [])
        return points[-1] if points else RemoteDatapoint.none()

    async def create(self, goal_slug, value, daystamp, comment=""):
        self.calls.append(("create", goal_slug, value, daystamp))
        self._maybe_fail()
        self._next_id += 1
        point = RemoteDatapoint(id=f"dp{self._next_id}", value=value, daystamp=daystamp, comment=comment)
        self.datapoints.setdefault(goal_slug, []).append(point)
        return point

    async def update(self, goal_slug, datapoint_id, value, comment=""):
        self.calls.append(("update", goal_slug, datapoint_id, value))
        self._maybe_fail()
        points = self.datapoints.get(goal_slug, [])
        for index, point in enumerate(points):
            if point.id == datapoint_id:
                points[index] = RemoteDatapoint(
                    id=point.id, value=value, daystamp=point.daystamp, comment=comment
                )
                return points[index]
        raise AssertionError(f"update of unknown datapoint {datapoint_id}")

    async def close(self) -> None:
        self.closed = True

    def seed(self, goal_slug: str, value: float, daystamp: str, datapoint_id: str = "seed") -> None:
        self.datapoints.setdefault(goal_slug, []).append(
            RemoteDatapoint(id=datapoint_id, value=value, daystamp=DayStamp.parse(daystamp))
        )

    def operations(self) -> List[str]:
        return [call[0] for call in self.calls]


class InMemoryDocumentStore(DocumentStore):
    """Documents in a dict; change notifications are fired by hand."""

    def __init__(self, documents: Optional[Dict[str, str]] = None) -> None:
        self.documents: Dict[str, str] = dict(documents or {})
        self.daily_notes: Dict[DayStamp, str] = {}
        self.watchers: Dict[str, List[ChangeCallback]] = {}
        self.closed = False

    async def read(self, path: str) -> str:
        if path not in self.documents:
            raise DocumentNotFoundError(path)
        return self.documents[path]

    async def resolve_dynamic(self, source: DocumentSource, day: DayStamp) -> Optional[str]:
        return self.daily_notes.get(day)

    def on_change(self, path: str, callback: ChangeCallback) -> Subscription:
        self.watchers.setdefault(path, []).append(callback)
        return Subscription(path, lambda: self.watchers[path].remove(callback))

    def touch(self, path: str, text: Optional[str] = None) -> None:
        if text is not None:
            self.documents[path] = text
        for callback in list(self.watchers.get(path, [])):
            callback(path)

    async def close(self) -> None:
        self.closed = True


def fixed_clock(moment: datetime) -> Callable[[], datetime]:
    return lambda: moment


@pytest.fixture
def client():
    """In-memory goal client."""
    return InMemoryGoalClient()


@pytest.fixture
def store():
    """In-memory document store with one tracked note."""
    return InMemoryDocumentStore({"notes/draft.md": "one two three"})


@pytest.fixture
def utc_morning():
    """2024-03-01 07:00 UTC."""
    return datetime(2024, 3, 1, 7, 0, tzinfo=timezone.utc)


@pytest.fixture
def writing_goal():
    return Goal(slug="writing", metric_kind="word_count", file_path="notes/draft.md")


@pytest.fixture
def sync_config(writing_goal):
    """Configuration with two goals and no periodic timers."""
    return SyncConfig(
        remote={"username": "alice", "auth_token": "secret"},
        goals=[
            writing_goal,
            Goal(slug="chores", metric_kind="completed_tasks", file_path="notes/todo.md"),
        ],
        scheduler={"tick_seconds": 0.01, "settle_delay_seconds": 0},
    )


@pytest.fixture
def built_clients(monkeypatch):
    """
    Make ``GoalSync`` build in-memory clients instead of Beeminder ones.

    Returns the list of clients in the order the service built them.
    """
    built: List[InMemoryGoalClient] = []

    def _build(remote):
        built.append(InMemoryGoalClient())
        return built[-1]

    monkeypatch.setattr("goalsync.service.build_client", _build)
    return built
