# tests/scheduling/test_queue.py
"""Tests for the FIFO work queue."""

import threading

from goalsync.models import PendingTrigger, TriggerSource
from goalsync.scheduling import WorkQueue


class TestWorkQueue:

    def test_fifo(self):
        queue = WorkQueue()
        for slug in ("a", "b", "a"):
            queue.enqueue(PendingTrigger(goal_slug=slug))

        assert [queue.dequeue().goal_slug for _ in range(3)] == ["a", "b", "a"]
        assert queue.dequeue() is None

    def test_peek_does_not_remove(self):
        queue = WorkQueue()
        queue.enqueue(PendingTrigger(goal_slug="a", source=TriggerSource.PERIODIC))

        assert queue.peek().source == TriggerSource.PERIODIC
        assert len(queue) == 1

    def test_empty_queue(self):
        queue = WorkQueue()
        assert queue.is_empty()
        assert queue.peek() is None
        assert queue.snapshot() == []

    def test_clear(self):
        queue = WorkQueue()
        queue.enqueue(PendingTrigger(goal_slug="a"))
        queue.enqueue(PendingTrigger(goal_slug="b"))

        assert queue.clear() == 2
        assert queue.is_empty()

    def test_concurrent_producers(self):
        queue = WorkQueue()

        def produce(prefix):
            for i in range(200):
                queue.enqueue(PendingTrigger(goal_slug=f"{prefix}{i}"))

        threads = [threading.Thread(target=produce, args=(p,)) for p in "abcd"]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        slugs = queue.snapshot()
        assert len(slugs) == 800
        # Per-producer order is preserved.
        assert [s for s in slugs if s.startswith("a")] == [f"a{i}" for i in range(200)]
