"""Tests for the deferred-operation queue.

The queue is a tick counter plus a list of operations stamped with the
tick they are due at.
"""

import pytest

from vmsim.deferred import DeferredQueue
from vmsim.operations import PageFault, SwapIn


class TestSchedule:
    """Verify scheduling."""

    def test_starts_empty(self) -> None:
        """A new queue is at tick 0 with nothing pending."""
        queue = DeferredQueue()
        assert queue.now == 0
        assert len(queue) == 0

    def test_due_is_now_plus_delay(self) -> None:
        """Scheduling stamps the operation with now + delay."""
        queue = DeferredQueue()
        queue.advance()
        deferred = queue.schedule(PageFault(page_number=3), delay=5)
        expected_due = 6
        assert deferred.due == expected_due

    def test_negative_delay_rejected(self) -> None:
        """Operations can't be scheduled in the past."""
        with pytest.raises(ValueError, match="non-negative"):
            DeferredQueue().schedule(SwapIn(page_number=1), delay=-1)


class TestAdvance:
    """Verify ticking."""

    def test_not_due_yet(self) -> None:
        """Nothing runs before its tick."""
        queue = DeferredQueue()
        queue.schedule(PageFault(page_number=3), delay=2)
        assert queue.advance() == []
        assert len(queue) == 1

    def test_due_operations_returned(self) -> None:
        """An operation runs on exactly its due tick."""
        queue = DeferredQueue()
        op = PageFault(page_number=3)
        queue.schedule(op, delay=2)
        queue.advance()
        assert queue.advance() == [op]
        assert len(queue) == 0

    def test_zero_delay_runs_next_tick(self) -> None:
        """A zero delay is picked up by the next advance."""
        queue = DeferredQueue()
        op = SwapIn(page_number=1)
        queue.schedule(op, delay=0)
        assert queue.advance() == [op]

    def test_order_by_due_then_scheduling(self) -> None:
        """Ops due together run in the order they were scheduled."""
        queue = DeferredQueue()
        late = SwapIn(page_number=9)
        first = PageFault(page_number=1)
        second = PageFault(page_number=2)
        queue.schedule(late, delay=2)
        queue.schedule(first, delay=1)
        queue.schedule(second, delay=1)
        assert [d.operation for d in queue.pending()] == [first, second, late]
        assert queue.advance() == [first, second]

    def test_clear(self) -> None:
        """clear() drops everything and reports how much."""
        queue = DeferredQueue()
        queue.schedule(SwapIn(page_number=1), delay=1)
        queue.schedule(SwapIn(page_number=2), delay=1)
        expected = 2
        assert queue.clear() == expected
        assert queue.advance() == []
