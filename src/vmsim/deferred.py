"""Deferred operations — delayed work drained between simulator steps.

Some operations finish later.  A page fault on a swapped-out page
schedules the swap-in a few ticks later.  A swap-in that first has to
evict a page retries one tick later.  These are not concurrent tasks:
they wait in a queue, and the simulator runs them one at a time when
its clock advances, so two operations never interleave.

The queue keeps its own tick counter, just like a programmable interval
timer: ``schedule()`` stamps an operation with ``now + delay``, and
``advance()`` moves the clock forward by one tick and hands back
everything that became due, oldest first.

Pending work is not cancelled by a reset unless the simulator is
configured to do so.  A swap-in scheduled before a reset still runs
against the fresh state.
"""

from dataclasses import dataclass
from itertools import count

from vmsim.operations import Operation


@dataclass(frozen=True)
class DeferredOperation:
    """An operation waiting for its tick.

    Attributes:
        due: The tick at which the operation runs.
        sequence: Tie-breaker preserving scheduling order.
        operation: The operation to perform.

    """

    due: int
    sequence: int
    operation: Operation


class DeferredQueue:
    """Tick-driven queue of delayed operations."""

    def __init__(self) -> None:
        """Create an empty queue at tick 0."""
        self._now = 0
        self._pending: list[DeferredOperation] = []
        self._sequence = count()

    @property
    def now(self) -> int:
        """Return the current tick."""
        return self._now

    def __len__(self) -> int:
        """Return the number of pending operations."""
        return len(self._pending)

    def pending(self) -> list[DeferredOperation]:
        """Return pending operations in the order they will run."""
        return sorted(self._pending, key=lambda d: (d.due, d.sequence))

    def schedule(self, operation: Operation, *, delay: int) -> DeferredOperation:
        """Queue *operation* to run *delay* ticks from now.

        A delay of 0 runs on the next tick.

        Raises:
            ValueError: If delay is negative.

        """
        if delay < 0:
            msg = f"Delay must be non-negative, got {delay}"
            raise ValueError(msg)
        deferred = DeferredOperation(due=self._now + delay, sequence=next(self._sequence), operation=operation)
        self._pending.append(deferred)
        return deferred

    def advance(self) -> list[Operation]:
        """Advance the clock one tick and pop everything now due."""
        self._now += 1
        due = [d for d in self.pending() if d.due <= self._now]
        self._pending = [d for d in self._pending if d.due > self._now]
        return [d.operation for d in due]

    def clear(self) -> int:
        """Drop all pending operations.

        Returns:
            The number of operations dropped.

        """
        dropped = len(self._pending)
        self._pending.clear()
        return dropped
