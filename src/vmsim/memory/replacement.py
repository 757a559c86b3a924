"""Victim selection for swap-in under memory pressure.

When a page must be swapped in and no physical frame is free, some
resident page has to be swapped out first.  Which one is a policy
decision, so it is pluggable (Strategy pattern):

    - **FIFO** — evict the page that became resident first.  This is the
      default: the first resident page found, with no attempt at cleverness.
    - **LRU** — evict the page translated longest ago.  An OrderedDict
      gives O(1) move-to-end on access.
    - **Clock** — second chance: sweep a circular list, clearing
      reference bits, and evict the first page whose bit is already clear.
    - **Random** — evict any resident page.  Seedable for repeatable runs.

The simulator tells the policy when a page becomes resident
(``add_page``), stops being resident (``remove_page``), or is
translated (``record_access``).
"""

import random
from collections import OrderedDict
from typing import Protocol


class ReplacementPolicy(Protocol):
    """Interface for victim-selection policies."""

    def add_page(self, vpn: int) -> None:
        """Record that a page became resident."""
        ...

    def remove_page(self, vpn: int) -> None:
        """Record that a page is no longer resident."""
        ...

    def record_access(self, vpn: int) -> None:
        """Record that a resident page was translated."""
        ...

    def select_victim(self) -> int | None:
        """Return the page to evict, or None if nothing is resident."""
        ...


class FIFOPolicy:
    """Evict the page that has been resident longest."""

    def __init__(self) -> None:
        """Create an empty FIFO policy."""
        self._queue: OrderedDict[int, None] = OrderedDict()

    def add_page(self, vpn: int) -> None:
        """Append the page to the back of the queue."""
        self._queue[vpn] = None

    def remove_page(self, vpn: int) -> None:
        """Drop the page from the queue."""
        self._queue.pop(vpn, None)

    def record_access(self, vpn: int) -> None:
        """FIFO ignores accesses."""

    def select_victim(self) -> int | None:
        """Return the front of the queue."""
        return next(iter(self._queue), None)


class LRUPolicy:
    """Evict the page accessed longest ago."""

    def __init__(self) -> None:
        """Create an empty LRU policy."""
        self._order: OrderedDict[int, None] = OrderedDict()

    def add_page(self, vpn: int) -> None:
        """Record the page as most recently used."""
        self._order[vpn] = None
        self._order.move_to_end(vpn)

    def remove_page(self, vpn: int) -> None:
        """Stop tracking the page."""
        self._order.pop(vpn, None)

    def record_access(self, vpn: int) -> None:
        """Move the page to the most recently used position."""
        if vpn in self._order:
            self._order.move_to_end(vpn)

    def select_victim(self) -> int | None:
        """Return the least recently used page."""
        return next(iter(self._order), None)


class ClockPolicy:
    """Second-chance replacement with one reference bit per page."""

    def __init__(self) -> None:
        """Create an empty clock."""
        self._ring: list[int] = []
        self._ref_bits: dict[int, bool] = {}
        self._hand = 0

    def add_page(self, vpn: int) -> None:
        """Insert the page into the ring with its bit clear."""
        if vpn in self._ref_bits:
            return
        self._ring.append(vpn)
        self._ref_bits[vpn] = False

    def remove_page(self, vpn: int) -> None:
        """Take the page out of the ring, keeping the hand in place."""
        if vpn not in self._ref_bits:
            return
        idx = self._ring.index(vpn)
        self._ring.pop(idx)
        del self._ref_bits[vpn]
        if not self._ring:
            self._hand = 0
        elif self._hand > idx:
            self._hand -= 1
        elif self._hand >= len(self._ring):
            self._hand = 0

    def record_access(self, vpn: int) -> None:
        """Set the page's reference bit."""
        if vpn in self._ref_bits:
            self._ref_bits[vpn] = True

    def select_victim(self) -> int | None:
        """Sweep until a page with a clear bit is found."""
        if not self._ring:
            return None
        while True:
            vpn = self._ring[self._hand]
            if not self._ref_bits[vpn]:
                return vpn
            self._ref_bits[vpn] = False
            self._hand = (self._hand + 1) % len(self._ring)


class RandomPolicy:
    """Evict an arbitrary resident page."""

    def __init__(self, *, seed: int | None = None) -> None:
        """Create a random policy.

        Args:
            seed: Optional seed for reproducible choices.

        """
        self._rng = random.Random(seed)  # noqa: S311
        self._resident: dict[int, None] = {}

    def add_page(self, vpn: int) -> None:
        """Track the page."""
        self._resident[vpn] = None

    def remove_page(self, vpn: int) -> None:
        """Stop tracking the page."""
        self._resident.pop(vpn, None)

    def record_access(self, vpn: int) -> None:
        """Random ignores accesses."""

    def select_victim(self) -> int | None:
        """Return a uniformly chosen resident page."""
        if not self._resident:
            return None
        return self._rng.choice(list(self._resident))


def make_policy(name: str, *, seed: int | None = None) -> ReplacementPolicy:
    """Build a policy by name (``fifo``, ``lru``, ``clock``, ``random``).

    Raises:
        ValueError: If the name is unknown.

    """
    match name:
        case "fifo":
            return FIFOPolicy()
        case "lru":
            return LRUPolicy()
        case "clock":
            return ClockPolicy()
        case "random":
            return RandomPolicy(seed=seed)
        case _:
            msg = f"Unknown eviction policy: {name!r}"
            raise ValueError(msg)
