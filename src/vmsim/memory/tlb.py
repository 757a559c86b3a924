"""Translation lookaside buffer — a tiny cache in front of the page table.

Walking the page table on every memory access is slow, so the MMU keeps
the most recent translations in a small associative cache.  A hit skips
the page table entirely; a miss falls back to it and then caches the
result.

Entries are keyed by ``(process_id, vpn)`` so that two processes can
cache the same virtual page number without clashing.

Replacement is strict LRU.  Every lookup hit and every insert stamps
the entry with the next value of a logical clock; when the cache is
full, the entry with the smallest stamp is evicted (the first one found
in scan order if stamps tie).  A logical clock instead of wall time
keeps the ordering deterministic.
"""

from dataclasses import dataclass, replace
from typing import Any

DEFAULT_TLB_CAPACITY = 8


@dataclass
class TLBEntry:
    """One cached translation.

    Attributes:
        vpn: Virtual page number.
        ppn: Physical page number.
        valid: Whether the translation may be used.
        last_used: Logical timestamp of the most recent access.
        process_id: The process the translation belongs to.

    """

    vpn: int
    ppn: int
    valid: bool
    last_used: int
    process_id: int

    def to_json(self) -> dict[str, Any]:
        """Return the entry as a camelCase JSON object."""
        return {
            "vpn": self.vpn,
            "ppn": self.ppn,
            "valid": self.valid,
            "lastUsed": self.last_used,
            "processId": self.process_id,
        }


class TranslationCache:
    """Capacity-bounded TLB with LRU eviction."""

    def __init__(self, *, capacity: int = DEFAULT_TLB_CAPACITY) -> None:
        """Create an empty TLB.

        Args:
            capacity: Maximum number of cached translations.

        Raises:
            ValueError: If capacity is less than 1.

        """
        if capacity < 1:
            msg = f"TLB capacity must be at least 1, got {capacity}"
            raise ValueError(msg)
        self._capacity = capacity
        self._entries: list[TLBEntry] = []
        self._clock = 0

    @property
    def capacity(self) -> int:
        """Return the maximum number of entries."""
        return self._capacity

    def __len__(self) -> int:
        """Return the number of cached entries."""
        return len(self._entries)

    def entries(self) -> list[TLBEntry]:
        """Return copies of the cached entries in slot order."""
        return [replace(e) for e in self._entries]

    def _tick(self) -> int:
        self._clock += 1
        return self._clock

    def _find(self, process_id: int, vpn: int) -> TLBEntry | None:
        for entry in self._entries:
            if entry.process_id == process_id and entry.vpn == vpn:
                return entry
        return None

    def lookup(self, process_id: int, vpn: int) -> int | None:
        """Return the cached frame for ``(process_id, vpn)``, or None on a miss.

        A hit refreshes the entry's last-used stamp.
        """
        entry = self._find(process_id, vpn)
        if entry is None or not entry.valid:
            return None
        entry.last_used = self._tick()
        return entry.ppn

    def insert(self, process_id: int, vpn: int, ppn: int) -> TLBEntry | None:
        """Cache a translation, evicting the LRU entry if the cache is full.

        Inserting a key that is already cached updates it in place.

        Returns:
            The evicted entry, or None if nothing was evicted.

        """
        stamp = self._tick()
        existing = self._find(process_id, vpn)
        if existing is not None:
            existing.ppn = ppn
            existing.valid = True
            existing.last_used = stamp
            return None

        evicted: TLBEntry | None = None
        if len(self._entries) >= self._capacity:
            victim = min(range(len(self._entries)), key=lambda i: self._entries[i].last_used)
            evicted = self._entries.pop(victim)
        self._entries.append(
            TLBEntry(vpn=vpn, ppn=ppn, valid=True, last_used=stamp, process_id=process_id)
        )
        return evicted

    def invalidate(self, process_id: int, vpn: int) -> bool:
        """Drop the translation for ``(process_id, vpn)``.

        Returns:
            True if an entry was removed.

        """
        entry = self._find(process_id, vpn)
        if entry is None:
            return False
        self._entries.remove(entry)
        return True

    def invalidate_process(self, process_id: int) -> int:
        """Drop every translation belonging to *process_id*.

        Returns:
            The number of entries removed.

        """
        before = len(self._entries)
        self._entries = [e for e in self._entries if e.process_id != process_id]
        return before - len(self._entries)

    def clear(self) -> None:
        """Empty the cache and restart the clock."""
        self._entries.clear()
        self._clock = 0
