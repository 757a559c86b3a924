"""Tests for the translation lookaside buffer.

The TLB caches recent (process, vpn) → ppn translations.  It holds at
most ``capacity`` entries and evicts the least recently used one.
"""

import pytest

from vmsim.memory.tlb import DEFAULT_TLB_CAPACITY, TranslationCache


class TestLookup:
    """Verify hits and misses."""

    def test_miss_on_empty(self) -> None:
        """An empty TLB misses."""
        assert TranslationCache().lookup(1, 0) is None

    def test_hit_after_insert(self) -> None:
        """An inserted translation hits."""
        tlb = TranslationCache()
        tlb.insert(1, 48, 60)
        expected_ppn = 60
        assert tlb.lookup(1, 48) == expected_ppn

    def test_keyed_by_process(self) -> None:
        """The same vpn in another process is a miss."""
        tlb = TranslationCache()
        tlb.insert(1, 48, 60)
        assert tlb.lookup(2, 48) is None

    def test_hit_refreshes_timestamp(self) -> None:
        """A hit moves the entry's last-used stamp forward."""
        tlb = TranslationCache()
        tlb.insert(1, 0, 10)
        before = tlb.entries()[0].last_used
        tlb.lookup(1, 0)
        assert tlb.entries()[0].last_used > before


class TestCapacity:
    """Verify bounded size and LRU eviction."""

    def test_default_capacity(self) -> None:
        """The default TLB has eight entries."""
        expected = 8
        assert DEFAULT_TLB_CAPACITY == expected
        assert TranslationCache().capacity == expected

    def test_never_exceeds_capacity(self) -> None:
        """Inserting many translations keeps the size at capacity."""
        tlb = TranslationCache(capacity=3)
        for vpn in range(10):
            tlb.insert(1, vpn, vpn + 100)
        expected = 3
        assert len(tlb) == expected

    def test_evicts_least_recently_used(self) -> None:
        """The entry with the oldest stamp goes first."""
        tlb = TranslationCache(capacity=2)
        tlb.insert(1, 0, 10)
        tlb.insert(1, 1, 11)
        tlb.lookup(1, 0)  # vpn 1 is now the LRU entry
        evicted = tlb.insert(1, 2, 12)
        assert evicted is not None
        assert evicted.vpn == 1
        assert sorted(e.vpn for e in tlb.entries()) == [0, 2]

    def test_reinsert_updates_in_place(self) -> None:
        """Inserting a cached key updates it instead of duplicating it."""
        tlb = TranslationCache(capacity=2)
        tlb.insert(1, 0, 10)
        assert tlb.insert(1, 0, 20) is None
        expected_ppn = 20
        assert len(tlb) == 1
        assert tlb.lookup(1, 0) == expected_ppn

    def test_capacity_must_be_positive(self) -> None:
        """A zero-entry TLB is rejected."""
        with pytest.raises(ValueError, match="at least 1"):
            TranslationCache(capacity=0)


class TestInvalidation:
    """Verify invalidation."""

    def test_invalidate_one(self) -> None:
        """Invalidating a key removes only that entry."""
        tlb = TranslationCache()
        tlb.insert(1, 0, 10)
        tlb.insert(1, 1, 11)
        assert tlb.invalidate(1, 0)
        assert not tlb.invalidate(1, 0)
        assert tlb.lookup(1, 0) is None
        assert len(tlb) == 1

    def test_invalidate_process(self) -> None:
        """Invalidating a process removes all its entries."""
        tlb = TranslationCache()
        tlb.insert(1, 0, 10)
        tlb.insert(1, 1, 11)
        tlb.insert(2, 0, 12)
        expected_removed = 2
        assert tlb.invalidate_process(1) == expected_removed
        assert [e.process_id for e in tlb.entries()] == [2]

    def test_clear(self) -> None:
        """clear() empties the cache."""
        tlb = TranslationCache()
        tlb.insert(1, 0, 10)
        tlb.clear()
        assert len(tlb) == 0

    def test_json_shape(self) -> None:
        """Entries serialize with camelCase keys."""
        tlb = TranslationCache()
        tlb.insert(3, 4, 5)
        data = tlb.entries()[0].to_json()
        assert data == {"vpn": 4, "ppn": 5, "valid": True, "lastUsed": 1, "processId": 3}
