"""Tests for block pools.

Pools are fixed, ordered lists of blocks.  Physical and logical pools
reserve their leading blocks for the kernel and system; the swap pool
starts entirely free.  Allocation search is first-fit.
"""

import pytest

from vmsim.memory.blocks import BlockType
from vmsim.memory.pool import DiskSwapPool, LogicalMemoryPool, PhysicalMemoryPool

BLOCK_SIZE = 4
TOTAL = 10
KERNEL = 2
SYSTEM = 1
FIRST_FREE = KERNEL + SYSTEM


def _physical() -> PhysicalMemoryPool:
    return PhysicalMemoryPool(
        total_blocks=TOTAL, kernel_blocks=KERNEL, system_blocks=SYSTEM, block_size=BLOCK_SIZE
    )


class TestPartitioning:
    """Verify the start-up layout."""

    def test_regions(self) -> None:
        """Kernel blocks come first, then system, then free."""
        pool = _physical()
        assert pool[0].type is BlockType.KERNEL
        assert pool[KERNEL].type is BlockType.SYSTEM
        assert pool[FIRST_FREE].type is BlockType.FREE
        assert pool.free_count == TOTAL - FIRST_FREE
        assert pool.reserved_blocks == FIRST_FREE

    def test_ids_and_addresses(self) -> None:
        """Block ids name the region; addresses step by block size."""
        pool = _physical()
        assert pool[0].id == "kernel-0"
        assert pool[KERNEL].id == "system-2"
        assert pool[FIRST_FREE].id == "free-3"
        assert pool[FIRST_FREE].address == FIRST_FREE * BLOCK_SIZE

    def test_logical_ids(self) -> None:
        """Logical blocks are prefixed so they never clash with physical ids."""
        pool = LogicalMemoryPool(
            total_blocks=TOTAL, kernel_blocks=KERNEL, system_blocks=SYSTEM, block_size=BLOCK_SIZE
        )
        assert pool[0].id == "logical-kernel-0"
        assert pool[FIRST_FREE].id == "logical-3"

    def test_oversized_reservation_rejected(self) -> None:
        """Reserved regions can't exceed the pool."""
        with pytest.raises(ValueError, match="exceed"):
            PhysicalMemoryPool(total_blocks=2, kernel_blocks=2, system_blocks=1, block_size=BLOCK_SIZE)


class TestSearch:
    """Verify first-fit and first-free search."""

    def test_first_fit_skips_short_runs(self) -> None:
        """A run interrupted by a used block is not long enough."""
        pool = _physical()
        pool.reserve(4, 1, process_id=1, page_numbers=[4])
        expected_start = 5
        assert pool.find_contiguous_free(2) == expected_start

    def test_first_fit_takes_first_adequate_run(self) -> None:
        """A single block fits in the first free slot."""
        pool = _physical()
        pool.reserve(4, 1, process_id=1, page_numbers=[4])
        assert pool.find_contiguous_free(1) == FIRST_FREE

    def test_no_run_long_enough(self) -> None:
        """None when no run is long enough."""
        pool = _physical()
        assert pool.find_contiguous_free(TOTAL) is None

    def test_zero_length_rejected(self) -> None:
        """Run lengths must be positive."""
        with pytest.raises(ValueError, match="positive"):
            _physical().find_contiguous_free(0)

    def test_find_free_respects_start(self) -> None:
        """find_free starts scanning at the given index."""
        pool = _physical()
        expected = 6
        assert pool.find_free(start=expected) == expected
        assert pool.find_free() == FIRST_FREE

    def test_find_free_when_full(self) -> None:
        """None when no block is free."""
        pool = _physical()
        free = TOTAL - FIRST_FREE
        pool.reserve(FIRST_FREE, free, process_id=1, page_numbers=list(range(free)))
        assert pool.find_free() is None


class TestReserveRelease:
    """Verify ownership stamping and release."""

    def test_reserve_stamps_owner_and_pages(self) -> None:
        """Reserved blocks record their owner and page number."""
        pool = _physical()
        pool.reserve(FIRST_FREE, 2, process_id=7, page_numbers=[10, 11])
        expected_pid = 7
        assert pool[FIRST_FREE].type is BlockType.ALLOCATED
        assert pool[FIRST_FREE].process_id == expected_pid
        assert pool[FIRST_FREE + 1].page_number == 11  # noqa: PLR2004

    def test_reserve_used_block_rejected(self) -> None:
        """Reserving a non-free block is a programming error."""
        pool = _physical()
        with pytest.raises(ValueError, match="not all free"):
            pool.reserve(0, 1, process_id=1, page_numbers=[0])

    def test_reserve_page_count_mismatch(self) -> None:
        """One page number is needed per block."""
        pool = _physical()
        with pytest.raises(ValueError, match="page numbers"):
            pool.reserve(FIRST_FREE, 2, process_id=1, page_numbers=[0])

    def test_release_by_process(self) -> None:
        """Releasing a process frees only its blocks and reports the count."""
        pool = _physical()
        pool.reserve(FIRST_FREE, 2, process_id=1, page_numbers=[0, 1])
        pool.reserve(FIRST_FREE + 2, 1, process_id=2, page_numbers=[2])
        expected_released = 2
        assert pool.release_by_process(1) == expected_released
        assert pool[FIRST_FREE].is_free
        assert pool[FIRST_FREE].process_id is None
        assert pool[FIRST_FREE + 2].process_id == 2  # noqa: PLR2004

    def test_release_unknown_process(self) -> None:
        """Releasing a process that owns nothing releases nothing."""
        assert _physical().release_by_process(99) == 0


class TestDiskSwapPool:
    """Verify the swap pool."""

    def test_starts_free(self) -> None:
        """Every swap block starts free."""
        disk = DiskSwapPool(total_blocks=5, block_size=20)
        expected = 5
        assert disk.free_count == expected
        assert disk.used_count == 0
        assert disk[3].id == "disk-3"
        assert disk[3].address == 60  # noqa: PLR2004

    def test_reserve_and_find_by_page(self) -> None:
        """A reserved block is found by the page it holds."""
        disk = DiskSwapPool(total_blocks=5, block_size=20)
        index = disk.find_free_block()
        assert index == 0
        disk.reserve_block(0, page_number=50, process_id=1)
        assert disk[0].type is BlockType.DISK
        assert disk.find_block_by_page(50) == 0
        assert disk.find_block_by_page(51) is None
        assert disk.find_free_block() == 1

    def test_release_block(self) -> None:
        """A released block is free again and no longer holds the page."""
        disk = DiskSwapPool(total_blocks=2, block_size=20)
        disk.reserve_block(1, page_number=9, process_id=1)
        disk.release_block(1)
        assert disk[1].is_free
        assert disk.find_block_by_page(9) is None
