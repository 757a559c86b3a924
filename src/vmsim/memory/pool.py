"""Block pools — physical frames, logical page slots, and swap blocks.

Each pool is a fixed, ordered list of ``MemoryBlock`` objects created
once and then relabelled in place.  Nothing is ever appended or
removed, so a block's index doubles as its frame / page / disk-block
number.

Physical and logical pools are partitioned at start-up::

    [ kernel x K ][ system x S ][ free ... ]

The swap pool is uniformly free.

Search is deliberately simple:
    - **First-fit** for contiguous runs — scan left to right and take the
      first run that is long enough.  No best-fit, no wrap-around.
    - **First free** for single blocks.

Every query returns an index or ``None``; callers branch on presence,
so "not found" is never an exception here.
"""

from collections.abc import Iterator, Sequence

from vmsim.memory.blocks import BlockType, MemoryBlock


class BlockPool:
    """An ordered, fixed-size sequence of blocks."""

    def __init__(self, blocks: list[MemoryBlock]) -> None:
        """Create a pool that owns *blocks*."""
        self._blocks = blocks

    def __len__(self) -> int:
        """Return the number of blocks in the pool."""
        return len(self._blocks)

    def __iter__(self) -> Iterator[MemoryBlock]:
        """Iterate over the live blocks in index order."""
        return iter(self._blocks)

    def __getitem__(self, index: int) -> MemoryBlock:
        """Return the live block at *index*."""
        return self._blocks[index]

    @property
    def free_count(self) -> int:
        """Return the number of free blocks."""
        return sum(1 for b in self._blocks if b.is_free)

    def owned_by(self, process_id: int) -> list[int]:
        """Return the indices of blocks owned by *process_id*."""
        return [i for i, b in enumerate(self._blocks) if b.process_id == process_id]

    def find_free(self, *, start: int = 0) -> int | None:
        """Return the index of the first free block at or after *start*."""
        for index in range(start, len(self._blocks)):
            if self._blocks[index].is_free:
                return index
        return None

    def find_contiguous_free(self, count: int, *, start: int = 0) -> int | None:
        """Return the start of the first run of *count* free blocks.

        Args:
            count: Number of consecutive free blocks required.
            start: Index at which the scan begins.

        Returns:
            The index of the first block of the run, or None.

        Raises:
            ValueError: If count is not positive.

        """
        if count <= 0:
            msg = f"Run length must be positive, got {count}"
            raise ValueError(msg)
        run_start = start
        run_length = 0
        for index in range(start, len(self._blocks)):
            if self._blocks[index].is_free:
                if run_length == 0:
                    run_start = index
                run_length += 1
                if run_length == count:
                    return run_start
            else:
                run_length = 0
        return None

    def reserve(
        self,
        start: int,
        count: int,
        *,
        process_id: int,
        page_numbers: Sequence[int],
        block_type: BlockType = BlockType.ALLOCATED,
    ) -> None:
        """Mark *count* blocks from *start* as owned by *process_id*.

        Args:
            start: Index of the first block.
            count: Number of blocks to reserve.
            process_id: The new owner.
            page_numbers: One page number per block.
            block_type: The occupied state to stamp.

        Raises:
            ValueError: If the range is not entirely free or the page
                numbers don't match the count.

        """
        if len(page_numbers) != count:
            msg = f"Expected {count} page numbers, got {len(page_numbers)}"
            raise ValueError(msg)
        targets = self._blocks[start : start + count]
        if len(targets) != count or not all(b.is_free for b in targets):
            msg = f"Blocks {start}..{start + count - 1} are not all free"
            raise ValueError(msg)
        for block, page in zip(targets, page_numbers, strict=True):
            block.occupy(block_type, process_id=process_id, page_number=page)

    def release(self, index: int) -> None:
        """Return a single block to the free state."""
        self._blocks[index].clear()

    def release_by_process(self, process_id: int) -> int:
        """Free every block owned by *process_id*.

        Returns:
            The number of blocks released.

        """
        owned = self.owned_by(process_id)
        for index in owned:
            self._blocks[index].clear()
        return len(owned)


class PartitionedPool(BlockPool):
    """A pool whose leading blocks are reserved for kernel and system use."""

    #: Prefix for block ids, e.g. ``"logical-"``.
    ID_PREFIX = ""

    def __init__(
        self,
        *,
        total_blocks: int,
        kernel_blocks: int,
        system_blocks: int,
        block_size: int,
    ) -> None:
        """Create a pool partitioned into kernel, system, and free regions.

        Args:
            total_blocks: Number of blocks in the pool.
            kernel_blocks: Blocks reserved for the kernel (lowest addresses).
            system_blocks: Blocks reserved for the system (next region).
            block_size: Size of each block in MB.

        """
        reserved = kernel_blocks + system_blocks
        if reserved > total_blocks:
            msg = f"Reserved regions ({reserved} blocks) exceed pool size ({total_blocks})"
            raise ValueError(msg)
        blocks: list[MemoryBlock] = []
        for i in range(total_blocks):
            if i < kernel_blocks:
                block_type, label = BlockType.KERNEL, "kernel-"
            elif i < reserved:
                block_type, label = BlockType.SYSTEM, "system-"
            else:
                block_type, label = BlockType.FREE, self._free_label()
            blocks.append(
                MemoryBlock(
                    id=f"{self.ID_PREFIX}{label}{i}",
                    type=block_type,
                    size=block_size,
                    address=i * block_size,
                )
            )
        super().__init__(blocks)
        self._reserved = reserved

    def _free_label(self) -> str:
        return "free-"

    @property
    def reserved_blocks(self) -> int:
        """Return the size of the kernel plus system region."""
        return self._reserved


class PhysicalMemoryPool(PartitionedPool):
    """Physical frames.  A frame's index is its physical page number."""


class LogicalMemoryPool(PartitionedPool):
    """Virtual page slots.  A slot's index is its virtual page number."""

    ID_PREFIX = "logical-"

    def _free_label(self) -> str:
        return ""


class DiskSwapPool(BlockPool):
    """Swap blocks on backing storage.

    Swap blocks are sized independently of memory pages; each one holds
    exactly one swapped-out page regardless of the size difference.
    """

    def __init__(self, *, total_blocks: int, block_size: int) -> None:
        """Create a uniformly free swap pool.

        Args:
            total_blocks: Number of swap blocks.
            block_size: Size of each block in MB.

        """
        super().__init__(
            [
                MemoryBlock(id=f"disk-{i}", type=BlockType.FREE, size=block_size, address=i * block_size)
                for i in range(total_blocks)
            ]
        )

    @property
    def used_count(self) -> int:
        """Return the number of blocks holding a page."""
        return sum(1 for b in self._blocks if b.type is BlockType.DISK)

    def find_free_block(self) -> int | None:
        """Return the index of the first free swap block."""
        return self.find_free()

    def reserve_block(self, index: int, *, page_number: int, process_id: int) -> None:
        """Store *page_number* (owned by *process_id*) in swap block *index*."""
        self.reserve(
            index,
            1,
            process_id=process_id,
            page_numbers=[page_number],
            block_type=BlockType.DISK,
        )

    def release_block(self, index: int) -> None:
        """Free swap block *index*."""
        self.release(index)

    def find_block_by_page(self, page_number: int) -> int | None:
        """Return the index of the swap block holding *page_number*."""
        for index, block in enumerate(self._blocks):
            if block.type is BlockType.DISK and block.page_number == page_number:
                return index
        return None
