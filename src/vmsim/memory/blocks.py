"""Memory blocks — the unit shared by physical, logical, and disk pools.

Every pool is a fixed, ordered list of equally sized blocks.  A block
never disappears; it is relabelled as it moves between states::

    free  →  allocated  →  free          (physical / logical)
    free  →  disk       →  free          (swap)

``kernel`` and ``system`` blocks are reserved at start-up and never
change.  The remaining kinds (``used``, ``page``, ``segment``) exist so
that blocks received from an external backend can be represented.
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class BlockType(StrEnum):
    """The occupancy state of a block."""

    FREE = "free"
    USED = "used"
    ALLOCATED = "allocated"
    PAGE = "page"
    SEGMENT = "segment"
    KERNEL = "kernel"
    SYSTEM = "system"
    DISK = "disk"


@dataclass
class MemoryBlock:
    """One fixed-size block of memory or swap.

    Attributes:
        id: Stable identifier such as ``kernel-3`` or ``disk-12``.
        type: Current occupancy state.
        size: Block size in MB.
        address: Base address in MB.
        process_id: Owning process, if any.
        page_number: The virtual page stored here, if any.
        segment_id: Segment label (backend data only).
        is_swapped: True when the page backing this block is on disk.

    """

    id: str
    type: BlockType
    size: int
    address: int
    process_id: int | None = None
    page_number: int | None = None
    segment_id: str | None = None
    is_swapped: bool | None = None

    @property
    def is_free(self) -> bool:
        """Return True if the block can be handed out."""
        return self.type is BlockType.FREE

    def occupy(self, block_type: BlockType, *, process_id: int, page_number: int) -> None:
        """Mark the block as holding *page_number* for *process_id*."""
        self.type = block_type
        self.process_id = process_id
        self.page_number = page_number

    def clear(self) -> None:
        """Return the block to the free state, dropping all ownership data."""
        self.type = BlockType.FREE
        self.process_id = None
        self.page_number = None
        self.segment_id = None
        self.is_swapped = None

    def to_json(self) -> dict[str, Any]:
        """Return the block as a camelCase JSON object (optional keys omitted)."""
        data: dict[str, Any] = {
            "id": self.id,
            "type": str(self.type),
            "size": self.size,
            "address": self.address,
        }
        if self.process_id is not None:
            data["processId"] = self.process_id
        if self.page_number is not None:
            data["pageNumber"] = self.page_number
        if self.segment_id is not None:
            data["segmentId"] = self.segment_id
        if self.is_swapped is not None:
            data["isSwapped"] = self.is_swapped
        return data
