"""Aggregate memory statistics.

``Stats`` is the dashboard the simulator keeps up to date: every
operation that moves a page adjusts the counters by exactly what it
moved.  Nothing else writes to it.

Sizes are in MB; everything else is a count.
"""

from dataclasses import asdict, dataclass, fields
from typing import Any

from vmsim.config import SimulatorConfig

_JSON_NAMES = {
    "total_memory": "totalMemory",
    "used_memory": "usedMemory",
    "free_memory": "freeMemory",
    "page_size": "pageSize",
    "total_pages": "totalPages",
    "used_pages": "usedPages",
    "swapped_pages": "swappedPages",
    "kernel_memory": "kernelMemory",
    "system_memory": "systemMemory",
    "disk_size": "diskSize",
    "used_disk_space": "usedDiskSpace",
    "tlb_hits": "tlbHits",
    "tlb_misses": "tlbMisses",
    "page_faults": "pageFaults",
}


@dataclass
class Stats:
    """Memory, paging, swap, and TLB counters."""

    total_memory: int
    used_memory: int
    free_memory: int
    page_size: int
    total_pages: int
    used_pages: int
    swapped_pages: int
    kernel_memory: int
    system_memory: int
    disk_size: int
    used_disk_space: int
    tlb_hits: int = 0
    tlb_misses: int = 0
    page_faults: int = 0

    @classmethod
    def initial(cls, config: SimulatorConfig) -> "Stats":
        """Return the counters of a freshly started simulator."""
        return cls(
            total_memory=config.total_memory,
            used_memory=0,
            free_memory=config.total_memory,
            page_size=config.page_size,
            total_pages=config.physical_blocks,
            used_pages=0,
            swapped_pages=0,
            kernel_memory=config.kernel_memory,
            system_memory=config.system_memory,
            disk_size=config.disk_size,
            used_disk_space=0,
        )

    @property
    def tlb_hit_rate(self) -> float:
        """Return TLB hits as a percentage of lookups (0.0 if none)."""
        lookups = self.tlb_hits + self.tlb_misses
        return 100.0 * self.tlb_hits / lookups if lookups else 0.0

    def to_json(self) -> dict[str, int]:
        """Return the counters keyed by their camelCase JSON names."""
        return {_JSON_NAMES[k]: v for k, v in asdict(self).items()}

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "Stats":
        """Build stats from a camelCase JSON object.

        Raises:
            KeyError: If a counter is missing.

        """
        return cls(**{f.name: int(data[_JSON_NAMES[f.name]]) for f in fields(cls)})
