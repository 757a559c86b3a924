"""Simulator configuration.

The defaults reproduce the reference machine: 1024 MB of physical
memory split into 4 MB frames, of which the first 128 MB belong to the
kernel and the next 64 MB to the system; a 4096 MB virtual address
space; and 100 swap blocks of 20 MB each on a disk advertised as 2 GB.

The disk figures don't add up (100 x 20 MB is 2000 MB, not 2048 MB),
and swap blocks are five times larger than pages.  Both quirks are
kept as-is; ``disk_size_mismatch`` exposes the first one so the
simulator can warn about it.

Variation points from the simpler simulator variants are flags rather
than separate code paths: ``separate_logical_space`` turns the logical
pool off (virtual page == physical frame), ``tlb_enabled`` turns the
TLB off.
"""

from dataclasses import dataclass

MB = 1024 * 1024

EVICTION_POLICIES = frozenset({"fifo", "lru", "clock", "random"})


def is_power_of_two(value: int) -> bool:
    """Return True if *value* is a positive power of two."""
    return value > 0 and value & (value - 1) == 0


@dataclass(frozen=True)
class SimulatorConfig:
    """Sizing and policy knobs for a ``MemorySimulator``.

    Sizes are in MB; counts are in blocks.  Delays are in ticks of the
    deferred-operation queue.
    """

    page_size: int = 4
    physical_blocks: int = 256
    kernel_blocks: int = 32
    system_blocks: int = 16
    logical_blocks: int = 1024
    separate_logical_space: bool = True
    disk_blocks: int = 100
    disk_block_size: int = 20
    disk_size: int = 2048
    tlb_enabled: bool = True
    tlb_capacity: int = 8
    eviction_policy: str = "fifo"
    seed: int | None = None
    current_process_id: int = 1
    page_fault_delay: int = 5
    swap_retry_delay: int = 1
    cancel_deferred_on_reset: bool = False

    def __post_init__(self) -> None:
        """Validate the configuration.

        Raises:
            ValueError: If any field is out of range or inconsistent.

        """
        if not is_power_of_two(self.page_size):
            msg = f"Page size must be a power of two, got {self.page_size}"
            raise ValueError(msg)
        for name in ("physical_blocks", "disk_blocks", "disk_block_size", "disk_size"):
            if getattr(self, name) <= 0:
                msg = f"{name} must be positive, got {getattr(self, name)}"
                raise ValueError(msg)
        if self.kernel_blocks < 0 or self.system_blocks < 0:
            msg = "Reserved regions cannot be negative"
            raise ValueError(msg)
        if self.reserved_blocks >= self.physical_blocks:
            msg = (
                f"Reserved regions ({self.reserved_blocks} blocks) leave no free "
                f"physical memory ({self.physical_blocks} blocks)"
            )
            raise ValueError(msg)
        if self.separate_logical_space and self.logical_blocks <= self.reserved_blocks:
            msg = (
                f"Logical space ({self.logical_blocks} blocks) must be larger than "
                f"the reserved region ({self.reserved_blocks} blocks)"
            )
            raise ValueError(msg)
        if self.tlb_capacity < 1:
            msg = f"TLB capacity must be at least 1, got {self.tlb_capacity}"
            raise ValueError(msg)
        if self.eviction_policy not in EVICTION_POLICIES:
            choices = ", ".join(sorted(EVICTION_POLICIES))
            msg = f"Unknown eviction policy {self.eviction_policy!r} (choose from {choices})"
            raise ValueError(msg)
        if self.page_fault_delay < 0 or self.swap_retry_delay < 0:
            msg = "Deferred delays cannot be negative"
            raise ValueError(msg)
        if self.current_process_id < 1:
            msg = f"Process ids start at 1, got {self.current_process_id}"
            raise ValueError(msg)

    @property
    def reserved_blocks(self) -> int:
        """Return the number of kernel plus system blocks."""
        return self.kernel_blocks + self.system_blocks

    @property
    def total_memory(self) -> int:
        """Return physical memory size in MB."""
        return self.physical_blocks * self.page_size

    @property
    def kernel_memory(self) -> int:
        """Return the kernel region size in MB."""
        return self.kernel_blocks * self.page_size

    @property
    def system_memory(self) -> int:
        """Return the system region size in MB."""
        return self.system_blocks * self.page_size

    @property
    def page_size_bytes(self) -> int:
        """Return the page size in bytes (used for address translation)."""
        return self.page_size * MB

    @property
    def disk_block_bytes(self) -> int:
        """Return the swap block size in bytes (used for disk addresses)."""
        return self.disk_block_size * MB

    @property
    def disk_size_mismatch(self) -> bool:
        """Return True when the swap blocks don't cover exactly ``disk_size``."""
        return self.disk_blocks * self.disk_block_size != self.disk_size
