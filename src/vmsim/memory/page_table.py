"""Page table — virtual page number → page-table entry.

The MMU consults the page table whenever the TLB misses.  Each entry
says whether the virtual page is resident (``valid``), which physical
frame holds it (``ppn``), and — when it is not resident — whether it
lives in swap (``on_disk``) and where (``disk_address``)::

    valid  on_disk   meaning
    -----  -------   -------------------------------------------
    True   False     resident in frame ``ppn``
    False  True      swapped out to ``disk_address``
    False  False     touched but never loaded (first-touch fault)

``valid`` and ``on_disk`` are never both True.

One table serves every process: virtual page numbers are logical-pool
indices, which are unique across processes, and each entry records the
process that owns it so deallocation can sweep a process's pages.
"""

from dataclasses import dataclass, replace
from typing import Any

from vmsim.errors import ErrorKind, SimulationError

PROT_READ = 4
PROT_WRITE = 2
PROT_EXEC = 1
PROT_RWX = PROT_READ | PROT_WRITE | PROT_EXEC


@dataclass
class PageTableEntry:
    """One virtual page's mapping and status bits.

    Attributes:
        vpn: Virtual page number (unique key).
        ppn: Physical page number; meaningful only when ``valid``.
        valid: The page is resident in physical memory.
        dirty: The page was modified since it was loaded.
        referenced: The page was accessed recently.
        protection: RWX permission bits (0-7).
        on_disk: The page is stored in swap.
        disk_address: Byte address of the page in swap.
        process_id: The process that owns the page.

    """

    vpn: int
    ppn: int | None
    valid: bool
    dirty: bool = False
    referenced: bool = False
    protection: int = PROT_RWX
    on_disk: bool = False
    disk_address: int | None = None
    process_id: int | None = None

    def to_json(self) -> dict[str, Any]:
        """Return the entry as a camelCase JSON object."""
        data: dict[str, Any] = {
            "vpn": self.vpn,
            "ppn": self.ppn if self.ppn is not None else -1,
            "valid": self.valid,
            "dirty": self.dirty,
            "referenced": self.referenced,
            "protection": self.protection,
            "onDisk": self.on_disk,
        }
        if self.disk_address is not None:
            data["diskAddress"] = self.disk_address
        if self.process_id is not None:
            data["processId"] = self.process_id
        return data


class PageTable:
    """Map virtual page numbers to page-table entries."""

    def __init__(self) -> None:
        """Create an empty page table."""
        self._entries: dict[int, PageTableEntry] = {}

    def __len__(self) -> int:
        """Return the number of entries."""
        return len(self._entries)

    def __contains__(self, vpn: object) -> bool:
        """Return True if *vpn* has an entry."""
        return vpn in self._entries

    def lookup(self, vpn: int) -> PageTableEntry | None:
        """Return the live entry for *vpn*, or None if absent."""
        return self._entries.get(vpn)

    def entries(self) -> list[PageTableEntry]:
        """Return copies of all entries ordered by vpn."""
        return [replace(self._entries[vpn]) for vpn in sorted(self._entries)]

    def insert(
        self,
        vpn: int,
        ppn: int | None,
        *,
        valid: bool = True,
        protection: int = PROT_RWX,
        on_disk: bool = False,
        disk_address: int | None = None,
        referenced: bool = True,
        process_id: int | None = None,
    ) -> PageTableEntry:
        """Create (or overwrite) the entry for *vpn*.

        Args:
            vpn: The virtual page number.
            ppn: The physical frame, or None if the page is not resident.
            valid: Whether the page is resident.
            protection: RWX permission bits.
            on_disk: Whether the page is stored in swap.
            disk_address: Swap location when on disk.
            referenced: Initial referenced bit.
            process_id: The owning process.

        Returns:
            The new entry.

        Raises:
            SimulationError: If a resident entry has no frame, the entry
                is marked both valid and on disk, or the protection bits
                are out of range.

        """
        if valid and ppn is None:
            msg = f"Page {vpn} has no physical page assigned"
            raise SimulationError(ErrorKind.NOT_RESIDENT, msg)
        if valid and on_disk:
            msg = f"Page {vpn} cannot be both resident and on disk"
            raise SimulationError(ErrorKind.INVALID_INPUT, msg)
        if not 0 <= protection <= PROT_RWX:
            msg = f"Protection bits must be 0-7, got {protection}"
            raise SimulationError(ErrorKind.INVALID_INPUT, msg)
        entry = PageTableEntry(
            vpn=vpn,
            ppn=ppn,
            valid=valid,
            referenced=referenced,
            protection=protection,
            on_disk=on_disk,
            disk_address=disk_address,
            process_id=process_id,
        )
        self._entries[vpn] = entry
        return entry

    def record_first_touch(self, vpn: int, *, process_id: int | None = None) -> PageTableEntry:
        """Record a never-loaded page that has just faulted."""
        return self.insert(vpn, None, valid=False, process_id=process_id)

    def mark_swapped_out(self, vpn: int, *, disk_address: int) -> PageTableEntry:
        """Record that a resident page has been written to swap.

        Raises:
            SimulationError: NOT_RESIDENT if the entry is absent or not
                resident.

        """
        entry = self._entries.get(vpn)
        if entry is None or not entry.valid:
            msg = f"Page {vpn} is not resident"
            raise SimulationError(ErrorKind.NOT_RESIDENT, msg)
        entry.valid = False
        entry.on_disk = True
        entry.disk_address = disk_address
        return entry

    def mark_swapped_in(self, vpn: int, *, ppn: int) -> PageTableEntry:
        """Record that a swapped-out page is resident again in frame *ppn*.

        Raises:
            SimulationError: NOT_ON_DISK if the entry is absent or not
                on disk.

        """
        entry = self._entries.get(vpn)
        if entry is None or not entry.on_disk:
            msg = f"Page {vpn} is not on disk"
            raise SimulationError(ErrorKind.NOT_ON_DISK, msg)
        entry.valid = True
        entry.on_disk = False
        entry.ppn = ppn
        entry.disk_address = None
        entry.dirty = False
        entry.referenced = True
        return entry

    def mark_referenced(self, vpn: int) -> None:
        """Set the referenced bit on *vpn* (no-op if absent)."""
        entry = self._entries.get(vpn)
        if entry is not None:
            entry.referenced = True

    def remove(self, vpn: int) -> PageTableEntry | None:
        """Remove and return the entry for *vpn*, if any."""
        return self._entries.pop(vpn, None)

    def clear(self) -> None:
        """Remove every entry."""
        self._entries.clear()
