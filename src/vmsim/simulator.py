"""The memory simulator — one state machine over every memory structure.

The simulator owns the physical pool, the logical pool, the swap pool,
the page table, and the TLB, and is the only thing that mutates them.
Callers hand it one ``Operation`` at a time and get back an
``OperationResult``::

    allocate          logical run (first-fit) → frames, or swap if RAM is full
    deallocate        release frames, logical slots, swap blocks, PTEs, TLB
    translateAddress  TLB → page table → fault
    pageFault         same as swapIn
    swapIn            swap block → free frame (evicting a page first if needed)
    swapOut           frame → free swap block
    reset             back to the start-up layout

Failure handling:
    Handlers check every precondition before touching state, and raise
    ``SimulationError`` when one fails.  ``perform()`` converts the
    error into a failed result and logs it, so the caller always gets a
    notification and the simulator never crashes on bad input.

Deferred work:
    A fault on a swapped-out page, and a swap-in that had to evict a
    page first, queue a follow-up operation instead of finishing
    immediately.  ``tick()`` advances the queue clock and performs what
    became due; ``drain()`` runs until the queue is empty.
"""

from dataclasses import dataclass, replace
from typing import Any

from vmsim.config import SimulatorConfig
from vmsim.deferred import DeferredOperation, DeferredQueue
from vmsim.errors import ErrorKind, SimulationError
from vmsim.logging import Logger, LogLevel
from vmsim.memory.address import DecodedAddress, decode_address
from vmsim.memory.blocks import MemoryBlock
from vmsim.memory.page_table import PageTable, PageTableEntry
from vmsim.memory.pool import DiskSwapPool, LogicalMemoryPool, PhysicalMemoryPool
from vmsim.memory.replacement import ReplacementPolicy, make_policy
from vmsim.memory.tlb import TLBEntry, TranslationCache
from vmsim.operations import (
    Allocate,
    Deallocate,
    Operation,
    OperationResult,
    PageFault,
    Reset,
    SwapIn,
    SwapOut,
    TranslateAddress,
    Translation,
    operation_to_json,
)
from vmsim.stats import Stats

# Safety limit for drain(). A swap-in that keeps losing its frame
# would otherwise reschedule itself forever.
_MAX_DRAIN_TICKS = 1000

_FAILURE_LEVELS: dict[ErrorKind, LogLevel] = {
    ErrorKind.INVALID_INPUT: LogLevel.ERROR,
    ErrorKind.CAPACITY_EXCEEDED: LogLevel.ERROR,
    ErrorKind.NOT_RESIDENT: LogLevel.WARNING,
    ErrorKind.NOT_ON_DISK: LogLevel.WARNING,
    ErrorKind.NOT_FOUND: LogLevel.WARNING,
}


@dataclass(frozen=True)
class Snapshot:
    """A read-only copy of the simulator state after an operation."""

    physical: tuple[MemoryBlock, ...]
    logical: tuple[MemoryBlock, ...]
    disk: tuple[MemoryBlock, ...]
    page_table: tuple[PageTableEntry, ...]
    tlb: tuple[TLBEntry, ...]
    stats: Stats
    pending: tuple[DeferredOperation, ...]
    tick: int

    def to_json(self) -> dict[str, Any]:
        """Return the snapshot as a JSON object."""
        return {
            "blocks": [b.to_json() for b in self.physical],
            "logicalBlocks": [b.to_json() for b in self.logical],
            "diskBlocks": [b.to_json() for b in self.disk],
            "pageTable": [e.to_json() for e in self.page_table],
            "tlbEntries": [e.to_json() for e in self.tlb],
            "stats": self.stats.to_json(),
            "pending": [{"due": d.due, "operation": operation_to_json(d.operation)} for d in self.pending],
            "tick": self.tick,
        }


class MemorySimulator:
    """Virtual-memory simulator: pools, page table, TLB, and swap."""

    def __init__(self, config: SimulatorConfig | None = None) -> None:
        """Create a simulator in its start-up state.

        Args:
            config: Sizing and policy; defaults to the reference machine.

        """
        self._config = config if config is not None else SimulatorConfig()
        self._logger = Logger()
        self._deferred = DeferredQueue()
        self._initialize()
        if self._config.disk_size_mismatch:
            c = self._config
            self._log(
                LogLevel.WARNING,
                f"Swap blocks cover {c.disk_blocks * c.disk_block_size} MB "
                f"but disk size is {c.disk_size} MB",
            )

    def _initialize(self) -> None:
        """Build every structure in its start-up layout."""
        c = self._config
        self._physical = PhysicalMemoryPool(
            total_blocks=c.physical_blocks,
            kernel_blocks=c.kernel_blocks,
            system_blocks=c.system_blocks,
            block_size=c.page_size,
        )
        self._logical: LogicalMemoryPool | None = None
        if c.separate_logical_space:
            self._logical = LogicalMemoryPool(
                total_blocks=c.logical_blocks,
                kernel_blocks=c.kernel_blocks,
                system_blocks=c.system_blocks,
                block_size=c.page_size,
            )
        self._disk = DiskSwapPool(total_blocks=c.disk_blocks, block_size=c.disk_block_size)
        self._page_table = PageTable()
        self._tlb = TranslationCache(capacity=c.tlb_capacity)
        self._policy: ReplacementPolicy = make_policy(c.eviction_policy, seed=c.seed)
        self._stats = Stats.initial(c)

        self._log(LogLevel.INFO, f"[OK] Physical memory ({c.physical_blocks} frames, {c.total_memory} MB)")
        if self._logical is not None:
            self._log(LogLevel.INFO, f"[OK] Logical memory ({c.logical_blocks} pages)")
        self._log(LogLevel.INFO, f"[OK] Swap ({c.disk_blocks} blocks of {c.disk_block_size} MB)")
        tlb_label = f"{c.tlb_capacity} entries" if c.tlb_enabled else "disabled"
        self._log(LogLevel.INFO, f"[OK] TLB ({tlb_label})")

    # -- Accessors -----------------------------------------------------------

    @property
    def config(self) -> SimulatorConfig:
        """Return the simulator configuration."""
        return self._config

    @property
    def logger(self) -> Logger:
        """Return the event log."""
        return self._logger

    @property
    def stats(self) -> Stats:
        """Return a copy of the current counters."""
        return replace(self._stats)

    @property
    def physical(self) -> PhysicalMemoryPool:
        """Return the physical frame pool."""
        return self._physical

    @property
    def logical(self) -> LogicalMemoryPool | None:
        """Return the logical pool (None when virtual == physical)."""
        return self._logical

    @property
    def disk(self) -> DiskSwapPool:
        """Return the swap pool."""
        return self._disk

    @property
    def page_table(self) -> PageTable:
        """Return the page table."""
        return self._page_table

    @property
    def tlb(self) -> TranslationCache:
        """Return the TLB."""
        return self._tlb

    @property
    def deferred(self) -> DeferredQueue:
        """Return the deferred-operation queue."""
        return self._deferred

    def dmesg(self) -> list[str]:
        """Return the rendered event log."""
        return self._logger.dmesg()

    def snapshot(self) -> Snapshot:
        """Return a copy of the full observable state."""
        return Snapshot(
            physical=tuple(replace(b) for b in self._physical),
            logical=tuple(replace(b) for b in self._logical) if self._logical is not None else (),
            disk=tuple(replace(b) for b in self._disk),
            page_table=tuple(self._page_table.entries()),
            tlb=tuple(self._tlb.entries()),
            stats=self.stats,
            pending=tuple(self._deferred.pending()),
            tick=self._deferred.now,
        )

    # -- Entry points --------------------------------------------------------

    def perform(self, operation: Operation) -> OperationResult:
        """Perform one operation and log its notification.

        Args:
            operation: The request to carry out.

        Returns:
            The outcome; failures are reported, never raised.

        """
        try:
            result = self._dispatch(operation)
        except SimulationError as e:
            result = OperationResult(
                operation=operation,
                ok=False,
                message=e.message,
                level=_FAILURE_LEVELS[e.kind],
                kind=e.kind,
            )
        self._log(result.level, result.message, source=operation.OPERATION_TYPE)
        for follow_up in result.scheduled:
            self._log(
                LogLevel.DEBUG,
                f"Scheduled {follow_up.OPERATION_TYPE} {operation_to_json(follow_up)}",
                source=operation.OPERATION_TYPE,
            )
        return result

    def tick(self, ticks: int = 1) -> list[OperationResult]:
        """Advance the deferred clock and perform everything that became due.

        Args:
            ticks: Number of ticks to advance.

        Returns:
            Results of the deferred operations, in the order they ran.

        Raises:
            ValueError: If ticks is not positive.

        """
        if ticks < 1:
            msg = f"Ticks must be positive, got {ticks}"
            raise ValueError(msg)
        results: list[OperationResult] = []
        for _ in range(ticks):
            for operation in self._deferred.advance():
                results.append(self.perform(operation))
        return results

    def drain(self) -> list[OperationResult]:
        """Tick until no deferred operations remain.

        Raises:
            RuntimeError: If the queue is still busy after the safety limit.

        """
        results: list[OperationResult] = []
        for _ in range(_MAX_DRAIN_TICKS):
            if not len(self._deferred):
                return results
            results.extend(self.tick())
        msg = f"Deferred queue still busy after {_MAX_DRAIN_TICKS} ticks"
        raise RuntimeError(msg)

    # -- Dispatch --------------------------------------------------------------

    def _dispatch(self, operation: Operation) -> OperationResult:
        match operation:
            case Allocate():
                return self._allocate(operation)
            case Deallocate():
                return self._deallocate(operation)
            case TranslateAddress():
                return self._translate(operation)
            case PageFault(page_number=page) | SwapIn(page_number=page):
                return self._swap_in(operation, page)
            case SwapOut(page_number=page):
                self._require_page_number(page)
                message = self._swap_out_page(page)
                return OperationResult(operation=operation, ok=True, message=message)
            case Reset():
                return self._reset(operation)
        msg = f"Unsupported operation: {operation!r}"
        raise SimulationError(ErrorKind.INVALID_INPUT, msg)

    # -- Allocation ------------------------------------------------------------

    def _allocate(self, operation: Allocate) -> OperationResult:
        """Reserve virtual pages, backing each with a frame or a swap block."""
        c = self._config
        pid = self._process_id(operation.process_id)
        if operation.size <= 0:
            msg = f"Allocation size must be positive, got {operation.size} MB"
            raise SimulationError(ErrorKind.INVALID_INPUT, msg)
        pages = -(-operation.size // c.page_size)

        if self._logical is not None:
            start = self._logical.find_contiguous_free(pages, start=self._logical.reserved_blocks)
            if start is None:
                msg = f"Not enough contiguous free space in logical memory for {pages} pages"
                raise SimulationError(ErrorKind.CAPACITY_EXCEEDED, msg)
            vpns = list(range(start, start + pages))
            frames = self._free_frames(pages)
            spilled = pages - len(frames)
            if spilled > self._disk.free_count:
                msg = (
                    f"Not enough physical memory or swap space for {pages} pages "
                    f"({len(frames)} frames and {self._disk.free_count} swap blocks free)"
                )
                raise SimulationError(ErrorKind.CAPACITY_EXCEEDED, msg)
            self._logical.reserve(start, pages, process_id=pid, page_numbers=vpns)
        else:
            start = self._find_identity_run(pages)
            if start is None:
                msg = f"Not enough contiguous free space in physical memory for {pages} pages"
                raise SimulationError(ErrorKind.CAPACITY_EXCEEDED, msg)
            vpns = list(range(start, start + pages))
            frames = list(vpns)
            spilled = 0

        for vpn, frame in zip(vpns, frames, strict=False):
            self._physical.reserve(frame, 1, process_id=pid, page_numbers=[vpn])
            self._page_table.insert(vpn, frame, process_id=pid)
            self._policy.add_page(vpn)
        for vpn in vpns[len(frames) :]:
            disk_index = self._disk.find_free_block()
            assert disk_index is not None  # noqa: S101
            self._disk.reserve_block(disk_index, page_number=vpn, process_id=pid)
            self._page_table.insert(
                vpn,
                None,
                valid=False,
                on_disk=True,
                disk_address=self._disk_address(disk_index),
                process_id=pid,
            )
            self._set_swapped(vpn, swapped=True)

        resident = pages - spilled
        self._stats.used_memory += resident * c.page_size
        self._stats.free_memory -= resident * c.page_size
        self._stats.used_pages += pages
        self._stats.swapped_pages += spilled
        self._stats.used_disk_space += spilled * c.disk_block_size

        message = f"Allocated {operation.size} MB of memory ({pages} pages) for process {pid}"
        if spilled:
            message += f"; not enough physical memory, {spilled} pages placed in swap"
            return OperationResult(operation=operation, ok=True, message=message, level=LogLevel.WARNING)
        return OperationResult(operation=operation, ok=True, message=message)

    def _free_frames(self, limit: int) -> list[int]:
        """Return up to *limit* free frame indices in address order."""
        frames: list[int] = []
        index = self._physical.find_free(start=self._physical.reserved_blocks)
        while index is not None and len(frames) < limit:
            frames.append(index)
            index = self._physical.find_free(start=index + 1)
        return frames

    def _find_identity_run(self, pages: int) -> int | None:
        """Find a free frame run whose indices aren't in use as virtual pages.

        Without a logical pool, virtual page numbers are the frames handed
        out at allocation time.  A frame freed by a swap-out still names a
        live virtual page, so it can't be handed out again as a new one.
        """
        start = self._physical.find_contiguous_free(pages, start=self._physical.reserved_blocks)
        while start is not None:
            clash = [v for v in range(start, start + pages) if self._is_live_page(v)]
            if not clash:
                return start
            start = self._physical.find_contiguous_free(pages, start=clash[-1] + 1)
        return None

    def _is_live_page(self, vpn: int) -> bool:
        entry = self._page_table.lookup(vpn)
        return entry is not None and (entry.valid or entry.on_disk)

    def _deallocate(self, operation: Deallocate) -> OperationResult:
        """Release every frame, page slot, swap block, PTE, and TLB entry of a process."""
        c = self._config
        pid = operation.process_id
        if pid < 1:
            msg = f"Process ids start at 1, got {pid}"
            raise SimulationError(ErrorKind.INVALID_INPUT, msg)
        logical_owned = self._logical.owned_by(pid) if self._logical is not None else []
        physical_owned = self._physical.owned_by(pid)
        disk_owned = self._disk.owned_by(pid)
        if not (logical_owned or physical_owned or disk_owned):
            msg = f"No memory found for process {pid}"
            raise SimulationError(ErrorKind.NOT_FOUND, msg)

        # Only pages backed by the process's blocks go; first-touch entries stay.
        vpns: set[int | None] = set()
        if self._logical is not None:
            vpns.update(self._logical[i].page_number for i in logical_owned)
        vpns.update(self._physical[i].page_number for i in physical_owned)
        vpns.update(self._disk[i].page_number for i in disk_owned)

        if self._logical is not None:
            self._logical.release_by_process(pid)
        frames = self._physical.release_by_process(pid)
        swapped = self._disk.release_by_process(pid)
        removed: list[PageTableEntry] = []
        for vpn in sorted(v for v in vpns if v is not None):
            entry = self._page_table.remove(vpn)
            if entry is not None:
                removed.append(entry)
            self._policy.remove_page(vpn)
        self._tlb.invalidate_process(pid)
        pages = sum(1 for e in removed if e.valid or e.on_disk)

        self._stats.used_memory -= frames * c.page_size
        self._stats.free_memory += frames * c.page_size
        self._stats.used_pages -= pages
        self._stats.swapped_pages -= swapped
        self._stats.used_disk_space -= swapped * c.disk_block_size

        message = f"Deallocated memory for process {pid} ({pages} pages, {frames} frames, {swapped} swap blocks)"
        return OperationResult(operation=operation, ok=True, message=message)

    # -- Translation -----------------------------------------------------------

    def _translate(self, operation: TranslateAddress) -> OperationResult:
        """Translate a virtual address: TLB first, then the page table."""
        c = self._config
        decoded = decode_address(operation.virtual_address, c.page_size_bytes)
        vpn = decoded.vpn
        entry = self._page_table.lookup(vpn)
        if entry is not None and entry.process_id is not None:
            pid = entry.process_id
        else:
            pid = self._process_id(operation.process_id)

        if c.tlb_enabled:
            cached = self._tlb.lookup(pid, vpn)
            if cached is not None:
                self._stats.tlb_hits += 1
                self._page_table.mark_referenced(vpn)
                self._policy.record_access(vpn)
                translation = self._translation(operation, decoded, ppn=cached, tlb_hit=True)
                message = f"TLB hit: page {vpn} is in frame {cached} (physical address {translation.physical_address:#x})"
                return OperationResult(operation=operation, ok=True, message=message, translation=translation)
            self._stats.tlb_misses += 1

        if entry is None:
            self._page_table.record_first_touch(vpn, process_id=pid)
            self._stats.page_faults += 1
            message = f"Page fault: page {vpn} is not in physical memory"
            return self._fault_result(operation, decoded, message)

        if not entry.valid:
            self._stats.page_faults += 1
            if not entry.on_disk:
                message = f"Page fault: page {vpn} has not been loaded"
                return self._fault_result(operation, decoded, message)
            follow_up = PageFault(page_number=vpn)
            self._deferred.schedule(follow_up, delay=c.page_fault_delay)
            message = f"Page fault: page {vpn} is on disk, swap-in scheduled"
            return self._fault_result(operation, decoded, message, scheduled=(follow_up,))

        assert entry.ppn is not None  # noqa: S101
        if c.tlb_enabled:
            self._tlb.insert(pid, vpn, entry.ppn)
        self._page_table.mark_referenced(vpn)
        self._policy.record_access(vpn)
        translation = self._translation(operation, decoded, ppn=entry.ppn, tlb_hit=False)
        lead = "TLB miss" if c.tlb_enabled else "Page table"
        message = (
            f"{lead}: page {vpn} is in frame {entry.ppn} "
            f"(physical address {translation.physical_address:#x})"
        )
        return OperationResult(operation=operation, ok=True, message=message, translation=translation)

    def _translation(
        self,
        operation: TranslateAddress,
        decoded: DecodedAddress,
        *,
        ppn: int | None,
        tlb_hit: bool,
    ) -> Translation:
        physical = None if ppn is None else (ppn << decoded.offset_bits) | decoded.offset
        return Translation(
            virtual_address=operation.virtual_address,
            vpn=decoded.vpn,
            offset=decoded.offset,
            offset_bits=decoded.offset_bits,
            ppn=ppn,
            physical_address=physical,
            tlb_hit=tlb_hit,
            page_fault=ppn is None,
        )

    def _fault_result(
        self,
        operation: TranslateAddress,
        decoded: DecodedAddress,
        message: str,
        *,
        scheduled: tuple[Operation, ...] = (),
    ) -> OperationResult:
        return OperationResult(
            operation=operation,
            ok=True,
            message=message,
            level=LogLevel.WARNING,
            translation=self._translation(operation, decoded, ppn=None, tlb_hit=False),
            scheduled=scheduled,
        )

    # -- Swapping ----------------------------------------------------------------

    def _swap_in(self, operation: PageFault | SwapIn, vpn: int) -> OperationResult:
        """Bring a page back from swap, evicting a resident page if RAM is full."""
        c = self._config
        self._require_page_number(vpn)
        disk_index = self._disk.find_block_by_page(vpn)
        if disk_index is None:
            msg = f"Page {vpn} not found on disk"
            raise SimulationError(ErrorKind.NOT_FOUND, msg)
        entry = self._page_table.lookup(vpn)
        if entry is None:
            msg = f"Page {vpn} not found in page table"
            raise SimulationError(ErrorKind.NOT_FOUND, msg)
        if not entry.on_disk:
            msg = f"Page {vpn} is not on disk"
            raise SimulationError(ErrorKind.NOT_ON_DISK, msg)

        frame = self._physical.find_free(start=self._physical.reserved_blocks)
        if frame is None:
            # Swap space is checked before the policy picks (and moves past) a victim.
            if self._disk.find_free_block() is None:
                msg = f"No free frame for page {vpn} and no free disk space to evict into"
                raise SimulationError(ErrorKind.CAPACITY_EXCEEDED, msg)
            victim = self._policy.select_victim()
            if victim is None:
                msg = f"No free frame for page {vpn} and no resident page to evict"
                raise SimulationError(ErrorKind.CAPACITY_EXCEEDED, msg)
            evicted = self._swap_out_page(victim)
            retry = SwapIn(page_number=vpn)
            self._deferred.schedule(retry, delay=c.swap_retry_delay)
            message = f"Physical memory full. {evicted}; swap-in of page {vpn} scheduled"
            return OperationResult(
                operation=operation,
                ok=True,
                message=message,
                level=LogLevel.WARNING,
                scheduled=(retry,),
            )

        owner = self._disk[disk_index].process_id
        assert owner is not None  # noqa: S101
        self._physical.reserve(frame, 1, process_id=owner, page_numbers=[vpn])
        self._page_table.mark_swapped_in(vpn, ppn=frame)
        self._disk.release_block(disk_index)
        self._set_swapped(vpn, swapped=False)
        self._policy.add_page(vpn)

        self._stats.swapped_pages -= 1
        self._stats.used_disk_space -= c.disk_block_size
        self._stats.used_memory += c.page_size
        self._stats.free_memory -= c.page_size

        message = f"Swapped in page {vpn} from disk block {disk_index} to frame {frame}"
        return OperationResult(operation=operation, ok=True, message=message)

    def _swap_out_page(self, vpn: int) -> str:
        """Move a resident page to a free swap block.

        Returns:
            A description of what moved where.

        Raises:
            SimulationError: If the page isn't resident or swap is full.

        """
        c = self._config
        entry = self._page_table.lookup(vpn)
        if entry is None:
            msg = f"Page {vpn} not found in page table"
            raise SimulationError(ErrorKind.NOT_FOUND, msg)
        if entry.on_disk:
            msg = f"Page {vpn} is already on disk"
            raise SimulationError(ErrorKind.NOT_RESIDENT, msg)
        if not entry.valid or entry.ppn is None:
            msg = f"Page {vpn} is not resident"
            raise SimulationError(ErrorKind.NOT_RESIDENT, msg)
        disk_index = self._disk.find_free_block()
        if disk_index is None:
            msg = "No free disk space available for swap"
            raise SimulationError(ErrorKind.CAPACITY_EXCEEDED, msg)

        frame = entry.ppn
        owner = entry.process_id if entry.process_id is not None else c.current_process_id
        self._physical.release(frame)
        self._page_table.mark_swapped_out(vpn, disk_address=self._disk_address(disk_index))
        self._disk.reserve_block(disk_index, page_number=vpn, process_id=owner)
        self._set_swapped(vpn, swapped=True)
        self._tlb.invalidate(owner, vpn)
        self._policy.remove_page(vpn)

        self._stats.swapped_pages += 1
        self._stats.used_disk_space += c.disk_block_size
        self._stats.used_memory -= c.page_size
        self._stats.free_memory += c.page_size
        return f"Swapped out page {vpn} from frame {frame} to disk block {disk_index}"

    # -- Reset -------------------------------------------------------------------

    def _reset(self, operation: Reset) -> OperationResult:
        """Discard all state and rebuild the start-up layout."""
        message = "Memory state reset"
        if self._config.cancel_deferred_on_reset:
            dropped = self._deferred.clear()
            if dropped:
                message += f" ({dropped} pending operations cancelled)"
        self._initialize()
        return OperationResult(operation=operation, ok=True, message=message)

    # -- Helpers -----------------------------------------------------------------

    def _process_id(self, process_id: int | None) -> int:
        """Resolve an optional process id to the current process."""
        pid = process_id if process_id is not None else self._config.current_process_id
        if pid < 1:
            msg = f"Process ids start at 1, got {pid}"
            raise SimulationError(ErrorKind.INVALID_INPUT, msg)
        return pid

    @staticmethod
    def _require_page_number(page: int) -> None:
        if page < 0:
            msg = f"Page numbers cannot be negative, got {page}"
            raise SimulationError(ErrorKind.INVALID_INPUT, msg)

    def _disk_address(self, disk_index: int) -> int:
        return disk_index * self._config.disk_block_bytes

    def _set_swapped(self, vpn: int, *, swapped: bool) -> None:
        """Flag the logical slot of *vpn* as swapped (or not)."""
        if self._logical is not None and vpn < len(self._logical):
            self._logical[vpn].is_swapped = swapped if swapped else None

    def _log(self, level: LogLevel, message: str, *, source: str = "simulator") -> None:
        self._logger.log(level, message, source=source, tick=self._deferred.now)
