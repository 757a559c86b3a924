"""The shell — text command interpreter for the simulator.

The shell parses a command line, turns it into an ``Operation`` (or a
query), and returns the output as a string.  It never prints, so it is
fully testable; ``vmsim.repl`` is the thin I/O loop around it.

Design choices:
    - **Returns strings, not prints.**
    - **Command dispatch via a dict.**  Adding a command means writing a
      method and adding one dict entry.
    - **Every mutation goes through ``simulator.perform()``**, so shell
      commands are logged exactly like web or programmatic operations.
"""

from collections.abc import Callable
from typing import TypeAlias

from vmsim.errors import SimulationError
from vmsim.memory.address import parse_address
from vmsim.memory.blocks import MemoryBlock
from vmsim.operations import (
    Allocate,
    Deallocate,
    OperationResult,
    PageFault,
    Reset,
    SwapIn,
    SwapOut,
    TranslateAddress,
)
from vmsim.simulator import MemorySimulator

# Type alias for a command handler: takes a list of args, returns output.
_Handler: TypeAlias = Callable[[list[str]], str]

_DEFAULT_LOG_LINES = 20


def _parse_int(text: str) -> int | None:
    try:
        return int(text)
    except ValueError:
        return None


def _format_result(result: OperationResult) -> str:
    """Render an operation result, including any translation breakdown."""
    prefix = "" if result.ok else "Error: "
    lines = [prefix + result.message]
    t = result.translation
    if t is not None:
        lines.append(f"  virtual address:  {t.virtual_address:#x}")
        lines.append(f"  page number:      {t.vpn}")
        lines.append(f"  page offset:      {t.offset:#x} ({t.offset_bits} bits)")
        if t.physical_address is not None:
            lines.append(f"  frame number:     {t.ppn}")
            lines.append(f"  physical address: {t.physical_address:#x}")
    return "\n".join(lines)


def _format_block(block: MemoryBlock) -> str:
    owner = f" pid={block.process_id}" if block.process_id is not None else ""
    page = f" page={block.page_number}" if block.page_number is not None else ""
    swapped = " swapped" if block.is_swapped else ""
    return f"{block.id:<18} {block.type:<10} @{block.address:>5} MB{owner}{page}{swapped}"


class Shell:
    """Command interpreter bound to one simulator."""

    EXIT_SENTINEL = "__EXIT__"

    def __init__(self, *, simulator: MemorySimulator) -> None:
        """Create a shell for *simulator*."""
        self._simulator = simulator
        self._commands: dict[str, _Handler] = {
            "help": self._cmd_help,
            "alloc": self._cmd_alloc,
            "free": self._cmd_free,
            "translate": self._cmd_translate,
            "fault": self._cmd_fault,
            "swapin": self._cmd_swapin,
            "swapout": self._cmd_swapout,
            "reset": self._cmd_reset,
            "tick": self._cmd_tick,
            "drain": self._cmd_drain,
            "stats": self._cmd_stats,
            "pagetable": self._cmd_pagetable,
            "tlb": self._cmd_tlb,
            "blocks": self._cmd_blocks,
            "log": self._cmd_log,
            "exit": self._cmd_exit,
        }

    @property
    def simulator(self) -> MemorySimulator:
        """Return the simulator this shell drives."""
        return self._simulator

    @property
    def command_names(self) -> list[str]:
        """Return the sorted list of command names."""
        return sorted(self._commands)

    def execute(self, command: str) -> str:
        """Parse and execute one command line.

        Args:
            command: The raw command string (e.g. "alloc 1 16").

        Returns:
            The command output, or an error message.

        """
        parts = command.split()
        if not parts:
            return ""
        name, args = parts[0].lower(), parts[1:]
        handler = self._commands.get(name)
        if handler is None:
            return f"Unknown command: {name}"
        return handler(args)

    # -- Operations ----------------------------------------------------------

    def _cmd_help(self, _args: list[str]) -> str:
        """List available commands."""
        return "Available commands: " + ", ".join(self.command_names)

    def _cmd_alloc(self, args: list[str]) -> str:
        """Allocate memory: alloc <pid> <size MB>."""
        if len(args) != 2:  # noqa: PLR2004
            return "Usage: alloc <pid> <size MB>"
        pid, size = _parse_int(args[0]), _parse_int(args[1])
        if pid is None or size is None:
            return "Error: pid and size must be integers"
        return _format_result(self._simulator.perform(Allocate(size=size, process_id=pid)))

    def _cmd_free(self, args: list[str]) -> str:
        """Deallocate a process: free <pid>."""
        pid = _parse_int(args[0]) if len(args) == 1 else None
        if pid is None:
            return "Usage: free <pid>"
        return _format_result(self._simulator.perform(Deallocate(process_id=pid)))

    def _cmd_translate(self, args: list[str]) -> str:
        """Translate a virtual address: translate <addr> (decimal or 0x hex)."""
        if len(args) != 1:
            return "Usage: translate <address>"
        try:
            address = parse_address(args[0])
        except SimulationError as e:
            return f"Error: {e.message}"
        return _format_result(self._simulator.perform(TranslateAddress(virtual_address=address)))

    def _page_command(
        self,
        args: list[str],
        usage: str,
        factory: Callable[[int], PageFault | SwapIn | SwapOut],
    ) -> str:
        page = _parse_int(args[0]) if len(args) == 1 else None
        if page is None:
            return f"Usage: {usage} <page>"
        return _format_result(self._simulator.perform(factory(page)))

    def _cmd_fault(self, args: list[str]) -> str:
        """Trigger a page fault: fault <page>."""
        return self._page_command(args, "fault", lambda p: PageFault(page_number=p))

    def _cmd_swapin(self, args: list[str]) -> str:
        """Swap a page in: swapin <page>."""
        return self._page_command(args, "swapin", lambda p: SwapIn(page_number=p))

    def _cmd_swapout(self, args: list[str]) -> str:
        """Swap a page out: swapout <page>."""
        return self._page_command(args, "swapout", lambda p: SwapOut(page_number=p))

    def _cmd_reset(self, _args: list[str]) -> str:
        """Reset the simulator."""
        return _format_result(self._simulator.perform(Reset()))

    def _cmd_tick(self, args: list[str]) -> str:
        """Advance the deferred clock: tick [n]."""
        ticks = _parse_int(args[0]) if args else 1
        if ticks is None or ticks < 1 or len(args) > 1:
            return "Usage: tick [n]"
        results = self._simulator.tick(ticks)
        header = f"Tick {self._simulator.deferred.now}: {len(results)} deferred operations ran"
        return "\n".join([header, *(_format_result(r) for r in results)])

    def _cmd_drain(self, _args: list[str]) -> str:
        """Run every pending deferred operation."""
        results = self._simulator.drain()
        if not results:
            return "No deferred operations pending"
        return "\n".join(_format_result(r) for r in results)

    # -- Queries -------------------------------------------------------------

    def _cmd_stats(self, _args: list[str]) -> str:
        """Show the memory dashboard."""
        s = self._simulator.stats
        lines = [
            "=== Memory Statistics ===",
            f"Physical:   {s.used_memory}/{s.total_memory} MB used, {s.free_memory} MB free",
            f"Reserved:   {s.kernel_memory} MB kernel, {s.system_memory} MB system",
            f"Pages:      {s.used_pages} used of {s.total_pages} frames, page size {s.page_size} MB",
            f"Swap:       {s.swapped_pages} pages, {s.used_disk_space}/{s.disk_size} MB used",
            f"TLB:        {s.tlb_hits} hits, {s.tlb_misses} misses ({s.tlb_hit_rate:.1f}% hit rate)",
            f"Faults:     {s.page_faults}",
            f"Pending:    {len(self._simulator.deferred)} deferred operations",
        ]
        return "\n".join(lines)

    def _cmd_pagetable(self, _args: list[str]) -> str:
        """Show the page table."""
        entries = self._simulator.page_table.entries()
        if not entries:
            return "Page table is empty"
        lines = ["VPN    PPN    V D R PROT DISK        PID"]
        for e in entries:
            ppn = "-" if e.ppn is None else str(e.ppn)
            disk = f"{e.disk_address:#x}" if e.disk_address is not None else "-"
            pid = "-" if e.process_id is None else str(e.process_id)
            lines.append(
                f"{e.vpn:<6} {ppn:<6} {int(e.valid)} {int(e.dirty)} {int(e.referenced)} "
                f"{e.protection:o}    {disk:<11} {pid}"
            )
        return "\n".join(lines)

    def _cmd_tlb(self, _args: list[str]) -> str:
        """Show the TLB."""
        tlb = self._simulator.tlb
        entries = tlb.entries()
        if not entries:
            return "TLB is empty"
        lines = [f"TLB ({len(entries)}/{tlb.capacity})", "PID  VPN    PPN    LAST"]
        lines.extend(f"{e.process_id:<4} {e.vpn:<6} {e.ppn:<6} {e.last_used}" for e in entries)
        return "\n".join(lines)

    def _cmd_blocks(self, args: list[str]) -> str:
        """List non-free blocks of a pool: blocks <physical|logical|disk>."""
        pools = {
            "physical": self._simulator.physical,
            "logical": self._simulator.logical,
            "disk": self._simulator.disk,
        }
        if len(args) != 1 or args[0] not in pools:
            return "Usage: blocks <physical|logical|disk>"
        pool = pools[args[0]]
        if pool is None:
            return "Error: logical memory is disabled"
        busy = [b for b in pool if not b.is_free]
        lines = [f"{args[0]}: {len(pool) - len(busy)}/{len(pool)} blocks free"]
        lines.extend(_format_block(b) for b in busy)
        return "\n".join(lines)

    def _cmd_log(self, args: list[str]) -> str:
        """Show the most recent log lines: log [n]."""
        count = _parse_int(args[0]) if args else _DEFAULT_LOG_LINES
        if count is None or count < 0:
            return "Usage: log [n]"
        return "\n".join(self._simulator.logger.dmesg(last=count))

    def _cmd_exit(self, _args: list[str]) -> str:
        """Exit the shell."""
        return self.EXIT_SENTINEL
