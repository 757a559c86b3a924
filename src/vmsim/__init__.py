"""vmsim — an educational virtual-memory simulator.

Re-exports the main entry points so callers can write::

    from vmsim import MemorySimulator, Allocate
"""

from vmsim.config import SimulatorConfig
from vmsim.errors import ErrorKind, SimulationError
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
)
from vmsim.simulator import MemorySimulator, Snapshot
from vmsim.stats import Stats

__all__ = [
    "Allocate",
    "Deallocate",
    "ErrorKind",
    "MemorySimulator",
    "Operation",
    "OperationResult",
    "PageFault",
    "Reset",
    "SimulationError",
    "SimulatorConfig",
    "Snapshot",
    "Stats",
    "SwapIn",
    "SwapOut",
    "TranslateAddress",
    "Translation",
]
