"""Memory subsystem — blocks, pools, page table, TLB, and eviction.

Re-exports public symbols so callers can write::

    from vmsim.memory import PageTable, TranslationCache
"""

from vmsim.memory.address import DecodedAddress, decode_address, parse_address
from vmsim.memory.blocks import BlockType, MemoryBlock
from vmsim.memory.page_table import PROT_RWX, PageTable, PageTableEntry
from vmsim.memory.pool import (
    BlockPool,
    DiskSwapPool,
    LogicalMemoryPool,
    PhysicalMemoryPool,
)
from vmsim.memory.replacement import (
    ClockPolicy,
    FIFOPolicy,
    LRUPolicy,
    RandomPolicy,
    ReplacementPolicy,
    make_policy,
)
from vmsim.memory.tlb import TLBEntry, TranslationCache

__all__ = [
    "PROT_RWX",
    "BlockPool",
    "BlockType",
    "ClockPolicy",
    "DecodedAddress",
    "DiskSwapPool",
    "FIFOPolicy",
    "LRUPolicy",
    "LogicalMemoryPool",
    "MemoryBlock",
    "PageTable",
    "PageTableEntry",
    "PhysicalMemoryPool",
    "RandomPolicy",
    "ReplacementPolicy",
    "TLBEntry",
    "TranslationCache",
    "decode_address",
    "make_policy",
    "parse_address",
]
