"""Virtual address decoding.

A virtual address is split into two parts by the page size::

    virtual address  →  (virtual page number, offset within page)

Because page sizes are powers of two, the split is pure bit work: the
low ``log2(page_size)`` bits are the offset and the remaining high bits
are the page number.  With 4 MB pages (2**22 bytes) the offset is the
low 22 bits, so ``0x3F24A`` decodes to page 0, offset ``0x3F24A``.
"""

from dataclasses import dataclass

from vmsim.config import is_power_of_two
from vmsim.errors import ErrorKind, SimulationError


@dataclass(frozen=True)
class DecodedAddress:
    """A virtual address split into page number and offset.

    Attributes:
        vpn: The virtual page number.
        offset: The byte offset within the page.
        offset_bits: Number of low bits used for the offset.

    """

    vpn: int
    offset: int
    offset_bits: int


def decode_address(address: int, page_size: int) -> DecodedAddress:
    """Split *address* into (vpn, offset) for pages of *page_size* bytes.

    Args:
        address: A non-negative virtual address.
        page_size: The page size in bytes (a power of two).

    Returns:
        The decoded address.

    Raises:
        SimulationError: If the address is negative or not an integer,
            or the page size is not a power of two.

    """
    if isinstance(address, bool) or not isinstance(address, int) or address < 0:
        msg = f"Virtual address must be a non-negative integer, got {address!r}"
        raise SimulationError(ErrorKind.INVALID_INPUT, msg)
    if isinstance(page_size, bool) or not isinstance(page_size, int) or not is_power_of_two(page_size):
        msg = f"Page size must be a power of two, got {page_size!r}"
        raise SimulationError(ErrorKind.INVALID_INPUT, msg)
    offset_bits = page_size.bit_length() - 1
    return DecodedAddress(
        vpn=address >> offset_bits,
        offset=address & (page_size - 1),
        offset_bits=offset_bits,
    )


def parse_address(text: str) -> int:
    """Parse a user-typed address: decimal, or hex with a ``0x`` prefix.

    Raises:
        SimulationError: If the text is not a valid non-negative address.

    """
    cleaned = text.strip().lower()
    try:
        value = int(cleaned, 16) if cleaned.startswith("0x") else int(cleaned)
    except ValueError:
        msg = f"Invalid address: {text!r}"
        raise SimulationError(ErrorKind.INVALID_INPUT, msg) from None
    if value < 0:
        msg = f"Invalid address: {text!r}"
        raise SimulationError(ErrorKind.INVALID_INPUT, msg)
    return value
