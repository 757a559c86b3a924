"""Operations and their results.

An operation is a small immutable request — one dataclass per kind,
carrying only the fields that kind needs.  The ``Operation`` union is
what ``MemorySimulator.perform()`` accepts, and ``match`` on it is
exhaustive.

The wire format is the camelCase object used by the web client::

    {"type": "allocate", "processId": 1, "size": 16}
    {"type": "translateAddress", "virtualAddress": "0x3F24A"}

Every operation produces an ``OperationResult``: success or failure,
a human-readable message, the log level it was reported at, and for
translations the full address breakdown.
"""

from dataclasses import dataclass
from typing import Any, ClassVar, TypeAlias

from vmsim.errors import ErrorKind, SimulationError
from vmsim.logging import LogLevel
from vmsim.memory.address import parse_address


@dataclass(frozen=True)
class Allocate:
    """Allocate *size* MB for a process."""

    OPERATION_TYPE: ClassVar[str] = "allocate"

    size: int
    process_id: int | None = None


@dataclass(frozen=True)
class Deallocate:
    """Release everything a process owns."""

    OPERATION_TYPE: ClassVar[str] = "deallocate"

    process_id: int


@dataclass(frozen=True)
class PageFault:
    """Force the page in from swap."""

    OPERATION_TYPE: ClassVar[str] = "pageFault"

    page_number: int


@dataclass(frozen=True)
class SwapIn:
    """Load a swapped-out page into a physical frame."""

    OPERATION_TYPE: ClassVar[str] = "swapIn"

    page_number: int


@dataclass(frozen=True)
class SwapOut:
    """Write a resident page out to swap."""

    OPERATION_TYPE: ClassVar[str] = "swapOut"

    page_number: int


@dataclass(frozen=True)
class TranslateAddress:
    """Translate a virtual address through the TLB and page table."""

    OPERATION_TYPE: ClassVar[str] = "translateAddress"

    virtual_address: int
    process_id: int | None = None


@dataclass(frozen=True)
class Reset:
    """Return the simulator to its start-up state."""

    OPERATION_TYPE: ClassVar[str] = "reset"


Operation: TypeAlias = Allocate | Deallocate | PageFault | SwapIn | SwapOut | TranslateAddress | Reset

_UNSUPPORTED = frozenset({"fragmentationFix", "accessMemory"})


def _int_field(data: dict[str, Any], key: str, *, required: bool = True) -> int | None:
    """Read an integer field from a wire object."""
    value = data.get(key)
    if value is None:
        if required:
            msg = f"Missing field {key!r}"
            raise SimulationError(ErrorKind.INVALID_INPUT, msg)
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        msg = f"Field {key!r} must be an integer, got {value!r}"
        raise SimulationError(ErrorKind.INVALID_INPUT, msg)
    return value


def operation_from_json(data: Any) -> Operation:
    """Decode a wire object into an operation.

    Args:
        data: A dict with a ``type`` key and the kind's fields.

    Returns:
        The decoded operation.

    Raises:
        SimulationError: INVALID_INPUT for anything malformed or unknown.

    """
    if not isinstance(data, dict):
        msg = f"Operation must be an object, got {type(data).__name__}"
        raise SimulationError(ErrorKind.INVALID_INPUT, msg)
    op_type = data.get("type")
    match op_type:
        case "allocate":
            size = _int_field(data, "size")
            assert size is not None  # noqa: S101
            return Allocate(size=size, process_id=_int_field(data, "processId", required=False))
        case "deallocate":
            pid = _int_field(data, "processId")
            assert pid is not None  # noqa: S101
            return Deallocate(process_id=pid)
        case "pageFault" | "swapIn" | "swapOut":
            page = _int_field(data, "pageNumber")
            assert page is not None  # noqa: S101
            cls = {"pageFault": PageFault, "swapIn": SwapIn, "swapOut": SwapOut}[op_type]
            return cls(page_number=page)
        case "translateAddress":
            raw = data.get("virtualAddress")
            if isinstance(raw, str):
                address = parse_address(raw)
            else:
                address = _int_field(data, "virtualAddress")
                assert address is not None  # noqa: S101
            return TranslateAddress(
                virtual_address=address,
                process_id=_int_field(data, "processId", required=False),
            )
        case "reset":
            return Reset()
        case _ if op_type in _UNSUPPORTED:
            msg = f"Operation {op_type!r} is not supported by this simulator"
            raise SimulationError(ErrorKind.INVALID_INPUT, msg)
        case _:
            msg = f"Unknown operation type: {op_type!r}"
            raise SimulationError(ErrorKind.INVALID_INPUT, msg)


def operation_to_json(operation: Operation) -> dict[str, Any]:
    """Encode an operation as its camelCase wire object."""
    data: dict[str, Any] = {"type": operation.OPERATION_TYPE}
    match operation:
        case Allocate(size=size, process_id=pid):
            data["size"] = size
            if pid is not None:
                data["processId"] = pid
        case Deallocate(process_id=pid):
            data["processId"] = pid
        case PageFault(page_number=page) | SwapIn(page_number=page) | SwapOut(page_number=page):
            data["pageNumber"] = page
        case TranslateAddress(virtual_address=address, process_id=pid):
            data["virtualAddress"] = address
            if pid is not None:
                data["processId"] = pid
        case Reset():
            pass
    return data


@dataclass(frozen=True)
class Translation:
    """The breakdown of one address translation.

    ``ppn`` and ``physical_address`` are None when the translation
    faulted.
    """

    virtual_address: int
    vpn: int
    offset: int
    offset_bits: int
    ppn: int | None
    physical_address: int | None
    tlb_hit: bool
    page_fault: bool

    def to_json(self) -> dict[str, Any]:
        """Return the translation as a camelCase JSON object."""
        return {
            "virtualAddress": self.virtual_address,
            "vpn": self.vpn,
            "pageOffset": self.offset,
            "offsetBits": self.offset_bits,
            "ppn": self.ppn,
            "physicalAddress": self.physical_address,
            "tlbHit": self.tlb_hit,
            "pageFault": self.page_fault,
        }


@dataclass(frozen=True)
class OperationResult:
    """The outcome of one operation.

    Attributes:
        operation: The operation that was performed.
        ok: Whether it succeeded.
        message: The user-facing notification.
        level: Severity the notification was logged at.
        kind: Failure category when ``ok`` is False.
        translation: Address breakdown for translations.
        scheduled: Operations queued to run on a later tick.

    """

    operation: Operation
    ok: bool
    message: str
    level: LogLevel = LogLevel.INFO
    kind: ErrorKind | None = None
    translation: Translation | None = None
    scheduled: tuple[Operation, ...] = ()

    def to_json(self) -> dict[str, Any]:
        """Return the result as a JSON object."""
        data: dict[str, Any] = {
            "operation": operation_to_json(self.operation),
            "ok": self.ok,
            "message": self.message,
            "level": self.level.name.lower(),
        }
        if self.kind is not None:
            data["kind"] = str(self.kind)
        if self.translation is not None:
            data["translation"] = self.translation.to_json()
        if self.scheduled:
            data["scheduled"] = [operation_to_json(op) for op in self.scheduled]
        return data
