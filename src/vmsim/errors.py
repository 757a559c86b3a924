"""Error taxonomy for the memory simulator.

Every failure the simulator can report falls into one of a handful of
kinds.  Components raise ``SimulationError`` when a contract is
violated; ``MemorySimulator.perform()`` catches it and turns it into a
user-facing notification, so a bad request never crashes the simulator.

Pools and the TLB do *not* raise for "nothing found".  Their callers
always branch on presence, so they return ``None`` instead.
"""

from enum import StrEnum


class ErrorKind(StrEnum):
    """Classify a simulator failure.

    The values double as the ``kind`` field in JSON results.
    """

    INVALID_INPUT = "invalid_input"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    NOT_RESIDENT = "not_resident"
    NOT_ON_DISK = "not_on_disk"
    NOT_FOUND = "not_found"


class SimulationError(Exception):
    """Raise when an operation cannot be carried out.

    Attributes:
        kind: The failure category.

    """

    def __init__(self, kind: ErrorKind, message: str) -> None:
        """Create an error of the given kind.

        Args:
            kind: The failure category.
            message: A human-readable explanation.

        """
        super().__init__(message)
        self.kind = kind

    @property
    def message(self) -> str:
        """Return the human-readable explanation."""
        return str(self)
