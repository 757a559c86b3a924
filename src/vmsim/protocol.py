"""Backend message codec.

A front end and a simulator backend exchange small JSON envelopes::

    {"type": "memoryUpdate", "data": [<block>, ...]}
    {"type": "statsUpdate",  "data": {<stats>}}
    {"type": "pageTable",    "data": [<entry>, ...]}
    {"type": "tlbUpdate",    "data": [<entry>, ...]}
    {"type": "error",        "data": "<message>"}
    {"type": "operation",    "data": {<operation>}}

The first five flow from the simulator to the front end; ``operation``
flows the other way.  This module only builds and parses envelopes;
it opens no sockets.
"""

import json
from collections.abc import Iterator
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from vmsim.errors import ErrorKind, SimulationError
from vmsim.operations import Operation, operation_from_json, operation_to_json
from vmsim.simulator import Snapshot


class MessageType(StrEnum):
    """Envelope types."""

    MEMORY_UPDATE = "memoryUpdate"
    STATS_UPDATE = "statsUpdate"
    PAGE_TABLE = "pageTable"
    TLB_UPDATE = "tlbUpdate"
    ERROR = "error"
    OPERATION = "operation"


@dataclass(frozen=True)
class Message:
    """One decoded envelope."""

    type: MessageType
    data: Any

    def to_json(self) -> dict[str, Any]:
        """Return the envelope as a JSON object."""
        return {"type": str(self.type), "data": self.data}

    def encode(self) -> str:
        """Return the envelope as a JSON string."""
        return json.dumps(self.to_json())


def memory_update(snapshot: Snapshot) -> Message:
    """Build a ``memoryUpdate`` message from the physical blocks."""
    return Message(MessageType.MEMORY_UPDATE, [b.to_json() for b in snapshot.physical])


def stats_update(snapshot: Snapshot) -> Message:
    """Build a ``statsUpdate`` message."""
    return Message(MessageType.STATS_UPDATE, snapshot.stats.to_json())


def page_table_update(snapshot: Snapshot) -> Message:
    """Build a ``pageTable`` message."""
    return Message(MessageType.PAGE_TABLE, [e.to_json() for e in snapshot.page_table])


def tlb_update(snapshot: Snapshot) -> Message:
    """Build a ``tlbUpdate`` message."""
    return Message(MessageType.TLB_UPDATE, [e.to_json() for e in snapshot.tlb])


def error_message(text: str) -> Message:
    """Build an ``error`` message."""
    return Message(MessageType.ERROR, text)


def operation_message(operation: Operation) -> Message:
    """Build an outbound ``operation`` message."""
    return Message(MessageType.OPERATION, operation_to_json(operation))


def snapshot_messages(snapshot: Snapshot) -> Iterator[Message]:
    """Yield every update message describing *snapshot*."""
    yield memory_update(snapshot)
    yield stats_update(snapshot)
    yield page_table_update(snapshot)
    yield tlb_update(snapshot)


def decode_message(raw: str | bytes) -> Message:
    """Parse a JSON envelope.

    Raises:
        SimulationError: INVALID_INPUT for malformed JSON, a non-object
            payload, or an unknown message type.

    """
    try:
        payload = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        msg = f"Malformed message: {e}"
        raise SimulationError(ErrorKind.INVALID_INPUT, msg) from None
    if not isinstance(payload, dict) or "type" not in payload:
        msg = "Message must be an object with a 'type' field"
        raise SimulationError(ErrorKind.INVALID_INPUT, msg)
    try:
        message_type = MessageType(payload["type"])
    except ValueError:
        msg = f"Unknown message type: {payload['type']!r}"
        raise SimulationError(ErrorKind.INVALID_INPUT, msg) from None
    return Message(message_type, payload.get("data"))


def decode_operation(raw: str | bytes) -> Operation:
    """Parse an outbound ``operation`` envelope into an operation.

    Raises:
        SimulationError: INVALID_INPUT if the envelope is not an
            operation or its payload is malformed.

    """
    message = decode_message(raw)
    if message.type is not MessageType.OPERATION:
        msg = f"Expected an operation message, got {message.type}"
        raise SimulationError(ErrorKind.INVALID_INPUT, msg)
    return operation_from_json(message.data)
