"""Tests for the backend message codec."""

import json

import pytest

from vmsim.errors import ErrorKind, SimulationError
from vmsim.operations import Allocate, SwapIn
from vmsim.protocol import (
    Message,
    MessageType,
    decode_message,
    decode_operation,
    error_message,
    operation_message,
    snapshot_messages,
)
from vmsim.simulator import MemorySimulator, Snapshot


def _allocated_snapshot() -> Snapshot:
    sim = MemorySimulator()
    sim.perform(Allocate(size=8, process_id=1))
    return sim.snapshot()


class TestUpdates:
    """Verify messages built from a snapshot."""

    def test_snapshot_messages_order(self) -> None:
        """A snapshot yields memory, stats, page table, and TLB updates."""
        types = [m.type for m in snapshot_messages(_allocated_snapshot())]
        assert types == [
            MessageType.MEMORY_UPDATE,
            MessageType.STATS_UPDATE,
            MessageType.PAGE_TABLE,
            MessageType.TLB_UPDATE,
        ]

    def test_memory_update_payload(self) -> None:
        """memoryUpdate carries every physical block."""
        memory = next(iter(snapshot_messages(_allocated_snapshot())))
        expected_blocks = 256
        assert len(memory.data) == expected_blocks
        assert memory.data[48]["processId"] == 1

    def test_encode(self) -> None:
        """Messages encode as {"type", "data"} JSON."""
        raw = error_message("No free disk space available for swap").encode()
        assert json.loads(raw) == {"type": "error", "data": "No free disk space available for swap"}


class TestDecode:
    """Verify parsing inbound envelopes."""

    def test_decode_message(self) -> None:
        """A valid envelope decodes to its type and data."""
        message = decode_message('{"type": "statsUpdate", "data": {"usedMemory": 0}}')
        assert message == Message(MessageType.STATS_UPDATE, {"usedMemory": 0})

    def test_malformed_json(self) -> None:
        """Garbage is invalid input."""
        with pytest.raises(SimulationError, match="Malformed") as exc:
            decode_message("{not json")
        assert exc.value.kind is ErrorKind.INVALID_INPUT

    def test_missing_type(self) -> None:
        """Envelopes need a type."""
        with pytest.raises(SimulationError, match="'type' field"):
            decode_message("[1, 2]")

    def test_unknown_type(self) -> None:
        """Unknown envelope types are rejected."""
        with pytest.raises(SimulationError, match="Unknown message type"):
            decode_message('{"type": "defrag"}')

    def test_decode_operation(self) -> None:
        """An operation envelope decodes to the operation."""
        raw = operation_message(SwapIn(page_number=50)).encode()
        assert decode_operation(raw) == SwapIn(page_number=50)

    def test_decode_operation_wrong_type(self) -> None:
        """Only operation envelopes carry operations."""
        with pytest.raises(SimulationError, match="Expected an operation"):
            decode_operation('{"type": "error", "data": "boom"}')
