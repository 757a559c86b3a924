"""Tests for simulator configuration.

The defaults describe the reference machine; every knob is validated
when the config is built so a bad value never reaches the simulator.
"""

import pytest

from vmsim.config import MB, SimulatorConfig, is_power_of_two


class TestDefaults:
    """Verify the reference machine."""

    def test_physical_layout(self) -> None:
        """1024 MB of 4 MB frames, 48 of them reserved."""
        config = SimulatorConfig()
        expected_total = 1024
        expected_reserved = 48
        assert config.total_memory == expected_total
        assert config.reserved_blocks == expected_reserved

    def test_reserved_sizes(self) -> None:
        """The kernel owns 128 MB and the system 64 MB."""
        config = SimulatorConfig()
        expected_kernel = 128
        expected_system = 64
        assert config.kernel_memory == expected_kernel
        assert config.system_memory == expected_system

    def test_byte_sizes(self) -> None:
        """Pages and swap blocks have byte sizes for address arithmetic."""
        config = SimulatorConfig()
        assert config.page_size_bytes == 4 * MB
        assert config.disk_block_bytes == 20 * MB

    def test_disk_mismatch_flagged(self) -> None:
        """100 blocks of 20 MB don't fill a 2048 MB disk."""
        assert SimulatorConfig().disk_size_mismatch
        assert not SimulatorConfig(disk_size=2000).disk_size_mismatch

    def test_frozen(self) -> None:
        """Configs can't be changed after construction."""
        config = SimulatorConfig()
        with pytest.raises(AttributeError):
            config.page_size = 8  # type: ignore[misc]


class TestValidation:
    """Verify rejected configurations."""

    def test_page_size_power_of_two(self) -> None:
        """A 3 MB page is rejected."""
        with pytest.raises(ValueError, match="power of two"):
            SimulatorConfig(page_size=3)

    def test_reserved_fills_memory(self) -> None:
        """Reserved regions must leave at least one free frame."""
        with pytest.raises(ValueError, match="leave no free"):
            SimulatorConfig(physical_blocks=48)

    def test_logical_smaller_than_reserved(self) -> None:
        """The logical space must extend past the reserved region."""
        with pytest.raises(ValueError, match="Logical space"):
            SimulatorConfig(logical_blocks=48)

    def test_logical_size_ignored_without_logical_pool(self) -> None:
        """Logical size isn't checked when the logical pool is off."""
        config = SimulatorConfig(logical_blocks=0, separate_logical_space=False)
        assert not config.separate_logical_space

    def test_positive_counts(self) -> None:
        """Swap geometry must be positive."""
        with pytest.raises(ValueError, match="disk_blocks"):
            SimulatorConfig(disk_blocks=0)

    def test_tlb_capacity(self) -> None:
        """A TLB needs at least one slot."""
        with pytest.raises(ValueError, match="TLB capacity"):
            SimulatorConfig(tlb_capacity=0)

    def test_unknown_policy(self) -> None:
        """Only the known eviction policies are accepted."""
        with pytest.raises(ValueError, match="Unknown eviction policy"):
            SimulatorConfig(eviction_policy="optimal")

    def test_negative_delay(self) -> None:
        """Deferred delays can't be negative."""
        with pytest.raises(ValueError, match="negative"):
            SimulatorConfig(page_fault_delay=-1)

    def test_process_id(self) -> None:
        """The current process id must be positive."""
        with pytest.raises(ValueError, match="Process ids"):
            SimulatorConfig(current_process_id=0)


class TestPowerOfTwo:
    """Verify the power-of-two helper."""

    @pytest.mark.parametrize("value", [1, 2, 4, 1024])
    def test_powers(self, value: int) -> None:
        """Powers of two are accepted."""
        assert is_power_of_two(value)

    @pytest.mark.parametrize("value", [0, -4, 3, 12])
    def test_non_powers(self, value: int) -> None:
        """Zero, negatives, and other numbers are rejected."""
        assert not is_power_of_two(value)
