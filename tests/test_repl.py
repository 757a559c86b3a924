"""Tests for the REPL helpers.

The loop itself does I/O, so the tests cover the pure helpers and drive
``run()`` with patched input.
"""

from unittest.mock import patch

import pytest

from vmsim.operations import Allocate, SwapOut, TranslateAddress
from vmsim.repl import build_prompt, format_banner, run
from vmsim.simulator import MemorySimulator


class TestBanner:
    """Verify the start-up banner."""

    def test_contains_boot_log(self) -> None:
        """The banner lists the boot log lines."""
        sim = MemorySimulator()
        banner = format_banner(sim.dmesg())
        assert "vmsim" in banner
        assert "[OK] Physical memory" in banner
        assert "Type 'help'" in banner


class TestPrompt:
    """Verify the prompt."""

    def test_idle_prompt(self) -> None:
        """With nothing pending the prompt is plain."""
        assert build_prompt(MemorySimulator()) == "vmsim $ "

    def test_pending_prompt(self) -> None:
        """Pending work shows the clock and the queue length."""
        sim = MemorySimulator()
        sim.perform(Allocate(size=4))
        sim.perform(SwapOut(page_number=48))
        sim.perform(TranslateAddress(virtual_address=48 * 4 * 1024 * 1024))
        assert build_prompt(sim) == "vmsim [t=0, 1 pending] $ "


class TestRun:
    """Verify the loop with scripted input."""

    def test_runs_until_exit(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Commands run in order and exit stops the loop."""
        with patch("builtins.input", side_effect=["alloc 1 4", "exit"]):
            run()
        out = capsys.readouterr().out
        assert "Allocated 4 MB" in out
        assert out.rstrip().endswith("Simulator stopped.")

    def test_eof_stops(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Ctrl+D ends the session."""
        with patch("builtins.input", side_effect=EOFError):
            run()
        assert "Simulator stopped." in capsys.readouterr().out
