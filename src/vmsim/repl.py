"""Interactive REPL for the memory simulator.

The REPL is the thin I/O wrapper around ``Shell``:

    1. **Read** — display a prompt and read user input.
    2. **Eval** — pass the command to ``shell.execute()``.
    3. **Print** — display the result.
    4. **Loop** — repeat until the shell returns the exit sentinel.

The helpers (``format_banner``, ``build_prompt``) are pure and
testable.  ``run()`` is the ``vmsim`` console entry point.
"""

import readline

from vmsim.shell import Shell
from vmsim.simulator import MemorySimulator

_BANNER_WIDTH = 38


def format_banner(boot_log: list[str]) -> str:
    """Format the start-up log into a banner string."""
    border = "=" * _BANNER_WIDTH
    header = f"\n  {border}\n         vmsim v0.1.0\n   A virtual memory simulator\n  {border}\n\n"
    body = "\n".join(f"  {line}" for line in boot_log)
    footer = "\nType 'help' for commands, 'exit' to quit.\n"
    return header + body + footer


def build_prompt(simulator: MemorySimulator) -> str:
    """Build the prompt, showing the deferred clock when work is pending."""
    pending = len(simulator.deferred)
    if pending:
        return f"vmsim [t={simulator.deferred.now}, {pending} pending] $ "
    return "vmsim $ "


def _complete(shell: Shell, text: str, state: int) -> str | None:
    matches = [name for name in shell.command_names if name.startswith(text)]
    return matches[state] if state < len(matches) else None


def run() -> None:
    """Start a simulator and run the interactive loop."""
    simulator = MemorySimulator()
    shell = Shell(simulator=simulator)

    readline.set_completer(lambda text, state: _complete(shell, text, state))
    readline.set_completer_delims(" \t")
    readline.parse_and_bind("tab: complete")

    print(format_banner(simulator.dmesg()))  # noqa: T201

    try:
        while True:
            try:
                command = input(build_prompt(simulator))
            except EOFError:
                # Ctrl+D
                print()  # noqa: T201
                break

            result = shell.execute(command)
            if result == Shell.EXIT_SENTINEL:
                break
            if result:
                print(result)  # noqa: T201

    except KeyboardInterrupt:
        print("\nInterrupted.")  # noqa: T201

    finally:
        print("Simulator stopped.")  # noqa: T201
