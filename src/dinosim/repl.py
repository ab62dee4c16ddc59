"""Interactive REPL (Read-Eval-Print Loop) for the simulator.

The REPL loads a configuration, builds the simulator and a shell, and
enters the classic loop:

    1. **Read** — display a prompt and read user input.
    2. **Eval** — pass the command to ``shell.execute()``.
    3. **Print** — display the result.
    4. **Loop** — repeat until the shell returns the exit sentinel.

``format_banner`` and ``build_shell`` are pure and testable; ``run()``
is the I/O entrypoint.
"""

import sys
from pathlib import Path

from dinosim.config import SimulatorConfig, load_config
from dinosim.logging import Logger
from dinosim.shell import Shell
from dinosim.simulator import Dino

_BANNER_WIDTH = 38


def format_banner(config: SimulatorConfig) -> str:
    """Format the welcome banner for *config*."""
    border = "=" * _BANNER_WIDTH
    header = f"\n  {border}\n            Dinosaur v{config.version}\n  {border}\n"
    body = (
        f"  Memory: {config.memory_size} KB (worst fit)\n"
        f"  Scheduler: round robin, quantum {config.quantum}\n"
    )
    footer = "\nPress Enter to evolve, 'help' for commands, 'q' to quit.\n"
    return header + body + footer


def build_shell(config: SimulatorConfig) -> Shell:
    """Create a simulator and a shell sharing one event log."""
    logger = Logger()
    sim = Dino(config, logger=logger)
    return Shell(sim=sim, logger=logger)


def run() -> None:
    """Run the interactive REPL.

    This is the ``dinosim`` console entry point.  An optional first
    argument names a JSON configuration file.
    """
    config = load_config(Path(sys.argv[1]) if len(sys.argv) > 1 else None)
    shell = build_shell(config)
    print(format_banner(config))  # noqa: T201

    try:
        while True:
            try:
                command = input("dino $ ")
            except EOFError:
                # Ctrl+D — graceful exit
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
        print("Simulation ended.")  # noqa: T201
