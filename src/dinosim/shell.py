"""The shell — command interpreter for the simulator.

The shell reads a command string, splits it into a command name and
arguments, dispatches to a handler and returns the text to show.  It
never prints, so every command is testable on its own; the REPL is the
thin I/O loop around it.

Pressing Enter on an empty line advances the simulation by one tick,
just like the original terminal front end.
"""

from collections.abc import Callable
from typing import TypeAlias

from dinosim.logging import Logger
from dinosim.memory.report import MemoryReport, format_cells, format_layout
from dinosim.process import Process
from dinosim.simulator import Dino, DinoState

# Type alias for a command handler: takes a list of args, returns output.
_Handler: TypeAlias = Callable[[list[str]], str]

_MAX_RUN_TICKS = 1000


def format_state(state: DinoState) -> str:
    """Render one tick's snapshot as a short multi-line summary."""
    cpu = f"Executed: {state.executed_by_cpu}" if state.executed_by_cpu else "Not executed"
    if state.ext_fragmentation:
        fragmented = f"Yes ({state.fragmentation_process})"
    else:
        fragmented = "No"
    lines = [
        f"Tick {state.tick}",
        f"  CPU:        {cpu}",
        f"  New:        {', '.join(state.new_queue) or '-'}",
        f"  Ready:      {', '.join(state.ready_queue) or '-'}",
        f"  Free:       {state.free_memory} KB",
        f"  Fragmented: {fragmented}",
    ]
    return "\n".join(lines)


class Shell:
    """Parse and execute simulator commands."""

    EXIT_SENTINEL = "__EXIT__"

    def __init__(self, *, sim: Dino, logger: Logger | None = None) -> None:
        """Create a shell driving *sim*.

        Args:
            sim: The simulator to control.
            logger: The log shown by the ``log`` command, if any.

        """
        self._sim = sim
        self._logger = logger

        self._commands: dict[str, _Handler] = {
            "help": self._cmd_help,
            "step": self._cmd_step,
            "run": self._cmd_run,
            "new": self._cmd_new,
            "mem": self._cmd_mem,
            "cells": self._cmd_cells,
            "free": self._cmd_free,
            "log": self._cmd_log,
            "exit": self._cmd_exit,
            "quit": self._cmd_exit,
            "q": self._cmd_exit,
        }

    @property
    def commands(self) -> list[str]:
        """Return the names of all known commands."""
        return sorted(self._commands)

    def execute(self, command: str) -> str:
        """Parse and execute one command line.

        An empty line is the same as ``step``.

        Returns:
            The command output, ``EXIT_SENTINEL`` to quit, or an error message.

        """
        parts = command.split()
        if not parts:
            return self._cmd_step([])
        name, args = parts[0], parts[1:]
        handler = self._commands.get(name)
        if handler is None:
            return f"Unknown command: {name}"
        return handler(args)

    def _cmd_help(self, _args: list[str]) -> str:
        """List available commands."""
        return "Available commands: " + ", ".join(self.commands)

    def _cmd_step(self, _args: list[str]) -> str:
        """Advance one tick."""
        return format_state(self._sim.step())

    def _cmd_run(self, args: list[str]) -> str:
        """Step until idle or for at most N ticks."""
        if len(args) != 1 or not args[0].isdigit():
            return "Usage: run <ticks>"
        ticks = min(int(args[0]), _MAX_RUN_TICKS)
        states = self._sim.run(ticks)
        if not states:
            return "Nothing to run."
        return "\n".join(format_state(s) for s in states)

    def _cmd_new(self, args: list[str]) -> str:
        """Submit a new process: ``new NAME SIZE [BURST]``."""
        usage = "Usage: new <name> <size_kb> [burst]"
        if len(args) not in (2, 3) or not all(a.isdigit() for a in args[1:]):
            return usage
        name = args[0]
        size_kb = int(args[1])
        burst = int(args[2]) if len(args) == 3 else 1  # noqa: PLR2004
        try:
            process = Process(name, size_kb, burst=burst)
            self._sim.submit(process)
        except ValueError as e:
            return f"Error: {e}"
        return f"Submitted {process.pid} ({name}, {size_kb} KB, burst {burst})"

    def _cmd_mem(self, _args: list[str]) -> str:
        """Show the memory layout table."""
        return format_layout(self._sim.memory.layout())

    def _cmd_cells(self, _args: list[str]) -> str:
        """Show memory one character per cell."""
        return format_cells(self._sim.memory)

    def _cmd_free(self, _args: list[str]) -> str:
        """Show free memory, usage and the largest free run."""
        report = MemoryReport.capture(self._sim.memory)
        return (
            f"Free: {report.free}/{report.total} KB  "
            f"Occupied: {report.occupied_percent}%  "
            f"Largest free run: {report.largest_free_run} KB"
        )

    def _cmd_log(self, args: list[str]) -> str:
        """Show the event log: ``log [FROM_TICK [TO_TICK]]``."""
        if len(args) > 2 or not all(a.isdigit() for a in args):  # noqa: PLR2004
            return "Usage: log [from_tick [to_tick]]"
        if self._logger is None:
            return "No log entries."
        bounds = [int(a) for a in args]
        since = bounds[0] if bounds else None
        until = bounds[1] if len(bounds) == 2 else None  # noqa: PLR2004
        try:
            entries = self._logger.filter(since_tick=since, until_tick=until)
        except ValueError as e:
            return f"Error: {e}"
        if not entries:
            return "No log entries."
        return "\n".join(str(e) for e in entries)

    def _cmd_exit(self, _args: list[str]) -> str:
        """Quit the shell."""
        return self.EXIT_SENTINEL
