"""Simulator — a tick-driven loop that feeds processes through memory and CPU.

Each call to ``step()`` advances the machine by one tick:

1. **Admission** — every NEW process, in arrival order, asks the
   allocator for a worst-fit placement.  Placed processes become READY;
   the rest stay NEW and try again next tick.  If a process is refused
   even though enough memory is free in total, memory is *externally
   fragmented* and the first such process is reported.
2. **CPU** — the running process (or the next READY one) runs for one
   tick.  After ``quantum`` consecutive ticks it goes to the back of the
   ready queue if someone else is waiting (round robin).
3. **Exit** — a process whose burst is used up terminates and its
   memory is released.

The returned ``DinoState`` is a frozen snapshot of what a screen needs
to draw: the queues, who ran, free memory, fragmentation and layout.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING

from dinosim.config import SimulatorConfig
from dinosim.logging import LogLevel
from dinosim.memory.allocator import (
    AllocationError,
    CorruptedMemoryStateError,
    InsufficientSpaceError,
    MemoryAllocator,
    MemoryBlock,
)
from dinosim.memory.report import is_externally_fragmented
from dinosim.process import ProcessState

if TYPE_CHECKING:
    from dinosim.logging import Logger
    from dinosim.process import Process

_SOURCE = "scheduler"


@dataclass(frozen=True)
class DinoState:
    """Snapshot of the machine after one tick.

    Attributes:
        tick: The tick this snapshot was taken at.
        new_queue: Names of processes still waiting for memory.
        ready_queue: Names of processes in memory waiting for the CPU.
        executed_by_cpu: Name of the process that ran this tick, if any.
        free_memory: Number of free cells.
        ext_fragmentation: True if a process was refused only because
            free memory is scattered.
        fragmentation_process: Name of that process, if any.
        layout: The memory map.

    """

    tick: int
    new_queue: tuple[str, ...]
    ready_queue: tuple[str, ...]
    executed_by_cpu: str | None
    free_memory: int
    ext_fragmentation: bool
    fragmentation_process: str | None
    layout: tuple[MemoryBlock, ...]


class Dino:
    """Drive processes through admission, round-robin CPU and exit."""

    def __init__(
        self,
        config: SimulatorConfig | None = None,
        *,
        logger: Logger | None = None,
    ) -> None:
        """Create a simulator with empty queues and free memory.

        Args:
            config: Machine settings.  Defaults to ``SimulatorConfig()``.
            logger: Optional event log shared with the allocator.

        """
        self._config = config if config is not None else SimulatorConfig()
        self._logger = logger
        self._memory = MemoryAllocator(
            size=self._config.memory_size,
            logger=logger,
            clock=lambda: self._tick,
        )
        self._new: deque[Process] = deque()
        self._ready: deque[Process] = deque()
        self._running: Process | None = None
        self._slice = 0
        self._tick = 0
        self._finished: list[Process] = []

    @property
    def config(self) -> SimulatorConfig:
        """Return the machine settings."""
        return self._config

    @property
    def memory(self) -> MemoryAllocator:
        """Return the memory allocator."""
        return self._memory

    @property
    def memory_size(self) -> int:
        """Return the number of cells in main memory."""
        return self._memory.size

    @property
    def tick(self) -> int:
        """Return the number of ticks run so far."""
        return self._tick

    @property
    def running(self) -> Process | None:
        """Return the process holding the CPU, if any."""
        return self._running

    @property
    def finished(self) -> list[Process]:
        """Return terminated processes in the order they finished."""
        return list(self._finished)

    @property
    def idle(self) -> bool:
        """Return True when nothing is waiting or running."""
        return not self._new and not self._ready and self._running is None

    def submit(self, process: Process) -> None:
        """Queue a NEW process for admission.

        Raises:
            ValueError: If the process is not NEW, or could never fit in memory.

        """
        if process.state is not ProcessState.NEW:
            msg = f"Cannot submit process {process.pid}: it is {process.state}, expected new"
            raise ValueError(msg)
        if process.size_kb > self._memory.size:
            msg = (
                f"Cannot submit process {process.pid}: {process.size_kb} KB exceeds "
                f"memory of {self._memory.size} KB"
            )
            raise ValueError(msg)
        self._new.append(process)
        self._log(LogLevel.INFO, f"Submitted {process.pid} ({process.name}, {process.size_kb} KB)")

    def step(self) -> DinoState:
        """Advance one tick and return the resulting snapshot."""
        self._tick += 1
        fragmented = self._admit()
        executed = self._run_cpu()
        return DinoState(
            tick=self._tick,
            new_queue=tuple(p.name for p in self._new),
            ready_queue=tuple(p.name for p in self._ready),
            executed_by_cpu=executed.name if executed is not None else None,
            free_memory=self._memory.total_free,
            ext_fragmentation=fragmented is not None,
            fragmentation_process=fragmented.name if fragmented is not None else None,
            layout=tuple(self._memory.layout()),
        )

    def run(self, max_ticks: int) -> list[DinoState]:
        """Step until the machine is idle or *max_ticks* have run.

        Returns:
            One snapshot per tick that was run.

        """
        states: list[DinoState] = []
        while not self.idle and len(states) < max_ticks:
            states.append(self.step())
        return states

    def _admit(self) -> Process | None:
        """Try to place every NEW process; return the first one blocked by fragmentation."""
        waiting: deque[Process] = deque()
        fragmented: Process | None = None
        while self._new:
            process = self._new.popleft()
            try:
                address = self._memory.allocate_worst_fit(process)
            except InsufficientSpaceError:
                waiting.append(process)
                if fragmented is None and is_externally_fragmented(self._memory, process.size_kb):
                    fragmented = process
                continue
            except AllocationError as e:
                waiting.append(process)
                self._log(LogLevel.ERROR, f"Cannot admit {process.pid}: {e}")
                continue
            process.admit()
            self._ready.append(process)
            self._log(LogLevel.INFO, f"Admitted {process.pid} at address {address}")
        self._new = waiting
        return fragmented

    def _run_cpu(self) -> Process | None:
        """Run the CPU for one tick; return the process that ran."""
        if self._running is None:
            if not self._ready:
                return None
            self._running = self._ready.popleft()
            self._running.dispatch()
            self._slice = 0

        process = self._running
        process.run_tick()
        self._slice += 1

        if process.finished:
            process.terminate()
            self._running = None
            self._finished.append(process)
            self._log(LogLevel.INFO, f"Terminated {process.pid}")
            self._release(process)
        elif self._slice >= self._config.quantum:
            if self._ready:
                process.preempt()
                self._ready.append(process)
                self._running = None
            else:
                self._slice = 0
        return process

    def _release(self, process: Process) -> None:
        """Return a terminated process's memory.

        Recoverable failures are logged and leave the process's
        allocation fields as they were.

        Raises:
            CorruptedMemoryStateError: If memory ownership is inconsistent.

        """
        try:
            self._memory.release(process)
        except CorruptedMemoryStateError:
            self._log(LogLevel.ERROR, f"Memory corrupted while releasing {process.pid}")
            raise
        except AllocationError as e:
            self._log(LogLevel.ERROR, f"Cannot release {process.pid}: {e}")

    def _log(self, level: LogLevel, message: str) -> None:
        if self._logger is not None:
            self._logger.log(level, message, source=_SOURCE, tick=self._tick)
