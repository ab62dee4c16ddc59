"""Process — the unit of work that asks for memory and CPU time.

A process carries what the allocator needs (an identity, a display
name and a size in KB) plus two fields the allocator owns and keeps in
step with the memory map: ``is_allocated`` and ``memory_address``.

The identity matters more than it looks: the allocator records *ids*
in its cells, so two processes sharing an id would be indistinguishable
in memory.  Ids default to ``P1``, ``P2``, ... from a module counter.

Processes follow a small state machine; each transition method checks
the source state before moving::

    NEW → READY ⇄ RUNNING → TERMINATED
"""

from enum import StrEnum
from itertools import count

NO_ADDRESS = -1

_id_counter = count(start=1)


class ProcessState(StrEnum):
    """Lifecycle states of a simulated process.

    - NEW: submitted, waiting for memory.
    - READY: in memory, waiting for the CPU.
    - RUNNING: currently on the CPU.
    - TERMINATED: finished; its memory has been (or is being) released.
    """

    NEW = "new"
    READY = "ready"
    RUNNING = "running"
    TERMINATED = "terminated"


class Process:
    """A simulated process.

    ``is_allocated`` and ``memory_address`` are written by the memory
    allocator only; everything else is fixed at creation or driven by
    the transition methods.
    """

    def __init__(
        self,
        name: str,
        size_kb: int,
        *,
        burst: int = 1,
        pid: str | None = None,
    ) -> None:
        """Create a new process in the NEW state.

        Args:
            name: Human-readable label shown in layouts.
            size_kb: Number of memory cells the process needs.
            burst: CPU ticks the process needs before it terminates.
            pid: Unique identity.  Generated when omitted.

        Raises:
            ValueError: If ``size_kb`` or ``burst`` is not positive.

        """
        if size_kb < 1:
            msg = f"Process size must be positive, got {size_kb}"
            raise ValueError(msg)
        if burst < 1:
            msg = f"Process burst must be positive, got {burst}"
            raise ValueError(msg)
        self._pid: str = f"P{next(_id_counter)}" if pid is None else pid
        self._name = name
        self._size_kb = size_kb
        self._burst = burst
        self._remaining = burst
        self._state = ProcessState.NEW
        self.is_allocated = False
        self.memory_address = NO_ADDRESS

    @property
    def pid(self) -> str:
        """Return the process identity."""
        return self._pid

    @property
    def name(self) -> str:
        """Return the display name."""
        return self._name

    @property
    def size_kb(self) -> int:
        """Return the number of cells the process occupies."""
        return self._size_kb

    @property
    def burst(self) -> int:
        """Return the total CPU ticks requested."""
        return self._burst

    @property
    def remaining(self) -> int:
        """Return the CPU ticks still to run."""
        return self._remaining

    @property
    def state(self) -> ProcessState:
        """Return the current lifecycle state."""
        return self._state

    @property
    def finished(self) -> bool:
        """Return True once every CPU tick has been consumed."""
        return self._remaining == 0

    def _transition(self, action: str, expected: ProcessState, target: ProcessState) -> None:
        """Enforce a state transition.

        Raises:
            RuntimeError: If the process is not in the expected state.

        """
        if self._state is not expected:
            msg = f"Cannot {action}: process {self._pid} is {self._state}, expected {expected}"
            raise RuntimeError(msg)
        self._state = target

    def admit(self) -> None:
        """Transition NEW → READY once memory has been granted."""
        self._transition("admit", ProcessState.NEW, ProcessState.READY)

    def dispatch(self) -> None:
        """Transition READY → RUNNING."""
        self._transition("dispatch", ProcessState.READY, ProcessState.RUNNING)

    def preempt(self) -> None:
        """Transition RUNNING → READY."""
        self._transition("preempt", ProcessState.RUNNING, ProcessState.READY)

    def terminate(self) -> None:
        """Transition RUNNING → TERMINATED."""
        self._transition("terminate", ProcessState.RUNNING, ProcessState.TERMINATED)

    def run_tick(self) -> None:
        """Consume one CPU tick.

        Raises:
            RuntimeError: If the process is not running or has nothing left to run.

        """
        if self._state is not ProcessState.RUNNING:
            msg = f"Cannot run: process {self._pid} is {self._state}, expected running"
            raise RuntimeError(msg)
        if self._remaining == 0:
            msg = f"Cannot run: process {self._pid} has already finished"
            raise RuntimeError(msg)
        self._remaining -= 1

    def __repr__(self) -> str:
        """Return a debug-friendly representation."""
        return (
            f"Process(pid={self._pid!r}, name={self._name!r}, size_kb={self._size_kb}, "
            f"state={self._state})"
        )
