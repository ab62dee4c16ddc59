"""Memory allocator — contiguous, worst-fit placement in a linear address space.

Main memory is a fixed row of ``size`` **cells**, each one "KB".  A
cell is either free or owned by exactly one process, and a process
always owns one unbroken run of ``size_kb`` cells starting at its
``memory_address``.

Placement uses **worst fit**: a new process goes into the *largest*
free run.  That sounds wasteful, and it is meant to be instructive: the
leftover fragment after each placement is as large as it can be, and
watching the free runs shrink and scatter shows how **external
fragmentation** builds up (plenty of free memory in total, but no
single run big enough for the next process).

Cells store the owner's *id*, not the process object.  The allocator
reads and writes a process's allocation fields but never keeps the
process alive; the scheduler owns processes.

Release is two-phase.  The recorded range is first checked cell by
cell without touching anything; only if every cell belongs to the
process being released are the cells cleared.  A half-freed range can
therefore never be observed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from dinosim.logging import LogLevel
from dinosim.process import NO_ADDRESS

if TYPE_CHECKING:
    from collections.abc import Callable

    from dinosim.logging import Logger
    from dinosim.process import Process

FREE_MARKER = "▓"

_SOURCE = "memory"


class AllocationError(Exception):
    """Base class for every error the allocator raises."""


class InsufficientSpaceError(AllocationError):
    """Raise when no contiguous free run is large enough.

    The largest run that *was* found is kept on the exception so callers
    can report how close the request came.
    """

    def __init__(self, msg: str, *, largest_start: int, largest_size: int) -> None:
        """Create the error with the largest free run seen by the search."""
        super().__init__(msg)
        self.largest_start = largest_start
        self.largest_size = largest_size


class OutOfBoundsError(AllocationError):
    """Raise when a requested or recorded range leaves the address space."""


class AlreadyAllocatedError(AllocationError):
    """Raise when placing a process that already owns memory."""


class SpaceOccupiedError(AllocationError):
    """Raise when the target range is not entirely free."""


class MissingIdentityError(AllocationError):
    """Raise when a process has an empty id."""


class NilProcessError(AllocationError):
    """Raise when ``None`` is passed where a process is required."""


class UnsafeReleaseError(AllocationError):
    """Raise when the first cell of a release range belongs to someone else."""


class CorruptedMemoryStateError(AllocationError):
    """Raise when a release range is only partly owned by the releasing process.

    The first cell matched, so the process's bookkeeping is not simply
    stale: the address space already broke exclusivity before this call.
    Nothing is modified, but callers should treat this as unrecoverable.
    """


@dataclass(frozen=True)
class FitResult:
    """Outcome of a free-run search: where the run starts and how long it is.

    ``start`` is ``NO_ADDRESS`` (-1) when memory has no free cell at all.
    """

    start: int
    size: int


@dataclass(frozen=True)
class FreeBlock:
    """A maximal run of free cells in a layout."""

    start: int
    size: int

    @property
    def end(self) -> int:
        """Return the index of the last cell in the block."""
        return self.start + self.size - 1

    @property
    def label(self) -> str:
        """Return the display label for free memory."""
        return FREE_MARKER


@dataclass(frozen=True)
class OwnedBlock:
    """A maximal run of cells owned by one process in a layout."""

    start: int
    size: int
    owner_id: str
    name: str

    @property
    def end(self) -> int:
        """Return the index of the last cell in the block."""
        return self.start + self.size - 1

    @property
    def label(self) -> str:
        """Return the owning process's name."""
        return self.name


MemoryBlock = FreeBlock | OwnedBlock


class MemoryAllocator:
    """Manage a fixed-size array of cells with worst-fit placement.

    The allocator owns two structures:
    - ``_cells``: one entry per cell, the owner id or ``None``.
    - ``_names``: owner id → display name, for every id currently in memory.

    Neither is exposed directly, so the only way to change ownership is
    through ``allocate`` and ``release``.
    """

    def __init__(
        self,
        *,
        size: int,
        logger: Logger | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        """Create an allocator with every cell free.

        Args:
            size: Number of cells in the address space.
            logger: Optional event log for placements and refusals.
            clock: Returns the current simulation tick, stamped on log
                entries.  Without one, entries are stamped tick 0.

        Raises:
            ValueError: If ``size`` is not positive.

        """
        if size < 1:
            msg = f"Memory size must be positive, got {size}"
            raise ValueError(msg)
        self._cells: list[str | None] = [None] * size
        self._names: dict[str, str] = {}
        self._logger = logger
        self._clock = clock

    @property
    def size(self) -> int:
        """Return the number of cells in the address space."""
        return len(self._cells)

    @property
    def total_free(self) -> int:
        """Return the number of free cells."""
        return sum(1 for owner in self._cells if owner is None)

    def owner_at(self, index: int) -> str | None:
        """Return the id owning cell *index*, or None if it is free.

        Raises:
            IndexError: If *index* is outside the address space.

        """
        if not 0 <= index < len(self._cells):
            msg = f"Cell {index} is outside memory of size {len(self._cells)}"
            raise IndexError(msg)
        return self._cells[index]

    def allocated_ids(self) -> list[str]:
        """Return the ids currently in memory, in address order."""
        return [block.owner_id for block in self.layout() if isinstance(block, OwnedBlock)]

    # -- Searching ---------------------------------------------------------

    def largest_free_run(self) -> FitResult:
        """Return the largest contiguous free run.

        The scan keeps a run only when it is *strictly* longer than the
        best so far, so among equally long runs the earliest one wins.
        """
        best_start = NO_ADDRESS
        best_size = 0
        run_start = 0
        run_size = 0
        for i, owner in enumerate(self._cells):
            if owner is None:
                if run_size == 0:
                    run_start = i
                run_size += 1
                continue
            if run_size > best_size:
                best_start, best_size = run_start, run_size
            run_size = 0
        if run_size > best_size:
            best_start, best_size = run_start, run_size
        return FitResult(start=best_start, size=best_size)

    def worst_fit(self, size: int) -> FitResult:
        """Find the largest free run and check it can hold *size* cells.

        Args:
            size: Number of cells requested.

        Returns:
            The start and length of the largest free run.

        Raises:
            ValueError: If *size* is not positive.
            InsufficientSpaceError: If the largest free run is shorter than *size*.

        """
        if size < 1:
            msg = f"Requested size must be positive, got {size}"
            raise ValueError(msg)
        best = self.largest_free_run()
        if best.size < size:
            msg = (
                f"Not enough contiguous free space for {size} KB: "
                f"largest free run is {best.size} KB"
            )
            raise InsufficientSpaceError(msg, largest_start=best.start, largest_size=best.size)
        return best

    def has_space(self, size: int) -> bool:
        """Return True if a contiguous free run of at least *size* cells exists."""
        try:
            self.worst_fit(size)
        except InsufficientSpaceError:
            return False
        return True

    # -- Mutation ----------------------------------------------------------

    def _check_bounds(self, start: int, length: int) -> None:
        """Raise OutOfBoundsError unless ``[start, start + length)`` fits in memory."""
        if start < 0:
            msg = f"Range start {start} is negative"
            raise OutOfBoundsError(msg)
        if start + length > len(self._cells):
            msg = f"Range [{start}, {start + length}) exceeds memory of size {len(self._cells)}"
            raise OutOfBoundsError(msg)

    def allocate(self, process: Process | None, start: int) -> None:
        """Place *process* at cell *start*.

        Checks run in a fixed order and the first failure wins.

        Args:
            process: The process to place.
            start: First cell of the target range.

        Raises:
            NilProcessError: If *process* is None.
            AlreadyAllocatedError: If the process already owns memory, or
                another process with the same id does.
            OutOfBoundsError: If the range leaves the address space.
            SpaceOccupiedError: If any cell in the range is owned.
            MissingIdentityError: If the process id is empty.

        """
        if process is None:
            msg = "Cannot allocate: no process given"
            raise NilProcessError(msg)
        if process.is_allocated:
            msg = f"Cannot allocate: process {process.pid} is already in memory"
            raise AlreadyAllocatedError(msg)
        self._check_bounds(start, process.size_kb)
        end = start + process.size_kb
        if any(owner is not None for owner in self._cells[start:end]):
            msg = f"Cannot allocate: range [{start}, {end}) is already occupied"
            raise SpaceOccupiedError(msg)
        if not process.pid:
            msg = "Cannot allocate: process has no id; assign a unique id to every process"
            raise MissingIdentityError(msg)
        if process.pid in self._names:
            msg = f"Cannot allocate: id {process.pid!r} already owns memory"
            raise AlreadyAllocatedError(msg)

        self._cells[start:end] = [process.pid] * process.size_kb
        self._names[process.pid] = process.name
        process.is_allocated = True
        process.memory_address = start
        self._log(LogLevel.INFO, f"Allocated {process.size_kb} KB at {start} to {process.pid}")

    def allocate_worst_fit(self, process: Process | None) -> int:
        """Place *process* in the largest free run.

        Returns:
            The start address the process was placed at.

        Raises:
            NilProcessError: If *process* is None.
            InsufficientSpaceError: If no free run is large enough.
            AllocationError: Any failure raised by ``allocate``.

        """
        if process is None:
            msg = "Cannot allocate: no process given"
            raise NilProcessError(msg)
        try:
            fit = self.worst_fit(process.size_kb)
        except InsufficientSpaceError as e:
            self._log(LogLevel.DEBUG, f"No room for {process.pid}: {e}")
            raise
        self.allocate(process, fit.start)
        return fit.start

    def release(self, process: Process | None) -> bool:
        """Free the cells recorded on *process*.

        The range comes from the process's own ``memory_address`` and
        ``size_kb``; memory is not searched.  Every cell is validated
        before any is cleared.

        Returns:
            True once the range has been freed.

        Raises:
            NilProcessError: If *process* is None.
            MissingIdentityError: If the process id is empty.
            OutOfBoundsError: If the recorded range leaves the address space.
            UnsafeReleaseError: If the first cell belongs to another owner.
            CorruptedMemoryStateError: If a later cell belongs to another owner.

        """
        if process is None:
            msg = "Cannot release: no process given"
            raise NilProcessError(msg)
        if not process.pid:
            msg = "Cannot release: process has no id; assign a unique id to every process"
            raise MissingIdentityError(msg)
        start = process.memory_address
        self._check_bounds(start, process.size_kb)
        end = start + process.size_kb

        for i in range(start, end):
            owner = self._cells[i]
            if owner == process.pid:
                continue
            holder = "free" if owner is None else f"owned by {owner!r}"
            detail = (
                f"cell {i} is {holder} "
                f"(process {process.pid}, address {start}, size {process.size_kb} KB)"
            )
            if i == start:
                self._log(LogLevel.WARNING, f"Unsafe release refused: {detail}")
                msg = f"Unsafe release: {detail}"
                raise UnsafeReleaseError(msg)
            self._log(LogLevel.ERROR, f"Corrupted memory state: {detail}")
            msg = f"Corrupted memory state: {detail}"
            raise CorruptedMemoryStateError(msg)

        self._cells[start:end] = [None] * process.size_kb
        del self._names[process.pid]
        process.is_allocated = False
        process.memory_address = NO_ADDRESS
        self._log(LogLevel.INFO, f"Released {process.size_kb} KB at {start} from {process.pid}")
        return True

    # -- Reporting ---------------------------------------------------------

    def layout(self) -> list[MemoryBlock]:
        """Return the run-length encoded memory map, in address order.

        A new block starts at cell 0 and wherever the owner changes.
        """
        blocks: list[MemoryBlock] = []
        run_start = 0
        for i in range(1, len(self._cells) + 1):
            if i < len(self._cells) and self._cells[i] == self._cells[run_start]:
                continue
            owner = self._cells[run_start]
            size = i - run_start
            if owner is None:
                blocks.append(FreeBlock(start=run_start, size=size))
            else:
                blocks.append(
                    OwnedBlock(start=run_start, size=size, owner_id=owner, name=self._names[owner])
                )
            run_start = i
        return blocks

    def _log(self, level: LogLevel, message: str) -> None:
        if self._logger is not None:
            tick = self._clock() if self._clock is not None else 0
            self._logger.log(level, message, source=_SOURCE, tick=tick)
