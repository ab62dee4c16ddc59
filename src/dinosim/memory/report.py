"""Memory reports — numbers and text views of the allocator's state.

These helpers never change memory.  They turn the allocator's layout
into what a screen shows: how full memory is, whether it is
fragmented, a table of blocks and a cell-by-cell map.

**External fragmentation** here means: enough memory is free in total
for a request, but no single free run is long enough to hold it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from dinosim.memory.allocator import MemoryAllocator, MemoryBlock

_OWNED_CELL = "X"
_FREE_CELL = "-"


@dataclass(frozen=True)
class MemoryReport:
    """A point-in-time summary of memory usage."""

    total: int
    free: int
    largest_free_run: int

    @classmethod
    def capture(cls, allocator: MemoryAllocator) -> MemoryReport:
        """Summarise *allocator* as it is right now."""
        return cls(
            total=allocator.size,
            free=allocator.total_free,
            largest_free_run=allocator.largest_free_run().size,
        )

    @property
    def used(self) -> int:
        """Return the number of occupied cells."""
        return self.total - self.free

    @property
    def occupied_percent(self) -> int:
        """Return occupied memory as a whole percentage (rounded towards full)."""
        return 100 - int(100 * self.free / self.total)


def is_externally_fragmented(allocator: MemoryAllocator, size: int) -> bool:
    """Return True if *size* cells are free in total but not contiguously.

    Args:
        allocator: The memory to inspect.
        size: The request that could not be placed.

    """
    return allocator.total_free >= size and allocator.largest_free_run().size < size


def format_layout(layout: Sequence[MemoryBlock]) -> str:
    """Render a layout as a table of ``[init, size, end] - owner`` rows."""
    lines = ["------------ Memory layout ------------", "[init, size,  end]  -  owner"]
    lines.extend(
        f"[{block.start:4d}, {block.size:4d}, {block.end:4d}]  -  {block.label}"
        for block in layout
    )
    return "\n".join(lines)


def format_cells(allocator: MemoryAllocator, *, width: int = 10) -> str:
    """Render memory one character per cell, *width* cells per row.

    Owned cells are ``X`` and free cells ``-``.

    Raises:
        ValueError: If *width* is not positive.

    """
    if width < 1:
        msg = f"Row width must be positive, got {width}"
        raise ValueError(msg)
    marks = [
        _FREE_CELL if allocator.owner_at(i) is None else _OWNED_CELL for i in range(allocator.size)
    ]
    rows = ["".join(marks[i : i + width]) for i in range(0, len(marks), width)]
    return "\n".join(rows)
