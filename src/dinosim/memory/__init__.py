"""Memory subsystem — worst-fit allocation and layout reporting.

Re-exports public symbols so callers can write::

    from dinosim.memory import MemoryAllocator, InsufficientSpaceError
"""

from dinosim.memory.allocator import (
    FREE_MARKER,
    AllocationError,
    AlreadyAllocatedError,
    CorruptedMemoryStateError,
    FitResult,
    FreeBlock,
    InsufficientSpaceError,
    MemoryAllocator,
    MemoryBlock,
    MissingIdentityError,
    NilProcessError,
    OutOfBoundsError,
    OwnedBlock,
    SpaceOccupiedError,
    UnsafeReleaseError,
)
from dinosim.memory.report import (
    MemoryReport,
    format_cells,
    format_layout,
    is_externally_fragmented,
)

__all__ = [
    "FREE_MARKER",
    "AllocationError",
    "AlreadyAllocatedError",
    "CorruptedMemoryStateError",
    "FitResult",
    "FreeBlock",
    "InsufficientSpaceError",
    "MemoryAllocator",
    "MemoryBlock",
    "MemoryReport",
    "MissingIdentityError",
    "NilProcessError",
    "OutOfBoundsError",
    "OwnedBlock",
    "SpaceOccupiedError",
    "UnsafeReleaseError",
    "format_cells",
    "format_layout",
    "is_externally_fragmented",
]
