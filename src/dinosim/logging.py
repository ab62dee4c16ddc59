"""Simulator event log.

Every placement, release and refusal made by the memory allocator, and
every admission or termination made by the simulator, is recorded here
against the tick it happened on.  Reading the log for a range of ticks
explains *why* the memory map looks the way it does at that point.

- **LogLevel** — severity levels ordered for filtering (DEBUG < ERROR).
- **LogEntry** — one record: level, message, source and tick.
- **Logger** — an append-only log, queried by level, source and tick range.

Tick 0 means "before the first step": events from setting up a run
(submitting processes, placing them by hand) land there.
"""

from dataclasses import dataclass
from enum import IntEnum


class LogLevel(IntEnum):
    """Severity levels for log entries."""

    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3


@dataclass(frozen=True)
class LogEntry:
    """A single structured log record.

    Attributes:
        level: The severity of this event.
        message: A human-readable description of what happened.
        source: The subsystem that generated the event ("memory" or "scheduler").
        tick: The simulation tick the event belongs to.

    """

    level: LogLevel
    message: str
    source: str
    tick: int = 0

    def __str__(self) -> str:
        """Format as ``[tick] [LEVEL] source: message``."""
        return f"[{self.tick:>4}] [{self.level.name}] {self.source}: {self.message}"


class Logger:
    """Append-only log buffer.

    Entries arrive in tick order because the simulator only moves
    forward, so a tick range is a contiguous slice of the log.
    """

    def __init__(self) -> None:
        """Create an empty logger."""
        self._entries: list[LogEntry] = []

    @property
    def entries(self) -> list[LogEntry]:
        """Return all log entries in chronological order."""
        return list(self._entries)

    def log(
        self,
        level: LogLevel,
        message: str,
        *,
        source: str,
        tick: int = 0,
    ) -> None:
        """Append a new entry to the log.

        Args:
            level: Severity of the event.
            message: Human-readable event description.
            source: Subsystem that generated the event.
            tick: Simulation tick associated with the event.

        """
        self._entries.append(LogEntry(level=level, message=message, source=source, tick=tick))

    def filter(
        self,
        *,
        min_level: LogLevel | None = None,
        source: str | None = None,
        since_tick: int | None = None,
        until_tick: int | None = None,
    ) -> list[LogEntry]:
        """Return entries matching every given criterion.

        Args:
            min_level: Only entries at or above this level.
            source: Only entries from this subsystem.
            since_tick: Only entries from this tick onwards (inclusive).
            until_tick: Only entries up to this tick (inclusive).

        Raises:
            ValueError: If ``since_tick`` is after ``until_tick``.

        """
        if since_tick is not None and until_tick is not None and since_tick > until_tick:
            msg = f"Empty tick range: {since_tick} is after {until_tick}"
            raise ValueError(msg)
        return [
            e
            for e in self._entries
            if (min_level is None or e.level >= min_level)
            and (source is None or e.source == source)
            and (since_tick is None or e.tick >= since_tick)
            and (until_tick is None or e.tick <= until_tick)
        ]
