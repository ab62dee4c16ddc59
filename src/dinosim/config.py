"""Simulator configuration — the "machine image" a simulation starts from.

A configuration says how big main memory is and how long a process may
hold the CPU before it is preempted.  It can be built in code or read
from a small JSON file::

    {"version": "0.1.0", "memory_size": 40, "quantum": 3}

Missing keys fall back to the defaults below.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

DEFAULT_MEMORY_SIZE = 20
DEFAULT_QUANTUM = 2


class ConfigError(RuntimeError):
    """Raise when a configuration file is unreadable or invalid."""


@dataclass(frozen=True)
class SimulatorConfig:
    """Settings a simulation is created with.

    Attributes:
        version: Label shown in banners.
        memory_size: Number of 1 KB cells in main memory.
        quantum: CPU ticks a process runs before it is preempted.
        boot_args: Free-form extra options.

    """

    version: str = "0.1.0"
    memory_size: int = DEFAULT_MEMORY_SIZE
    quantum: int = DEFAULT_QUANTUM
    boot_args: dict[str, str] = field(default_factory=lambda: {})  # noqa: PIE807

    def __post_init__(self) -> None:
        """Reject wrongly typed values and non-positive sizes.

        Raises:
            ConfigError: If ``version`` is not a string, ``boot_args`` is
                not a mapping, or ``memory_size`` / ``quantum`` is not an
                integer of at least 1.

        """
        if not isinstance(self.version, str):
            msg = f"version must be a string, got {self.version!r}"
            raise ConfigError(msg)
        if not isinstance(self.boot_args, dict):
            msg = f"boot_args must be an object, got {self.boot_args!r}"
            raise ConfigError(msg)
        for name in ("memory_size", "quantum"):
            value = getattr(self, name)
            # bool is an int subclass, but JSON true/false is never a size
            if not isinstance(value, int) or isinstance(value, bool):
                msg = f"{name} must be an integer, got {value!r}"
                raise ConfigError(msg)
        if self.memory_size < 1:
            msg = f"memory_size must be positive, got {self.memory_size}"
            raise ConfigError(msg)
        if self.quantum < 1:
            msg = f"quantum must be positive, got {self.quantum}"
            raise ConfigError(msg)


def load_config(path: Path | None = None) -> SimulatorConfig:
    """Load a configuration from a JSON file, or return the defaults.

    Args:
        path: JSON file to read.  None means "use defaults".

    Raises:
        ConfigError: If the file cannot be read, is not a JSON object,
            or holds invalid values.

    """
    if path is None:
        return SimulatorConfig()
    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        msg = f"Cannot load configuration: {e}"
        raise ConfigError(msg) from e
    if not isinstance(data, dict):
        msg = f"Cannot load configuration: expected a JSON object in {path}"
        raise ConfigError(msg)
    return SimulatorConfig(
        version=data.get("version", "0.1.0"),
        memory_size=data.get("memory_size", DEFAULT_MEMORY_SIZE),
        quantum=data.get("quantum", DEFAULT_QUANTUM),
        boot_args=data.get("boot_args", {}),
    )
