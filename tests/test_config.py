"""Tests for simulator configuration loading."""

import json
from pathlib import Path

import pytest

from dinosim.config import (
    DEFAULT_MEMORY_SIZE,
    DEFAULT_QUANTUM,
    ConfigError,
    SimulatorConfig,
    load_config,
)

_CUSTOM_MEMORY = 40
_CUSTOM_QUANTUM = 3


class TestSimulatorConfig:
    """Verify the configuration dataclass."""

    def test_defaults(self) -> None:
        """An empty config uses the default memory size and quantum."""
        config = SimulatorConfig()
        assert config.memory_size == DEFAULT_MEMORY_SIZE
        assert config.quantum == DEFAULT_QUANTUM
        assert config.boot_args == {}

    def test_frozen(self) -> None:
        """Configurations are immutable."""
        config = SimulatorConfig()
        with pytest.raises(AttributeError):
            config.memory_size = 5  # type: ignore[misc]

    def test_rejects_non_positive_memory(self) -> None:
        """Memory needs at least one cell."""
        with pytest.raises(ConfigError, match="memory_size"):
            SimulatorConfig(memory_size=0)

    def test_rejects_non_positive_quantum(self) -> None:
        """The quantum must be at least one tick."""
        with pytest.raises(ConfigError, match="quantum"):
            SimulatorConfig(quantum=0)

    def test_rejects_string_memory(self) -> None:
        """A quoted number is not a memory size."""
        with pytest.raises(ConfigError, match="memory_size must be an integer"):
            SimulatorConfig(memory_size="40")  # type: ignore[arg-type]

    def test_rejects_boolean_quantum(self) -> None:
        """JSON true is not a quantum."""
        with pytest.raises(ConfigError, match="quantum must be an integer"):
            SimulatorConfig(quantum=True)

    def test_rejects_non_string_version(self) -> None:
        """The version label must be text."""
        with pytest.raises(ConfigError, match="version"):
            SimulatorConfig(version=1)  # type: ignore[arg-type]

    def test_rejects_non_mapping_boot_args(self) -> None:
        """boot_args must be an object."""
        with pytest.raises(ConfigError, match="boot_args"):
            SimulatorConfig(boot_args=["quiet"])  # type: ignore[arg-type]


class TestLoadConfig:
    """Verify reading configuration files."""

    def test_no_path_returns_defaults(self) -> None:
        """Without a file, defaults apply."""
        assert load_config() == SimulatorConfig()

    def test_reads_json_file(self, tmp_path: Path) -> None:
        """Values from the file override the defaults."""
        path = tmp_path / "dino.json"
        path.write_text(
            json.dumps({"version": "9.9", "memory_size": _CUSTOM_MEMORY, "quantum": _CUSTOM_QUANTUM})
        )
        config = load_config(path)
        assert config.version == "9.9"
        assert config.memory_size == _CUSTOM_MEMORY
        assert config.quantum == _CUSTOM_QUANTUM

    def test_missing_keys_use_defaults(self, tmp_path: Path) -> None:
        """A partial file fills the gaps with defaults."""
        path = tmp_path / "dino.json"
        path.write_text(json.dumps({"memory_size": _CUSTOM_MEMORY}))
        config = load_config(path)
        assert config.memory_size == _CUSTOM_MEMORY
        assert config.quantum == DEFAULT_QUANTUM

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        """An unreadable file is a ConfigError."""
        with pytest.raises(ConfigError, match="Cannot load configuration"):
            load_config(tmp_path / "absent.json")

    def test_invalid_json_raises(self, tmp_path: Path) -> None:
        """Malformed JSON is a ConfigError."""
        path = tmp_path / "dino.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_non_object_raises(self, tmp_path: Path) -> None:
        """The top level must be a JSON object."""
        path = tmp_path / "dino.json"
        path.write_text("[1, 2]")
        with pytest.raises(ConfigError, match="expected a JSON object"):
            load_config(path)

    def test_invalid_values_raise(self, tmp_path: Path) -> None:
        """Values are validated after loading."""
        path = tmp_path / "dino.json"
        path.write_text(json.dumps({"quantum": -1}))
        with pytest.raises(ConfigError, match="quantum"):
            load_config(path)

    def test_wrongly_typed_values_raise(self, tmp_path: Path) -> None:
        """A string where a number belongs is a ConfigError, not a crash later."""
        path = tmp_path / "dino.json"
        path.write_text(json.dumps({"memory_size": "40"}))
        with pytest.raises(ConfigError, match="memory_size must be an integer"):
            load_config(path)
