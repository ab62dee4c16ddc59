"""Tests for the tick-driven simulator.

Each tick admits NEW processes into memory with worst fit, runs one
process on the CPU (round robin), and releases the memory of processes
that finish.
"""

import pytest

from dinosim.config import SimulatorConfig
from dinosim.logging import Logger, LogLevel
from dinosim.memory.allocator import CorruptedMemoryStateError, FreeBlock, OwnedBlock
from dinosim.process import Process, ProcessState
from dinosim.simulator import Dino

MEMORY_SIZE = 10


def _sim(*, quantum: int = 2, logger: Logger | None = None) -> Dino:
    """Create a simulator with a small memory."""
    return Dino(SimulatorConfig(memory_size=MEMORY_SIZE, quantum=quantum), logger=logger)


class TestDinoCreation:
    """Verify a fresh simulator."""

    def test_defaults(self) -> None:
        """Without a config, memory uses the default size."""
        sim = Dino()
        assert sim.memory_size == SimulatorConfig().memory_size
        assert sim.tick == 0
        assert sim.idle

    def test_step_when_idle(self) -> None:
        """An empty machine still ticks, with nothing executed."""
        state = _sim().step()
        assert state.tick == 1
        assert state.executed_by_cpu is None
        assert state.free_memory == MEMORY_SIZE
        assert state.layout == (FreeBlock(start=0, size=MEMORY_SIZE),)


class TestSubmit:
    """Verify queueing new processes."""

    def test_submit_queues_process(self) -> None:
        """A submitted process waits in the NEW queue."""
        sim = _sim()
        sim.submit(Process("a", 2))
        assert not sim.idle

    def test_submit_rejects_non_new(self) -> None:
        """Only NEW processes can be submitted."""
        process = Process("a", 2)
        process.admit()
        with pytest.raises(ValueError, match="expected new"):
            _sim().submit(process)

    def test_submit_rejects_oversized(self) -> None:
        """A process larger than memory could never be admitted."""
        with pytest.raises(ValueError, match="exceeds memory"):
            _sim().submit(Process("huge", MEMORY_SIZE + 1))


class TestAdmissionAndExit:
    """Processes get memory on admission and give it back on exit."""

    def test_admitted_process_runs_and_frees_memory(self) -> None:
        """Memory is held while the process lives and freed when it ends."""
        sim = _sim()
        a = Process("a", 4, burst=2)
        sim.submit(a)

        first = sim.step()
        assert first.executed_by_cpu == "a"
        assert first.free_memory == MEMORY_SIZE - 4
        assert first.layout[0] == OwnedBlock(start=0, size=4, owner_id=a.pid, name="a")

        second = sim.step()
        assert second.free_memory == MEMORY_SIZE
        assert a.state is ProcessState.TERMINATED
        assert not a.is_allocated
        assert sim.idle
        assert sim.finished == [a]

    def test_process_waits_until_memory_frees(self) -> None:
        """A process that does not fit stays NEW until space is released."""
        sim = _sim()
        big = Process("big", 8, burst=1)
        late = Process("late", 5, burst=2)
        sim.submit(big)
        sim.submit(late)

        state = sim.step()
        assert state.new_queue == ("late",)
        assert not state.ext_fragmentation

        state = sim.step()
        assert state.new_queue == ()
        assert late.is_allocated

    def test_missing_identity_blocks_admission(self) -> None:
        """A process without an id never leaves NEW, and the refusal is logged."""
        logger = Logger()
        sim = _sim(logger=logger)
        sim.submit(Process("ghost", 2, pid=""))
        state = sim.step()
        assert state.new_queue == ("ghost",)
        errors = logger.filter(min_level=LogLevel.ERROR, source="scheduler")
        assert any("Cannot admit" in e.message for e in errors)


class TestRoundRobin:
    """Verify CPU sharing."""

    def test_quantum_preempts_when_others_wait(self) -> None:
        """After a full quantum the running process goes to the back."""
        sim = _sim(quantum=2)
        x = Process("x", 1, burst=3)
        y = Process("y", 1, burst=1)
        sim.submit(x)
        sim.submit(y)
        states = sim.run(10)
        assert [s.executed_by_cpu for s in states] == ["x", "x", "y", "x"]
        assert sim.finished == [y, x]

    def test_lone_process_keeps_cpu(self) -> None:
        """With nobody waiting, the quantum simply restarts."""
        sim = _sim(quantum=2)
        sim.submit(Process("z", 1, burst=5))
        states = sim.run(10)
        assert [s.executed_by_cpu for s in states] == ["z"] * 5

    def test_run_stops_at_max_ticks(self) -> None:
        """run never exceeds the tick limit."""
        sim = _sim()
        sim.submit(Process("z", 1, burst=50))
        assert len(sim.run(3)) == 3  # noqa: PLR2004
        assert sim.tick == 3  # noqa: PLR2004


class TestFragmentationReporting:
    """A refusal with enough scattered free memory is flagged."""

    def test_fragmented_process_reported(self) -> None:
        """Two 2 KB holes cannot hold a 3 KB process."""
        sim = _sim(quantum=2)
        for name, size, burst in (("a", 2, 1), ("b", 3, 5), ("c", 2, 1), ("e", 3, 5)):
            sim.submit(Process(name, size, burst=burst))
        # tick 1: a finishes; ticks 2-3: b's quantum; tick 4: c finishes
        sim.run(4)
        assert sim.memory.total_free == 4  # noqa: PLR2004
        assert sim.memory.largest_free_run().size == 2  # noqa: PLR2004

        sim.submit(Process("d", 3))
        state = sim.step()
        assert state.ext_fragmentation
        assert state.fragmentation_process == "d"
        assert state.new_queue == ("d",)


class TestReleaseFailures:
    """Release problems are logged or escalated, never silently ignored."""

    def test_unsafe_release_logged_and_bookkeeping_kept(self) -> None:
        """A stale address leaves the process allocated and logs an error."""
        logger = Logger()
        sim = _sim(logger=logger)
        a = Process("a", 2, burst=2)
        sim.submit(a)
        sim.step()
        a.memory_address = 5  # stale: cell 5 is free
        sim.step()
        assert a.is_allocated
        assert a.memory_address == 5  # noqa: PLR2004
        assert sim.memory.owner_at(0) == a.pid
        errors = logger.filter(min_level=LogLevel.ERROR, source="scheduler")
        assert any("Cannot release" in e.message for e in errors)

    def test_corruption_is_raised(self) -> None:
        """A range running into another process's cells stops the simulation."""
        sim = _sim()
        a = Process("a", 2, burst=2)
        b = Process("b", 2, burst=5)
        sim.submit(a)
        sim.submit(b)
        sim.step()
        a.memory_address = 1  # covers a's cell 1 and b's cell 2
        with pytest.raises(CorruptedMemoryStateError):
            sim.step()


class TestLogTicks:
    """Log entries carry the tick they happened on."""

    def test_allocator_entries_use_current_tick(self) -> None:
        """A process admitted on tick 3 is logged at tick 3 by both sources."""
        logger = Logger()
        sim = _sim(logger=logger)
        sim.step()
        sim.step()
        sim.submit(Process("a", 3, burst=1))
        sim.step()
        memory = logger.filter(source="memory")
        assert memory
        assert all(e.tick == 3 for e in memory)  # noqa: PLR2004
        admitted = [e for e in logger.filter(source="scheduler") if "Admitted" in e.message]
        assert [e.tick for e in admitted] == [3]

    def test_submit_logged_at_current_tick(self) -> None:
        """Submitting between steps logs against the last completed tick."""
        logger = Logger()
        sim = _sim(logger=logger)
        sim.step()
        sim.submit(Process("a", 2))
        assert logger.entries[-1].tick == 1
