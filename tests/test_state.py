"""Tests for MachineState dataclass."""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from vn_cpu.state import (
    DEFAULT_MEM_SIZE,
    OUTPUT_LIMIT,
    MachineState,
    Phase,
    clamp,
    create_initial_state,
)


class TestMachineStateCreation:
    """Test MachineState initialization and defaults."""

    def test_default_state(self):
        """Default state has empty memory and zeroed registers."""
        state = MachineState()
        assert state.memory == [""] * DEFAULT_MEM_SIZE
        assert state.pc == 0
        assert state.ir == "NOP"
        assert state.acc == 0
        assert state.phase is Phase.IDLE
        assert state.halted is False
        assert state.outputs == []
        assert state.cycle_count == 0

    def test_create_initial_state_copies_memory(self):
        """create_initial_state loads a copy of the image."""
        image = ["LOAD 1", "HLT", ""]
        state = create_initial_state(image)
        assert state.memory == image
        image[0] = "NOP"
        assert state.memory[0] == "LOAD 1"


class TestMachineStateValidation:
    """Test state validation."""

    def test_valid_state(self):
        assert MachineState().validate() is True

    def test_pc_out_of_bounds(self):
        """PC outside memory fails validation."""
        assert MachineState(pc=DEFAULT_MEM_SIZE).validate() is False
        assert MachineState(pc=-1).validate() is False

    def test_too_many_outputs(self):
        assert MachineState(outputs=[0] * (OUTPUT_LIMIT + 1)).validate() is False

    def test_bad_cell(self):
        """Memory cells must be text, numbers or None."""
        assert MachineState(memory=[["LOAD"]]).validate() is False


class TestMachineStateImmutability:
    """Test copy-returning mutators."""

    def test_set_acc_returns_new_state(self):
        state = MachineState()
        new_state = state.set_acc(42)
        assert state.acc == 0  # Original unchanged
        assert new_state.acc == 42

    def test_set_pc_clamps(self):
        """set_pc clamps into memory bounds instead of wrapping."""
        state = MachineState()
        assert state.set_pc(5).pc == 5
        assert state.set_pc(100).pc == DEFAULT_MEM_SIZE - 1
        assert state.set_pc(-4).pc == 0

    def test_advance_pc_stops_at_last_cell(self):
        state = MachineState(pc=DEFAULT_MEM_SIZE - 1)
        assert state.advance_pc().pc == DEFAULT_MEM_SIZE - 1

    def test_write_copies_memory(self):
        """write returns a state with its own memory list."""
        state = MachineState()
        new_state = state.write(3, 99)
        assert state.memory[3] == ""
        assert new_state.memory[3] == 99

    def test_write_clamps_address(self):
        state = MachineState()
        assert state.write(500, 1).memory[-1] == 1

    def test_emit_bounded(self):
        """emit drops the oldest value past OUTPUT_LIMIT."""
        state = MachineState()
        for i in range(OUTPUT_LIMIT + 1):
            state = state.emit(i)
        assert len(state.outputs) == OUTPUT_LIMIT
        assert state.outputs[0] == 1
        assert state.outputs[-1] == OUTPUT_LIMIT

    def test_set_halted(self):
        state = MachineState()
        new_state = state.set_halted(True)
        assert state.halted is False
        assert new_state.halted is True

    def test_set_phase_and_ir(self):
        state = MachineState().set_ir("ADD 2").set_phase(Phase.FETCH)
        assert state.ir == "ADD 2"
        assert state.phase is Phase.FETCH

    def test_increment_cycle(self):
        state = MachineState()
        assert state.increment_cycle().cycle_count == 1
        assert state.cycle_count == 0


class TestMachineStateAccessors:
    """Test reads, snapshots and string form."""

    def test_read_clamps(self):
        state = create_initial_state(["A", "B"])
        assert state.read(0) == "A"
        assert state.read(9) == "B"
        assert state.read(-3) == "A"

    def test_read_empty_memory(self):
        assert MachineState(memory=[]).read(0) == ""

    def test_snapshot_is_copy(self):
        state = create_initial_state(["LOAD 1"]).emit(5)
        snapshot = state.snapshot()
        assert snapshot["phase"] == "Idle"
        assert snapshot["outputs"] == [5]
        snapshot["memory"][0] = "HLT"
        snapshot["outputs"].append(6)
        assert state.memory[0] == "LOAD 1"
        assert state.outputs == [5]

    def test_str(self):
        text = str(MachineState().set_halted())
        assert "PC=0" in text
        assert "HALTED" in text


def test_clamp():
    assert clamp(5, 0, 3) == 3
    assert clamp(-1, 0, 3) == 0
    assert clamp(2, 0, 3) == 2

    def test_str_huge_values(self):
        """str() works when ACC, IR and outputs exceed the int-to-str digit limit."""
        value = 10 ** 5000
        state = MachineState().set_ir(value).set_acc(value).emit(value)
        text = str(state)
        assert "PC=0" in text
        assert "ACC=" in text
        assert "OUT=[" in text
