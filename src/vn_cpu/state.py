"""MachineState: Immutable state representation for the accumulator machine.

State Components:
    - Memory: unified instruction/data store (list of cells)
    - PC: Program counter, always within [0, len(memory) - 1]
    - IR: Instruction register, last fetched raw cell
    - ACC: Accumulator (signed, unbounded integer)
    - Phase: Idle -> Fetch -> Decode -> Execute -> Fetch ...
    - Halted: Execution termination flag
    - Outputs: Values emitted by OUT (bounded, oldest dropped first)
    - Cycle count: Completed execute phases

All state mutations return new state objects. Memory and outputs are copied
whenever they change, so a state handed to a caller is never modified
behind its back. A MachineState is not safe for concurrent mutation; the
driver owns the single live handle and replaces it on every step.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List

from .decoder import Cell, format_value, is_number


DEFAULT_MEM_SIZE = 16
OUTPUT_LIMIT = 50


class Phase(str, Enum):
    """Position in the fetch-decode-execute cycle."""
    IDLE = "Idle"
    FETCH = "Fetch"
    DECODE = "Decode"
    EXECUTE = "Execute"


def clamp(value: int, low: int, high: int) -> int:
    """Clamp value into [low, high] (never wraps)."""
    return max(low, min(high, value))


def empty_memory(size: int = DEFAULT_MEM_SIZE) -> List[Cell]:
    """Fresh memory image with every cell uninitialized."""
    return [""] * size


@dataclass
class MachineState:
    """Immutable machine state representation.

    Attributes:
        memory: Cells holding instruction text, data words or "" (empty)
        pc: Program counter (index of the next instruction to fetch)
        ir: Last fetched raw cell value, pending decode
        acc: Accumulator
        phase: Current phase of the instruction cycle
        halted: Whether the machine executed HLT or an invalid opcode
        outputs: Values emitted by OUT, at most OUTPUT_LIMIT entries
        cycle_count: Number of completed execute phases
    """
    memory: List[Cell] = field(default_factory=empty_memory)
    pc: int = 0
    ir: Cell = "NOP"
    acc: int = 0
    phase: Phase = Phase.IDLE
    halted: bool = False
    outputs: List[int] = field(default_factory=list)
    cycle_count: int = 0

    @property
    def size(self) -> int:
        return len(self.memory)

    def clamp_address(self, addr: int) -> int:
        """Clamp an address into memory bounds."""
        return clamp(addr, 0, max(self.size - 1, 0))

    def read(self, addr: int) -> Cell:
        """Read a cell, clamping the address. Empty memory reads as ""."""
        if not self.memory:
            return ""
        return self.memory[self.clamp_address(addr)]

    def snapshot(self) -> dict:
        """Create a snapshot of the state for tracing.

        Returns:
            Dictionary with copies of all mutable components
        """
        return {
            "memory": list(self.memory),
            "pc": self.pc,
            "ir": self.ir,
            "acc": self.acc,
            "phase": self.phase.value,
            "halted": self.halted,
            "outputs": list(self.outputs),
            "cycle_count": self.cycle_count,
        }

    def validate(self) -> bool:
        """Validate state integrity.

        Checks:
            - PC is within memory bounds
            - ACC is an integer
            - Outputs respect OUTPUT_LIMIT
            - Memory cells are text, numbers or None

        Returns:
            True if state is valid, False otherwise
        """
        if self.memory and not 0 <= self.pc < self.size:
            return False
        if not self.memory and self.pc != 0:
            return False

        if not isinstance(self.acc, int) or isinstance(self.acc, bool):
            return False

        if len(self.outputs) > OUTPUT_LIMIT:
            return False

        for cell in self.memory:
            if cell is not None and not isinstance(cell, str) and not is_number(cell):
                return False

        if not isinstance(self.phase, Phase):
            return False

        return self.cycle_count >= 0

    # =========================================================================
    # Copy-returning mutators
    # =========================================================================

    def set_phase(self, phase: Phase) -> "MachineState":
        """Create new state in the given phase."""
        return replace(self, phase=phase)

    def set_ir(self, ir: Cell) -> "MachineState":
        """Create new state with a new instruction register value."""
        return replace(self, ir=ir)

    def set_acc(self, value: int) -> "MachineState":
        """Create new state with a new accumulator value."""
        return replace(self, acc=value)

    def set_pc(self, new_pc: int) -> "MachineState":
        """Create new state with PC set to new_pc (clamped into memory)."""
        return replace(self, pc=self.clamp_address(new_pc))

    def advance_pc(self) -> "MachineState":
        """Create new state with PC incremented by 1 (clamped at the last cell)."""
        return self.set_pc(self.pc + 1)

    def write(self, addr: int, value: Cell) -> "MachineState":
        """Create new state with one memory cell replaced.

        Args:
            addr: Target address (clamped into memory)
            value: New cell content

        Returns:
            New MachineState with a copied memory list
        """
        if not self.memory:
            return self
        new_memory = list(self.memory)
        new_memory[self.clamp_address(addr)] = value
        return replace(self, memory=new_memory)

    def emit(self, value: int) -> "MachineState":
        """Create new state with value appended to outputs (oldest dropped past the limit)."""
        new_outputs = (list(self.outputs) + [value])[-OUTPUT_LIMIT:]
        return replace(self, outputs=new_outputs)

    def set_halted(self, halted: bool = True) -> "MachineState":
        """Create new state with halted flag set."""
        return replace(self, halted=halted)

    def increment_cycle(self) -> "MachineState":
        """Create new state with cycle count incremented."""
        return replace(self, cycle_count=self.cycle_count + 1)

    def __str__(self) -> str:
        """Human-readable state representation."""
        ir = format_value(self.ir) if is_number(self.ir) else repr(self.ir)
        outputs = "[" + ", ".join(format_value(v) for v in self.outputs) + "]"
        return (
            f"[Cycle {self.cycle_count}] {self.phase.value:<7} PC={self.pc} "
            f"IR={ir} ACC={format_value(self.acc)} OUT={outputs}"
            f"{' HALTED' if self.halted else ''}"
        )


def create_initial_state(memory: List[Cell]) -> MachineState:
    """Create a fresh machine state over a memory image.

    Args:
        memory: Memory image (copied)

    Returns:
        MachineState with PC=0, ACC=0, phase Idle, not halted, no outputs
    """
    return MachineState(
        memory=list(memory),
        pc=0,
        ir="NOP",
        acc=0,
        phase=Phase.IDLE,
        halted=False,
        outputs=[],
        cycle_count=0,
    )
