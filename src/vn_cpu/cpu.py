"""CPU core and driver for the single-accumulator Von Neumann machine.

The core is a pure transition function over an explicit MachineState:

    Idle/Execute --step--> Fetch --step--> Decode --step--> Execute --> ...

    FETCH:   IR <- MEM[PC]                    (no other change)
    DECODE:  decode(IR)                       (description only)
    EXECUTE: REGISTRY[op](state, instruction) (ACC / PC / MEM / OUT)

step() never mutates its input and never raises; HLT and invalid opcodes
set the halted flag and every later step returns the same state.

VonNeumannCPU is the driver: it owns the single live state handle, replaces
it on every step, and keeps a bounded history of transitions. It is not
safe to step one VonNeumannCPU from several threads at once.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Union

from .assembler import SAMPLE_PROGRAM, CapacityError, assemble
from .decoder import Cell, decode, format_instruction, format_value, parse_number, target_address
from .registry import ExecuteRegistry, get_registry
from .state import DEFAULT_MEM_SIZE, MachineState, Phase, create_initial_state, empty_memory

logger = logging.getLogger(__name__)


@dataclass
class StepResult:
    """Outcome of one transition.

    Attributes:
        state: State after the transition
        description: Human-readable trace line (wording is informational only)
    """
    state: MachineState
    description: str


def _is_empty(cell: Cell) -> bool:
    return cell is None or (isinstance(cell, str) and not cell.strip())


def step(state: MachineState, registry: Optional[ExecuteRegistry] = None) -> StepResult:
    """Advance the machine by one phase.

    Args:
        state: Current machine state (not modified)
        registry: Execute-phase primitives (defaults to the shared registry)

    Returns:
        StepResult with the new state and a description of the transition
    """
    if state.halted:
        return StepResult(state, "CPU halted")

    if state.phase in (Phase.IDLE, Phase.EXECUTE):
        cell = state.read(state.pc)
        ir = "NOP" if _is_empty(cell) else cell
        new_state = state.set_ir(ir).set_phase(Phase.FETCH)
        return StepResult(new_state, f"FETCH @{state.pc}: {format_value(ir)}")

    if state.phase == Phase.FETCH:
        instr = decode(state.ir)
        return StepResult(state.set_phase(Phase.DECODE), f"DECODE: {format_instruction(instr)}")

    # Phase.DECODE
    registry = registry or get_registry()
    instr = decode(state.ir)
    new_state, description = registry.execute(state, instr)
    return StepResult(new_state.set_phase(Phase.EXECUTE), description)


@dataclass
class TraceEntry:
    """Single entry in the execution history.

    Attributes:
        index: Step number since the last reset (0-indexed)
        phase: Phase entered by this step
        pc: PC before the step
        description: Trace line returned by step()
        halted: Whether the machine is halted after the step
    """
    index: int
    phase: Phase
    pc: int
    description: str
    halted: bool


class VonNeumannCPU:
    """Driver around the pure step function.

    Attributes:
        state: Current machine state (the only live handle)
        history: Recent trace entries, at most HISTORY_LIMIT
        last_action: Description of the last step or load
        max_steps: Step limit used by run()
    """

    DEFAULT_MAX_STEPS = 10000
    HISTORY_LIMIT = 1000

    def __init__(self, mem_size: int = DEFAULT_MEM_SIZE, max_steps: int = DEFAULT_MAX_STEPS):
        self.mem_size = mem_size
        self.max_steps = max_steps
        self.registry = get_registry()
        self.state: MachineState = create_initial_state(empty_memory(mem_size))
        self.history: List[TraceEntry] = []
        self.last_action = ""
        self._steps = 0

    # =========================================================================
    # Loading
    # =========================================================================

    def load_memory(self, cells: List[Cell]) -> None:
        """Load a raw memory image (padded or truncated to mem_size) and reset.

        Args:
            cells: Memory cells
        """
        memory = empty_memory(self.mem_size)
        for i, cell in enumerate(cells[:self.mem_size]):
            memory[i] = cell
        self._reset_with(memory)
        self.last_action = "Memory loaded"

    def load_program(
        self,
        source: str,
        variables: Optional[Mapping[str, Union[int, float, str, None]]] = None,
    ) -> None:
        """Assemble source and load it, replacing memory and resetting the CPU.

        Args:
            source: Assembly source text
            variables: Bindings for X, Y, Z

        Raises:
            CapacityError: If the program does not fit; state is left untouched
        """
        try:
            memory = assemble(source, variables, self.mem_size)
        except CapacityError as e:
            logger.warning("Load rejected: %s", e)
            self.last_action = str(e)
            raise
        self._reset_with(memory)
        self.last_action = "Program assembled and loaded"
        logger.info("Loaded program into %d cells", self.mem_size)

    def load_sample(self) -> None:
        """Load the built-in sample program."""
        self.load_memory(list(SAMPLE_PROGRAM))
        self.last_action = "Sample program loaded"

    def clear_memory(self) -> None:
        """Empty every memory cell and reset the CPU."""
        self._reset_with(empty_memory(self.mem_size))
        self.last_action = "Memory cleared"

    def edit_cell(self, index: int, text: str) -> None:
        """Edit one memory cell from user text.

        Blank text empties the cell, numeric text stores a data word, and
        anything else is stored as instruction text. The index is clamped.
        """
        text = "" if text is None else str(text)
        if not text.strip():
            value: Cell = ""
        else:
            number = parse_number(text)
            value = number if number is not None else text
        self.state = self.state.write(index, value)

    def reset(self) -> None:
        """Reset registers, outputs and history; memory is kept."""
        self._reset_with(self.state.memory)
        self.last_action = ""

    def _reset_with(self, memory: List[Cell]) -> None:
        self.state = create_initial_state(memory)
        self.history = []
        self._steps = 0

    # =========================================================================
    # Execution
    # =========================================================================

    def step(self) -> TraceEntry:
        """Perform one phase transition and record it.

        Returns:
            TraceEntry for the transition
        """
        pc = self.state.pc
        result = step(self.state, self.registry)
        self.state = result.state
        self.last_action = result.description

        entry = TraceEntry(
            index=self._steps,
            phase=self.state.phase,
            pc=pc,
            description=result.description,
            halted=self.state.halted,
        )
        self._steps += 1
        self.history.append(entry)
        if len(self.history) > self.HISTORY_LIMIT:
            del self.history[:-self.HISTORY_LIMIT]

        logger.debug("%s | %s", result.description, self.state)
        return entry

    def step_instruction(self) -> List[TraceEntry]:
        """Step until the current instruction finishes its execute phase."""
        entries = []
        while not self.state.halted:
            entries.append(self.step())
            if self.state.phase == Phase.EXECUTE:
                break
        return entries

    def run(self, max_steps: Optional[int] = None) -> List[TraceEntry]:
        """Step until halted.

        Args:
            max_steps: Override the step limit (uses instance default if None)

        Returns:
            Trace entries produced by this run

        Raises:
            RuntimeError: If the step limit is reached before halting
        """
        limit = max_steps if max_steps is not None else self.max_steps
        entries = []
        while not self.state.halted:
            if len(entries) >= limit:
                logger.warning("Step limit (%d) exceeded at PC=%d", limit, self.state.pc)
                raise RuntimeError(f"Max steps ({limit}) exceeded")
            entries.append(self.step())

        logger.info("Halted after %d cycles, ACC=%s", self.state.cycle_count, format_value(self.state.acc))
        return entries

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def memory(self) -> List[Cell]:
        return list(self.state.memory)

    @property
    def outputs(self) -> List[int]:
        return list(self.state.outputs)

    def get_acc(self) -> int:
        return self.state.acc

    def get_pc(self) -> int:
        return self.state.pc

    def get_phase(self) -> Phase:
        return self.state.phase

    def get_cycle_count(self) -> int:
        return self.state.cycle_count

    def is_halted(self) -> bool:
        return self.state.halted

    def target_address(self) -> Optional[int]:
        """Memory cell referenced by the instruction in IR, if any."""
        return target_address(self.state.ir, self.state.size)

    def print_trace(self) -> None:
        """Print execution history in human-readable format."""
        print("=" * 70)
        print("EXECUTION TRACE")
        print("=" * 70)

        for entry in self.history:
            print(f"[{entry.index:>4}] PC={entry.pc:<3} {entry.phase.value:<7} {entry.description}")

        print("\n" + "=" * 70)
        print("FINAL STATE")
        print("=" * 70)
        summary = self.get_summary()
        print(f"  ACC: {format_value(summary['acc'])}")
        print(f"  PC: {summary['pc']}")
        print(f"  IR: {format_value(summary['ir'])}")
        print(f"  Cycles: {summary['cycles']}")
        print(f"  Halted: {summary['halted']}")
        print(f"  Outputs: [{', '.join(format_value(v) for v in summary['outputs'])}]")

    def get_summary(self) -> Dict:
        """Get execution summary.

        Returns:
            Dictionary with execution statistics and final state
        """
        return {
            "cycles": self.state.cycle_count,
            "halted": self.state.halted,
            "acc": self.state.acc,
            "pc": self.state.pc,
            "ir": self.state.ir,
            "phase": self.state.phase.value,
            "outputs": self.outputs,
            "history_length": len(self.history),
            "last_action": self.last_action,
        }
