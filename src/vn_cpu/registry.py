"""ExecuteRegistry: Execute-phase primitives for the accumulator machine.

Each opcode maps to a frozen primitive that transforms state in a
predictable, auditable way.

Registry Keys:
    NOP: No operation
    HLT: Stop execution
    LOAD v: ACC <- v
    LOADI a: ACC <- MEM[a]
    STORE a: MEM[a] <- ACC
    ADD v / SUB v / MUL v / DIV v: ACC <- ACC op v
    ADDM a / SUBM a / MULM a / DIVM a: ACC <- ACC op MEM[a]
    JMP a: PC <- a
    JZ a: PC <- a if ACC == 0
    JNZ a: PC <- a if ACC != 0
    OUT: append ACC to outputs
    DATA: data word reached as code, no effect
    INVALID: unrecognized mnemonic, halts

Each primitive is a pure function:
    (MachineState, Instruction) -> (MachineState, description)

Sequential primitives advance PC (clamped at the last cell); branches set
PC directly; HLT and INVALID leave PC where it is.
"""

from typing import Callable, Dict, Optional, Set, Tuple

from .decoder import DATA, INVALID, Instruction, format_value, to_data_word
from .state import MachineState

Primitive = Callable[[MachineState, Instruction], Tuple[MachineState, str]]


def trunc_div(dividend: int, divisor: int) -> int:
    """Integer division truncated toward zero; a zero divisor yields 0."""
    if divisor == 0:
        return 0
    quotient = abs(dividend) // abs(divisor)
    return quotient if (dividend < 0) == (divisor < 0) else -quotient


class ExecuteRegistry:
    """Verified registry of execute-phase primitives.

    The registry is frozen after initialization to ensure
    no runtime modifications can occur.

    Attributes:
        _primitives: Dictionary mapping opcodes to handler functions
        _frozen: Whether the registry is locked against modifications
    """

    def __init__(self):
        self._primitives: Dict[str, Primitive] = {}
        self._frozen = False
        self._register_all_primitives()
        self.freeze()

    def _register_all_primitives(self) -> None:
        # Data movement
        self.register("LOAD", self._op_load)
        self.register("LOADI", self._op_loadi)
        self.register("STORE", self._op_store)

        # Arithmetic, immediate operand
        self.register("ADD", self._op_add)
        self.register("SUB", self._op_sub)
        self.register("MUL", self._op_mul)
        self.register("DIV", self._op_div)

        # Arithmetic, memory operand
        self.register("ADDM", self._op_addm)
        self.register("SUBM", self._op_subm)
        self.register("MULM", self._op_mulm)
        self.register("DIVM", self._op_divm)

        # Control flow
        self.register("JMP", self._op_jmp)
        self.register("JZ", self._op_jz)
        self.register("JNZ", self._op_jnz)

        # I/O
        self.register("OUT", self._op_out)

        # Special
        self.register("NOP", self._op_nop)
        self.register("HLT", self._op_hlt)
        self.register(DATA, self._op_data)
        self.register(INVALID, self._op_invalid)

    def register(self, key: str, handler: Primitive) -> None:
        """Register a primitive operation.

        Args:
            key: Opcode (e.g., "ADD")
            handler: Function that takes (state, instruction) and returns
                (new state, description)

        Raises:
            RuntimeError: If registry is frozen
            ValueError: If key already registered
        """
        if self._frozen:
            raise RuntimeError("Cannot register primitives: registry is frozen")
        if key in self._primitives:
            raise ValueError(f"Primitive already registered: {key}")
        self._primitives[key] = handler

    def freeze(self) -> None:
        """Freeze the registry to prevent further modifications."""
        self._frozen = True

    def is_frozen(self) -> bool:
        return self._frozen

    def get_valid_keys(self) -> Set[str]:
        return set(self._primitives.keys())

    def execute(self, state: MachineState, instr: Instruction) -> Tuple[MachineState, str]:
        """Execute a registered primitive.

        Args:
            state: Current machine state
            instr: Decoded instruction

        Returns:
            (new state, description); cycle count incremented

        Raises:
            KeyError: If the opcode is not in the registry
        """
        if instr.op not in self._primitives:
            raise KeyError(f"Unknown opcode: {instr.op}")

        handler = self._primitives[instr.op]
        new_state, description = handler(state, instr)
        return new_state.increment_cycle(), description

    # =========================================================================
    # Data Movement Primitives
    # =========================================================================

    def _op_load(self, state: MachineState, instr: Instruction) -> Tuple[MachineState, str]:
        """LOAD v - ACC <- v."""
        value = instr.operand
        return state.set_acc(value).advance_pc(), f"EXEC: LOAD #{format_value(value)} → ACC={format_value(value)}"

    def _op_loadi(self, state: MachineState, instr: Instruction) -> Tuple[MachineState, str]:
        """LOADI a - ACC <- numeric value of MEM[a] (non-numeric reads as 0)."""
        addr = state.clamp_address(instr.operand)
        value = to_data_word(state.read(addr))
        return state.set_acc(value).advance_pc(), f"EXEC: LOADI [{addr}] → ACC={format_value(value)}"

    def _op_store(self, state: MachineState, instr: Instruction) -> Tuple[MachineState, str]:
        """STORE a - MEM[a] <- ACC."""
        addr = state.clamp_address(instr.operand)
        new_state = state.write(addr, state.acc)
        return new_state.advance_pc(), f"EXEC: STORE ACC({format_value(state.acc)}) → [{addr}]"

    # =========================================================================
    # Arithmetic Primitives
    # =========================================================================

    def _op_add(self, state: MachineState, instr: Instruction) -> Tuple[MachineState, str]:
        result = state.acc + instr.operand
        return state.set_acc(result).advance_pc(), f"EXEC: ADD #{format_value(instr.operand)} → ACC={format_value(result)}"

    def _op_sub(self, state: MachineState, instr: Instruction) -> Tuple[MachineState, str]:
        result = state.acc - instr.operand
        return state.set_acc(result).advance_pc(), f"EXEC: SUB #{format_value(instr.operand)} → ACC={format_value(result)}"

    def _op_mul(self, state: MachineState, instr: Instruction) -> Tuple[MachineState, str]:
        result = state.acc * instr.operand
        return state.set_acc(result).advance_pc(), f"EXEC: MUL #{format_value(instr.operand)} → ACC={format_value(result)}"

    def _op_div(self, state: MachineState, instr: Instruction) -> Tuple[MachineState, str]:
        """DIV v - ACC <- ACC / v truncated toward zero; v == 0 yields ACC=0."""
        result = trunc_div(state.acc, instr.operand)
        note = " (÷0)" if instr.operand == 0 else ""
        return state.set_acc(result).advance_pc(), f"EXEC: DIV #{format_value(instr.operand)}{note} → ACC={format_value(result)}"

    def _memory_operand(self, state: MachineState, instr: Instruction) -> Tuple[int, int]:
        addr = state.clamp_address(instr.operand)
        return addr, to_data_word(state.read(addr))

    def _op_addm(self, state: MachineState, instr: Instruction) -> Tuple[MachineState, str]:
        addr, value = self._memory_operand(state, instr)
        result = state.acc + value
        return state.set_acc(result).advance_pc(), f"EXEC: ADDM [{addr}]={format_value(value)} → ACC={format_value(result)}"

    def _op_subm(self, state: MachineState, instr: Instruction) -> Tuple[MachineState, str]:
        addr, value = self._memory_operand(state, instr)
        result = state.acc - value
        return state.set_acc(result).advance_pc(), f"EXEC: SUBM [{addr}]={format_value(value)} → ACC={format_value(result)}"

    def _op_mulm(self, state: MachineState, instr: Instruction) -> Tuple[MachineState, str]:
        addr, value = self._memory_operand(state, instr)
        result = state.acc * value
        return state.set_acc(result).advance_pc(), f"EXEC: MULM [{addr}]={format_value(value)} → ACC={format_value(result)}"

    def _op_divm(self, state: MachineState, instr: Instruction) -> Tuple[MachineState, str]:
        """DIVM a - ACC <- ACC / MEM[a] truncated toward zero; zero yields ACC=0."""
        addr, value = self._memory_operand(state, instr)
        result = trunc_div(state.acc, value)
        note = " (÷0)" if value == 0 else ""
        return state.set_acc(result).advance_pc(), f"EXEC: DIVM [{addr}]={format_value(value)}{note} → ACC={format_value(result)}"

    # =========================================================================
    # Control Flow Primitives
    # =========================================================================

    def _op_jmp(self, state: MachineState, instr: Instruction) -> Tuple[MachineState, str]:
        """JMP a - Unconditional jump (target clamped, no auto-advance)."""
        new_state = state.set_pc(instr.operand)
        return new_state, f"EXEC: JMP → PC={new_state.pc}"

    def _op_jz(self, state: MachineState, instr: Instruction) -> Tuple[MachineState, str]:
        if state.acc == 0:
            new_state = state.set_pc(instr.operand)
            return new_state, f"EXEC: JZ (ACC=0) → PC={new_state.pc}"
        return state.advance_pc(), "EXEC: JZ (not taken)"

    def _op_jnz(self, state: MachineState, instr: Instruction) -> Tuple[MachineState, str]:
        if state.acc != 0:
            new_state = state.set_pc(instr.operand)
            return new_state, f"EXEC: JNZ (ACC!=0) → PC={new_state.pc}"
        return state.advance_pc(), "EXEC: JNZ (not taken)"

    # =========================================================================
    # I/O and Special Primitives
    # =========================================================================

    def _op_out(self, state: MachineState, instr: Instruction) -> Tuple[MachineState, str]:
        return state.emit(state.acc).advance_pc(), f"EXEC: OUT → {format_value(state.acc)}"

    def _op_nop(self, state: MachineState, instr: Instruction) -> Tuple[MachineState, str]:
        return state.advance_pc(), "EXEC: NOP"

    def _op_hlt(self, state: MachineState, instr: Instruction) -> Tuple[MachineState, str]:
        return state.set_halted(True), "EXEC: HLT (CPU halted)"

    def _op_data(self, state: MachineState, instr: Instruction) -> Tuple[MachineState, str]:
        return state.advance_pc(), f"EXEC: DATA {format_value(instr.operand)} (no effect)"

    def _op_invalid(self, state: MachineState, instr: Instruction) -> Tuple[MachineState, str]:
        """INVALID - Unrecognized instruction; halts (fail-safe)."""
        return state.set_halted(True), f"ERROR: invalid instruction '{instr.raw}'"


# Singleton registry instance
_registry: Optional[ExecuteRegistry] = None


def get_registry() -> ExecuteRegistry:
    """Get the singleton execute registry instance.

    Returns:
        The frozen ExecuteRegistry instance
    """
    global _registry
    if _registry is None:
        _registry = ExecuteRegistry()
    return _registry
