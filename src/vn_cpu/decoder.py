"""Decoder: raw memory cell -> structured instruction.

The decoder is the leaf of the fetch-decode-execute pipeline:

    MEMORY[PC] -> IR -> decode() -> Instruction(op, operand) -> EXECUTE

A memory cell holds one of three things:
    - text ("OP" or "OP arg"): an instruction
    - a number: a data word
    - nothing (None or blank text): treated as NOP

Decoding is total and pure. Every input maps to exactly one Instruction and
nothing in this module raises. Unknown mnemonics decode to INVALID, which
the CPU treats as a terminal instruction.
"""

import math
from dataclasses import dataclass
from typing import FrozenSet, Optional, Union

Cell = Union[str, int, float, None]

# Opcode classes
NO_OPERAND_OPS: FrozenSet[str] = frozenset({"HLT", "NOP", "OUT"})
IMMEDIATE_OPS: FrozenSet[str] = frozenset({"LOAD", "ADD", "SUB", "MUL", "DIV"})
ADDRESS_OPS: FrozenSet[str] = frozenset({
    "LOADI", "STORE",
    "ADDM", "SUBM", "MULM", "DIVM",
    "JMP", "JZ", "JNZ",
})
BRANCH_OPS: FrozenSet[str] = frozenset({"JMP", "JZ", "JNZ"})

MNEMONICS: FrozenSet[str] = NO_OPERAND_OPS | IMMEDIATE_OPS | ADDRESS_OPS

# Pseudo-opcodes produced by the decoder, never written by the assembler
DATA = "DATA"
INVALID = "INVALID"

OPCODES: FrozenSet[str] = MNEMONICS | {DATA, INVALID}


@dataclass(frozen=True)
class Instruction:
    """Decoded instruction.

    Attributes:
        op: Opcode, one of OPCODES
        operand: Immediate value or memory address (None for no-operand ops);
            for DATA, the raw cell number, which may be a float
        raw: Original cell text, kept for INVALID diagnostics
    """
    op: str
    operand: Optional[Union[int, float]] = None
    raw: str = ""

    @property
    def is_address(self) -> bool:
        return self.op in ADDRESS_OPS

    @property
    def is_branch(self) -> bool:
        return self.op in BRANCH_OPS


def is_number(value) -> bool:
    """True for int/float cell values (bool excluded)."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def format_value(value) -> str:
    """Render a cell, operand or ACC value for trace lines.

    Integers past the interpreter's int-to-str digit limit are shown by size.
    """
    try:
        return str(value)
    except ValueError:
        return f"<{value.bit_length()}-bit int>"


def parse_number(text: str) -> Optional[int]:
    """Parse a numeric token.

    Accepts decimal integers, prefixed literals (0x, 0b, 0o) and finite
    decimal floats, which are truncated toward zero.

    Args:
        text: Token to parse

    Returns:
        Integer value, or None if the token is not a finite number
    """
    text = text.strip()
    if not text:
        return None

    try:
        return int(text, 10)
    except ValueError:
        pass

    try:
        return int(text, 0)
    except ValueError:
        pass

    try:
        value = float(text)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return int(value)


def to_data_word(cell: Cell) -> int:
    """Numeric value of a memory cell as seen by LOADI/ADDM/SUBM/MULM/DIVM.

    Numbers are used as-is (finite floats truncated), text is parsed,
    anything else reads as 0.
    """
    if is_number(cell):
        if isinstance(cell, float):
            return int(cell) if math.isfinite(cell) else 0
        return cell
    if isinstance(cell, str):
        value = parse_number(cell)
        return value if value is not None else 0
    return 0


def decode(raw: Cell) -> Instruction:
    """Decode a raw memory cell into an Instruction.

    Args:
        raw: Cell content (instruction text, data word, or None)

    Returns:
        Instruction; never raises
    """
    if raw is None:
        return Instruction("NOP")

    if is_number(raw):
        return Instruction(DATA, operand=raw)

    text = str(raw).strip()
    if not text:
        return Instruction("NOP")

    parts = text.split()
    op = parts[0].upper()

    if op in NO_OPERAND_OPS:
        return Instruction(op, raw=text)

    if op in IMMEDIATE_OPS or op in ADDRESS_OPS:
        operand = parse_number(parts[1]) if len(parts) > 1 else None
        return Instruction(op, operand=operand if operand is not None else 0, raw=text)

    return Instruction(INVALID, raw=text)


def is_address_op(op: str) -> bool:
    """True if the mnemonic takes a memory address rather than a value."""
    return op.upper() in ADDRESS_OPS


def target_address(ir: Cell, mem_size: int) -> Optional[int]:
    """Memory index referenced by an address-operand instruction.

    Used by drivers to highlight the cell an instruction touches.

    Returns:
        Clamped address, or None for instructions without an address operand
    """
    instr = decode(ir)
    if instr.is_address and instr.operand is not None:
        return max(0, min(instr.operand, mem_size - 1))
    return None


def format_instruction(instr: Instruction) -> str:
    """Render an instruction as "OP" or "OP arg"."""
    if instr.op == INVALID:
        return f"{INVALID} ({instr.raw})"
    if instr.operand is None:
        return instr.op
    return f"{instr.op} {format_value(instr.operand)}"
