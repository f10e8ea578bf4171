"""Mini-assembler: commented source text -> memory image.

Grammar:
    - one instruction per line: MNEMONIC [OPERAND]
    - "//" starts a comment that runs to the end of the line
    - blank lines are ignored
    - mnemonics are case-insensitive and canonicalized to uppercase
    - an operand is an integer literal or one of the variables X, Y, Z

The three variables live in cells reserved right after the program:

    [0 .. n-1]  program
    [n]         X
    [n + 1]     Y
    [n + 2]     Z

An operand naming a variable resolves to its slot address for
address-operand mnemonics (LOADI, STORE, ADDM, JMP, ...) and to its bound
value for everything else.
"""

import logging
from typing import Dict, List, Mapping, Optional, Union

from .decoder import Cell, is_address_op, parse_number, to_data_word
from .state import DEFAULT_MEM_SIZE, clamp, empty_memory

logger = logging.getLogger(__name__)

VARIABLE_NAMES = ("X", "Y", "Z")

SAMPLE_PROGRAM: List[str] = ["LOAD 5", "ADD 3", "STORE 40", "OUT", "HLT"]

TEMPLATE_SYMBOLS: Dict[str, str] = {"ADD": "+", "SUB": "-", "MUL": "*", "DIV": "/"}


class CapacityError(ValueError):
    """Program plus variable slots do not fit in memory."""

    def __init__(self, required: int, mem_size: int):
        self.required = required
        self.mem_size = mem_size
        super().__init__(
            f"Program and data need {required} cells but memory has {mem_size}"
        )


def strip_source(source: str) -> List[str]:
    """Remove // comments and blank lines.

    Args:
        source: Assembly source text

    Returns:
        Program lines, stripped, in order
    """
    lines = []
    for line in source.splitlines():
        line = line.split("//", 1)[0].strip()
        if line:
            lines.append(line)
    return lines


def variable_slots(program_length: int) -> Dict[str, int]:
    """Addresses reserved for X, Y, Z after a program of the given length."""
    return {name: program_length + i for i, name in enumerate(VARIABLE_NAMES)}


def _normalize_variables(variables: Optional[Mapping[str, Union[int, float, str, None]]]) -> Dict[str, int]:
    values = {name: 0 for name in VARIABLE_NAMES}
    for name, value in (variables or {}).items():
        key = str(name).upper()
        if key in values:
            values[key] = to_data_word(value)
    return values


def assemble(
    source: str,
    variables: Optional[Mapping[str, Union[int, float, str, None]]] = None,
    mem_size: int = DEFAULT_MEM_SIZE,
) -> List[Cell]:
    """Assemble source text into a memory image.

    Args:
        source: Assembly source text
        variables: Bindings for X, Y and optionally Z (missing -> 0)
        mem_size: Number of memory cells

    Returns:
        Memory image of exactly mem_size cells

    Raises:
        CapacityError: If the program plus three variable slots exceed mem_size
    """
    lines = strip_source(source)
    required = len(lines) + len(VARIABLE_NAMES)
    if required > mem_size:
        raise CapacityError(required, mem_size)

    slots = variable_slots(len(lines))
    values = _normalize_variables(variables)
    logger.debug("Assembling %d lines, variable slots %s", len(lines), slots)

    def resolve_address(token: str) -> int:
        key = token.upper()
        if key in slots:
            return slots[key]
        number = parse_number(token)
        return clamp(number, 0, mem_size - 1) if number is not None else 0

    def resolve_value(token: str) -> int:
        key = token.upper()
        if key in values:
            return values[key]
        number = parse_number(token)
        return number if number is not None else 0

    memory = empty_memory(mem_size)
    for addr, line in enumerate(lines):
        parts = line.split()
        op = parts[0].upper()
        if len(parts) == 1:
            memory[addr] = op
            continue
        token = parts[1]
        arg = resolve_address(token) if is_address_op(op) else resolve_value(token)
        memory[addr] = f"{op} {arg}"

    for name, addr in slots.items():
        memory[addr] = values[name]

    return memory


def quick_template(op: str) -> str:
    """Source for the "X op Y = Z" exercise.

    Args:
        op: One of ADD, SUB, MUL, DIV

    Returns:
        Commented program computing Z = X op Y and emitting it
    """
    op = op.upper()
    symbol = TEMPLATE_SYMBOLS.get(op, "?")
    return "\n".join([
        f"// X {symbol} Y = Z",
        "LOAD X",
        f"{op} Y",
        "STORE Z",
        "OUT",
        "HLT",
    ])
