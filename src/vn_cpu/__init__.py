"""VN-CPU: Fetch-decode-execute simulator for a single-accumulator Von Neumann machine.

The machine keeps instructions and data in one unified memory, steps one
phase at a time, and exposes every transition as a human-readable trace
line so the instruction cycle can be followed on screen.

Architecture:
    SOURCE -> ASSEMBLER -> MEMORY -> FETCH -> DECODE -> EXECUTE -> STATE
                 |                     |        |          |
            [X, Y, Z slots]          [IR]   [Instruction] [Registry]

Modules:
    decoder: raw cell -> Instruction (total, pure)
    state: MachineState dataclass with copy-returning mutators
    registry: Execute-phase primitives, one per opcode
    assembler: Source text + variables -> memory image
    cpu: Pure step() and the VonNeumannCPU driver
"""

__version__ = "0.1.0"

from .decoder import Instruction, decode
from .state import MachineState, Phase, create_initial_state
from .registry import ExecuteRegistry
from .assembler import CapacityError, assemble
from .cpu import StepResult, VonNeumannCPU, step

__all__ = [
    "Instruction",
    "decode",
    "MachineState",
    "Phase",
    "create_initial_state",
    "ExecuteRegistry",
    "CapacityError",
    "assemble",
    "StepResult",
    "VonNeumannCPU",
    "step",
]
