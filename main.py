#!/usr/bin/env python3
"""VN-CPU Command Line Interface.

Assemble and run programs on the accumulator machine.

Usage:
    python main.py --program programs/add.asm -x 2 -y 2
    python main.py --inline "LOAD X; MUL Y; STORE Z; OUT; HLT" -x 6 -y 7 --trace
"""

import argparse
import logging
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from vn_cpu import CapacityError, VonNeumannCPU
from vn_cpu.decoder import format_value
from vn_cpu.state import DEFAULT_MEM_SIZE


def main():
    parser = argparse.ArgumentParser(
        description="VN-CPU: Von Neumann accumulator machine simulator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # X + Y = Z
    python main.py --inline "LOAD X; ADD Y; STORE Z; OUT; HLT" -x 2 -y 2

    # Full phase-by-phase trace
    python main.py --program programs/countdown.asm -x 3 --trace

    # Multiply with debug logging
    python main.py --program programs/multiply.asm -x 7 -y 6 --log-level DEBUG
        """
    )

    parser.add_argument(
        "--program", "-p",
        type=str,
        help="Path to assembly program file"
    )
    parser.add_argument(
        "--inline", "-i",
        type=str,
        help="Inline assembly (separate instructions with ;)"
    )
    parser.add_argument("-x", type=int, default=0, help="Value bound to X. Default: 0")
    parser.add_argument("-y", type=int, default=0, help="Value bound to Y. Default: 0")
    parser.add_argument("-z", type=int, default=0, help="Value bound to Z. Default: 0")
    parser.add_argument(
        "--mem-size",
        type=int,
        default=DEFAULT_MEM_SIZE,
        help=f"Number of memory cells. Default: {DEFAULT_MEM_SIZE}"
    )
    parser.add_argument(
        "--max-steps",
        type=int,
        default=VonNeumannCPU.DEFAULT_MAX_STEPS,
        help=f"Maximum phase steps (safety limit). Default: {VonNeumannCPU.DEFAULT_MAX_STEPS}"
    )
    parser.add_argument(
        "--trace", "-t",
        action="store_true",
        help="Print full execution trace"
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Minimal output (OUT values only)"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging level. Default: WARNING"
    )

    args = parser.parse_args()

    if not args.program and not args.inline:
        parser.error("Either --program or --inline is required")

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(levelname)s %(name)s: %(message)s"
    )

    if args.program:
        program_path = Path(args.program)
        if not program_path.exists():
            print(f"Error: Program file not found: {args.program}")
            return 1
        source = program_path.read_text()
        if not args.quiet:
            print(f"Loading program: {args.program}")
    else:
        source = args.inline.replace(";", "\n")
        if not args.quiet:
            print("Running inline assembly")

    cpu = VonNeumannCPU(mem_size=args.mem_size, max_steps=args.max_steps)
    try:
        cpu.load_program(source, {"X": args.x, "Y": args.y, "Z": args.z})
    except CapacityError as e:
        print(f"Error: {e}")
        return 1

    if not args.quiet:
        print("-" * 60)
        print("Executing...")
        print("-" * 60)

    try:
        cpu.run()
    except RuntimeError as e:
        print(f"Execution error: {e}")

    if args.trace:
        cpu.print_trace()
    elif not args.quiet:
        print()
        summary = cpu.get_summary()
        print(f"Cycles: {summary['cycles']}")
        print(f"Halted: {summary['halted']}")
        print(f"ACC: {format_value(summary['acc'])}")
        print(f"PC: {summary['pc']}")
        print(f"Outputs: [{', '.join(format_value(v) for v in summary['outputs'])}]")
        print(f"Last: {summary['last_action']}")
    else:
        for value in cpu.outputs:
            print(format_value(value))

    return 0 if cpu.is_halted() else 1


if __name__ == "__main__":
    sys.exit(main())
