"""VN-CPU Interactive Demo.

A Gradio web interface for stepping through the fetch-decode-execute cycle.

Usage:
    cd /path/to/vn-cpu
    python demo/gradio_app.py

Features:
    - Write a program with X, Y, Z variables and assemble it into memory
    - Step one phase at a time or auto-run on a timer
    - Watch PC, IR, ACC, phase and the memory grid change
    - Edit memory cells by hand
    - Full history of trace lines
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import gradio as gr
from vn_cpu import CapacityError, VonNeumannCPU
from vn_cpu.assembler import TEMPLATE_SYMBOLS, quick_template
from vn_cpu.decoder import decode, format_instruction, format_value
from vn_cpu.state import DEFAULT_MEM_SIZE


DEFAULT_SPEED_MS = 600
HISTORY_SHOWN = 200


# =============================================================================
# Rendering
# =============================================================================

def render(cpu: VonNeumannCPU) -> tuple:
    """Render the driver state for display.

    Returns:
        Tuple of (status, registers_text, memory_rows, outputs_text, history_text)
    """
    state = cpu.state
    target = cpu.target_address()

    memory_rows = []
    for addr, cell in enumerate(state.memory):
        markers = []
        if addr == state.pc:
            markers.append("PC")
        if addr == target:
            markers.append("target")
        memory_rows.append([addr, "" if cell is None else format_value(cell), " ".join(markers)])

    reg_lines = [
        "REGISTERS",
        "=" * 30,
        f"  PC:     {state.pc}",
        f"  IR:     {format_value(state.ir)}",
        f"  Decoded: {format_instruction(decode(state.ir))}",
        f"  ACC:    {format_value(state.acc)}",
        f"  Phase:  {state.phase.value}",
        f"  Cycles: {state.cycle_count}",
        f"  Halted: {'Yes' if state.halted else 'No'}",
    ]

    outputs_text = ", ".join(format_value(v) for v in state.outputs)

    history = cpu.history[-HISTORY_SHOWN:]
    history_text = "\n".join(
        f"[{entry.index:>4}] PC={entry.pc:<3} {entry.description}" for entry in history
    )

    return cpu.last_action, "\n".join(reg_lines), memory_rows, outputs_text, history_text


# =============================================================================
# Event handlers
# =============================================================================

def assemble_program(cpu: VonNeumannCPU, source: str, x, y, z, mem_size) -> tuple:
    """Assemble into memory; a rejected program keeps the current machine."""
    mem_size = int(mem_size or DEFAULT_MEM_SIZE)
    candidate = cpu if mem_size == cpu.mem_size else VonNeumannCPU(mem_size=mem_size)
    try:
        candidate.load_program(source, {"X": x, "Y": y, "Z": z})
    except CapacityError as e:
        return (cpu, f"Error: {e}") + render(cpu)[1:]
    return (candidate,) + render(candidate)


def step_once(cpu: VonNeumannCPU) -> tuple:
    cpu.step()
    return (cpu,) + render(cpu)


def tick(cpu: VonNeumannCPU) -> tuple:
    """Timer callback: one phase per tick, timer stops once halted."""
    if not cpu.is_halted():
        cpu.step()
    running = not cpu.is_halted()
    return (cpu,) + render(cpu) + (gr.Timer(active=running), running)


def toggle_run(cpu: VonNeumannCPU, running: bool) -> tuple:
    running = not running and not cpu.is_halted()
    return gr.Timer(active=running), running


def set_speed(speed_ms) -> gr.Timer:
    return gr.Timer(value=float(speed_ms) / 1000.0)


def reset_cpu(cpu: VonNeumannCPU) -> tuple:
    cpu.reset()
    return (cpu,) + render(cpu) + (gr.Timer(active=False), False)


def load_sample(cpu: VonNeumannCPU) -> tuple:
    cpu.load_sample()
    return (cpu,) + render(cpu) + (gr.Timer(active=False), False)


def clear_memory(cpu: VonNeumannCPU) -> tuple:
    cpu.clear_memory()
    return (cpu,) + render(cpu) + (gr.Timer(active=False), False)


def write_cell(cpu: VonNeumannCPU, index, text: str) -> tuple:
    cpu.edit_cell(int(index or 0), text)
    return (cpu,) + render(cpu)


def load_template(op: str) -> str:
    return quick_template(op)


# =============================================================================
# Gradio Interface
# =============================================================================

def create_demo():
    """Create and return the Gradio demo interface."""

    with gr.Blocks(title="VN-CPU Demo", theme=gr.themes.Soft()) as demo:
        gr.Markdown("""
        # VN-CPU: Von Neumann Machine Simulator

        One accumulator, one unified memory for code and data, and an
        instruction cycle you can watch phase by phase.

        **Cycle**: `fetch -> decode -> execute -> fetch ...`
        """)

        cpu_state = gr.State(VonNeumannCPU)
        running_state = gr.State(False)
        timer = gr.Timer(value=DEFAULT_SPEED_MS / 1000.0, active=False)

        with gr.Row():
            with gr.Column(scale=2):
                gr.Markdown("### Program")

                template_dropdown = gr.Dropdown(
                    choices=list(TEMPLATE_SYMBOLS.keys()),
                    value="ADD",
                    label="Template: X op Y = Z"
                )

                program_input = gr.Textbox(
                    value=quick_template("ADD"),
                    label="Source Code",
                    lines=12,
                    placeholder="LOAD X\nADD Y\nSTORE Z\nOUT\nHLT"
                )

                with gr.Row():
                    x_input = gr.Number(value=2, label="X", precision=0)
                    y_input = gr.Number(value=2, label="Y", precision=0)
                    z_input = gr.Number(value=0, label="Z", precision=0)

                gr.Markdown("### Settings")

                with gr.Row():
                    mem_size = gr.Slider(
                        minimum=4,
                        maximum=64,
                        value=DEFAULT_MEM_SIZE,
                        step=1,
                        label="Memory Cells"
                    )
                    speed = gr.Slider(
                        minimum=150,
                        maximum=1500,
                        value=DEFAULT_SPEED_MS,
                        step=50,
                        label="Run Speed (ms per phase)"
                    )

                assemble_button = gr.Button("Assemble & Load", variant="primary")
                with gr.Row():
                    step_button = gr.Button("Step")
                    run_button = gr.Button("Run / Pause")
                    reset_button = gr.Button("Reset")
                with gr.Row():
                    sample_button = gr.Button("Load Sample")
                    clear_button = gr.Button("Clear Memory")

                gr.Markdown("### Edit Memory")
                with gr.Row():
                    cell_index = gr.Number(value=0, label="Address", precision=0)
                    cell_value = gr.Textbox(label="Value", placeholder="LOAD 5, 42 or blank")
                write_button = gr.Button("Write Cell")

            with gr.Column(scale=3):
                status_output = gr.Textbox(label="Last Action", interactive=False)
                with gr.Row():
                    registers_output = gr.Textbox(
                        label="CPU",
                        lines=10,
                        interactive=False
                    )
                    memory_output = gr.Dataframe(
                        headers=["Addr", "Cell", ""],
                        datatype=["number", "str", "str"],
                        label="Memory",
                        interactive=False
                    )
                outputs_output = gr.Textbox(label="Outputs (OUT)", interactive=False)
                history_output = gr.Textbox(
                    label="History",
                    lines=15,
                    interactive=False
                )

        # ISA Reference
        with gr.Accordion("ISA Reference", open=False):
            gr.Markdown("""
            | Instruction | Description | Example |
            |-------------|-------------|---------|
            | `LOAD v` | ACC <- v | `LOAD 5` |
            | `LOADI a` | ACC <- MEM[a] | `LOADI X` |
            | `STORE a` | MEM[a] <- ACC | `STORE Z` |
            | `ADD v` / `SUB v` | ACC <- ACC +/- v | `ADD 3` |
            | `MUL v` / `DIV v` | ACC <- ACC * v, ACC / v (toward zero, /0 -> 0) | `MUL Y` |
            | `ADDM a` / `SUBM a` | ACC <- ACC +/- MEM[a] | `ADDM X` |
            | `MULM a` / `DIVM a` | ACC <- ACC * MEM[a], ACC / MEM[a] | `DIVM Y` |
            | `JMP a` | PC <- a | `JMP 0` |
            | `JZ a` / `JNZ a` | Jump if ACC == 0 / ACC != 0 | `JNZ 2` |
            | `OUT` | Append ACC to outputs | `OUT` |
            | `NOP` | No operation | `NOP` |
            | `HLT` | Stop execution | `HLT` |

            **Variables**: X, Y, Z are stored right after the program.
            Address instructions receive their address, the others their value.
            **Comments**: `//` to end of line.
            """)

        views = [status_output, registers_output, memory_output, outputs_output, history_output]

        # Event handlers
        template_dropdown.change(
            fn=load_template,
            inputs=[template_dropdown],
            outputs=[program_input]
        )

        assemble_button.click(
            fn=assemble_program,
            inputs=[cpu_state, program_input, x_input, y_input, z_input, mem_size],
            outputs=[cpu_state] + views
        )

        step_button.click(fn=step_once, inputs=[cpu_state], outputs=[cpu_state] + views)

        run_button.click(
            fn=toggle_run,
            inputs=[cpu_state, running_state],
            outputs=[timer, running_state]
        )

        timer.tick(
            fn=tick,
            inputs=[cpu_state],
            outputs=[cpu_state] + views + [timer, running_state]
        )

        speed.change(fn=set_speed, inputs=[speed], outputs=[timer])

        for button, handler in (
            (reset_button, reset_cpu),
            (sample_button, load_sample),
            (clear_button, clear_memory),
        ):
            button.click(
                fn=handler,
                inputs=[cpu_state],
                outputs=[cpu_state] + views + [timer, running_state]
            )

        write_button.click(
            fn=write_cell,
            inputs=[cpu_state, cell_index, cell_value],
            outputs=[cpu_state] + views
        )

        demo.load(fn=lambda cpu: (cpu,) + render(cpu), inputs=[cpu_state], outputs=[cpu_state] + views)

    return demo


# =============================================================================
# Main
# =============================================================================

if __name__ == "__main__":
    demo = create_demo()
    demo.launch(
        share=False,
        server_name="0.0.0.0",
        server_port=7861,
        show_error=True
    )
