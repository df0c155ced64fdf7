"""Command-line interface for the Cairo VM."""

import logging
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from cairo_vm.compiler import cairo_compile
from cairo_vm.config import VmConfig
from cairo_vm.profiler import profile_frames, trace_to_frame
from cairo_vm.vm.cairo_runner import CairoRunner
from cairo_vm.vm.errors import CairoVmError
from cairo_vm.vm.program import Program
from cairo_vm.vm.run_resources import RunResources
from cairo_vm.vm.writers import write_binary_memory, write_binary_trace

load_dotenv()

logging.basicConfig(
    level=VmConfig.LOG_LEVEL,
    format=VmConfig.LOG_FORMAT,
    datefmt=VmConfig.LOG_DATE_FORMAT,
    handlers=[RichHandler(rich_tracebacks=True)],
)
logger = logging.getLogger("cairo_vm")
console = Console()

app = typer.Typer(
    help="Cairo VM - Run compiled Cairo programs and export their trace and memory.",
    no_args_is_help=True,
)


def execute(
    program_path: Path,
    entrypoint: str,
    layout: str,
    max_steps: Optional[int],
    trace_enabled: bool,
) -> CairoRunner:
    if program_path.suffix == ".cairo":
        program = Program.from_sw_program(
            cairo_compile(program_path), entrypoint=entrypoint
        )
    else:
        program = Program.load(program_path, entrypoint=entrypoint)
    runner = CairoRunner(program, layout=layout, trace_enabled=trace_enabled)
    end = runner.initialize()
    runner.run_until_pc(end, RunResources(max_steps))
    runner.end_run()
    runner.read_return_values()
    runner.relocate()
    logger.info(f"Program ran in {runner.vm.current_step} steps")
    return runner


@app.command()
def run(
    program_path: Path = typer.Argument(
        ...,
        help="Path to the compiled program (JSON) or to a Cairo source file",
        exists=True,
        dir_okay=False,
        file_okay=True,
    ),
    entrypoint: str = typer.Option("main", help="Function to run"),
    layout: str = typer.Option(VmConfig.DEFAULT_LAYOUT, help="Layout to run with"),
    max_steps: Optional[int] = typer.Option(
        VmConfig.DEFAULT_MAX_STEPS, "--max-steps", help="Maximum number of steps"
    ),
    trace_file: Optional[Path] = typer.Option(
        None, help="Path to write the binary relocated trace", dir_okay=False
    ),
    memory_file: Optional[Path] = typer.Option(
        None, help="Path to write the binary relocated memory", dir_okay=False
    ),
    print_output: bool = typer.Option(
        False, "--print-output", help="Print the output builtin segment"
    ),
):
    """
    Runs a compiled Cairo program until its end and optionally writes the
    relocated trace and memory.
    """
    try:
        runner = execute(
            program_path,
            entrypoint,
            layout,
            max_steps,
            trace_enabled=trace_file is not None,
        )
    except CairoVmError as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)

    if print_output:
        console.print("Program output:")
        console.print(runner.get_output(), end="", highlight=False)
    if trace_file is not None:
        with open(trace_file, "wb") as f:
            write_binary_trace(f, runner.relocated_trace)
        logger.info(f"Trace written to {trace_file}")
    if memory_file is not None:
        with open(memory_file, "wb") as f:
            write_binary_memory(f, runner.relocated_memory)
        logger.info(f"Memory written to {memory_file}")


@app.command()
def profile(
    program_path: Path = typer.Argument(
        ...,
        help="Path to the compiled program (JSON) or to a Cairo source file",
        exists=True,
        dir_okay=False,
        file_okay=True,
    ),
    entrypoint: str = typer.Option("main", help="Function to run"),
    layout: str = typer.Option(VmConfig.DEFAULT_LAYOUT, help="Layout to run with"),
    top: int = typer.Option(10, help="Number of frames to display"),
):
    """Runs a program and prints the call frames with the most steps."""
    try:
        runner = execute(program_path, entrypoint, layout, None, trace_enabled=True)
    except CairoVmError as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)

    frames = profile_frames(trace_to_frame(runner.relocated_trace)).sort(
        "cumulative_cost", descending=True
    )
    table = Table(title=f"{program_path.name}: {runner.vm.current_step} steps")
    for column in frames.columns:
        table.add_column(column, justify="right")
    for row in frames.head(top).rows():
        table.add_row(*("-" if value is None else str(value) for value in row))
    console.print(table)


if __name__ == "__main__":
    app()
