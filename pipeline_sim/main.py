#!/usr/bin/env python3
"""
Pipeline Simulation Driver

Loads an instruction sequence and its dependency graph, reports the closed-form
cycle counts, and replays the overlapped execution on the four-stage pipeline
cycle by cycle.

Usage:
    pipeline-sim                                   # InstructionInputData.txt, then ../Data/
    pipeline-sim -i program.txt                    # Explicit input file
    pipeline-sim -i program.txt --json             # JSON output
    pipeline-sim -i program.txt --dot graph.dot    # Export DOT file
    pipeline-sim -i program.txt --no-color -v      # Plain text with debug trace
"""

import sys
import json
import logging
import argparse
from dataclasses import dataclass
from typing import List, Optional

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.logging import RichHandler
from rich import box

from pipeline_sim.cycle_model import CycleEstimate, build_instructions
from pipeline_sim.dependency_graph import MAX_INSTRUCTIONS, DependencyGraph, export_dot
from pipeline_sim.loader import DEFAULT_DATA_DIR, DEFAULT_INPUT_FILE, load_with_fallback
from pipeline_sim.pipeline import ACTIVE_STAGES, PipelineSimulator, SimulationResult

logger = logging.getLogger(__name__)

SEPARATOR = "-" * 66


@dataclass
class SimulationReport:
    """Closed-form estimate and simulated run for one graph."""
    num_nodes: int
    num_edges: int
    is_acyclic: bool
    estimate: CycleEstimate
    result: SimulationResult

    @property
    def model_matches(self) -> bool:
        return (self.estimate.stall_count == self.result.stall_count
                and self.estimate.partial_overlapped_cycles == self.result.total_cycles)

    def to_dict(self) -> dict:
        return {
            "num_nodes": self.num_nodes,
            "num_edges": self.num_edges,
            "is_acyclic": self.is_acyclic,
            "estimate": self.estimate.to_dict(),
            "simulation": self.result.to_dict(),
            "model_matches": self.model_matches,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


def simulate(graph: DependencyGraph, sim: Optional[PipelineSimulator] = None) -> SimulationReport:
    """Feed every instruction in the graph to the simulator and run it to drain."""
    if sim is None:
        sim = PipelineSimulator()

    for instr in build_instructions(graph):
        sim.insert_instruction(instr)

    result = sim.run()
    return SimulationReport(
        num_nodes=graph.num_nodes,
        num_edges=graph.num_edges,
        is_acyclic=graph.is_acyclic(),
        estimate=CycleEstimate.from_graph(graph),
        result=result,
    )


# ============== Output Formatting ==============

class PlainPrinter:
    """Plain text output without Rich."""

    def print_report(self, report: SimulationReport):
        print(f"Total time for sequential (non overlapped) execution: "
              f"{report.estimate.sequential_cycles} cycles")
        print(SEPARATOR)
        print("Overlapped execution:")
        for snap in report.result.timeline:
            print(snap.render())
        print(SEPARATOR)
        print(f"Total time for pipelined (overlapped) execution: "
              f"{report.estimate.partial_overlapped_cycles} cycles")

    def print_summary(self, report: SimulationReport):
        est = report.estimate
        print()
        print(f"Instructions:           {est.num_instructions}")
        print(f"Dependencies:           {report.num_edges}")
        print(f"Stalls:                 {est.stall_count}")
        print(f"Best case (overlapped): {est.overlapped_cycles} cycles")
        print(f"Worst case:             {est.worst_case_cycles} cycles")
        print(f"Speedup:                {est.speedup:.2f}x")
        if not report.is_acyclic:
            print("Warning: dependency graph contains a cycle")


class RichPrinter:
    """Rich colored output."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def print_report(self, report: SimulationReport):
        est = report.estimate
        self.console.print(Panel("PIPELINE SIMULATION", style="bold cyan", box=box.DOUBLE))

        timeline = Table(title="Overlapped execution", box=box.ROUNDED)
        timeline.add_column("Cycle", justify="right", style="dim")
        for stage in ACTIVE_STAGES:
            timeline.add_column(stage.value, justify="center")
        timeline.add_column("", style="red")

        for snap in report.result.timeline:
            by_stage = snap.by_stage()
            cells = []
            for stage in ACTIVE_STAGES:
                ids = " ".join(by_stage[stage])
                cells.append(f"[dim]{ids}[/dim]" if ids == "-" else ids)
            timeline.add_row(str(snap.cycle), *cells, "stall" if snap.stalled else "")

        self.console.print(timeline)

        table = Table(show_header=False, box=box.SIMPLE)
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")
        table.add_row("Sequential (non overlapped)", f"{est.sequential_cycles} cycles")
        table.add_row("Pipelined (overlapped)", f"[bold]{est.partial_overlapped_cycles} cycles[/bold]")
        self.console.print(table)

    def print_summary(self, report: SimulationReport):
        est = report.estimate
        table = Table(show_header=False, box=box.SIMPLE)
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("Instructions", f"{est.num_instructions}")
        table.add_row("Dependencies", f"{report.num_edges}")
        stall_color = "green" if est.stall_count == 0 else "yellow"
        table.add_row("Stalls", f"[{stall_color}]{est.stall_count}[/{stall_color}]")
        table.add_row("Best case (overlapped)", f"{est.overlapped_cycles} cycles")
        table.add_row("Worst case", f"{est.worst_case_cycles} cycles")
        table.add_row("Speedup", f"[bold magenta]{est.speedup:.2f}x[/bold magenta]")
        self.console.print(table)

        if not report.is_acyclic:
            self.console.print("[bold red]Warning:[/bold red] dependency graph contains a cycle")


def get_printer(use_rich: bool = True):
    if use_rich:
        return RichPrinter()
    return PlainPrinter()


def configure_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


# ============== Main ==============

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Simulate overlapped execution on a four-stage instruction pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    pipeline-sim                                 # Default input file
    pipeline-sim -i program.txt                  # Explicit input file
    pipeline-sim -i program.txt --json           # JSON output
    pipeline-sim -i program.txt --dot graph.dot  # Export DOT file
        """
    )
    parser.add_argument("--input", "-i", default=DEFAULT_INPUT_FILE,
                        help=f"Instruction data file (default: {DEFAULT_INPUT_FILE})")
    parser.add_argument("--data-dir", default=str(DEFAULT_DATA_DIR),
                        help="Directory searched when the input file loads nothing")
    parser.add_argument("--max-nodes", type=int, default=MAX_INSTRUCTIONS,
                        help=f"Dependency graph capacity (default: {MAX_INSTRUCTIONS})")
    parser.add_argument("--json", action="store_true", help="Output JSON instead of human-readable")
    parser.add_argument("--dot", metavar="FILE", help="Export dependency graph to DOT file for Graphviz")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument("--verbose", "-v", action="store_true", help="Trace every pipeline cycle")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    print(f"Loading {args.input}...", file=sys.stderr)
    graph = DependencyGraph(args.max_nodes)
    load_with_fallback(graph, args.input, args.data_dir)

    if graph.num_nodes == 0:
        print("No instructions loaded, nothing to simulate.", file=sys.stderr)
        return 1

    print(f"Simulating {graph.num_nodes} instructions...", file=sys.stderr)
    report = simulate(graph)
    if not report.model_matches:
        logger.warning("simulated run (%d cycles, %d stalls) disagrees with the cycle model",
                       report.result.total_cycles, report.result.stall_count)

    if args.dot:
        export_dot(graph, args.dot)

    if args.json:
        print(report.to_json())
    else:
        printer = get_printer(not args.no_color)
        printer.print_report(report)
        printer.print_summary(report)

    return 0


if __name__ == "__main__":
    sys.exit(main())
