"""
Closed-Form Cycle Model for the Four-Stage Pipeline

Predicts execution time straight from the dependency graph, without running
the simulator:

    sequential          N * 4           every instruction runs all 4 stages alone
    overlapped          N + 3           first result after 4 cycles, then 1 per cycle
    partial overlapped  N + M + 3       plus one bubble per hazard
    worst case          2N + 2          every instruction after the first stalls

N is the number of instructions and M the number of stalls. With data read in
EX and written only after WB, the hazard window is two cycles wide. So the
only dependency that costs a stall is one on the instruction immediately
before (b -> a). Dependencies further back have already been written.
"""

import json
from dataclasses import dataclass
from typing import List, Tuple

from pipeline_sim.dependency_graph import DependencyGraph, predecessor_id
from pipeline_sim.pipeline import PIPELINE_DEPTH, Instruction

# Non-overlapped cycles to run one instruction through the pipeline
BASE_CYCLES_PER_INSTRUCTION = PIPELINE_DEPTH

# Cycles before the first instruction completes, beyond its own issue cycle
PIPELINE_FILL_CYCLES = PIPELINE_DEPTH - 1


def sequential_cycles(graph: DependencyGraph) -> int:
    return graph.num_nodes * BASE_CYCLES_PER_INSTRUCTION


def overlapped_cycles(graph: DependencyGraph) -> int:
    """Best case: fully pipelined, no hazards."""
    return graph.num_nodes + PIPELINE_FILL_CYCLES


def stall_count(graph: DependencyGraph) -> int:
    """Number of present nodes with an edge to the letter right before them."""
    stalls = 0
    for node in graph:
        if node.is_valid and node.has_edge(predecessor_id(node.node_id)):
            stalls += 1
    return stalls


def partial_overlapped_cycles(graph: DependencyGraph) -> int:
    """Pipelined execution including one cycle per hazard stall."""
    return graph.num_nodes + stall_count(graph) + PIPELINE_FILL_CYCLES


def worst_case_cycles(graph: DependencyGraph) -> int:
    n = graph.num_nodes
    if n == 0:
        return 0
    return n + PIPELINE_FILL_CYCLES + (n - 1)


def dependency_flags(graph: DependencyGraph) -> List[Tuple[str, bool]]:
    """(id, depends on its immediate predecessor) for each instruction, alphabetical."""
    return [(node.node_id, node.has_edge(predecessor_id(node.node_id)))
            for node in graph.nodes()]


def build_instructions(graph: DependencyGraph) -> List[Instruction]:
    return [Instruction(ident, data_dependent=dependent)
            for ident, dependent in dependency_flags(graph)]


@dataclass
class CycleEstimate:
    """All closed-form figures for one graph."""
    num_instructions: int
    stall_count: int
    sequential_cycles: int
    overlapped_cycles: int
    partial_overlapped_cycles: int
    worst_case_cycles: int

    @classmethod
    def from_graph(cls, graph: DependencyGraph) -> "CycleEstimate":
        return cls(
            num_instructions=graph.num_nodes,
            stall_count=stall_count(graph),
            sequential_cycles=sequential_cycles(graph),
            overlapped_cycles=overlapped_cycles(graph),
            partial_overlapped_cycles=partial_overlapped_cycles(graph),
            worst_case_cycles=worst_case_cycles(graph),
        )

    @property
    def speedup(self) -> float:
        return self.sequential_cycles / max(1, self.partial_overlapped_cycles)

    def to_dict(self) -> dict:
        return {
            "num_instructions": self.num_instructions,
            "stall_count": self.stall_count,
            "sequential_cycles": self.sequential_cycles,
            "overlapped_cycles": self.overlapped_cycles,
            "partial_overlapped_cycles": self.partial_overlapped_cycles,
            "worst_case_cycles": self.worst_case_cycles,
            "speedup": round(self.speedup, 2),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)
