"""Four-stage instruction pipeline simulator with data-hazard stalls."""

from pipeline_sim.dependency_graph import DependencyGraph, GraphNode, DirectedEdge, MAX_INSTRUCTIONS
from pipeline_sim.pipeline import PipelineSimulator, Instruction, Stage, SimulationResult
from pipeline_sim.cycle_model import CycleEstimate

__all__ = [
    "DependencyGraph",
    "GraphNode",
    "DirectedEdge",
    "MAX_INSTRUCTIONS",
    "PipelineSimulator",
    "Instruction",
    "Stage",
    "SimulationResult",
    "CycleEstimate",
]
