"""
Dependency Graph for Pipelined Instruction Streams

Models the instruction dependency DAG (Directed Acyclic Graph) consumed by the
pipeline simulator. Each node is a single instruction, identified by one letter
in the range a..y (case-insensitive), and each directed edge means "depends on",
weighted by the letter distance between the two instructions.

Layout: a fixed-size slot array indexed by letter (slot = letter - 'a'), so node
lookup is O(1) without a hash map. Out-edges are kept unique by destination and
iterate in ascending destination order, so "does X depend on its immediate
predecessor" is a single membership test.

Capacity note: the slot array is sized by `max_nodes`, while the legal letter
range always spans 25 slots. A graph built with fewer than 25 slots silently
rejects the letters that fall past its capacity. Build with MAX_INSTRUCTIONS
slots to accept every legal letter.

Usage:
    graph = DependencyGraph(MAX_INSTRUCTIONS)
    graph.add_node("a"); graph.add_node("b")
    graph.add_edge("b", "a", 1)
    graph.has_edge("b", "a")      # True
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, TextIO, Tuple

import networkx as nx

logger = logging.getLogger(__name__)

# Instructions are the letters a..y, so at most 25 of them
MAX_INSTRUCTIONS = 25
DEFAULT_MAX_NODES = 10

FIRST_NODE_ID = "a"
LAST_NODE_ID = "y"


def is_valid_node_id(node_id: Optional[str]) -> bool:
    """True for a single letter in a..y, either case."""
    # non-ASCII letters can lower-case into a..y ('K' Kelvin sign) or into two chars
    if not node_id or len(node_id) != 1 or not node_id.isascii():
        return False
    return FIRST_NODE_ID <= node_id.lower() <= LAST_NODE_ID


def normalize_node_id(node_id: Optional[str]) -> Optional[str]:
    """Lower-cased id, or None if the id is not a legal instruction letter."""
    if not is_valid_node_id(node_id):
        return None
    return node_id.lower()


def predecessor_id(node_id: str) -> str:
    """The id one letter before node_id ('c' -> 'b'). May fall outside a..y."""
    return chr(ord(node_id.lower()) - 1)


@dataclass(frozen=True)
class DirectedEdge:
    """An 'out' edge, identified only by its destination."""
    dest_id: str
    weight: int = 0


class GraphNode:
    """
    A node slot in the graph.

    A vacant slot has node_id None. Out-edges live in a dict keyed by
    destination id, so inserting a second edge to the same destination is
    rejected and the first weight wins.
    """

    def __init__(self, node_id: Optional[str] = None):
        self.node_id = node_id
        self._edges: Dict[str, DirectedEdge] = {}

    @property
    def is_valid(self) -> bool:
        return self.node_id is not None

    @property
    def num_edges(self) -> int:
        return len(self._edges) if self.is_valid else 0

    def add_edge(self, dest_id: str, weight: int = 0) -> bool:
        if not self.is_valid or dest_id in self._edges:
            return False
        self._edges[dest_id] = DirectedEdge(dest_id=dest_id, weight=weight)
        return True

    def has_edge(self, dest_id: Optional[str]) -> bool:
        if not dest_id:
            return False
        return dest_id.lower() in self._edges

    def get_edge(self, dest_id: str) -> Optional[DirectedEdge]:
        return self._edges.get(dest_id.lower())

    def edges(self) -> List[DirectedEdge]:
        """Out-edges in ascending destination order."""
        return [self._edges[k] for k in sorted(self._edges)]

    def __repr__(self) -> str:
        return f"GraphNode({self.node_id!r}, edges={[e.dest_id for e in self.edges()]})"


class DependencyGraph:
    """
    Bounded instruction dependency graph.

    Built once by the loader, then only queried. Every mutating call fails
    silently by returning False: invalid ids, out-of-capacity slots, duplicate
    nodes and duplicate edges all leave the graph unchanged.
    """

    def __init__(self, max_nodes: int = DEFAULT_MAX_NODES):
        self.max_nodes = max_nodes
        self._num_nodes = 0
        self._slots: List[GraphNode] = [GraphNode() for _ in range(max_nodes)]
        if max_nodes < MAX_INSTRUCTIONS:
            logger.debug("graph capacity %d is below %d, letters past slot %d will be rejected",
                         max_nodes, MAX_INSTRUCTIONS, max_nodes - 1)

    def _slot_index(self, node_id: Optional[str]) -> Optional[int]:
        norm = normalize_node_id(node_id)
        if norm is None:
            return None
        index = ord(norm) - ord(FIRST_NODE_ID)
        if index >= self.max_nodes:
            return None
        return index

    def add_node(self, node_id: str) -> bool:
        index = self._slot_index(node_id)
        if index is None:
            logger.debug("rejected node %r: invalid id or out of capacity", node_id)
            return False

        slot = self._slots[index]
        if slot.is_valid:
            logger.debug("rejected node %r: already present", node_id)
            return False

        slot.node_id = node_id.lower()
        self._num_nodes += 1
        return True

    def add_edge(self, from_id: str, to_id: str, weight: int = 0) -> bool:
        """
        Add a directed edge from_id -> to_id ("from_id depends on to_id").

        The destination is not required to be present in the graph.
        """
        dest = normalize_node_id(to_id)
        index = self._slot_index(from_id)
        if dest is None or index is None:
            logger.debug("rejected edge %r -> %r: invalid id", from_id, to_id)
            return False

        added = self._slots[index].add_edge(dest, weight)
        if not added:
            logger.debug("rejected edge %r -> %r: source absent or duplicate edge", from_id, to_id)
        return added

    def has_node(self, node_id: str) -> bool:
        index = self._slot_index(node_id)
        return index is not None and self._slots[index].is_valid

    def has_edge(self, from_id: str, to_id: str) -> bool:
        node = self.get_node(from_id)
        return node is not None and node.has_edge(to_id)

    def get_node(self, node_id: str) -> Optional[GraphNode]:
        """The present node for node_id, or None."""
        index = self._slot_index(node_id)
        if index is None or not self._slots[index].is_valid:
            return None
        return self._slots[index]

    @property
    def num_nodes(self) -> int:
        return self._num_nodes

    @property
    def num_edges(self) -> int:
        return sum(slot.num_edges for slot in self._slots)

    def __iter__(self) -> Iterator[GraphNode]:
        """Every slot, vacant ones included, in alphabetical order."""
        return iter(self._slots)

    def nodes(self) -> Iterator[GraphNode]:
        """Present nodes only, in alphabetical order."""
        return (slot for slot in self._slots if slot.is_valid)

    def hazard_edges(self) -> List[Tuple[str, str]]:
        """(node, predecessor) pairs where a node depends on the letter right before it."""
        pairs = []
        for node in self.nodes():
            pred = predecessor_id(node.node_id)
            if node.has_edge(pred):
                pairs.append((node.node_id, pred))
        return pairs

    def to_networkx(self) -> nx.DiGraph:
        G = nx.DiGraph()
        for node in self.nodes():
            G.add_node(node.node_id)
        for node in self.nodes():
            for edge in node.edges():
                G.add_edge(node.node_id, edge.dest_id, weight=edge.weight)
        return G

    def is_acyclic(self) -> bool:
        return nx.is_directed_acyclic_graph(self.to_networkx())

    def __repr__(self) -> str:
        return (f"DependencyGraph(max_nodes={self.max_nodes}, "
                f"nodes={self.num_nodes}, edges={self.num_edges})")


def write_dot(graph: DependencyGraph, f: TextIO) -> int:
    """
    Write the graph in DOT format for Graphviz. Hazard edges (a node depending
    on its immediate predecessor) are drawn in red.

    Returns the number of edges written.
    """
    hazards = set(graph.hazard_edges())

    f.write("digraph DependencyGraph {\n")
    f.write("  rankdir=LR;\n")
    f.write("  node [shape=circle, fontsize=12];\n")
    f.write("  edge [fontsize=9];\n")
    f.write("\n")

    for node in graph.nodes():
        f.write(f'  {node.node_id} [label="{node.node_id}"];\n')

    f.write("\n")

    edge_count = 0
    for node in graph.nodes():
        for edge in node.edges():
            color = ' color="red", penwidth=2' if (node.node_id, edge.dest_id) in hazards else ""
            f.write(f'  {node.node_id} -> {edge.dest_id} [label="{edge.weight}"{color}];\n')
            edge_count += 1

    f.write("}\n")
    return edge_count


def export_dot(graph: DependencyGraph, output_path: str) -> int:
    """
    Export the graph to a DOT file.

    Usage: dot -Tpng output.dot -o graph.png
    """
    with open(output_path, "w") as f:
        edge_count = write_dot(graph, f)
    logger.info("exported DOT graph to %s (%d nodes, %d edges)",
                output_path, graph.num_nodes, edge_count)
    return edge_count
