"""
Instruction data loader.

Input format:
    a b c d e f        <- first line: instructions in program order
    b a                <- then one "dependent dependency" pair per line
    d c

Each pair adds an edge dependent -> dependency, weighted by the distance
between the two letters. Ids outside a..y are dropped by the graph.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

from pipeline_sim.dependency_graph import MAX_INSTRUCTIONS, DependencyGraph

logger = logging.getLogger(__name__)

DEFAULT_INPUT_FILE = "InstructionInputData.txt"
DEFAULT_DATA_DIR = Path("..") / "Data"


def parse_instructions(line: str, limit: int = MAX_INSTRUCTIONS) -> List[str]:
    """First character of each whitespace-separated token, at most `limit` of them."""
    return [token[0] for token in line.split()][:limit]


def parse_dependencies(lines: Iterable[str]) -> List[Tuple[str, str]]:
    """
    Pair up the remaining non-blank characters as (dependent, dependency).
    A trailing unpaired character is ignored.
    """
    chars = [ch for line in lines for ch in line if not ch.isspace()]
    return list(zip(chars[0::2], chars[1::2]))


def edge_weight(dependent: str, dependency: str) -> int:
    """Dependency distance between when the two instructions issue."""
    return ord(dependent) - ord(dependency)


def load_lines(lines: List[str], graph: DependencyGraph) -> int:
    """Populate graph from already-read lines. Returns instructions read."""
    if not lines:
        return 0

    instructions = parse_instructions(lines[0])
    for ident in instructions:
        graph.add_node(ident)

    for dependent, dependency in parse_dependencies(lines[1:]):
        graph.add_edge(dependent, dependency, edge_weight(dependent, dependency))

    return len(instructions)


def load_data(path: Union[str, Path], graph: DependencyGraph) -> int:
    """
    Read an instruction data file into graph.

    Returns the number of instructions read. 0 if the file cannot be read.
    """
    try:
        with open(path, encoding="utf-8") as f:
            lines = f.read().splitlines()
    except (OSError, UnicodeDecodeError) as e:
        logger.error("Error opening data file %s: %s", path, e)
        return 0

    count = load_lines(lines, graph)
    logger.debug("loaded %d instructions, %d dependencies from %s",
                 count, graph.num_edges, path)
    return count


def load_with_fallback(graph: DependencyGraph,
                       filename: Union[str, Path] = DEFAULT_INPUT_FILE,
                       data_dir: Optional[Union[str, Path]] = DEFAULT_DATA_DIR) -> int:
    """Try `filename` first, then the same name under `data_dir`."""
    count = load_data(filename, graph)
    if count == 0 and data_dir is not None:
        fallback = Path(data_dir) / Path(filename).name
        logger.info("nothing loaded from %s, trying %s", filename, fallback)
        count = load_data(fallback, graph)
    return count
