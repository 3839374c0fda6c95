import unittest

from pipeline_sim.cycle_model import (
    CycleEstimate,
    build_instructions,
    dependency_flags,
    overlapped_cycles,
    partial_overlapped_cycles,
    sequential_cycles,
    stall_count,
    worst_case_cycles,
)
from pipeline_sim.dependency_graph import MAX_INSTRUCTIONS, DependencyGraph
from pipeline_sim.pipeline import PipelineSimulator


def make_graph(program, deps=()):
    graph = DependencyGraph(MAX_INSTRUCTIONS)
    for ident in program.split():
        graph.add_node(ident)
    for dependent, dependency in deps:
        graph.add_edge(dependent, dependency, ord(dependent) - ord(dependency))
    return graph


def run_graph(graph):
    sim = PipelineSimulator()
    for instr in build_instructions(graph):
        sim.insert_instruction(instr)
    return sim.run()


class ScenarioTests(unittest.TestCase):
    def test_no_dependencies(self):
        graph = make_graph("a b c")
        self.assertEqual(sequential_cycles(graph), 12)
        self.assertEqual(overlapped_cycles(graph), 6)
        self.assertEqual(stall_count(graph), 0)
        self.assertEqual(partial_overlapped_cycles(graph), 6)

    def test_one_adjacent_hazard(self):
        graph = make_graph("a b c", [("b", "a")])
        self.assertEqual(stall_count(graph), 1)
        self.assertEqual(partial_overlapped_cycles(graph), 7)

    def test_worked_example(self):
        graph = make_graph("a b c d e f", [("b", "a"), ("d", "b"), ("e", "d"), ("f", "c")])
        self.assertEqual(sequential_cycles(graph), 24)
        self.assertEqual(overlapped_cycles(graph), 9)
        self.assertEqual(stall_count(graph), 2)
        self.assertEqual(partial_overlapped_cycles(graph), 11)

    def test_non_adjacent_dependency_is_not_a_hazard(self):
        graph = make_graph("a b c", [("c", "a")])
        self.assertEqual(stall_count(graph), 0)
        self.assertEqual(partial_overlapped_cycles(graph), 6)
        result = run_graph(graph)
        self.assertEqual(result.stall_count, 0)
        self.assertFalse(any(snap.stalled for snap in result.timeline))

    def test_worst_case(self):
        self.assertEqual(worst_case_cycles(make_graph("a b c")), 8)
        self.assertEqual(worst_case_cycles(make_graph("")), 0)

    def test_formulas_are_pure(self):
        graph = make_graph("a b c d", [("b", "a"), ("d", "c")])
        first = CycleEstimate.from_graph(graph)
        for _ in range(3):
            self.assertEqual(CycleEstimate.from_graph(graph), first)
        self.assertEqual(graph.num_nodes, 4)
        self.assertEqual(graph.num_edges, 2)


class FlagTests(unittest.TestCase):
    def test_dependency_flags_alphabetical(self):
        graph = make_graph("c a b", [("c", "b"), ("b", "a")])
        self.assertEqual(dependency_flags(graph), [("a", False), ("b", True), ("c", True)])

    def test_uppercase_input(self):
        graph = make_graph("A B C", [("B", "A")])
        self.assertEqual(dependency_flags(graph), [("a", False), ("b", True), ("c", False)])

    def test_build_instructions(self):
        graph = make_graph("a b", [("b", "a")])
        instrs = build_instructions(graph)
        self.assertEqual([i.ident for i in instrs], ["a", "b"])
        self.assertEqual([i.data_dependent for i in instrs], [False, True])


class ModelAgreementTests(unittest.TestCase):
    """The closed-form model and the simulator must agree."""

    CASES = [
        ("a b c", []),
        ("a b c", [("b", "a")]),
        ("a b c", [("c", "a")]),
        ("a b c d e f", [("b", "a"), ("d", "b"), ("e", "d"), ("f", "c")]),
        ("a b c d e f g h", [("b", "a"), ("c", "b"), ("d", "c"), ("h", "g")]),
        ("a c e g", [("c", "b"), ("e", "d")]),
        ("b c d e", [("b", "a")]),
        ("b c d e f g", [("b", "a"), ("d", "c"), ("f", "e")]),
        ("a b c d e f g h i j k l m n o p q r s t u v w x y",
         [("b", "a"), ("e", "d"), ("f", "e"), ("k", "a"), ("y", "x")]),
    ]

    def test_stalls_and_cycles_match(self):
        for program, deps in self.CASES:
            with self.subTest(program=program, deps=deps):
                graph = make_graph(program, deps)
                result = run_graph(graph)
                self.assertEqual(result.stall_count, stall_count(graph))
                self.assertEqual(result.total_cycles, partial_overlapped_cycles(graph))
                self.assertEqual(result.completed_count, graph.num_nodes)

    def test_estimate_to_dict(self):
        est = CycleEstimate.from_graph(make_graph("a b c", [("b", "a")]))
        data = est.to_dict()
        self.assertEqual(data["partial_overlapped_cycles"], 7)
        self.assertEqual(data["speedup"], round(12 / 7, 2))


if __name__ == "__main__":
    unittest.main()
