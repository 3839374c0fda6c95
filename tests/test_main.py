import io
import json
import os
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout

from rich.console import Console

from pipeline_sim.dependency_graph import MAX_INSTRUCTIONS, DependencyGraph
from pipeline_sim.loader import load_lines
from pipeline_sim.main import PlainPrinter, RichPrinter, main, simulate

SAMPLE = "a b c d e f\nb a\nd b\ne d\nf c\n"


def run_main(argv):
    out, err = io.StringIO(), io.StringIO()
    with redirect_stdout(out), redirect_stderr(err):
        code = main(argv)
    return code, out.getvalue()


class SimulateTests(unittest.TestCase):
    def setUp(self):
        self.graph = DependencyGraph(MAX_INSTRUCTIONS)
        load_lines(SAMPLE.splitlines(), self.graph)

    def test_report(self):
        report = simulate(self.graph)
        self.assertTrue(report.model_matches)
        self.assertTrue(report.is_acyclic)
        self.assertEqual(report.result.total_cycles, 11)
        self.assertEqual(report.estimate.sequential_cycles, 24)

    def test_plain_printer(self):
        out = io.StringIO()
        with redirect_stdout(out):
            PlainPrinter().print_report(simulate(self.graph))
        lines = out.getvalue().splitlines()
        self.assertEqual(lines[0], "Total time for sequential (non overlapped) execution: 24 cycles")
        self.assertEqual(lines[2], "Overlapped execution:")
        self.assertEqual(lines[3], "a")
        self.assertEqual(lines[-1], "Total time for pipelined (overlapped) execution: 11 cycles")
        self.assertEqual(len(lines), 3 + 11 + 2)

    def test_rich_printer(self):
        buf = io.StringIO()
        printer = RichPrinter(Console(file=buf, width=100, color_system=None))
        report = simulate(self.graph)
        printer.print_report(report)
        printer.print_summary(report)
        text = buf.getvalue()
        self.assertIn("PIPELINE SIMULATION", text)
        self.assertIn("11 cycles", text)
        self.assertIn("stall", text)


class MainTests(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmp.name, "input.txt")
        with open(self.path, "w") as f:
            f.write(SAMPLE)

    def tearDown(self):
        self.tmp.cleanup()

    def test_json_output(self):
        code, out = run_main(["-i", self.path, "--json"])
        self.assertEqual(code, 0)
        data = json.loads(out)
        self.assertEqual(data["num_nodes"], 6)
        self.assertEqual(data["estimate"]["stall_count"], 2)
        self.assertEqual(data["simulation"]["total_cycles"], 11)
        self.assertTrue(data["model_matches"])

    def test_plain_output(self):
        code, out = run_main(["-i", self.path, "--no-color"])
        self.assertEqual(code, 0)
        self.assertIn("Overlapped execution:", out)
        self.assertIn("Stalls:                 2", out)

    def test_dot_export(self):
        dot_path = os.path.join(self.tmp.name, "graph.dot")
        code, _ = run_main(["-i", self.path, "--json", "--dot", dot_path])
        self.assertEqual(code, 0)
        with open(dot_path) as f:
            self.assertIn("digraph DependencyGraph", f.read())

    def test_nothing_loaded(self):
        missing = os.path.join(self.tmp.name, "missing.txt")
        code, out = run_main(["-i", missing, "--data-dir", self.tmp.name, "--json"])
        self.assertEqual(code, 1)
        self.assertEqual(out, "")


if __name__ == "__main__":
    unittest.main()
