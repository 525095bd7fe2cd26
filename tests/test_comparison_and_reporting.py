import io
import json
import os
import tempfile
import unittest
from contextlib import redirect_stdout
from datetime import datetime

import pandas as pd

from gas_optimizer.cli.main import main
from gas_optimizer.data.providers.synthetic import create_compressor_network, create_sample_network
from gas_optimizer.domain.models import OptimizationResult, OptimizationStatus
from gas_optimizer.domain.pipeline import DeliveryPoint, PipelineNetwork, ReceiptPoint, Segment
from gas_optimizer.services.optimization_service import OptimizationEngine
from gas_optimizer.services.comparison import (
    compare_optimizations,
    estimate_optimization_time,
    recommend_algorithm,
    run_multiple_optimizations,
)
from gas_optimizer.utils.reporting import generate_report, pressures_to_dataframe, result_to_dataframe
from gas_optimizer.utils.serialization import dumps, load_result, save_result


class TestComparison(unittest.TestCase):

    def test_run_and_compare(self):
        results = run_multiple_optimizations(create_compressor_network())
        self.assertEqual(list(results), ["MaximizeThroughput", "MinimizeCost", "BalanceDemand"])
        comparison = compare_optimizations(results)
        self.assertEqual(comparison["algorithms"], list(results))
        self.assertEqual(len(comparison["metrics"]["totalCosts"]), 3)
        self.assertIn(comparison["best"]["cost"], results)
        self.assertIn(comparison["best"]["throughput"], results)

    def test_comparison_serializes(self):
        results = run_multiple_optimizations(create_sample_network())
        data = json.loads(dumps(compare_optimizations(results)))
        self.assertEqual(data["succeeded"], 3)
        self.assertEqual(len(data["metrics"]["totalThroughputs"]), 3)
        for throughput in data["metrics"]["totalThroughputs"]:
            self.assertAlmostEqual(throughput, 500.0, places=4)
        self.assertIsInstance(data["generated"], str)
        self.assertEqual(data["best"]["throughput"], "MaximizeThroughput")

    def test_compare_needs_two_results(self):
        with self.assertRaises(ValueError):
            compare_optimizations({"MaximizeThroughput": OptimizationResult()})

    def test_recommendations(self):
        self.assertEqual(recommend_algorithm(create_sample_network())["algorithm"], "MaximizeThroughput")
        self.assertEqual(recommend_algorithm(create_compressor_network())["algorithm"], "BalanceDemand")

        network = PipelineNetwork(name="Large")
        for i in range(21):
            network.add_point(DeliveryPoint(id=f"D{i}", name=f"D{i}"))
        self.assertEqual(recommend_algorithm(network)["algorithm"], "MinimizeCost")

    def test_time_estimate(self):
        network = create_sample_network()  # complexity 2 + 2*1
        self.assertEqual(estimate_optimization_time(network, "MaximizeThroughput"), 5.0)
        self.assertEqual(estimate_optimization_time(network, "MinimizeCost"), 7.5)
        self.assertAlmostEqual(estimate_optimization_time(network, "BalanceDemand"), 6.0)

        for i in range(60):
            network.add_point(DeliveryPoint(id=f"X{i}", name=f"X{i}"))
        self.assertEqual(estimate_optimization_time(network, "MaximizeThroughput"), 10.0)


class TestReporting(unittest.TestCase):

    def setUp(self):
        self.network = create_sample_network()
        self.result = OptimizationEngine().optimize("MaximizeThroughput", self.network)

    def test_text_report(self):
        report = generate_report(self.result, generated=datetime(2024, 1, 2, 3, 4, 5))
        self.assertIn("=== Gas Pipeline Optimization Report ===", report)
        self.assertIn("Generated: 2024-01-02 03:04:05", report)
        self.assertIn("Status: Optimal", report)
        self.assertIn("S1: 500.00 MMscfd", report)
        self.assertIn("Average Utilization: 62.5%", report)

    def test_failed_report_lists_errors(self):
        result = OptimizationResult(status=OptimizationStatus.INFEASIBLE,
                                    validation_errors=["Segment S9 references non-existent point X"])
        report = generate_report(result)
        self.assertIn("VALIDATION ERRORS:", report)
        self.assertIn("- Segment S9 references non-existent point X", report)

    def test_dataframes(self):
        frame = result_to_dataframe(self.result, self.network)
        self.assertIsInstance(frame, pd.DataFrame)
        self.assertAlmostEqual(frame.loc["S1", "utilization"], 0.625, places=6)
        self.assertAlmostEqual(frame.loc["S1", "transportation_cost"], 50.0, places=4)

        pressures = pressures_to_dataframe(self.result, self.network)
        self.assertEqual(list(pressures.index), ["D1", "R1"])
        self.assertEqual(pressures.loc["R1", "type"], "Receipt")

    def test_charts_are_written(self):
        import matplotlib
        matplotlib.use("Agg")
        from gas_optimizer.utils.visualization import compare_algorithms, visualize_result

        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "result.png")
            visualize_result(self.result, self.network, path=path)
            self.assertTrue(os.path.exists(path))
            path = os.path.join(tmp, "comparison.png")
            compare_algorithms({"A": self.result, "B": self.result}, path=path)
            self.assertTrue(os.path.exists(path))

    def test_save_and_load_result(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "result.json")
            save_result(self.result, path)
            with open(path) as handle:
                self.assertIn("segmentFlows", json.load(handle))
            self.assertEqual(load_result(path), self.result)


class TestCli(unittest.TestCase):

    def setUp(self):
        # Commands without a network file read config.json from the working directory
        self.cwd = os.getcwd()
        self.tmp = tempfile.TemporaryDirectory()
        os.chdir(self.tmp.name)

    def tearDown(self):
        os.chdir(self.cwd)
        self.tmp.cleanup()

    def run_cli(self, *argv):
        out = io.StringIO()
        with redirect_stdout(out):
            code = main(list(argv))
        return code, out.getvalue()

    def test_algorithms(self):
        code, out = self.run_cli("algorithms")
        self.assertEqual(code, 0)
        self.assertIn("BalanceDemand:", out)

    def test_optimize_sample_with_report(self):
        code, out = self.run_cli("optimize", "--report", "--pressure")
        self.assertEqual(code, 0)
        self.assertIn("Status: Optimal", out)

    def test_optimize_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            network_path = os.path.join(tmp, "network.json")
            result_path = os.path.join(tmp, "result.json")
            csv_path = os.path.join(tmp, "flows.csv")
            create_compressor_network().save_to_json(network_path)
            code, _ = self.run_cli("optimize", network_path, "-a", "BalanceDemand",
                                   "-o", result_path, "--csv", csv_path)
            self.assertEqual(code, 0)
            self.assertEqual(load_result(result_path).algorithm, "BalanceDemand")
            self.assertEqual(len(pd.read_csv(csv_path)), 5)

    def test_validate_invalid_file(self):
        network = create_sample_network()
        network.segments["S2"] = Segment(id="S2", from_point_id="R1", to_point_id="Q1")
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "network.json")
            network.save_to_json(path)
            code, out = self.run_cli("validate", path)
        self.assertEqual(code, 1)
        self.assertFalse(json.loads(out)["isValid"])

    def test_sample_round_trips(self):
        code, out = self.run_cli("sample")
        self.assertEqual(code, 0)
        self.assertEqual(PipelineNetwork.from_json(out), create_sample_network())

    def test_config_json_in_working_directory(self):
        create_compressor_network().save_to_json("config.json")
        code, _ = self.run_cli("optimize", "-o", "result.json")
        self.assertEqual(code, 0)
        self.assertIn("S5", load_result("result.json").segment_flows)

    def test_sample_without_config_json(self):
        code, _ = self.run_cli("optimize", "-o", "result.json")
        self.assertEqual(code, 0)
        self.assertEqual(list(load_result("result.json").segment_flows), ["S1"])

    def test_compare(self):
        code, out = self.run_cli("compare")
        self.assertEqual(code, 0)
        data = json.loads(out)
        self.assertEqual(data["algorithms"], ["MaximizeThroughput", "MinimizeCost", "BalanceDemand"])

    def test_engine_config_file(self):
        network = PipelineNetwork(name="Choke")
        network.add_point(ReceiptPoint(id="R1", name="Field", supply_capacity=1000,
                                       min_pressure=100, max_pressure=250, current_pressure=200))
        network.add_point(DeliveryPoint(id="D1", name="Town", demand_requirement=200,
                                        min_pressure=150, max_pressure=250, current_pressure=150))
        network.add_segment(Segment(id="S1", name="Line", from_point_id="R1", to_point_id="D1",
                                    capacity=1000, length=1, diameter=1, friction_factor=1,
                                    pressure_drop_constant=1))
        network.save_to_json("choke.json")
        with open("engine.json", "w") as handle:
            json.dump({"max_repair_iterations": 0}, handle)

        code, _ = self.run_cli("optimize", "choke.json", "--pressure")
        self.assertEqual(code, 0)
        code, _ = self.run_cli("-c", "engine.json", "optimize", "choke.json", "--pressure")
        self.assertEqual(code, 1)

    def test_unknown_algorithm_exit_code(self):
        code, _ = self.run_cli("optimize", "-a", "Nope")
        self.assertEqual(code, 1)


if __name__ == '__main__':
    unittest.main()
