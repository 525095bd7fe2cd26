import math
import unittest

import networkx as nx

from gas_optimizer.algorithms.hydraulics.pressure import arrival_pressure, flow_dag, simulate, start_pressure
from gas_optimizer.config import EngineConfig
from gas_optimizer.data.providers.synthetic import create_sample_network
from gas_optimizer.domain.models import OptimizationSettings
from gas_optimizer.domain.pipeline import (
    CompressorPoint,
    DeliveryPoint,
    PipelineNetwork,
    ReceiptPoint,
    Segment,
)


def unit_pipe(sid, src, dst, capacity=1000.0):
    """Segment whose drop law reduces to p_from^2 - p_to^2 = q^2"""
    return Segment(id=sid, name=sid, from_point_id=src, to_point_id=dst, capacity=capacity,
                   length=1, diameter=1, friction_factor=1, pressure_drop_constant=1)


def boosted_chain(max_boost=50.0):
    """R1 (200 psia) -> C1 (min 180) -> D1; 100 units of flow drop R1->C1 to ~173.2"""
    network = PipelineNetwork(name="Chain")
    network.add_point(ReceiptPoint(id="R1", name="Field", supply_capacity=100,
                                   min_pressure=100, max_pressure=250, current_pressure=200))
    network.add_point(CompressorPoint(id="C1", name="Station", max_pressure_boost=max_boost,
                                      fuel_consumption_rate=0.01,
                                      min_pressure=180, max_pressure=250, current_pressure=180))
    network.add_point(DeliveryPoint(id="D1", name="Town", demand_requirement=100,
                                    min_pressure=100, max_pressure=200, current_pressure=150))
    network.add_segment(unit_pipe("S1", "R1", "C1"))
    network.add_segment(unit_pipe("S2", "C1", "D1"))
    return network


class TestPressureSimulation(unittest.TestCase):

    def setUp(self):
        self.settings = OptimizationSettings(enable_pressure_constraints=True, enable_compressor_stations=True)
        self.flows = {"S1": 100.0, "S2": 100.0}

    def test_arrival_pressure(self):
        p, ok = arrival_pressure(200.0, unit_pipe("S1", "A", "B"), 100.0)
        self.assertTrue(ok)
        self.assertAlmostEqual(p, math.sqrt(30000.0))

    def test_drop_exceeding_inlet(self):
        p, ok = arrival_pressure(50.0, unit_pipe("S1", "A", "B"), 100.0)
        self.assertFalse(ok)
        self.assertEqual(p, 0.0)

    def test_drop_law_exponents_are_configurable(self):
        config = EngineConfig(flow_exponent=1.0)
        p, _ = arrival_pressure(200.0, unit_pipe("S1", "A", "B"), 100.0, config)
        self.assertAlmostEqual(p, math.sqrt(40000.0 - 100.0))

    def test_receipt_start_pressure(self):
        point = ReceiptPoint(id="R1", min_pressure=100, max_pressure=250, current_pressure=300)
        self.assertEqual(start_pressure(point), 250)
        point.current_pressure = 0
        self.assertEqual(start_pressure(point), 250)
        point.current_pressure = 120
        self.assertEqual(start_pressure(point), 120)

    def test_disabled_reports_current_pressures(self):
        network = boosted_chain()
        report = simulate(network, self.flows, OptimizationSettings())
        self.assertEqual(report.pressures, {"C1": 180, "D1": 150, "R1": 200})
        self.assertTrue(report.feasible)
        self.assertEqual(report.compressor_usage, {})

    def test_compressor_boost(self):
        report = simulate(boosted_chain(), self.flows, self.settings)
        needed = 180.0 - math.sqrt(30000.0)
        self.assertTrue(report.feasible, report.messages)
        self.assertAlmostEqual(report.compressor_usage["C1"], needed, places=6)
        self.assertAlmostEqual(report.pressures["C1"], 180.0)
        self.assertAlmostEqual(report.pressures["D1"], math.sqrt(180.0 ** 2 - 10000.0), places=6)
        self.assertAlmostEqual(report.fuel_consumption, 0.01 * needed * 100.0, places=6)

    def test_boost_limit_exceeded(self):
        report = simulate(boosted_chain(max_boost=5.0), self.flows, self.settings)
        self.assertFalse(report.feasible)
        self.assertEqual(report.under_pressure_segments, ["S1"])
        self.assertEqual(report.compressor_usage["C1"], 5.0)

    def test_compressors_disabled(self):
        settings = OptimizationSettings(enable_pressure_constraints=True)
        report = simulate(boosted_chain(), self.flows, settings)
        self.assertEqual(report.under_pressure_segments, ["S1"])
        self.assertEqual(report.compressor_usage, {})

    def test_over_pressure(self):
        network = create_sample_network()
        network.points["D1"].max_pressure = 600
        report = simulate(network, {"S1": 500.0}, self.settings)
        self.assertEqual(report.over_pressure_segments, ["S1"])
        self.assertEqual(report.under_pressure_segments, [])
        self.assertEqual(report.infeasible_segments, ["S1"])

    def test_sample_network_is_pressure_feasible(self):
        report = simulate(create_sample_network(), {"S1": 500.0}, self.settings)
        self.assertTrue(report.feasible)
        self.assertAlmostEqual(report.pressures["R1"], 950.0)
        self.assertLess(report.pressures["D1"], 950.0)
        self.assertAlmostEqual(report.pressures["D1"], 950.0, places=3)

    def test_idle_points_keep_default_pressure(self):
        network = boosted_chain()
        report = simulate(network, {"S1": 0.0, "S2": 0.0}, self.settings)
        self.assertEqual(report.pressures["D1"], 150)

    def test_antiparallel_flows_are_netted(self):
        network = create_sample_network()
        network.add_segment(Segment(id="S2", from_point_id="D1", to_point_id="R1", capacity=100,
                                    length=1, diameter=1))
        graph = flow_dag(network, {"S1": 500.0, "S2": 200.0}, 1e-6)
        self.assertEqual(list(graph.edges(data="flow")), [("R1", "D1", 300.0)])

    def test_flow_cycle_is_broken_at_smallest_flow(self):
        network = PipelineNetwork(name="Loop")
        network.add_point(ReceiptPoint(id="R1", name="Field", supply_capacity=100,
                                       min_pressure=0, max_pressure=1000, current_pressure=1000))
        network.add_point(CompressorPoint(id="C1", name="Station",
                                          min_pressure=0, max_pressure=1000, current_pressure=500))
        network.add_point(DeliveryPoint(id="D1", name="Town", demand_requirement=100,
                                        min_pressure=0, max_pressure=1000, current_pressure=500))
        for sid, src, dst in (("S1", "R1", "C1"), ("S2", "C1", "D1"), ("S3", "D1", "R1")):
            segment = unit_pipe(sid, src, dst)
            segment.is_bidirectional = True
            segment.min_flow = -1000
            network.add_segment(segment)
        # R1 -> C1 -> D1 -> R1 with 50 units circulating
        flows = {"S1": 150.0, "S2": 150.0, "S3": 50.0}

        with self.assertLogs("gas_optimizer.algorithms.hydraulics.pressure", level="WARNING"):
            graph = flow_dag(network, flows, 1e-6)
        self.assertTrue(nx.is_directed_acyclic_graph(graph))
        self.assertEqual(sorted(graph.edges), [("C1", "D1"), ("R1", "C1")])

        report = simulate(network, flows, self.settings)
        self.assertEqual(sorted(report.pressures), ["C1", "D1", "R1"])
        self.assertAlmostEqual(report.pressures["R1"], 1000.0)
        self.assertAlmostEqual(report.pressures["C1"], math.sqrt(1000.0 ** 2 - 150.0 ** 2))
        self.assertLess(report.pressures["D1"], report.pressures["C1"])
        self.assertTrue(report.feasible)
        self.assertEqual(simulate(network, flows, self.settings), report)


if __name__ == '__main__':
    unittest.main()
