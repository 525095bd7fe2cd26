import json
import os
import tempfile
import unittest

from pydantic import ValidationError

from gas_optimizer.data.providers.synthetic import (
    create_compressor_network,
    create_sample_network,
    load_default_network,
)
from gas_optimizer.domain.pipeline import (
    CompressorPoint,
    DeliveryPoint,
    PipelineNetwork,
    PointType,
    ReceiptPoint,
    Segment,
)
from gas_optimizer.exceptions import StructuralError
from gas_optimizer.utils.serialization import export_network, import_network


class TestPipelineNetwork(unittest.TestCase):

    def setUp(self):
        self.network = create_sample_network()

    def test_point_variants_parse_by_type(self):
        network = PipelineNetwork.model_validate({
            "name": "Parsed",
            "points": {
                "R1": {"id": "R1", "type": "Receipt", "supplyCapacity": 10, "unitCost": 1.5},
                "C1": {"id": "C1", "type": "Compressor", "maxPressureBoost": 50},
                "D1": {"id": "D1", "type": "Delivery", "demandRequirement": 7},
            },
        })
        self.assertIsInstance(network.points["R1"], ReceiptPoint)
        self.assertIsInstance(network.points["C1"], CompressorPoint)
        self.assertIsInstance(network.points["D1"], DeliveryPoint)
        self.assertEqual(network.points["R1"].supply_capacity, 10)
        self.assertEqual(network.points["D1"].point_type, PointType.DELIVERY)

    def test_fields_of_other_variants_are_ignored(self):
        # Network editors send every field for every point type
        network = PipelineNetwork.model_validate({
            "points": {"D1": {"id": "D1", "type": "Delivery", "demandRequirement": 5,
                              "supplyCapacity": 99, "maxPressureBoost": 3}},
        })
        point = network.points["D1"]
        self.assertEqual(point.demand_requirement, 5)
        self.assertFalse(hasattr(point, "supply_capacity"))
        self.assertFalse(hasattr(point, "max_pressure_boost"))

    def test_unknown_point_type_is_rejected(self):
        with self.assertRaises(ValidationError):
            PipelineNetwork.model_validate({"points": {"X1": {"id": "X1", "type": "Storage"}}})

    def test_non_finite_numbers_are_rejected(self):
        with self.assertRaises(ValidationError):
            Segment(id="S9", capacity=float("inf"))

    def test_json_uses_camel_case(self):
        data = json.loads(self.network.to_json())
        segment = data["segments"]["S1"]
        self.assertEqual(segment["fromPointId"], "R1")
        self.assertIn("pressureDropConstant", segment)
        self.assertEqual(data["points"]["R1"]["supplyCapacity"], 1000)
        self.assertEqual(data["points"]["D1"]["type"], "Delivery")

    def test_json_round_trip(self):
        network = create_compressor_network()
        self.assertEqual(PipelineNetwork.from_json(network.to_json()), network)

    def test_save_and_load(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "network.json")
            self.network.save_to_json(path)
            loaded = PipelineNetwork.load_from_json(path)
        self.assertEqual(loaded, self.network)

    def test_export_import_round_trip(self):
        network = create_compressor_network()
        text = export_network(network)
        self.assertIn("\"maxPressureBoost\"", text)
        self.assertEqual(import_network(text), network)

    def test_default_network_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "config.json")
            create_compressor_network().save_to_json(path)
            self.assertEqual(load_default_network(path).name, "Compressor Network")

    def test_default_network_falls_back_to_sample(self):
        with tempfile.TemporaryDirectory() as tmp:
            missing = os.path.join(tmp, "config.json")
            self.assertEqual(load_default_network(missing), create_sample_network())

            broken = os.path.join(tmp, "broken.json")
            with open(broken, "w") as handle:
                handle.write("{\"points\": {\"X\": {\"id\": \"X\", \"type\": \"Valve\"}}}")
            self.assertEqual(load_default_network(broken), create_sample_network())

    def test_segment_defaults(self):
        segment = Segment(id="S9", from_point_id="R1", to_point_id="D1")
        self.assertEqual(segment.friction_factor, 0.012)
        self.assertEqual(segment.pressure_drop_constant, 0.00008)
        self.assertFalse(segment.is_bidirectional)
        self.assertTrue(segment.is_active)

    def test_reverse_capacity(self):
        segment = Segment(id="S9", capacity=100, min_flow=-80, is_bidirectional=True)
        self.assertEqual(segment.reverse_capacity, 80)
        segment.is_bidirectional = False
        self.assertEqual(segment.reverse_capacity, 0.0)

    def test_resistance(self):
        segment = Segment(id="S9", length=10, diameter=2, friction_factor=0.5, pressure_drop_constant=4)
        self.assertAlmostEqual(segment.resistance(), 4 * 0.5 * 10 / 32)

    def test_add_duplicate_point_raises(self):
        with self.assertRaises(StructuralError):
            self.network.add_point(ReceiptPoint(id="R1"))

    def test_add_segment_with_missing_endpoint_raises(self):
        with self.assertRaises(StructuralError) as ctx:
            self.network.add_segment(Segment(id="S2", from_point_id="R1", to_point_id="X9"))
        self.assertIn("S2", str(ctx.exception))
        self.assertNotIn("S2", self.network.segments)

    def test_add_self_loop_raises(self):
        with self.assertRaises(StructuralError):
            self.network.add_segment(Segment(id="S2", from_point_id="R1", to_point_id="R1"))

    def test_remove_point_drops_attached_segments(self):
        removed = self.network.remove_point("D1")
        self.assertEqual(removed, ["S1"])
        self.assertEqual(self.network.segments, {})
        self.assertNotIn("D1", self.network.points)

    def test_remove_missing_segment_raises(self):
        with self.assertRaises(StructuralError):
            self.network.remove_segment("S42")

    def test_active_subgraph(self):
        network = create_compressor_network()
        network.points["D3"].is_active = False
        network.segments["S2"].is_active = False
        active = network.active_segments()
        self.assertNotIn("S2", active)
        self.assertNotIn("S5", active)  # endpoint D3 is inactive
        self.assertEqual([d.id for d in network.deliveries()], ["D1", "D2"])
        self.assertEqual(network.total_demand(), 800)
        self.assertEqual(len(network.points_of_type("Delivery", active_only=False)), 3)

    def test_copy_is_deep(self):
        copy = self.network.copy()
        copy.segments["S1"].capacity = 1
        copy.points["D1"].demand_requirement = 1
        self.assertEqual(self.network.segments["S1"].capacity, 800)
        self.assertEqual(self.network.points["D1"].demand_requirement, 500)


if __name__ == '__main__':
    unittest.main()
