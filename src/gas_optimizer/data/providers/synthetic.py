# Contains logic for building sample networks for testing and development.
import logging
from pathlib import Path
from typing import Optional

from ...domain.pipeline import CompressorPoint, DeliveryPoint, PipelineNetwork, ReceiptPoint, Segment

logger = logging.getLogger(__name__)

DEFAULT_NETWORK_FILE = "config.json"


def create_sample_network() -> PipelineNetwork:
    """Two-point network: one receipt feeding one delivery over a single line"""
    network = PipelineNetwork(name="Sample Network", description="Sample pipeline network for testing")
    network.add_point(ReceiptPoint(
        id="R1", name="Receipt Point 1",
        supply_capacity=1000, unit_cost=2.5,
        min_pressure=900, max_pressure=1000, current_pressure=950,
        x=50, y=50,
    ))
    network.add_point(DeliveryPoint(
        id="D1", name="Delivery Point 1",
        demand_requirement=500,
        min_pressure=400, max_pressure=960, current_pressure=500,
        x=200, y=100,
    ))
    network.add_segment(Segment(
        id="S1", name="Main Line", from_point_id="R1", to_point_id="D1",
        capacity=800, length=100, diameter=24, transportation_cost=0.1,
    ))
    return network


def create_compressor_network() -> PipelineNetwork:
    """Two receipts, a compressor station and three deliveries"""
    network = PipelineNetwork(name="Compressor Network",
                              description="Receipts feeding three deliveries through a compressor station")
    network.add_point(ReceiptPoint(id="R1", name="North Field", supply_capacity=600, unit_cost=2.0,
                                   min_pressure=700, max_pressure=1000, current_pressure=1000))
    network.add_point(ReceiptPoint(id="R2", name="South Field", supply_capacity=400, unit_cost=3.0,
                                   min_pressure=700, max_pressure=1000, current_pressure=950))
    network.add_point(CompressorPoint(id="C1", name="Midline Station", max_pressure_boost=300,
                                      fuel_consumption_rate=0.0001,
                                      min_pressure=800, max_pressure=1100, current_pressure=800))
    network.add_point(DeliveryPoint(id="D1", name="City Gate", demand_requirement=450,
                                    min_pressure=300, max_pressure=1100, current_pressure=500))
    network.add_point(DeliveryPoint(id="D2", name="Power Plant", demand_requirement=350,
                                    min_pressure=300, max_pressure=1100, current_pressure=500))
    network.add_point(DeliveryPoint(id="D3", name="Industrial Park", demand_requirement=300,
                                    min_pressure=300, max_pressure=1100, current_pressure=500))
    for seg in (
        Segment(id="S1", name="North Lateral", from_point_id="R1", to_point_id="C1",
                capacity=600, length=80, diameter=0.9, transportation_cost=0.05),
        Segment(id="S2", name="South Lateral", from_point_id="R2", to_point_id="C1",
                capacity=400, length=60, diameter=0.9, transportation_cost=0.08),
        Segment(id="S3", name="City Line", from_point_id="C1", to_point_id="D1",
                capacity=500, length=40, diameter=0.8, transportation_cost=0.10),
        Segment(id="S4", name="Plant Line", from_point_id="C1", to_point_id="D2",
                capacity=300, length=50, diameter=0.8, transportation_cost=0.12),
        Segment(id="S5", name="Industrial Line", from_point_id="C1", to_point_id="D3",
                capacity=250, length=30, diameter=0.7, transportation_cost=0.09),
    ):
        network.add_segment(seg)
    return network


def load_default_network(path: Optional[str] = None) -> PipelineNetwork:
    """Load the default network file, falling back to the built-in sample"""
    path = Path(path or DEFAULT_NETWORK_FILE)
    try:
        return PipelineNetwork.load_from_json(path)
    except (OSError, ValueError) as exc:
        logger.warning(f"Error loading default network from {path}: {exc}")
        return create_sample_network()
