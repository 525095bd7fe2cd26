# Structural and value checks run on every network before optimization.
from collections import Counter
from dataclasses import dataclass, field
from typing import List, Tuple

import networkx as nx

from ..domain.pipeline import PipelineNetwork, PointType

WARNING_PREFIX = "Warning: "


@dataclass
class ValidationReport:
    """Outcome of validating a network; only errors are fatal"""
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def all_messages(self) -> List[str]:
        return self.errors + [WARNING_PREFIX + w for w in self.warnings]


def validate(network: PipelineNetwork) -> Tuple[bool, List[str]]:
    """
    Validate a network without mutating it.
    Returns (ok, messages); warnings are included with a "Warning: " prefix
    but never make the network invalid.
    """
    report = validate_network(network)
    return report.is_valid, report.all_messages()


def validate_network(network: PipelineNetwork) -> ValidationReport:
    report = ValidationReport()
    _check_points(network, report)
    _check_segments(network, report)
    _check_connectivity(network, report)
    return report


def _check_points(network, report):
    ids = Counter(p.id for p in network.points.values())
    for key, point in sorted(network.points.items()):
        if not point.id:
            report.errors.append(f"Point stored under key '{key}' has an empty id")
            continue
        if point.id != key:
            report.errors.append(f"Point {point.id} is stored under mismatched key '{key}'")
        if ids[point.id] > 1:
            report.errors.append(f"Duplicate point id {point.id}")
        if not point.name:
            report.warnings.append(f"Point {point.id} has no name")

        if point.min_pressure > point.max_pressure:
            report.errors.append(
                f"Point {point.id} has minPressure {point.min_pressure} greater than maxPressure {point.max_pressure}")

        if point.type == PointType.RECEIPT.value:
            _non_negative(report, f"Point {point.id}", "supplyCapacity", point.supply_capacity)
            _non_negative(report, f"Point {point.id}", "unitCost", point.unit_cost)
        elif point.type == PointType.DELIVERY.value:
            _non_negative(report, f"Point {point.id}", "demandRequirement", point.demand_requirement)
        elif point.type == PointType.COMPRESSOR.value:
            _non_negative(report, f"Point {point.id}", "maxPressureBoost", point.max_pressure_boost)
            _non_negative(report, f"Point {point.id}", "fuelConsumptionRate", point.fuel_consumption_rate)


def _check_segments(network, report):
    ids = Counter(s.id for s in network.segments.values())
    for key, seg in sorted(network.segments.items()):
        if not seg.id:
            report.errors.append(f"Segment stored under key '{key}' has an empty id")
            continue
        label = f"Segment {seg.id}"
        if seg.id != key:
            report.errors.append(f"{label} is stored under mismatched key '{key}'")
        if ids[seg.id] > 1:
            report.errors.append(f"Duplicate segment id {seg.id}")

        for point_id in (seg.from_point_id, seg.to_point_id):
            point = network.points.get(point_id)
            if point is None:
                report.errors.append(f"{label} references non-existent point {point_id or '<empty>'}")
            elif not point.is_active:
                report.errors.append(f"{label} references inactive point {point_id}")
        if seg.from_point_id and seg.from_point_id == seg.to_point_id:
            report.errors.append(f"{label} connects point {seg.from_point_id} to itself")

        _non_negative(report, label, "capacity", seg.capacity)
        _non_negative(report, label, "transportationCost", seg.transportation_cost)
        for name, value in (("length", seg.length), ("diameter", seg.diameter),
                            ("frictionFactor", seg.friction_factor),
                            ("pressureDropConstant", seg.pressure_drop_constant)):
            if value <= 0:
                report.errors.append(f"{label} must have positive {name} (got {value})")

        if seg.is_bidirectional:
            if seg.min_flow > 0 or seg.min_flow < -max(seg.capacity, 0.0):
                report.errors.append(
                    f"{label} is bidirectional and needs -capacity <= minFlow <= 0 (got {seg.min_flow})")
        elif seg.min_flow != 0:
            report.errors.append(f"{label} is unidirectional and needs minFlow 0 (got {seg.min_flow})")


def _check_connectivity(network, report):
    """Reachability is reported as warnings only"""
    receipts = [p.id for p in network.receipts()]
    deliveries = [p.id for p in network.deliveries()]
    if not receipts:
        report.warnings.append("Network has no active Receipt point")
    if not deliveries:
        report.warnings.append("Network has no active Delivery point")
    if not receipts or not deliveries:
        return

    graph = flow_graph(network)
    reachable = set()
    for receipt in receipts:
        reachable |= nx.descendants(graph, receipt)
    unreachable = [d for d in deliveries if d not in reachable]
    if len(unreachable) == len(deliveries):
        report.warnings.append("No active Delivery point is reachable from an active Receipt point")
    else:
        for delivery in unreachable:
            report.warnings.append(f"Delivery point {delivery} is not reachable from any active Receipt point")


def flow_graph(network: PipelineNetwork) -> nx.DiGraph:
    """Directed graph of the directions gas may travel over active segments"""
    graph = nx.DiGraph()
    graph.add_nodes_from(network.active_points())
    for seg in network.active_segments().values():
        graph.add_edge(seg.from_point_id, seg.to_point_id)
        if seg.reverse_capacity > 0:
            graph.add_edge(seg.to_point_id, seg.from_point_id)
    return graph


def _non_negative(report, label, name, value):
    if value < 0:
        report.errors.append(f"{label} must have non-negative {name} (got {value})")
