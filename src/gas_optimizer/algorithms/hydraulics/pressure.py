# Pressure propagation along flow-carrying segments.
#
# Drop law (Weymouth type), per segment carrying flow q:
#     p_from^2 - p_to^2 = C * f_r * L * |q|^a / D^b
# with C = pressureDropConstant, f_r = frictionFactor, L = length,
# D = diameter, a = EngineConfig.flow_exponent (2.0) and
# b = EngineConfig.diameter_exponent (5.0).
import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

import networkx as nx

from ...config import EngineConfig
from ...domain.models import OptimizationSettings
from ...domain.pipeline import BasePoint, PipelineNetwork, PointType, Segment

logger = logging.getLogger(__name__)


@dataclass
class PressureReport:
    """Outcome of one pressure simulation"""
    pressures: Dict[str, float] = field(default_factory=dict)
    compressor_usage: Dict[str, float] = field(default_factory=dict)
    fuel_consumption: float = 0.0
    under_pressure_segments: List[str] = field(default_factory=list)
    over_pressure_segments: List[str] = field(default_factory=list)
    messages: List[str] = field(default_factory=list)

    @property
    def infeasible_segments(self) -> List[str]:
        return sorted(set(self.under_pressure_segments) | set(self.over_pressure_segments))

    @property
    def feasible(self) -> bool:
        return not self.infeasible_segments


def arrival_pressure(p_from: float, segment: Segment, flow: float,
                     config: Optional[EngineConfig] = None) -> Tuple[float, bool]:
    """
    Pressure at the downstream end of ``segment`` for inlet pressure ``p_from``.
    Returns (pressure, ok); ok is False when the drop exceeds the inlet
    pressure, in which case the pressure is reported as 0.
    """
    config = config or EngineConfig()
    drop = segment.resistance(config.diameter_exponent) * abs(flow) ** config.flow_exponent
    radicand = p_from * p_from - drop
    if radicand < 0:
        return 0.0, False
    return math.sqrt(radicand), True


def start_pressure(point: BasePoint) -> float:
    """Pressure a point holds when nothing flows into it"""
    if point.type == PointType.RECEIPT.value:
        if point.current_pressure <= 0:
            return point.max_pressure
        return min(max(point.current_pressure, point.min_pressure), point.max_pressure)
    return point.default_pressure()


def flow_dag(network: PipelineNetwork, flows: Mapping[str, float], tol: float) -> nx.DiGraph:
    """
    Directed graph of net flow between point pairs. Antiparallel flows are
    netted; remaining cycles are broken at their smallest-flow edge.
    """
    net = defaultdict(float)
    for sid, seg in network.active_segments().items():
        value = flows.get(sid, 0.0)
        if abs(value) <= tol:
            continue
        u, v = (seg.from_point_id, seg.to_point_id) if value > 0 else (seg.to_point_id, seg.from_point_id)
        if u < v:
            net[(u, v)] += abs(value)
        else:
            net[(v, u)] -= abs(value)

    graph = nx.DiGraph()
    graph.add_nodes_from(network.active_points())
    for (u, v), value in sorted(net.items()):
        if value > tol:
            graph.add_edge(u, v, flow=value)
        elif value < -tol:
            graph.add_edge(v, u, flow=-value)

    while True:
        try:
            cycle = nx.find_cycle(graph)
        except nx.NetworkXNoCycle:
            break
        u, v = min(cycle, key=lambda edge: (graph.edges[edge[0], edge[1]]["flow"], edge[0], edge[1]))[:2]
        logger.warning(f"Flow cycle through {[edge[0] for edge in cycle]}; ignoring {u}->{v} for pressure propagation")
        graph.remove_edge(u, v)
    return graph


def simulate(network: PipelineNetwork, flows: Mapping[str, float],
             settings: OptimizationSettings, config: Optional[EngineConfig] = None) -> PressureReport:
    """Propagate pressures in flow direction, boosting at compressors where allowed"""
    config = config or EngineConfig()
    points = network.active_points()
    report = PressureReport()

    if not settings.enable_pressure_constraints:
        report.pressures = {pid: point.default_pressure() for pid, point in points.items()}
        return report

    graph = flow_dag(network, flows, config.flow_tolerance)

    # Segments feeding each node, consistent with the net direction
    feeders = defaultdict(list)
    for sid, seg in network.active_segments().items():
        value = flows.get(sid, 0.0)
        if abs(value) <= config.flow_tolerance:
            continue
        u, v = (seg.from_point_id, seg.to_point_id) if value > 0 else (seg.to_point_id, seg.from_point_id)
        if graph.has_edge(u, v):
            feeders[v].append((seg, u, abs(value)))
        else:
            logger.debug(f"Segment {sid} runs against the net flow {u}->{v}; not propagated")

    ptol = config.pressure_tolerance
    under, over = set(), set()
    for node in nx.lexicographical_topological_sort(graph):
        point = points[node]
        if not feeders[node]:
            report.pressures[node] = start_pressure(point)
            continue

        arrivals = []
        for seg, upstream, value in feeders[node]:
            p, ok = arrival_pressure(report.pressures[upstream], seg, value, config)
            if not ok:
                under.add(seg.id)
                report.messages.append(f"Segment {seg.id} cannot carry {value:g} at inlet pressure "
                                       f"{report.pressures[upstream]:g}")
            arrivals.append((p, seg.id))
        pressure = min(p for p, _ in arrivals)

        if pressure < point.min_pressure - ptol:
            needed = point.min_pressure - pressure
            boosting = (point.type == PointType.COMPRESSOR.value and settings.enable_compressor_stations)
            if boosting and needed <= point.max_pressure_boost + ptol:
                throughflow = sum(value for _, _, value in feeders[node])
                report.compressor_usage[node] = needed
                report.fuel_consumption += point.fuel_consumption_rate * needed * throughflow
                pressure = point.min_pressure
            else:
                if boosting and point.max_pressure_boost > 0:
                    report.compressor_usage[node] = point.max_pressure_boost
                    report.messages.append(f"Compressor {node} needs boost {needed:g} above its limit "
                                           f"{point.max_pressure_boost:g}")
                    pressure += point.max_pressure_boost
                else:
                    report.messages.append(f"Point {node} pressure {pressure:g} is below minPressure "
                                           f"{point.min_pressure:g}")
                under.update(sid for p, sid in arrivals if p < point.min_pressure - ptol)

        if pressure > point.max_pressure + ptol:
            report.messages.append(f"Point {node} pressure {pressure:g} exceeds maxPressure {point.max_pressure:g}")
            over.update(sid for p, sid in arrivals if p > point.max_pressure + ptol)

        report.pressures[node] = pressure

    report.under_pressure_segments = sorted(under)
    report.over_pressure_segments = sorted(over - under)
    if not report.feasible:
        logger.info(f"Pressure simulation found infeasible segments: {report.infeasible_segments}")
    return report
