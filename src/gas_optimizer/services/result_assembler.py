# Packages solver output into the OptimizationResult contract.
import logging
from typing import Dict, List, Mapping, Optional

import numpy as np

from ..algorithms.flow.allocator import Allocation
from ..algorithms.hydraulics.pressure import PressureReport
from ..config import EngineConfig
from ..domain.models import (
    CostBreakdown,
    OptimizationMetrics,
    OptimizationResult,
    OptimizationSettings,
    OptimizationStatus,
)
from ..domain.pipeline import PipelineNetwork
from ..evaluation.validation import ValidationReport
from .repair import Phase, RepairState

logger = logging.getLogger(__name__)


def calculate_costs(network: PipelineNetwork, allocation: Allocation) -> CostBreakdown:
    """Receipt unit costs on supply used plus transportation cost on |flow|"""
    points = network.points
    supply_cost = sum(points[pid].unit_cost * used for pid, used in allocation.supplies.items())
    transport_cost = sum(
        seg.transportation_cost * abs(allocation.flows.get(sid, 0.0))
        for sid, seg in network.active_segments().items()
    )
    return CostBreakdown(
        supply_cost=float(supply_cost),
        transportation_cost=float(transport_cost),
        total_cost=float(supply_cost + transport_cost),
    )


def average_capacity_utilization(network: PipelineNetwork, flows: Mapping[str, float]) -> float:
    ratios = [
        abs(flows.get(sid, 0.0)) / seg.capacity
        for sid, seg in network.active_segments().items() if seg.capacity > 0
    ]
    return float(np.mean(ratios)) if ratios else 0.0


def zero_capacity_segments(network: PipelineNetwork, tol: float) -> List[str]:
    return [sid for sid, seg in network.active_segments().items() if seg.capacity <= tol]


def failed_result(algorithm: str, message: str, **extra) -> OptimizationResult:
    return OptimizationResult(status=OptimizationStatus.FAILED, algorithm=algorithm, messages=[message], **extra)


def validation_failure(algorithm: str, report: ValidationReport) -> OptimizationResult:
    return OptimizationResult(
        status=OptimizationStatus.INFEASIBLE,
        algorithm=algorithm,
        is_valid=False,
        messages=["Network validation failed"] + [f"Warning: {w}" for w in report.warnings],
        validation_errors=list(report.errors),
    )


def assemble_result(algorithm: str, network: PipelineNetwork, settings: OptimizationSettings,
                    allocation: Allocation, pressure: PressureReport, state: RepairState,
                    elapsed_ms: float, validation: Optional[ValidationReport] = None,
                    config: Optional[EngineConfig] = None,
                    messages: Optional[List[str]] = None) -> OptimizationResult:
    """Build the result; never raises, internal failures become a Failed status"""
    try:
        return _assemble(algorithm, network, settings, allocation, pressure, state,
                         elapsed_ms, validation, config or EngineConfig(), list(messages or []))
    except Exception as exc:
        logger.exception("Result assembly failed")
        return failed_result(algorithm, f"Result assembly failed: {exc}",
                             is_valid=validation.is_valid if validation else False)


def _assemble(algorithm, network, settings, allocation, pressure, state, elapsed_ms,
              validation, config, messages):
    tol = config.flow_tolerance
    infeasible: List[str] = []
    total_demand = network.total_demand()

    if state.phase is Phase.INFEASIBLE:
        status = OptimizationStatus.INFEASIBLE
        infeasible = pressure.infeasible_segments
        messages.append(f"Pressure constraints could not be satisfied after {state.iteration} repair iteration(s)")
    elif total_demand > tol and allocation.throughput <= tol:
        status = OptimizationStatus.INFEASIBLE
        infeasible = zero_capacity_segments(network, tol)
        messages.append("No demand can be served by the network")
    elif allocation.optimal and state.iteration == 0:
        status = OptimizationStatus.OPTIMAL
    else:
        status = OptimizationStatus.FEASIBLE
        if state.iteration:
            messages.append(f"Capacities reduced on {len(state.overrides)} segment(s) "
                            f"over {state.iteration} repair iteration(s)")

    messages.extend(allocation.messages)
    messages.extend(pressure.messages)
    if validation is not None:
        messages.extend(f"Warning: {w}" for w in validation.warnings)

    delivered = allocation.throughput
    throughput = delivered
    if settings.enable_fuel_consumption:
        throughput = max(0.0, delivered - pressure.fuel_consumption)
    costs = calculate_costs(network, allocation)

    metrics = OptimizationMetrics(
        total_throughput=throughput,
        solution_time_ms=elapsed_ms,
        average_capacity_utilization=average_capacity_utilization(network, allocation.flows),
        total_demand=total_demand,
        demand_satisfaction=delivered / total_demand if total_demand > tol else 1.0,
        fuel_consumption=pressure.fuel_consumption,
        repair_iterations=state.iteration,
    )

    _annotate(network, allocation.flows, pressure.pressures)

    return OptimizationResult(
        status=status,
        algorithm=algorithm,
        is_valid=validation.is_valid if validation is not None else True,
        segment_flows=dict(allocation.flows),
        point_pressures=dict(pressure.pressures),
        compressor_usage=dict(pressure.compressor_usage),
        total_cost=costs.total_cost,
        cost_breakdown=costs,
        metrics=metrics,
        messages=messages,
        infeasible_segments=infeasible,
    )


def _annotate(network: PipelineNetwork, flows: Mapping[str, float], pressures: Dict[str, float]):
    """Write output fields on the engine's private copy of the network"""
    for sid, seg in network.segments.items():
        seg.current_flow = flows.get(sid, 0.0)
    for pid, pressure in pressures.items():
        network.points[pid].current_pressure = pressure
