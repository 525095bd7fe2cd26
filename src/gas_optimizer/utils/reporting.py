# Text and tabular reports of an optimization result.
from datetime import datetime
from typing import Optional

import pandas as pd

from ..domain.models import OptimizationResult
from ..domain.pipeline import PipelineNetwork


def generate_report(result: OptimizationResult, generated: Optional[datetime] = None) -> str:
    """Plain-text report: summary, flows, pressures, compressor usage, errors"""
    generated = generated or datetime.now()
    metrics = result.metrics
    lines = [
        "=== Gas Pipeline Optimization Report ===",
        f"Generated: {generated:%Y-%m-%d %H:%M:%S}",
        "",
        "OPTIMIZATION SUMMARY:",
        f"Algorithm: {result.algorithm or 'n/a'}",
        f"Status: {result.status.value}",
        f"Total Cost: ${result.total_cost:.2f}",
        f"Total Throughput: {metrics.total_throughput:.2f} MMscfd",
        f"Solution Time: {metrics.solution_time_ms:.0f} ms",
        f"Average Utilization: {metrics.average_capacity_utilization * 100:.1f}%",
        "",
        "SEGMENT FLOWS:",
    ]
    lines += [f"{sid}: {flow:.2f} MMscfd" for sid, flow in result.segment_flows.items()]

    lines += ["", "POINT PRESSURES:"]
    lines += [f"{pid}: {pressure:.1f} psia" for pid, pressure in result.point_pressures.items()]

    if result.compressor_usage:
        lines += ["", "COMPRESSOR USAGE:"]
        lines += [f"{pid}: {boost:.1f} psi boost" for pid, boost in result.compressor_usage.items()]

    if result.infeasible_segments:
        lines += ["", "INFEASIBLE SEGMENTS:"]
        lines += [f"- {sid}" for sid in result.infeasible_segments]

    if result.validation_errors:
        lines += ["", "VALIDATION ERRORS:"]
        lines += [f"- {error}" for error in result.validation_errors]

    if result.messages:
        lines += ["", "MESSAGES:"]
        lines += [f"- {message}" for message in result.messages]

    return "\n".join(lines) + "\n"


def result_to_dataframe(result: OptimizationResult, network: PipelineNetwork) -> pd.DataFrame:
    """One row per segment with its flow, capacity and utilization"""
    rows = []
    for sid, seg in sorted(network.segments.items()):
        flow = result.segment_flows.get(sid, 0.0)
        rows.append({
            "segment": sid,
            "name": seg.name,
            "from": seg.from_point_id,
            "to": seg.to_point_id,
            "flow": flow,
            "capacity": seg.capacity,
            "utilization": abs(flow) / seg.capacity if seg.capacity > 0 else 0.0,
            "transportation_cost": seg.transportation_cost * abs(flow),
            "infeasible": sid in result.infeasible_segments,
        })
    columns = ["segment", "name", "from", "to", "flow", "capacity", "utilization",
               "transportation_cost", "infeasible"]
    return pd.DataFrame(rows, columns=columns).set_index("segment")


def pressures_to_dataframe(result: OptimizationResult, network: PipelineNetwork) -> pd.DataFrame:
    rows = []
    for pid, point in sorted(network.points.items()):
        rows.append({
            "point": pid,
            "type": point.type,
            "pressure": result.point_pressures.get(pid),
            "min_pressure": point.min_pressure,
            "max_pressure": point.max_pressure,
            "boost": result.compressor_usage.get(pid, 0.0),
        })
    columns = ["point", "type", "pressure", "min_pressure", "max_pressure", "boost"]
    return pd.DataFrame(rows, columns=columns).set_index("point")


def export_csv(result: OptimizationResult, network: PipelineNetwork, path) -> None:
    result_to_dataframe(result, network).to_csv(path)
