# Helpers for running several algorithms on one network and comparing them.
import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence

import numpy as np

from ..domain.models import ObjectiveFunction, OptimizationResult, OptimizationSettings
from ..domain.pipeline import PipelineNetwork
from .optimization_service import OptimizationEngine

logger = logging.getLogger(__name__)

LARGE_NETWORK_POINTS = 20
LARGE_NETWORK_SEGMENTS = 30
BASE_ESTIMATE_SECONDS = 5.0
ALGORITHM_TIME_FACTORS = {
    ObjectiveFunction.MINIMIZE_COST.value: 1.5,
    ObjectiveFunction.BALANCE_DEMAND.value: 1.2,
}


def run_multiple_optimizations(network: PipelineNetwork, settings: Optional[OptimizationSettings] = None,
                               algorithms: Optional[Sequence[str]] = None,
                               engine: Optional[OptimizationEngine] = None) -> Dict[str, OptimizationResult]:
    """Run every requested algorithm (all registered ones by default) in turn"""
    engine = engine or OptimizationEngine()
    algorithms = list(algorithms or engine.available_algorithms())
    results = {}
    for name in algorithms:
        logger.info(f"Running optimization with {name}...")
        results[name] = engine.optimize(name, network, settings)
    return results


def compare_optimizations(results: Dict[str, OptimizationResult]) -> Dict:
    """Side-by-side metrics and the best algorithm for each of them"""
    if len(results) < 2:
        raise ValueError("Need at least 2 results to compare")

    algorithms = list(results)
    metrics = {
        "totalCosts": np.array([results[a].total_cost for a in algorithms]),
        "totalThroughputs": np.array([results[a].metrics.total_throughput for a in algorithms]),
        "solutionTimes": np.array([results[a].metrics.solution_time_ms for a in algorithms]),
        "utilizations": np.array([results[a].metrics.average_capacity_utilization for a in algorithms]),
    }
    succeeded = np.array([results[a].succeeded for a in algorithms])

    return {
        "generated": datetime.now(),
        "algorithms": algorithms,
        "statuses": [results[a].status.value for a in algorithms],
        "succeeded": np.sum(succeeded),
        "metrics": metrics,
        "best": {
            "cost": algorithms[np.argmin(metrics["totalCosts"])],
            "throughput": algorithms[np.argmax(metrics["totalThroughputs"])],
            "time": algorithms[np.argmin(metrics["solutionTimes"])],
            "utilization": algorithms[np.argmax(metrics["utilizations"])],
        },
    }


def recommend_algorithm(network: PipelineNetwork) -> Dict[str, str]:
    point_count = len(network.points)
    segment_count = len(network.segments)
    if point_count > LARGE_NETWORK_POINTS or segment_count > LARGE_NETWORK_SEGMENTS:
        return {"algorithm": ObjectiveFunction.MINIMIZE_COST.value,
                "reason": "Large network - cost optimization typically performs better"}
    if network.points_of_type("Compressor", active_only=False):
        return {"algorithm": ObjectiveFunction.BALANCE_DEMAND.value,
                "reason": "Network has compressors - balancing can improve efficiency"}
    return {"algorithm": ObjectiveFunction.MAXIMIZE_THROUGHPUT.value,
            "reason": "Default choice for general optimization"}


def estimate_optimization_time(network: PipelineNetwork, algorithm: str) -> float:
    """Rough wall-clock estimate in seconds"""
    complexity = len(network.points) + 2 * len(network.segments)
    estimate = BASE_ESTIMATE_SECONDS
    if complexity > 50:
        estimate *= 2
    if complexity > 100:
        estimate *= 3
    return estimate * ALGORITHM_TIME_FACTORS.get(str(getattr(algorithm, "value", algorithm)), 1.0)
