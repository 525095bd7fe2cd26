# Request/result contract of the optimization engine.
from enum import Enum
from typing import Dict, List

from pydantic import Field

from ..config import DEFAULT_TIME_LIMIT
from .pipeline import ContractModel


class ObjectiveFunction(str, Enum):
    MAXIMIZE_THROUGHPUT = "MaximizeThroughput"
    MINIMIZE_COST = "MinimizeCost"
    BALANCE_DEMAND = "BalanceDemand"


class OptimizationStatus(str, Enum):
    OPTIMAL = "Optimal"
    FEASIBLE = "Feasible"
    INFEASIBLE = "Infeasible"
    FAILED = "Failed"


class OptimizationSettings(ContractModel):
    """Switches and limits for a single optimization call"""

    enable_pressure_constraints: bool = False
    enable_compressor_stations: bool = False
    time_limit: float = Field(DEFAULT_TIME_LIMIT, description="Seconds; <= 0 disables the limit")
    enable_fuel_consumption: bool = False
    enable_cost_optimization: bool = False
    objective_function: ObjectiveFunction = ObjectiveFunction.MAXIMIZE_THROUGHPUT


class OptimizationMetrics(ContractModel):
    """Aggregate figures of a solved network"""

    total_throughput: float = 0.0
    solution_time_ms: float = 0.0
    average_capacity_utilization: float = 0.0
    total_demand: float = 0.0
    demand_satisfaction: float = 0.0
    fuel_consumption: float = 0.0
    repair_iterations: int = 0


class CostBreakdown(ContractModel):
    supply_cost: float = 0.0
    transportation_cost: float = 0.0
    total_cost: float = 0.0


class OptimizationResult(ContractModel):
    """The complete results of an optimization run"""

    status: OptimizationStatus = OptimizationStatus.FAILED
    algorithm: str = ""
    is_valid: bool = False
    segment_flows: Dict[str, float] = Field(default_factory=dict)
    point_pressures: Dict[str, float] = Field(default_factory=dict)
    compressor_usage: Dict[str, float] = Field(default_factory=dict)
    total_cost: float = 0.0
    cost_breakdown: CostBreakdown = Field(default_factory=CostBreakdown)
    metrics: OptimizationMetrics = Field(default_factory=OptimizationMetrics)
    messages: List[str] = Field(default_factory=list)
    validation_errors: List[str] = Field(default_factory=list)
    infeasible_segments: List[str] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status in (OptimizationStatus.OPTIMAL, OptimizationStatus.FEASIBLE)


class AlgorithmInfo(ContractModel):
    name: str = ""
    description: str = ""


class NetworkValidationResult(ContractModel):
    is_valid: bool = False
    errors: List[str] = Field(default_factory=list)
