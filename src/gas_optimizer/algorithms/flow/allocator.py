# Flow allocation as a linear program over the active subgraph, solved with
# SciPy's HiGHS backend.
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

import numpy as np
from scipy.optimize import linprog

from ...config import EngineConfig
from ...domain.models import OptimizationSettings
from ...domain.pipeline import PipelineNetwork
from ...exceptions import ConstraintViolation, InternalFailure, SolverTimeout

logger = logging.getLogger(__name__)

LP_METHOD = "highs"


class SolverBudget:
    """Cooperative wall-clock budget shared by every LP of one optimization call"""

    def __init__(self, time_limit: Optional[float] = None):
        self.time_limit = time_limit
        self.started = time.perf_counter()

    @property
    def unlimited(self) -> bool:
        return self.time_limit is None or self.time_limit <= 0

    def elapsed(self) -> float:
        return time.perf_counter() - self.started

    def remaining(self) -> Optional[float]:
        if self.unlimited:
            return None
        return max(0.0, self.time_limit - self.elapsed())

    def expired(self) -> bool:
        return not self.unlimited and self.remaining() <= 0


@dataclass
class Allocation:
    """Flow assignment plus the shortfall report of every delivery"""
    flows: Dict[str, float]
    supplies: Dict[str, float]
    deliveries: Dict[str, float]
    shortfalls: Dict[str, float]
    optimal: bool = True
    messages: List[str] = field(default_factory=list)

    @property
    def throughput(self) -> float:
        return float(sum(self.deliveries.values()))

    @property
    def total_shortfall(self) -> float:
        return float(sum(self.shortfalls.values()))


class FlowProblem:
    """
    Column layout and constraint matrices of the allocation LP.

    Columns, in order: forward flow of every active segment, reverse flow of
    every bidirectional segment, supply of every active Receipt, delivery of
    every active Delivery. One conservation row per active point:
    inflow + supply - outflow - delivery = 0.
    """

    def __init__(self, network: PipelineNetwork, settings: OptimizationSettings,
                 capacity_overrides: Optional[Mapping[str, float]] = None,
                 config: Optional[EngineConfig] = None):
        self.network = network
        self.settings = settings
        self.config = config or EngineConfig()
        self.overrides = dict(capacity_overrides or {})

        self.point_ids = list(network.active_points())
        segments = list(network.active_segments().values())
        if settings.enable_cost_optimization:
            # Cheaper segments get the lower column indices
            segments.sort(key=lambda s: (s.transportation_cost, s.id))
        self.segments = segments
        self.receipts = network.receipts()
        self.deliveries = network.deliveries()

        bounds = []
        self.forward = {}
        for seg in segments:
            self.forward[seg.id] = len(bounds)
            bounds.append((0.0, self._limit(seg.id, seg.capacity)))
        self.reverse = {}
        for seg in segments:
            if seg.reverse_capacity > 0:
                self.reverse[seg.id] = len(bounds)
                bounds.append((0.0, self._limit(seg.id, seg.reverse_capacity)))
        self.supply = {}
        for receipt in self.receipts:
            self.supply[receipt.id] = len(bounds)
            bounds.append((0.0, max(0.0, receipt.supply_capacity)))
        self.delivery = {}
        for delivery in self.deliveries:
            self.delivery[delivery.id] = len(bounds)
            bounds.append((0.0, max(0.0, delivery.demand_requirement)))
        self.bounds = bounds
        self.size = len(bounds)

        row_of = {pid: i for i, pid in enumerate(self.point_ids)}
        A_eq = np.zeros((len(self.point_ids), self.size))
        for seg in segments:
            src, dst = row_of[seg.from_point_id], row_of[seg.to_point_id]
            col = self.forward[seg.id]
            A_eq[src, col] -= 1.0
            A_eq[dst, col] += 1.0
            if seg.id in self.reverse:
                col = self.reverse[seg.id]
                A_eq[src, col] += 1.0
                A_eq[dst, col] -= 1.0
        for pid, col in self.supply.items():
            A_eq[row_of[pid], col] += 1.0
        for pid, col in self.delivery.items():
            A_eq[row_of[pid], col] -= 1.0
        self.A_eq = A_eq
        self.b_eq = np.zeros(len(self.point_ids))

    def _limit(self, segment_id: str, value: float) -> float:
        value = max(0.0, value)
        if segment_id in self.overrides:
            value = min(value, max(0.0, self.overrides[segment_id]))
        return value

    # --- Objective vectors ---------------------------------------------------

    def zeros(self) -> np.ndarray:
        return np.zeros(self.size)

    def throughput_vector(self) -> np.ndarray:
        """Minimizing this maximizes the total delivered flow"""
        c = self.zeros()
        for col in self.delivery.values():
            c[col] = -1.0
        return c

    def transport_vector(self) -> np.ndarray:
        c = self.zeros()
        for seg in self.segments:
            c[self.forward[seg.id]] = seg.transportation_cost
            if seg.id in self.reverse:
                c[self.reverse[seg.id]] = seg.transportation_cost
        return c

    def supply_cost_vector(self) -> np.ndarray:
        c = self.zeros()
        for receipt in self.receipts:
            c[self.supply[receipt.id]] = receipt.unit_cost
        return c

    def regularization_vector(self) -> np.ndarray:
        c = self.zeros()
        for col in list(self.forward.values()) + list(self.reverse.values()):
            c[col] = self.config.flow_regularization
        return c

    # --- Solving ---------------------------------------------------------------

    def solve(self, c, budget: SolverBudget, A_ub=None, b_ub=None, bounds=None) -> np.ndarray:
        """Run one LP; raises SolverTimeout, ConstraintViolation or InternalFailure"""
        c = np.asarray(c, dtype=float)
        if c.size == 0:
            return np.zeros(0)

        options = {}
        remaining = budget.remaining()
        if remaining is not None:
            if remaining <= 0:
                raise SolverTimeout("Time limit reached before the allocation LP could start")
            options["time_limit"] = remaining

        A_eq = self.A_eq
        if c.size > self.size:
            A_eq = np.hstack([A_eq, np.zeros((A_eq.shape[0], c.size - self.size))])
        has_rows = A_eq.shape[0] > 0

        try:
            res = linprog(
                c,
                A_ub=A_ub,
                b_ub=b_ub,
                A_eq=A_eq if has_rows else None,
                b_eq=self.b_eq if has_rows else None,
                bounds=bounds if bounds is not None else self.bounds,
                method=LP_METHOD,
                options=options,
            )
        except ValueError as exc:
            raise InternalFailure(f"Allocation LP rejected: {exc}") from exc

        logger.debug(f"LP status {res.status} after {getattr(res, 'nit', 0)} iterations: {res.message}")
        if res.status == 0:
            return res.x
        if res.status == 1:
            raise SolverTimeout(f"Allocation LP stopped early: {res.message}")
        if res.status == 2:
            raise ConstraintViolation(f"Allocation LP is infeasible: {res.message}")
        raise InternalFailure(f"Allocation LP failed (status {res.status}): {res.message}")

    def throughput_of(self, x) -> float:
        return float(sum(x[col] for col in self.delivery.values()))

    def throughput_floor_row(self, width: Optional[int] = None) -> np.ndarray:
        """A_ub row expressing -sum(deliveries) <= -floor"""
        row = np.zeros(width or self.size)
        for col in self.delivery.values():
            row[col] = -1.0
        return row

    def lexicographic(self, secondary, budget: SolverBudget) -> Allocation:
        """
        Maximize throughput, then minimize ``secondary`` while holding the
        throughput at its optimum. When the budget runs out in the second
        phase the throughput-optimal incumbent is returned as non-optimal.
        """
        x = self.solve(self.throughput_vector(), budget)
        best = self.throughput_of(x)
        incumbent = self.allocation(x, optimal=False)
        logger.debug(f"Throughput phase: {best:.6f}")

        floor_row = np.array([self.throughput_floor_row()])
        try:
            try:
                x = self.solve(secondary, budget, A_ub=floor_row, b_ub=np.array([-best]))
            except ConstraintViolation:
                # the exact optimum can sit just outside the solver tolerance
                x = self.solve(secondary, budget, A_ub=floor_row,
                               b_ub=np.array([-(best - self.config.flow_tolerance)]))
        except SolverTimeout:
            incumbent.messages.append("Time limit reached after the throughput phase; returning incumbent flow")
            return incumbent
        except ConstraintViolation as exc:
            logger.warning(f"Secondary LP phase failed, keeping throughput solution: {exc}")
            incumbent.messages.append("Secondary objective could not be applied; returning throughput solution")
            return incumbent
        return self.allocation(x, optimal=True)

    # --- Results ---------------------------------------------------------------

    def _clean(self, x) -> np.ndarray:
        x = np.round(np.asarray(x, dtype=float), self.config.decimals)
        x[np.abs(x) < self.config.flow_tolerance] = 0.0
        return x + 0.0

    def allocation(self, x, optimal: bool = True) -> Allocation:
        x = self._clean(np.asarray(x)[:self.size])
        flows = {sid: 0.0 for sid in sorted(self.network.segments)}
        for seg in self.segments:
            value = x[self.forward[seg.id]]
            if seg.id in self.reverse:
                value -= x[self.reverse[seg.id]]
            flows[seg.id] = float(value) + 0.0
        supplies = {pid: float(x[col]) for pid, col in self.supply.items()}
        deliveries = {pid: float(x[col]) for pid, col in self.delivery.items()}
        shortfalls = {
            d.id: max(0.0, d.demand_requirement - deliveries[d.id]) for d in self.deliveries
        }
        return Allocation(flows, supplies, deliveries, shortfalls, optimal=optimal)


def allocate(network: PipelineNetwork, objective, settings: OptimizationSettings,
             capacity_overrides: Optional[Mapping[str, float]] = None,
             budget: Optional[SolverBudget] = None,
             config: Optional[EngineConfig] = None) -> Allocation:
    """Compute a flow assignment for ``objective`` on the active subgraph"""
    budget = budget or SolverBudget(settings.time_limit)
    problem = FlowProblem(network, settings, capacity_overrides, config)
    logger.info(f"Allocating flow with {objective.name}: {len(problem.segments)} segments, "
                f"{len(problem.receipts)} receipts, {len(problem.deliveries)} deliveries")
    allocation = objective.solve(problem, budget)
    logger.info(f"Allocated throughput {allocation.throughput:.4f} (shortfall {allocation.total_shortfall:.4f})")
    return allocation
