# Objective strategies selectable by name. Each one turns a FlowProblem into
# an Allocation through one or more LP phases.
import logging
from typing import Dict, List, Protocol

import numpy as np

from ...exceptions import ConstraintViolation, SolverTimeout, UnknownAlgorithmError
from .allocator import Allocation, FlowProblem, SolverBudget

logger = logging.getLogger(__name__)


class ObjectiveStrategy(Protocol):
    name: str
    description: str

    def solve(self, problem: FlowProblem, budget: SolverBudget) -> Allocation:
        ...


class MaximizeThroughput:
    name = "MaximizeThroughput"
    description = ("Maximizes the total flow delivered to Delivery points; ties prefer "
                   "lower-cost segments when cost optimization is enabled")

    def solve(self, problem: FlowProblem, budget: SolverBudget) -> Allocation:
        secondary = problem.regularization_vector()
        if problem.settings.enable_cost_optimization:
            secondary = secondary + problem.transport_vector()
        return problem.lexicographic(secondary, budget)


class MinimizeCost:
    name = "MinimizeCost"
    description = ("Minimizes supply and transportation cost while meeting as much "
                   "demand as the network capacity allows")

    def solve(self, problem: FlowProblem, budget: SolverBudget) -> Allocation:
        secondary = (problem.supply_cost_vector() + problem.transport_vector()
                     + problem.regularization_vector())
        return problem.lexicographic(secondary, budget)


class BalanceDemand:
    name = "BalanceDemand"
    description = ("Minimizes the largest proportional demand shortfall across Delivery "
                   "points by progressive water-filling")

    def solve(self, problem: FlowProblem, budget: SolverBudget) -> Allocation:
        tol = problem.config.flow_tolerance
        demands = {d.id: d.demand_requirement for d in problem.deliveries
                   if d.demand_requirement > tol}
        levels: Dict[str, float] = {}
        incumbent = None
        worst_shortfall = 0.0

        try:
            while len(levels) < len(demands):
                open_ids = [did for did in sorted(demands) if did not in levels]
                shortfall, x = self._min_max_shortfall(problem, demands, open_ids, levels, budget)
                incumbent = problem.allocation(x, optimal=False)
                worst_shortfall = max(worst_shortfall, shortfall)
                fill = 1.0 - shortfall
                if shortfall <= tol:
                    levels.update({did: demands[did] for did in open_ids})
                    break

                saturated = [
                    did for did in open_ids
                    if self._max_delivery(problem, demands, open_ids, levels, fill, did, budget)
                    <= demands[did] * fill + 10 * tol * max(1.0, demands[did])
                ]
                if not saturated:
                    saturated = open_ids
                logger.debug(f"Water-filling level {fill:.6f} freezes {saturated}")
                for did in saturated:
                    levels[did] = demands[did] * fill

            allocation = self._final(problem, levels, budget)
        except SolverTimeout:
            if incumbent is None:
                raise
            incumbent.messages.append("Time limit reached while balancing demand; returning incumbent flow")
            return incumbent

        allocation.messages.append(f"Largest proportional shortfall: {worst_shortfall:.2%}")
        return allocation

    def _frozen_bounds(self, problem, levels, slack):
        bounds = list(problem.bounds)
        for did, level in levels.items():
            col = problem.delivery[did]
            low = max(0.0, level - slack)
            bounds[col] = (min(low, bounds[col][1]), bounds[col][1])
        return bounds

    def _min_max_shortfall(self, problem, demands, open_ids, levels, budget):
        """Minimize t subject to delivery_k >= demand_k * (1 - t) for every open k"""
        tol = problem.config.flow_tolerance
        width = problem.size + 1
        t_col = problem.size
        c = np.zeros(width)
        c[t_col] = 1.0
        A_ub = np.zeros((len(open_ids), width))
        b_ub = np.zeros(len(open_ids))
        for row, did in enumerate(open_ids):
            A_ub[row, problem.delivery[did]] = -1.0
            A_ub[row, t_col] = -demands[did]
            b_ub[row] = -demands[did]
        bounds = self._frozen_bounds(problem, levels, tol) + [(0.0, 1.0)]
        x = problem.solve(c, budget, A_ub=A_ub, b_ub=b_ub, bounds=bounds)
        return float(x[t_col]), x[:problem.size]

    def _max_delivery(self, problem, demands, open_ids, levels, fill, target, budget):
        """Largest delivery to ``target`` while every open delivery keeps the fill level"""
        tol = problem.config.flow_tolerance
        bounds = self._frozen_bounds(problem, levels, tol)
        for did in open_ids:
            col = problem.delivery[did]
            low = max(0.0, demands[did] * fill - tol)
            bounds[col] = (min(low, bounds[col][1]), bounds[col][1])
        c = problem.zeros()
        c[problem.delivery[target]] = -1.0
        try:
            x = problem.solve(c, budget, bounds=bounds)
        except ConstraintViolation:
            return demands[target] * fill
        return float(x[problem.delivery[target]])

    def _final(self, problem, levels, budget) -> Allocation:
        """Cheapest flow that keeps every delivery at its balanced level"""
        secondary = problem.regularization_vector()
        if problem.settings.enable_cost_optimization:
            secondary = secondary + problem.transport_vector()
        # Delivering one more unit must outweigh any routing cost
        weight = 1.0 + float(np.abs(secondary).sum())
        c = weight * problem.throughput_vector() + secondary
        try:
            x = problem.solve(c, budget, bounds=self._frozen_bounds(problem, levels, 0.0))
        except ConstraintViolation:
            # exact levels can sit just outside the solver tolerance
            x = problem.solve(c, budget, bounds=self._frozen_bounds(problem, levels, problem.config.flow_tolerance))
        return problem.allocation(x, optimal=True)


OBJECTIVES: Dict[str, ObjectiveStrategy] = {
    strategy.name: strategy for strategy in (MaximizeThroughput(), MinimizeCost(), BalanceDemand())
}


def available_objectives() -> List[str]:
    return list(OBJECTIVES)


def get_objective(name: str) -> ObjectiveStrategy:
    try:
        return OBJECTIVES[str(getattr(name, "value", name))]
    except KeyError:
        raise UnknownAlgorithmError(name, available_objectives()) from None
