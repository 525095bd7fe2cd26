# Provides the main service for orchestrating the optimization process.
import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Union

from pydantic import ValidationError

from ..algorithms.flow.allocator import Allocation, SolverBudget, allocate
from ..algorithms.flow.objectives import OBJECTIVES, ObjectiveStrategy, get_objective
from ..algorithms.hydraulics.pressure import PressureReport, simulate
from ..config import EngineConfig
from ..domain.models import (
    AlgorithmInfo,
    NetworkValidationResult,
    ObjectiveFunction,
    OptimizationResult,
    OptimizationSettings,
)
from ..domain.pipeline import PipelineNetwork
from ..evaluation.validation import validate_network as run_validation
from ..exceptions import ConstraintViolation, InternalFailure, SolverTimeout, UnknownAlgorithmError
from .repair import Phase, RepairState, after_simulation
from .result_assembler import assemble_result, failed_result, validation_failure

logger = logging.getLogger(__name__)


@dataclass
class OptimizationRun:
    """Result plus the engine's private network copy annotated with flows and pressures"""
    result: OptimizationResult
    network: Optional[PipelineNetwork] = None


class OptimizationEngine:
    """
    Stateless entry point: every call works on its own copy of the network
    and settings, so one engine may serve concurrent callers.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()

    def available_algorithms(self) -> List[str]:
        return list(OBJECTIVES)

    def get_algorithm(self, name: str) -> Optional[ObjectiveStrategy]:
        return OBJECTIVES.get(name)

    def list_algorithms(self) -> List[AlgorithmInfo]:
        return [AlgorithmInfo(name=s.name, description=s.description) for s in OBJECTIVES.values()]

    def validate_network(self, network: Union[PipelineNetwork, dict]) -> NetworkValidationResult:
        try:
            network = _coerce(PipelineNetwork, network)
        except ValidationError as exc:
            return NetworkValidationResult(is_valid=False, errors=[f"Malformed network: {exc}"])
        report = run_validation(network)
        return NetworkValidationResult(is_valid=report.is_valid, errors=report.all_messages())

    def optimize(self, algorithm_name: str, network, settings=None) -> OptimizationResult:
        return self.run(algorithm_name, network, settings).result

    def run(self, algorithm_name: str, network, settings=None) -> OptimizationRun:
        """Optimize; never raises, failures are reported through the result status"""
        name = str(getattr(algorithm_name, "value", algorithm_name))
        try:
            return self._run(name, network, settings)
        except Exception as exc:
            logger.exception(f"Optimization with {name} failed")
            return OptimizationRun(failed_result(name, f"Internal failure: {exc}"))

    def _run(self, name, network, settings) -> OptimizationRun:
        try:
            objective = get_objective(name)
        except UnknownAlgorithmError as exc:
            logger.error(str(exc))
            return OptimizationRun(failed_result(name, str(exc)))

        try:
            network = _coerce(PipelineNetwork, network).copy()
            settings = _coerce(OptimizationSettings, settings or OptimizationSettings()).model_copy(deep=True)
        except ValidationError as exc:
            return OptimizationRun(failed_result(name, f"Malformed request: {exc}"))

        messages = []
        if settings.objective_function.value != objective.name:
            messages.append(f"Algorithm {objective.name} overrides objectiveFunction "
                            f"{settings.objective_function.value}")
            settings.objective_function = ObjectiveFunction(objective.name)

        state = RepairState(Phase.VALIDATING)
        logger.info(f"Validating network '{network.name}' ({len(network.points)} points, "
                    f"{len(network.segments)} segments)")
        validation = run_validation(network)
        if not validation.is_valid:
            logger.warning(f"Network validation failed with {len(validation.errors)} error(s)")
            return OptimizationRun(validation_failure(name, validation), network)

        started = time.perf_counter()
        budget = SolverBudget(settings.time_limit)
        try:
            state, allocation, pressure = self._solve(objective, network, settings, state.to(Phase.ALLOCATING), budget)
        except SolverTimeout as exc:
            logger.warning(f"Time limit of {settings.time_limit}s exhausted: {exc}")
            return OptimizationRun(failed_result(name, f"No feasible flow within the time limit: {exc}",
                                                 is_valid=True), network)
        except ConstraintViolation as exc:
            return OptimizationRun(failed_result(name, str(exc), is_valid=True,
                                                 infeasible_segments=exc.segment_ids), network)
        except InternalFailure as exc:
            logger.error(f"Solver failure: {exc}")
            return OptimizationRun(failed_result(name, str(exc), is_valid=True), network)
        elapsed_ms = (time.perf_counter() - started) * 1000.0

        result = assemble_result(name, network, settings, allocation, pressure, state, elapsed_ms,
                                 validation=validation, config=self.config, messages=messages)
        logger.info(f"{name} finished with status {result.status.value} in {elapsed_ms:.1f} ms")
        return OptimizationRun(result, network)

    def _solve(self, objective, network, settings, state: RepairState, budget: SolverBudget):
        allocation: Optional[Allocation] = None
        pressure: Optional[PressureReport] = None
        while not state.terminal:
            if state.allocating:
                if state.phase is Phase.REALLOCATING:
                    logger.warning(f"Repair iteration {state.iteration}: capacity limits {state.capacity_overrides()}")
                allocation = allocate(network, objective, settings, state.capacity_overrides(), budget, self.config)
                state = state.to(Phase.SIMULATING)
            else:
                pressure = simulate(network, allocation.flows, settings, self.config)
                state = after_simulation(state, allocation.flows, pressure, self.config)
        return state, allocation, pressure


def _coerce(model, value):
    if isinstance(value, model):
        return value
    return model.model_validate(value)


_default_engine = OptimizationEngine()


def list_algorithms() -> List[AlgorithmInfo]:
    return _default_engine.list_algorithms()


def validate_network(network) -> NetworkValidationResult:
    return _default_engine.validate_network(network)


def optimize(algorithm_name: str, network, settings=None) -> OptimizationResult:
    return _default_engine.optimize(algorithm_name, network, settings)


def run_optimization(network, settings=None, algorithm_name: Optional[str] = None) -> OptimizationResult:
    """
    Runs the optimization selected by ``settings.objectiveFunction`` unless
    an explicit algorithm name is given.
    """
    settings = _coerce(OptimizationSettings, settings or OptimizationSettings())
    return optimize(algorithm_name or settings.objective_function.value, network, settings)
