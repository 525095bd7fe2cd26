# Bounded allocate -> simulate -> repair state machine. States are immutable;
# every transition returns a new state, so the engine keeps no counters.
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Mapping, Tuple

from ..algorithms.hydraulics.pressure import PressureReport
from ..config import EngineConfig


class Phase(str, Enum):
    VALIDATING = "Validating"
    ALLOCATING = "Allocating"
    SIMULATING = "Simulating"
    REALLOCATING = "Reallocating"
    CONVERGED = "Converged"
    INFEASIBLE = "Infeasible"


TERMINAL_PHASES = (Phase.CONVERGED, Phase.INFEASIBLE)


@dataclass(frozen=True)
class RepairState:
    phase: Phase = Phase.VALIDATING
    iteration: int = 0
    overrides: Tuple[Tuple[str, float], ...] = ()

    @property
    def terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES

    @property
    def allocating(self) -> bool:
        return self.phase in (Phase.ALLOCATING, Phase.REALLOCATING)

    def capacity_overrides(self) -> Dict[str, float]:
        return dict(self.overrides)

    def to(self, phase: Phase) -> "RepairState":
        return replace(self, phase=phase)


def after_simulation(state: RepairState, flows: Mapping[str, float], report: PressureReport,
                     config: EngineConfig) -> RepairState:
    """
    Decide what follows a pressure simulation. Under-pressure segments get
    their capacity cut to a fraction of the flow they carried; over-pressure
    cannot be fixed by carrying less gas and ends the loop.
    """
    if report.feasible:
        return state.to(Phase.CONVERGED)
    if state.iteration >= config.max_repair_iterations:
        return state.to(Phase.INFEASIBLE)

    overrides = state.capacity_overrides()
    tightened = False
    for sid in report.under_pressure_segments:
        carried = abs(flows.get(sid, 0.0))
        if carried <= config.flow_tolerance:
            continue
        overrides[sid] = carried * config.repair_reduction
        tightened = True
    if not tightened:
        return state.to(Phase.INFEASIBLE)
    return RepairState(Phase.REALLOCATING, state.iteration + 1, tuple(sorted(overrides.items())))
