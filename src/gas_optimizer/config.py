# Engine-wide configuration: solver tolerances, repair loop bounds and the
# calibration constants of the pressure-drop law.
import json
from pathlib import Path

from pydantic import BaseModel, Field

# Defaults the network editor assigns to new segments
DEFAULT_FRICTION_FACTOR = 0.012
DEFAULT_PRESSURE_DROP_CONSTANT = 0.00008

DEFAULT_TIME_LIMIT = 300.0  # seconds


class EngineConfig(BaseModel):
    """Tunable parameters of the optimization engine"""

    # Repair loop
    max_repair_iterations: int = Field(10, ge=0, description="Allocate/simulate repair rounds before giving up")
    repair_reduction: float = Field(0.5, gt=0, lt=1, description="Capacity factor applied to an under-pressure segment per round")

    # Numerics
    flow_tolerance: float = Field(1e-6, gt=0, description="Flows below this magnitude are treated as zero")
    pressure_tolerance: float = Field(1e-6, gt=0, description="Slack allowed on pressure bounds")
    flow_regularization: float = Field(1e-6, ge=0, description="Weight on total flow in secondary LP phases")
    decimals: int = Field(6, ge=0, description="Rounding applied to solver output")

    # Weymouth-type drop law: p_from^2 - p_to^2 = C * f_r * L * |q|^a / D^b
    flow_exponent: float = Field(2.0, gt=0, description="Exponent a on flow")
    diameter_exponent: float = Field(5.0, gt=0, description="Exponent b on diameter")


def load_config(path) -> EngineConfig:
    """Read an EngineConfig from a JSON file; missing keys keep their defaults"""
    with open(Path(path), "r", encoding="utf-8") as handle:
        data = json.load(handle)
    return EngineConfig(**data)
