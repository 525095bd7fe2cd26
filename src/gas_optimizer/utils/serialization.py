# Contains utility functions for serialization to and from JSON.
import json
from datetime import datetime
from pathlib import Path

import numpy as np

from ..domain.models import OptimizationResult, OptimizationSettings
from ..domain.pipeline import PipelineNetwork


class CustomJSONEncoder(json.JSONEncoder):
    def default(self, obj):
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if isinstance(obj, datetime):
            return obj.isoformat()
        return super(CustomJSONEncoder, self).default(obj)


def dumps(obj, indent: int = 4) -> str:
    """JSON text for contract models (camelCase field names) or plain data"""
    if hasattr(obj, "model_dump"):
        obj = obj.model_dump(by_alias=True, mode="json")
    return json.dumps(obj, cls=CustomJSONEncoder, indent=indent)


def export_network(network: PipelineNetwork) -> str:
    return dumps(network, indent=2)


def import_network(text: str) -> PipelineNetwork:
    return PipelineNetwork.from_json(text)


def load_settings(path) -> OptimizationSettings:
    return OptimizationSettings.from_json(Path(path).read_text(encoding="utf-8"))


def save_result(result: OptimizationResult, path) -> None:
    Path(path).write_text(dumps(result), encoding="utf-8")


def load_result(path) -> OptimizationResult:
    return OptimizationResult.from_json(Path(path).read_text(encoding="utf-8"))
