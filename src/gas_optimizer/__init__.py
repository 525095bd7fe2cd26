"""Gas pipeline network optimization engine"""

from .config import EngineConfig, load_config
from .domain import (
    AlgorithmInfo,
    CompressorPoint,
    CostBreakdown,
    DeliveryPoint,
    NetworkValidationResult,
    ObjectiveFunction,
    OptimizationMetrics,
    OptimizationResult,
    OptimizationSettings,
    OptimizationStatus,
    PipelineNetwork,
    PointType,
    ReceiptPoint,
    Segment,
)
from .evaluation.validation import validate
from .services.optimization_service import (
    OptimizationEngine,
    OptimizationRun,
    list_algorithms,
    optimize,
    run_optimization,
    validate_network,
)

__version__ = "0.1.0"
