from .pipeline import (
    BasePoint,
    CompressorPoint,
    DeliveryPoint,
    PipelineNetwork,
    Point,
    PointType,
    ReceiptPoint,
    Segment,
)
from .models import (
    AlgorithmInfo,
    CostBreakdown,
    NetworkValidationResult,
    ObjectiveFunction,
    OptimizationMetrics,
    OptimizationResult,
    OptimizationSettings,
    OptimizationStatus,
)
