# Error taxonomy shared by the engine, its services and the CLI.


class PipelineOptimizationError(Exception):
    """Base class for every error raised by the optimization engine"""


class StructuralError(PipelineOptimizationError):
    """Duplicate or missing ids, dangling segment endpoints"""


class ConstraintViolation(PipelineOptimizationError):
    """Pressure or capacity constraints that cannot be satisfied"""

    def __init__(self, message, segment_ids=None):
        super().__init__(message)
        self.segment_ids = list(segment_ids or [])


class SolverTimeout(PipelineOptimizationError):
    """The time budget ran out before the solver finished"""


class InternalFailure(PipelineOptimizationError):
    """Unexpected solver error"""


class UnknownAlgorithmError(PipelineOptimizationError):
    """Requested algorithm name is not registered"""

    def __init__(self, name, available=None):
        self.name = name
        self.available = list(available or [])
        message = f"Unknown algorithm '{name}'"
        if self.available:
            message += f" (available: {', '.join(self.available)})"
        super().__init__(message)
