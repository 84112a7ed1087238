"""GPS route optimizer package."""

from .errors import OptimizationServiceError, TrackingAPIError
from .models import (
    OptimizationOptions,
    OptimizationResult,
    OptimizationStatistics,
    Position,
)
from .optimization import optimize_coordinates

__all__ = [
    "OptimizationOptions",
    "OptimizationResult",
    "OptimizationStatistics",
    "Position",
    "optimize_coordinates",
    "OptimizationServiceError",
    "TrackingAPIError",
]
