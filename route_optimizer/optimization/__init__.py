"""GPS trajectory optimization pipeline.

Filters noisy samples, then simplifies the route with Douglas-Peucker while
keeping stops and harsh speed changes intact.
"""

from .filters import (
    apply_filters,
    filter_by_accuracy,
    filter_by_speed,
    filter_by_time_interval,
)
from .geometry import perpendicular_distance
from .optimizer import optimize_coordinates, reduction_percentage
from .presets import (
    OPTIMIZATION_PRESETS,
    aggressive_optimize,
    get_preset,
    preset_names,
    quick_optimize,
)
from .simplify import advanced_douglas_peucker, douglas_peucker, protected_indices

__all__ = [
    "apply_filters",
    "filter_by_accuracy",
    "filter_by_speed",
    "filter_by_time_interval",
    "perpendicular_distance",
    "optimize_coordinates",
    "reduction_percentage",
    "OPTIMIZATION_PRESETS",
    "aggressive_optimize",
    "get_preset",
    "preset_names",
    "quick_optimize",
    "advanced_douglas_peucker",
    "douglas_peucker",
    "protected_indices",
]
