"""Named optimization configurations layered on the same pipeline."""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, List, Sequence

from ..models import OptimizationOptions, OptimizationResult, Position
from .optimizer import optimize_coordinates

OPTIMIZATION_PRESETS: Dict[str, OptimizationOptions] = {
    "conservative": OptimizationOptions(
        tolerance=5.0,
        min_speed=2.0,
        min_time_interval=15000,
        min_accuracy=50.0,
    ),
    "balanced": OptimizationOptions(),
    "aggressive": OptimizationOptions(
        tolerance=25.0,
        min_speed=10.0,
        min_time_interval=60000,
        preserve_speed_changes=False,
    ),
}

QUICK_OPTIONS = OptimizationOptions(
    tolerance=10.0,
    min_speed=5.0,
    min_time_interval=30000,
    max_speed=200.0,
    min_accuracy=100.0,
    preserve_stops=True,
    preserve_speed_changes=True,
)

AGGRESSIVE_OPTIONS = OptimizationOptions(
    tolerance=25.0,
    min_speed=10.0,
    min_time_interval=60000,
    max_speed=200.0,
    min_accuracy=50.0,
    preserve_stops=True,
    preserve_speed_changes=False,
)


def get_preset(name: str) -> OptimizationOptions:
    """Return a copy of the named preset; raises ``KeyError`` for unknown names."""

    return replace(OPTIMIZATION_PRESETS[name.strip().lower()])


def preset_names() -> List[str]:
    return list(OPTIMIZATION_PRESETS)


def quick_optimize(positions: Sequence[Position]) -> OptimizationResult:
    """Optimize with sensible defaults for interactive map views."""

    return optimize_coordinates(positions, replace(QUICK_OPTIONS))


def aggressive_optimize(positions: Sequence[Position]) -> OptimizationResult:
    """Optimize large datasets harder; stops survive, speed changes do not."""

    return optimize_coordinates(positions, replace(AGGRESSIVE_OPTIONS))
