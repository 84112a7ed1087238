"""Optimization pipeline: quality filters followed by protected simplification."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional, Sequence

from ..models import (
    OptimizationOptions,
    OptimizationResult,
    OptimizationStatistics,
    Position,
)
from .filters import (
    apply_filters,
    filter_by_accuracy,
    filter_by_speed,
    filter_by_time_interval,
)
from .simplify import advanced_douglas_peucker

LOGGER = logging.getLogger(__name__)


def reduction_percentage(original_count: int, optimized_count: int) -> float:
    """Share of points removed, 0-100 with one decimal; 0 for empty input."""

    if original_count <= 0:
        return 0.0
    removed = original_count - optimized_count
    return round(removed / original_count * 100.0, 1)


def optimize_coordinates(
    positions: Sequence[Position],
    options: Optional[OptimizationOptions] = None,
) -> OptimizationResult:
    """Reduce ``positions`` to the points needed to redraw the route.

    Statistics report, for each filter, how many points it would remove from
    the raw input on its own. They are diagnostics and do not add up to the
    overall reduction.
    """

    resolved = replace(options) if options is not None else OptimizationOptions()
    original = list(positions)
    original_count = len(original)

    filtered = apply_filters(original, resolved)
    before_simplify = len(filtered)
    optimized = advanced_douglas_peucker(filtered, resolved)
    LOGGER.debug(
        "Douglas-Peucker: %d -> %d positions", before_simplify, len(optimized)
    )

    statistics = OptimizationStatistics(
        accuracy_filtered=(
            original_count - len(filter_by_accuracy(original, resolved.min_accuracy))
            if resolved.enable_accuracy_filter
            else 0
        ),
        speed_filtered=(
            original_count - len(filter_by_speed(original, resolved.max_speed))
            if resolved.enable_speed_filter
            else 0
        ),
        time_filtered=(
            original_count
            - len(filter_by_time_interval(original, resolved.min_time_interval))
            if resolved.enable_time_filter
            else 0
        ),
        douglas_peucker_reduced=before_simplify - len(optimized),
    )
    percentage = reduction_percentage(original_count, len(optimized))
    LOGGER.info(
        "Optimization complete: %d -> %d positions (%.1f%% reduction)",
        original_count,
        len(optimized),
        percentage,
    )
    return OptimizationResult(
        original_count=original_count,
        optimized_count=len(optimized),
        reduction_percentage=percentage,
        optimized_positions=optimized,
        statistics=statistics,
        options=resolved,
    )
