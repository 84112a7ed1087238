"""Quality filters applied to a trajectory before simplification.

Every filter only removes elements and never reorders them. Missing or
malformed numeric fields always pass (fail-open): data availability wins over
strict validation.
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Sequence

from ..models import OptimizationOptions, Position, Trajectory

LOGGER = logging.getLogger(__name__)


def _malformed(value: Optional[float]) -> bool:
    """Return True for missing, NaN or negative readings."""

    return value is None or math.isnan(value) or value < 0


def filter_by_accuracy(
    positions: Sequence[Position], min_accuracy: float = 100.0
) -> Trajectory:
    """Drop samples whose reported accuracy radius exceeds ``min_accuracy`` metres."""

    kept: Trajectory = []
    for pos in positions:
        accuracy = pos.accuracy
        if _malformed(accuracy) or accuracy <= min_accuracy:
            kept.append(pos)
    return kept


def filter_by_speed(
    positions: Sequence[Position], max_speed: float = 200.0
) -> Trajectory:
    """Drop samples reporting implausible velocities (satellite jumps)."""

    kept: Trajectory = []
    for pos in positions:
        speed = pos.speed
        if _malformed(speed) or speed <= max_speed:
            kept.append(pos)
    return kept


def filter_by_time_interval(
    positions: Sequence[Position], min_time_interval: float = 30000
) -> Trajectory:
    """Keep a minimum-spacing subsequence (``min_time_interval`` in milliseconds).

    Greedy forward scan: the first sample is always kept and a later sample is
    kept once it is at least ``min_time_interval`` after the last kept one.
    Samples without a timestamp pass and leave the reference time untouched.
    """

    if len(positions) <= 1:
        return list(positions)

    kept: Trajectory = [positions[0]]
    last_kept = positions[0].timestamp
    for pos in positions[1:]:
        if pos.timestamp is None:
            kept.append(pos)
            continue
        if last_kept is None:
            kept.append(pos)
            last_kept = pos.timestamp
            continue
        elapsed_ms = (pos.timestamp - last_kept).total_seconds() * 1000.0
        if elapsed_ms >= min_time_interval:
            kept.append(pos)
            last_kept = pos.timestamp
    return kept


def apply_filters(
    positions: Sequence[Position], options: OptimizationOptions
) -> Trajectory:
    """Run the enabled filters in their fixed order: accuracy, speed, time."""

    filtered = list(positions)
    if options.enable_accuracy_filter:
        before = len(filtered)
        filtered = filter_by_accuracy(filtered, options.min_accuracy)
        LOGGER.debug("Accuracy filter: %d -> %d positions", before, len(filtered))
    if options.enable_speed_filter:
        before = len(filtered)
        filtered = filter_by_speed(filtered, options.max_speed)
        LOGGER.debug("Speed filter: %d -> %d positions", before, len(filtered))
    if options.enable_time_filter:
        before = len(filtered)
        filtered = filter_by_time_interval(filtered, options.min_time_interval)
        LOGGER.debug("Time filter: %d -> %d positions", before, len(filtered))
    return filtered
