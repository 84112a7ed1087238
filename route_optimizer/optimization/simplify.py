"""Douglas-Peucker line simplification with importance preservation."""

from __future__ import annotations

import logging
import math
from typing import List, Optional, Sequence, Set, TypeVar

import numpy as np
from numpy.typing import NDArray

from ..models import OptimizationOptions, Position, Trajectory
from .geometry import LatLonPoint, span_distances, to_radians

LOGGER = logging.getLogger(__name__)

# Speed delta (km/h) between neighbours that marks harsh acceleration/braking.
SPEED_CHANGE_THRESHOLD_KMH = 20.0

PointT = TypeVar("PointT", bound=LatLonPoint)


def douglas_peucker(
    points: Sequence[PointT], tolerance: float = 10.0
) -> List[PointT]:
    """Simplify ``points`` so no dropped point lies further than ``tolerance`` metres.

    The first and last points are always kept. Inputs of two points or fewer
    are returned unchanged.
    """

    if len(points) <= 2:
        return list(points)
    lat_rad, lng_rad = to_radians(points)
    keep = np.zeros(len(points), dtype=bool)
    _mark_span(lat_rad, lng_rad, 0, len(points) - 1, tolerance, keep)
    return [point for point, kept in zip(points, keep) if kept]


def _mark_span(
    lat_rad: NDArray[np.float64],
    lng_rad: NDArray[np.float64],
    start: int,
    end: int,
    tolerance: float,
    keep: NDArray[np.bool_],
) -> None:
    """Flag the indices Douglas-Peucker retains within ``start..end`` inclusive.

    Works on index ranges over one shared buffer with an explicit stack, so
    long trajectories neither copy slices nor hit the recursion limit.
    """

    keep[start] = True
    keep[end] = True
    stack = [(start, end)]
    while stack:
        lo, hi = stack.pop()
        if hi - lo < 2:
            continue
        distances = span_distances(lat_rad, lng_rad, lo, hi)
        # argmax returns the first maximum, matching a left-to-right scan.
        offset = int(np.argmax(distances))
        if distances[offset] > tolerance:
            split = lo + 1 + offset
            keep[split] = True
            stack.append((split, hi))
            stack.append((lo, split))


def protected_indices(
    positions: Sequence[Position], options: OptimizationOptions
) -> Set[int]:
    """Return indices simplification must never drop: stops, speed jumps, endpoints."""

    count = len(positions)
    protected: Set[int] = set()
    if count == 0:
        return protected
    speeds = [_speed(pos) for pos in positions]

    if options.preserve_stops:
        protected.update(
            i for i, speed in enumerate(speeds) if speed < options.min_speed
        )

    if options.preserve_speed_changes:
        for i in range(1, count - 1):
            change_in = abs(speeds[i] - speeds[i - 1])
            change_out = abs(speeds[i + 1] - speeds[i])
            if max(change_in, change_out) > SPEED_CHANGE_THRESHOLD_KMH:
                protected.add(i)

    protected.add(0)
    protected.add(count - 1)
    return protected


def advanced_douglas_peucker(
    positions: Sequence[Position], options: Optional[OptimizationOptions] = None
) -> Trajectory:
    """Douglas-Peucker gated by protected event points.

    The base algorithm only runs on the spans between consecutive protected
    indices, so stops and harsh speed changes survive exactly even when they
    are geometrically redundant.
    """

    options = options or OptimizationOptions()
    if len(positions) <= 2:
        return list(positions)

    working = list(positions)
    if not options.preserve_stops:
        working = [pos for pos in working if _speed(pos) >= options.min_speed]
        LOGGER.debug(
            "Dropped %d stationary positions before simplification",
            len(positions) - len(working),
        )
    if len(working) <= 2:
        return working

    anchors = sorted(protected_indices(working, options))
    lat_rad, lng_rad = to_radians(working)
    keep = np.zeros(len(working), dtype=bool)
    for lo, hi in zip(anchors, anchors[1:]):
        _mark_span(lat_rad, lng_rad, lo, hi, options.tolerance, keep)
    return [pos for pos, kept in zip(working, keep) if kept]


def _speed(position: Position) -> float:
    speed = position.speed
    if speed is None or math.isnan(speed):
        return 0.0
    return max(0.0, float(speed))
