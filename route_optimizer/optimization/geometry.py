"""Distance kernel used by the line simplifier."""

from __future__ import annotations

import math
from typing import Protocol, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

EARTH_RADIUS_M = 6371000.0

# Denominators below this are treated as a degenerate segment.
_DEGENERATE_EPSILON = 1e-18

FloatArray = NDArray[np.float64]


class LatLonPoint(Protocol):
    latitude: float
    longitude: float


def perpendicular_distance(
    point: LatLonPoint, line_start: LatLonPoint, line_end: LatLonPoint
) -> float:
    """Return the distance in metres from ``point`` to the line through the endpoints.

    Uses a planar cross-track approximation that is only meaningful for short
    (city or highway scale) segments. Degenerate segments yield ``0.0``.
    """

    lat0 = math.radians(point.latitude)
    lat1 = math.radians(line_start.latitude)
    lat2 = math.radians(line_end.latitude)
    d_lng1 = math.radians(line_start.longitude - point.longitude)
    d_lng2 = math.radians(line_end.longitude - point.longitude)

    a = math.sin(d_lng1) * math.cos(lat1)
    b = math.sin(d_lng2) * math.cos(lat2)
    c = math.cos(lat0) * math.sin(d_lng1 - d_lng2)
    denominator = math.sqrt(a * a + b * b + c * c)
    if not math.isfinite(denominator) or denominator < _DEGENERATE_EPSILON:
        return 0.0
    distance = abs(c) / denominator * EARTH_RADIUS_M
    return distance if math.isfinite(distance) else 0.0


def span_distances(
    lat_rad: FloatArray, lng_rad: FloatArray, start: int, end: int
) -> FloatArray:
    """Vectorised ``perpendicular_distance`` for each point strictly inside a span.

    ``lat_rad`` and ``lng_rad`` hold the trajectory coordinates in radians.
    The returned array has ``end - start - 1`` entries.
    """

    if end - start < 2:
        return np.empty(0, dtype=float)
    inner = slice(start + 1, end)
    lat0 = lat_rad[inner]
    d_lng1 = lng_rad[start] - lng_rad[inner]
    d_lng2 = lng_rad[end] - lng_rad[inner]

    a = np.sin(d_lng1) * math.cos(lat_rad[start])
    b = np.sin(d_lng2) * math.cos(lat_rad[end])
    c = np.cos(lat0) * np.sin(d_lng1 - d_lng2)
    denominator = np.sqrt(a * a + b * b + c * c)
    with np.errstate(divide="ignore", invalid="ignore"):
        distances = np.abs(c) / denominator * EARTH_RADIUS_M
    degenerate = ~np.isfinite(denominator) | (denominator < _DEGENERATE_EPSILON)
    distances[degenerate] = 0.0
    distances[~np.isfinite(distances)] = 0.0
    return distances


def to_radians(points: Sequence[LatLonPoint]) -> Tuple[FloatArray, FloatArray]:
    """Return latitude/longitude arrays in radians for a point sequence."""

    lats = np.radians(np.asarray([p.latitude for p in points], dtype=float))
    lngs = np.radians(np.asarray([p.longitude for p in points], dtype=float))
    return lats, lngs
