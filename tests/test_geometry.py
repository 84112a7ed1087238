from __future__ import annotations

import math

import numpy as np
import pytest

from factories import make_position, winding_track
from route_optimizer.optimization.geometry import (
    perpendicular_distance,
    span_distances,
    to_radians,
)


def test_degenerate_segment_yields_zero() -> None:
    start = make_position(45.0, 9.0)
    for point in (make_position(45.001, 9.0), make_position(45.0, 9.003)):
        assert perpendicular_distance(point, start, start) == 0.0


def test_point_on_meridian_segment_is_zero() -> None:
    start = make_position(45.0, 9.0)
    end = make_position(45.01, 9.0)
    mid = make_position(45.005, 9.0)
    assert perpendicular_distance(mid, start, end) == 0.0


def test_off_line_point_has_positive_finite_distance() -> None:
    start = make_position(0.0, 0.0)
    end = make_position(0.0, 0.01)
    point = make_position(0.001, 0.005)
    distance = perpendicular_distance(point, start, end)
    assert math.isfinite(distance)
    assert distance > 0.0


def test_nan_coordinates_do_not_propagate() -> None:
    start = make_position(45.0, 9.0)
    end = make_position(45.01, 9.01)
    broken = make_position(float("nan"), float("nan"))
    assert perpendicular_distance(broken, start, end) == 0.0


def test_span_distances_matches_scalar_kernel() -> None:
    track = winding_track(8)
    lat_rad, lng_rad = to_radians(track)
    vectorised = span_distances(lat_rad, lng_rad, 0, len(track) - 1)
    expected = [
        perpendicular_distance(point, track[0], track[-1]) for point in track[1:-1]
    ]
    assert vectorised.shape == (len(track) - 2,)
    assert vectorised.tolist() == pytest.approx(expected, rel=1e-6, abs=1e-6)


def test_span_distances_short_span_is_empty() -> None:
    lat_rad = np.radians(np.array([45.0, 45.1]))
    lng_rad = np.radians(np.array([9.0, 9.1]))
    assert span_distances(lat_rad, lng_rad, 0, 1).size == 0


def test_span_distances_zeroes_nan_entries() -> None:
    lat_rad = np.radians(np.array([45.0, np.nan, 45.2]))
    lng_rad = np.radians(np.array([9.0, np.nan, 9.2]))
    distances = span_distances(lat_rad, lng_rad, 0, 2)
    assert distances.tolist() == [0.0]
